"""Line-oriented codec for exported node streams.

Each record is one UTF-8 JSON object terminated by a newline. Node payloads are base64
encoded so arbitrary binary data survives; ACL scheme and id strings are JSON strings so
any text survives. An optional header line describing the export precedes the nodes::

    {"type":"header","version":1,"source":"zk1:2181","chroot_path":"/","root_path":"/",...}
    {"type":"node","path":"/app","data":"aGVsbG8=","acl":[{"scheme":"world","id":"anyone","perms":31}],"ephemeral":false}
"""

import base64
import binascii
import io
import json
from collections.abc import Iterable, Iterator
from typing import Any, BinaryIO

from pydantic import ValidationError

from ..constants import RECORD_TYPE_HEADER, RECORD_TYPE_NODE, STREAM_FORMAT_VERSION
from ..models.node import NodeRecord, StreamHeader
from .exceptions import MalformedRecordError

_REQUIRED_NODE_FIELDS = ("path", "data", "acl")


def _dump_line(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8") + b"\n"


def encode_header(header: StreamHeader) -> bytes:
    """Encode a stream header line."""
    return _dump_line({"type": RECORD_TYPE_HEADER, **header.model_dump()})


def encode_node(record: NodeRecord) -> bytes:
    """Encode one node record as a newline-terminated line."""
    return _dump_line(
        {
            "type": RECORD_TYPE_NODE,
            "path": record.path,
            "data": base64.b64encode(record.data).decode("ascii"),
            "acl": [entry.model_dump() for entry in record.acl],
            "ephemeral": record.ephemeral,
        }
    )


def decode_line(line: bytes, line_number: int | None = None) -> NodeRecord | StreamHeader:
    """Decode a single line into a node record or a stream header.

    Raises:
        MalformedRecordError: If the line is not a well-formed record
    """
    try:
        payload = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedRecordError(f"invalid JSON: {e}", line_number) from e

    if not isinstance(payload, dict):
        raise MalformedRecordError("record is not a JSON object", line_number)

    record_type = payload.get("type")
    if record_type == RECORD_TYPE_HEADER:
        return _decode_header(payload, line_number)
    if record_type != RECORD_TYPE_NODE:
        raise MalformedRecordError(f"unknown record type {record_type!r}", line_number)

    missing = [name for name in _REQUIRED_NODE_FIELDS if name not in payload]
    if missing:
        raise MalformedRecordError(f"missing field(s): {', '.join(missing)}", line_number)

    encoded = payload["data"]
    if not isinstance(encoded, str):
        raise MalformedRecordError("data must be a base64 string", line_number)
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedRecordError(f"invalid base64 data: {e}", line_number) from e

    try:
        return NodeRecord.model_validate(
            {
                "path": payload["path"],
                "data": data,
                "acl": payload["acl"],
                "ephemeral": payload.get("ephemeral", False),
            }
        )
    except ValidationError as e:
        raise MalformedRecordError(_summarize(e), line_number) from e


def _decode_header(payload: dict[str, Any], line_number: int | None) -> StreamHeader:
    fields = {key: value for key, value in payload.items() if key != "type"}
    try:
        header = StreamHeader.model_validate(fields)
    except ValidationError as e:
        raise MalformedRecordError(f"invalid header: {_summarize(e)}", line_number) from e
    if header.version != STREAM_FORMAT_VERSION:
        raise MalformedRecordError(
            f"unsupported stream format version {header.version}", line_number
        )
    return header


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


class StreamReader:
    """Lazily decodes node records from an iterable of byte lines.

    An open binary file works as the source. Iterating consumes the source, so a second
    pass requires re-opening it. The header, if present, is exposed once read.
    """

    def __init__(self, source: Iterable[bytes] | bytes):
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        self._source = source
        self.header: StreamHeader | None = None
        self.records_read = 0

    def __iter__(self) -> Iterator[NodeRecord]:
        seen_content = False
        for line_number, line in enumerate(self._source, start=1):
            if not line.endswith(b"\n"):
                raise MalformedRecordError("truncated record (missing line terminator)", line_number)
            if not line.strip():
                continue

            item = decode_line(line, line_number)
            if isinstance(item, StreamHeader):
                if seen_content:
                    raise MalformedRecordError("stream header must be the first record", line_number)
                self.header = item
            else:
                self.records_read += 1
                yield item
            seen_content = True


class StreamWriter:
    """Encodes records onto a binary sink."""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.records_written = 0

    def write_header(self, header: StreamHeader) -> None:
        self._sink.write(encode_header(header))

    def write(self, record: NodeRecord) -> None:
        self._sink.write(encode_node(record))
        self.records_written += 1

    def flush(self) -> None:
        self._sink.flush()


def decode_stream(source: Iterable[bytes] | bytes) -> Iterator[NodeRecord]:
    """Decode node records from a byte string or byte lines, skipping a leading header."""
    yield from StreamReader(source)

"""Node and stream data models."""

import posixpath
from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from ..constants import PERM_ALL, ROOT_PATH, STREAM_FORMAT_VERSION, ZOOKEEPER_SYSTEM_PATH


def validate_znode_path(path: str) -> str:
    """Validate an absolute znode path and return it unchanged.

    Raises:
        ValueError: If the path is not absolute, has a trailing slash, or contains empty,
            ``.`` or ``..`` segments
    """
    if not isinstance(path, str) or not path.startswith("/"):
        raise ValueError(f"znode path must be absolute: {path!r}")
    if path == ROOT_PATH:
        return path
    if path.endswith("/"):
        raise ValueError(f"znode path must not end with '/': {path!r}")
    for segment in path[1:].split("/"):
        if segment in ("", ".", ".."):
            raise ValueError(f"invalid segment {segment!r} in znode path {path!r}")
        if "\x00" in segment:
            raise ValueError(f"null character in znode path {path!r}")
    return path


def parent_path(path: str) -> str | None:
    """Parent of ``path``; None for the root."""
    if path == ROOT_PATH:
        return None
    return posixpath.dirname(path) or ROOT_PATH


def join_path(parent: str, child: str) -> str:
    """Join a parent znode path and a child name."""
    if parent == ROOT_PATH:
        return f"/{child}"
    return f"{parent}/{child}"


def is_system_path(path: str) -> bool:
    """True for the ensemble-owned ``/zookeeper`` tree, given an absolute path."""
    return path == ZOOKEEPER_SYSTEM_PATH or path.startswith(ZOOKEEPER_SYSTEM_PATH + "/")


class AclEntry(BaseModel):
    """One (scheme, id, perms) ACL triple."""

    model_config = ConfigDict(frozen=True)

    scheme: str
    id: str
    perms: Annotated[int, Field(ge=0, le=PERM_ALL, strict=True)]


class NodeRecord(BaseModel):
    """Everything captured about one znode during export."""

    model_config = ConfigDict(frozen=True)

    path: str
    data: bytes = b""
    acl: list[AclEntry] = Field(default_factory=list)
    ephemeral: StrictBool = False

    @field_validator("path")
    @classmethod
    def check_path(cls, v: str) -> str:
        return validate_znode_path(v)

    @property
    def parent(self) -> str | None:
        return parent_path(self.path)


class StreamHeader(BaseModel):
    """Leading line of an exported stream describing where it came from."""

    version: int = STREAM_FORMAT_VERSION
    source: str = ""
    chroot_path: str = ROOT_PATH
    root_path: str = ROOT_PATH
    exported_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

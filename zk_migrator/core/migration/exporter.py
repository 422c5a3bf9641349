"""Ordered, read-only export of a ZooKeeper subtree."""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import structlog
from kazoo.exceptions import NoNodeError

from ...constants import ROOT_PATH
from ...models.node import (
    NodeRecord,
    StreamHeader,
    is_system_path,
    join_path,
    validate_znode_path,
)
from ..codec import StreamWriter
from ..exceptions import ExportError
from ..session import ZKSession

logger = structlog.get_logger()


@dataclass
class NodeSnapshot:
    """A node's record plus the sorted paths of its children at read time."""

    record: NodeRecord
    children: list[str] = field(default_factory=list)


class TreeExporter:
    """Walks a subtree depth-first and yields records parent-before-child.

    The walk uses an explicit stack. Each node's children are read concurrently (bounded
    by ``max_workers``) and gathered back in sorted order before being pushed, so the
    emitted order is the same as a sequential pre-order walk with sorted siblings.
    """

    def __init__(self, session: ZKSession, max_workers: int = 8):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.session = session
        self.max_workers = max_workers
        self.logger = logger.bind(component="tree_exporter", endpoint=str(session.endpoint))
        self.nodes_exported = 0
        self.nodes_skipped = 0

    async def read_node(self, path: str, semaphore: asyncio.Semaphore) -> NodeSnapshot | None:
        """Read one node's data, ACL and children.

        Returns None when the node no longer exists; a node deleted concurrently with the
        walk is not an error.
        """
        async with semaphore:
            try:
                data, stat = await self.session.get(path)
                acl = await self.session.get_acls(path)
            except NoNodeError:
                self.nodes_skipped += 1
                self.logger.warning("Node disappeared before it could be read, skipping", path=path)
                return None

            try:
                children = await self.session.get_children(path)
            except NoNodeError:
                self.logger.warning("Node disappeared before its children were listed", path=path)
                children = []

        record = NodeRecord(
            path=path,
            data=data,
            acl=acl,
            ephemeral=bool(getattr(stat, "ephemeralOwner", 0)),
        )
        child_paths = [join_path(path, name) for name in sorted(children)]
        return NodeSnapshot(record, [p for p in child_paths if not self._is_system_path(p)])

    def _is_system_path(self, path: str) -> bool:
        return is_system_path(self.session.endpoint.absolute(path))

    async def _read_siblings(
        self, paths: list[str], semaphore: asyncio.Semaphore
    ) -> list[NodeSnapshot]:
        results = await asyncio.gather(
            *(self.read_node(path, semaphore) for path in paths), return_exceptions=True
        )
        # All reads have settled; surface the first hard failure in sibling order
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return [result for result in results if result is not None]

    async def export(self, root_path: str = ROOT_PATH) -> AsyncIterator[NodeRecord]:
        """Yield the subtree under ``root_path`` in parent-before-child order.

        Raises:
            ExportError: If ``root_path`` is invalid or does not exist
            ZKConnectionError: If the session is lost mid-walk
        """
        try:
            validate_znode_path(root_path)
        except ValueError as e:
            raise ExportError(str(e)) from e

        self.nodes_exported = 0
        self.nodes_skipped = 0
        semaphore = asyncio.Semaphore(self.max_workers)

        root = await self.read_node(root_path, semaphore)
        if root is None:
            raise ExportError(f"Root path {root_path} does not exist on {self.session.endpoint}")

        self.logger.info("Starting export", root_path=root_path, max_workers=self.max_workers)

        pending: list[NodeSnapshot] = [root]
        while pending:
            snapshot = pending.pop()
            self.nodes_exported += 1
            yield snapshot.record

            if snapshot.children:
                children = await self._read_siblings(snapshot.children, semaphore)
                # Reversed so the first child is popped next
                pending.extend(reversed(children))

        self.logger.info(
            "Export complete",
            root_path=root_path,
            nodes_exported=self.nodes_exported,
            nodes_skipped=self.nodes_skipped,
        )

    async def export_to_stream(self, writer: StreamWriter, root_path: str = ROOT_PATH) -> int:
        """Export into ``writer`` with a leading header; returns the number of records."""
        writer.write_header(
            StreamHeader(
                source=self.session.endpoint.connect_string,
                chroot_path=self.session.endpoint.chroot_path,
                root_path=root_path,
            )
        )
        async for record in self.export(root_path):
            writer.write(record)
        writer.flush()
        return writer.records_written

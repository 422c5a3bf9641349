"""Replay of an exported node stream against a destination ensemble."""

import itertools
from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from kazoo.exceptions import NodeExistsError, NoNodeError

from ...constants import ROOT_PATH
from ...models.node import AclEntry, NodeRecord, is_system_path
from ..codec import StreamReader
from ..exceptions import MissingParentError
from ..session import ZKSession

logger = structlog.get_logger()

PROGRESS_INTERVAL = 1000


@dataclass
class ImportResult:
    """Counts for one import run."""

    nodes_created: int = 0
    nodes_updated: int = 0
    nodes_skipped: int = 0

    @property
    def nodes_written(self) -> int:
        return self.nodes_created + self.nodes_updated


class TreeImporter:
    """Creates or updates destination nodes strictly in stream order.

    Args:
        session: Connected destination session
        ignore_source_acl: Apply the destination's default ACL instead of the recorded one
        use_existing_acl: Leave the ACL of nodes that already exist untouched
        skip_ephemeral: Drop records of ephemeral nodes instead of recreating them as
            persistent nodes
    """

    def __init__(
        self,
        session: ZKSession,
        ignore_source_acl: bool = False,
        use_existing_acl: bool = False,
        skip_ephemeral: bool = False,
    ):
        self.session = session
        self.ignore_source_acl = ignore_source_acl
        self.use_existing_acl = use_existing_acl
        self.skip_ephemeral = skip_ephemeral
        self.logger = logger.bind(component="tree_importer", endpoint=str(session.endpoint))

    def acl_for(self, record: NodeRecord) -> list[AclEntry]:
        """ACL to apply for a record; an empty recorded ACL falls back to the default."""
        if self.ignore_source_acl or not record.acl:
            return self.session.default_acl
        return record.acl

    async def import_stream(self, records: Iterable[NodeRecord]) -> ImportResult:
        """Write every record in order; the first failure aborts the remaining records.

        Raises:
            MissingParentError: If a record's parent does not exist at the destination
            ZKPermissionError: If the destination rejects a write or an ACL
            ZKConnectionError: If the session is lost
            MalformedRecordError: If decoding ``records`` fails part way
        """
        result = ImportResult()
        self.logger.info(
            "Starting import",
            ignore_source_acl=self.ignore_source_acl,
            use_existing_acl=self.use_existing_acl,
            skip_ephemeral=self.skip_ephemeral,
        )

        for record in records:
            await self.import_record(record, result)
            processed = result.nodes_written + result.nodes_skipped
            if processed % PROGRESS_INTERVAL == 0:
                self.logger.info("Import progress", records_processed=processed)

        self.logger.info(
            "Import complete",
            nodes_written=result.nodes_written,
            nodes_created=result.nodes_created,
            nodes_updated=result.nodes_updated,
            nodes_skipped=result.nodes_skipped,
        )
        return result

    async def import_from_stream(self, reader: StreamReader) -> ImportResult:
        """Import records decoded from an artifact.

        When the stream header names an export root below ``/``, the root record's
        missing ancestors are created with the default ACL first. Headerless streams are
        replayed as they are.
        """
        records = iter(reader)
        first = next(records, None)
        if first is None:
            return await self.import_stream([])

        header = reader.header
        if header is not None:
            self.logger.info(
                "Importing stream exported from",
                source=header.source,
                source_chroot=header.chroot_path,
                root_path=header.root_path,
                exported_at=header.exported_at,
            )
            if first.path == header.root_path:
                await self.ensure_ancestors(first)

        result = await self.import_stream(itertools.chain([first], records))
        self.logger.info("Finished reading stream", records_read=reader.records_read)
        return result

    async def ensure_ancestors(self, record: NodeRecord) -> None:
        """Create the missing ancestors of an export root record."""
        parent = record.parent
        if parent is None or parent == ROOT_PATH or await self.session.exists(parent):
            return
        await self.session.ensure_path(parent)
        self.logger.info("Created missing ancestors of export root", path=parent)

    async def import_record(self, record: NodeRecord, result: ImportResult) -> None:
        if is_system_path(self.session.endpoint.absolute(record.path)):
            self.logger.warning(
                "Skipping node that maps onto the ensemble's /zookeeper tree", path=record.path
            )
            result.nodes_skipped += 1
            return

        if record.ephemeral and self.skip_ephemeral:
            self.logger.debug("Skipping ephemeral node", path=record.path)
            result.nodes_skipped += 1
            return

        if await self.session.exists(record.path):
            await self._update(record)
            result.nodes_updated += 1
            return

        parent = record.parent
        if parent is not None and not await self.session.exists(parent):
            raise MissingParentError(record.path, parent)

        if record.ephemeral:
            self.logger.debug("Recreating ephemeral node as persistent", path=record.path)

        try:
            await self.session.create(record.path, record.data, self.acl_for(record))
        except NodeExistsError:
            # Created by someone else between the existence check and the create
            await self._update(record)
            result.nodes_updated += 1
            return
        except NoNodeError as e:
            raise MissingParentError(record.path, parent or ROOT_PATH) from e

        result.nodes_created += 1

    async def _update(self, record: NodeRecord) -> None:
        await self.session.set_data(record.path, record.data)
        if not self.use_existing_acl:
            await self.session.set_acls(record.path, self.acl_for(record))

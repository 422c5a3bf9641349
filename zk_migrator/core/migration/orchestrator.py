"""Sequences export and import through the intermediate artifact."""

import time
from contextlib import AsyncExitStack
from pathlib import Path

import structlog
from kazoo.client import KazooClient
from structlog.stdlib import BoundLogger

from ...models.auth import AuthMode
from ...models.endpoint import ZKEndpoint
from ...models.migration import MigrationPlan, MigrationReport
from ..codec import StreamReader, StreamWriter
from ..exceptions import MigrationError, ZKMigratorError
from ..session import ClientFactory, ZKSession, open_session
from ..settings import MigratorSettings
from .exporter import TreeExporter
from .importer import TreeImporter


class MigrationOrchestrator:
    """Runs one migration: export the source tree to the artifact, then replay it.

    Steps run strictly in sequence and any failure aborts the rest. Both sessions are
    owned by the run and closed on every exit path. The artifact is deleted before a new
    export and left in place afterwards, so a failed import can be re-run on its own.
    """

    def __init__(
        self,
        settings: MigratorSettings | None = None,
        client_factory: ClientFactory = KazooClient,
    ):
        self.settings = settings or MigratorSettings()
        self.client_factory = client_factory
        self.logger: BoundLogger = structlog.get_logger().bind(component="migration_orchestrator")

    def _open(self, endpoint: ZKEndpoint, auth: AuthMode):
        return open_session(endpoint, auth, settings=self.settings, client_factory=self.client_factory)

    async def run(self, plan: MigrationPlan) -> MigrationReport:
        """Execute ``plan``.

        Raises:
            MigrationError: On any failure, with the underlying error chained
        """
        started = time.monotonic()
        report = MigrationReport(mode=plan.mode, artifact_path=str(plan.artifact_path))
        self.logger.info(
            "ZooKeeper migration has started",
            mode=plan.mode,
            source=str(plan.source) if plan.source else None,
            destination=str(plan.destination) if plan.destination else None,
            auth_mode=plan.auth.mode,
            artifact=str(plan.artifact_path),
        )

        try:
            async with AsyncExitStack() as stack:
                # Step 1 and 2: connect every session the plan needs before touching data
                source = destination = None
                if plan.exports:
                    source = await stack.enter_async_context(self._open(plan.source, plan.auth))
                if plan.imports:
                    destination = await stack.enter_async_context(
                        self._open(plan.destination, plan.auth)
                    )

                # Step 3 and 4: fresh export
                if source is not None:
                    self.remove_artifact(plan.artifact_path)
                    await self._export(source, plan, report)

                # Step 5: replay
                if destination is not None:
                    await self._import(destination, plan, report)
        except (ZKMigratorError, OSError) as e:
            self.logger.error(
                "ZooKeeper migration failed",
                mode=plan.mode,
                error=str(e),
                error_type=type(e).__name__,
                artifact=str(plan.artifact_path),
            )
            if isinstance(e, MigrationError):
                raise
            raise MigrationError(f"unable to perform {plan.mode}: {e}") from e

        report.duration_seconds = round(time.monotonic() - started, 3)
        self.logger.info("ZooKeeper migration has finished", **report.model_dump())
        return report

    def remove_artifact(self, artifact_path: Path) -> None:
        """Delete an artifact left by a previous run.

        Raises:
            MigrationError: If the file exists but cannot be deleted
        """
        if not (artifact_path.exists() or artifact_path.is_symlink()):
            return
        try:
            artifact_path.unlink()
        except OSError as e:
            raise MigrationError(f"unable to delete file: {artifact_path}") from e
        self.logger.info("Removed previous artifact", artifact=str(artifact_path))

    async def _export(
        self, source: ZKSession, plan: MigrationPlan, report: MigrationReport
    ) -> None:
        exporter = TreeExporter(source, max_workers=self.settings.export_workers)
        with open(plan.artifact_path, "xb") as sink:
            report.nodes_exported = await exporter.export_to_stream(
                StreamWriter(sink), plan.root_path
            )
        report.nodes_missing_at_source = exporter.nodes_skipped

    async def _import(
        self, destination: ZKSession, plan: MigrationPlan, report: MigrationReport
    ) -> None:
        if not plan.artifact_path.is_file():
            raise MigrationError(f"artifact not found: {plan.artifact_path}")

        await destination.ensure_chroot()
        importer = TreeImporter(
            destination,
            ignore_source_acl=plan.ignore_source_acl,
            use_existing_acl=plan.use_existing_acl,
            skip_ephemeral=plan.skip_ephemeral,
        )
        with open(plan.artifact_path, "rb") as artifact:
            result = await importer.import_from_stream(StreamReader(artifact))

        report.nodes_created = result.nodes_created
        report.nodes_updated = result.nodes_updated
        report.nodes_skipped = result.nodes_skipped

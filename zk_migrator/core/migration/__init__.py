"""Export, import and orchestration of ZooKeeper tree migrations."""

from .exporter import NodeSnapshot, TreeExporter  # noqa: F401
from .importer import ImportResult, TreeImporter  # noqa: F401
from .orchestrator import MigrationOrchestrator  # noqa: F401

__all__ = ["ImportResult", "MigrationOrchestrator", "NodeSnapshot", "TreeExporter", "TreeImporter"]

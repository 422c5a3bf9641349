"""Migration plan and report models."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..constants import DEFAULT_ARTIFACT_NAME, MODE_EXPORT, MODE_IMPORT, MODE_MIGRATE, ROOT_PATH
from .auth import AuthMode, OpenAuth
from .endpoint import ZKEndpoint
from .node import validate_znode_path

MigrationMode = Literal["migrate", "export", "import"]


class MigrationPlan(BaseModel):
    """Everything one orchestrator run needs."""

    source: ZKEndpoint | None = None
    destination: ZKEndpoint | None = None
    auth: AuthMode = Field(default_factory=OpenAuth)
    artifact_path: Path = Path(DEFAULT_ARTIFACT_NAME)
    mode: MigrationMode = MODE_MIGRATE
    root_path: str = ROOT_PATH
    ignore_source_acl: bool = False
    use_existing_acl: bool = False
    skip_ephemeral: bool = False

    @field_validator("root_path")
    @classmethod
    def check_root_path(cls, v: str) -> str:
        return validate_znode_path(v)

    @model_validator(mode="after")
    def check_endpoints(self) -> "MigrationPlan":
        if self.mode in (MODE_MIGRATE, MODE_EXPORT) and self.source is None:
            raise ValueError(f"a source endpoint is required for {self.mode}")
        if self.mode in (MODE_MIGRATE, MODE_IMPORT) and self.destination is None:
            raise ValueError(f"a destination endpoint is required for {self.mode}")
        return self

    @property
    def exports(self) -> bool:
        return self.mode in (MODE_MIGRATE, MODE_EXPORT)

    @property
    def imports(self) -> bool:
        return self.mode in (MODE_MIGRATE, MODE_IMPORT)


class MigrationReport(BaseModel):
    """Outcome of a completed run."""

    mode: MigrationMode
    artifact_path: str
    nodes_exported: int = 0
    nodes_missing_at_source: int = 0
    nodes_created: int = 0
    nodes_updated: int = 0
    nodes_skipped: int = 0
    duration_seconds: float = 0.0

    @property
    def nodes_written(self) -> int:
        return self.nodes_created + self.nodes_updated

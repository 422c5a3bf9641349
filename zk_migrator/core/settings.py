"""Runtime settings for ZooKeeper migrations.

Provides centralized timeout, concurrency and artifact configuration using Pydantic
BaseSettings with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import DEFAULT_ARTIFACT_NAME


class MigratorSettings(BaseSettings):
    """Migration tool configuration."""

    connect_timeout: float = Field(
        15.0, gt=0, alias="ZK_CONNECT_TIMEOUT", description="Seconds to wait for a session to connect"
    )

    session_timeout: float = Field(
        30.0, gt=0, alias="ZK_SESSION_TIMEOUT", description="ZooKeeper session timeout in seconds"
    )

    export_workers: int = Field(
        8, ge=1, le=64, alias="ZK_EXPORT_WORKERS", description="Concurrent sibling reads during export"
    )

    artifact_path: str = Field(
        DEFAULT_ARTIFACT_NAME,
        alias="ZK_MIGRATOR_ARTIFACT",
        description="Intermediate file holding the exported node stream",
    )

    source: str | None = Field(None, alias="ZK_SRC", description="Default source endpoint")

    destination: str | None = Field(
        None, alias="ZK_DST", description="Default destination endpoint"
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    log_dir: str | None = Field(None, alias="LOG_DIR", description="Enables file logging when set")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

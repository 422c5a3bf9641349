"""Endpoint model for a ZooKeeper ensemble."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import ROOT_PATH
from .node import join_path, validate_znode_path


class ZKEndpoint(BaseModel):
    """Ensemble hosts plus the chroot path that scopes every operation."""

    model_config = ConfigDict(frozen=True)

    hosts: list[str] = Field(min_length=1)
    chroot_path: str = ROOT_PATH

    @field_validator("chroot_path")
    @classmethod
    def check_chroot(cls, v: str) -> str:
        return validate_znode_path(v)

    @property
    def connect_string(self) -> str:
        return ",".join(self.hosts)

    def absolute(self, path: str) -> str:
        """Map a logical path under the chroot to its path on the ensemble."""
        if self.chroot_path == ROOT_PATH:
            return path
        if path == ROOT_PATH:
            return self.chroot_path
        return join_path(self.chroot_path, path[1:])

    def __str__(self) -> str:
        if self.chroot_path == ROOT_PATH:
            return self.connect_string
        return f"{self.connect_string}{self.chroot_path}"

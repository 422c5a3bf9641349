"""Data models for the ZooKeeper migrator."""

from .auth import AuthMode, DigestAuth, OpenAuth, SaslAuth  # noqa: F401
from .endpoint import ZKEndpoint  # noqa: F401
from .migration import MigrationPlan, MigrationReport  # noqa: F401
from .node import AclEntry, NodeRecord, StreamHeader  # noqa: F401

__all__ = [
    # Node models
    "AclEntry",
    "NodeRecord",
    "StreamHeader",
    # Connection models
    "AuthMode",
    "DigestAuth",
    "OpenAuth",
    "SaslAuth",
    "ZKEndpoint",
    # Migration models
    "MigrationPlan",
    "MigrationReport",
]

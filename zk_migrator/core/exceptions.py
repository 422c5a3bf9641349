"""Core exceptions for ZooKeeper migration operations."""


class ZKMigratorError(Exception):
    """Base exception for ZooKeeper migration operations."""


class ConfigurationError(ZKMigratorError):
    """Command line or endpoint configuration is invalid."""


class ZKConnectionError(ZKMigratorError):
    """Endpoint unreachable, session lost, or authentication rejected at connect."""


class ZKPermissionError(ZKMigratorError):
    """Cluster rejected an operation or ACL for lack of rights."""


class ExportError(ZKMigratorError):
    """Source tree could not be exported."""


class MalformedRecordError(ZKMigratorError):
    """Serialized node stream violates the record framing."""

    def __init__(self, message: str, line_number: int | None = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class MissingParentError(ZKMigratorError):
    """A node record arrived before its parent exists at the destination."""

    def __init__(self, path: str, parent: str):
        super().__init__(f"parent {parent} of {path} does not exist at destination")
        self.path = path
        self.parent = parent


class MigrationError(ZKMigratorError):
    """Migration aborted; the underlying failure is chained as ``__cause__``."""

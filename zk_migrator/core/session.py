"""Authenticated ZooKeeper sessions scoped to an endpoint's chroot."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
from kazoo.client import KazooClient
from kazoo.exceptions import (
    AuthFailedError,
    ConnectionClosedError,
    ConnectionLoss,
    InvalidACLError,
    KazooException,
    NoAuthError,
    NodeExistsError,
    NoNodeError,
    SessionExpiredError,
)
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.security import ACL, Id

from ..constants import ROOT_PATH
from ..models.auth import AuthMode, DigestAuth, SaslAuth
from ..models.endpoint import ZKEndpoint
from ..models.node import AclEntry
from .exceptions import ZKConnectionError, ZKMigratorError, ZKPermissionError
from .settings import MigratorSettings

logger = structlog.get_logger()

ClientFactory = Callable[..., Any]

_CONNECTION_ERRORS = (ConnectionLoss, SessionExpiredError, ConnectionClosedError, KazooTimeoutError)
_PERMISSION_ERRORS = (NoAuthError, InvalidACLError, AuthFailedError)


def to_kazoo_acl(acl: list[AclEntry]) -> list[ACL]:
    return [ACL(entry.perms, Id(entry.scheme, entry.id)) for entry in acl]


def from_kazoo_acl(acl: list[ACL]) -> list[AclEntry]:
    return [AclEntry(scheme=item.id.scheme, id=item.id.id, perms=item.perms) for item in acl]


class ZKSession:
    """One authenticated client connection to an ensemble.

    Callers use logical paths relative to the endpoint's chroot. Blocking client calls
    run in worker threads, and client errors are translated into the migrator's
    exception types except ``NoNodeError`` and ``NodeExistsError``, which callers
    handle as tree-state signals.
    """

    def __init__(
        self,
        endpoint: ZKEndpoint,
        auth: AuthMode,
        connect_timeout: float = 15.0,
        session_timeout: float = 30.0,
        client_factory: ClientFactory = KazooClient,
    ):
        self.endpoint = endpoint
        self.auth = auth
        self.connect_timeout = connect_timeout
        self.session_timeout = session_timeout
        self.logger = logger.bind(component="zk_session", endpoint=str(endpoint))

        client_kwargs: dict[str, Any] = {
            "hosts": endpoint.connect_string,
            "timeout": session_timeout,
        }
        if isinstance(auth, SaslAuth):
            sasl_options = {"mechanism": auth.mechanism, "service": auth.service}
            if auth.principal:
                sasl_options["principal"] = auth.principal
            client_kwargs["sasl_options"] = sasl_options

        self.client = client_factory(**client_kwargs)
        self.connected = False

    @property
    def default_acl(self) -> list[AclEntry]:
        """ACL applied to nodes when the source ACL is ignored."""
        return self.auth.default_acl()

    async def connect(self) -> None:
        """Start the session and register credentials.

        Raises:
            ZKConnectionError: If the ensemble is unreachable within the connect timeout
                or rejects the credentials
        """
        self.logger.info(
            "Connecting to ZooKeeper",
            auth_mode=self.auth.mode,
            username=self.auth.username if isinstance(self.auth, DigestAuth) else None,
        )
        try:
            await asyncio.to_thread(self.client.start, timeout=self.connect_timeout)
            if isinstance(self.auth, DigestAuth):
                await asyncio.to_thread(
                    self.client.add_auth, "digest", self.auth.credential.decode("utf-8")
                )
        except KazooTimeoutError as e:
            raise ZKConnectionError(
                f"Timed out connecting to {self.endpoint} after {self.connect_timeout}s"
            ) from e
        except AuthFailedError as e:
            raise ZKConnectionError(f"Authentication rejected by {self.endpoint}") from e
        except KazooException as e:
            raise ZKConnectionError(f"Failed to connect to {self.endpoint}: {e}") from e

        self.connected = True
        self.logger.info("Connected to ZooKeeper")

    async def close(self) -> None:
        """Stop and close the client; safe to call on a session that never connected."""
        try:
            await asyncio.to_thread(self.client.stop)
            await asyncio.to_thread(self.client.close)
        except KazooException as e:
            self.logger.warning("Error while closing ZooKeeper session", error=str(e))
        finally:
            if self.connected:
                self.logger.info("Closed ZooKeeper session")
            self.connected = False

    async def _call(self, operation: str, path: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(func, self.endpoint.absolute(path), *args, **kwargs)
        except (NoNodeError, NodeExistsError):
            raise
        except _CONNECTION_ERRORS as e:
            raise ZKConnectionError(
                f"Lost connection to {self.endpoint} during {operation} {path}: {type(e).__name__}"
            ) from e
        except _PERMISSION_ERRORS as e:
            raise ZKPermissionError(
                f"{operation} {path} rejected by {self.endpoint}: {type(e).__name__}"
            ) from e
        except KazooException as e:
            raise ZKMigratorError(f"{operation} {path} failed on {self.endpoint}: {e!r}") from e

    async def get(self, path: str) -> tuple[bytes, Any]:
        """Return a node's data (empty bytes for null data) and its stat."""
        data, stat = await self._call("get", path, self.client.get)
        return data or b"", stat

    async def get_acls(self, path: str) -> list[AclEntry]:
        acls, _ = await self._call("get_acls", path, self.client.get_acls)
        return from_kazoo_acl(acls)

    async def get_children(self, path: str) -> list[str]:
        return list(await self._call("get_children", path, self.client.get_children))

    async def exists(self, path: str) -> bool:
        return await self._call("exists", path, self.client.exists) is not None

    async def create(self, path: str, data: bytes, acl: list[AclEntry]) -> None:
        """Create a persistent node; the parent must already exist."""
        await self._call("create", path, self.client.create, data, acl=to_kazoo_acl(acl))

    async def set_data(self, path: str, data: bytes) -> None:
        await self._call("set", path, self.client.set, data)

    async def set_acls(self, path: str, acl: list[AclEntry]) -> None:
        await self._call("set_acls", path, self.client.set_acls, to_kazoo_acl(acl))

    async def ensure_path(self, path: str) -> None:
        """Create ``path`` and any missing ancestors with the default ACL.

        Nodes that already exist are left untouched.
        """
        await self._call(
            "ensure_path", path, self.client.ensure_path, acl=to_kazoo_acl(self.default_acl)
        )

    async def ensure_chroot(self) -> None:
        """Create the chroot path (and its ancestors) if it does not exist yet."""
        if self.endpoint.chroot_path == ROOT_PATH:
            return
        await self.ensure_path(ROOT_PATH)
        self.logger.debug("Ensured chroot path exists", chroot=self.endpoint.chroot_path)


@asynccontextmanager
async def open_session(
    endpoint: ZKEndpoint,
    auth: AuthMode,
    settings: MigratorSettings | None = None,
    client_factory: ClientFactory = KazooClient,
) -> AsyncGenerator[ZKSession, None]:
    """Connect a session for the duration of the block; always released on exit."""
    settings = settings or MigratorSettings()
    session = ZKSession(
        endpoint,
        auth,
        connect_timeout=settings.connect_timeout,
        session_timeout=settings.session_timeout,
        client_factory=client_factory,
    )
    try:
        await session.connect()
        yield session
    finally:
        await session.close()

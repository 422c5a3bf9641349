"""Tests for ZKSession and open_session."""

import pytest
from kazoo.exceptions import (
    AuthFailedError,
    BadVersionError,
    ConnectionLoss,
    NoAuthError,
    NoNodeError,
    SessionExpiredError,
)
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.security import ACL, Id

from tests.zk_fakes import FakeZooKeeper, connect, digest_acl, factory_for
from zk_migrator.core.endpoint import parse_endpoint
from zk_migrator.core.exceptions import ZKConnectionError, ZKMigratorError, ZKPermissionError
from zk_migrator.core.session import ZKSession, from_kazoo_acl, open_session, to_kazoo_acl
from zk_migrator.core.settings import MigratorSettings
from zk_migrator.models.auth import DigestAuth, OpenAuth, SaslAuth
from zk_migrator.models.node import AclEntry


class TestConnect:
    """Test session establishment."""

    @pytest.mark.asyncio
    async def test_open_session_connects_and_closes(self):
        """Test the client is started inside the block and released after."""
        zk = FakeZooKeeper(hosts="zk1:2181")
        settings = MigratorSettings(connect_timeout=5, session_timeout=12, _env_file=None)

        async with open_session(
            parse_endpoint("zk1"), OpenAuth(), settings, client_factory=factory_for(zk)
        ) as session:
            assert zk.started
            assert session.connected

        assert zk.stopped
        assert zk.closed
        assert zk.kwargs["timeout"] == 12

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test an unreachable ensemble raises a connection error."""
        zk = FakeZooKeeper(hosts="zk1:2181")
        zk.start_error = KazooTimeoutError("timed out")

        with pytest.raises(ZKConnectionError, match="Timed out connecting to zk1:2181"):
            await connect(zk)

    @pytest.mark.asyncio
    async def test_session_released_when_connect_fails(self):
        """Test a failed connect still stops and closes the client."""
        zk = FakeZooKeeper(hosts="zk1:2181")
        zk.start_error = KazooTimeoutError("timed out")

        with pytest.raises(ZKConnectionError):
            async with open_session(
                parse_endpoint("zk1"), OpenAuth(), client_factory=factory_for(zk)
            ):
                pytest.fail("block should not run")

        assert zk.closed

    @pytest.mark.asyncio
    async def test_digest_credentials_registered(self):
        """Test digest credentials are added to the session after start."""
        zk = FakeZooKeeper(hosts="zk1:2181")

        await connect(zk, auth=DigestAuth(credential=b"alice:s3cr:et"))

        assert zk.auth == [("digest", "alice:s3cr:et")]

    @pytest.mark.asyncio
    async def test_rejected_credentials(self):
        """Test an authentication failure at connect is a connection error."""
        zk = FakeZooKeeper(hosts="zk1:2181")
        zk.fail_on[("add_auth", "digest")] = AuthFailedError()

        with pytest.raises(ZKConnectionError, match="Authentication rejected"):
            await connect(zk, auth=DigestAuth(credential=b"alice:wrong"))

    def test_sasl_options(self):
        """Test Kerberos settings are handed to the client."""
        zk = FakeZooKeeper(hosts="zk1:2181")

        ZKSession(
            parse_endpoint("zk1"),
            SaslAuth(jaas_config="/etc/jaas.conf", principal="zkcli@EXAMPLE.COM"),
            client_factory=factory_for(zk),
        )

        assert zk.kwargs["sasl_options"] == {
            "mechanism": "GSSAPI",
            "service": "zookeeper",
            "principal": "zkcli@EXAMPLE.COM",
        }

    def test_open_auth_has_no_sasl_options(self):
        """Test unauthenticated sessions pass no SASL settings."""
        zk = FakeZooKeeper(hosts="zk1:2181")

        ZKSession(parse_endpoint("zk1"), OpenAuth(), client_factory=factory_for(zk))

        assert "sasl_options" not in zk.kwargs
        assert zk.kwargs["hosts"] == "zk1:2181"


class TestOperations:
    """Test path mapping and error translation."""

    @pytest.mark.asyncio
    async def test_chroot_maps_logical_paths(self, source_zk):
        """Test logical paths resolve under the endpoint's chroot."""
        session = await connect(source_zk, "src:2181/app")

        data, _ = await session.get("/config")
        root, _ = await session.get("/")

        assert data == b'{"threads": 4}'
        assert root == b"root-config"
        assert ("get", "/app/config") in source_zk.calls

    @pytest.mark.asyncio
    async def test_null_data_reads_as_empty(self, source_zk, source_session):
        """Test a node without data reads as empty bytes."""
        source_zk.nodes["/app"].data = None

        data, _ = await source_session.get("/app")

        assert data == b""

    @pytest.mark.asyncio
    async def test_exists(self, source_session):
        assert await source_session.exists("/app")
        assert not await source_session.exists("/nope")

    @pytest.mark.asyncio
    async def test_no_node_passes_through(self, source_session):
        """Test a missing node is reported as kazoo's NoNodeError."""
        with pytest.raises(NoNodeError):
            await source_session.get("/nope")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConnectionLoss(), ZKConnectionError),
            (SessionExpiredError(), ZKConnectionError),
            (NoAuthError(), ZKPermissionError),
            (BadVersionError(), ZKMigratorError),
        ],
    )
    async def test_error_translation(self, source_zk, source_session, error, expected):
        """Test client errors map onto the migrator's exception types."""
        source_zk.fail_on[("get", "/app")] = error

        with pytest.raises(expected) as exc_info:
            await source_session.get("/app")

        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_create_and_set(self, destination_zk, destination_session):
        """Test writes pass data and converted ACLs to the client."""
        acl = [AclEntry(scheme="digest", id="alice:hash", perms=3)]

        await destination_session.create("/app", b"v1", acl)
        await destination_session.set_data("/app", b"v2")
        await destination_session.set_acls("/app", [AclEntry(scheme="world", id="anyone", perms=1)])

        assert destination_zk.nodes["/app"].data == b"v2"
        assert destination_zk.nodes["/app"].acl == [ACL(1, Id("world", "anyone"))]

    @pytest.mark.asyncio
    async def test_ensure_chroot(self, destination_zk):
        """Test the chroot and its ancestors are created with the default ACL."""
        session = await connect(destination_zk, "dst:2181/a/b")

        await session.ensure_chroot()

        assert "/a" in destination_zk.nodes
        assert destination_zk.nodes["/a/b"].acl == [ACL(31, Id("world", "anyone"))]

    @pytest.mark.asyncio
    async def test_ensure_path_under_chroot(self, destination_zk):
        """Test missing ancestors are created below the chroot and existing nodes kept."""
        destination_zk.add("/kafka/a", b"keep", acl=[digest_acl("bob")])
        session = await connect(destination_zk, "dst:2181/kafka")

        await session.ensure_path("/a/b/c")

        assert destination_zk.nodes["/kafka/a"].data == b"keep"
        assert destination_zk.nodes["/kafka/a"].acl == [digest_acl("bob")]
        assert destination_zk.nodes["/kafka/a/b/c"].acl == [ACL(31, Id("world", "anyone"))]

    @pytest.mark.asyncio
    async def test_ensure_chroot_noop_at_root(self, destination_zk, destination_session):
        await destination_session.ensure_chroot()

        assert not any(op == "ensure_path" for op, _ in destination_zk.calls)

    @pytest.mark.asyncio
    async def test_ensure_chroot_permission_denied(self, destination_zk):
        destination_zk.fail_on[("ensure_path", "/locked")] = NoAuthError()
        session = await connect(destination_zk, "dst:2181/locked")

        with pytest.raises(ZKPermissionError):
            await session.ensure_chroot()


class TestAclConversion:
    """Test conversion between kazoo ACLs and AclEntry."""

    def test_conversion(self):
        kazoo_acl = [ACL(31, Id("world", "anyone")), ACL(1, Id("sasl", "zk@EXAMPLE.COM"))]

        entries = from_kazoo_acl(kazoo_acl)

        assert entries[1] == AclEntry(scheme="sasl", id="zk@EXAMPLE.COM", perms=1)
        assert to_kazoo_acl(entries) == kazoo_acl

"""Shared pytest fixtures for zk-migrator tests."""

from collections.abc import AsyncGenerator

import pytest
from kazoo.security import ACL, Id

from tests.zk_fakes import FakeZooKeeper, connect, digest_acl
from zk_migrator.core.session import ZKSession


@pytest.fixture
def source_zk() -> FakeZooKeeper:
    """Source ensemble holding a small application tree."""
    zk = FakeZooKeeper(hosts="src:2181")
    zk.add("/app", b"root-config")
    zk.add("/app/config", b'{"threads": 4}', acl=[digest_acl(), ACL(1, Id("world", "anyone"))])
    zk.add("/app/config/db", bytes(range(256)))
    zk.add("/app/locks", b"")
    zk.add("/app/locks/lock-0001", b"owner", ephemeral=True)
    zk.add("/app/workers", b"")
    zk.add("/app/workers/b", b"worker-b")
    zk.add("/app/workers/a", b"worker-a")
    zk.add("/zookeeper", b"")
    return zk


@pytest.fixture
def destination_zk() -> FakeZooKeeper:
    """Empty destination ensemble."""
    return FakeZooKeeper(hosts="dst:2181")


@pytest.fixture
async def source_session(source_zk: FakeZooKeeper) -> AsyncGenerator[ZKSession, None]:
    session = await connect(source_zk)
    yield session
    await session.close()


@pytest.fixture
async def destination_session(destination_zk: FakeZooKeeper) -> AsyncGenerator[ZKSession, None]:
    session = await connect(destination_zk)
    yield session
    await session.close()

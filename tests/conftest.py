"""Shared fixtures."""

import httpx
import pytest

from portal.api_client import PortalAPIClient
from portal.config import Settings
from portal.services.notifications import NotificationCenter
from portal.services.realtime import ChannelManager
from portal.storage import ClientStorage

from .fakes import API_BASE, SOCKET_URL, FakeBackend, SocketFactory, make_identity


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_base_url=API_BASE,
        socket_url=SOCKET_URL,
        storage_path=str(tmp_path / "storage.json"),
        typing_idle_seconds=0.05,
    )


@pytest.fixture
def storage(tmp_path) -> ClientStorage:
    return ClientStorage(str(tmp_path / "storage.json"))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def api(backend):
    client = PortalAPIClient(API_BASE, token_provider=lambda: "tok-1", transport=httpx.MockTransport(backend.handle))
    yield client
    await client.aclose()


@pytest.fixture
def socket_factory() -> SocketFactory:
    return SocketFactory()


@pytest.fixture
def notifications(storage) -> NotificationCenter:
    return NotificationCenter(storage)


@pytest.fixture
async def channel(socket_factory):
    manager = ChannelManager(SOCKET_URL, client_factory=socket_factory)
    yield manager
    await manager.close()


@pytest.fixture
async def connected_channel(channel):
    channel.on_session_changed(make_identity("patient"), "tok-1")
    await channel.settle()
    assert channel.connected
    return channel


@pytest.fixture
async def idle_channel(socket_factory):
    """A channel manager that never had a session."""
    manager = ChannelManager(SOCKET_URL, client_factory=socket_factory)
    yield manager
    await manager.close()

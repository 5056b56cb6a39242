import pytest
from fakes import FakeTransport

from aria2ws import ClientConfig, WebSocketClient


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
async def client(transport: FakeTransport):
    """WebSocket client on a fake transport, already open."""
    aria2 = WebSocketClient(ClientConfig(), transport=transport)
    await aria2.connect()
    yield aria2
    await aria2.close()


@pytest.fixture
async def secret_client(transport: FakeTransport):
    """Open WebSocket client configured with secret ``s3cr3t``."""
    aria2 = WebSocketClient(ClientConfig(secret="s3cr3t"), transport=transport)
    await aria2.connect()
    yield aria2
    await aria2.close()

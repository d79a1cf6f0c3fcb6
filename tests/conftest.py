import asyncio
import socket
from types import SimpleNamespace

import pytest

from config import DEFAULTS
from peer.channel import ConnectionLifecycle
from peer.registry import PeerRegistry
from protocol.handler import ProtocolEngine


class FakeChannel:
    """Stands in for RpcChannel; the test decides how each call ends."""

    def __init__(self, endpoint):
        self.endpoint = endpoint
        self.calls = []         # [(method, params, future)]
        self.closed = False
        self.fail_with = None

    def call(self, method, params):
        if self.fail_with is not None:
            raise self.fail_with
        future = asyncio.get_running_loop().create_future()
        self.calls.append((method, params, future))
        return future

    def close(self):
        self.closed = True


@pytest.fixture
def make_config():
    """Return a factory for node configs bound to the loopback interface."""

    def _make(**overrides):
        config = dict(DEFAULTS)
        config.update(handle="tester", fingerprint=1, listen_host="127.0.0.1")
        config.update(overrides)
        return config

    return _make


@pytest.fixture
def local():
    return SimpleNamespace(handle="me", fingerprint=7, address="127.0.0.1:5000")


@pytest.fixture
def delivered():
    return []


@pytest.fixture
def engine(local, delivered):
    """ProtocolEngine wired to a real registry and fake channels."""
    registry = PeerRegistry()
    connections = ConnectionLifecycle(registry, channel_factory=FakeChannel)
    return ProtocolEngine(
        registry, connections, local,
        on_message=lambda handle, fingerprint, text: delivered.append((handle, fingerprint, text)),
    )


async def settle():
    """Let done-callbacks scheduled on the loop run."""
    for _ in range(3):
        await asyncio.sleep(0)


def free_port():
    """A loopback port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]

import socket
from types import SimpleNamespace

from peer.broadcast import SERVICE_TYPE, Broadcast
from peer.discovery import DiscoveryListener

NAME = f"p2pchat-2-4000.{SERVICE_TYPE}"


class FakeZeroconf:
    def __init__(self, info):
        self.info = info

    def get_service_info(self, type, name):
        return self.info


def announced(handle=b"bob", fingerprint=b"2"):
    return SimpleNamespace(
        addresses=[socket.inet_aton("10.0.0.2")],
        port=4000,
        properties={b"handle": handle, b"fingerprint": fingerprint},
    )


def test_listener_records_announced_nodes():
    listener = DiscoveryListener()
    listener.add_service(FakeZeroconf(announced()), SERVICE_TYPE, NAME)
    assert listener.snapshot() == [("bob", 2, "10.0.0.2:4000")]

    listener.update_service(FakeZeroconf(announced(handle=b"robert")), SERVICE_TYPE, NAME)
    assert listener.snapshot() == [("robert", 2, "10.0.0.2:4000")]

    listener.remove_service(None, SERVICE_TYPE, NAME)
    assert listener.snapshot() == []


def test_listener_tolerates_sparse_records():
    listener = DiscoveryListener()
    listener.add_service(FakeZeroconf(None), SERVICE_TYPE, NAME)
    listener.add_service(FakeZeroconf(announced(handle=None, fingerprint=b"x")), SERVICE_TYPE, NAME)
    assert listener.snapshot() == [("", 0, "10.0.0.2:4000")]


def test_broadcast_service_info():
    broadcast = Broadcast("alice", 1, "10.0.0.1", 4000)
    info = broadcast._build_info()
    assert info.name == f"p2pchat-1-4000.{SERVICE_TYPE}"
    assert info.port == 4000
    assert info.properties[b"handle"] == b"alice"
    assert info.properties[b"fingerprint"] == b"1"


def test_update_handle_before_start_only_records_it():
    broadcast = Broadcast("alice", 1, "10.0.0.1", 4000)
    broadcast.update_handle("al")
    assert broadcast.handle == "al"
    broadcast.stop_service()

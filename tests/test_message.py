import pytest

from protocol.errors import DecodeFailure
from protocol.message import ConnectReply, ConnectRequest, HandleChangeRequest, MessageRequest


def test_connect_request_from_dict():
    request = ConnectRequest.from_dict({"fingerprint": 12, "handle": "alice", "address": "10.0.0.1:4000"})
    assert request == ConnectRequest(12, "alice", "10.0.0.1:4000")
    assert request.to_dict() == {"fingerprint": 12, "handle": "alice", "address": "10.0.0.1:4000"}


def test_connect_reply_ignores_extra_fields():
    reply = ConnectReply.from_dict({"fingerprint": 2, "handle": "bob", "extra": True})
    assert reply == ConnectReply(2, "bob")


@pytest.mark.parametrize("payload", [
    {"handle": "alice", "address": "10.0.0.1:4000"},
    {"fingerprint": 12, "address": "10.0.0.1:4000"},
    {"fingerprint": 12, "handle": "alice"},
    {"fingerprint": "12", "handle": "alice", "address": "10.0.0.1:4000"},
    {"fingerprint": True, "handle": "alice", "address": "10.0.0.1:4000"},
    {"fingerprint": 70000, "handle": "alice", "address": "10.0.0.1:4000"},
    {"fingerprint": -1, "handle": "alice", "address": "10.0.0.1:4000"},
    {"fingerprint": 12, "handle": None, "address": "10.0.0.1:4000"},
    [],
    None,
])
def test_connect_request_rejects(payload):
    with pytest.raises(DecodeFailure):
        ConnectRequest.from_dict(payload)


def test_message_request():
    assert MessageRequest.from_dict({"message": "hi there", "fingerprint": 3}) == MessageRequest("hi there", 3)
    with pytest.raises(DecodeFailure):
        MessageRequest.from_dict({"message": "hi"})
    with pytest.raises(DecodeFailure):
        MessageRequest.from_dict({"message": 5, "fingerprint": 3})


def test_handle_change_request():
    assert HandleChangeRequest.from_dict({"handle": "al", "fingerprint": 3}).to_dict() == {"handle": "al", "fingerprint": 3}
    with pytest.raises(DecodeFailure):
        HandleChangeRequest.from_dict({"fingerprint": 3})

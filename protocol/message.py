"""RPC payload structures for the Connect, Message and HandleChange calls."""

from dataclasses import asdict, dataclass

from protocol.errors import DecodeFailure

CONNECT = "Connect"
MESSAGE = "Message"
HANDLE_CHANGE = "HandleChange"

MAX_FINGERPRINT = 0xFFFF


def _get_str(payload, field):
    value = payload.get(field) if isinstance(payload, dict) else None
    if not isinstance(value, str):
        raise DecodeFailure(f"Missing or invalid string field '{field}'")
    return value


def _get_fingerprint(payload, field="fingerprint"):
    value = payload.get(field) if isinstance(payload, dict) else None
    # bool is an int subclass, keep it out
    if not isinstance(value, int) or isinstance(value, bool):
        raise DecodeFailure(f"Missing or invalid integer field '{field}'")
    if not 0 <= value <= MAX_FINGERPRINT:
        raise DecodeFailure(f"Field '{field}' out of range: {value}")
    return value


class Payload:
    def to_dict(self):
        return asdict(self)


@dataclass
class ConnectRequest(Payload):
    fingerprint: int
    handle: str
    address: str

    @classmethod
    def from_dict(cls, payload):
        return cls(
            fingerprint=_get_fingerprint(payload),
            handle=_get_str(payload, "handle"),
            address=_get_str(payload, "address"),
        )


@dataclass
class ConnectReply(Payload):
    fingerprint: int
    handle: str

    @classmethod
    def from_dict(cls, payload):
        return cls(
            fingerprint=_get_fingerprint(payload),
            handle=_get_str(payload, "handle"),
        )


@dataclass
class MessageRequest(Payload):
    message: str
    fingerprint: int

    @classmethod
    def from_dict(cls, payload):
        return cls(
            message=_get_str(payload, "message"),
            fingerprint=_get_fingerprint(payload),
        )


@dataclass
class HandleChangeRequest(Payload):
    handle: str
    fingerprint: int

    @classmethod
    def from_dict(cls, payload):
        return cls(
            handle=_get_str(payload, "handle"),
            fingerprint=_get_fingerprint(payload),
        )

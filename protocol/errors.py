"""Exceptions raised by the chat node."""


class P2PError(Exception):
    """Base class for every error the node reports."""


class InvalidAddress(P2PError, ValueError):
    """Endpoint text is not a valid ``ip:port`` pair."""


class InvalidTarget(P2PError, ValueError):
    """Message target is not of the form ``handle#fingerprint``."""


class DecodeFailure(P2PError):
    """A required RPC field is missing or has the wrong type."""


class NotFound(P2PError, LookupError):
    """No tracked peer matches the requested fingerprint/handle."""


class RpcError(P2PError):
    """An RPC already in flight failed on the transport or remote side."""


class UnknownMethod(P2PError):
    """Inbound frame names an RPC this node does not serve."""

from collections import namedtuple
from functools import partial

from peer.address import format_endpoint, parse_endpoint, parse_target
from protocol.errors import DecodeFailure, InvalidAddress, NotFound, P2PError, RpcError, UnknownMethod
from protocol.message import (
    CONNECT, HANDLE_CHANGE, MESSAGE,
    ConnectReply, ConnectRequest, HandleChangeRequest, MessageRequest,
)
from utils.helpers import get_logger

logger = get_logger(__name__)

TrackResult = namedtuple("TrackResult", ["peer_id", "handshake"])


class ProtocolEngine:
    """
    Server and client side of the Connect, Message and HandleChange RPCs.

    ``local`` is any object exposing the node's own ``handle``,
    ``fingerprint`` and reachable ``address``. ``on_message`` is called
    as ``on_message(handle, fingerprint, text)`` for every chat line
    received; ``handle`` is None when the sender is not known.
    """

    def __init__(self, registry, connections, local, on_message):
        self.registry = registry
        self.connections = connections
        self.local = local
        self.on_message = on_message
        self._handlers = {
            CONNECT: self.handle_connect,
            MESSAGE: self.handle_message,
            HANDLE_CHANGE: self.handle_handle_change,
        }

    # ------------------------------------------------------------------
    # Tracking

    def track(self, handle, fingerprint, address, do_connect=False):
        """
        Register the peer at ``address`` and give it a fresh channel.

        Without ``do_connect`` the record takes ``handle``/``fingerprint``
        as its identity. With it, they are the local identity sent in a
        Connect handshake, and the record is identified once the reply
        arrives.
        """
        endpoint = parse_endpoint(address)
        peer_id = self.registry.find_or_create(endpoint)
        if not do_connect:
            self.registry.set_identity(peer_id, handle, fingerprint)
        self.connections.ensure_channel(peer_id)

        handshake = None
        if do_connect:
            handshake = self.connect(peer_id, handle, fingerprint)
        return TrackResult(peer_id, handshake)

    # ------------------------------------------------------------------
    # Inbound

    def dispatch(self, method, params):
        handler = self._handlers.get(method) if isinstance(method, str) else None
        if handler is None:
            raise UnknownMethod(f"Unknown request: {method!r}")
        return handler(params)

    def handle_connect(self, params):
        reply = {}
        try:
            request = ConnectRequest.from_dict(params)
            self.track(request.handle, request.fingerprint, request.address)
        except (DecodeFailure, InvalidAddress) as e:
            logger.error(f"Could not add peer connection: {e}")
            return reply

        logger.info(f"New connection, remote peer {request.handle}#{request.fingerprint} from {request.address}")
        reply.update(ConnectReply(self.local.fingerprint, self.local.handle).to_dict())
        return reply

    def handle_message(self, params):
        try:
            request = MessageRequest.from_dict(params)
        except DecodeFailure as e:
            logger.error(f"Dropping malformed message: {e}")
            return {}

        handle = self.registry.lookup_handle(request.fingerprint)
        logger.info(f"{handle}#{request.fingerprint} says: {request.message}")
        self.on_message(handle, request.fingerprint, request.message)
        return {}

    def handle_handle_change(self, params):
        try:
            request = HandleChangeRequest.from_dict(params)
        except DecodeFailure as e:
            logger.error(f"Dropping malformed handle change: {e}")
            return {}

        current = self.registry.lookup_handle(request.fingerprint)
        logger.info(f"Peer with fingerprint {request.fingerprint} changing handle from {current} to {request.handle}")
        try:
            self.registry.set_handle_by_fingerprint(request.fingerprint, request.handle)
        except NotFound:
            logger.error(f"Could not find peer with this fingerprint! {request.fingerprint}")
        return {}

    # ------------------------------------------------------------------
    # Outbound

    def connect(self, peer_id, handle, fingerprint):
        request = ConnectRequest(fingerprint, handle, self.local.address)
        channel = self.connections.channel_for(peer_id)
        future = channel.call(CONNECT, request.to_dict())
        future.add_done_callback(partial(self._on_connect_reply, peer_id))
        return future

    def _on_connect_reply(self, peer_id, future):
        record = self.registry.get(peer_id)
        try:
            reply = ConnectReply.from_dict(future.result())
        except RpcError as e:
            logger.error(f"Failed to connect to {format_endpoint(record.address)}: {e}")
            return
        except DecodeFailure as e:
            logger.error(f"Bad handshake reply from {format_endpoint(record.address)}: {e}")
            return

        self.registry.set_identity(peer_id, reply.handle, reply.fingerprint)
        logger.info(f"Connected to peer {reply.handle}#{reply.fingerprint}")

    def send_message(self, local_fingerprint, target, text, on_ack=None):
        """
        Send ``text`` to the peer named by ``target`` (``handle#fingerprint``).

        Raises NotFound when no identified peer matches. ``on_ack`` runs
        once the peer has acknowledged delivery; it is not called if the
        RPC fails.
        """
        handle, fingerprint = parse_target(target)
        logger.debug(f"Parsed peer {handle}#{fingerprint}")
        try:
            peer_id = self.registry.find_by_fingerprint(fingerprint, handle_prefix=handle)
        except NotFound:
            logger.error("Unable to find peer to send message, maybe they've never connected?")
            raise

        record = self.registry.get(peer_id)
        logger.debug(f"Found peer {record.handle}#{record.fingerprint}")
        request = MessageRequest(text, local_fingerprint)
        future = self.connections.channel_for(peer_id).call(MESSAGE, request.to_dict())
        future.add_done_callback(partial(self._on_message_reply, peer_id, on_ack))
        return future

    def _on_message_reply(self, peer_id, on_ack, future):
        try:
            future.result()
        except RpcError as e:
            record = self.registry.get(peer_id)
            logger.error(f"Failed to send message to {record.handle}#{record.fingerprint}: {e}")
            return
        logger.debug("Calling message ack callback")
        if on_ack is not None:
            on_ack()

    def broadcast_handle_change(self, handle, fingerprint):
        """Tell every tracked peer about a new local handle; returns the futures."""
        request = HandleChangeRequest(handle, fingerprint).to_dict()
        futures = []
        for peer_id in self.registry.all():
            record = self.registry.get(peer_id)
            try:
                future = self.connections.channel_for(peer_id).call(HANDLE_CHANGE, request)
            except (P2PError, OSError) as e:
                logger.error(f"Unable to notify {record.handle or format_endpoint(record.address)}: {e}")
                continue
            future.add_done_callback(partial(self._on_handle_change_reply, peer_id))
            futures.append(future)
        return futures

    def _on_handle_change_reply(self, peer_id, future):
        try:
            future.result()
        except RpcError as e:
            record = self.registry.get(peer_id)
            logger.error(f"Unable to notify {record.handle or format_endpoint(record.address)}: {e}")

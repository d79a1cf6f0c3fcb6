import asyncio
import socket

import zeroconf

from peer.address import Endpoint, format_endpoint
from peer.broadcast import Broadcast
from peer.channel import ConnectionLifecycle
from peer.discovery import Discovery
from peer.listener import RpcListener
from peer.registry import PeerRegistry
from protocol.handler import ProtocolEngine
from protocol.message import MAX_FINGERPRINT
from utils.helpers import get_logger

logger = get_logger(__name__)


def print_message(handle, fingerprint, text):
    print(f"{handle or 'unknown'}#{fingerprint} says: {text}")


def reachable_host(bound_host):
    if bound_host not in ("", "0.0.0.0"):
        return bound_host
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return "127.0.0.1"


def _log_background_error(future):
    if not future.cancelled() and future.exception() is not None:
        logger.error(f"Background task failed: {future.exception()}")


class Node:
    """
    A running chat node: the only object the prompt and the listener
    talk to. Everything here runs on the event loop thread.
    """

    def __init__(self, config, identity=None, on_message=None):
        fingerprint = config.get("fingerprint")
        if fingerprint is None:
            if identity is None:
                raise ValueError("A fingerprint or a node identity is required")
            fingerprint = identity.fingerprint
        if not 0 < fingerprint <= MAX_FINGERPRINT:
            raise ValueError(f"Fingerprint must be in 1..{MAX_FINGERPRINT}, got {fingerprint}")

        self.handle = config["handle"]
        self.fingerprint = fingerprint
        self.address = None
        self.advertise_host = config.get("advertise_host")
        self.announce = config.get("announce", False)
        self.discovery_timeout = config.get("discovery_timeout", 2.0)
        self.on_message = on_message or print_message

        self.registry = PeerRegistry()
        self.connections = ConnectionLifecycle(self.registry)
        self.engine = ProtocolEngine(self.registry, self.connections, self, self._deliver)
        self.listener = RpcListener(self.dispatch, config.get("listen_host", "0.0.0.0"), config.get("listen_port", 0))
        self.broadcast = None
        self.discovery = None
        logger.debug(f"Node {self.handle}#{self.fingerprint} initialized")

    @property
    def prompt(self):
        return f"P2PCHAT:{self.handle}#{self.fingerprint}@{self.address}> "

    async def start(self):
        await self.listener.start()
        host = self.advertise_host or reachable_host(self.listener.host)
        self.address = format_endpoint(Endpoint(host, self.listener.port))
        logger.info(f"Ask your friends to use {self.address} to connect to you")

        if self.announce:
            loop = asyncio.get_running_loop()
            self.broadcast = Broadcast(self.handle, self.fingerprint, host, self.listener.port)
            self.discovery = Discovery(self.discovery_timeout)
            try:
                await loop.run_in_executor(None, self.broadcast.start_service)
                await loop.run_in_executor(None, self.discovery.start_service)
            except (OSError, zeroconf.Error) as e:
                logger.warning(f"LAN announcement unavailable: {e}")

    async def stop(self):
        self.connections.close_all()
        await self.listener.stop()
        loop = asyncio.get_running_loop()
        if self.broadcast is not None:
            await loop.run_in_executor(None, self.broadcast.stop_service)
        if self.discovery is not None:
            await loop.run_in_executor(None, self.discovery.stop)
        logger.debug("Node stopped")

    def _deliver(self, handle, fingerprint, text):
        self.on_message(handle, fingerprint, text)

    # ------------------------------------------------------------------
    # Entry points for the prompt and the listener

    def dispatch(self, method, params):
        return self.engine.dispatch(method, params)

    def track_peer(self, handle, fingerprint, address, do_connect=False):
        return self.engine.track(handle, fingerprint, address, do_connect=do_connect)

    def connect(self, address):
        return self.track_peer(self.handle, self.fingerprint, address, do_connect=True)

    def send_message(self, local_fingerprint, target, text, on_ack=None):
        return self.engine.send_message(local_fingerprint, target, text, on_ack)

    def change_local_handle(self, new_handle):
        new_handle = (new_handle or "").strip()
        if not new_handle:
            logger.warning("Attempted to set empty handle, ignored")
            return []
        self.handle = new_handle
        if self.broadcast is not None:
            loop = asyncio.get_running_loop()
            loop.run_in_executor(None, self.broadcast.update_handle, new_handle).add_done_callback(_log_background_error)
        return self.engine.broadcast_handle_change(self.handle, self.fingerprint)

    def lookup_handle(self, fingerprint):
        return self.registry.lookup_handle(fingerprint)

    def peers(self):
        return list(self.registry)

    def discovered_nodes(self):
        if self.discovery is None:
            return []
        return self.discovery.get_peers()

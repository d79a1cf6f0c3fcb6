from zeroconf import Zeroconf, ServiceBrowser, ServiceListener
import socket
import threading
import time

from peer.broadcast import SERVICE_TYPE
from utils.helpers import get_logger

logger = get_logger(__name__)


def _decode(value):
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value


class DiscoveryListener(ServiceListener):
    def __init__(self):
        self._lock = threading.Lock()
        self.peers = {}     # {name: (handle, fingerprint, "ip:port")}

    def _record(self, zeroconf, type, name):
        info = zeroconf.get_service_info(type, name)
        if not info or not info.addresses:
            return
        ip = socket.inet_ntoa(info.addresses[0])
        props = {_decode(k): _decode(v) for k, v in info.properties.items()}
        fingerprint = props.get("fingerprint") or "0"
        entry = (props.get("handle") or "", int(fingerprint) if fingerprint.isdigit() else 0, f"{ip}:{info.port}")
        with self._lock:
            self.peers[name] = entry
        logger.debug(f"Found node: {entry[0]}#{entry[1]} at {entry[2]}")

    def add_service(self, zeroconf, type, name):
        self._record(zeroconf, type, name)

    def update_service(self, zeroconf, type, name):
        self._record(zeroconf, type, name)

    def remove_service(self, zeroconf, type, name):
        with self._lock:
            entry = self.peers.pop(name, None)
        if entry:
            logger.debug(f"Node left: {entry[0]}#{entry[1]}")

    def snapshot(self):
        with self._lock:
            return sorted(self.peers.values())


class Discovery:
    """Browses the LAN for other announced chat nodes."""

    def __init__(self, discovery_timeout):
        self.zeroconf = None
        self.peer_listener = DiscoveryListener()
        self.browser = None
        self.discovery_timeout = discovery_timeout

    def start_service(self):
        #watches local network for nodes, blocks for discovery_timeout
        self.zeroconf = Zeroconf()
        self.browser = ServiceBrowser(self.zeroconf, SERVICE_TYPE, self.peer_listener)
        time.sleep(self.discovery_timeout)
        logger.debug(f"Discovery running, {len(self.get_peers())} node(s) seen so far")

    def get_peers(self):
        return self.peer_listener.snapshot()

    def stop(self):
        if self.zeroconf is not None:
            self.zeroconf.close()
            self.zeroconf = None

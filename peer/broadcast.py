from zeroconf import ServiceInfo, Zeroconf
import socket

from utils.helpers import get_logger

logger = get_logger(__name__)

SERVICE_TYPE = "_p2pchat._tcp.local."


def service_properties(handle, fingerprint):
    return {"handle": handle, "fingerprint": str(fingerprint)}


class Broadcast():
    """
    Announces this node on the LAN over mDNS so others can /connect to it.
    The blocking zeroconf calls are meant to run off the event loop thread.
    """

    def __init__(self, handle, fingerprint, ip_addr, port):
        self.handle = handle
        self.fingerprint = fingerprint
        self.ip_addr = ip_addr
        self.port = port
        self.zeroconf = None
        self.service_info = None

    def _build_info(self):
        hostname = socket.gethostname()
        return ServiceInfo(
            type_=SERVICE_TYPE,
            name=f"p2pchat-{self.fingerprint}-{self.port}.{SERVICE_TYPE}",
            addresses=[socket.inet_aton(self.ip_addr)],
            port=self.port,
            properties=service_properties(self.handle, self.fingerprint),
            server=f"{hostname}.local.",
        )

    #Starts zeroconf mDNS, broadcasting the node's presence
    def start_service(self):
        self.zeroconf = Zeroconf()
        self.service_info = self._build_info()
        self.zeroconf.register_service(self.service_info)
        logger.info(f"Announcing {self.handle}#{self.fingerprint} at {self.ip_addr}:{self.port}")

    def update_handle(self, handle):
        self.handle = handle
        if self.zeroconf is None:
            return
        self.service_info = self._build_info()
        self.zeroconf.update_service(self.service_info)
        logger.debug(f"Updated announcement handle to {handle}")

    def stop_service(self):
        if self.zeroconf is None:
            return
        if self.service_info:
            self.zeroconf.unregister_service(self.service_info)
        self.zeroconf.close()
        self.zeroconf = None

from dataclasses import dataclass
from typing import Iterator, List, Optional

from peer.address import Endpoint, format_endpoint
from protocol.errors import NotFound
from utils.helpers import get_logger

logger = get_logger(__name__)

PeerId = int


@dataclass
class PeerRecord:
    address: Endpoint
    fingerprint: int = 0
    handle: str = ""
    channel: Optional[object] = None

    @property
    def identified(self) -> bool:
        return self.fingerprint != 0

    def __str__(self) -> str:
        handle = self.handle or "?"
        return f"{handle}#{self.fingerprint} @ {format_endpoint(self.address)}"


class PeerRegistry:
    """
    Append-only arena of peer records.

    Peers are referred to by their integer id (position in the arena).
    Records are never removed or moved, so an id captured by a pending
    RPC callback keeps naming the same peer however much the registry
    grows in the meantime.
    """

    def __init__(self):
        self._records: List[PeerRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PeerRecord]:
        return iter(list(self._records))

    def get(self, peer_id: PeerId) -> PeerRecord:
        if not 0 <= peer_id < len(self._records):
            raise NotFound(f"No peer with id {peer_id}")
        return self._records[peer_id]

    def all(self) -> List[PeerId]:
        return list(range(len(self._records)))

    def find_or_create(self, endpoint: Endpoint) -> PeerId:
        for peer_id, record in enumerate(self._records):
            if record.address == endpoint:
                logger.info(f"Found existing peer: {record.handle}#{record.fingerprint}")
                return peer_id

        logger.info(f"Tracking new peer at {format_endpoint(endpoint)}")
        self._records.append(PeerRecord(address=endpoint))
        return len(self._records) - 1

    def find_by_fingerprint(self, fingerprint: int, handle_prefix: Optional[str] = None) -> PeerId:
        if fingerprint:
            for peer_id, record in enumerate(self._records):
                logger.debug(f"Checking {handle_prefix}#{fingerprint} against {record.handle}#{record.fingerprint}")
                if record.fingerprint != fingerprint:
                    continue
                if handle_prefix is None or record.handle.startswith(handle_prefix):
                    return peer_id
        target = f"{handle_prefix}#{fingerprint}" if handle_prefix is not None else f"#{fingerprint}"
        raise NotFound(f"No peer matches {target}")

    def set_identity(self, peer_id: PeerId, handle: str, fingerprint: int) -> None:
        record = self.get(peer_id)
        record.handle = handle
        record.fingerprint = fingerprint
        logger.debug(f"Peer {format_endpoint(record.address)} is now {handle}#{fingerprint}")

    def set_handle_by_fingerprint(self, fingerprint: int, handle: str) -> PeerId:
        peer_id = self.find_by_fingerprint(fingerprint)
        self._records[peer_id].handle = handle
        logger.info(f"Set peer with fingerprint {fingerprint} handle to {handle}")
        return peer_id

    def lookup_handle(self, fingerprint: int) -> Optional[str]:
        try:
            return self._records[self.find_by_fingerprint(fingerprint)].handle
        except NotFound:
            return None

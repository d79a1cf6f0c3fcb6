import asyncio

from peer.address import format_endpoint
from protocol.errors import DecodeFailure, RpcError
from protocol.json_handler import MAX_FRAME, encode_json, recv_json
from utils.helpers import get_logger

logger = get_logger(__name__)


class RpcChannel:
    """
    Outbound RPC connection to a single peer.

    ``call`` never blocks: it queues the request frame and hands back a
    future that is resolved with the reply's ``result`` or failed with
    RpcError. Replies are matched to requests by id. The TCP connection
    is opened on the first call; after a connection failure the next
    call opens a new one, the failed requests are not resent.
    """

    def __init__(self, endpoint):
        self.endpoint = endpoint
        self._pending = {}      # {request_id: future}
        self._backlog = []      # frames written once connected
        self._next_id = 1
        self._writer = None
        self._task = None
        self._closed = False

    @property
    def address(self):
        return format_endpoint(self.endpoint)

    @property
    def pending(self):
        return len(self._pending)

    def call(self, method, params):
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        if self._closed:
            future.set_exception(RpcError(f"Channel to {self.address} is closed"))
            return future

        request_id = self._next_id
        self._next_id += 1
        self._pending[request_id] = future
        frame = encode_json({"id": request_id, "method": method, "params": params})
        logger.debug(f"Sending {method} #{request_id} to {self.address}")

        if self._writer is not None:
            self._writer.write(frame)
        else:
            self._backlog.append(frame)
            if self._task is None:
                self._task = loop.create_task(self._run())
        return future

    async def _run(self):
        try:
            reader, writer = await asyncio.open_connection(
                self.endpoint.ip, self.endpoint.port, limit=MAX_FRAME)
        except OSError as e:
            self._fail(RpcError(f"Could not connect to {self.address}: {e}"))
            return

        self._writer = writer
        for frame in self._backlog:
            writer.write(frame)
        self._backlog.clear()
        logger.debug(f"Connected to {self.address}")

        try:
            while True:
                reply = await recv_json(reader)
                if reply is None:
                    raise ConnectionError("Connection closed by peer")
                self._resolve(reply)
        except (OSError, ValueError, DecodeFailure) as e:
            self._fail(RpcError(f"Connection to {self.address} failed: {e}"))
        except Exception as e:
            logger.error(f"Unexpected error on channel to {self.address}: {e!r}")
            self._fail(RpcError(f"Connection to {self.address} failed: {e!r}"))
        finally:
            writer.close()

    def _resolve(self, reply):
        request_id = reply.get("id")
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            raise DecodeFailure(f"Reply with invalid id {request_id!r}")
        future = self._pending.pop(request_id, None)
        if future is None:
            logger.warning(f"Dropping reply with unknown id {request_id!r} from {self.address}")
            return
        if future.done():
            return

        if reply.get("status") == "ok":
            result = reply.get("result", {})
            if isinstance(result, dict):
                future.set_result(result)
            else:
                future.set_exception(RpcError(f"Malformed reply from {self.address}"))
        else:
            future.set_exception(RpcError(reply.get("error") or "Unknown RPC error"))

    def _fail(self, exc):
        self._writer = None
        self._task = None
        self._backlog.clear()
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(exc)
        if pending:
            logger.debug(f"Failed {len(pending)} pending request(s): {exc}")

    def close(self):
        if self._closed:
            return
        self._closed = True
        task, writer = self._task, self._writer
        self._fail(RpcError(f"Channel to {self.address} is closed"))
        if task is not None:
            task.cancel()
        if writer is not None:
            writer.close()


class ConnectionLifecycle:
    """Keeps one RPC channel per tracked peer."""

    def __init__(self, registry, channel_factory=RpcChannel):
        self.registry = registry
        self.channel_factory = channel_factory

    def ensure_channel(self, peer_id):
        # Always start from a fresh channel so the handshake that usually
        # follows never lands on a half-open connection.
        record = self.registry.get(peer_id)
        self.close(peer_id)
        record.channel = self.channel_factory(record.address)
        logger.debug(f"Registered channel to {format_endpoint(record.address)}")
        return record.channel

    def channel_for(self, peer_id):
        record = self.registry.get(peer_id)
        if record.channel is None:
            return self.ensure_channel(peer_id)
        return record.channel

    def close(self, peer_id):
        record = self.registry.get(peer_id)
        if record.channel is not None:
            record.channel.close()
            record.channel = None

    def close_all(self):
        for peer_id in self.registry.all():
            self.close(peer_id)

import asyncio

from protocol.errors import DecodeFailure, UnknownMethod
from protocol.json_handler import MAX_FRAME, recv_json, send_json
from utils.helpers import get_logger

logger = get_logger(__name__)


class RpcListener:
    """Accepts peer connections and answers their RPC frames in order."""

    def __init__(self, dispatch, host="0.0.0.0", port=0):
        self.dispatch = dispatch
        self.host = host
        self.port = port
        self._server = None
        self._writers = set()

    async def start(self):
        self._server = await asyncio.start_server(self._handle, self.host, self.port, limit=MAX_FRAME)
        self.host, self.port = self._server.sockets[0].getsockname()[:2]
        logger.debug(f"Listening on {self.host}:{self.port}")

    async def stop(self):
        if self._server is None:
            return
        self._server.close()
        for writer in list(self._writers):
            writer.close()
        await self._server.wait_closed()
        self._server = None

    async def _handle(self, reader, writer):
        addr = writer.get_extra_info("peername")
        logger.debug(f"Accepted connection from {addr}")
        self._writers.add(writer)
        try:
            while True:
                try:
                    frame = await recv_json(reader)
                except DecodeFailure as e:
                    logger.warning(f"Ignoring malformed frame from {addr}: {e}")
                    continue
                if frame is None:
                    break
                await send_json(writer, self.reply_for(frame))
        except (OSError, ValueError) as e:
            logger.debug(f"Connection from {addr} ended: {e}")
        finally:
            self._writers.discard(writer)
            writer.close()

    def reply_for(self, frame):
        request_id = frame.get("id")
        method = frame.get("method")
        params = frame.get("params")
        if params is None:
            params = {}
        try:
            if not isinstance(method, str) or not isinstance(params, dict):
                raise UnknownMethod(f"Malformed request: {method!r}")
            result = self.dispatch(method, params)
        except UnknownMethod:
            logger.debug(f"Got unhandled request: {method!r}")
            return {"id": request_id, "status": "error", "error": "Unknown request"}
        return {"id": request_id, "status": "ok", "result": result}

"""
WebSocket connection handle.

A PeerConnection wraps one Starlette WebSocket. Outbound messages go through
a per-connection queue drained by a writer task, so sending to a peer never
blocks the sender's read loop. Inbound frames are handed to a callback one at
a time, preserving per-connection ordering.
"""

import asyncio
import json
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel
from starlette.websockets import WebSocket, WebSocketState

from peerlink.logger import get_logger

logger = get_logger(__name__)

MessageHandler = Callable[["PeerConnection", str], Awaitable[None]]

# Close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001


class _CloseRequest:
    __slots__ = ("code", "reason")

    def __init__(self, code: int, reason: str):
        self.code = code
        self.reason = reason


class PeerConnection:
    """
    One accepted signaling connection.

    Attributes:
        connection_id: Opaque unique identity, assigned at accept time.
        alive: Liveness flag, cleared by each probe and set by any inbound frame.
        answers_probes: Set once the peer has sent a ping or pong envelope;
            only such connections receive application-level probes.
        session_id: Session named by this connection's last join.
        role: Role named by this connection's last join.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.connection_id = connection_id or uuid.uuid4().hex
        self.alive = True
        self.answers_probes = False
        self.session_id: Optional[str] = None
        self.role: Optional[str] = None
        self.connected_at = datetime.now()
        self.last_seen_at = self.connected_at
        self._ws = websocket
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._closed = asyncio.Event()
        self._close_requested = False
        self._writer: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<PeerConnection {self.connection_id[:8]}>"

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def touch(self) -> None:
        """Record inbound activity."""
        self.alive = True
        self.last_seen_at = datetime.now()

    def send(self, message: BaseModel | dict[str, Any] | str) -> bool:
        """
        Queue a message for delivery.

        Args:
            message: A pydantic model, a JSON-able dict, or an already
                serialized text frame (sent as-is).

        Returns:
            False if the connection is closed and the message was dropped.
        """
        if self.closed:
            return False

        if isinstance(message, BaseModel):
            text = message.model_dump_json(by_alias=True)
        elif isinstance(message, dict):
            text = json.dumps(message)
        else:
            text = message

        self._outbox.put_nowait(text)
        return True

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """
        Close the connection. Idempotent and non-blocking.

        Wakes the task running serve() and asks the writer to send the close
        frame once queued messages are flushed.
        """
        self._closed.set()
        if not self._close_requested:
            self._close_requested = True
            self._outbox.put_nowait(_CloseRequest(code, reason))

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def drain(self, timeout: float = 1.0) -> None:
        """Wait up to ``timeout`` for queued frames and the close frame to go out."""
        if self._writer is None or self._writer.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._writer), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Gave up flushing {self!r}")
            self._writer.cancel()

    async def serve(self, on_message: MessageHandler) -> None:
        """
        Run the connection until the peer disconnects or close() is called.

        Inbound frames are passed to on_message sequentially. Returns once the
        read loop has stopped; the writer keeps flushing in the background.
        """
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

        reader = asyncio.create_task(self._read_loop(on_message))
        closing = asyncio.create_task(self._closed.wait())
        try:
            done, _ = await asyncio.wait(
                {reader, closing}, return_when=asyncio.FIRST_COMPLETED
            )
            if reader in done and reader.exception() is not None:
                logger.warning(f"Read loop for {self!r} failed: {reader.exception()}")
        finally:
            reader.cancel()
            closing.cancel()
            self.close()

    async def _read_loop(self, on_message: MessageHandler) -> None:
        while True:
            message = await self._ws.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug(
                    f"{self!r} disconnected (code={message.get('code', CLOSE_NORMAL)})"
                )
                return

            text = message.get("text")
            if text is None:
                data = message.get("bytes")
                if data is None:
                    continue
                try:
                    text = data.decode("utf-8")
                except UnicodeDecodeError:
                    self.touch()
                    logger.warning(f"Dropping undecodable binary frame from {self!r}")
                    continue

            self.touch()
            await on_message(self, text)

    async def _drain(self) -> None:
        while True:
            item = await self._outbox.get()

            if isinstance(item, _CloseRequest):
                await self._close_transport(item)
                return

            try:
                await self._ws.send_text(item)
            except Exception as e:
                logger.debug(f"Send to {self!r} failed: {e}")
                self._closed.set()
                await self._close_transport(_CloseRequest(CLOSE_GOING_AWAY, ""))
                return

    async def _close_transport(self, request: _CloseRequest) -> None:
        if (
            self._ws.client_state == WebSocketState.DISCONNECTED
            or self._ws.application_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self._ws.close(code=request.code, reason=request.reason)
        except Exception as e:
            logger.debug(f"Closing {self!r} failed: {e}")

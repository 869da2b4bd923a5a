"""
Signaling client: joins a peerlink session from Python and exchanges
negotiation messages with the peer in the opposite role.

Usage:
    client = SignalingClient("http://localhost:8080", "room1", "initiator")

    @client.on("peer-connected")
    async def on_peer(client, data):
        await client.send_offer({"type": "offer", "sdp": "..."})

    asyncio.run(client.run())
"""

import asyncio
import json
from typing import Any, Callable, Coroutine, Optional
from urllib.parse import quote

import httpx
import websockets

from peerlink.logger import get_logger
from peerlink.relay.models import ROLES, SessionStatus, opposite

logger = get_logger(__name__)

RECONNECT_DELAY = 5  # seconds between reconnect attempts
STATUS_POLL_INTERVAL = 1.0

Handler = Callable[["SignalingClient", dict[str, Any]], Coroutine[Any, Any, None]]


class SessionNotFoundError(LookupError):
    """The relay has no session with the requested id."""


def _ws_url(server_url: str) -> str:
    if server_url.startswith("https://"):
        return "wss://" + server_url[len("https://") :] + "/ws"
    if server_url.startswith("http://"):
        return "ws://" + server_url[len("http://") :] + "/ws"
    return server_url.rstrip("/") + "/ws"


class SignalingClient:
    """WebSocket client for one slot of a signaling session.

    Args:
        server_url: HTTP base URL of the relay (e.g. "http://localhost:8080").
        session_id: Session to join.
        role: "initiator" or "responder".
        http_transport: Optional httpx transport for status queries.
    """

    def __init__(
        self,
        server_url: str,
        session_id: str,
        role: str,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        self.server_url = server_url.rstrip("/")
        self.session_id = session_id
        self.role = role
        self._handlers: dict[str, Handler] = {}
        self._ws = None
        self._stop = False
        self._stopped = asyncio.Event()
        self._http_transport = http_transport

    @property
    def ws_url(self) -> str:
        return _ws_url(self.server_url)

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def on(self, kind: str):
        """Decorator to register a handler for an incoming envelope type."""

        def decorator(fn: Handler) -> Handler:
            self._handlers[kind] = fn
            return fn

        return decorator

    # ─── Status queries ──────────────────────────────────────────────

    async def fetch_status(self) -> SessionStatus:
        """
        Query slot occupancy for this client's session.

        Raises:
            SessionNotFoundError: If the session does not exist yet.
            httpx.HTTPError: On transport or server errors.
        """
        session_path = quote(self.session_id, safe="")
        url = f"{self.server_url}/sessions/{session_path}/status"
        async with httpx.AsyncClient(
            timeout=10.0, transport=self._http_transport
        ) as http:
            resp = await http.get(url)

        if resp.status_code == 404:
            raise SessionNotFoundError(self.session_id)
        resp.raise_for_status()
        return SessionStatus.model_validate(resp.json())

    async def wait_for_peer(
        self, timeout: Optional[float] = None, interval: float = STATUS_POLL_INTERVAL
    ) -> SessionStatus:
        """
        Poll the status endpoint until the opposite slot is occupied.

        Raises:
            TimeoutError: If the peer does not show up within ``timeout``.
        """
        peer_flag = f"{opposite(self.role)}_present"

        async def _poll() -> SessionStatus:
            while True:
                try:
                    status = await self.fetch_status()
                    if getattr(status, peer_flag):
                        return status
                except SessionNotFoundError:
                    pass
                await asyncio.sleep(interval)

        try:
            return await asyncio.wait_for(_poll(), timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"No {opposite(self.role)} joined '{self.session_id}' within {timeout}s"
            ) from None

    # ─── Outbound messages ───────────────────────────────────────────

    async def send(self, message: dict[str, Any]) -> None:
        if self._ws is None:
            raise ConnectionError("Not connected to the relay")
        await self._ws.send(json.dumps(message))

    async def send_offer(self, sdp: Any) -> None:
        await self.send({"type": "offer", "sdp": sdp})

    async def send_answer(self, sdp: Any) -> None:
        await self.send({"type": "answer", "sdp": sdp})

    async def send_candidate(self, candidate: Any) -> None:
        await self.send({"type": "candidate", "candidate": candidate})

    def _build_join_message(self) -> dict[str, Any]:
        return {"type": "join", "sessionId": self.session_id, "role": self.role}

    # ─── Connection loop ─────────────────────────────────────────────

    async def _dispatch(self, data: dict[str, Any]) -> None:
        kind = data.get("type")

        if kind == "ping":
            await self.send({"type": "pong"})
            return

        handler = self._handlers.get(kind)
        if handler is None:
            logger.debug(f"Unhandled message type: {kind}")
            return

        try:
            await handler(self, data)
        except Exception as e:
            logger.error(f"Handler error for '{kind}': {e}")

    async def _read_loop(self, ws) -> None:
        async for message in ws:
            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                logger.warning("Ignoring non-JSON message from relay")
                continue
            if isinstance(data, dict):
                await self._dispatch(data)

    async def run_once(self) -> None:
        """
        Connect, join, and run the message loop until disconnect or stop().

        After joining, a ping is sent so the relay also probes this
        connection with ping envelopes, which _dispatch() answers.
        """
        logger.info(f"Connecting to {self.ws_url} ...")

        async with websockets.connect(self.ws_url) as ws:
            self._ws = ws
            try:
                await self.send(self._build_join_message())
                await self.send({"type": "ping"})
                logger.info(f"Joined '{self.session_id}' as {self.role}")

                reader = asyncio.create_task(self._read_loop(ws))
                stopping = asyncio.create_task(self._stopped.wait())
                try:
                    done, _ = await asyncio.wait(
                        {reader, stopping}, return_when=asyncio.FIRST_COMPLETED
                    )
                finally:
                    reader.cancel()
                    stopping.cancel()

                if reader in done:
                    # Re-raise connection errors for run() to handle.
                    reader.result()
            finally:
                self._ws = None

    async def _pause(self, delay: float) -> None:
        """Sleep before reconnecting, waking early on stop()."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        """Run with automatic reconnection."""
        while not self._stop:
            try:
                await self.run_once()
            except (ConnectionError, OSError) as e:
                if self._stop:
                    break
                logger.warning(
                    f"Disconnected: {e}. Reconnecting in {RECONNECT_DELAY}s..."
                )
                await self._pause(RECONNECT_DELAY)
            except websockets.exceptions.ConnectionClosed as e:
                if self._stop:
                    break
                logger.warning(
                    f"Connection closed: {e}. Reconnecting in {RECONNECT_DELAY}s..."
                )
                await self._pause(RECONNECT_DELAY)
            else:
                if not self._stop:
                    await self._pause(RECONNECT_DELAY)

        logger.info("Signaling client stopped.")

    def stop(self) -> None:
        """Stop the client; an open connection is closed right away."""
        self._stop = True
        self._stopped.set()

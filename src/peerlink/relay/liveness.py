"""
Liveness monitor: periodic probes that reap half-open connections.

Transport-level WebSocket pings sent by the server (uvicorn's ws_ping_interval)
reap half-open sockets for every client. On top of that, connections that
speak the ping/pong envelopes get application-level probes: every tick, such a
connection that has not shown any inbound activity since the previous probe is
closed, and every other one is marked suspect and probed again. Clients that
never sent a ping or pong are never probed here, so a quiet but responsive
peer is not reaped. Closing a connection ends its serve() loop, after which the
endpoint runs the normal close path.
"""

import asyncio
from datetime import datetime
from typing import Optional

from peerlink.logger import get_logger
from peerlink.relay.connection import CLOSE_GOING_AWAY, PeerConnection
from peerlink.relay.models import PingMessage

logger = get_logger(__name__)

DEFAULT_PROBE_INTERVAL = 30.0


class LivenessMonitor:
    """Probes tracked connections every ``interval`` seconds."""

    def __init__(self, interval: float = DEFAULT_PROBE_INTERVAL):
        if interval <= 0:
            raise ValueError("Probe interval must be greater than 0")
        self.interval = interval
        self._connections: dict[str, PeerConnection] = {}
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_tick_at: Optional[datetime] = None
        self._terminated_total = 0

    @property
    def running(self) -> bool:
        return self._running

    def track(self, connection: PeerConnection) -> None:
        self._connections[connection.connection_id] = connection

    def untrack(self, connection: PeerConnection) -> None:
        self._connections.pop(connection.connection_id, None)

    def __len__(self) -> int:
        return len(self._connections)

    async def start(self):
        """Start the probe loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"LivenessMonitor started (every {self.interval}s)")

    async def stop(self):
        """Stop the probe loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("LivenessMonitor stopped.")

    async def _run_loop(self):
        """Main loop, probes at fixed intervals."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

            try:
                self.tick()
            except Exception as e:
                logger.error(f"Liveness tick error: {e}")

    def tick(self) -> list[PeerConnection]:
        """
        Run one probe round.

        Returns:
            The connections terminated in this round.
        """
        self._last_tick_at = datetime.now()
        terminated = []

        for connection in list(self._connections.values()):
            if connection.closed:
                self.untrack(connection)
                continue

            if not connection.answers_probes:
                continue

            if not connection.alive:
                logger.info(f"Terminating unresponsive {connection!r}")
                self.untrack(connection)
                connection.close(CLOSE_GOING_AWAY, "Liveness probe timed out")
                terminated.append(connection)
                continue

            connection.alive = False
            connection.send(PingMessage())

        self._terminated_total += len(terminated)
        return terminated

    def get_status(self) -> dict:
        """Return current monitor status."""
        return {
            "running": self._running,
            "interval_seconds": self.interval,
            "tracked": len(self._connections),
            "terminated_total": self._terminated_total,
            "last_tick_at": (
                self._last_tick_at.isoformat() if self._last_tick_at else None
            ),
        }

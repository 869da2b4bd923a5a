"""
Per-connection message interpreter.

The dispatcher turns raw frames into typed envelopes, binds connections to
session slots, and hands negotiation frames to the sender's session for
relay. Nothing a single peer sends can raise out of on_message().
"""

from peerlink.logger import get_logger
from peerlink.relay.connection import PeerConnection
from peerlink.relay.models import (
    NEGOTIATION_TYPES,
    JoinMessage,
    PingMessage,
    PongMessage,
    parse_envelope,
)
from peerlink.relay.registry import SessionRegistry

logger = get_logger(__name__)


class RelayDispatcher:
    """
    Routes envelopes between the two roles of a session.

    Protocol (one JSON object per text frame):
        Client -> Server:
            {"type": "join", "sessionId": "room1", "role": "initiator"}
            {"type": "offer", "sdp": {...}}
            {"type": "answer", "sdp": {...}}
            {"type": "candidate", "candidate": {...}}
            {"type": "ping"}  (opts in to probes, answered with pong)

        Server -> Client:
            {"type": "peer-connected", "message": "..."}
            {"type": "peer-left", "message": "..."}
            {"type": "ping"}
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def on_message(self, connection: PeerConnection, raw: str) -> None:
        """Handle one inbound frame. Malformed frames are logged and dropped."""
        envelope = parse_envelope(raw)
        if envelope is None:
            logger.warning(f"Dropping malformed envelope from {connection!r}")
            return

        try:
            if isinstance(envelope, JoinMessage):
                await self._join(connection, envelope)
            elif isinstance(envelope, NEGOTIATION_TYPES):
                await self._relay(connection, envelope.type, raw)
            elif isinstance(envelope, PingMessage):
                connection.answers_probes = True
                connection.send(PongMessage())
            elif isinstance(envelope, PongMessage):
                connection.answers_probes = True
                logger.debug(f"Probe answered by {connection!r}")
        except Exception as e:
            logger.exception(
                f"Error handling '{envelope.type}' from {connection!r}: {e}"
            )

    async def _join(self, connection: PeerConnection, msg: JoinMessage) -> None:
        previous = connection.session_id, connection.role
        if previous != (msg.session_id, msg.role) and connection.session_id:
            # A connection holds at most one slot; leave the old one first.
            await self._leave(connection)

        connection.session_id = msg.session_id
        connection.role = msg.role
        await self.registry.join(msg.session_id, msg.role, connection)

    async def _relay(self, connection: PeerConnection, kind: str, raw: str) -> None:
        session_id = connection.session_id
        session = self.registry.get(session_id) if session_id else None
        if session is None:
            logger.debug(f"Dropping '{kind}' from unbound {connection!r}")
            return

        if await session.relay(connection, raw):
            logger.debug(f"Relayed '{kind}' from {connection!r} in {session_id!r}")
        else:
            logger.debug(
                f"Dropping '{kind}' from {connection!r} in {session_id!r}: "
                "sender unbound or no peer"
            )

    async def _leave(self, connection: PeerConnection) -> None:
        session_id = connection.session_id
        connection.session_id = None
        connection.role = None
        if session_id is not None:
            await self.registry.leave(session_id, connection)

    async def on_close(self, connection: PeerConnection) -> None:
        """
        Release whatever slot the connection still holds.

        Safe to call more than once; only the first call can change state.
        """
        try:
            await self._leave(connection)
        except Exception as e:
            logger.exception(f"Error releasing {connection!r}: {e}")

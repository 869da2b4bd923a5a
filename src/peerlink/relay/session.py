"""
A named two-role signaling session.

Each Session has an initiator slot and a responder slot. Every mutation of
the slots, and every relay or notification that depends on them, runs under
the session's own lock, so notifications always describe the state produced
by the mutation that triggered them.
"""

import asyncio
from datetime import datetime
from typing import Optional

from peerlink.logger import get_logger
from peerlink.relay.connection import PeerConnection
from peerlink.relay.models import (
    PEER_CONNECTED_TEXT,
    PEER_LEFT_TEXT,
    ROLES,
    PeerConnectedMessage,
    PeerLeftMessage,
    SessionInfo,
    SessionStatus,
    opposite,
)

logger = get_logger(__name__)


class Session:
    """Two slots, one lock."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.created_at = datetime.now()
        self.lock = asyncio.Lock()
        self._slots: dict[str, Optional[PeerConnection]] = {
            role: None for role in ROLES
        }

    def __repr__(self) -> str:
        return (
            f"<Session {self.session_id!r} "
            f"initiator={self._slots['initiator']!r} "
            f"responder={self._slots['responder']!r}>"
        )

    def occupant(self, role: str) -> Optional[PeerConnection]:
        """Connection currently holding a slot, or None."""
        return self._slots[role]

    def role_of(self, connection: PeerConnection) -> Optional[str]:
        """Slot held by a connection in this session, or None."""
        for role, holder in self._slots.items():
            if holder is connection:
                return role
        return None

    @property
    def is_empty(self) -> bool:
        return all(holder is None for holder in self._slots.values())

    @property
    def is_full(self) -> bool:
        return all(holder is not None for holder in self._slots.values())

    async def bind(
        self, role: str, connection: PeerConnection
    ) -> Optional[PeerConnection]:
        """
        Put a connection into a slot, replacing any previous occupant.

        The last join for a role wins; the displaced connection is returned
        and left open. When both slots end up occupied, each side is told its
        peer is connected.

        Args:
            role: "initiator" or "responder".
            connection: The joining connection.

        Returns:
            The displaced connection, or None.
        """
        if role not in self._slots:
            raise ValueError(f"Unknown role: {role}")

        async with self.lock:
            current_role = self.role_of(connection)
            if current_role is not None and current_role != role:
                raise ValueError(
                    f"{connection!r} already holds the {current_role} slot "
                    f"of session {self.session_id!r}"
                )

            displaced = self._slots[role]
            if displaced is connection:
                return None

            self._slots[role] = connection
            if displaced is not None:
                logger.info(
                    f"{connection!r} replaced {displaced!r} as {role} "
                    f"in session {self.session_id!r}"
                )
            else:
                logger.info(
                    f"{connection!r} joined session {self.session_id!r} as {role}"
                )

            if self.is_full:
                for slot_role, holder in self._slots.items():
                    text = PEER_CONNECTED_TEXT[slot_role]
                    holder.send(PeerConnectedMessage(message=text))

            return displaced

    async def vacate(self, connection: PeerConnection) -> Optional[str]:
        """
        Remove a connection from its slot and notify the remaining peer.

        Returns:
            The role that was vacated, or None if the connection held no slot
            (never joined, already left, or displaced by a later join).
        """
        async with self.lock:
            role = self.role_of(connection)
            if role is None:
                return None

            self._slots[role] = None
            logger.info(f"{connection!r} left session {self.session_id!r} ({role})")

            peer_role = opposite(role)
            peer = self._slots[peer_role]
            if peer is not None:
                peer.send(PeerLeftMessage(message=PEER_LEFT_TEXT[peer_role]))

            return role

    async def relay(self, connection: PeerConnection, raw: str) -> bool:
        """
        Forward a raw negotiation frame to the occupant of the opposite slot.

        Returns:
            True if the frame was queued for the peer. False if the sender
            holds no slot or the opposite slot is empty.
        """
        async with self.lock:
            role = self.role_of(connection)
            if role is None:
                return False

            peer = self._slots[opposite(role)]
            if peer is None:
                return False

            return peer.send(raw)

    def status(self) -> SessionStatus:
        return SessionStatus(
            initiator_present=self._slots["initiator"] is not None,
            responder_present=self._slots["responder"] is not None,
        )

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            initiator_present=self._slots["initiator"] is not None,
            responder_present=self._slots["responder"] is not None,
            created_at=self.created_at.isoformat(),
        )

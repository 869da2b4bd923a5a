"""
In-memory registry of signaling sessions.

Membership changes (create, join, leave, delete) are serialized by the
registry lock, taken before any session lock. Forwarding looks sessions up
without the registry lock, so traffic in one session never waits on
membership changes in another.
"""

import asyncio
from typing import Optional

from peerlink.logger import get_logger
from peerlink.relay.connection import PeerConnection
from peerlink.relay.models import SessionInfo, SessionStatus
from peerlink.relay.session import Session

logger = get_logger(__name__)


class SessionRegistry:
    """
    Owns every Session of the process.

    A Session with both slots empty is removed in the same critical section
    that emptied it.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Optional[Session]:
        """Lookup without locking."""
        return self._sessions.get(session_id)

    def _get_or_create_locked(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id)
            self._sessions[session_id] = session
            logger.info(f"Created session {session_id!r}")
        return session

    async def get_or_create(self, session_id: str) -> Session:
        """
        Return the session for an id, creating an empty one if needed.

        Note that an empty session created here is only kept if a connection
        binds to it before the next delete_if_empty(); prefer join().
        """
        async with self._lock:
            return self._get_or_create_locked(session_id)

    async def join(
        self, session_id: str, role: str, connection: PeerConnection
    ) -> Session:
        """
        Fetch-or-create a session and bind a connection to one of its slots.

        Both steps happen under the registry lock, so concurrent joins for a
        brand-new id always land on the same Session instance.

        Returns:
            The session the connection is now bound to.
        """
        async with self._lock:
            session = self._get_or_create_locked(session_id)
            try:
                await session.bind(role, connection)
            except Exception:
                if session.is_empty:
                    self._sessions.pop(session_id, None)
                raise
            return session

    async def leave(self, session_id: str, connection: PeerConnection) -> Optional[str]:
        """
        Vacate a connection's slot and drop the session if it is now empty.

        Returns:
            The vacated role, or None if the connection held no slot there.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None

            role = await session.vacate(connection)
            if session.is_empty:
                del self._sessions[session_id]
                logger.info(f"Deleted empty session {session_id!r}")
            return role

    async def delete_if_empty(self, session_id: str) -> bool:
        """
        Remove a session only if both slots are empty.

        The check runs under the session lock after any in-flight join has
        released it, so a session that just gained an occupant survives.

        Returns:
            True if the session was removed.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            async with session.lock:
                if not session.is_empty:
                    return False
                del self._sessions[session_id]
            logger.info(f"Deleted empty session {session_id!r}")
            return True

    def status(self, session_id: str) -> Optional[SessionStatus]:
        """Occupancy of a session, or None if it does not exist."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return session.status()

    def list_sessions(self) -> list[SessionInfo]:
        return [session.info() for session in list(self._sessions.values())]

"""
WebSocket endpoint for signaling connections (/ws).

Each accepted socket becomes a PeerConnection, is tracked by the liveness
monitor, and feeds its frames to the relay dispatcher until it closes.
"""

from starlette.websockets import WebSocket

from peerlink.logger import get_logger
from peerlink.relay.connection import PeerConnection

logger = get_logger(__name__)


def _get_relay(websocket: WebSocket):
    """Get dispatcher and liveness monitor from app state."""
    state = websocket.app.state
    return (
        getattr(state, "dispatcher", None),
        getattr(state, "liveness_monitor", None),
    )


async def signaling_websocket_endpoint(websocket: WebSocket):
    """
    Signaling connection lifecycle:
        1. Client connects to /ws
        2. Client sends {"type": "join", "sessionId": "...", "role": "initiator"}
        3. Negotiation messages are relayed to the opposite role
        4. On disconnect (or a missed liveness probe) the slot is released
    """
    dispatcher, monitor = _get_relay(websocket)
    if dispatcher is None:
        await websocket.close(code=1011, reason="Relay not initialized")
        return

    await websocket.accept()
    connection = PeerConnection(websocket)
    if monitor is not None:
        monitor.track(connection)
    logger.info(f"Signaling connection opened: {connection!r}")

    try:
        await connection.serve(dispatcher.on_message)
    except Exception as e:
        logger.error(f"Signaling connection error on {connection!r}: {e}")
    finally:
        if monitor is not None:
            monitor.untrack(connection)
        await dispatcher.on_close(connection)
        logger.info(f"Signaling connection closed: {connection!r}")
        await connection.drain()

"""Shared pytest fixtures and test doubles."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from peerlink.relay.connection import PeerConnection
from peerlink.relay.dispatcher import RelayDispatcher
from peerlink.relay.registry import SessionRegistry


class RecordingConnection(PeerConnection):
    """A PeerConnection whose outbound frames are captured in memory."""

    def __init__(self, connection_id=None):
        super().__init__(websocket=MagicMock(), connection_id=connection_id)
        self.sent: list[str] = []

    def send(self, message):
        if self.closed:
            return False
        if isinstance(message, BaseModel):
            text = message.model_dump_json(by_alias=True)
        elif isinstance(message, dict):
            text = json.dumps(message)
        else:
            text = message
        self.sent.append(text)
        return True

    def received(self) -> list[dict]:
        return [json.loads(text) for text in self.sent]

    def received_types(self) -> list[str]:
        return [msg["type"] for msg in self.received()]


class FakeWebSocket:
    """Just enough of starlette.websockets.WebSocket for PeerConnection."""

    def __init__(self):
        self._incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.close_code = None
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    def feed_text(self, text: str):
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def feed_bytes(self, data: bytes):
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def feed_disconnect(self, code: int = 1000):
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    async def receive(self):
        message = await self._incoming.get()
        if message["type"] == "websocket.disconnect":
            self.client_state = WebSocketState.DISCONNECTED
        return message

    async def send_text(self, text: str):
        self.sent.append(text)

    async def close(self, code: int = 1000, reason=None):
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED


def join(session_id: str, role: str) -> str:
    return json.dumps({"type": "join", "sessionId": session_id, "role": role})


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def dispatcher(registry):
    return RelayDispatcher(registry)


@pytest.fixture
def make_connection():
    counter = iter(range(1, 10_000))

    def _make():
        return RecordingConnection(connection_id=f"conn-{next(counter):04d}")

    return _make

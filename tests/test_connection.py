"""
Unit tests for the PeerConnection handle.
"""

import asyncio

import pytest

from conftest import FakeWebSocket
from peerlink.relay.connection import PeerConnection
from peerlink.relay.models import PingMessage


class Recorder:
    def __init__(self):
        self.frames = []

    async def __call__(self, connection, text):
        self.frames.append(text)


class TestPeerConnection:
    def test_identity_is_unique(self):
        a = PeerConnection(FakeWebSocket())
        b = PeerConnection(FakeWebSocket())
        assert a.connection_id != b.connection_id
        assert a.alive is True
        assert a.session_id is None and a.role is None

    @pytest.mark.asyncio
    async def test_frames_delivered_in_order_until_disconnect(self):
        ws = FakeWebSocket()
        conn = PeerConnection(ws)
        recorder = Recorder()
        ws.feed_text("one")
        ws.feed_text("two")
        ws.feed_bytes('{"type": "ping"}'.encode("utf-8"))
        ws.feed_disconnect()

        await asyncio.wait_for(conn.serve(recorder), timeout=2)

        assert recorder.frames == ["one", "two", '{"type": "ping"}']
        assert conn.closed

    @pytest.mark.asyncio
    async def test_undecodable_binary_frame_skipped(self):
        ws = FakeWebSocket()
        conn = PeerConnection(ws)
        recorder = Recorder()
        ws.feed_bytes(b"\xff\xfe")
        ws.feed_text("after")
        ws.feed_disconnect()

        await asyncio.wait_for(conn.serve(recorder), timeout=2)

        assert recorder.frames == ["after"]

    @pytest.mark.asyncio
    async def test_inbound_activity_marks_alive(self):
        ws = FakeWebSocket()
        conn = PeerConnection(ws)
        conn.alive = False
        ws.feed_text('{"type": "pong"}')
        ws.feed_disconnect()

        await asyncio.wait_for(conn.serve(Recorder()), timeout=2)

        assert conn.alive is True

    @pytest.mark.asyncio
    async def test_send_is_flushed_in_order(self):
        ws = FakeWebSocket()
        conn = PeerConnection(ws)
        serving = asyncio.create_task(conn.serve(Recorder()))

        assert conn.send("raw frame") is True
        assert conn.send(PingMessage()) is True
        assert conn.send({"type": "pong"}) is True
        ws.feed_disconnect()
        await asyncio.wait_for(serving, timeout=2)
        await asyncio.wait_for(conn._writer, timeout=2)

        assert ws.sent == ["raw frame", '{"type":"ping"}', '{"type": "pong"}']

    @pytest.mark.asyncio
    async def test_close_ends_serve_and_closes_transport(self):
        ws = FakeWebSocket()
        conn = PeerConnection(ws)
        serving = asyncio.create_task(conn.serve(Recorder()))
        await asyncio.sleep(0)

        conn.close(1001, "bye")
        await asyncio.wait_for(serving, timeout=2)
        await asyncio.wait_for(conn._writer, timeout=2)

        assert conn.closed
        assert ws.close_code == 1001

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_blocks_sends(self):
        conn = PeerConnection(FakeWebSocket())
        conn.close()
        conn.close()

        assert conn.closed
        assert conn.send("late") is False
        assert conn._outbox.qsize() == 1

    @pytest.mark.asyncio
    async def test_handler_exception_ends_serve(self):
        ws = FakeWebSocket()
        conn = PeerConnection(ws)

        async def failing(connection, text):
            raise RuntimeError("boom")

        ws.feed_text("x")
        await asyncio.wait_for(conn.serve(failing), timeout=2)

        assert conn.closed

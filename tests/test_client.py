"""
Unit tests for the Python signaling client.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest
import websockets

from peerlink import client as client_module
from peerlink.client import SessionNotFoundError, SignalingClient


def _status_transport(responses):
    """MockTransport returning queued (status_code, body) pairs."""
    queue = list(responses)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path.decode())
        status_code, body = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler), seen


class TestSignalingClient:
    def test_init(self):
        client = SignalingClient("http://localhost:8080/", "room1", "initiator")
        assert client.server_url == "http://localhost:8080"
        assert client.ws_url == "ws://localhost:8080/ws"
        assert not client.connected

    def test_secure_url(self):
        client = SignalingClient("https://relay.example.com", "room1", "responder")
        assert client.ws_url == "wss://relay.example.com/ws"

    def test_rejects_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown role"):
            SignalingClient("http://localhost:8080", "room1", "sender")

    def test_build_join_message(self):
        client = SignalingClient("http://localhost:8080", "room1", "responder")
        assert client._build_join_message() == {
            "type": "join",
            "sessionId": "room1",
            "role": "responder",
        }

    def test_stop(self):
        client = SignalingClient("http://localhost:8080", "room1", "initiator")
        assert client._stop is False
        client.stop()
        assert client._stop is True
        assert client._stopped.is_set()


class TestDispatch:
    @pytest.mark.asyncio
    async def test_ping_answered(self):
        client = SignalingClient("http://localhost:8080", "room1", "initiator")
        client._ws = AsyncMock()

        await client._dispatch({"type": "ping"})

        client._ws.send.assert_called_once()
        assert json.loads(client._ws.send.call_args[0][0]) == {"type": "pong"}

    @pytest.mark.asyncio
    async def test_registered_handler_called(self):
        client = SignalingClient("http://localhost:8080", "room1", "responder")
        received = []

        @client.on("offer")
        async def on_offer(c, data):
            received.append(data)

        await client._dispatch({"type": "offer", "sdp": "x"})
        await client._dispatch({"type": "answer", "sdp": "y"})

        assert received == [{"type": "offer", "sdp": "x"}]

    @pytest.mark.asyncio
    async def test_handler_error_contained(self):
        client = SignalingClient("http://localhost:8080", "room1", "responder")

        @client.on("peer-left")
        async def on_left(c, data):
            raise RuntimeError("boom")

        await client._dispatch({"type": "peer-left", "message": "Initiator left"})

    @pytest.mark.asyncio
    async def test_send_helpers(self):
        client = SignalingClient("http://localhost:8080", "room1", "initiator")
        client._ws = AsyncMock()

        await client.send_offer({"type": "offer", "sdp": "v=0"})
        await client.send_candidate({"candidate": "c"})

        sent = [json.loads(call[0][0]) for call in client._ws.send.call_args_list]
        assert sent == [
            {"type": "offer", "sdp": {"type": "offer", "sdp": "v=0"}},
            {"type": "candidate", "candidate": {"candidate": "c"}},
        ]

    @pytest.mark.asyncio
    async def test_send_requires_connection(self):
        client = SignalingClient("http://localhost:8080", "room1", "initiator")
        with pytest.raises(ConnectionError):
            await client.send_answer({})


class TestStatus:
    @pytest.mark.asyncio
    async def test_fetch_status(self):
        transport, seen = _status_transport(
            [(200, {"initiatorPresent": True, "responderPresent": False})]
        )
        client = SignalingClient(
            "http://relay", "room1", "responder", http_transport=transport
        )

        status = await client.fetch_status()

        assert status.initiator_present is True
        assert status.responder_present is False
        assert seen == ["/sessions/room1/status"]

    @pytest.mark.asyncio
    async def test_fetch_status_quotes_session_id(self):
        transport, seen = _status_transport(
            [(200, {"initiatorPresent": True, "responderPresent": True})]
        )
        client = SignalingClient(
            "http://relay", "a?b#c/d", "initiator", http_transport=transport
        )

        await client.fetch_status()

        assert seen == ["/sessions/a%3Fb%23c%2Fd/status"]

    @pytest.mark.asyncio
    async def test_fetch_status_not_found(self):
        transport, _ = _status_transport([(404, {"error": "Session not found"})])
        client = SignalingClient(
            "http://relay", "room1", "responder", http_transport=transport
        )

        with pytest.raises(SessionNotFoundError):
            await client.fetch_status()

    @pytest.mark.asyncio
    async def test_wait_for_peer_polls_until_present(self):
        transport, seen = _status_transport(
            [
                (404, {"error": "Session not found"}),
                (200, {"initiatorPresent": False, "responderPresent": True}),
                (200, {"initiatorPresent": True, "responderPresent": True}),
            ]
        )
        client = SignalingClient(
            "http://relay", "room1", "responder", http_transport=transport
        )

        status = await client.wait_for_peer(timeout=5, interval=0)

        assert status.initiator_present is True
        assert len(seen) == 3

    @pytest.mark.asyncio
    async def test_wait_for_peer_timeout(self):
        transport, _ = _status_transport([(404, {"error": "Session not found"})])
        client = SignalingClient(
            "http://relay", "room1", "initiator", http_transport=transport
        )

        with pytest.raises(TimeoutError, match="No responder"):
            await client.wait_for_peer(timeout=0.05, interval=0.01)


async def _wait_until(predicate, timeout=2.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


class TestConnectionLoop:
    @pytest.mark.asyncio
    async def test_joins_answers_ping_and_stops(self):
        received = []

        async def relay(ws):
            async for message in ws:
                data = json.loads(message)
                received.append(data)
                if data["type"] == "join":
                    await ws.send(json.dumps({"type": "ping"}))

        async with websockets.serve(relay, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = SignalingClient(f"http://127.0.0.1:{port}", "room1", "responder")
            task = asyncio.create_task(client.run())

            await _wait_until(lambda: {"type": "pong"} in received)
            assert client.connected
            assert received[0] == {
                "type": "join",
                "sessionId": "room1",
                "role": "responder",
            }
            assert {"type": "ping"} in received

            client.stop()
            await asyncio.wait_for(task, timeout=2)

        assert not client.connected

    @pytest.mark.asyncio
    async def test_handlers_receive_relayed_messages(self):
        offers = []

        async def relay(ws):
            await ws.recv()
            await ws.send(json.dumps({"type": "offer", "sdp": "v=0"}))
            async for _ in ws:
                pass

        async with websockets.serve(relay, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = SignalingClient(f"http://127.0.0.1:{port}", "room1", "responder")

            @client.on("offer")
            async def on_offer(c, data):
                offers.append(data)
                c.stop()

            await asyncio.wait_for(client.run(), timeout=2)

        assert offers == [{"type": "offer", "sdp": "v=0"}]

    @pytest.mark.asyncio
    async def test_reconnects_after_server_close(self, monkeypatch):
        monkeypatch.setattr(client_module, "RECONNECT_DELAY", 0)
        joins = []

        async def relay(ws):
            joins.append(json.loads(await ws.recv()))
            if len(joins) == 1:
                await ws.close()
                return
            async for _ in ws:
                pass

        async with websockets.serve(relay, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = SignalingClient(f"http://127.0.0.1:{port}", "room1", "initiator")
            task = asyncio.create_task(client.run())

            await _wait_until(lambda: len(joins) == 2 and client.connected)
            client.stop()
            await asyncio.wait_for(task, timeout=2)

        assert [j["type"] for j in joins] == ["join", "join"]

"""Tests for the websocket transport."""

import asyncio
import socket

import pytest

from lockpick.config import ChannelConfig
from lockpick.core.channel import ReconnectBackoff, WebSocketChannel, serve_relay


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestReconnectBackoff:
    """Tests for ReconnectBackoff."""

    def test_doubles_until_cap(self):
        backoff = ReconnectBackoff(base_delay=1.0, max_delay=5.0, jitter=0.0)
        assert [backoff.next_delay() for _ in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
        assert backoff.attempt == 5

    def test_reset(self):
        backoff = ReconnectBackoff(base_delay=2.0, jitter=0.0)
        backoff.next_delay()
        backoff.next_delay()
        backoff.reset()
        assert backoff.next_delay() == 2.0


class TestWebSocketChannel:
    """Tests for WebSocketChannel."""

    @pytest.mark.asyncio
    async def test_emit_while_disconnected_raises(self):
        channel = WebSocketChannel(ChannelConfig(uri="ws://127.0.0.1:1"))
        with pytest.raises(ConnectionError):
            await channel.emit({"type": "updateChallenge"})

    @pytest.mark.asyncio
    async def test_dispatch_skips_bad_frames(self):
        channel = WebSocketChannel()
        received = []

        async def handler(message):
            received.append(message)

        channel.subscribe(handler)
        await channel._dispatch("not json")
        await channel._dispatch(b"\xff\xfe{")
        await channel._dispatch('{"type": "openChallenge"}')

        assert received == [{"type": "openChallenge"}]

    @pytest.mark.asyncio
    async def test_relay_forwards_to_other_clients(self):
        port = free_port()
        stop = asyncio.Event()
        relay = asyncio.create_task(serve_relay("127.0.0.1", port, stop=stop))

        uri = f"ws://127.0.0.1:{port}"
        sender = WebSocketChannel(ChannelConfig(uri=uri, reconnect_base_delay=0.5))
        receiver = WebSocketChannel(ChannelConfig(uri=uri, reconnect_base_delay=0.5))
        sender_echo: list = []
        received: asyncio.Queue = asyncio.Queue()

        async def on_sender(message):
            sender_echo.append(message)

        sender.subscribe(on_sender)
        receiver.subscribe(received.put)

        tasks = [asyncio.create_task(sender.connect()), asyncio.create_task(receiver.connect())]
        try:
            assert await sender.wait_connected(timeout=5)
            assert await receiver.wait_connected(timeout=5)

            await sender.emit({"type": "updateChallenge", "payload": {"n": 1}})
            message = await asyncio.wait_for(received.get(), timeout=5)

            assert message == {"type": "updateChallenge", "payload": {"n": 1}}
            assert sender_echo == []
        finally:
            await sender.stop()
            await receiver.stop()
            stop.set()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, relay, return_exceptions=True)

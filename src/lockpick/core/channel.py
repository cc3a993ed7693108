"""WebSocket transport for challenge broadcasts.

Clients connect to a relay that forwards each text frame to every other
connected client. The transport is best-effort: it reconnects the socket with
backoff, but a message sent while disconnected is dropped, never retried.
"""

import asyncio
import json
import logging
import random
from typing import Any

import websockets

from ..config import ChannelConfig
from .collaborators import MessageHandler

logger = logging.getLogger(__name__)


class ReconnectBackoff:
    """Exponential backoff with jitter for reconnection."""

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        jitter: float = 0.1
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._attempt = 0

    def next_delay(self) -> float:
        """Get next delay and increment attempt counter."""
        delay = min(self.base_delay * (2 ** self._attempt), self.max_delay)
        jitter_range = delay * self.jitter
        delay += random.uniform(-jitter_range, jitter_range)
        self._attempt += 1
        return max(0.5, delay)

    def reset(self):
        """Reset on successful connection."""
        self._attempt = 0

    @property
    def attempt(self) -> int:
        return self._attempt


class WebSocketChannel:
    """Broadcast channel backed by a websocket relay.

    Features:
    - Exponential backoff reconnection
    - Outgoing queue drained by a dedicated sender coroutine (keeps send order)
    - Incoming JSON frames dispatched to every subscriber
    """

    def __init__(self, config: ChannelConfig | None = None):
        self._config = config or ChannelConfig()
        self.uri = self._config.uri
        self.websocket = None
        self.running = False
        self._handlers: list[MessageHandler] = []
        self._send_queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self._config.send_queue_max_size)
        self._sender_task: asyncio.Task | None = None
        self._connected = asyncio.Event()
        self._backoff = ReconnectBackoff(
            base_delay=self._config.reconnect_base_delay,
            max_delay=self._config.reconnect_max_delay,
            jitter=self._config.reconnect_jitter,
        )

    @property
    def connected(self) -> bool:
        return self.websocket is not None

    def subscribe(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    async def wait_connected(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def emit(self, message: dict[str, Any]) -> None:
        """Queue a message for sending.

        Raises:
            ConnectionError: If the relay connection is down.
            asyncio.QueueFull: If the sender has fallen behind.
        """
        if not self.connected:
            raise ConnectionError(f"Not connected to {self.uri}")
        self._send_queue.put_nowait(json.dumps(message))

    async def connect(self) -> None:
        """Connect and receive until stopped, reconnecting with backoff."""
        self.running = True

        while self.running:
            try:
                logger.info(f"Connecting to {self.uri}... (attempt {self._backoff.attempt + 1})")

                async with websockets.connect(
                    self.uri,
                    ping_interval=self._config.ping_interval,
                    ping_timeout=self._config.ping_timeout,
                    close_timeout=5,
                ) as websocket:
                    self.websocket = websocket
                    self._connected.set()
                    self._backoff.reset()
                    logger.info(f"Connected to relay {self.uri}")

                    self._sender_task = asyncio.create_task(self._sender())

                    try:
                        async for frame in websocket:
                            await self._dispatch(frame)
                    finally:
                        self.websocket = None
                        self._connected.clear()
                        if self._sender_task:
                            self._sender_task.cancel()
                            try:
                                await self._sender_task
                            except asyncio.CancelledError:
                                pass
                            self._sender_task = None

            except asyncio.CancelledError:
                raise
            except websockets.ConnectionClosed as e:
                if not self.running:
                    break
                delay = self._backoff.next_delay()
                logger.warning(f"Connection closed (code={e.code}), reconnecting in {delay:.1f}s...")
                await asyncio.sleep(delay)
            except Exception as e:
                if not self.running:
                    break
                delay = self._backoff.next_delay()
                logger.error(f"Connection error: {e}, reconnecting in {delay:.1f}s...")
                await asyncio.sleep(delay)

    async def _dispatch(self, frame: str | bytes) -> None:
        try:
            data = json.loads(frame)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to parse message: {e}")
            return

        for handler in list(self._handlers):
            try:
                await handler(data)
            except Exception as e:
                logger.error(f"Error handling message: {e}", exc_info=True)

    async def _sender(self) -> None:
        """Send queued frames in order. A failed send is dropped."""
        while self.running:
            try:
                frame = await self._send_queue.get()
                websocket = self.websocket
                if websocket is None:
                    logger.warning("Dropping message, relay connection lost")
                    continue
                try:
                    await websocket.send(frame)
                except Exception as e:
                    logger.error(f"Failed to send message: {e}")
            except asyncio.CancelledError:
                break

    async def stop(self) -> None:
        """Stop the channel and close the socket."""
        self.running = False
        logger.info("Stopping websocket channel...")
        if self.websocket is not None:
            await self.websocket.close()


async def serve_relay(host: str = "localhost", port: int = 8765, stop: asyncio.Event | None = None) -> None:
    """Run a relay that forwards every frame to all other connected clients.

    Runs until ``stop`` is set (or forever when no event is given).
    """
    clients: set = set()

    async def handler(websocket) -> None:
        clients.add(websocket)
        logger.info(f"Client connected ({len(clients)} total)")
        try:
            async for frame in websocket:
                others = [c for c in clients if c is not websocket]
                websockets.broadcast(others, frame)
        except websockets.ConnectionClosed:
            pass
        finally:
            clients.discard(websocket)
            logger.info(f"Client disconnected ({len(clients)} total)")

    async with websockets.serve(handler, host, port):
        logger.info(f"Relay listening on ws://{host}:{port}")
        await (stop or asyncio.Event()).wait()

"""In-process broadcast hub for running several clients on one event loop.

Messages are JSON-encoded on emit and decoded on delivery, so anything that
would not survive the wire fails here too. The sender never receives its
own message.
"""

import asyncio
import json
import logging
from collections import deque
from typing import Any

from ..core.collaborators import MessageHandler

logger = logging.getLogger(__name__)


class LocalChannel:
    """One client's connection to a LocalBroadcastHub."""

    def __init__(self, hub: "LocalBroadcastHub", client_id: str):
        self.hub = hub
        self.client_id = client_id
        self.handlers: list[MessageHandler] = []
        self.sent: list[dict[str, Any]] = []
        self.fail_sends = False

    def subscribe(self, handler: MessageHandler) -> None:
        self.handlers.append(handler)

    async def emit(self, message: dict[str, Any]) -> None:
        if self.fail_sends:
            raise ConnectionError(f"Channel for {self.client_id} is down")
        frame = json.dumps(message)
        self.sent.append(json.loads(frame))
        self.hub.publish(self.client_id, frame)

    async def deliver(self, frame: str) -> None:
        data = json.loads(frame)
        for handler in list(self.handlers):
            try:
                await handler(data)
            except Exception as e:
                logger.error(f"[{self.client_id}] Error handling message: {e}", exc_info=True)


class LocalBroadcastHub:
    """Fan-out of frames between LocalChannels.

    With ``auto_deliver`` off, frames wait in a queue until ``drain`` is
    awaited, which lets tests control exactly when each client sees a message.
    """

    def __init__(self, auto_deliver: bool = False):
        self.auto_deliver = auto_deliver
        self.channels: dict[str, LocalChannel] = {}
        self.pending: deque[tuple[str, str]] = deque()
        self._tasks: set[asyncio.Task] = set()

    def connect(self, client_id: str) -> LocalChannel:
        channel = LocalChannel(self, client_id)
        self.channels[client_id] = channel
        return channel

    def disconnect(self, client_id: str) -> None:
        self.channels.pop(client_id, None)

    def publish(self, sender_id: str, frame: str) -> None:
        self.pending.append((sender_id, frame))
        if self.auto_deliver:
            task = asyncio.get_running_loop().create_task(self.drain())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def drain(self) -> int:
        """Deliver every pending frame, including ones emitted while draining.

        Returns:
            Number of frames delivered.
        """
        delivered = 0
        while self.pending:
            sender_id, frame = self.pending.popleft()
            for client_id, channel in list(self.channels.items()):
                if client_id != sender_id:
                    await channel.deliver(frame)
            delivered += 1
        return delivered

    def drop_pending(self) -> int:
        """Discard undelivered frames, as a lossy transport might."""
        dropped = len(self.pending)
        self.pending.clear()
        return dropped

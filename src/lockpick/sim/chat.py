"""Chat and roll collaborators for simulation and tests."""

import logging
from collections import deque
from dataclasses import dataclass

from ..core.models import RollResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatEntry:
    actor_ref: str
    message: str


class ChatLog:
    """Records posted chat messages."""

    def __init__(self):
        self.entries: list[ChatEntry] = []

    def post(self, actor_ref: str, message: str) -> None:
        self.entries.append(ChatEntry(actor_ref, message))
        logger.debug(f"[chat] {actor_ref}: {message}")

    @property
    def messages(self) -> list[str]:
        return [entry.message for entry in self.entries]

    def clear(self) -> None:
        self.entries.clear()


class ScriptedRoller:
    """Roll collaborator that returns queued results in order.

    Queue ``None`` to simulate a cancelled roll, or an exception instance to
    simulate a failing dice subsystem.
    """

    def __init__(self, results: list[RollResult | Exception | None] | None = None):
        self._results: deque = deque(results or [])
        self.calls: list[tuple[str, int]] = []

    def queue(self, *results: RollResult | Exception | None) -> None:
        self._results.extend(results)

    async def roll_check(self, actor_ref: str, dc: int) -> RollResult | None:
        self.calls.append((actor_ref, dc))
        if not self._results:
            raise RuntimeError("ScriptedRoller has no results left")
        result = self._results.popleft()
        if isinstance(result, Exception):
            raise result
        return result

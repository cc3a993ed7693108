"""Interfaces of the external systems the core talks to.

The core never reaches into a document store, dice engine, chat log, or UI
toolkit directly; it only sees these protocols. In-memory implementations
live in ``lockpick.sim``.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from .models import Challenge, RollResult

DEFAULT_ITEM_KIND = "equipment"

# Ownership level that marks a user as an actor's owner
OWNER_LEVEL = 3


@dataclass
class InventoryItem:
    """One item stack in an actor's inventory."""

    id: str
    name: str
    slug: str
    quantity: int | None = 1
    kind: str = DEFAULT_ITEM_KIND
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def stack_count(self) -> int:
        """Quantity, treating an unset quantity as a single item."""
        return 1 if self.quantity is None else self.quantity


class Inventory(Protocol):
    """Per-actor item store."""

    def list_items(self, kind: str = DEFAULT_ITEM_KIND) -> list[InventoryItem]: ...

    async def update_quantity(self, item: InventoryItem, quantity: int) -> None: ...

    async def rename(self, item: InventoryItem, new_name: str) -> None: ...

    async def delete(self, item: InventoryItem) -> None: ...

    async def create_from_template(
        self, source: InventoryItem, overrides: dict[str, Any]
    ) -> InventoryItem: ...


@dataclass
class Actor:
    """A character that attempts challenges."""

    ref: str
    name: str
    inventory: Inventory
    ownership: dict[str, int] = field(default_factory=dict)
    thievery_modifier: int = 0


class ActorLookup(Protocol):
    async def resolve(self, actor_ref: str) -> Actor | None: ...


class UserDirectory(Protocol):
    def is_gm(self, user_id: str) -> bool: ...


class RollCollaborator(Protocol):
    """Produces a raw check total. ``None`` means the roll was cancelled."""

    async def roll_check(self, actor_ref: str, dc: int) -> RollResult | None: ...


class ChatCollaborator(Protocol):
    """Fire-and-forget chat output."""

    def post(self, actor_ref: str, message: str) -> None: ...


MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]


class BroadcastChannel(Protocol):
    """Unordered, at-most-once broadcast to every other client."""

    async def emit(self, message: dict[str, Any]) -> None: ...

    def subscribe(self, handler: MessageHandler) -> None: ...


class ChallengeView(Protocol):
    """A live display bound to one challenge id."""

    challenge_id: str
    is_gm_view: bool

    async def render(self, challenge: Challenge) -> None: ...

    def close(self) -> None: ...


ViewFactory = Callable[[Challenge, bool], ChallengeView]

"""In-memory inventory and actor store."""

import copy
import logging
import uuid
from typing import Any

from ..core.collaborators import DEFAULT_ITEM_KIND, Actor, InventoryItem

logger = logging.getLogger(__name__)


class InventoryOperationError(RuntimeError):
    """Raised by MemoryInventory when an operation has been set up to fail."""

    pass


class MemoryInventory:
    """Inventory held in a dict, with per-operation failure injection.

    Args:
        items: Initial stacks.
        fail_on: Operation names ("update_quantity", "rename", "delete",
            "create_from_template") that should raise.
    """

    def __init__(self, items: list[InventoryItem] | None = None, fail_on: set[str] | None = None):
        self._items: dict[str, InventoryItem] = {}
        for item in items or []:
            self._items[item.id] = item
        self.fail_on = set(fail_on or ())
        self.operations: list[tuple[str, str]] = []

    def _record(self, operation: str, item_id: str) -> None:
        if operation in self.fail_on:
            raise InventoryOperationError(f"{operation} failed for {item_id}")
        self.operations.append((operation, item_id))

    def _require(self, item: InventoryItem) -> InventoryItem:
        stored = self._items.get(item.id)
        if stored is None:
            raise KeyError(f"Unknown item: {item.id}")
        return stored

    def list_items(self, kind: str = DEFAULT_ITEM_KIND) -> list[InventoryItem]:
        return [item for item in self._items.values() if item.kind == kind]

    def get(self, item_id: str) -> InventoryItem | None:
        return self._items.get(item_id)

    def add(self, item: InventoryItem) -> InventoryItem:
        self._items[item.id] = item
        return item

    async def update_quantity(self, item: InventoryItem, quantity: int) -> None:
        self._record("update_quantity", item.id)
        self._require(item).quantity = quantity

    async def rename(self, item: InventoryItem, new_name: str) -> None:
        self._record("rename", item.id)
        self._require(item).name = new_name

    async def delete(self, item: InventoryItem) -> None:
        self._record("delete", item.id)
        self._items.pop(item.id, None)

    async def create_from_template(self, source: InventoryItem, overrides: dict[str, Any]) -> InventoryItem:
        self._record("create_from_template", source.id)
        created = InventoryItem(
            id=uuid.uuid4().hex[:16],
            name=overrides.get("name", source.name),
            slug=overrides.get("slug", source.slug),
            quantity=overrides.get("quantity", source.quantity),
            kind=overrides.get("kind", source.kind),
            data=copy.deepcopy(source.data),
        )
        self._items[created.id] = created
        logger.debug(f"Created {created.name!r} ({created.id}) from {source.id}")
        return created

    def snapshot(self) -> dict[str, tuple[str, int]]:
        """Current state as id -> (name, quantity), for assertions and display."""
        return {item.id: (item.name, item.stack_count) for item in self._items.values()}


class MemoryActorDirectory:
    """Actor lookup backed by a dict."""

    def __init__(self, actors: list[Actor] | None = None):
        self._actors: dict[str, Actor] = {actor.ref: actor for actor in actors or []}

    def add(self, actor: Actor) -> Actor:
        self._actors[actor.ref] = actor
        return actor

    def remove(self, actor_ref: str) -> None:
        self._actors.pop(actor_ref, None)

    def all(self) -> list[Actor]:
        return list(self._actors.values())

    async def resolve(self, actor_ref: str) -> Actor | None:
        return self._actors.get(actor_ref)


class MemoryUserDirectory:
    """Known users and their GM flag."""

    def __init__(self, users: dict[str, bool] | None = None):
        self._users = dict(users or {})

    def add(self, user_id: str, is_gm: bool = False) -> None:
        self._users[user_id] = is_gm

    def is_gm(self, user_id: str) -> bool:
        return self._users.get(user_id, False)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

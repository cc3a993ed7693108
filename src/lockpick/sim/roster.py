"""
Load a table roster (users, actors, inventories) from YAML.

A roster stands in for the character document store when running clients
outside a game host. Every client at the table loads the same roster file.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from ..core.collaborators import DEFAULT_ITEM_KIND, OWNER_LEVEL, Actor, InventoryItem
from ..core.errors import LockPickError
from .inventory import MemoryActorDirectory, MemoryInventory, MemoryUserDirectory

logger = logging.getLogger(__name__)


class RosterValidationError(LockPickError):
    """Raised when a roster file fails validation."""

    pass


class UserDefinition(BaseModel):
    id: str = Field(min_length=1)
    name: str = ""
    is_gm: bool = False


class ItemDefinition(BaseModel):
    id: str = Field(min_length=1)
    name: str
    slug: str
    quantity: int | None = Field(default=1, ge=0)
    kind: str = DEFAULT_ITEM_KIND


class ActorDefinition(BaseModel):
    ref: str = Field(min_length=1)
    name: str
    thievery_modifier: int = 0
    owners: list[str] = Field(default_factory=list, description="User ids with owner access")
    items: list[ItemDefinition] = Field(default_factory=list)


class Roster(BaseModel):
    users: list[UserDefinition] = Field(default_factory=list)
    actors: list[ActorDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_references(self) -> "Roster":
        user_ids = [u.id for u in self.users]
        if len(set(user_ids)) != len(user_ids):
            raise ValueError("Duplicate user ids in roster")

        actor_refs = [a.ref for a in self.actors]
        if len(set(actor_refs)) != len(actor_refs):
            raise ValueError("Duplicate actor refs in roster")

        for actor in self.actors:
            unknown = [o for o in actor.owners if o not in user_ids]
            if unknown:
                raise ValueError(f"Actor {actor.ref} has unknown owners: {unknown}")
            item_ids = [i.id for i in actor.items]
            if len(set(item_ids)) != len(item_ids):
                raise ValueError(f"Actor {actor.ref} has duplicate item ids")
        return self


class Table:
    """The collaborators a roster produces."""

    def __init__(self, roster: Roster):
        self.roster = roster
        self.users = MemoryUserDirectory({u.id: u.is_gm for u in roster.users})
        self.user_names = {u.id: u.name or u.id for u in roster.users}
        self.actors = MemoryActorDirectory([build_actor(a) for a in roster.actors])


def build_actor(definition: ActorDefinition) -> Actor:
    inventory = MemoryInventory(
        [
            InventoryItem(
                id=item.id,
                name=item.name,
                slug=item.slug,
                quantity=item.quantity,
                kind=item.kind,
            )
            for item in definition.items
        ]
    )
    return Actor(
        ref=definition.ref,
        name=definition.name,
        inventory=inventory,
        ownership={owner: OWNER_LEVEL for owner in definition.owners},
        thievery_modifier=definition.thievery_modifier,
    )


def load_roster(path: Path | str) -> Table:
    """Load and validate a roster file.

    Raises:
        RosterValidationError: If the file is empty or fails validation.
        FileNotFoundError: If the file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Roster file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f)

    if not raw_data:
        raise RosterValidationError("Empty roster file")

    try:
        roster = Roster(**raw_data)
    except Exception as e:
        raise RosterValidationError(f"Roster validation failed: {e}") from e

    logger.info(f"Loaded roster from {path}: {len(roster.users)} users, {len(roster.actors)} actors")
    return Table(roster)

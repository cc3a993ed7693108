"""In-memory collaborators for running and testing lock-pick clients."""

from .chat import (
    ChatEntry,
    ChatLog,
    ScriptedRoller,
)
from .hub import (
    LocalBroadcastHub,
    LocalChannel,
)
from .inventory import (
    InventoryOperationError,
    MemoryActorDirectory,
    MemoryInventory,
    MemoryUserDirectory,
)
from .roster import (
    ActorDefinition,
    ItemDefinition,
    Roster,
    RosterValidationError,
    Table,
    UserDefinition,
    build_actor,
    load_roster,
)

__all__ = [
    "ActorDefinition",
    "ChatEntry",
    "ChatLog",
    "InventoryOperationError",
    "ItemDefinition",
    "LocalBroadcastHub",
    "LocalChannel",
    "MemoryActorDirectory",
    "MemoryInventory",
    "MemoryUserDirectory",
    "Roster",
    "RosterValidationError",
    "ScriptedRoller",
    "Table",
    "UserDefinition",
    "build_actor",
    "load_roster",
]

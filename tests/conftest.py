"""Shared fixtures: an in-memory table with one GM and two players."""

from dataclasses import dataclass, field

import pytest

from lockpick.core.collaborators import OWNER_LEVEL, Actor, InventoryItem
from lockpick.core.consumption import ResourceConsumptionPolicy
from lockpick.core.controller import ChallengeController
from lockpick.core.localization import Localizer
from lockpick.core.models import Challenge, ClientIdentity, RollResult
from lockpick.core.protocol import ChallengeSyncProtocol
from lockpick.core.registry import ChallengeRegistry
from lockpick.core.views import ViewRegistry
from lockpick.sim import (
    ChatLog,
    LocalBroadcastHub,
    LocalChannel,
    MemoryActorDirectory,
    MemoryInventory,
    MemoryUserDirectory,
    ScriptedRoller,
)

VALEROS = "Actor.valeros"


class RecordingView:
    """Challenge view that remembers what it was asked to draw."""

    def __init__(self, challenge: Challenge, is_gm_view: bool):
        self.challenge_id = challenge.id
        self.is_gm_view = is_gm_view
        self.renders: list[Challenge] = []
        self.closed = False

    async def render(self, challenge: Challenge) -> None:
        self.renders.append(challenge)

    def close(self) -> None:
        self.closed = True


@dataclass
class Client:
    identity: ClientIdentity
    registry: ChallengeRegistry
    views: ViewRegistry
    channel: LocalChannel
    protocol: ChallengeSyncProtocol
    controller: ChallengeController
    roller: ScriptedRoller
    chat: ChatLog
    opened: list[RecordingView] = field(default_factory=list)


def roll(total: int, natural_die: int | None = None) -> RollResult:
    return RollResult(total=total, natural_die=natural_die)


def build_client(
    hub: LocalBroadcastHub,
    identity: ClientIdentity,
    actors: MemoryActorDirectory,
    users: MemoryUserDirectory,
    localizer: Localizer,
    policy: ResourceConsumptionPolicy,
) -> Client:
    """Wire one client onto the hub the way the application does."""
    registry = ChallengeRegistry()
    views = ViewRegistry()
    channel = hub.connect(identity.user_id)
    protocol = ChallengeSyncProtocol(identity, registry, views, channel)
    opened: list[RecordingView] = []

    def view_factory(challenge: Challenge, is_gm_view: bool) -> RecordingView:
        view = RecordingView(challenge, is_gm_view)
        opened.append(view)
        return view

    roller = ScriptedRoller()
    chat = ChatLog()
    controller = ChallengeController(
        identity=identity,
        registry=registry,
        views=views,
        protocol=protocol,
        actors=actors,
        users=users,
        roller=roller,
        chat=chat,
        policy=policy,
        localizer=localizer,
        view_factory=view_factory,
    )
    protocol.open_view = controller.open_view
    protocol.attach()
    return Client(identity, registry, views, channel, protocol, controller, roller, chat, opened)


@pytest.fixture
def localizer():
    return Localizer.load()


@pytest.fixture
def policy():
    return ResourceConsumptionPolicy()


@pytest.fixture
def users():
    return MemoryUserDirectory({"gm": True, "gm2": True, "alice": False, "bob": False})


@pytest.fixture
def valeros_inventory():
    """One toolkit and two replacement picks."""
    return MemoryInventory(
        [
            InventoryItem(id="tk1", name="Thieves' Toolkit", slug="thieves-toolkit", quantity=1),
            InventoryItem(id="rp1", name="Replacement Picks", slug="thieves-toolkit-replacement-picks", quantity=2),
        ]
    )


@pytest.fixture
def actors(valeros_inventory):
    # The GM is listed first so beneficiary selection has to skip it
    valeros = Actor(
        ref=VALEROS,
        name="Valeros",
        inventory=valeros_inventory,
        ownership={"gm": OWNER_LEVEL, "alice": OWNER_LEVEL},
        thievery_modifier=9,
    )
    return MemoryActorDirectory([valeros])


@pytest.fixture
def hub():
    return LocalBroadcastHub()


@pytest.fixture
def gm(hub, actors, users, localizer, policy):
    return build_client(hub, ClientIdentity("gm", is_gm=True, name="GM"), actors, users, localizer, policy)


@pytest.fixture
def gm2(hub, actors, users, localizer, policy):
    return build_client(hub, ClientIdentity("gm2", is_gm=True, name="Co-GM"), actors, users, localizer, policy)


@pytest.fixture
def alice(hub, actors, users, localizer, policy):
    return build_client(hub, ClientIdentity("alice", name="Alice"), actors, users, localizer, policy)


@pytest.fixture
def bob(hub, actors, users, localizer, policy):
    return build_client(hub, ClientIdentity("bob", name="Bob"), actors, users, localizer, policy)

"""Lock-pick client application - lifecycle management and wiring."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Coroutine, Optional

from rich.console import Console

from lockpick.config import LockPickConfig
from lockpick.console import ConsoleChat, ConsoleView
from lockpick.core.channel import WebSocketChannel
from lockpick.core.collaborators import (
    ActorLookup,
    BroadcastChannel,
    ChallengeView,
    ChatCollaborator,
    RollCollaborator,
    UserDirectory,
)
from lockpick.core.consumption import ResourceConsumptionPolicy
from lockpick.core.controller import ChallengeController
from lockpick.core.dice import D20Roller
from lockpick.core.localization import Localizer
from lockpick.core.models import Challenge, ClientIdentity
from lockpick.core.presenter import ChallengePresenter
from lockpick.core.protocol import ChallengeSyncProtocol
from lockpick.core.registry import ChallengeRegistry
from lockpick.core.tracing import init_tracing
from lockpick.core.views import ViewRegistry
from lockpick.sim.chat import ChatLog


logger = logging.getLogger("lockpick")


class AppState(Enum):
    """Application lifecycle states."""
    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class Services:
    """Container for all per-client services."""
    config: LockPickConfig
    identity: ClientIdentity
    registry: ChallengeRegistry
    views: ViewRegistry
    localizer: Localizer
    policy: ResourceConsumptionPolicy
    presenter: ChallengePresenter
    channel: BroadcastChannel
    protocol: ChallengeSyncProtocol
    controller: ChallengeController


class LockPickApplication:
    """One client at the table.

    Builds the registry, view tracking, protocol and controller once at
    startup and hands them to each other explicitly; nothing is global.
    """

    def __init__(
        self,
        config: LockPickConfig,
        actors: ActorLookup,
        users: UserDirectory,
        roller: Optional[RollCollaborator] = None,
        chat: Optional[ChatCollaborator] = None,
        channel: Optional[BroadcastChannel] = None,
        console: Optional[Console] = None,
    ):
        """Initialize application with validated configuration.

        Args:
            config: Validated LockPickConfig instance.
            actors: Actor and inventory store.
            users: User directory (GM flags).
            roller: Roll collaborator. Defaults to a d20 + Thievery roller.
            chat: Chat collaborator. Defaults to console output, or a
                ChatLog when running headless.
            channel: Broadcast channel. Defaults to the websocket relay.
            console: Console for views; None runs without views.
        """
        self.config = config
        self.actors = actors
        self.users = users
        self.console = console
        self._roller = roller
        self._chat = chat
        self._channel = channel
        self.state = AppState.CREATED
        self.services: Optional[Services] = None
        self._shutdown_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    async def initialize(self) -> Services:
        """Build and wire all services.

        Raises:
            RuntimeError: If initialization fails.
        """
        if self.state != AppState.CREATED:
            raise RuntimeError(f"Cannot initialize from state: {self.state}")

        self.state = AppState.STARTING
        logger.info("Initializing lock-pick client...")

        try:
            init_tracing()

            client = self.config.client
            identity = ClientIdentity(user_id=client.user_id, is_gm=client.is_gm, name=client.user_name)

            localizer = Localizer.load(
                self.config.localization.language,
                self.config.localization.catalog_dir,
            )
            challenge_cfg = self.config.challenge
            policy = ResourceConsumptionPolicy(
                tool_slugs=challenge_cfg.tool_slugs,
                replacement_slugs=challenge_cfg.replacement_slugs,
                broken_suffix=challenge_cfg.broken_suffix,
                item_kind=challenge_cfg.item_kind,
            )

            registry = ChallengeRegistry()
            views = ViewRegistry()
            presenter = ChallengePresenter(registry, self.actors, policy, localizer)
            channel = self._channel or WebSocketChannel(self.config.channel)
            protocol = ChallengeSyncProtocol(identity, registry, views, channel)

            controller = ChallengeController(
                identity=identity,
                registry=registry,
                views=views,
                protocol=protocol,
                actors=self.actors,
                users=self.users,
                roller=self._roller or D20Roller(self.actors),
                chat=self._chat or self._default_chat(),
                policy=policy,
                localizer=localizer,
                view_factory=self._view_factory(presenter, localizer),
            )
            protocol.open_view = controller.open_view
            protocol.attach()

            self.services = Services(
                config=self.config,
                identity=identity,
                registry=registry,
                views=views,
                localizer=localizer,
                policy=policy,
                presenter=presenter,
                channel=channel,
                protocol=protocol,
                controller=controller,
            )
            logger.info(f"Client ready as {identity.user_id} ({'GM' if identity.is_gm else 'player'})")
            return self.services

        except Exception as e:
            self.state = AppState.FAILED
            logger.error(f"Initialization failed: {e}", exc_info=True)
            raise RuntimeError(f"Failed to initialize lock-pick client: {e}") from e

    def _default_chat(self) -> ChatCollaborator:
        if self.console is None:
            return ChatLog()
        return ConsoleChat(self.console)

    def _view_factory(self, presenter: ChallengePresenter, localizer: Localizer):
        if self.console is None:
            return None
        console = self.console

        def factory(challenge: Challenge, is_gm_view: bool) -> ChallengeView:
            return ConsoleView(challenge, is_gm_view, presenter, localizer, console)

        return factory

    async def run(self, *workloads: Coroutine[Any, Any, Any]) -> None:
        """Run the channel (and any extra workloads) until one ends or shutdown.

        Args:
            workloads: Extra coroutines to run alongside the channel, such as
                a command shell. When any finishes, the application stops.
        """
        if self.state != AppState.STARTING or self.services is None:
            raise RuntimeError(f"Cannot run from state: {self.state}")

        self.state = AppState.RUNNING
        self._setup_signal_handlers()

        try:
            connect = getattr(self.services.channel, "connect", None)
            if connect is not None:
                self._tasks.append(asyncio.create_task(connect(), name="channel"))
            for i, workload in enumerate(workloads):
                self._tasks.append(asyncio.create_task(workload, name=f"workload-{i}"))
            self._tasks.append(asyncio.create_task(self._shutdown_event.wait(), name="shutdown"))

            done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)

            for task in done:
                if not task.cancelled() and task.exception():
                    logger.error(f"Task {task.get_name()} failed: {task.exception()}")

        except asyncio.CancelledError:
            logger.info("Application cancelled")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Gracefully shutdown all services."""
        if self.state in (AppState.STOPPING, AppState.STOPPED):
            return

        self.state = AppState.STOPPING
        logger.info("Shutting down lock-pick client...")

        if self.services:
            stop = getattr(self.services.channel, "stop", None)
            if stop is not None:
                try:
                    await stop()
                except Exception as e:
                    logger.warning(f"Error stopping channel: {e}")

        for task in self._tasks:
            if not task.done():
                task.cancel()
                try:
                    await asyncio.wait_for(task, timeout=5.0)
                except (asyncio.CancelledError, asyncio.TimeoutError):
                    pass

        self.state = AppState.STOPPED
        logger.info("Lock-pick client stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown (can be called from signal handlers)."""
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        def signal_handler(sig: signal.Signals) -> None:
            logger.info(f"Received signal {sig.name}, requesting shutdown...")
            self.request_shutdown()

        # On Windows, KeyboardInterrupt is caught by the entry script instead
        if sys.platform != "win32":
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

"""
Rich console front end: challenge views, chat output, and a command shell.

Stands in for the host UI when a client runs from a terminal.
"""

import asyncio
import logging
import shlex

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .core.controller import AttemptOutcome, ChallengeController
from .core.localization import LocalizationKey, Localizer
from .core.models import Challenge
from .core.presenter import ChallengePresenter, ViewState
from .core.registry import ChallengeRegistry

logger = logging.getLogger(__name__)

PROGRESS_WIDTH = 20


def progress_bar(fraction: float, width: int = PROGRESS_WIDTH) -> str:
    filled = int(round(fraction * width))
    return "█" * filled + "░" * (width - filled)


def render_view_state(state: ViewState, localizer: Localizer) -> Panel:
    """Build the panel for one challenge view."""
    t = localizer.lookup
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()

    grid.add_row(f"{t(LocalizationKey.VIEW_CHARACTER)}:", state.actor_name)
    if state.is_gm_view:
        grid.add_row(f"{t(LocalizationKey.VIEW_DC)}:", str(state.dc))
        grid.add_row(f"{t(LocalizationKey.VIEW_REQUIRED)}:", str(state.required_attempts))
        successes = f"{state.success_count} / {state.required_attempts}"
    else:
        successes = str(state.success_count)
    grid.add_row(f"{t(LocalizationKey.VIEW_SUCCESSES)}:", successes)
    grid.add_row(f"{t(LocalizationKey.VIEW_REMAINING_PICKS)}:", str(state.remaining_picks))

    if state.tool_options:
        tools = Text()
        for i, option in enumerate(state.tool_options):
            if i:
                tools.append(", ")
            label = f"{option.name} (x{option.quantity}) [{option.id}]"
            tools.append(label, style="bold green" if option.selected else "")
    else:
        tools = Text(t(LocalizationKey.VIEW_NO_TOOLKIT), style="dim")
    grid.add_row(f"{t(LocalizationKey.VIEW_TOOLKIT)}:", tools)

    grid.add_row("", progress_bar(state.progress))

    label = t(LocalizationKey.VIEW_CLOSE) if state.is_unlocked else t(LocalizationKey.VIEW_PICK_LOCK)
    grid.add_row("", Text(f"[ {label} ]", style="bold" if state.button_enabled else "dim strike"))

    return Panel(
        grid,
        title=f"{t(LocalizationKey.VIEW_TITLE)} · {state.challenge_id}",
        border_style="green" if state.is_unlocked else "cyan",
        box=box.ROUNDED,
    )


class ConsoleView:
    """A challenge view that prints a panel on every render."""

    def __init__(
        self,
        challenge: Challenge,
        is_gm_view: bool,
        presenter: ChallengePresenter,
        localizer: Localizer,
        console: Console,
    ):
        self.challenge_id = challenge.id
        self.is_gm_view = is_gm_view
        self.presenter = presenter
        self.localizer = localizer
        self.console = console
        self.closed = False
        self.last_state: ViewState | None = None

    async def render(self, challenge: Challenge) -> None:
        if self.closed:
            return
        self.last_state = await self.presenter.build(challenge, self.is_gm_view)
        self.console.print(render_view_state(self.last_state, self.localizer))

    def close(self) -> None:
        self.closed = True
        self.console.print(f"[dim]Closed view for {self.challenge_id}[/dim]")


class ConsoleChat:
    """Chat collaborator that prints to the console."""

    def __init__(self, console: Console, actor_names: dict[str, str] | None = None):
        self.console = console
        self.actor_names = actor_names or {}

    def post(self, actor_ref: str, message: str) -> None:
        speaker = self.actor_names.get(actor_ref, actor_ref)
        self.console.print(Panel(message, title=f"💬 {speaker}", border_style="magenta", box=box.SIMPLE))


HELP = """\
Commands:
  start <actor_ref> [dc] [required]   start a challenge (GM)
  pick <id> [tool_id]                 attempt to pick the lock
  tool <id> <tool_id>                 choose a toolkit
  inc <id> / dec <id>                 adjust successes (GM)
  restore <id>                        restore one pick (GM)
  surface <id>                        re-announce a challenge (GM)
  end <id>                            close a challenge locally
  list                                list known challenges
  help                                show this help
  quit                                exit"""


class CommandShell:
    """Reads commands from stdin and drives the controller."""

    def __init__(
        self,
        controller: ChallengeController,
        registry: ChallengeRegistry,
        console: Console,
        default_dc: int = 20,
        default_required: int = 2,
    ):
        self.controller = controller
        self.registry = registry
        self.console = console
        self.default_dc = default_dc
        self.default_required = default_required

    async def run(self) -> None:
        self.console.print(HELP)
        while True:
            try:
                line = await asyncio.to_thread(input, "lockpick> ")
            except EOFError:
                break
            if not await self.execute(line):
                break

    async def execute(self, line: str) -> bool:
        """Run one command line. Returns False when the shell should exit."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.console.print(f"[red]{e}[/red]")
            return True
        if not parts:
            return True

        command, args = parts[0].lower(), parts[1:]
        if command in ("quit", "exit"):
            return False
        if command == "help":
            self.console.print(HELP)
        elif command == "list":
            self._list()
        elif command == "start" and args:
            dc = args[1] if len(args) > 1 else self.default_dc
            required = args[2] if len(args) > 2 else self.default_required
            challenge = await self.controller.start_challenge(args[0], dc, required)
            if challenge is None:
                title = self.controller.localizer.lookup(LocalizationKey.START_TITLE)
                reason = self.controller.last_refusal or "refused"
                self.console.print(f"[red]{title}: {reason}[/red]")
        elif command == "pick" and args:
            result = await self.controller.attempt(args[0], args[1] if len(args) > 1 else None)
            if result.outcome is not AttemptOutcome.APPLIED:
                self.console.print(f"[yellow]Attempt: {result.outcome.value}[/yellow]")
        elif command == "tool" and len(args) == 2:
            self.controller.select_tool(args[0], args[1])
        elif command in ("inc", "dec") and args:
            await self.controller.adjust_success(args[0], 1 if command == "inc" else -1)
        elif command == "restore" and args:
            result = await self.controller.restore_one(args[0])
            if result is not None:
                self.console.print(f"Restore: {result.value}")
        elif command == "surface" and args:
            await self.controller.surface(args[0])
        elif command == "end" and args:
            self.controller.end_challenge(args[0])
        else:
            self.console.print(f"[red]Unknown or incomplete command: {line.strip()}[/red]")
        return True

    def _list(self) -> None:
        table = Table(title="Challenges", box=box.SIMPLE)
        table.add_column("ID", style="bold")
        table.add_column("Actor")
        table.add_column("DC", justify="right")
        table.add_column("Progress", justify="right")
        table.add_column("Player")
        for challenge in self.registry.all():
            table.add_row(
                challenge.id,
                challenge.actor_ref,
                str(challenge.dc),
                f"{challenge.success_count}/{challenge.required_attempts}",
                challenge.player_id or "-",
            )
        self.console.print(table)

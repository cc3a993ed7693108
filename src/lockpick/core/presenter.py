"""Display data for challenge views."""

import logging
from dataclasses import dataclass, field

from .collaborators import ActorLookup
from .consumption import ResourceConsumptionPolicy
from .localization import LocalizationKey, Localizer
from .models import Challenge
from .registry import ChallengeRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOption:
    id: str
    name: str
    quantity: int
    selected: bool


@dataclass
class ViewState:
    """Everything a view needs to draw one challenge."""

    challenge_id: str
    actor_name: str
    is_gm_view: bool
    success_count: int
    required_attempts: int
    dc: int | None
    remaining_picks: int
    is_unlocked: bool
    can_attempt: bool
    tool_options: list[ToolOption] = field(default_factory=list)

    @property
    def progress(self) -> float:
        if self.required_attempts <= 0:
            return 0.0
        return min(1.0, self.success_count / self.required_attempts)

    @property
    def button_enabled(self) -> bool:
        return self.is_unlocked or self.can_attempt

    @property
    def selected_tool(self) -> ToolOption | None:
        return next((opt for opt in self.tool_options if opt.selected), None)


class ChallengePresenter:
    """Builds ``ViewState`` from the registry and the actor's inventory.

    Building a view also fixes up the tool selection: an unset or stale
    selection is replaced by the first usable toolkit and written to the
    local registry only.
    """

    def __init__(
        self,
        registry: ChallengeRegistry,
        actors: ActorLookup,
        policy: ResourceConsumptionPolicy,
        localizer: Localizer,
    ):
        self.registry = registry
        self.actors = actors
        self.policy = policy
        self.localizer = localizer

    async def build(self, challenge: Challenge, is_gm_view: bool) -> ViewState:
        challenge = self.registry.get(challenge.id) or challenge
        is_unlocked = challenge.is_resolved

        actor = await self.actors.resolve(challenge.actor_ref)
        if actor is None:
            logger.warning(f"Actor {challenge.actor_ref} not found for challenge {challenge.id}")
            return ViewState(
                challenge_id=challenge.id,
                actor_name=self.localizer.lookup(LocalizationKey.VIEW_MISSING_ACTOR),
                is_gm_view=is_gm_view,
                success_count=challenge.success_count,
                required_attempts=challenge.required_attempts,
                dc=challenge.dc if is_gm_view else None,
                remaining_picks=0,
                is_unlocked=is_unlocked,
                can_attempt=False,
            )

        tools = self.policy.classify(actor.inventory)
        challenge = self._reconcile_tool_selection(challenge, [t.id for t in tools.tools_non_broken])

        return ViewState(
            challenge_id=challenge.id,
            actor_name=actor.name,
            is_gm_view=is_gm_view,
            success_count=challenge.success_count,
            required_attempts=challenge.required_attempts,
            dc=challenge.dc if is_gm_view else None,
            remaining_picks=tools.total_picks,
            is_unlocked=is_unlocked,
            can_attempt=tools.total_picks > 0 and not is_unlocked,
            tool_options=[
                ToolOption(
                    id=item.id,
                    name=item.name,
                    quantity=item.stack_count,
                    selected=item.id == challenge.tool_selection,
                )
                for item in tools.tools_non_broken
            ],
        )

    def _reconcile_tool_selection(self, challenge: Challenge, usable_ids: list[str]) -> Challenge:
        if challenge.tool_selection in usable_ids:
            return challenge

        replacement = usable_ids[0] if usable_ids else None
        if replacement == challenge.tool_selection:
            return challenge

        logger.debug(
            f"Tool selection for {challenge.id}: {challenge.tool_selection} -> {replacement}"
        )
        challenge = challenge.model_copy(update={"tool_selection": replacement})
        if challenge.id in self.registry:
            self.registry.put(challenge)
        return challenge

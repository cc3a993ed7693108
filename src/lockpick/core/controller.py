"""Challenge orchestration: pick attempts, arbiter adjustments, challenge start."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .chat import attempt_message, lock_picked_message
from .collaborators import (
    OWNER_LEVEL,
    Actor,
    ActorLookup,
    ChallengeView,
    ChatCollaborator,
    RollCollaborator,
    UserDirectory,
    ViewFactory,
)
from .consumption import ConsumptionResult, ResourceConsumptionPolicy
from .errors import ChallengeValidationError
from .localization import LocalizationKey, Localizer
from .models import (
    MAX_REQUIRED_ATTEMPTS,
    MIN_REQUIRED_ATTEMPTS,
    PROGRESS_BY_DEGREE,
    Challenge,
    ChallengeParams,
    ClientIdentity,
    DegreeOfSuccess,
    RollResult,
)
from .protocol import ChallengeSyncProtocol
from .registry import ChallengeRegistry
from .resolver import resolve_degree
from .tracing import generate_trace_id, span
from .views import ViewRegistry

logger = logging.getLogger(__name__)


class AttemptOutcome(str, Enum):
    """How a pick attempt ended."""

    APPLIED = "applied"  # Roll resolved and state written
    CLOSED = "closed"  # Challenge was already resolved; closed locally
    MISSING_CHALLENGE = "missing_challenge"
    MISSING_ACTOR = "missing_actor"
    NO_PICKS = "no_picks"
    NO_TOOL_SELECTED = "no_tool_selected"
    ROLL_CANCELLED = "roll_cancelled"
    ROLL_FAILED = "roll_failed"


@dataclass
class AttemptResult:
    outcome: AttemptOutcome
    challenge: Challenge | None = None
    roll: RollResult | None = None
    degree: DegreeOfSuccess | None = None
    consumption: ConsumptionResult | None = None
    unlocked: bool = False
    trace_id: str = ""

    @property
    def applied(self) -> bool:
        return self.outcome is AttemptOutcome.APPLIED


def apply_progress(challenge: Challenge, degree: DegreeOfSuccess) -> Challenge:
    """Advance the success count for a degree, clamped to [0, required_attempts]."""
    return challenge.with_success_count(challenge.success_count + PROGRESS_BY_DEGREE[degree])


def select_beneficiary(actor: Actor, users: UserDirectory) -> str | None:
    """Pick the player a challenge is for: a non-GM owner if any, else any owner."""
    owners = [
        user_id
        for user_id, level in actor.ownership.items()
        if user_id != "default" and level >= OWNER_LEVEL
    ]
    non_gm = next((user_id for user_id in owners if not users.is_gm(user_id)), None)
    if non_gm is not None:
        return non_gm
    return owners[0] if owners else None


def normalize_required_attempts(value: Any) -> int:
    """Coerce a requested success count into [2, 6]; unusable input becomes 2."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        return MIN_REQUIRED_ATTEMPTS
    return max(MIN_REQUIRED_ATTEMPTS, min(count, MAX_REQUIRED_ATTEMPTS))


class ChallengeController:
    """Drives challenges on the local client.

    Every mutation follows the same order: write the registry, broadcast the
    full snapshot, then re-render local views. A broadcast failure never rolls
    the local write back.
    """

    def __init__(
        self,
        identity: ClientIdentity,
        registry: ChallengeRegistry,
        views: ViewRegistry,
        protocol: ChallengeSyncProtocol,
        actors: ActorLookup,
        users: UserDirectory,
        roller: RollCollaborator,
        chat: ChatCollaborator,
        policy: ResourceConsumptionPolicy,
        localizer: Localizer,
        view_factory: ViewFactory | None = None,
    ):
        self.identity = identity
        self.registry = registry
        self.views = views
        self.protocol = protocol
        self.actors = actors
        self.users = users
        self.roller = roller
        self.chat = chat
        self.policy = policy
        self.localizer = localizer
        self.view_factory = view_factory
        self.last_refusal: str | None = None

    # === Views ===

    async def open_view(self, challenge: Challenge, is_gm_view: bool | None = None) -> ChallengeView | None:
        """Create, register and render a view for a challenge."""
        if self.view_factory is None:
            logger.debug(f"No view factory, not opening a view for {challenge.id}")
            return None

        gm_view = self.identity.is_gm if is_gm_view is None else is_gm_view
        view = self.view_factory(challenge, gm_view)
        self.views.register(view)
        try:
            await view.render(challenge)
        except Exception as e:
            logger.error(f"Failed to render new view for {challenge.id}: {e}", exc_info=True)
        return view

    def end_challenge(self, challenge_id: str) -> None:
        """Close local views and forget the challenge. Not broadcast."""
        self.views.close_all(challenge_id)
        self.registry.remove(challenge_id)
        logger.info(f"Ended challenge {challenge_id} locally")

    # === Pick attempt ===

    async def attempt(self, challenge_id: str, tool_id: str | None = None) -> AttemptResult:
        """Run one pick attempt for the local user.

        Args:
            challenge_id: Challenge to attempt.
            tool_id: Toolkit chosen in the view; defaults to the stored selection.

        Returns:
            AttemptResult describing what happened. Aborted attempts leave all
            state untouched.
        """
        trace_id = generate_trace_id()
        with span("challenge.attempt", challenge_id=challenge_id, trace_id=trace_id) as s:
            result = await self._attempt(challenge_id, tool_id, trace_id)
            s.set_attributes(outcome=result.outcome.value)
            return result

    async def _attempt(self, challenge_id: str, tool_id: str | None, trace_id: str) -> AttemptResult:
        challenge = self.registry.get(challenge_id)
        if challenge is None:
            logger.warning(f"[{trace_id}] Attempt on unknown challenge {challenge_id}")
            return AttemptResult(AttemptOutcome.MISSING_CHALLENGE, trace_id=trace_id)

        if challenge.is_resolved:
            logger.info(f"[{trace_id}] Challenge {challenge_id} already unlocked, closing")
            self.end_challenge(challenge_id)
            return AttemptResult(AttemptOutcome.CLOSED, challenge=challenge, unlocked=True, trace_id=trace_id)

        actor = await self.actors.resolve(challenge.actor_ref)
        if actor is None:
            logger.warning(f"[{trace_id}] Actor {challenge.actor_ref} missing for challenge {challenge_id}")
            return AttemptResult(AttemptOutcome.MISSING_ACTOR, challenge=challenge, trace_id=trace_id)

        tools = self.policy.classify(actor.inventory)
        if tools.total_picks <= 0:
            logger.info(f"[{trace_id}] {actor.name} has no picks left, cannot attempt")
            return AttemptResult(AttemptOutcome.NO_PICKS, challenge=challenge, trace_id=trace_id)

        selected_tool = tool_id or challenge.tool_selection
        if not selected_tool:
            logger.info(f"[{trace_id}] No toolkit selected, aborting roll")
            return AttemptResult(AttemptOutcome.NO_TOOL_SELECTED, challenge=challenge, trace_id=trace_id)

        try:
            roll = await self.roller.roll_check(challenge.actor_ref, challenge.dc)
        except Exception as e:
            logger.error(f"[{trace_id}] Roll failed for {actor.name}: {e}", exc_info=True)
            return AttemptResult(AttemptOutcome.ROLL_FAILED, challenge=challenge, trace_id=trace_id)

        if roll is None:
            logger.info(f"[{trace_id}] Roll cancelled, aborting")
            return AttemptResult(AttemptOutcome.ROLL_CANCELLED, challenge=challenge, trace_id=trace_id)

        # Built from the pre-roll snapshot; an update received during the roll is overwritten
        degree = resolve_degree(roll.total, challenge.dc, roll.natural_die)
        updated = apply_progress(challenge, degree)
        if selected_tool != updated.tool_selection:
            updated = updated.model_copy(update={"tool_selection": selected_tool})
        logger.info(
            f"[{trace_id}] {actor.name} rolled {roll.total} vs DC {challenge.dc}: {degree.value} "
            f"({challenge.success_count} -> {updated.success_count}/{updated.required_attempts})"
        )

        consumption = None
        if degree is DegreeOfSuccess.CRITICAL_FAILURE:
            try:
                consumption = await self.policy.consume_on_critical_failure(actor.inventory, selected_tool)
            except Exception as e:
                logger.error(f"[{trace_id}] Failed to consume pick for {actor.name}: {e}", exc_info=True)

        self.registry.put(updated)
        await self.protocol.send_update(updated)

        unlocked = updated.is_resolved
        self._post_chat(challenge.actor_ref, attempt_message(self.localizer, actor.name, degree))
        if unlocked:
            logger.info(f"[{trace_id}] 🔓 {actor.name} picked the lock on {challenge_id}")
            self._post_chat(challenge.actor_ref, lock_picked_message(self.localizer, actor.name))

        await self.views.render_all(updated)

        return AttemptResult(
            AttemptOutcome.APPLIED,
            challenge=updated,
            roll=roll,
            degree=degree,
            consumption=consumption,
            unlocked=unlocked,
            trace_id=trace_id,
        )

    def _post_chat(self, actor_ref: str, message: str) -> None:
        try:
            self.chat.post(actor_ref, message)
        except Exception as e:
            logger.error(f"Failed to post chat message: {e}")

    # === Local selection ===

    def select_tool(self, challenge_id: str, tool_id: str | None) -> Challenge | None:
        """Record the toolkit choice locally. It travels with the next update."""
        challenge = self.registry.get(challenge_id)
        if challenge is None:
            logger.warning(f"Cannot select tool on unknown challenge {challenge_id}")
            return None
        updated = challenge.model_copy(update={"tool_selection": tool_id or None})
        self.registry.put(updated)
        return updated

    # === Arbiter actions ===

    def _require_gm(self, action: str) -> bool:
        if not self.identity.is_gm:
            logger.warning(f"User {self.identity.user_id} is not a GM, refusing {action}")
            return False
        return True

    def _refuse(self, reason: str) -> None:
        logger.warning(f"Challenge not started: {reason}")
        self.last_refusal = reason
        return None

    async def _commit(self, challenge: Challenge) -> None:
        self.registry.put(challenge)
        await self.protocol.send_update(challenge)
        await self.views.render_all(challenge)

    async def adjust_success(self, challenge_id: str, delta: int) -> Challenge | None:
        """Move the success count by ``delta``, clamped to [0, required_attempts]."""
        if not self._require_gm("adjust_success"):
            return None

        challenge = self.registry.get(challenge_id)
        if challenge is None:
            logger.warning(f"Cannot adjust unknown challenge {challenge_id}")
            return None

        updated = challenge.with_success_count(challenge.success_count + delta)
        await self._commit(updated)
        logger.info(
            f"GM adjusted {challenge_id}: {challenge.success_count} -> "
            f"{updated.success_count}/{updated.required_attempts}"
        )
        return updated

    async def increment_success(self, challenge_id: str) -> Challenge | None:
        return await self.adjust_success(challenge_id, 1)

    async def decrement_success(self, challenge_id: str) -> Challenge | None:
        return await self.adjust_success(challenge_id, -1)

    async def restore_one(self, challenge_id: str) -> ConsumptionResult | None:
        """Give back one pick to the challenge's actor (best-effort undo)."""
        if not self._require_gm("restore_one"):
            return None

        challenge = self.registry.get(challenge_id)
        if challenge is None:
            logger.warning(f"Cannot restore on unknown challenge {challenge_id}")
            return None

        actor = await self.actors.resolve(challenge.actor_ref)
        if actor is None:
            logger.warning(f"Actor {challenge.actor_ref} missing, cannot restore")
            return None

        try:
            result = await self.policy.restore_one(actor.inventory)
        except Exception as e:
            logger.error(f"Failed to restore pick for {actor.name}: {e}", exc_info=True)
            return None

        await self._commit(challenge)
        return result

    async def start_challenge(self, actor_ref: str, dc: Any, required_attempts: Any) -> Challenge | None:
        """Create a challenge, open the GM view, and announce it to peers.

        Returns:
            The new challenge, or None when the input was refused. The localized
            reason for a refusal is kept in last_refusal.
        """
        self.last_refusal = None
        if not self._require_gm("start_challenge"):
            return None

        try:
            dc_value = int(dc)
        except (TypeError, ValueError):
            dc_value = 0
        if dc_value <= 0:
            return self._refuse(self.localizer.format(LocalizationKey.START_INVALID_DC, dc=dc))

        actor = await self.actors.resolve(actor_ref) if actor_ref else None
        if actor is None:
            return self._refuse(self.localizer.format(LocalizationKey.START_MISSING_ACTOR, actor=actor_ref))

        params = ChallengeParams(
            actor_ref=actor.ref,
            dc=dc_value,
            required_attempts=normalize_required_attempts(required_attempts),
            gm_id=self.identity.user_id,
            player_id=select_beneficiary(actor, self.users),
        )
        try:
            challenge = self.registry.create(params)
        except ChallengeValidationError as e:
            return self._refuse(str(e))

        await self.open_view(challenge, is_gm_view=True)
        await self.protocol.send_open(challenge)
        return challenge

    async def surface(self, challenge_id: str) -> bool:
        """Re-announce an existing challenge so peers open it again."""
        if not self._require_gm("surface"):
            return False

        challenge = self.registry.get(challenge_id)
        if challenge is None:
            logger.warning(f"Cannot surface unknown challenge {challenge_id}")
            return False
        return await self.protocol.send_open(challenge)

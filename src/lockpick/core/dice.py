"""Default roll collaborator: 1d20 + the actor's Thievery modifier."""

import logging
import random

from .collaborators import ActorLookup
from .models import RollResult

logger = logging.getLogger(__name__)


class D20Roller:
    """Rolls a Thievery check for an actor.

    The DC is not used to compute the total; degree resolution happens in
    the controller.
    """

    def __init__(self, actors: ActorLookup, rng: random.Random | None = None):
        self.actors = actors
        self.rng = rng or random.Random()

    async def roll_check(self, actor_ref: str, dc: int) -> RollResult | None:
        actor = await self.actors.resolve(actor_ref)
        if actor is None:
            logger.warning(f"Cannot roll for unknown actor {actor_ref}")
            return None

        natural = self.rng.randint(1, 20)
        total = natural + actor.thievery_modifier
        logger.info(
            f"🎲 {actor.name} rolls Thievery vs DC {dc}: "
            f"{natural} + {actor.thievery_modifier} = {total}"
        )
        return RollResult(total=total, natural_die=natural)

"""Per-client store of challenge state."""

import logging

from pydantic import ValidationError

from .errors import ChallengeValidationError
from .models import Challenge, ChallengeParams, generate_challenge_id

logger = logging.getLogger(__name__)


class ChallengeRegistry:
    """Authoritative local copy of every challenge this client knows about.

    Each client owns exactly one registry. It is only touched from the client's
    event loop, so there is no locking. ``put`` overwrites without merging;
    remote replicas and local mutations go through the same path.
    """

    def __init__(self):
        self._challenges: dict[str, Challenge] = {}

    def create(self, params: ChallengeParams) -> Challenge:
        """Allocate a new challenge with zero progress and no tool selected.

        Raises:
            ChallengeValidationError: If the parameters break the model's bounds.
        """
        try:
            challenge = Challenge(
                id=generate_challenge_id(),
                actor_ref=params.actor_ref,
                dc=params.dc,
                required_attempts=params.required_attempts,
                success_count=0,
                gm_id=params.gm_id,
                player_id=params.player_id,
                tool_selection=None,
            )
        except ValidationError as e:
            raise ChallengeValidationError(f"Invalid challenge parameters: {e}") from e

        self._challenges[challenge.id] = challenge
        logger.info(
            f"Created challenge {challenge.id} (actor={challenge.actor_ref}, "
            f"dc={challenge.dc}, required={challenge.required_attempts})"
        )
        return challenge

    def get(self, challenge_id: str) -> Challenge | None:
        return self._challenges.get(challenge_id)

    def put(self, challenge: Challenge) -> None:
        self._challenges[challenge.id] = challenge

    def remove(self, challenge_id: str) -> None:
        if self._challenges.pop(challenge_id, None) is not None:
            logger.debug(f"Removed challenge {challenge_id}")

    def all(self) -> list[Challenge]:
        return list(self._challenges.values())

    def __contains__(self, challenge_id: object) -> bool:
        return challenge_id in self._challenges

    def __len__(self) -> int:
        return len(self._challenges)

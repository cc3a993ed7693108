"""Challenge data model and wire schema."""

import uuid
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MIN_REQUIRED_ATTEMPTS = 2
MAX_REQUIRED_ATTEMPTS = 6


class DegreeOfSuccess(str, Enum):
    """Outcome of a skill check, ordered from worst to best."""

    CRITICAL_FAILURE = "criticalFailure"
    FAILURE = "failure"
    SUCCESS = "success"
    CRITICAL_SUCCESS = "criticalSuccess"

    @property
    def rank(self) -> int:
        return _DEGREE_ORDER.index(self)

    @classmethod
    def from_rank(cls, rank: int) -> "DegreeOfSuccess":
        return _DEGREE_ORDER[rank]


_DEGREE_ORDER = [
    DegreeOfSuccess.CRITICAL_FAILURE,
    DegreeOfSuccess.FAILURE,
    DegreeOfSuccess.SUCCESS,
    DegreeOfSuccess.CRITICAL_SUCCESS,
]

# Progress awarded per degree; failures never move the counter
PROGRESS_BY_DEGREE = {
    DegreeOfSuccess.CRITICAL_FAILURE: 0,
    DegreeOfSuccess.FAILURE: 0,
    DegreeOfSuccess.SUCCESS: 1,
    DegreeOfSuccess.CRITICAL_SUCCESS: 2,
}


def generate_challenge_id() -> str:
    """Generate an opaque challenge id (16 hex chars)."""
    return uuid.uuid4().hex[:16]


class Challenge(BaseModel):
    """A lock-pick challenge as held in a client's registry.

    Serializes with camelCase keys so a snapshot can travel in a sync message
    unchanged. Snapshots are always full; there is no partial form.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(min_length=1)
    actor_ref: str = Field(min_length=1)
    dc: int = Field(gt=0)
    required_attempts: int = Field(ge=MIN_REQUIRED_ATTEMPTS, le=MAX_REQUIRED_ATTEMPTS)
    success_count: int = Field(default=0, ge=0)
    gm_id: str
    player_id: str | None = None
    tool_selection: str | None = None

    @model_validator(mode="after")
    def check_progress_bounds(self) -> "Challenge":
        if self.success_count > self.required_attempts:
            raise ValueError(
                f"successCount {self.success_count} exceeds requiredAttempts {self.required_attempts}"
            )
        return self

    @property
    def is_resolved(self) -> bool:
        return self.success_count == self.required_attempts

    @property
    def progress(self) -> float:
        """Fraction of required successes achieved, in [0, 1]."""
        return min(1.0, self.success_count / self.required_attempts)

    def to_snapshot(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_snapshot(cls, data: dict) -> "Challenge":
        return cls.model_validate(data)

    def with_success_count(self, count: int) -> "Challenge":
        """Copy with the success count clamped to [0, required_attempts]."""
        clamped = max(0, min(count, self.required_attempts))
        return self.model_copy(update={"success_count": clamped})


@dataclass(frozen=True)
class ChallengeParams:
    """Parameters an arbiter supplies when creating a challenge.

    Bounds are checked when the registry builds the ``Challenge``.
    """

    actor_ref: str
    dc: int
    required_attempts: int
    gm_id: str
    player_id: str | None = None


@dataclass(frozen=True)
class RollResult:
    """Raw check total as produced by a roll collaborator."""

    total: int
    natural_die: int | None = None


@dataclass(frozen=True)
class ClientIdentity:
    """Who the local client is."""

    user_id: str
    is_gm: bool = False
    name: str = ""

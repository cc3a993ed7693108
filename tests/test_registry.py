"""Tests for the challenge model and registry."""

import pytest
from pydantic import ValidationError

from lockpick.core.errors import ChallengeValidationError
from lockpick.core.models import Challenge, ChallengeParams
from lockpick.core.registry import ChallengeRegistry


def params(**overrides) -> ChallengeParams:
    values = {"actor_ref": "Actor.valeros", "dc": 20, "required_attempts": 3, "gm_id": "gm", "player_id": "alice"}
    values.update(overrides)
    return ChallengeParams(**values)


class TestChallengeModel:
    """Tests for Challenge invariants and wire form."""

    def test_snapshot_uses_camel_case(self):
        challenge = Challenge(
            id="c1", actor_ref="Actor.valeros", dc=15, required_attempts=2, gm_id="gm", player_id="alice"
        )
        assert challenge.to_snapshot() == {
            "id": "c1",
            "actorRef": "Actor.valeros",
            "dc": 15,
            "requiredAttempts": 2,
            "successCount": 0,
            "gmId": "gm",
            "playerId": "alice",
            "toolSelection": None,
        }

    def test_from_snapshot(self):
        challenge = Challenge.from_snapshot(
            {"id": "c1", "actorRef": "A", "dc": 15, "requiredAttempts": 4, "successCount": 3, "gmId": "gm"}
        )
        assert challenge.success_count == 3
        assert challenge.player_id is None

    def test_success_count_cannot_exceed_required(self):
        with pytest.raises(ValidationError):
            Challenge(id="c1", actor_ref="A", dc=15, required_attempts=2, success_count=3, gm_id="gm")

    @pytest.mark.parametrize("required", [1, 7])
    def test_required_attempts_bounds(self, required):
        with pytest.raises(ValidationError):
            Challenge(id="c1", actor_ref="A", dc=15, required_attempts=required, gm_id="gm")

    def test_with_success_count_clamps(self):
        challenge = Challenge(id="c1", actor_ref="A", dc=15, required_attempts=3, gm_id="gm")
        assert challenge.with_success_count(5).success_count == 3
        assert challenge.with_success_count(-2).success_count == 0

    def test_is_resolved_and_progress(self):
        challenge = Challenge(id="c1", actor_ref="A", dc=15, required_attempts=4, success_count=2, gm_id="gm")
        assert not challenge.is_resolved
        assert challenge.progress == 0.5
        assert challenge.with_success_count(4).is_resolved


class TestChallengeRegistry:
    """Tests for ChallengeRegistry."""

    def test_create_starts_empty(self):
        registry = ChallengeRegistry()
        challenge = registry.create(params())

        assert challenge.id
        assert challenge.success_count == 0
        assert challenge.tool_selection is None
        assert registry.get(challenge.id) == challenge
        assert challenge.id in registry
        assert len(registry) == 1

    def test_create_generates_distinct_ids(self):
        registry = ChallengeRegistry()
        ids = {registry.create(params()).id for _ in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize(
        "overrides",
        [
            {"dc": 0},
            {"dc": -5},
            {"required_attempts": 1},
            {"required_attempts": 7},
            {"actor_ref": ""},
        ],
    )
    def test_create_rejects_invalid_params(self, overrides):
        registry = ChallengeRegistry()
        with pytest.raises(ChallengeValidationError):
            registry.create(params(**overrides))
        assert len(registry) == 0

    def test_put_overwrites(self):
        registry = ChallengeRegistry()
        challenge = registry.create(params())
        registry.put(challenge.with_success_count(2))
        assert registry.get(challenge.id).success_count == 2
        assert len(registry) == 1

    def test_get_unknown_returns_none(self):
        assert ChallengeRegistry().get("nope") is None

    def test_remove(self):
        registry = ChallengeRegistry()
        challenge = registry.create(params())
        registry.remove(challenge.id)
        registry.remove(challenge.id)
        assert challenge.id not in registry
        assert registry.all() == []

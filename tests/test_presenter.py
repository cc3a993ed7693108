"""Tests for ChallengePresenter view state."""

import pytest

from lockpick.core.collaborators import InventoryItem
from lockpick.core.models import Challenge
from lockpick.core.presenter import ChallengePresenter
from lockpick.core.registry import ChallengeRegistry

from conftest import VALEROS


@pytest.fixture
def registry():
    return ChallengeRegistry()


@pytest.fixture
def presenter(registry, actors, policy, localizer):
    return ChallengePresenter(registry, actors, policy, localizer)


def stored(registry, **overrides) -> Challenge:
    values = {"id": "c1", "actor_ref": VALEROS, "dc": 18, "required_attempts": 3, "gm_id": "gm", "player_id": "alice"}
    values.update(overrides)
    challenge = Challenge(**values)
    registry.put(challenge)
    return challenge


class TestBuild:
    """Tests for ChallengePresenter.build."""

    @pytest.mark.asyncio
    async def test_gm_view_shows_dc(self, presenter, registry):
        state = await presenter.build(stored(registry, success_count=1), is_gm_view=True)

        assert state.actor_name == "Valeros"
        assert state.dc == 18
        assert state.success_count == 1
        assert state.required_attempts == 3
        assert state.remaining_picks == 3
        assert state.can_attempt
        assert not state.is_unlocked

    @pytest.mark.asyncio
    async def test_player_view_hides_dc(self, presenter, registry):
        state = await presenter.build(stored(registry), is_gm_view=False)
        assert state.dc is None

    @pytest.mark.asyncio
    async def test_missing_actor(self, presenter, registry, actors):
        actors.remove(VALEROS)
        state = await presenter.build(stored(registry), is_gm_view=True)

        assert state.actor_name == "<Missing Actor>"
        assert state.remaining_picks == 0
        assert not state.can_attempt
        assert not state.button_enabled

    @pytest.mark.asyncio
    async def test_unlocked_enables_close(self, presenter, registry):
        state = await presenter.build(stored(registry, success_count=3), is_gm_view=False)

        assert state.is_unlocked
        assert not state.can_attempt
        assert state.button_enabled
        assert state.progress == 1.0

    @pytest.mark.asyncio
    async def test_no_picks_disables_button(self, presenter, registry, valeros_inventory):
        await valeros_inventory.delete(valeros_inventory.get("rp1"))
        await valeros_inventory.rename(valeros_inventory.get("tk1"), "Thieves' Toolkit (broken)")

        state = await presenter.build(stored(registry), is_gm_view=False)

        assert state.remaining_picks == 0
        assert not state.button_enabled
        assert state.tool_options == []

    @pytest.mark.asyncio
    async def test_reads_latest_registry_copy(self, presenter, registry):
        old = stored(registry)
        registry.put(old.with_success_count(2))
        state = await presenter.build(old, is_gm_view=True)
        assert state.success_count == 2


class TestToolSelection:
    """Tests for tool selection reconciliation."""

    @pytest.mark.asyncio
    async def test_defaults_to_first_usable_toolkit(self, presenter, registry):
        state = await presenter.build(stored(registry), is_gm_view=False)

        assert state.selected_tool.id == "tk1"
        assert registry.get("c1").tool_selection == "tk1"

    @pytest.mark.asyncio
    async def test_stale_selection_replaced(self, presenter, registry, valeros_inventory):
        valeros_inventory.add(InventoryItem("tk2", "Infiltrator Tools", "thieves-tools-infiltrator"))
        await valeros_inventory.rename(valeros_inventory.get("tk1"), "Thieves' Toolkit (broken)")

        state = await presenter.build(stored(registry, tool_selection="tk1"), is_gm_view=False)

        assert [option.id for option in state.tool_options] == ["tk2"]
        assert state.selected_tool.id == "tk2"
        assert registry.get("c1").tool_selection == "tk2"

    @pytest.mark.asyncio
    async def test_valid_selection_kept(self, presenter, registry, valeros_inventory):
        valeros_inventory.add(InventoryItem("tk2", "Infiltrator Tools", "thieves-tools-infiltrator"))
        state = await presenter.build(stored(registry, tool_selection="tk2"), is_gm_view=False)
        assert state.selected_tool.id == "tk2"

    @pytest.mark.asyncio
    async def test_ended_challenge_not_resurrected(self, presenter, registry):
        challenge = stored(registry)
        registry.remove(challenge.id)

        await presenter.build(challenge, is_gm_view=False)

        assert challenge.id not in registry

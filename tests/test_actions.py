from __future__ import annotations

import pytest

import actions
import engine
from content import default_content
from model import ActionKey, BuildingKey, RejectReason, ResourceKey, TechnologyKey

CONTENT = default_content().model_copy(update={"achievements": {}, "events": {}})


def _state(**resources):
    state = engine.new_game(CONTENT)
    return state.model_copy(update={"resources": {ResourceKey(k): float(v) for k, v in resources.items()}})


def test_basic_action_grants_resources_and_counts():
    state = actions.execute_action(_state(), CONTENT, ActionKey.GATHER_WOOD)
    assert state.resources[ResourceKey.WOOD] == pytest.approx(2)
    assert state.actions_executed == 1
    assert state.clicks == 0


def test_locked_action_is_rejected():
    state = _state(wood=100)
    assert actions.action_reason(state, CONTENT, ActionKey.CRAFT_TOOLS) == RejectReason.LOCKED
    assert actions.execute_action(state, CONTENT, ActionKey.CRAFT_TOOLS) is state


def test_action_with_cost_pays_first():
    state = _state(wood=6).model_copy(update={"building_counts": {BuildingKey.BLACKSMITH: 1}})
    state = actions.execute_action(state, CONTENT, ActionKey.CRAFT_TOOLS)
    assert state.resources[ResourceKey.WOOD] == pytest.approx(1)
    assert state.resources[ResourceKey.STONE] == pytest.approx(2)
    assert actions.action_reason(state, CONTENT, ActionKey.CRAFT_TOOLS) == RejectReason.INSUFFICIENT_RESOURCES


def test_one_time_unlock_stays_available():
    state = _state(wood=50)
    assert actions.action_reason(state, CONTENT, ActionKey.SELL_WOOD) is None
    state = actions.execute_action(state, CONTENT, ActionKey.SELL_WOOD)
    assert state.resources[ResourceKey.WOOD] == pytest.approx(40)
    assert state.resources[ResourceKey.GOLD] == pytest.approx(5)
    assert ActionKey.SELL_WOOD in state.action_unlocks

    # below the 50 wood unlock threshold now, still usable
    state = actions.execute_action(state, CONTENT, ActionKey.SELL_WOOD)
    assert state.resources[ResourceKey.WOOD] == pytest.approx(30)


def test_cooldown_blocks_until_clock_passes():
    state = _state().model_copy(update={"technology_levels": {TechnologyKey.WRITING: 1}})
    state, reason = engine.execute_action(state, CONTENT, ActionKey.ROYAL_DIPLOMACY)
    assert reason is None
    assert state.resources[ResourceKey.PRESTIGE] == pytest.approx(1)

    same, reason = engine.execute_action(state, CONTENT, ActionKey.ROYAL_DIPLOMACY)
    assert reason == RejectReason.ON_COOLDOWN
    assert same is state

    state = engine.tick(state, CONTENT, 60)
    state, reason = engine.execute_action(state, CONTENT, ActionKey.ROYAL_DIPLOMACY)
    assert reason is None
    assert state.resources[ResourceKey.PRESTIGE] == pytest.approx(2)


def test_buy_building_pays_scaled_cost():
    state = _state(gold=100)
    state = actions.buy_building(state, CONTENT, BuildingKey.WOODCUTTER)
    state = actions.buy_building(state, CONTENT, BuildingKey.WOODCUTTER)
    assert state.building_counts[BuildingKey.WOODCUTTER] == 2
    assert state.resources[ResourceKey.GOLD] == pytest.approx(100 - 15 - 15 * 1.15)


def test_building_behind_technology_is_locked():
    state = _state(gold=1000, wood=1000, stone=1000)
    same, reason = engine.buy_building(state, CONTENT, BuildingKey.LIBRARY)
    assert reason == RejectReason.LOCKED
    assert same is state

from __future__ import annotations

import pytest

import achievements
import engine
import loop_actions
from config import OFFLINE_PROGRESS_CAP_SECONDS, TICK_SECONDS
from content import ContentError, default_content
from model import BuildingKey, LoopActionKey, RejectReason, ResourceKey, TechnologyKey, UpgradeKey
from production import compute_net_per_second, compute_production_breakdown
from research import start_research

CONTENT = default_content()
QUIET = CONTENT.model_copy(update={"achievements": {}, "events": {}})


def _state(content=CONTENT, buildings=None, **resources):
    state = engine.new_game(content)
    return state.model_copy(
        update={
            "resources": {ResourceKey(k): float(v) for k, v in resources.items()},
            "lifetime_resources": {},
            "building_counts": {BuildingKey(k): v for k, v in (buildings or {}).items()},
        }
    )


def test_woodcutter_ten_seconds_yields_twelve_wood():
    state = _state(buildings={"woodcutter": 1}, gold=0, wood=0)
    after = engine.tick(state, CONTENT, 10)
    assert after.resources[ResourceKey.WOOD] == pytest.approx(12.0)
    assert after.lifetime_resources[ResourceKey.WOOD] == pytest.approx(12.0)
    assert after.clock_ms == pytest.approx(10_000)


def test_net_rate_subtracts_consumption():
    state = _state(buildings={"blacksmith": 2, "castle": 1})
    rate = compute_net_per_second(state, CONTENT)
    assert rate[ResourceKey.GOLD] == pytest.approx(5.0)
    assert rate[ResourceKey.WOOD] == pytest.approx(-0.6)
    assert rate[ResourceKey.STONE] == pytest.approx(-0.4)
    assert rate[ResourceKey.FOOD] == pytest.approx(-0.5)
    assert rate[ResourceKey.PRESTIGE] == pytest.approx(0.1)

    produced, consumed = compute_production_breakdown(state, CONTENT)
    assert produced[ResourceKey.GOLD] == pytest.approx(5.0)
    assert consumed[ResourceKey.WOOD] == pytest.approx(0.6)


def test_missing_building_definition_is_skipped(caplog):
    content = QUIET.model_copy(update={"buildings": {}})
    state = _state(content, buildings={"woodcutter": 3})
    assert compute_net_per_second(state, content)[ResourceKey.WOOD] == 0
    assert "no definition" in caplog.text


def test_consumption_is_clamped_at_zero_and_lifetime_only_counts_gains():
    state = _state(QUIET, buildings={"blacksmith": 1}, gold=0, wood=1, stone=0)
    after = engine.tick(state, QUIET, 10)
    assert after.resources[ResourceKey.WOOD] == 0
    assert after.resources[ResourceKey.STONE] == 0
    assert after.resources[ResourceKey.GOLD] == pytest.approx(25.0)
    assert after.lifetime_resources.get(ResourceKey.WOOD, 0.0) == 0


@pytest.mark.parametrize("bad_dt", [0, -1, float("nan"), float("inf"), "5"])
def test_invalid_dt_returns_state_unchanged(bad_dt):
    state = _state(buildings={"woodcutter": 1})
    assert engine.tick(state, CONTENT, bad_dt) is state


def _busy_state():
    state = _state(
        QUIET,
        buildings={"woodcutter": 2, "farm": 1, "blacksmith": 1},
        gold=200, wood=40, stone=0, food=20,
    )
    state = start_research(state, QUIET, TechnologyKey.WRITING)
    state = loop_actions.start(state, QUIET, LoopActionKey.BASIC_GATHERING)
    state = loop_actions.start(state, QUIET, LoopActionKey.CONTINUOUS_LOGGING)
    assert len(state.loop_actions) == 2
    return state


def _assert_equivalent(a, b):
    for key in ResourceKey:
        assert a.resources.get(key, 0.0) == pytest.approx(b.resources.get(key, 0.0), rel=1e-9, abs=1e-9)
        assert a.lifetime_resources.get(key, 0.0) == pytest.approx(b.lifetime_resources.get(key, 0.0), rel=1e-9, abs=1e-9)
    assert [e.total_loops_completed for e in a.loop_actions] == [e.total_loops_completed for e in b.loop_actions]
    assert [e.current_points for e in a.loop_actions] == [e.current_points for e in b.loop_actions]
    assert [(e.is_active, e.is_paused) for e in a.loop_actions] == [(e.is_active, e.is_paused) for e in b.loop_actions]
    assert a.technology_levels == b.technology_levels
    assert a.research == b.research
    assert a.clock_ms == pytest.approx(b.clock_ms)
    assert a.achievements.unlocked.keys() == b.achievements.unlocked.keys()
    for key, stamp in a.achievements.unlocked.items():
        assert stamp == pytest.approx(b.achievements.unlocked[key])
    assert a.achievements.total_points == b.achievements.total_points
    assert a.achievement_multipliers == b.achievement_multipliers
    assert a.events == b.events


@pytest.mark.parametrize("k", [1, 7, 160, 700])
def test_one_big_tick_equals_many_single_ticks(k):
    state = _busy_state()
    bulk = engine.tick(state, QUIET, k * TICK_SECONDS)
    stepped = state
    for _ in range(k):
        stepped = engine.tick(stepped, QUIET, TICK_SECONDS)
    _assert_equivalent(bulk, stepped)


def _kingdom_below_balance():
    state = _state(buildings={b: 1 for b in ("woodcutter", "quarry", "farm", "blacksmith", "castle")},
                   gold=99, wood=99, stone=99, food=99)
    state = achievements.check_achievements(state, CONTENT)
    assert "city_planner" in state.achievements.unlocked
    assert "balanced_kingdom" not in state.achievements.unlocked
    return state


@pytest.mark.parametrize("k", [400, 2000])
def test_one_big_tick_equals_many_single_ticks_with_achievements_and_events(k):
    state = _kingdom_below_balance()
    bulk = engine.tick(state, CONTENT, k * TICK_SECONDS)
    stepped = state
    for _ in range(k):
        stepped = engine.tick(stepped, CONTENT, TICK_SECONDS)
    assert "balanced_kingdom" in bulk.achievements.unlocked
    assert bulk.achievements.unlocked["balanced_kingdom"] < bulk.clock_ms
    _assert_equivalent(bulk, stepped)


def test_unlock_inside_a_big_tick_boosts_the_rest_of_it():
    state = _kingdom_below_balance()
    after = engine.tick(state, CONTENT, 20)
    unlocked_at = after.achievements.unlocked["balanced_kingdom"]
    boosted_rate = compute_net_per_second(after, CONTENT)[ResourceKey.GOLD]
    plain_rate = compute_net_per_second(state, CONTENT)[ResourceKey.GOLD]
    assert boosted_rate == pytest.approx(plain_rate * 1.4)
    expected = state.resources[ResourceKey.GOLD] + plain_rate * unlocked_at / 1000.0 + boosted_rate * (20 - unlocked_at / 1000.0)
    assert after.resources[ResourceKey.GOLD] == pytest.approx(expected)


def test_research_completion_is_stamped_at_its_boundary():
    state = achievements.check_achievements(_state(gold=100, wood=100), CONTENT)
    state = start_research(state, CONTENT, TechnologyKey.WRITING)
    after = engine.tick(state, CONTENT, 35)
    assert after.achievements.unlocked["first_discovery"] == pytest.approx(30_000)
    assert after.resources[ResourceKey.RESEARCH_POINTS] == pytest.approx(10)


def test_research_completes_inside_a_big_tick():
    state = _busy_state()
    after = engine.tick(state, QUIET, 35)
    assert after.technology_levels.get(TechnologyKey.WRITING) == 1
    assert after.research.active_technology is None


def test_fractional_ticks_carry_between_calls():
    state = _state(QUIET)
    state = loop_actions.start(state, QUIET, LoopActionKey.BASIC_GATHERING)
    for _ in range(40):
        state = engine.tick(state, QUIET, TICK_SECONDS / 4)
    # 40 quarter ticks = 10 ticks = 1000 points
    assert state.loop_actions[0].total_loops_completed == 1


def test_offline_collapse_is_capped_and_syncs_clock():
    state = _state(QUIET, buildings={"woodcutter": 1}, wood=0)
    now = state.clock_ms + 3 * 3600 * 1000
    after = engine.collapse_offline(state, QUIET, now)
    assert after.resources[ResourceKey.WOOD] == pytest.approx(1.2 * OFFLINE_PROGRESS_CAP_SECONDS)
    assert after.clock_ms == now


def test_offline_collapse_finishes_research_against_real_time():
    state = _state(QUIET, gold=100, wood=100)
    state = start_research(state, QUIET, TechnologyKey.WRITING)
    after = engine.collapse_offline(state, QUIET, state.clock_ms + 31_000)
    assert after.technology_levels[TechnologyKey.WRITING] == 1


def test_offline_collapse_with_clock_in_future_is_ignored(caplog):
    state = _state(QUIET).model_copy(update={"clock_ms": 10_000.0})
    assert engine.collapse_offline(state, QUIET, 5_000.0) is state
    assert "ahead" in caplog.text


def test_new_game_uses_starting_values():
    state = engine.new_game(CONTENT, 1234.0)
    assert state.resources[ResourceKey.GOLD] == 10
    assert state.resources[ResourceKey.WOOD] == 0
    assert state.clock_ms == 1234.0
    assert state.loop_settings.max_concurrent_actions == 2


def test_new_game_raises_on_unusable_content():
    broken = CONTENT.model_copy(update={"resources": {}})
    with pytest.raises(ContentError):
        engine.new_game(broken)


def test_operations_report_reasons():
    state = _state(gold=0)
    same, reason = engine.buy_building(state, CONTENT, BuildingKey.WOODCUTTER)
    assert same is state
    assert reason == RejectReason.INSUFFICIENT_RESOURCES

    same, reason = engine.buy_building(state, CONTENT, "windmill")
    assert reason == RejectReason.INVALID_INPUT

    same, reason = engine.start_research(state, CONTENT, TechnologyKey.ENGINEERING)
    assert reason == RejectReason.LOCKED

    same, reason = engine.pause_loop_action(state, CONTENT, LoopActionKey.BASIC_GATHERING)
    assert reason == RejectReason.NOT_STARTED


def test_buy_building_runs_achievements():
    state = _state(gold=15)
    state, reason = engine.buy_building(state, CONTENT, BuildingKey.WOODCUTTER)
    assert reason is None
    assert state.building_counts[BuildingKey.WOODCUTTER] == 1
    assert "first_building" in state.achievements.unlocked
    # first building grants 50 gold
    assert state.resources[ResourceKey.GOLD] == pytest.approx(50)


def test_click_uses_click_multiplier():
    state = _state(QUIET, gold=0).model_copy(update={"upgrade_levels": {UpgradeKey.ROYAL_DECREES: 2}})
    state, reason = engine.click(state, QUIET)
    assert reason is None
    assert state.resources[ResourceKey.GOLD] == pytest.approx(1.5)
    assert state.resources[ResourceKey.FOOD] == pytest.approx(0.15)
    assert state.clicks == 1


def test_prestige_keeps_meta_progress_and_resets_the_rest():
    state = _state(gold=500, prestige=3, buildings={"farm": 4})
    state = state.model_copy(
        update={
            "lifetime_resources": {ResourceKey.FOOD: 4000.0},
            "upgrade_levels": {UpgradeKey.FERTILE_LANDS: 1},
        }
    )
    state, _ = engine.click(state, CONTENT)
    temp_click = state.achievement_multipliers.temporary.click_gain
    assert temp_click == pytest.approx(1.1)  # first_gold

    after, reason = engine.do_prestige(state, CONTENT)
    assert reason is None
    assert after.resources[ResourceKey.PRESTIGE] == pytest.approx(5)
    assert after.resources[ResourceKey.GOLD] == 10
    assert after.building_counts == {}
    assert after.upgrade_levels == {UpgradeKey.FERTILE_LANDS: 1}
    assert after.prestige_count == 1
    assert "first_gold" in after.achievements.unlocked
    assert after.achievement_multipliers.temporary.click_gain == 1.0
    assert "first_ascension" in after.achievements.unlocked
    assert after.achievement_multipliers.permanent.production[ResourceKey.GOLD] == pytest.approx(1.3)


def test_prestige_without_gain_is_rejected():
    state = _state(gold=10).model_copy(update={"lifetime_resources": {ResourceKey.FOOD: 999.0}})
    same, reason = engine.do_prestige(state, CONTENT)
    assert same is state
    assert reason == RejectReason.NOTHING_TO_GAIN


def test_buy_upgrade_spends_prestige():
    state = _state(QUIET, prestige=6)
    state, reason = engine.buy_upgrade(state, QUIET, UpgradeKey.ROYAL_DECREES)
    assert reason is None
    assert state.upgrade_levels[UpgradeKey.ROYAL_DECREES] == 1
    assert state.resources[ResourceKey.PRESTIGE] == pytest.approx(1)

    same, reason = engine.buy_upgrade(state, QUIET, UpgradeKey.ROYAL_DECREES)
    assert reason == RejectReason.INSUFFICIENT_RESOURCES


def test_buy_upgrade_respects_max_level():
    state = _state(QUIET, prestige=10_000).model_copy(update={"upgrade_levels": {UpgradeKey.ROYAL_DECREES: 20}})
    same, reason = engine.buy_upgrade(state, QUIET, UpgradeKey.ROYAL_DECREES)
    assert reason == RejectReason.MAX_LEVEL


def test_resources_never_negative_across_random_play():
    import random

    rng = random.Random(7)
    state = _state(gold=300, wood=50, stone=50, food=50, buildings={"blacksmith": 3, "castle": 1, "woodcutter": 1})
    ops = [
        lambda s: engine.tick(s, CONTENT, rng.choice([0.05, 0.3, 2.0, 17.0])),
        lambda s: engine.buy_building(s, CONTENT, rng.choice(list(BuildingKey)))[0],
        lambda s: engine.execute_action(s, CONTENT, rng.choice(list(CONTENT.actions)))[0],
        lambda s: engine.start_loop_action(s, CONTENT, rng.choice(list(LoopActionKey)))[0],
        lambda s: engine.start_research(s, CONTENT, rng.choice(list(TechnologyKey)))[0],
        lambda s: engine.click(s, CONTENT)[0],
    ]
    for _ in range(300):
        state = rng.choice(ops)(state)
        assert all(v >= 0 for v in state.resources.values())

from __future__ import annotations

import pytest

import engine
import research
from content import default_content
from model import RejectReason, ResourceKey, TechnologyKey

BASE = default_content().model_copy(update={"achievements": {}, "events": {}})


def _content_with_time(tech: TechnologyKey, seconds: float):
    techs = dict(BASE.technologies)
    techs[tech] = techs[tech].model_copy(update={"research_time": seconds})
    return BASE.model_copy(update={"technologies": techs})


def _state(content=BASE, **resources):
    state = engine.new_game(content)
    return state.model_copy(update={"resources": {ResourceKey(k): float(v) for k, v in resources.items()}})


def test_sixty_second_research_progress_and_completion():
    content = _content_with_time(TechnologyKey.WRITING, 60)
    state = research.start_research(_state(content, gold=100, wood=100), content, TechnologyKey.WRITING, now_ms=0)

    assert research.research_progress(state, 0) == 0
    assert research.research_progress(state, 30_000) == pytest.approx(50)
    assert research.research_progress(state, 60_000) == 100
    assert research.research_progress(state, 90_000) == 100

    still = research.check_progress(state, content, 59_999)
    assert still.research.active_technology == TechnologyKey.WRITING

    done = research.check_progress(state, content, 60_000)
    assert done.research.active_technology is None
    assert done.technology_levels[TechnologyKey.WRITING] == 1
    assert research.research_progress(done, 60_000) == 0


def test_research_through_ticks_reports_half_way():
    content = _content_with_time(TechnologyKey.WRITING, 60)
    state = research.start_research(_state(content, gold=100, wood=100), content, TechnologyKey.WRITING)
    state = engine.tick(state, content, 30)
    assert research.research_progress(state) == pytest.approx(50)
    assert research.research_time_remaining(state) == pytest.approx(30)
    state = engine.tick(state, content, 30)
    assert state.research.active_technology is None
    assert state.technology_levels[TechnologyKey.WRITING] == 1


def test_start_deducts_cost_and_sets_deadline():
    state = _state(gold=60, wood=25).model_copy(update={"clock_ms": 5_000.0})
    state = research.start_research(state, BASE, TechnologyKey.WRITING)
    assert state.resources[ResourceKey.GOLD] == pytest.approx(10)
    assert state.resources[ResourceKey.WOOD] == pytest.approx(5)
    assert state.research.start_time_ms == 5_000
    assert state.research.end_time_ms == 35_000


def test_start_preconditions():
    rich = _state(gold=10_000, wood=10_000, stone=10_000, food=10_000, research_points=10_000)

    assert research.research_reason(rich, BASE, TechnologyKey.MATHEMATICS) == RejectReason.LOCKED
    assert research.research_reason(_state(gold=1), BASE, TechnologyKey.WRITING) == RejectReason.INSUFFICIENT_RESOURCES
    assert research.research_reason(rich, BASE, "alchemy") == RejectReason.INVALID_INPUT

    busy = research.start_research(rich, BASE, TechnologyKey.WRITING)
    assert research.research_reason(busy, BASE, TechnologyKey.WRITING) == RejectReason.RESEARCH_BUSY
    assert research.start_research(busy, BASE, TechnologyKey.WRITING) is busy

    learned = rich.model_copy(update={"technology_levels": {TechnologyKey.WRITING: 1}})
    assert research.research_reason(learned, BASE, TechnologyKey.WRITING) == RejectReason.ALREADY_RESEARCHED
    assert research.can_research(learned, BASE, TechnologyKey.MATHEMATICS)


def test_completion_effect_expands_loop_capacity():
    state = _state(gold=1000, wood=1000, stone=1000).model_copy(
        update={"technology_levels": {TechnologyKey.WRITING: 1}}
    )
    state = research.start_research(state, BASE, TechnologyKey.MATHEMATICS, now_ms=0)
    state = research.check_progress(state, BASE, 60_000)
    assert state.loop_settings.max_concurrent_actions == 3


def test_completion_effect_grants_research_points():
    state = _state(gold=1000, stone=1000, research_points=20).model_copy(
        update={"technology_levels": {TechnologyKey.WRITING: 1, TechnologyKey.MATHEMATICS: 1}}
    )
    state = research.start_research(state, BASE, TechnologyKey.CHEMISTRY, now_ms=0)
    assert state.resources[ResourceKey.RESEARCH_POINTS] == 0
    state = research.check_progress(state, BASE, 120_000)
    assert state.resources[ResourceKey.RESEARCH_POINTS] == pytest.approx(25)


def test_unregistered_effect_is_skipped(caplog):
    techs = dict(BASE.technologies)
    techs[TechnologyKey.WRITING] = techs[TechnologyKey.WRITING].model_copy(update={"effect": "summon_dragon"})
    content = BASE.model_copy(update={"technologies": techs})

    assert research.validate_effects(content) == ["technology writing has unknown effect summon_dragon"]
    state = research.start_research(_state(content, gold=100, wood=100), content, TechnologyKey.WRITING, now_ms=0)
    state = research.check_progress(state, content, 30_000)
    assert state.technology_levels[TechnologyKey.WRITING] == 1
    assert "not registered" in caplog.text


def test_available_technologies_follow_prerequisites():
    state = _state()
    assert research.available_technologies(state, BASE) == [TechnologyKey.WRITING]
    state = state.model_copy(update={"technology_levels": {TechnologyKey.WRITING: 1}})
    assert research.available_technologies(state, BASE) == [TechnologyKey.MATHEMATICS]

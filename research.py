#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Technology research timer.

슬롯은 하나. 진행은 틱 수가 아니라 절대 시각(ms)으로 판정한다.
오프라인 정산 시에도 저장된 end_time_ms 와 현재 시각만 비교한다.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from content import GameContent, TechnologyDef
from costs import has_technologies, technology_cost_for
from ledger import add_into, can_afford, pay_from
from model import GameState, RejectReason, ResearchState, ResourceKey, TechnologyKey, parse_key

logger = logging.getLogger(__name__)

TechnologyEffect = Callable[[GameState, TechnologyDef], GameState]


def _expand_loop_capacity(state: GameState, tdef: TechnologyDef) -> GameState:
    settings = state.loop_settings
    extra = max(0, int(tdef.effect_value))
    return state.model_copy(
        update={"loop_settings": settings.model_copy(update={"max_concurrent_actions": settings.max_concurrent_actions + extra})}
    )


def _grant_research_points(state: GameState, tdef: TechnologyDef) -> GameState:
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    add_into(resources, lifetime, {ResourceKey.RESEARCH_POINTS: max(0.0, tdef.effect_value)})
    return state.model_copy(update={"resources": resources, "lifetime_resources": lifetime})


TECHNOLOGY_EFFECTS: Dict[str, TechnologyEffect] = {
    "expand_loop_capacity": _expand_loop_capacity,
    "grant_research_points": _grant_research_points,
}


def validate_effects(content: GameContent) -> List[str]:
    warnings = []
    for tkey, tdef in content.technologies.items():
        if tdef.effect is not None and tdef.effect not in TECHNOLOGY_EFFECTS:
            warnings.append(f"technology {tkey.value} has unknown effect {tdef.effect}")
    for msg in warnings:
        logger.warning("content: %s", msg)
    return warnings


def has_prerequisites(state: GameState, tdef: TechnologyDef) -> bool:
    return has_technologies(state, tdef.requires_tech)


def research_reason(state: GameState, content: GameContent, tech_id: object) -> Optional[RejectReason]:
    key = parse_key(TechnologyKey, tech_id)
    if key is None:
        return RejectReason.INVALID_INPUT
    tdef = content.technologies.get(key)
    if tdef is None:
        return RejectReason.UNKNOWN_ID
    if state.research.active_technology is not None:
        return RejectReason.RESEARCH_BUSY
    if state.technology_levels.get(key, 0) >= 1:
        return RejectReason.ALREADY_RESEARCHED
    if not has_prerequisites(state, tdef):
        return RejectReason.LOCKED
    cost = technology_cost_for(state, content, key)
    if cost is None or not can_afford(state, cost):
        return RejectReason.INSUFFICIENT_RESOURCES
    return None


def can_research(state: GameState, content: GameContent, tech_id: object) -> bool:
    return research_reason(state, content, tech_id) is None


def start_research(state: GameState, content: GameContent, tech_id: object, now_ms: Optional[float] = None) -> GameState:
    reason = research_reason(state, content, tech_id)
    if reason is not None:
        logger.debug("research %s not started: %s", tech_id, reason.value)
        return state
    key = parse_key(TechnologyKey, tech_id)
    tdef = content.technologies[key]
    now = state.clock_ms if now_ms is None else float(now_ms)
    resources = dict(state.resources)
    pay_from(resources, technology_cost_for(state, content, key))
    research = ResearchState(
        active_technology=key,
        start_time_ms=now,
        end_time_ms=now + tdef.research_time * 1000.0,
    )
    return state.model_copy(update={"resources": resources, "research": research})


def check_progress(state: GameState, content: GameContent, now_ms: Optional[float] = None) -> GameState:
    research = state.research
    if research.active_technology is None:
        return state
    now = state.clock_ms if now_ms is None else float(now_ms)
    if now < research.end_time_ms:
        return state

    key = research.active_technology
    levels = dict(state.technology_levels)
    levels[key] = 1
    state = state.model_copy(update={"technology_levels": levels, "research": ResearchState()})
    tdef = content.technologies.get(key)
    if tdef is None or tdef.effect is None:
        return state
    effect = TECHNOLOGY_EFFECTS.get(tdef.effect)
    if effect is None:
        logger.warning("technology %s effect %s is not registered, skipped", key.value, tdef.effect)
        return state
    return effect(state, tdef)


def research_progress(state: GameState, now_ms: Optional[float] = None) -> float:
    """0~100 (%). 진행 중인 연구가 없으면 0."""
    research = state.research
    if research.active_technology is None:
        return 0.0
    now = state.clock_ms if now_ms is None else float(now_ms)
    span = research.end_time_ms - research.start_time_ms
    if span <= 0:
        return 100.0
    ratio = (now - research.start_time_ms) / span
    return max(0.0, min(1.0, ratio)) * 100.0


def research_time_remaining(state: GameState, now_ms: Optional[float] = None) -> float:
    research = state.research
    if research.active_technology is None:
        return 0.0
    now = state.clock_ms if now_ms is None else float(now_ms)
    return max(0.0, (research.end_time_ms - now) / 1000.0)


def available_technologies(state: GameState, content: GameContent) -> List[TechnologyKey]:
    return [
        key
        for key, tdef in content.technologies.items()
        if state.technology_levels.get(key, 0) < 1 and has_prerequisites(state, tdef)
    ]

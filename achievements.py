#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Achievement evaluator.

잠긴 업적마다 모든 조건이 동시에 만족되면 해제한다. 해제는 되돌리지 않으며
이미 해제된 업적을 다시 검사해도 아무 일도 일어나지 않는다.
"""

from __future__ import annotations

import logging
import operator
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict

from content import (
    AchievementDef,
    AchievementRequirement,
    Comparison,
    GameContent,
    MultiplierTarget,
    RequirementType,
    RewardType,
    requirement_key_enum,
)
from ledger import add_into
from model import (
    AchievementNotification,
    AchievementState,
    GameState,
    MultiplierSet,
    ResourceKey,
    parse_key,
)

logger = logging.getLogger(__name__)

_COMPARE = {
    Comparison.GE: operator.ge,
    Comparison.GT: operator.gt,
    Comparison.EQ: operator.eq,
    Comparison.LE: operator.le,
    Comparison.LT: operator.lt,
}


class AchievementStats(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    unlocked: int
    total: int
    completion_percentage: float
    points_earned: int
    points_available: int


def _total_or_one(mapping: Dict, target: str, enum_cls) -> float:
    if target == "total":
        return float(sum(mapping.values()))
    key = parse_key(enum_cls, target)
    if key is None:
        return 0.0
    return float(mapping.get(key, 0))


def requirement_value(state: GameState, req: AchievementRequirement) -> float:
    enum_cls = requirement_key_enum(req.type)
    if req.type == RequirementType.RESOURCE:
        return _total_or_one(state.resources, req.target, enum_cls)
    if req.type == RequirementType.LIFETIME:
        return _total_or_one(state.lifetime_resources, req.target, enum_cls)
    if req.type == RequirementType.BUILDING:
        return _total_or_one(state.building_counts, req.target, enum_cls)
    if req.type == RequirementType.TECHNOLOGY:
        return _total_or_one(state.technology_levels, req.target, enum_cls)
    if req.type == RequirementType.UPGRADE:
        return _total_or_one(state.upgrade_levels, req.target, enum_cls)
    if req.type == RequirementType.LOOP:
        completed = {e.action_id: e.total_loops_completed for e in state.loop_actions}
        return _total_or_one(completed, req.target, enum_cls)
    if req.type == RequirementType.CLICK:
        return float(state.clicks)
    if req.type == RequirementType.ACTION:
        return float(state.actions_executed)
    if req.type == RequirementType.EVENT:
        if req.target == "total":
            return float(state.events.resolved_count)
        key = parse_key(enum_cls, req.target)
        return float(sum(1 for record in state.events.history if record.event_id == key))
    if req.type == RequirementType.PRESTIGE:
        return float(state.prestige_count)
    return float(state.achievements.total_points)


def requirement_met(state: GameState, req: AchievementRequirement) -> bool:
    return _COMPARE[req.operator](requirement_value(state, req), req.value)


def _requirement_progress(state: GameState, req: AchievementRequirement) -> float:
    if req.operator in (Comparison.GE, Comparison.GT) and req.value > 0:
        return max(0.0, min(1.0, requirement_value(state, req) / req.value))
    return 1.0 if requirement_met(state, req) else 0.0


def achievement_progress(state: GameState, adef: AchievementDef) -> float:
    if adef.key in state.achievements.unlocked:
        return 1.0
    if not adef.requirements:
        return 0.0
    parts = [_requirement_progress(state, req) for req in adef.requirements]
    return sum(parts) / len(parts)


def _merge_multiplier(mset: MultiplierSet, target: MultiplierTarget, value: float, resource) -> MultiplierSet:
    if target == MultiplierTarget.CLICK_GAIN:
        return mset.model_copy(update={"click_gain": mset.click_gain * value})
    if target == MultiplierTarget.COST:
        return mset.model_copy(update={"cost": mset.cost * value})
    field = "production" if target == MultiplierTarget.PRODUCTION else "consumption"
    factors = dict(getattr(mset, field))
    for key in (list(ResourceKey) if resource is None else [resource]):
        factors[key] = factors.get(key, 1.0) * value
    return mset.model_copy(update={field: factors})


def apply_rewards(state: GameState, adef: AchievementDef) -> GameState:
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    sets = state.achievement_multipliers
    permanent, temporary = sets.permanent, sets.temporary

    for reward in adef.rewards:
        if reward.type == RewardType.RESOURCE:
            key = parse_key(ResourceKey, reward.target)
            if key is not None and reward.value > 0:
                add_into(resources, lifetime, {key: reward.value})
            continue
        target = parse_key(MultiplierTarget, reward.target)
        if target is None:
            continue
        if reward.permanent:
            permanent = _merge_multiplier(permanent, target, reward.value, reward.resource)
        else:
            temporary = _merge_multiplier(temporary, target, reward.value, reward.resource)

    return state.model_copy(
        update={
            "resources": resources,
            "lifetime_resources": lifetime,
            "achievement_multipliers": sets.model_copy(update={"permanent": permanent, "temporary": temporary}),
        }
    )


def apply_unlocks(state: GameState, content: GameContent) -> GameState:
    """조건을 만족한 업적만 해제한다. 해제가 없으면 같은 객체를 돌려준다."""
    for adef in content.achievements.values():
        if adef.key in state.achievements.unlocked:
            continue
        if not adef.requirements or not all(requirement_met(state, req) for req in adef.requirements):
            continue
        ach = state.achievements
        unlocked = dict(ach.unlocked)
        unlocked[adef.key] = state.clock_ms
        progress = dict(ach.progress)
        progress[adef.key] = 1.0
        note = AchievementNotification(achievement_id=adef.key, timestamp=state.clock_ms)
        state = state.model_copy(
            update={
                "achievements": ach.model_copy(
                    update={
                        "unlocked": unlocked,
                        "progress": progress,
                        "pending_notifications": ach.pending_notifications + (note,),
                        "total_points": ach.total_points + adef.points,
                    }
                )
            }
        )
        state = apply_rewards(state, adef)
        logger.info("achievement unlocked: %s (+%d points)", adef.key, adef.points)
    return state


def check_achievements(state: GameState, content: GameContent) -> GameState:
    state = apply_unlocks(state, content)
    progress = {key: achievement_progress(state, adef) for key, adef in content.achievements.items()}
    if progress != state.achievements.progress:
        state = state.model_copy(update={"achievements": state.achievements.model_copy(update={"progress": progress})})
    return state


def pop_notifications(state: GameState) -> Tuple[GameState, List[AchievementNotification]]:
    pending = list(state.achievements.pending_notifications)
    if not pending:
        return state, []
    cleared = state.achievements.model_copy(update={"pending_notifications": ()})
    return state.model_copy(update={"achievements": cleared}), pending


def achievement_stats(state: GameState, content: GameContent) -> AchievementStats:
    total = len(content.achievements)
    unlocked = sum(1 for key in content.achievements if key in state.achievements.unlocked)
    available = sum(adef.points for adef in content.achievements.values())
    return AchievementStats(
        unlocked=unlocked,
        total=total,
        completion_percentage=(unlocked / total * 100.0) if total else 0.0,
        points_earned=state.achievements.total_points,
        points_available=available,
    )


def fresh_achievement_state(state: AchievementState) -> AchievementState:
    """Prestige keeps unlocks and points but drops queued notifications."""
    return state.model_copy(update={"pending_notifications": ()})

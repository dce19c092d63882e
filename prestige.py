#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import math

from achievements import fresh_achievement_state
from config import PRESTIGE_DIVISOR
from content import GameContent
from costs import upgrade_reason, upgrade_cost_for
from model import AchievementMultipliers, GameState, ResourceKey, UpgradeKey, parse_key

logger = logging.getLogger(__name__)


def prestige_gain(state: GameState) -> int:
    food = state.lifetime_resources.get(ResourceKey.FOOD, 0.0)
    return int(math.floor(math.sqrt(max(0.0, food) / PRESTIGE_DIVISOR)))


def carry_over(state: GameState, fresh: GameState) -> GameState:
    """fresh(새 게임)에 프레스티지 통화, 업그레이드, 업적, 영구 배율을 옮긴다.

    이벤트 난수열과 기록도 이어진다. 임시 배율은 버린다.
    """
    gain = prestige_gain(state)
    resources = dict(fresh.resources)
    lifetime = dict(fresh.lifetime_resources)
    resources[ResourceKey.PRESTIGE] = state.resources.get(ResourceKey.PRESTIGE, 0.0) + gain
    lifetime[ResourceKey.PRESTIGE] = state.lifetime_resources.get(ResourceKey.PRESTIGE, 0.0) + gain
    return fresh.model_copy(
        update={
            "clock_ms": max(fresh.clock_ms, state.clock_ms),
            "resources": resources,
            "lifetime_resources": lifetime,
            "upgrade_levels": dict(state.upgrade_levels),
            "achievements": fresh_achievement_state(state.achievements),
            "achievement_multipliers": AchievementMultipliers(permanent=state.achievement_multipliers.permanent),
            "prestige_count": state.prestige_count + 1,
            "events": state.events,
        }
    )


def buy_upgrade(state: GameState, content: GameContent, upgrade_id: object) -> GameState:
    reason = upgrade_reason(state, content, upgrade_id)
    if reason is not None:
        logger.debug("upgrade %s not bought: %s", upgrade_id, reason.value)
        return state
    key = parse_key(UpgradeKey, upgrade_id)
    level = state.upgrade_levels.get(key, 0)
    price = upgrade_cost_for(content, key, level)
    resources = dict(state.resources)
    resources[ResourceKey.PRESTIGE] = max(0.0, resources.get(ResourceKey.PRESTIGE, 0.0) - price)
    levels = dict(state.upgrade_levels)
    levels[key] = level + 1
    return state.model_copy(update={"resources": resources, "upgrade_levels": levels})

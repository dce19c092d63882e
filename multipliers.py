#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Multiplier composition.

모든 배율은 1.0에서 시작해 각 출처(프레스티지 업그레이드, 업적 영구/임시 보상)를 곱한다.
"""

from __future__ import annotations

import logging
from typing import Dict

from pydantic import BaseModel, ConfigDict

from content import GameContent, UpgradeEffectKind
from model import GameState, MultiplierSet, ResourceKey

logger = logging.getLogger(__name__)


class Multipliers(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    production: Dict[ResourceKey, float]
    consumption: Dict[ResourceKey, float]
    cost: float = 1.0
    click_gain: float = 1.0


def _neutral() -> Dict[ResourceKey, float]:
    return {key: 1.0 for key in ResourceKey}


def _scale(factors: Dict[ResourceKey, float], resource, value: float) -> None:
    targets = list(ResourceKey) if resource is None else [resource]
    for key in targets:
        factors[key] *= value


def _merge_set(mset: MultiplierSet, production, consumption) -> tuple:
    for key, value in mset.production.items():
        production[key] *= value
    for key, value in mset.consumption.items():
        consumption[key] *= value
    return mset.cost, mset.click_gain


def compute_multipliers(state: GameState, content: GameContent) -> Multipliers:
    production = _neutral()
    consumption = _neutral()
    cost = 1.0
    click_gain = 1.0

    for key, level in state.upgrade_levels.items():
        if level <= 0:
            continue
        udef = content.upgrades.get(key)
        if udef is None:
            logger.debug("upgrade %s has no definition, skipped", key.value)
            continue
        effect = udef.effect
        if effect.kind == UpgradeEffectKind.CLICK_GAIN_LINEAR:
            click_gain *= 1.0 + effect.value * level
        elif effect.kind == UpgradeEffectKind.COST_POWER:
            cost *= effect.value ** level
        elif effect.kind == UpgradeEffectKind.PRODUCTION_POWER:
            _scale(production, effect.resource, effect.value ** level)
        elif effect.kind == UpgradeEffectKind.CONSUMPTION_POWER:
            _scale(consumption, effect.resource, effect.value ** level)

    sets = state.achievement_multipliers
    for mset in (sets.permanent, sets.temporary):
        set_cost, set_click = _merge_set(mset, production, consumption)
        cost *= set_cost
        click_gain *= set_click

    return Multipliers(production=production, consumption=consumption, cost=cost, click_gain=click_gain)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Resource ledger mutators.

공개 함수는 GameState를 받아 새 GameState를 돌려준다.
*_into / *_from 헬퍼는 틱 루프 안에서 쓰는 가변 dict 버전이다.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Mapping

from content import GameContent, resource_decimals
from model import GameState, ResourceAmounts, ResourceKey

logger = logging.getLogger(__name__)


def _valid_amounts(amounts: Mapping[ResourceKey, float]) -> bool:
    for key, value in amounts.items():
        if not isinstance(key, ResourceKey) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value) or value < 0:
            return False
    return True


# =============================
# Mutable helpers
# =============================
def can_afford_from(resources: Mapping[ResourceKey, float], cost: Mapping[ResourceKey, float]) -> bool:
    return all(resources.get(key, 0.0) >= amount for key, amount in cost.items())


def pay_from(resources: Dict[ResourceKey, float], cost: Mapping[ResourceKey, float]) -> None:
    for key, amount in cost.items():
        resources[key] = max(0.0, resources.get(key, 0.0) - amount)


def add_into(
    resources: Dict[ResourceKey, float],
    lifetime: Dict[ResourceKey, float],
    gains: Mapping[ResourceKey, float],
    scale: float = 1.0,
) -> None:
    for key, amount in gains.items():
        delta = amount * scale
        resources[key] = max(0.0, resources.get(key, 0.0) + delta)
        if delta > 0:
            lifetime[key] = lifetime.get(key, 0.0) + delta


def apply_rate_into(
    resources: Dict[ResourceKey, float],
    lifetime: Dict[ResourceKey, float],
    rate: Mapping[ResourceKey, float],
    seconds: float,
) -> None:
    """rate(초당) * seconds 를 적용. 0 미만은 0으로 자르고 lifetime 은 양수분만 누적."""
    if seconds <= 0:
        return
    for key, per_second in rate.items():
        if per_second == 0:
            continue
        delta = per_second * seconds
        resources[key] = max(0.0, resources.get(key, 0.0) + delta)
        if delta > 0:
            lifetime[key] = lifetime.get(key, 0.0) + delta


# =============================
# Snapshot API
# =============================
def get_resource(state: GameState, key: ResourceKey) -> float:
    return state.resources.get(key, 0.0)


def can_afford(state: GameState, cost: Mapping[ResourceKey, float]) -> bool:
    """cost 에 있는 모든 키에 대해 resources[key] >= cost[key] 일 때만 True."""
    if not _valid_amounts(cost):
        logger.warning("invalid cost rejected: %r", dict(cost))
        return False
    return can_afford_from(state.resources, cost)


def pay(state: GameState, cost: Mapping[ResourceKey, float]) -> GameState:
    if not can_afford(state, cost):
        return state
    resources = dict(state.resources)
    pay_from(resources, cost)
    return state.model_copy(update={"resources": resources})


def add_resources(state: GameState, gains: Mapping[ResourceKey, float]) -> GameState:
    if not _valid_amounts(gains):
        logger.warning("invalid gains rejected: %r", dict(gains))
        return state
    if not gains:
        return state
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    add_into(resources, lifetime, gains)
    return state.model_copy(update={"resources": resources, "lifetime_resources": lifetime})


def apply_changes(state: GameState, delta: Mapping[ResourceKey, float]) -> GameState:
    """Signed delta. Negative results are clamped to 0."""
    for key, value in delta.items():
        if not isinstance(key, ResourceKey) or not isinstance(value, (int, float)) or not math.isfinite(value):
            logger.warning("invalid resource delta rejected: %r", dict(delta))
            return state
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    add_into(resources, lifetime, delta)
    return state.model_copy(update={"resources": resources, "lifetime_resources": lifetime})


def format_amount(content: GameContent, key: ResourceKey, amount: float) -> str:
    decimals = resource_decimals(content, key)
    factor = 10 ** decimals
    shown = math.floor(amount * factor + 1e-9) / factor
    if decimals == 0:
        return f"{int(shown):,}"
    return f"{shown:,.{decimals}f}"


def zero_ledger() -> ResourceAmounts:
    return {key: 0.0 for key in ResourceKey}

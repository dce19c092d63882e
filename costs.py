#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Cost calculator.

건물 비용은 base * scale^보유수 * cost 배율, 기술은 한 번만 연구하므로 base * cost 배율
(내부 계산은 반올림 없음).
프레스티지 업그레이드는 단일 통화(prestige)로 ceil 처리한다.
"""

from __future__ import annotations

import math
from typing import Optional

from content import GameContent
from ledger import can_afford
from model import BuildingKey, GameState, RejectReason, ResourceAmounts, ResourceKey, TechnologyKey, UpgradeKey, parse_key
from multipliers import compute_multipliers


def cost_for(state: GameState, content: GameContent, building_id: object) -> Optional[ResourceAmounts]:
    key = parse_key(BuildingKey, building_id)
    bdef = content.buildings.get(key) if key is not None else None
    if bdef is None:
        return None
    owned = state.building_counts.get(key, 0)
    factor = (bdef.cost_scale ** owned) * compute_multipliers(state, content).cost
    return {rkey: amount * factor for rkey, amount in bdef.base_cost.items()}


def technology_cost_for(state: GameState, content: GameContent, tech_id: object) -> Optional[ResourceAmounts]:
    key = parse_key(TechnologyKey, tech_id)
    tdef = content.technologies.get(key) if key is not None else None
    if tdef is None:
        return None
    factor = compute_multipliers(state, content).cost
    return {rkey: amount * factor for rkey, amount in tdef.base_cost.items()}


def upgrade_cost_for(content: GameContent, upgrade_id: object, current_level: int) -> Optional[float]:
    key = parse_key(UpgradeKey, upgrade_id)
    udef = content.upgrades.get(key) if key is not None else None
    if udef is None:
        return None
    return float(math.ceil(udef.base_cost * udef.cost_growth ** max(0, int(current_level))))


def has_technologies(state: GameState, required) -> bool:
    return all(state.technology_levels.get(tkey, 0) >= 1 for tkey in required)


def building_reason(state: GameState, content: GameContent, building_id: object) -> Optional[RejectReason]:
    key = parse_key(BuildingKey, building_id)
    if key is None:
        return RejectReason.INVALID_INPUT
    bdef = content.buildings.get(key)
    if bdef is None:
        return RejectReason.UNKNOWN_ID
    if not has_technologies(state, bdef.requires_tech):
        return RejectReason.LOCKED
    cost = cost_for(state, content, key)
    if cost is None or not can_afford(state, cost):
        return RejectReason.INSUFFICIENT_RESOURCES
    return None


def can_buy_building(state: GameState, content: GameContent, building_id: object) -> bool:
    return building_reason(state, content, building_id) is None


def upgrade_reason(state: GameState, content: GameContent, upgrade_id: object) -> Optional[RejectReason]:
    key = parse_key(UpgradeKey, upgrade_id)
    if key is None:
        return RejectReason.INVALID_INPUT
    udef = content.upgrades.get(key)
    if udef is None:
        return RejectReason.UNKNOWN_ID
    level = state.upgrade_levels.get(key, 0)
    if level >= udef.max_level:
        return RejectReason.MAX_LEVEL
    price = upgrade_cost_for(content, key, level)
    if price is None or not can_afford(state, {ResourceKey.PRESTIGE: price}):
        return RejectReason.INSUFFICIENT_RESOURCES
    return None


def can_buy_upgrade(state: GameState, content: GameContent, upgrade_id: object) -> bool:
    return upgrade_reason(state, content, upgrade_id) is None

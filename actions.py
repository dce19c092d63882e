#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""One-shot player actions: click, action buttons, building purchase."""

from __future__ import annotations

import logging
from typing import Optional

from conditions import conditions_met
from config import CLICK_BASE_GAINS
from content import GameContent
from costs import building_reason, cost_for
from ledger import add_into, can_afford, pay_from
from model import ActionKey, BuildingKey, GameState, RejectReason, ResourceKey, parse_key
from multipliers import compute_multipliers

logger = logging.getLogger(__name__)


def click(state: GameState, content: GameContent) -> GameState:
    mul = compute_multipliers(state, content).click_gain
    gains = {ResourceKey(k): v for k, v in CLICK_BASE_GAINS.items()}
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    add_into(resources, lifetime, gains, scale=mul)
    return state.model_copy(update={"resources": resources, "lifetime_resources": lifetime, "clicks": state.clicks + 1})


def action_reason(state: GameState, content: GameContent, action_id: object) -> Optional[RejectReason]:
    key = parse_key(ActionKey, action_id)
    if key is None:
        return RejectReason.INVALID_INPUT
    adef = content.actions.get(key)
    if adef is None:
        return RejectReason.UNKNOWN_ID
    unlocked_once = adef.one_time_unlock and key in state.action_unlocks
    if not unlocked_once and not conditions_met(state, adef.unlock_conditions):
        return RejectReason.LOCKED
    if state.clock_ms < state.action_cooldowns.get(key, 0.0):
        return RejectReason.ON_COOLDOWN
    if not can_afford(state, adef.cost):
        return RejectReason.INSUFFICIENT_RESOURCES
    return None


def execute_action(state: GameState, content: GameContent, action_id: object) -> GameState:
    reason = action_reason(state, content, action_id)
    if reason is not None:
        logger.debug("action %s rejected: %s", action_id, reason.value)
        return state
    key = parse_key(ActionKey, action_id)
    adef = content.actions[key]
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    pay_from(resources, adef.cost)
    add_into(resources, lifetime, adef.gains)
    update = {
        "resources": resources,
        "lifetime_resources": lifetime,
        "actions_executed": state.actions_executed + 1,
    }
    if adef.one_time_unlock and key not in state.action_unlocks:
        unlocks = dict(state.action_unlocks)
        unlocks[key] = state.clock_ms
        update["action_unlocks"] = unlocks
    if adef.cooldown_seconds > 0:
        cooldowns = dict(state.action_cooldowns)
        cooldowns[key] = state.clock_ms + adef.cooldown_seconds * 1000.0
        update["action_cooldowns"] = cooldowns
    return state.model_copy(update=update)


def buy_building(state: GameState, content: GameContent, building_id: object) -> GameState:
    reason = building_reason(state, content, building_id)
    if reason is not None:
        logger.debug("building %s not bought: %s", building_id, reason.value)
        return state
    key = parse_key(BuildingKey, building_id)
    resources = dict(state.resources)
    pay_from(resources, cost_for(state, content, key))
    counts = dict(state.building_counts)
    counts[key] = counts.get(key, 0) + 1
    return state.model_copy(update={"resources": resources, "building_counts": counts})

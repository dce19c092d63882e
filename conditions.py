#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from typing import Iterable

from content import ConditionType, UnlockCondition, condition_key_enum
from model import GameState, parse_key


def condition_met(state: GameState, cond: UnlockCondition) -> bool:
    key = parse_key(condition_key_enum(cond.type), cond.key)
    if key is None:
        return False
    if cond.type == ConditionType.TECHNOLOGY:
        current = state.technology_levels.get(key, 0)
    elif cond.type == ConditionType.BUILDING:
        current = state.building_counts.get(key, 0)
    elif cond.type == ConditionType.RESOURCE:
        current = state.resources.get(key, 0.0)
    else:
        current = state.upgrade_levels.get(key, 0)
    return current >= cond.value


def conditions_met(state: GameState, conditions: Iterable[UnlockCondition]) -> bool:
    return all(condition_met(state, cond) for cond in conditions)

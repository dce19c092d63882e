#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Loop action scheduler.

슬롯 상태: Inactive -> Active <-> Paused. 완료 시 재무장(Active) 또는
다음 반복 비용을 낼 수 없으면 자동 일시정지(Paused).

포인트는 벽시계 초가 아니라 이산 틱 수로만 누적된다. 오프라인 정산도
같은 틱 수를 그대로 재생해야 완료 횟수가 일치한다.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from conditions import conditions_met
from config import GAME_TICK_RATE
from content import GameContent, LoopActionDef
from ledger import add_into, can_afford, can_afford_from, pay_from
from model import GameState, LoopActionKey, LoopActionState, RejectReason, parse_key

logger = logging.getLogger(__name__)


class LoopActionProgress(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    action_id: LoopActionKey
    current_points: int
    points_required: int
    percentage: float
    seconds_remaining: float


def active_count(state: GameState) -> int:
    return sum(1 for entry in state.loop_actions if entry.is_active)


def _definition(content: GameContent, action_id: object) -> tuple:
    key = parse_key(LoopActionKey, action_id)
    if key is None:
        return None, None
    return key, content.loop_actions.get(key)


def _unlock_reason(state: GameState, content: GameContent, action_id: object) -> Optional[RejectReason]:
    key, ldef = _definition(content, action_id)
    if key is None:
        return RejectReason.INVALID_INPUT
    if ldef is None:
        return RejectReason.UNKNOWN_ID
    existing = state.find_loop_action(key)
    if existing is not None and existing.is_active:
        return RejectReason.ALREADY_ACTIVE
    if not conditions_met(state, ldef.unlock_conditions):
        return RejectReason.LOCKED
    if existing is None and not can_afford(state, ldef.cost):
        return RejectReason.INSUFFICIENT_RESOURCES
    return None


def can_start(state: GameState, content: GameContent, action_id: object) -> bool:
    """Resuming an existing slot does not re-check the cost."""
    return _unlock_reason(state, content, action_id) is None


def start_reason(state: GameState, content: GameContent, action_id: object) -> Optional[RejectReason]:
    reason = _unlock_reason(state, content, action_id)
    if reason is not None:
        return reason
    if active_count(state) >= state.loop_settings.max_concurrent_actions:
        return RejectReason.CAPACITY_REACHED
    return None


def start(state: GameState, content: GameContent, action_id: object) -> GameState:
    reason = start_reason(state, content, action_id)
    if reason is not None:
        logger.debug("loop action %s not started: %s", action_id, reason.value)
        return state

    key, ldef = _definition(content, action_id)
    existing = state.find_loop_action(key)
    if existing is not None:
        resumed = existing.model_copy(update={"is_active": True, "is_paused": False})
        entries = tuple(resumed if e.action_id == key else e for e in state.loop_actions)
        return state.model_copy(update={"loop_actions": entries})

    resources = dict(state.resources)
    pay_from(resources, ldef.cost)
    entry = LoopActionState(
        action_id=key,
        is_active=True,
        is_paused=False,
        current_points=0,
        total_loops_completed=0,
        started_at=state.clock_ms,
        last_tick_at=state.clock_ms,
    )
    return state.model_copy(update={"resources": resources, "loop_actions": state.loop_actions + (entry,)})


def resume_reason(state: GameState, content: GameContent, action_id: object) -> Optional[RejectReason]:
    key = parse_key(LoopActionKey, action_id)
    if key is None:
        return RejectReason.INVALID_INPUT
    if state.find_loop_action(key) is None:
        return RejectReason.NOT_STARTED
    return start_reason(state, content, key)


def resume(state: GameState, content: GameContent, action_id: object) -> GameState:
    if resume_reason(state, content, action_id) is not None:
        return state
    return start(state, content, action_id)


def _replace_entry(state: GameState, action_id: object, reason_if_inactive: bool, **update) -> tuple:
    key = parse_key(LoopActionKey, action_id)
    if key is None:
        return state, RejectReason.INVALID_INPUT
    existing = state.find_loop_action(key)
    if existing is None:
        return state, RejectReason.NOT_STARTED
    if reason_if_inactive and not existing.is_active:
        return state, RejectReason.NOT_ACTIVE
    changed = existing.model_copy(update=update)
    entries = tuple(changed if e.action_id == key else e for e in state.loop_actions)
    return state.model_copy(update={"loop_actions": entries}), None


def pause_reason(state: GameState, action_id: object) -> Optional[RejectReason]:
    return _replace_entry(state, action_id, True)[1]


def pause(state: GameState, action_id: object) -> GameState:
    """진행 포인트는 유지한다."""
    return _replace_entry(state, action_id, True, is_active=False, is_paused=True)[0]


def stop_reason(state: GameState, action_id: object) -> Optional[RejectReason]:
    return _replace_entry(state, action_id, False)[1]


def stop(state: GameState, action_id: object) -> GameState:
    return _replace_entry(state, action_id, False, is_active=False, is_paused=False, current_points=0)[0]


# =============================
# Ticking
# =============================
class LoopRun:
    """틱 재생용 가변 작업 공간. 끝나면 commit()으로 새 스냅샷을 만든다."""

    def __init__(self, state: GameState):
        self.resources = dict(state.resources)
        self.lifetime = dict(state.lifetime_resources)
        self.entries: List[Dict[str, object]] = [entry.model_dump() for entry in state.loop_actions]
        self.points_per_tick = state.loop_settings.base_points_per_tick

    def has_running(self) -> bool:
        return any(e["is_active"] and not e["is_paused"] for e in self.entries)

    def step(self, content: GameContent, now_ms: float) -> None:
        """한 틱. 저장 순서대로 처리하며 앞선 완료의 자원 변화가 뒤 항목에 보인다."""
        for entry in self.entries:
            if not entry["is_active"] or entry["is_paused"]:
                continue
            ldef: Optional[LoopActionDef] = content.loop_actions.get(entry["action_id"])
            if ldef is None:
                continue
            entry["current_points"] += self.points_per_tick
            entry["last_tick_at"] = now_ms
            if entry["current_points"] < ldef.points_required:
                continue
            add_into(self.resources, self.lifetime, ldef.gains)
            entry["current_points"] = 0
            entry["total_loops_completed"] += 1
            if can_afford_from(self.resources, ldef.cost):
                pay_from(self.resources, ldef.cost)
                continue
            entry["is_active"] = False
            entry["is_paused"] = True
            logger.warning(
                "loop action %s paused after %d loops: cannot afford %s",
                ldef.key.value,
                entry["total_loops_completed"],
                {k.value: v for k, v in ldef.cost.items()},
            )

    def commit(self, state: GameState, **update) -> GameState:
        entries = tuple(LoopActionState(**entry) for entry in self.entries)
        return state.model_copy(
            update={
                "resources": self.resources,
                "lifetime_resources": self.lifetime,
                "loop_actions": entries,
                **update,
            }
        )


def tick_loop_actions(state: GameState, content: GameContent, ticks: int = 1) -> GameState:
    if ticks <= 0 or not state.loop_actions:
        return state
    run = LoopRun(state)
    tick_ms = 1000.0 / GAME_TICK_RATE
    for i in range(int(ticks)):
        if not run.has_running():
            break
        run.step(content, state.clock_ms + (i + 1) * tick_ms)
    return run.commit(state)


def loop_progress(state: GameState, content: GameContent, action_id: object) -> Optional[LoopActionProgress]:
    key, ldef = _definition(content, action_id)
    if ldef is None:
        return None
    entry = state.find_loop_action(key)
    points = entry.current_points if entry is not None else 0
    required = ldef.points_required
    per_tick = max(1, state.loop_settings.base_points_per_tick)
    ticks_left = max(0, math.ceil((required - points) / per_tick))
    return LoopActionProgress(
        action_id=key,
        current_points=points,
        points_required=required,
        percentage=min(100.0, points / required * 100.0),
        seconds_remaining=ticks_left / GAME_TICK_RATE,
    )


def available_loop_actions(state: GameState, content: GameContent) -> List[LoopActionKey]:
    return [key for key, ldef in content.loop_actions.items() if conditions_met(state, ldef.unlock_conditions)]

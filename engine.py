#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Tick orchestrator and host-facing operations.

tick() 한 번의 처리 순서:
1) 초당 순생산량을 틱 경계까지 적용 (0 미만은 0으로, lifetime 은 양수분만)
2) 경계마다 루프 액션 한 틱 진행
3) 그 경계 시각으로 연구 완료, 이벤트, 업적 해제 확인. 상태가 바뀌면 순생산량 재계산
4) 남은 시간 적용 후 업적 진행도 갱신

그래서 dt 를 한 번에 넘기든 잘게 나눠 넘기든 결과가 같다.

오프라인 정산은 상한을 둔 dt 로 같은 tick() 을 한 번 호출하는 것이다.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Tuple

import achievements
import actions
import events
import loop_actions
import prestige
import research
from config import GAME_TICK_RATE, OFFLINE_PROGRESS_CAP_SECONDS, TICK_EPSILON, TICK_SECONDS
from content import GameContent, require_playable, validate_content
from costs import building_reason, upgrade_reason
from ledger import apply_rate_into
from model import GameState, RejectReason
from production import compute_net_per_second

logger = logging.getLogger(__name__)

OperationResult = Tuple[GameState, Optional[RejectReason]]


def check_content(content: GameContent) -> List[str]:
    """시작 시 1회. 참조 불일치는 경고만 남기고 실행 중에는 건너뛴다."""
    return validate_content(content) + research.validate_effects(content)


def new_game(content: GameContent, now_ms: float = 0.0, seed: Optional[int] = None) -> GameState:
    """seed 를 주지 않으면 시작 시각에서 만든다."""
    require_playable(content)
    start = {key: float(rdef.start) for key, rdef in content.resources.items()}
    now = float(now_ms)
    return GameState(
        clock_ms=now,
        resources=start,
        lifetime_resources=dict(start),
        events=events.initial_event_state(int(now) if seed is None else seed, now),
    )


def _tick_count(carry: float, dt: float) -> Tuple[int, float]:
    exact = carry + dt * GAME_TICK_RATE
    count = int(math.floor(exact + TICK_EPSILON))
    return count, max(0.0, exact - count)


def _settle(state: GameState, content: GameContent) -> GameState:
    """틱 경계의 시각으로 연구 완료, 이벤트, 업적 해제를 확인한다."""
    state = research.check_progress(state, content)
    state = events.check_events(state, content)
    return achievements.apply_unlocks(state, content)


def tick(state: GameState, content: GameContent, dt_seconds: float) -> GameState:
    if isinstance(dt_seconds, bool) or not isinstance(dt_seconds, (int, float)) or not math.isfinite(dt_seconds):
        logger.warning("tick ignored: invalid dt %r", dt_seconds)
        return state
    if dt_seconds <= 0:
        return state

    dt = float(dt_seconds)
    start_ms = state.clock_ms
    end_ms = start_ms + dt * 1000.0
    ticks, carry = _tick_count(state.loop_tick_carry, dt)
    tick_ms = TICK_SECONDS * 1000.0
    first_ms = max(0.0, (1.0 - state.loop_tick_carry) * tick_ms)

    rate = compute_net_per_second(state, content)
    run = loop_actions.LoopRun(state)
    prev_ms = start_ms
    for i in range(ticks):
        # 경계 시각은 누적 합이 아니라 정수 틱 오프셋으로 계산한다.
        boundary_ms = min(start_ms + first_ms + i * tick_ms, end_ms)
        apply_rate_into(run.resources, run.lifetime, rate, (boundary_ms - prev_ms) / 1000.0)
        prev_ms = boundary_ms
        if run.has_running():
            run.step(content, boundary_ms)
        snapshot = run.commit(state, clock_ms=boundary_ms)
        settled = _settle(snapshot, content)
        if settled is not snapshot:
            state = settled
            rate = compute_net_per_second(settled, content)
            run = loop_actions.LoopRun(settled)
    apply_rate_into(run.resources, run.lifetime, rate, (end_ms - prev_ms) / 1000.0)

    state = run.commit(state, clock_ms=end_ms, loop_tick_carry=carry)
    state = research.check_progress(state, content)
    state = events.check_events(state, content)
    return achievements.check_achievements(state, content)


def collapse_offline(state: GameState, content: GameContent, now_ms: float) -> GameState:
    if isinstance(now_ms, bool) or not isinstance(now_ms, (int, float)) or not math.isfinite(now_ms):
        logger.warning("offline collapse ignored: invalid now %r", now_ms)
        return state
    elapsed = (now_ms - state.clock_ms) / 1000.0
    if elapsed < 0:
        logger.warning("offline collapse ignored: clock is %.0fms ahead of now", -elapsed * 1000.0)
        return state

    dt = min(elapsed, OFFLINE_PROGRESS_CAP_SECONDS)
    if dt < elapsed:
        logger.info("offline progress capped at %.0fs (away %.0fs)", dt, elapsed)
    state = tick(state, content, dt)

    if now_ms > state.clock_ms:
        state = state.model_copy(update={"clock_ms": float(now_ms)})
        state = research.check_progress(state, content)
        state = events.check_events(state, content)
        state = achievements.check_achievements(state, content)
    return state


# =============================
# Host operations
# =============================
def _run(
    state: GameState,
    content: GameContent,
    name: str,
    reason: Optional[RejectReason],
    apply: Callable[[], GameState],
) -> OperationResult:
    if reason is not None:
        logger.info("%s rejected: %s", name, reason.value)
        return state, reason
    return achievements.check_achievements(apply(), content), None


def start_loop_action(state: GameState, content: GameContent, action_id: object) -> OperationResult:
    return _run(
        state, content, f"start loop {action_id}",
        loop_actions.start_reason(state, content, action_id),
        lambda: loop_actions.start(state, content, action_id),
    )


def resume_loop_action(state: GameState, content: GameContent, action_id: object) -> OperationResult:
    return _run(
        state, content, f"resume loop {action_id}",
        loop_actions.resume_reason(state, content, action_id),
        lambda: loop_actions.resume(state, content, action_id),
    )


def pause_loop_action(state: GameState, content: GameContent, action_id: object) -> OperationResult:
    return _run(
        state, content, f"pause loop {action_id}",
        loop_actions.pause_reason(state, action_id),
        lambda: loop_actions.pause(state, action_id),
    )


def stop_loop_action(state: GameState, content: GameContent, action_id: object) -> OperationResult:
    return _run(
        state, content, f"stop loop {action_id}",
        loop_actions.stop_reason(state, action_id),
        lambda: loop_actions.stop(state, action_id),
    )


def start_research(state: GameState, content: GameContent, tech_id: object) -> OperationResult:
    return _run(
        state, content, f"research {tech_id}",
        research.research_reason(state, content, tech_id),
        lambda: research.start_research(state, content, tech_id),
    )


def buy_building(state: GameState, content: GameContent, building_id: object) -> OperationResult:
    return _run(
        state, content, f"buy building {building_id}",
        building_reason(state, content, building_id),
        lambda: actions.buy_building(state, content, building_id),
    )


def buy_upgrade(state: GameState, content: GameContent, upgrade_id: object) -> OperationResult:
    return _run(
        state, content, f"buy upgrade {upgrade_id}",
        upgrade_reason(state, content, upgrade_id),
        lambda: prestige.buy_upgrade(state, content, upgrade_id),
    )


def execute_action(state: GameState, content: GameContent, action_id: object) -> OperationResult:
    return _run(
        state, content, f"action {action_id}",
        actions.action_reason(state, content, action_id),
        lambda: actions.execute_action(state, content, action_id),
    )


def click(state: GameState, content: GameContent) -> OperationResult:
    return _run(state, content, "click", None, lambda: actions.click(state, content))


def do_prestige(state: GameState, content: GameContent) -> OperationResult:
    """대부분을 초기화하고 프레스티지 통화, 업그레이드, 영구 보너스만 남긴다."""
    reason = None if prestige.prestige_gain(state) > 0 else RejectReason.NOTHING_TO_GAIN
    return _run(
        state, content, "prestige", reason,
        lambda: prestige.carry_over(state, new_game(content, state.clock_ms)),
    )


def make_event_choice(state: GameState, content: GameContent, choice_index: object) -> OperationResult:
    return _run(
        state, content, f"event choice {choice_index}",
        events.choice_reason(state, content, choice_index),
        lambda: events.make_choice(state, content, choice_index),
    )

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Random kingdom events.

가중치로 이벤트를 하나 골라 활성화하고, 플레이어가 선택지를 고르면
자원을 주고받은 뒤 다음 이벤트 시각을 예약한다. 일정 시간 안에 고르지 않으면
기본 선택지로 자동 처리한다.

난수는 GameState.events 의 seed 와 draws 로만 만든다. 같은 상태에서 같은
호출을 하면 항상 같은 결과가 나온다.
"""

from __future__ import annotations

import logging
import math
from random import Random
from typing import List, Optional, Tuple

from config import EVENT_AUTO_RESOLVE_MS, EVENT_FIRST_MAX_SECONDS, EVENT_FIRST_MIN_SECONDS, EVENT_HISTORY_MAX
from content import EventChoice, EventDef, GameContent
from ledger import add_into, can_afford_from
from model import EventKey, EventRecord, EventState, GameState, RejectReason

logger = logging.getLogger(__name__)


def _draw(events: EventState) -> Tuple[Random, EventState]:
    rng = Random(f"{events.seed}:{events.draws}")
    return rng, events.model_copy(update={"draws": events.draws + 1})


def _now(state: GameState, now_ms: Optional[float]) -> float:
    return state.clock_ms if now_ms is None else float(now_ms)


def initial_event_state(seed: int, now_ms: float) -> EventState:
    """새 게임용. 첫 이벤트는 짧은 대기 뒤에 온다."""
    rng, events = _draw(EventState(seed=int(seed)))
    delay = rng.uniform(EVENT_FIRST_MIN_SECONDS, EVENT_FIRST_MAX_SECONDS)
    return events.model_copy(update={"next_event_ms": now_ms + delay * 1000.0})


def pick_event(content: GameContent, rng: Random) -> Optional[EventKey]:
    if not content.events:
        return None
    keys = list(content.events)
    weights = [content.events[key].weight for key in keys]
    return rng.choices(keys, weights=weights, k=1)[0]


def trigger_random_event(state: GameState, content: GameContent, now_ms: Optional[float] = None) -> GameState:
    if state.events.active_event is not None:
        return state
    rng, events = _draw(state.events)
    key = pick_event(content, rng)
    if key is None:
        return state
    now = _now(state, now_ms)
    logger.info("event triggered: %s", key.value)
    return state.model_copy(
        update={"events": events.model_copy(update={"active_event": key, "active_since_ms": now})}
    )


def active_event(state: GameState, content: GameContent) -> Optional[EventDef]:
    key = state.events.active_event
    if key is None:
        return None
    return content.events.get(key)


def _choice(state: GameState, content: GameContent, choice_index: object) -> Tuple[Optional[EventChoice], Optional[RejectReason]]:
    edef = active_event(state, content)
    if edef is None:
        return None, RejectReason.NOT_ACTIVE
    if isinstance(choice_index, bool) or not isinstance(choice_index, int):
        return None, RejectReason.INVALID_INPUT
    if not 0 <= choice_index < len(edef.choices):
        return None, RejectReason.INVALID_INPUT
    return edef.choices[choice_index], None


def choice_reason(state: GameState, content: GameContent, choice_index: object) -> Optional[RejectReason]:
    choice, reason = _choice(state, content, choice_index)
    if reason is not None:
        return reason
    if not can_afford_from(state.resources, choice.requires):
        return RejectReason.INSUFFICIENT_RESOURCES
    return None


def can_make_choice(state: GameState, content: GameContent, choice_index: object) -> bool:
    return choice_reason(state, content, choice_index) is None


def _resolve(state: GameState, edef: EventDef, choice_index: int, now: float) -> GameState:
    choice = edef.choices[choice_index]
    resources = dict(state.resources)
    lifetime = dict(state.lifetime_resources)
    add_into(resources, lifetime, choice.gives)
    add_into(resources, lifetime, choice.takes, scale=-1.0)

    record = EventRecord(event_id=edef.key, choice_index=choice_index, timestamp=now)
    history = (state.events.history + (record,))[-EVENT_HISTORY_MAX:]
    rng, events = _draw(state.events)
    delay = rng.uniform(edef.min_interval, edef.max_interval)
    events = events.model_copy(
        update={
            "active_event": None,
            "active_since_ms": 0.0,
            "next_event_ms": now + delay * 1000.0,
            "history": history,
            "resolved_count": events.resolved_count + 1,
        }
    )
    logger.info("event %s resolved with choice %d (%s)", edef.key.value, choice_index, choice.text)
    return state.model_copy(update={"resources": resources, "lifetime_resources": lifetime, "events": events})


def make_choice(state: GameState, content: GameContent, choice_index: object, now_ms: Optional[float] = None) -> GameState:
    if choice_reason(state, content, choice_index) is not None:
        return state
    return _resolve(state, active_event(state, content), choice_index, _now(state, now_ms))


def auto_choice_index(state: GameState, edef: EventDef) -> int:
    """기본 선택지를 감당할 수 없으면 감당 가능한 첫 선택지. 아무것도 없으면 기본값."""
    if can_afford_from(state.resources, edef.choices[edef.default_choice].requires):
        return edef.default_choice
    for index, choice in enumerate(edef.choices):
        if can_afford_from(state.resources, choice.requires):
            return index
    return edef.default_choice


def check_events(state: GameState, content: GameContent, now_ms: Optional[float] = None) -> GameState:
    """시각에 따라 자동 처리와 새 이벤트 발생을 확인한다. 변화가 없으면 같은 객체."""
    if not content.events:
        return state
    now = _now(state, now_ms)
    events = state.events

    if events.active_event is not None and now - events.active_since_ms > EVENT_AUTO_RESOLVE_MS:
        edef = content.events.get(events.active_event)
        if edef is None:
            logger.warning("active event %s has no definition, dropped", events.active_event.value)
            state = state.model_copy(update={"events": events.model_copy(update={"active_event": None})})
        else:
            logger.info("event %s auto-resolved", edef.key.value)
            state = _resolve(state, edef, auto_choice_index(state, edef), now)

    if state.events.active_event is None and now >= state.events.next_event_ms:
        state = trigger_random_event(state, content, now)
    return state


def time_until_next_event(state: GameState, now_ms: Optional[float] = None) -> int:
    """다음 이벤트까지 남은 초(올림). 이미 지났으면 0."""
    remaining = (state.events.next_event_ms - _now(state, now_ms)) / 1000.0
    return max(0, math.ceil(remaining))


def event_history(state: GameState) -> List[EventRecord]:
    return list(state.events.history)

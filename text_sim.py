#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""텍스트 기반 왕국 시뮬레이션 실행기.

매 스텝마다 아래를 출력한다.
- 시각/자원/초당 순생산량
- 건물/기술/연구 진행률
- 루프 액션 슬롯 상태
- 진행 중인 이벤트와 다음 이벤트까지 남은 시간
- 새로 해제된 업적
저장 파일(--save)을 주면 시작 시 불러와 오프라인 정산을 하고,
게임 시간 SAVE_INTERVAL_MS 마다 그리고 종료 시 저장한다.
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import engine
import events
from achievements import achievement_stats, pop_notifications
from config import SAVE_INTERVAL_MS
from content import GameContent, ensure_data_files, load_content
from costs import can_buy_building, cost_for
from ledger import format_amount
from loop_actions import available_loop_actions, loop_progress
from model import BuildingKey, GameState, ResourceKey
from production import compute_net_per_second
from research import available_technologies, research_progress
from save_system import FileSavePort, load_game, save_game


def _fmt_amounts(content: GameContent, amounts: Dict[ResourceKey, float]) -> str:
    parts = []
    for key in ResourceKey:
        rdef = content.resources.get(key)
        if rdef is not None and rdef.hidden and not amounts.get(key):
            continue
        parts.append(f"{key.value}:{format_amount(content, key, amounts.get(key, 0.0))}")
    return "{" + ", ".join(parts) + "}"


def _dump_state(state: GameState, content: GameContent) -> None:
    rate = compute_net_per_second(state, content)
    print(f"[SYSTEM] clock={state.clock_ms / 1000.0:.1f}s clicks={state.clicks} prestige_count={state.prestige_count}")
    print(f"- 자원: {_fmt_amounts(content, state.resources)}")
    print("- 초당: " + ", ".join(f"{k.value}:{v:+.2f}" for k, v in rate.items() if v))
    counts = {k.value: v for k, v in state.building_counts.items() if v}
    print(f"[BUILDINGS] {counts}")
    techs = [k.value for k, v in state.technology_levels.items() if v]
    active = state.research.active_technology
    if active is None:
        print(f"[RESEARCH] done={techs} active=(none)")
    else:
        print(f"[RESEARCH] done={techs} active={active.value} progress={research_progress(state):.1f}%")
    print(f"[LOOPS] {len([e for e in state.loop_actions if e.is_active])}/{state.loop_settings.max_concurrent_actions}")
    for entry in state.loop_actions:
        prog = loop_progress(state, content, entry.action_id)
        pct = prog.percentage if prog is not None else 0.0
        status = "active" if entry.is_active else ("paused" if entry.is_paused else "stopped")
        print(f"- {entry.action_id.value} {status} {pct:.0f}% loops={entry.total_loops_completed}")
    event = events.active_event(state, content)
    if event is None:
        print(f"[EVENT] (none) next in {events.time_until_next_event(state)}s resolved={state.events.resolved_count}")
    else:
        print(f"[EVENT] {event.name}: " + " / ".join(choice.text for choice in event.choices))


def _cheapest_building(state: GameState, content: GameContent) -> Optional[BuildingKey]:
    best: Optional[BuildingKey] = None
    best_total = 0.0
    for key in content.buildings:
        if not can_buy_building(state, content, key):
            continue
        total = sum(cost_for(state, content, key).values())
        if best is None or total < best_total:
            best, best_total = key, total
    return best


def _autoplay(state: GameState, content: GameContent, clicks: int) -> GameState:
    """단순 자동 플레이: 클릭, 가장 싼 건물 구매, 연구, 루프 액션 시작, 이벤트 선택."""
    for _ in range(clicks):
        state, _reason = engine.click(state, content)
    building = _cheapest_building(state, content)
    if building is not None:
        state, _reason = engine.buy_building(state, content, building)
    for tech in available_technologies(state, content):
        state, reason = engine.start_research(state, content, tech)
        if reason is None:
            break
    for action in available_loop_actions(state, content):
        if state.find_loop_action(action) is None:
            state, _reason = engine.start_loop_action(state, content, action)
    event = events.active_event(state, content)
    if event is not None:
        state, _reason = engine.make_event_choice(state, content, events.auto_choice_index(state, event))
    return state


def run_text_simulation(steps: int, step_seconds: float, clicks: int, save_path: Optional[Path], data_dir: Optional[Path]) -> None:
    content = load_content(data_dir)
    engine.check_content(content)

    port = FileSavePort(save_path) if save_path is not None else None
    now_ms = time.time() * 1000.0
    if port is not None:
        state = load_game(port, content, now_ms)
    else:
        state = engine.new_game(content, now_ms)

    last_save_ms = state.clock_ms
    print(f"[TEXT-SIM] 시작 steps={steps}, step={step_seconds}s")
    for step in range(1, steps + 1):
        state = _autoplay(state, content, clicks)
        state = engine.tick(state, content, step_seconds)
        state, notes = pop_notifications(state)

        print(f"\n{'=' * 28} Step {step:03d} {'=' * 28}")
        _dump_state(state, content)
        if notes:
            print("[ACHIEVEMENTS]")
            for note in notes:
                adef = content.achievements.get(note.achievement_id)
                print(f"- {adef.name if adef else note.achievement_id}")

        if port is not None and state.clock_ms - last_save_ms >= SAVE_INTERVAL_MS:
            save_game(port, state)
            last_save_ms = state.clock_ms

    stats = achievement_stats(state, content)
    print(f"\n[TEXT-SIM] 완료 achievements={stats.unlocked}/{stats.total} points={stats.points_earned}")
    if port is not None:
        save_game(port, state)
        print(f"[TEXT-SIM] 저장: {port.path}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="텍스트 기반 왕국 시뮬레이션")
    parser.add_argument("--steps", type=int, default=30, help="진행할 스텝 수(기본: 30)")
    parser.add_argument("--step-seconds", type=float, default=1.0, help="스텝당 게임 시간(초, 기본: 1.0)")
    parser.add_argument("--clicks", type=int, default=5, help="스텝당 클릭 수(기본: 5)")
    parser.add_argument("--save", type=Path, default=None, help="저장 파일 경로")
    parser.add_argument("--data-dir", type=Path, default=None, help="콘텐츠 json 디렉터리")
    parser.add_argument("--init-data", action="store_true", help="기본 콘텐츠 json 을 data-dir 에 생성")
    parser.add_argument("--verbose", action="store_true", help="DEBUG 로그 출력")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if args.steps <= 0:
        raise SystemExit("--steps 는 1 이상이어야 합니다.")
    if args.step_seconds <= 0:
        raise SystemExit("--step-seconds 는 0보다 커야 합니다.")
    if args.init_data:
        ensure_data_files(args.data_dir)

    run_text_simulation(args.steps, args.step_seconds, args.clicks, args.save, args.data_dir)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Game configuration.

규칙: 이 파일에는 '상수/설정'만 둡니다. (로직 금지)
"""

# --- Tick ---
GAME_TICK_RATE = 20                      # 초당 게임 틱 수
TICK_SECONDS = 1.0 / GAME_TICK_RATE      # 1틱의 길이(초)
TICK_EPSILON = 1e-9                      # 틱 경계 부동소수 오차 허용치

# --- Loop actions ---
BASE_POINTS_PER_TICK = 100
DEFAULT_MAX_CONCURRENT = 2

# --- Offline progress ---
OFFLINE_PROGRESS_CAP_HOURS = 1
OFFLINE_PROGRESS_CAP_SECONDS = OFFLINE_PROGRESS_CAP_HOURS * 3600.0

# --- Save ---
SAVE_VERSION = 6
MIGRATABLE_SAVE_VERSIONS = (3, 4, 5)
SAVE_INTERVAL_MS = 30000

# --- Random events ---
EVENT_FIRST_MIN_SECONDS = 10.0           # 새 게임의 첫 이벤트까지 최소 대기
EVENT_FIRST_MAX_SECONDS = 30.0
EVENT_AUTO_RESOLVE_MS = 30000            # 선택하지 않으면 기본 선택지로 처리
EVENT_HISTORY_MAX = 50

# --- Prestige ---
PRESTIGE_DIVISOR = 1000.0                # floor(sqrt(lifetime food / divisor))

# --- Click ---
CLICK_BASE_GAINS = {"gold": 1.0, "food": 0.1}

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Versioned save codec and persistence ports.

저장 형식: {"version": int, "state": {...}} 를 orjson(OPT_SORT_KEYS)으로 인코딩.
가져오기/내보내기 텍스트는 그 바이트를 base64 로 감싼 것이다.
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

import orjson
from pydantic import ValidationError

from config import MIGRATABLE_SAVE_VERSIONS, SAVE_VERSION
from content import GameContent
from engine import collapse_offline, new_game
from model import (
    AchievementMultipliers,
    AchievementState,
    EventState,
    GameState,
    LoopSettings,
)

logger = logging.getLogger(__name__)


def serialize(state: GameState) -> bytes:
    payload = {"version": SAVE_VERSION, "state": state.model_dump(mode="json")}
    return orjson.dumps(payload, option=orjson.OPT_SORT_KEYS)


def _backfill(state: Dict[str, object]) -> Dict[str, object]:
    """이전 버전에 없던 하위 구조를 안전한 기본값으로 채운다."""
    state.setdefault("achievements", AchievementState().model_dump(mode="json"))
    state.setdefault("achievement_multipliers", AchievementMultipliers().model_dump(mode="json"))
    state.setdefault("loop_actions", [])
    state.setdefault("loop_settings", LoopSettings().model_dump(mode="json"))
    state.setdefault("loop_tick_carry", 0.0)
    state.setdefault("clicks", 0)
    state.setdefault("actions_executed", 0)
    state.setdefault("prestige_count", 0)
    state.setdefault("action_unlocks", {})
    state.setdefault("action_cooldowns", {})
    state.setdefault("events", EventState().model_dump(mode="json"))
    return state


def migrate(state: Dict[str, object], from_version: int) -> Dict[str, object]:
    if from_version not in MIGRATABLE_SAVE_VERSIONS:
        raise ValueError(f"no migration from save version {from_version}")
    logger.info("migrating save from version %d to %d", from_version, SAVE_VERSION)
    return _backfill(dict(state))


def deserialize(raw: bytes) -> Optional[GameState]:
    """버전이 맞지 않거나 해석할 수 없으면 None (= 저장 없음)."""
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        logger.warning("save rejected: not JSON (%s)", exc)
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("state"), dict):
        logger.warning("save rejected: unexpected layout")
        return None

    version = payload.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        logger.warning("save rejected: missing version")
        return None
    state = payload["state"]
    if version != SAVE_VERSION:
        if version not in MIGRATABLE_SAVE_VERSIONS:
            logger.warning("save rejected: version %d is not supported", version)
            return None
        state = migrate(state, version)

    try:
        return GameState.model_validate(state)
    except ValidationError as exc:
        logger.warning("save rejected: %d validation errors", exc.error_count())
        return None


def export_save(state: GameState) -> str:
    return base64.b64encode(serialize(state)).decode("ascii")


def import_save(text: str) -> Optional[GameState]:
    try:
        raw = base64.b64decode(text.strip().encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, AttributeError) as exc:
        logger.warning("import rejected: not base64 (%s)", exc)
        return None
    return deserialize(raw)


# =============================
# Persistence ports
# =============================
class SavePort(Protocol):
    def load(self) -> Optional[bytes]:
        ...

    def save(self, data: bytes) -> None:
        ...


class FileSavePort:
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    def save(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(self.path)


class MemorySavePort:
    def __init__(self, data: Optional[bytes] = None):
        self.data = data

    def load(self) -> Optional[bytes]:
        return self.data

    def save(self, data: bytes) -> None:
        self.data = data


def save_game(port: SavePort, state: GameState) -> None:
    port.save(serialize(state))


def load_game(port: SavePort, content: GameContent, now_ms: float) -> GameState:
    """저장이 있으면 오프라인 정산까지 마친 스냅샷, 없으면 새 게임."""
    raw = port.load()
    state = deserialize(raw) if raw else None
    if state is None:
        return new_game(content, now_ms)
    return collapse_offline(state, content, now_ms)

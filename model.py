#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Data model (Enums + immutable state snapshots).

UI 프레임워크와 독립적인 순수 모델 계층. 모든 상태는 frozen 모델이며
변경은 항상 model_copy(update=...)로 새 스냅샷을 만든다.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, NonNegativeInt, model_validator

from config import BASE_POINTS_PER_TICK, DEFAULT_MAX_CONCURRENT

logger = logging.getLogger(__name__)


# =============================
# Enums
# =============================
class ResourceKey(str, Enum):
    GOLD = "gold"
    WOOD = "wood"
    STONE = "stone"
    FOOD = "food"
    PRESTIGE = "prestige"
    RESEARCH_POINTS = "research_points"


class BuildingKey(str, Enum):
    WOODCUTTER = "woodcutter"
    QUARRY = "quarry"
    FARM = "farm"
    BLACKSMITH = "blacksmith"
    CASTLE = "castle"
    LIBRARY = "library"
    UNIVERSITY = "university"
    LABORATORY = "laboratory"


class TechnologyKey(str, Enum):
    WRITING = "writing"
    MATHEMATICS = "mathematics"
    ENGINEERING = "engineering"
    CHEMISTRY = "chemistry"
    PHYSICS = "physics"
    BIOLOGY = "biology"


class UpgradeKey(str, Enum):
    ROYAL_DECREES = "royal_decrees"
    MASTER_CRAFTSMEN = "master_craftsmen"
    FERTILE_LANDS = "fertile_lands"
    MILITARY_MIGHT = "military_might"


class LoopActionKey(str, Enum):
    BASIC_GATHERING = "basic_gathering"
    CONTINUOUS_MINING = "continuous_mining"
    CONTINUOUS_LOGGING = "continuous_logging"
    CONTINUOUS_FARMING = "continuous_farming"
    MASS_TOOL_PRODUCTION = "mass_tool_production"
    WEAPON_FORGING = "weapon_forging"
    ONGOING_RESEARCH = "ongoing_research"
    ADVANCED_STUDIES = "advanced_studies"
    TRAINING_SOLDIERS = "training_soldiers"
    FORTIFICATION = "fortification"


class ActionKey(str, Enum):
    GATHER_WOOD = "gather_wood"
    GATHER_STONE = "gather_stone"
    HUNT_FOOD = "hunt_food"
    CRAFT_TOOLS = "craft_tools"
    FORGE_WEAPONS = "forge_weapons"
    FARM_WORK = "farm_work"
    ADVANCED_MINING = "advanced_mining"
    SCIENTIFIC_RESEARCH = "scientific_research"
    ROYAL_DIPLOMACY = "royal_diplomacy"
    SELL_WOOD = "sell_wood"
    SELL_STONE = "sell_stone"
    SELL_FOOD = "sell_food"


class EventKey(str, Enum):
    MERCHANT_VISIT = "merchant_visit"
    BANDIT_RAID = "bandit_raid"
    BOUNTIFUL_HARVEST = "bountiful_harvest"
    DROUGHT = "drought"
    ROYAL_TAX = "royal_tax"
    MYSTERIOUS_STRANGER = "mysterious_stranger"
    PLAGUE = "plague"
    FESTIVAL = "festival"


class RejectReason(str, Enum):
    INVALID_INPUT = "invalid_input"
    UNKNOWN_ID = "unknown_id"
    LOCKED = "locked"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    ALREADY_ACTIVE = "already_active"
    NOT_ACTIVE = "not_active"
    NOT_STARTED = "not_started"
    CAPACITY_REACHED = "capacity_reached"
    RESEARCH_BUSY = "research_busy"
    ALREADY_RESEARCHED = "already_researched"
    MAX_LEVEL = "max_level"
    ON_COOLDOWN = "on_cooldown"
    NOTHING_TO_GAIN = "nothing_to_gain"


E = TypeVar("E", bound=Enum)

ResourceAmounts = Dict[ResourceKey, float]


def parse_key(enum_cls: Type[E], raw: object) -> Optional[E]:
    """경계에서 id 문자열을 닫힌 Enum으로 변환한다. 알 수 없는 값은 None."""
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except ValueError:
        logger.warning("unknown %s id: %r", enum_cls.__name__, raw)
        return None


# =============================
# State snapshots
# =============================
class _Frozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


Count = NonNegativeInt
Amount = NonNegativeFloat


class ResearchState(_Frozen):
    active_technology: Optional[TechnologyKey] = None
    start_time_ms: float = 0.0
    end_time_ms: float = 0.0


class LoopActionState(_Frozen):
    action_id: LoopActionKey
    is_active: bool = True
    is_paused: bool = False
    current_points: Count = 0
    total_loops_completed: Count = 0
    started_at: float = 0.0
    last_tick_at: float = 0.0


class LoopSettings(_Frozen):
    max_concurrent_actions: Count = DEFAULT_MAX_CONCURRENT
    base_points_per_tick: Count = BASE_POINTS_PER_TICK


class AchievementNotification(_Frozen):
    achievement_id: str
    timestamp: float


class AchievementState(_Frozen):
    unlocked: Dict[str, float] = Field(default_factory=dict)
    progress: Dict[str, float] = Field(default_factory=dict)
    pending_notifications: Tuple[AchievementNotification, ...] = ()
    total_points: Count = 0


class MultiplierSet(_Frozen):
    click_gain: float = 1.0
    cost: float = 1.0
    production: Dict[ResourceKey, float] = Field(default_factory=dict)
    consumption: Dict[ResourceKey, float] = Field(default_factory=dict)


class AchievementMultipliers(_Frozen):
    permanent: MultiplierSet = Field(default_factory=MultiplierSet)
    temporary: MultiplierSet = Field(default_factory=MultiplierSet)


class EventRecord(_Frozen):
    event_id: EventKey
    choice_index: Count
    timestamp: float


class EventState(_Frozen):
    """랜덤 이벤트 진행 상태. seed 와 draws 로 난수열을 재현한다."""

    active_event: Optional[EventKey] = None
    active_since_ms: float = 0.0
    next_event_ms: float = 0.0
    history: Tuple[EventRecord, ...] = ()
    resolved_count: Count = 0
    seed: int = 0
    draws: Count = 0


class GameState(_Frozen):
    clock_ms: float = 0.0
    resources: Dict[ResourceKey, Amount] = Field(default_factory=dict)
    lifetime_resources: Dict[ResourceKey, Amount] = Field(default_factory=dict)
    building_counts: Dict[BuildingKey, Count] = Field(default_factory=dict)
    technology_levels: Dict[TechnologyKey, Annotated[int, Field(ge=0, le=1)]] = Field(default_factory=dict)
    upgrade_levels: Dict[UpgradeKey, Count] = Field(default_factory=dict)
    research: ResearchState = Field(default_factory=ResearchState)
    loop_actions: Tuple[LoopActionState, ...] = ()
    loop_settings: LoopSettings = Field(default_factory=LoopSettings)
    loop_tick_carry: float = Field(default=0.0, ge=0, lt=1)
    achievements: AchievementState = Field(default_factory=AchievementState)
    achievement_multipliers: AchievementMultipliers = Field(default_factory=AchievementMultipliers)
    clicks: Count = 0
    actions_executed: Count = 0
    prestige_count: Count = 0
    action_unlocks: Dict[ActionKey, float] = Field(default_factory=dict)
    action_cooldowns: Dict[ActionKey, float] = Field(default_factory=dict)
    events: EventState = Field(default_factory=EventState)

    @model_validator(mode="after")
    def _check_loops(self) -> "GameState":
        ids = [entry.action_id for entry in self.loop_actions]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate loop action entries")
        active = sum(1 for entry in self.loop_actions if entry.is_active)
        if active > self.loop_settings.max_concurrent_actions:
            raise ValueError(
                f"{active} active loop actions exceed the limit of {self.loop_settings.max_concurrent_actions}"
            )
        return self

    def find_loop_action(self, action_id: LoopActionKey) -> Optional[LoopActionState]:
        for entry in self.loop_actions:
            if entry.action_id == action_id:
                return entry
        return None

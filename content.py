#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Read-only game content tables.

기본값은 DEFAULT_* 행 목록으로 코드에 두고, data/*.json 이 있으면 그 파일이 우선한다.
코어는 id로 조회만 하며 콘텐츠를 절대 수정하지 않는다.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Type, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, ValidationError, model_validator

from model import (
    ActionKey,
    BuildingKey,
    EventKey,
    LoopActionKey,
    ResourceKey,
    TechnologyKey,
    UpgradeKey,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
RESOURCES_FILE = "resources.json"
BUILDINGS_FILE = "buildings.json"
TECHNOLOGIES_FILE = "technologies.json"
LOOP_ACTIONS_FILE = "loop_actions.json"
ACTIONS_FILE = "actions.json"
UPGRADES_FILE = "upgrades.json"
ACHIEVEMENTS_FILE = "achievements.json"
EVENTS_FILE = "events.json"

Amounts = Dict[ResourceKey, NonNegativeFloat]


class ContentError(Exception):
    """콘텐츠가 게임을 시작할 수 없을 만큼 손상된 경우."""


class ConditionType(str, Enum):
    TECHNOLOGY = "technology"
    BUILDING = "building"
    RESOURCE = "resource"
    UPGRADE = "upgrade"


class LoopCategory(str, Enum):
    GATHERING = "gathering"
    CRAFTING = "crafting"
    RESEARCH = "research"
    MILITARY = "military"


class UpgradeEffectKind(str, Enum):
    CLICK_GAIN_LINEAR = "click_gain_linear"
    COST_POWER = "cost_power"
    PRODUCTION_POWER = "production_power"
    CONSUMPTION_POWER = "consumption_power"


class AchievementCategory(str, Enum):
    RESOURCE = "resource"
    BUILDING = "building"
    TECHNOLOGY = "technology"
    ACTION = "action"
    PRESTIGE = "prestige"
    COMBO = "combo"
    EVENT = "event"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class RequirementType(str, Enum):
    RESOURCE = "resource"
    LIFETIME = "lifetime"
    BUILDING = "building"
    TECHNOLOGY = "technology"
    UPGRADE = "upgrade"
    CLICK = "click"
    ACTION = "action"
    LOOP = "loop"
    EVENT = "event"
    PRESTIGE = "prestige"
    ACHIEVEMENT_POINTS = "achievement_points"


class Comparison(str, Enum):
    GE = ">="
    GT = ">"
    EQ = "="
    LE = "<="
    LT = "<"


class EventCategory(str, Enum):
    TRADING = "trading"
    CONFLICT = "conflict"
    NATURAL = "natural"
    SOCIAL = "social"


class RewardType(str, Enum):
    RESOURCE = "resource"
    MULTIPLIER = "multiplier"


class MultiplierTarget(str, Enum):
    CLICK_GAIN = "click_gain"
    COST = "cost"
    PRODUCTION = "production"
    CONSUMPTION = "consumption"


# =============================
# Definitions
# =============================
class _Def(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ResourceDef(_Def):
    key: ResourceKey
    name: str
    decimals: int = Field(default=0, ge=0)
    start: float = Field(default=0.0, ge=0)
    hidden: bool = False


class BuildingDef(_Def):
    key: BuildingKey
    name: str
    base_cost: Amounts = Field(default_factory=dict)
    cost_scale: float = Field(default=1.0, gt=0)
    base_production: Amounts = Field(default_factory=dict)
    base_consumption: Amounts = Field(default_factory=dict)
    requires_tech: List[TechnologyKey] = Field(default_factory=list)


class TechnologyDef(_Def):
    key: TechnologyKey
    name: str
    base_cost: Amounts = Field(default_factory=dict)
    research_time: float = Field(gt=0)
    requires_tech: List[TechnologyKey] = Field(default_factory=list)
    unlocks_buildings: List[BuildingKey] = Field(default_factory=list)
    effect: Optional[str] = None
    effect_value: float = 0.0


class UnlockCondition(_Def):
    type: ConditionType
    key: str
    value: float = 1.0


class LoopActionDef(_Def):
    key: LoopActionKey
    name: str
    category: LoopCategory
    cost: Amounts = Field(default_factory=dict)
    gains: Amounts = Field(default_factory=dict)
    points_required: int = Field(gt=0)
    unlock_conditions: List[UnlockCondition] = Field(default_factory=list)


class ActionDef(_Def):
    key: ActionKey
    name: str
    cost: Amounts = Field(default_factory=dict)
    gains: Amounts = Field(default_factory=dict)
    unlock_conditions: List[UnlockCondition] = Field(default_factory=list)
    one_time_unlock: bool = False
    cooldown_seconds: float = Field(default=0.0, ge=0)


class UpgradeEffect(_Def):
    kind: UpgradeEffectKind
    value: float
    resource: Optional[ResourceKey] = None


class UpgradeDef(_Def):
    key: UpgradeKey
    name: str
    base_cost: float = Field(gt=0)
    cost_growth: float = Field(gt=0)
    max_level: int = Field(ge=0)
    effect: UpgradeEffect


class AchievementRequirement(_Def):
    type: RequirementType
    target: str = "total"
    value: float
    operator: Comparison = Comparison.GE


class AchievementReward(_Def):
    type: RewardType
    target: str
    value: float
    resource: Optional[ResourceKey] = None
    permanent: bool = False


class AchievementDef(_Def):
    key: str
    name: str
    description: str = ""
    category: AchievementCategory
    rarity: Rarity = Rarity.COMMON
    points: int = Field(default=0, ge=0)
    requirements: List[AchievementRequirement]
    rewards: List[AchievementReward] = Field(default_factory=list)
    hidden: bool = False


class EventChoice(_Def):
    text: str
    gives: Amounts = Field(default_factory=dict)
    takes: Amounts = Field(default_factory=dict)
    requires: Amounts = Field(default_factory=dict)


class EventDef(_Def):
    key: EventKey
    name: str
    description: str = ""
    category: EventCategory
    choices: List[EventChoice] = Field(min_length=1)
    default_choice: int = Field(default=0, ge=0)
    min_interval: float = Field(gt=0)
    max_interval: float = Field(gt=0)
    weight: float = Field(gt=0)

    @model_validator(mode="after")
    def _check_ranges(self) -> "EventDef":
        if self.default_choice >= len(self.choices):
            raise ValueError(f"default_choice {self.default_choice} out of range")
        if self.max_interval < self.min_interval:
            raise ValueError("max_interval < min_interval")
        return self


class GameContent(_Def):
    resources: Dict[ResourceKey, ResourceDef]
    buildings: Dict[BuildingKey, BuildingDef]
    technologies: Dict[TechnologyKey, TechnologyDef]
    loop_actions: Dict[LoopActionKey, LoopActionDef]
    actions: Dict[ActionKey, ActionDef]
    upgrades: Dict[UpgradeKey, UpgradeDef]
    achievements: Dict[str, AchievementDef]
    events: Dict[EventKey, EventDef] = Field(default_factory=dict)


# =============================
# Default tables
# =============================
DEFAULT_RESOURCES: List[Dict[str, object]] = [
    {"key": "gold", "name": "Gold", "decimals": 0, "start": 10},
    {"key": "wood", "name": "Wood", "decimals": 0, "start": 0},
    {"key": "stone", "name": "Stone", "decimals": 0, "start": 0},
    {"key": "food", "name": "Food", "decimals": 0, "start": 0},
    {"key": "prestige", "name": "Prestige", "decimals": 0, "start": 0, "hidden": True},
    {"key": "research_points", "name": "Research Points", "decimals": 0, "start": 0, "hidden": True},
]

DEFAULT_BUILDINGS: List[Dict[str, object]] = [
    {"key": "woodcutter", "name": "Woodcutter", "base_cost": {"gold": 15}, "cost_scale": 1.15,
     "base_production": {"wood": 1.2}},
    {"key": "quarry", "name": "Quarry", "base_cost": {"gold": 30, "wood": 5}, "cost_scale": 1.18,
     "base_production": {"stone": 0.8}},
    {"key": "farm", "name": "Farm", "base_cost": {"gold": 25, "wood": 8}, "cost_scale": 1.16,
     "base_production": {"food": 1.5}},
    {"key": "blacksmith", "name": "Blacksmith", "base_cost": {"gold": 50, "wood": 15, "stone": 10}, "cost_scale": 1.20,
     "base_production": {"gold": 2.5}, "base_consumption": {"wood": 0.3, "stone": 0.2}},
    {"key": "castle", "name": "Castle", "base_cost": {"gold": 200, "wood": 50, "stone": 100, "food": 20}, "cost_scale": 1.25,
     "base_production": {"prestige": 0.1}, "base_consumption": {"food": 0.5}},
    {"key": "library", "name": "Library", "base_cost": {"gold": 80, "wood": 40, "stone": 20}, "cost_scale": 1.20,
     "base_production": {"research_points": 0.2}, "base_consumption": {"gold": 0.1}, "requires_tech": ["writing"]},
    {"key": "university", "name": "University", "base_cost": {"gold": 300, "wood": 100, "stone": 150}, "cost_scale": 1.22,
     "base_production": {"research_points": 0.6}, "base_consumption": {"gold": 0.4, "food": 0.2},
     "requires_tech": ["mathematics"]},
    {"key": "laboratory", "name": "Laboratory", "base_cost": {"gold": 500, "stone": 200, "research_points": 50},
     "cost_scale": 1.25, "base_production": {"research_points": 1.5}, "base_consumption": {"gold": 1.0},
     "requires_tech": ["chemistry"]},
]

DEFAULT_TECHNOLOGIES: List[Dict[str, object]] = [
    {"key": "writing", "name": "Writing", "base_cost": {"gold": 50, "wood": 20}, "research_time": 30,
     "unlocks_buildings": ["library"]},
    {"key": "mathematics", "name": "Mathematics", "base_cost": {"gold": 100, "wood": 30, "stone": 20}, "research_time": 60,
     "requires_tech": ["writing"], "unlocks_buildings": ["university"],
     "effect": "expand_loop_capacity", "effect_value": 1},
    {"key": "engineering", "name": "Engineering", "base_cost": {"gold": 150, "wood": 50, "stone": 40}, "research_time": 90,
     "requires_tech": ["mathematics"]},
    {"key": "chemistry", "name": "Chemistry", "base_cost": {"gold": 250, "stone": 80, "research_points": 20},
     "research_time": 120, "requires_tech": ["mathematics"], "unlocks_buildings": ["laboratory"],
     "effect": "grant_research_points", "effect_value": 25},
    {"key": "physics", "name": "Physics", "base_cost": {"gold": 400, "stone": 120, "research_points": 50},
     "research_time": 180, "requires_tech": ["engineering", "chemistry"],
     "effect": "expand_loop_capacity", "effect_value": 1},
    {"key": "biology", "name": "Biology", "base_cost": {"gold": 300, "food": 200, "research_points": 40},
     "research_time": 150, "requires_tech": ["chemistry"]},
]

DEFAULT_LOOP_ACTIONS: List[Dict[str, object]] = [
    {"key": "basic_gathering", "name": "Basic Gathering", "category": "gathering",
     "gains": {"food": 5}, "points_required": 1000},
    {"key": "continuous_mining", "name": "Continuous Mining", "category": "gathering",
     "cost": {"food": 5}, "gains": {"stone": 10}, "points_required": 1000,
     "unlock_conditions": [{"type": "building", "key": "quarry", "value": 1}]},
    {"key": "continuous_logging", "name": "Continuous Logging", "category": "gathering",
     "cost": {"food": 5}, "gains": {"wood": 8}, "points_required": 800,
     "unlock_conditions": [{"type": "building", "key": "woodcutter", "value": 1}]},
    {"key": "continuous_farming", "name": "Continuous Farming", "category": "gathering",
     "cost": {"food": 5}, "gains": {"food": 12}, "points_required": 1200,
     "unlock_conditions": [{"type": "building", "key": "farm", "value": 1}, {"type": "resource", "key": "food", "value": 100}]},
    {"key": "mass_tool_production", "name": "Mass Tool Production", "category": "crafting",
     "cost": {"wood": 20}, "gains": {"stone": 15}, "points_required": 1500,
     "unlock_conditions": [{"type": "building", "key": "blacksmith", "value": 1}]},
    {"key": "weapon_forging", "name": "Weapon Forging", "category": "crafting",
     "cost": {"stone": 30}, "gains": {"gold": 25}, "points_required": 2000,
     "unlock_conditions": [{"type": "building", "key": "blacksmith", "value": 1}]},
    {"key": "ongoing_research", "name": "Ongoing Research", "category": "research",
     "cost": {"food": 10}, "gains": {"research_points": 5}, "points_required": 3000,
     "unlock_conditions": [{"type": "building", "key": "library", "value": 1}]},
    {"key": "advanced_studies", "name": "Advanced Studies", "category": "research",
     "cost": {"food": 15, "gold": 5}, "gains": {"research_points": 10}, "points_required": 5000,
     "unlock_conditions": [{"type": "building", "key": "university", "value": 1}]},
    {"key": "training_soldiers", "name": "Training Soldiers", "category": "military",
     "cost": {"food": 20, "gold": 10}, "gains": {"prestige": 2}, "points_required": 2500,
     "unlock_conditions": [{"type": "building", "key": "castle", "value": 1}]},
    {"key": "fortification", "name": "Fortification", "category": "military",
     "cost": {"stone": 50, "wood": 30, "gold": 20}, "gains": {"prestige": 5}, "points_required": 4000,
     "unlock_conditions": [{"type": "building", "key": "castle", "value": 1}]},
]

DEFAULT_ACTIONS: List[Dict[str, object]] = [
    {"key": "gather_wood", "name": "Gather Wood", "gains": {"wood": 2}},
    {"key": "gather_stone", "name": "Gather Stone", "gains": {"stone": 1}},
    {"key": "hunt_food", "name": "Hunt Food", "gains": {"food": 1}},
    {"key": "craft_tools", "name": "Craft Tools", "cost": {"wood": 5}, "gains": {"stone": 2},
     "unlock_conditions": [{"type": "building", "key": "blacksmith", "value": 1}]},
    {"key": "forge_weapons", "name": "Forge Weapons", "cost": {"stone": 3}, "gains": {"gold": 10},
     "unlock_conditions": [{"type": "building", "key": "blacksmith", "value": 1}]},
    {"key": "farm_work", "name": "Farm Work", "cost": {"food": 2}, "gains": {"wood": 5},
     "unlock_conditions": [{"type": "building", "key": "farm", "value": 1}]},
    {"key": "advanced_mining", "name": "Advanced Mining", "gains": {"stone": 3},
     "unlock_conditions": [{"type": "technology", "key": "engineering", "value": 1}]},
    {"key": "scientific_research", "name": "Scientific Research", "gains": {"research_points": 2},
     "unlock_conditions": [{"type": "technology", "key": "chemistry", "value": 1}]},
    {"key": "royal_diplomacy", "name": "Royal Diplomacy", "gains": {"prestige": 1}, "cooldown_seconds": 60,
     "unlock_conditions": [{"type": "technology", "key": "writing", "value": 1}]},
    {"key": "sell_wood", "name": "Sell Wood", "cost": {"wood": 10}, "gains": {"gold": 5}, "one_time_unlock": True,
     "unlock_conditions": [{"type": "resource", "key": "wood", "value": 50}]},
    {"key": "sell_stone", "name": "Sell Stone", "cost": {"stone": 5}, "gains": {"gold": 8}, "one_time_unlock": True,
     "unlock_conditions": [{"type": "resource", "key": "stone", "value": 25}]},
    {"key": "sell_food", "name": "Sell Food", "cost": {"food": 20}, "gains": {"gold": 15}, "one_time_unlock": True,
     "unlock_conditions": [{"type": "resource", "key": "food", "value": 100}]},
]

DEFAULT_UPGRADES: List[Dict[str, object]] = [
    {"key": "royal_decrees", "name": "Royal Decrees", "base_cost": 5, "cost_growth": 1.6, "max_level": 20,
     "effect": {"kind": "click_gain_linear", "value": 0.25}},
    {"key": "master_craftsmen", "name": "Master Craftsmen", "base_cost": 8, "cost_growth": 1.7, "max_level": 25,
     "effect": {"kind": "cost_power", "value": 0.97}},
    {"key": "fertile_lands", "name": "Fertile Lands", "base_cost": 6, "cost_growth": 1.65, "max_level": 25,
     "effect": {"kind": "production_power", "value": 1.2, "resource": "food"}},
    {"key": "military_might", "name": "Military Might", "base_cost": 10, "cost_growth": 1.7, "max_level": 20,
     "effect": {"kind": "production_power", "value": 1.2, "resource": "prestige"}},
]


def _multiplier_reward(target: str, value: float, permanent: bool, resource: Optional[str] = None) -> Dict[str, object]:
    row: Dict[str, object] = {"type": "multiplier", "target": target, "value": value, "permanent": permanent}
    if resource is not None:
        row["resource"] = resource
    return row


def _each(req_type: str, targets: List[str], value: float) -> List[Dict[str, object]]:
    return [{"type": req_type, "target": t, "value": value} for t in targets]


_BASIC = ["gold", "wood", "stone", "food"]
_CORE_BUILDINGS = ["woodcutter", "quarry", "farm", "blacksmith", "castle"]

DEFAULT_ACHIEVEMENTS: List[Dict[str, object]] = [
    {"key": "first_gold", "name": "First Gold", "description": "Earn your first 100 Gold", "category": "resource",
     "points": 10, "requirements": _each("resource", ["gold"], 100),
     "rewards": [_multiplier_reward("click_gain", 1.1, False)]},
    {"key": "wood_collector", "name": "Wood Collector", "description": "Accumulate 1,000 Wood", "category": "resource",
     "points": 15, "requirements": _each("resource", ["wood"], 1000),
     "rewards": [{"type": "resource", "target": "wood", "value": 100}]},
    {"key": "stone_mason", "name": "Stone Mason", "description": "Accumulate 500 Stone", "category": "resource",
     "points": 15, "requirements": _each("resource", ["stone"], 500),
     "rewards": [{"type": "resource", "target": "stone", "value": 50}]},
    {"key": "food_stockpile", "name": "Food Stockpile", "description": "Accumulate 2,000 Food", "category": "resource",
     "points": 20, "requirements": _each("resource", ["food"], 2000),
     "rewards": [{"type": "resource", "target": "food", "value": 200}]},
    {"key": "prestigious", "name": "Prestigious", "description": "Gain 10 Prestige", "category": "resource",
     "rarity": "uncommon", "points": 50, "requirements": _each("resource", ["prestige"], 10),
     "rewards": [_multiplier_reward("production", 1.2, True)]},
    {"key": "scholar", "name": "Scholar", "description": "Gain 100 Research Points", "category": "resource",
     "rarity": "uncommon", "points": 30, "requirements": _each("resource", ["research_points"], 100),
     "rewards": [{"type": "resource", "target": "research_points", "value": 20}]},
    {"key": "harvest_lord", "name": "Harvest Lord", "description": "Harvest 10,000 Food over a lifetime",
     "category": "resource", "rarity": "rare", "points": 60, "requirements": _each("lifetime", ["food"], 10000),
     "rewards": [_multiplier_reward("production", 1.25, True, "food")]},
    {"key": "first_building", "name": "First Building", "description": "Build your first building", "category": "building",
     "points": 10, "requirements": _each("building", ["total"], 1),
     "rewards": [{"type": "resource", "target": "gold", "value": 50}]},
    {"key": "architect", "name": "Architect", "description": "Own 10 buildings", "category": "building",
     "points": 25, "requirements": _each("building", ["total"], 10),
     "rewards": [_multiplier_reward("cost", 0.95, False)]},
    {"key": "city_planner", "name": "City Planner", "description": "Own one of every core building",
     "category": "building", "rarity": "uncommon", "points": 40, "requirements": _each("building", _CORE_BUILDINGS, 1),
     "rewards": [_multiplier_reward("production", 1.3, True)]},
    {"key": "industrialist", "name": "Industrialist", "description": "Own 50 buildings", "category": "building",
     "rarity": "rare", "points": 75, "requirements": _each("building", ["total"], 50),
     "rewards": [_multiplier_reward("cost", 0.9, True)]},
    {"key": "first_discovery", "name": "First Discovery", "description": "Research Writing", "category": "technology",
     "points": 20, "requirements": _each("technology", ["writing"], 1),
     "rewards": [{"type": "resource", "target": "research_points", "value": 10}]},
    {"key": "scholar_tech", "name": "Man of Letters", "description": "Research Writing, Mathematics and Engineering",
     "category": "technology", "rarity": "uncommon", "points": 50,
     "requirements": _each("technology", ["writing", "mathematics", "engineering"], 1),
     "rewards": [_multiplier_reward("production", 1.4, True)]},
    {"key": "scientist", "name": "Scientist", "description": "Research every technology", "category": "technology",
     "rarity": "legendary", "points": 300, "requirements": _each("technology", ["total"], 6),
     "rewards": [_multiplier_reward("production", 3.0, True)]},
    {"key": "clicker", "name": "Clicker", "description": "Click 100 times", "category": "action",
     "points": 15, "requirements": _each("click", ["total"], 100),
     "rewards": [_multiplier_reward("click_gain", 1.2, False)]},
    {"key": "dedicated", "name": "Dedicated", "description": "Click 1,000 times", "category": "action",
     "rarity": "uncommon", "points": 40, "requirements": _each("click", ["total"], 1000),
     "rewards": [_multiplier_reward("click_gain", 1.5, False)]},
    {"key": "action_hero", "name": "Action Hero", "description": "Perform 100 actions", "category": "action",
     "rarity": "rare", "points": 60, "requirements": _each("action", ["total"], 100),
     "rewards": [_multiplier_reward("production", 1.6, True)]},
    {"key": "tireless", "name": "Tireless", "description": "Complete 50 loop actions", "category": "action",
     "rarity": "uncommon", "points": 40, "requirements": _each("loop", ["total"], 50),
     "rewards": [_multiplier_reward("consumption", 0.9, True)]},
    {"key": "balanced_kingdom", "name": "Balanced Kingdom", "description": "Hold 100 of each basic resource",
     "category": "combo", "rarity": "uncommon", "points": 50, "requirements": _each("resource", _BASIC, 100),
     "rewards": [_multiplier_reward("production", 1.4, True)]},
    {"key": "first_ascension", "name": "First Ascension", "description": "Prestige once", "category": "prestige",
     "rarity": "uncommon", "points": 50, "requirements": _each("prestige", ["count"], 1),
     "rewards": [_multiplier_reward("production", 1.3, True)]},
    {"key": "ascended", "name": "Ascended", "description": "Prestige 5 times", "category": "prestige",
     "rarity": "rare", "points": 100, "requirements": _each("prestige", ["count"], 5),
     "rewards": [_multiplier_reward("production", 1.8, True)]},
    {"key": "eventful", "name": "Eventful", "description": "Experience 10 events", "category": "event",
     "points": 20, "requirements": _each("event", ["total"], 10),
     "rewards": [{"type": "resource", "target": "gold", "value": 100}]},
    {"key": "event_master", "name": "Event Master", "description": "Experience 50 events", "category": "event",
     "rarity": "rare", "points": 80, "requirements": _each("event", ["total"], 50),
     "rewards": [_multiplier_reward("production", 1.5, True)]},
]


def _choice(text: str, gives=None, takes=None, requires=None) -> Dict[str, object]:
    return {"text": text, "gives": gives or {}, "takes": takes or {}, "requires": requires or {}}


_EVENT_INTERVAL = {"min_interval": 60, "max_interval": 120}

DEFAULT_EVENTS: List[Dict[str, object]] = [
    {"key": "merchant_visit", "name": "Merchant Visit", "description": "A merchant offers to trade goods for Gold.",
     "category": "trading", "weight": 0.2, "default_choice": 1, **_EVENT_INTERVAL,
     "choices": [_choice("Accept Trade", gives={"gold": 10}, takes={"wood": 5}, requires={"wood": 5}),
                 _choice("Reject Trade")]},
    {"key": "mysterious_stranger", "name": "Mysterious Stranger",
     "description": "A mysterious stranger offers to trade Gold for Prestige.",
     "category": "trading", "weight": 0.1, "default_choice": 1, **_EVENT_INTERVAL,
     "choices": [_choice("Accept Trade", gives={"prestige": 1}, takes={"gold": 20}, requires={"gold": 20}),
                 _choice("Decline")]},
    {"key": "bandit_raid", "name": "Bandit Raid", "description": "Bandits attack your village, stealing resources.",
     "category": "conflict", "weight": 0.3, "default_choice": 1, **_EVENT_INTERVAL,
     "choices": [_choice("Fight Back", takes={"wood": 2, "stone": 1}),
                 _choice("Pay Tribute", gives={"gold": 5}, takes={"food": 1}, requires={"food": 1})]},
    {"key": "royal_tax", "name": "Royal Tax", "description": "The royal court demands tribute in Gold.",
     "category": "conflict", "weight": 0.2, "default_choice": 0, **_EVENT_INTERVAL,
     "choices": [_choice("Pay Tax", takes={"gold": 15}, requires={"gold": 15}),
                 _choice("Refuse to Pay", takes={"prestige": 1})]},
    {"key": "bountiful_harvest", "name": "Bountiful Harvest", "description": "All resources grow naturally.",
     "category": "natural", "weight": 0.1, "default_choice": 0, **_EVENT_INTERVAL,
     "choices": [_choice("Harvest All", gives={"gold": 10, "wood": 5, "stone": 3, "food": 2}),
                 _choice("Wait for Next Harvest")]},
    {"key": "drought", "name": "Drought", "description": "A severe drought dries the fields.",
     "category": "natural", "weight": 0.2, "default_choice": 1, **_EVENT_INTERVAL,
     "choices": [_choice("Pray for Rain", takes={"food": 1}), _choice("Accept Drought")]},
    {"key": "plague", "name": "Plague", "description": "A plague spreads through the kingdom.",
     "category": "natural", "weight": 0.15, "default_choice": 1, **_EVENT_INTERVAL,
     "choices": [_choice("Quarantine", takes={"prestige": 1}), _choice("Continue Normal Life")]},
    {"key": "festival", "name": "Festival", "description": "A grand festival brings joy and resources.",
     "category": "social", "weight": 0.1, "default_choice": 0, **_EVENT_INTERVAL,
     "choices": [_choice("Participate in Festival", gives={"gold": 5, "food": 3, "prestige": 1}),
                 _choice("Stay Home")]},
]


# =============================
# Loading
# =============================
def _write_json(path: Path, obj: object) -> None:
    path.write_bytes(orjson.dumps(obj, option=orjson.OPT_INDENT_2))


def _read_json(path: Path, fallback: object) -> object:
    try:
        return orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        logger.warning("could not read %s, using defaults: %s", path, exc)
        return fallback


M = TypeVar("M", bound=_Def)


def _parse_rows(rows: object, model_cls: Type[M], table: str) -> Dict[object, M]:
    parsed: Dict[object, M] = {}
    if not isinstance(rows, list):
        logger.warning("%s: expected a list of rows, got %s", table, type(rows).__name__)
        return parsed
    for idx, row in enumerate(rows):
        try:
            item = model_cls.model_validate(row)
        except ValidationError as exc:
            logger.warning("%s[%d] skipped: %s", table, idx, exc.errors()[0].get("msg", exc))
            continue
        if item.key in parsed:
            logger.warning("%s: duplicate key %s, keeping the first row", table, item.key)
            continue
        parsed[item.key] = item
    return parsed


_TABLES = (
    ("resources", RESOURCES_FILE, ResourceDef, DEFAULT_RESOURCES),
    ("buildings", BUILDINGS_FILE, BuildingDef, DEFAULT_BUILDINGS),
    ("technologies", TECHNOLOGIES_FILE, TechnologyDef, DEFAULT_TECHNOLOGIES),
    ("loop_actions", LOOP_ACTIONS_FILE, LoopActionDef, DEFAULT_LOOP_ACTIONS),
    ("actions", ACTIONS_FILE, ActionDef, DEFAULT_ACTIONS),
    ("upgrades", UPGRADES_FILE, UpgradeDef, DEFAULT_UPGRADES),
    ("achievements", ACHIEVEMENTS_FILE, AchievementDef, DEFAULT_ACHIEVEMENTS),
    ("events", EVENTS_FILE, EventDef, DEFAULT_EVENTS),
)


def load_content(data_dir: Optional[Path] = None) -> GameContent:
    """data_dir 의 json 파일이 있으면 그것을, 없으면 기본 테이블을 읽는다."""
    base = DATA_DIR if data_dir is None else Path(data_dir)
    tables: Dict[str, Dict[object, _Def]] = {}
    for name, filename, model_cls, defaults in _TABLES:
        path = base / filename
        rows = _read_json(path, defaults) if path.exists() else defaults
        tables[name] = _parse_rows(rows, model_cls, name)
    return GameContent(**tables)


def default_content() -> GameContent:
    tables = {name: _parse_rows(defaults, model_cls, name) for name, _f, model_cls, defaults in _TABLES}
    return GameContent(**tables)


def ensure_data_files(data_dir: Optional[Path] = None) -> None:
    base = DATA_DIR if data_dir is None else Path(data_dir)
    base.mkdir(parents=True, exist_ok=True)
    for _name, filename, _model, defaults in _TABLES:
        path = base / filename
        if not path.exists():
            _write_json(path, defaults)


# =============================
# Validation
# =============================
_REQUIREMENT_KEYS: Dict[RequirementType, Optional[Type[Enum]]] = {
    RequirementType.RESOURCE: ResourceKey,
    RequirementType.LIFETIME: ResourceKey,
    RequirementType.BUILDING: BuildingKey,
    RequirementType.TECHNOLOGY: TechnologyKey,
    RequirementType.UPGRADE: UpgradeKey,
    RequirementType.LOOP: LoopActionKey,
    RequirementType.EVENT: EventKey,
    RequirementType.CLICK: None,
    RequirementType.ACTION: None,
    RequirementType.PRESTIGE: None,
    RequirementType.ACHIEVEMENT_POINTS: None,
}

_CONDITION_KEYS: Dict[ConditionType, Type[Enum]] = {
    ConditionType.TECHNOLOGY: TechnologyKey,
    ConditionType.BUILDING: BuildingKey,
    ConditionType.RESOURCE: ResourceKey,
    ConditionType.UPGRADE: UpgradeKey,
}


def condition_key_enum(cond_type: ConditionType) -> Type[Enum]:
    return _CONDITION_KEYS[cond_type]


def requirement_key_enum(req_type: RequirementType) -> Optional[Type[Enum]]:
    return _REQUIREMENT_KEYS[req_type]


def _known(enum_cls: Type[Enum], raw: str) -> bool:
    return raw in {m.value for m in enum_cls}


def validate_content(content: GameContent) -> List[str]:
    """Cross-reference check. 경고 목록을 반환하고 각각 로그로 남긴다."""
    warnings: List[str] = []

    for key in ResourceKey:
        if key not in content.resources:
            warnings.append(f"resource {key.value} has no definition")

    for bkey, bdef in content.buildings.items():
        for tkey in bdef.requires_tech:
            if tkey not in content.technologies:
                warnings.append(f"building {bkey.value} requires missing technology {tkey.value}")

    for tkey, tdef in content.technologies.items():
        for req in tdef.requires_tech:
            if req not in content.technologies:
                warnings.append(f"technology {tkey.value} requires missing technology {req.value}")
        for bkey in tdef.unlocks_buildings:
            if bkey not in content.buildings:
                warnings.append(f"technology {tkey.value} unlocks missing building {bkey.value}")

    conditioned = list(content.loop_actions.values()) + list(content.actions.values())
    for definition in conditioned:
        for cond in definition.unlock_conditions:
            if not _known(_CONDITION_KEYS[cond.type], cond.key):
                warnings.append(f"{definition.key.value}: unknown {cond.type.value} condition key {cond.key}")

    for akey, adef in content.achievements.items():
        for req in adef.requirements:
            enum_cls = _REQUIREMENT_KEYS[req.type]
            if enum_cls is None or req.target == "total":
                continue
            if not _known(enum_cls, req.target):
                warnings.append(f"achievement {akey}: unknown {req.type.value} target {req.target}")
        for reward in adef.rewards:
            if reward.type == RewardType.RESOURCE and not _known(ResourceKey, reward.target):
                warnings.append(f"achievement {akey}: unknown reward resource {reward.target}")
            if reward.type == RewardType.MULTIPLIER and not _known(MultiplierTarget, reward.target):
                warnings.append(f"achievement {akey}: unknown multiplier target {reward.target}")

    for msg in warnings:
        logger.warning("content: %s", msg)
    return warnings


def require_playable(content: GameContent) -> None:
    missing = [key.value for key in ResourceKey if key not in content.resources]
    if missing:
        raise ContentError(f"resource definitions missing: {', '.join(missing)}")


def resource_decimals(content: GameContent, key: ResourceKey) -> int:
    rdef = content.resources.get(key)
    return rdef.decimals if rdef is not None else 0

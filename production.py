#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from typing import Optional, Tuple

from content import GameContent
from ledger import zero_ledger
from model import GameState, ResourceAmounts
from multipliers import Multipliers, compute_multipliers

logger = logging.getLogger(__name__)


def compute_production_breakdown(
    state: GameState,
    content: GameContent,
    mults: Optional[Multipliers] = None,
) -> Tuple[ResourceAmounts, ResourceAmounts]:
    """(총 생산/초, 총 소비/초). 둘 다 0 이상."""
    mults = mults or compute_multipliers(state, content)
    produced = zero_ledger()
    consumed = zero_ledger()
    for bkey, count in state.building_counts.items():
        if count <= 0:
            continue
        bdef = content.buildings.get(bkey)
        if bdef is None:
            logger.warning("building %s has no definition, skipped", bkey.value)
            continue
        for rkey, amount in bdef.base_production.items():
            produced[rkey] += amount * count * mults.production[rkey]
        for rkey, amount in bdef.base_consumption.items():
            consumed[rkey] += amount * count * mults.consumption[rkey]
    return produced, consumed


def compute_net_per_second(
    state: GameState,
    content: GameContent,
    mults: Optional[Multipliers] = None,
) -> ResourceAmounts:
    produced, consumed = compute_production_breakdown(state, content, mults)
    return {key: produced[key] - consumed[key] for key in produced}

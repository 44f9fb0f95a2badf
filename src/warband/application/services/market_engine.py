from __future__ import annotations

import copy
import logging
import random
from typing import Dict, List, Mapping, Tuple

from warband.domain.models.faction import Wars
from warband.domain.models.location import Location, MarketGood
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.lord import AILord
from warband.domain.services.economy_catalog import GOODS, GoodDefinition
from warband.application.services import balance_tables as bt


logger = logging.getLogger(__name__)


def _ordered_goods(goods: Mapping[str, GoodDefinition]) -> List[GoodDefinition]:
    return sorted(goods.values(), key=lambda good: (good.name, good.id))


def target_multiplier(
    location: Location,
    good_id: str,
    locations: Mapping[str, Location],
    wars: Wars,
    lords_present: int,
) -> float:
    target = bt.MARKET_BASE_TARGET
    if location.produces(good_id):
        target += bt.MARKET_PRODUCTION_ADJUST
    for neighbor_id in location.connected_to:
        neighbor = locations.get(neighbor_id)
        if neighbor is not None and neighbor.is_looted and neighbor.produces(good_id):
            target += bt.MARKET_LOOTED_NEIGHBOR_ADJUST
    if wars.has_enemies(location.faction_id):
        if good_id in bt.MARKET_STRATEGIC_GOODS:
            target += bt.MARKET_WAR_STRATEGIC_ADJUST
        if good_id in bt.MARKET_LUXURY_GOODS:
            target += bt.MARKET_WAR_LUXURY_ADJUST
    if lords_present and good_id in bt.MARKET_PROVISION_GOODS:
        target += bt.MARKET_LORD_PROVISION_ADJUST * lords_present
    return bt.clamp(target, bt.MARKET_TARGET_MIN, bt.MARKET_TARGET_MAX)


def update_market(
    locations: Mapping[str, Location],
    wars: Wars,
    lords: Mapping[str, AILord],
    rng: random.Random,
    goods: Mapping[str, GoodDefinition] = GOODS,
) -> Tuple[Dict[str, Location], List[LogEntry]]:
    """Recompute every market and return the new locations plus at most one log line.

    Inputs are never mutated. Looted towns are pinned to crisis pricing.
    """
    ordered = _ordered_goods(goods)
    garrisons: Dict[str, int] = {}
    for lord in lords.values():
        if not lord.is_defeated:
            garrisons[lord.location_id] = garrisons.get(lord.location_id, 0) + 1

    updated: Dict[str, Location] = {}
    notable: List[str] = []
    for location_id, location in locations.items():
        row = copy.deepcopy(location)
        if location.is_looted:
            row.market = [MarketGood(good.id, bt.MARKET_LOOTED_MULTIPLIER) for good in ordered]
            updated[location_id] = row
            continue

        market: List[MarketGood] = []
        for good in ordered:
            target = target_multiplier(location, good.id, locations, wars, garrisons.get(location_id, 0))
            old = location.multiplier_for(good.id)
            smoothed = old * bt.MARKET_SMOOTHING_KEEP + target * (1.0 - bt.MARKET_SMOOTHING_KEEP)
            ratio = smoothed / old if old > 0 else 1.0
            if ratio > bt.MARKET_SURGE_RATIO:
                notable.append(f"Prices for {good.name} are soaring in {location.name}.")
            elif ratio < bt.MARKET_SLUMP_RATIO:
                notable.append(f"Prices for {good.name} are collapsing in {location.name}.")
            market.append(MarketGood(good.id, smoothed))
        row.market = market
        updated[location_id] = row

    logs: List[LogEntry] = []
    if notable:
        logs.append(entry(rng.choice(notable), LogKind.MARKET))
    logger.debug("Market updated for %d locations (%d notable swings)", len(updated), len(notable))
    return updated, logs


def buy_price(location: Location, good: GoodDefinition) -> int:
    return bt.round_half_up(good.base_price * location.multiplier_for(good.id))


def sell_price(location: Location, good: GoodDefinition) -> int:
    return bt.round_half_up(buy_price(location, good) * bt.MARKET_SELL_RATIO)

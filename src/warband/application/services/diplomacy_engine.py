from __future__ import annotations

import logging
import math
import random
from typing import List, Tuple

from warband.domain.models.faction import FactionRelations, Wars
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.services.world_catalog import faction_name
from warband.application.services import balance_tables as bt


logger = logging.getLogger(__name__)


def _round_tenth(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _decay(value: float) -> float:
    if value > 0:
        return _round_tenth(max(0.0, value - bt.DIPLOMACY_DECAY_STEP))
    if value < 0:
        return _round_tenth(min(0.0, value + bt.DIPLOMACY_DECAY_STEP))
    return value


def update_diplomacy(
    relations: FactionRelations,
    wars: Wars,
    rng: random.Random,
) -> Tuple[FactionRelations, Wars, List[LogEntry]]:
    new_relations = relations.copy()
    new_wars = wars.copy()
    logs: List[LogEntry] = []

    for first, second in new_relations.pairs():
        value = _decay(new_relations.get(first, second))
        new_relations.set(first, second, value)
        if rng.random() >= bt.DIPLOMACY_EVENT_CHANCE:
            continue
        shift = rng.randint(-bt.DIPLOMACY_EVENT_SHIFT, bt.DIPLOMACY_EVENT_SHIFT)
        if shift == 0:
            continue
        new_relations.set(first, second, value + shift)
        mood = "improved" if shift > 0 else "soured"
        logs.append(
            entry(
                f"Relations between {faction_name(first)} and {faction_name(second)} have {mood} ({shift:+d}).",
                LogKind.EVENT,
            )
        )

    for first, second in new_relations.pairs():
        value = new_relations.get(first, second)
        if not new_wars.at_war(first, second) and value <= bt.WAR_THRESHOLD:
            new_wars.declare(first, second)
            logs.append(entry(f"{faction_name(first)} has declared war on {faction_name(second)}!", LogKind.EVENT))
            logger.info("War declared between %s and %s (relation %.1f)", first, second, value)
        elif new_wars.at_war(first, second) and value >= bt.PEACE_THRESHOLD:
            new_wars.make_peace(first, second)
            logs.append(entry(f"{faction_name(first)} and {faction_name(second)} have signed a peace treaty.", LogKind.EVENT))
            logger.info("Peace signed between %s and %s (relation %.1f)", first, second, value)

    return new_relations, new_wars, logs

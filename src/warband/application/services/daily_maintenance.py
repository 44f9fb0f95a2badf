from __future__ import annotations

import copy
from typing import Dict, List, Mapping, Tuple

from warband.domain.models.character import HP_MAX, Companion, Player
from warband.domain.models.location import Location, LocationStatus
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.application.services import balance_tables as bt
from warband.application.services.skill_resolution import effective_skill


def recover_looted_locations(locations: Mapping[str, Location], day: int) -> Tuple[Dict[str, Location], List[LogEntry]]:
    updated = copy.deepcopy(dict(locations))
    logs: List[LogEntry] = []
    for location in updated.values():
        if location.is_looted and day >= location.looted_until_day:
            location.status = LocationStatus.NORMAL.value
            location.recruits_available = bt.LOOT_RECOVERY_RECRUITS
            logs.append(entry(f"{location.name} has recovered from the raid.", LogKind.EVENT))
    return updated, logs


def _heal(hp: int, amount: int) -> Tuple[int, bool]:
    healed = min(HP_MAX, hp + amount)
    return healed, healed < HP_MAX


def run_daily_maintenance(
    player: Player,
    companions: Mapping[str, Companion],
    locations: Mapping[str, Location],
    day: int,
) -> Tuple[Player, Dict[str, Companion], Dict[str, Location], List[LogEntry]]:
    """Apply one day of upkeep. Inputs are left untouched; updated copies are returned."""
    wound_treatment = effective_skill(player, companions, "wound_treatment")
    trainer = effective_skill(player, companions, "trainer")
    heal_amount = bt.HEAL_BASE + wound_treatment * bt.HEAL_PER_WOUND_TREATMENT

    new_locations, logs = recover_looted_locations(locations, day)
    new_player = copy.deepcopy(player)
    new_companions = copy.deepcopy(dict(companions))

    if new_player.is_wounded:
        new_player.hp, new_player.is_wounded = _heal(new_player.hp, heal_amount)
        if not new_player.is_wounded:
            logs.append(entry("You have fully recovered from your wounds.", LogKind.EVENT))
    for companion_id in new_player.companions:
        companion = new_companions.get(companion_id)
        if companion is None or not companion.is_wounded:
            continue
        companion.hp, companion.is_wounded = _heal(companion.hp, heal_amount)
        if not companion.is_wounded:
            logs.append(entry(f"{companion.name} has recovered from their wounds.", LogKind.EVENT))

    recovered = 0
    for unit_id in list(new_player.wounded_army):
        wounded = int(new_player.wounded_army[unit_id])
        if wounded <= 0:
            del new_player.wounded_army[unit_id]
            continue
        healed = min(wounded, max(1, int(wounded * bt.TROOP_HEAL_RATE)))
        recovered += healed
        new_player.army[unit_id] = int(new_player.army.get(unit_id, 0)) + healed
        if wounded - healed > 0:
            new_player.wounded_army[unit_id] = wounded - healed
        else:
            del new_player.wounded_army[unit_id]
    if recovered:
        logs.append(entry(f"{recovered} wounded soldiers returned to duty.", LogKind.EVENT))

    for fief_id in new_player.fiefs:
        fief = new_locations.get(fief_id)
        if fief is not None:
            fief.accumulated_taxes += bt.DAILY_TAX_PER_FIEF

    xp_per_unit = bt.TRAINING_XP_BASE + trainer * bt.TRAINING_XP_PER_TRAINER
    for unit_id, count in new_player.army.items():
        if count > 0:
            new_player.unit_experience[unit_id] = int(new_player.unit_experience.get(unit_id, 0)) + xp_per_unit * int(count)

    return new_player, new_companions, new_locations, logs

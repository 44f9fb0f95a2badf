from __future__ import annotations

import copy
import logging
import random
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from warband.domain.models.army import total
from warband.domain.models.faction import Wars
from warband.domain.models.location import Location, LocationStatus
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.lord import AILord
from warband.domain.services.unit_catalog import BASE_RECRUIT_UNIT_ID
from warband.domain.services.world_catalog import capital_location_id, faction_name, lord_respawn_army
from warband.application.services import balance_tables as bt


logger = logging.getLogger(__name__)


class LordController:
    """Runs one day of decisions for every AI lord.

    Each lord is either active or defeated. Lords act in order and later lords
    see the towns as earlier lords left them.
    """

    def __init__(
        self,
        capital_lookup: Callable[[str], Optional[str]] = capital_location_id,
        respawn_army: Callable[[str], Dict[str, int]] = lord_respawn_army,
    ) -> None:
        self.capital_lookup = capital_lookup
        self.respawn_army = respawn_army

    def run_day(
        self,
        lords: Mapping[str, AILord],
        locations: Mapping[str, Location],
        wars: Wars,
        day: int,
        rng: random.Random,
    ) -> Tuple[Dict[str, AILord], Dict[str, Location], List[LogEntry]]:
        new_lords = copy.deepcopy(dict(lords))
        new_locations = copy.deepcopy(dict(locations))
        logs: List[LogEntry] = []
        for lord in new_lords.values():
            if lord.is_defeated:
                self._try_respawn(lord, new_locations, day, rng, logs)
                continue
            location = new_locations.get(lord.location_id)
            if location is None:
                self._relocate_lost_lord(lord, new_locations, day, logs)
                continue
            troops = total(lord.army)
            self._act(lord, location, wars, day, troops, logs)
            self._move(lord, new_locations, wars, troops, rng)
        return new_lords, new_locations, logs

    def _faction_fiefs(self, locations: Mapping[str, Location], faction_id: str) -> List[Location]:
        return [row for row in locations.values() if row.faction_id == faction_id]

    def _try_respawn(
        self,
        lord: AILord,
        locations: Mapping[str, Location],
        day: int,
        rng: random.Random,
        logs: List[LogEntry],
    ) -> None:
        if day < lord.defeated_until_day:
            return
        fiefs = self._faction_fiefs(locations, lord.faction_id)
        if not fiefs:
            if lord.defeated_until_day < day + bt.LORD_FAR_FUTURE_LOG_WINDOW:
                logs.append(
                    entry(
                        f"With {faction_name(lord.faction_id)} holding no lands, {lord.name} has vanished from Calradia.",
                        LogKind.RUMOR,
                    )
                )
            lord.defeated_until_day = day + bt.LORD_FAR_FUTURE_DAYS
            return

        capital_id = self.capital_lookup(lord.name)
        capital = locations.get(capital_id) if capital_id else None
        if capital is not None and capital.faction_id == lord.faction_id:
            home = capital
        else:
            home = rng.choice(fiefs)
        lord.is_defeated = False
        lord.defeated_until_day = 0
        lord.location_id = home.id
        lord.army = self.respawn_army(lord.id)
        logs.append(entry(f"{lord.name} has raised a new army at {home.name}.", LogKind.RUMOR))

    def _relocate_lost_lord(
        self,
        lord: AILord,
        locations: Mapping[str, Location],
        day: int,
        logs: List[LogEntry],
    ) -> None:
        fiefs = self._faction_fiefs(locations, lord.faction_id)
        if fiefs:
            lord.location_id = fiefs[0].id
            logger.debug("Lord %s had no valid location; moved to %s", lord.id, fiefs[0].id)
            return
        lord.is_defeated = True
        lord.defeated_until_day = day + bt.LORD_DEFEAT_DAYS
        lord.army = {}
        logs.append(entry(f"{lord.name} has lost the road and their army has scattered.", LogKind.RUMOR))

    def _act(
        self, lord: AILord, location: Location, wars: Wars, day: int, troops: int, logs: List[LogEntry]
    ) -> None:
        if wars.at_war(lord.faction_id, location.faction_id) and not location.is_looted and troops > bt.LORD_RAID_MIN_TROOPS:
            location.status = LocationStatus.LOOTED.value
            location.looted_until_day = day + bt.LORD_LOOT_DAYS
            location.recruits_available = 0
            losses = 0
            for unit_id in list(lord.army):
                count = int(lord.army[unit_id])
                lost = int(count * bt.LORD_RAID_ATTRITION)
                losses += lost
                if count - lost > 0:
                    lord.army[unit_id] = count - lost
                else:
                    del lord.army[unit_id]
            logs.append(
                entry(
                    f"{lord.name} of {faction_name(lord.faction_id)} has sacked {location.name}, losing {losses} men in the assault.",
                    LogKind.RUMOR,
                )
            )
            return

        if (
            location.faction_id == lord.faction_id
            and troops < bt.LORD_RECRUIT_MAX_TROOPS
            and location.recruits_available > bt.LORD_RECRUIT_MIN_POOL
        ):
            gained = min(location.recruits_available, bt.LORD_RECRUIT_BATCH)
            lord.army[BASE_RECRUIT_UNIT_ID] = int(lord.army.get(BASE_RECRUIT_UNIT_ID, 0)) + gained
            location.recruits_available -= gained
            logs.append(entry(f"{lord.name} gathered {gained} recruits at {location.name}.", LogKind.RUMOR))

    def _move(
        self, lord: AILord, locations: Mapping[str, Location], wars: Wars, troops: int, rng: random.Random
    ) -> None:
        # troops is the strength the lord started the day with
        enemies = set(wars.enemies_of(lord.faction_id))
        candidates: List[Location] = []
        if enemies and troops > bt.LORD_OFFENSIVE_MIN_TROOPS:
            candidates = [row for row in locations.values() if row.faction_id in enemies and not row.is_looted]
        if not candidates:
            candidates = [
                row for row in locations.values() if row.faction_id == lord.faction_id and row.id != lord.location_id
            ]
        if not candidates:
            return
        destination = rng.choice(candidates)
        if destination.id != lord.location_id:
            lord.location_id = destination.id


def run_lord_turns(
    lords: Mapping[str, AILord],
    locations: Mapping[str, Location],
    wars: Wars,
    day: int,
    rng: random.Random,
) -> Tuple[Dict[str, AILord], Dict[str, Location], List[LogEntry]]:
    return LordController().run_day(lords, locations, wars, day, rng)

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from warband.domain.events import DayAdvanced, LocationLooted, PeaceSigned, WarDeclared
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.world_state import WorldState
from warband.domain.services.economy_catalog import ENTERPRISE_TYPES
from warband.application.services import balance_tables as bt
from warband.application.services.daily_maintenance import recover_looted_locations, run_daily_maintenance
from warband.application.services.diplomacy_engine import update_diplomacy
from warband.application.services.event_bus import EventBus
from warband.application.services.lord_controller import LordController
from warband.application.services.market_engine import update_market
from warband.application.services.seed_policy import day_rng


logger = logging.getLogger(__name__)


def is_income_day(day: int) -> bool:
    return day > 1 and (day - 1) % bt.ENTERPRISE_INCOME_INTERVAL_DAYS == 0


def is_diplomacy_day(day: int) -> bool:
    return day > 1 and day % bt.DIPLOMACY_INTERVAL_DAYS == 0


class WorldProgression:
    """Day orchestrator.

    Runs upkeep, markets, weekly income, diplomacy and lords in that order
    against working copies, then commits them to the world in one step.
    """

    def __init__(
        self,
        event_bus: EventBus,
        lord_controller: Optional[LordController] = None,
        rng_factory: Optional[Callable[[int, int], random.Random]] = None,
    ) -> None:
        self.event_bus = event_bus
        self.lord_controller = lord_controller or LordController()
        self.rng_factory = rng_factory or day_rng

    def advance_day(self, world: WorldState) -> List[LogEntry]:
        logs = self.run_day(world, world.day + 1)
        logs.insert(0, entry(f"A day passes. (Day {world.day})", LogKind.SYSTEM))
        return logs

    def run_day(self, world: WorldState, day: Optional[int] = None) -> List[LogEntry]:
        day = world.day if day is None else int(day)
        rng = self.rng_factory(world.seed, day)
        logs: List[LogEntry] = []

        player = world.player
        companions = world.companions
        if player is not None:
            player, companions, locations, upkeep = run_daily_maintenance(player, companions, world.locations, day)
        else:
            locations, upkeep = recover_looted_locations(world.locations, day)
        logs.extend(upkeep)

        locations, market_logs = update_market(locations, world.wars, world.lords, rng)
        logs.extend(market_logs)

        if player is not None and is_income_day(day) and player.enterprises:
            income = 0
            breakdown = []
            for enterprise in player.enterprises:
                kind = ENTERPRISE_TYPES.get(enterprise.type_id)
                location = locations.get(enterprise.location_id)
                if kind is None or location is None:
                    continue
                earned = bt.round_half_up(kind.base_weekly_profit * location.multiplier_for(kind.output_good_id))
                income += earned
                breakdown.append(f"{kind.name} in {location.name}: {earned}")
            player.gold += income
            logs.append(entry(f"Weekly enterprise income: {income} gold ({'; '.join(breakdown)}).", LogKind.EVENT))

        relations, wars = world.relations, world.wars
        if is_diplomacy_day(day):
            relations, wars, diplomacy_logs = update_diplomacy(relations, wars, rng)
            logs.extend(diplomacy_logs)

        lords = world.lords
        if day > 1:
            lords, locations, lord_logs = self.lord_controller.run_day(lords, locations, wars, day, rng)
            logs.extend(lord_logs)

        events: List[object] = [DayAdvanced(day=day)]
        for first, second in relations.pairs():
            before, after = world.wars.at_war(first, second), wars.at_war(first, second)
            if after and not before:
                events.append(WarDeclared(first, second, day))
            elif before and not after:
                events.append(PeaceSigned(first, second, day))
        for location_id, location in locations.items():
            previous = world.locations.get(location_id)
            if location.is_looted and previous is not None and not previous.is_looted:
                events.append(LocationLooted(location_id, day))

        world.day = day
        world.player = player
        world.companions = companions
        world.locations = locations
        world.relations = relations
        world.wars = wars
        world.lords = lords
        logger.debug("Day %d complete with %d chronicle entries", day, len(logs))
        self.event_bus.publish_all(events)
        return logs

from __future__ import annotations

import copy
import logging
import math
import random
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

from warband.domain.models.army import total
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.quest import Quest, TravelEvent
from warband.domain.models.world_state import WorldState
from warband.domain.services.economy_catalog import GOODS
from warband.domain.services.world_catalog import (
    DEFAULT_START_LOCATION_ID,
    build_companions,
    build_locations,
    build_lords,
    build_relations,
    build_wars,
    faction_name,
)
from warband.application.contract import ContentProvider
from warband.application.dtos import ActionResult, MarketRowView, PartyStatusView, TokenUsage, TravelOptionView
from warband.application.errors import GameBusyError, ProviderError, ProviderRateLimitError
from warband.application.snapshot import world_from_snapshot, world_to_snapshot
from warband.application.services import balance_tables as bt
from warband.application.services.battle_service import apply_battle_result
from warband.application.services.character_creation_service import background_rule, normalize_generated_player
from warband.application.services.delegation_policy import DelegatedDecisionPolicy
from warband.application.services.economy_service import EconomyService
from warband.application.services.event_bus import EventBus
from warband.application.services.progression_service import spend_skill_point
from warband.application.services.provider_validation import (
    parse_battle_result,
    parse_destination,
    parse_quest,
    parse_rumor,
    parse_travel_event,
)
from warband.application.services.skill_resolution import effective_skill
from warband.application.services.travel_service import apply_event_choice, complete_travel, is_hostile
from warband.application.services.world_progression import WorldProgression


logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_ALERT = "The content provider's request quota is exhausted. Please wait a while before trying again."
BANDIT_TYPES = ("Bandits", "Brigands", "Deserters", "Sea Raiders")


def _backstory(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    return str(payload.get("backstory") or "").strip()


class GameService:
    """Session façade over the world aggregate.

    Holds the busy gate for provider round trips, the chronicle, token usage and
    the delegation flag. Every mutating intent runs under a deep-copy guard so a
    failure leaves the world exactly as it was.
    """

    def __init__(
        self,
        provider: ContentProvider,
        event_bus: Optional[EventBus] = None,
        progression: Optional[WorldProgression] = None,
        economy: Optional[EconomyService] = None,
        rng: Optional[random.Random] = None,
        seed: int = 0,
        start_location_id: str = DEFAULT_START_LOCATION_ID,
    ) -> None:
        self.provider = provider
        self.event_bus = event_bus or EventBus()
        self.progression = progression or WorldProgression(self.event_bus)
        self.economy = economy or EconomyService()
        self.rng = rng or random.Random(seed)
        self.seed = int(seed)
        self.start_location_id = start_location_id
        self.world: Optional[WorldState] = None
        self.log: List[LogEntry] = []
        self._log_counter = 0
        self.token_usage = TokenUsage()
        self.is_delegated = False
        self.alert: Optional[str] = None
        self.quest_offer: Optional[Quest] = None
        self.pending_event: Optional[TravelEvent] = None
        self.pending_destination_id: Optional[str] = None
        self._busy = False

    # Session plumbing

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def has_game(self) -> bool:
        return self.world is not None and self.world.player is not None

    def add_log(self, message: str, kind: LogKind | str = LogKind.SYSTEM) -> LogEntry:
        row = entry(message, kind)
        self._record(row)
        return row

    def _record(self, row: LogEntry) -> None:
        self._log_counter += 1
        row.id = self._log_counter
        self.log.append(row)

    def _extend(self, rows: List[LogEntry]) -> List[str]:
        for row in rows:
            self._record(row)
        return [row.message for row in rows]

    def _log_result(self, result: ActionResult) -> ActionResult:
        kind = LogKind.EVENT if result.ok else LogKind.SYSTEM
        for message in result.messages:
            self.add_log(message, kind)
        return result

    def acknowledge_alert(self) -> Optional[str]:
        alert, self.alert = self.alert, None
        return alert

    def _require_world(self) -> WorldState:
        if self.world is None or self.world.player is None:
            raise RuntimeError("No game in progress. Start a new game first.")
        return self.world

    def _idle_problem(self) -> Optional[str]:
        if self.world is None or self.world.player is None:
            return "No game in progress."
        if self.pending_event is not None:
            return "Decide how to handle the event on the road first."
        return None

    @contextmanager
    def _busy_gate(self) -> Iterator[None]:
        if self._busy:
            raise GameBusyError("Another action is still being resolved.")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        world_before = copy.deepcopy(self.world)
        log_before = len(self.log)
        try:
            yield
        except Exception:
            self.world = world_before
            del self.log[log_before:]
            raise

    def _raise_alert(self, exc: Exception) -> None:
        logger.warning("Provider rate limit reached: %s", exc)
        self.alert = RATE_LIMIT_ALERT
        if self.is_delegated:
            self.is_delegated = False
            self.add_log("[Delegate] Delegation was switched off because the provider quota ran out.", LogKind.SYSTEM)

    def _fetch(self, label: str, call: Callable[[], Any], parse: Callable[[Any], T]) -> Optional[T]:
        """One validated provider round trip. Returns ``None`` after logging any failure."""
        try:
            reply = call()
        except ProviderRateLimitError as exc:
            self._raise_alert(exc)
            return None
        except ProviderError as exc:
            logger.warning("Provider call %s failed: %s", label, exc)
            self.add_log(f"Something went wrong while {label}.", LogKind.SYSTEM)
            return None
        self.token_usage.record(reply.tokens)
        if reply.data is None:
            logger.info("Provider returned nothing for %s", label)
            return None
        try:
            return parse(reply.data)
        except ProviderError as exc:
            logger.warning("Provider reply for %s rejected: %s", label, exc)
            self.add_log(f"Something went wrong while {label}.", LogKind.SYSTEM)
            return None

    # Game lifecycle

    def start_new_game_intent(self, background_id: str) -> ActionResult:
        try:
            rule = background_rule(background_id)
        except ValueError as exc:
            return ActionResult.rejected(str(exc))
        with self._busy_gate():
            self.token_usage.session = 0
            created = self._fetch(
                "creating your character",
                lambda: self.provider.generate_character(background_id),
                lambda data: (normalize_generated_player(data, background_id, self.rng), _backstory(data)),
            )
            if created is None:
                return ActionResult.rejected("Character creation failed. Please try again.")
            player, backstory = created
            world = WorldState(
                day=1,
                current_location_id=self.start_location_id,
                player=player,
                locations=build_locations(),
                companions=build_companions(),
                lords=build_lords(),
                relations=build_relations(),
                wars=build_wars(),
                seed=self.seed,
            )
            self.world = world
            self.log = []
            self._log_counter = 0
            self.quest_offer = None
            self.pending_event = None
            self.pending_destination_id = None
            start = world.locations[world.current_location_id]
            messages = [f"{player.name} the {rule.name} begins their journey in {start.name}."]
            if backstory:
                messages.append(backstory)
            for message in messages:
                self.add_log(message, LogKind.EVENT)
            messages += self._extend(self.progression.run_day(world))
            return ActionResult(messages=messages)

    def load_snapshot(self, snapshot: Dict[str, Any]) -> None:
        world = world_from_snapshot(snapshot)
        log = []
        for index, row in enumerate(snapshot.get("log") or [], start=1):
            if isinstance(row, dict) and isinstance(row.get("message"), str):
                log.append(LogEntry(message=row["message"], kind=str(row.get("kind", LogKind.EVENT.value)), id=int(row.get("id", index))))
        self.world = world
        self.seed = world.seed
        self.log = log
        self._log_counter = max([int(snapshot.get("logIdCounter") or 0)] + [row.id for row in log])
        self.is_delegated = bool(snapshot.get("isDelegated", False))
        usage = snapshot.get("tokenUsage") or {}
        self.token_usage = TokenUsage(total=int(usage.get("total", 0)) if isinstance(usage, dict) else 0)
        self.quest_offer = None
        self.pending_event = None
        self.pending_destination_id = None

    def to_snapshot(self) -> Dict[str, Any]:
        world = self._require_world()
        snapshot = world_to_snapshot(world)
        snapshot["log"] = [{"id": row.id, "message": row.message, "kind": row.kind} for row in self.log]
        snapshot["logIdCounter"] = self._log_counter
        snapshot["isDelegated"] = self.is_delegated
        snapshot["tokenUsage"] = {"total": self.token_usage.total}
        return snapshot

    # Time and movement

    def advance_day_intent(self) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        if self._busy:
            raise GameBusyError("Another action is still being resolved.")
        with self._atomic():
            messages = self._extend(self.progression.advance_day(self.world))
        return ActionResult(messages=messages)

    def rest_intent(self) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        self.add_log("You rest for a day.", LogKind.SYSTEM)
        return self.advance_day_intent()

    def travel_intent(self, location_id: str) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        world = self.world
        destination = world.locations.get(location_id)
        if destination is None:
            return ActionResult.rejected(f"There is no place called '{location_id}'.")
        if location_id == world.current_location_id:
            return ActionResult.rejected(f"You are already in {destination.name}.")
        with self._busy_gate():
            if self.provider.is_live and self.rng.random() < bt.TRAVEL_EVENT_CHANCE:
                origin = world.current_location
                event = self._fetch(
                    "looking down the road",
                    lambda: self.provider.generate_travel_event(world.player, origin, destination),
                    parse_travel_event,
                )
                if event is not None:
                    self.pending_event = event
                    self.pending_destination_id = location_id
                    self.add_log(f"[{event.title}] {event.description}", LogKind.EVENT)
                    return ActionResult(messages=[event.title, event.description])
            with self._atomic():
                messages = self._extend(self.progression.advance_day(world))
                messages += self._extend(complete_travel(world, location_id, self.event_bus))
        return ActionResult(messages=messages)

    def resolve_travel_event_intent(self, choice_index: int) -> ActionResult:
        event = self.pending_event
        if event is None or self.world is None:
            return ActionResult.rejected("There is no event to resolve.")
        if not 0 <= choice_index < len(event.choices):
            return ActionResult.rejected("That is not one of the choices.")
        choice = event.choices[choice_index]
        destination_id = self.pending_destination_id
        with self._busy_gate(), self._atomic():
            world = self.world
            self.pending_event = None
            self.pending_destination_id = None
            messages = self._extend(apply_event_choice(world.player, choice))
            if choice.start_battle is not None:
                fight = choice.start_battle
                messages.append(self.add_log(f"{fight.enemy_size} {fight.enemy_name} attack!", LogKind.BATTLE).message)
                messages += self._fight(fight.enemy_name, fight.enemy_size)
                origin = world.current_location
                messages.append(
                    self.add_log(
                        f"Because of the unexpected battle, you remain in {origin.name if origin else 'place'}.",
                        LogKind.SYSTEM,
                    ).message
                )
            elif destination_id in world.locations:
                messages += self._extend(self.progression.advance_day(world))
                messages += self._extend(complete_travel(world, destination_id, self.event_bus))
        return ActionResult(messages=messages)

    # Provider-backed actions

    def _fight(self, enemy_name: str, enemy_size: int) -> List[str]:
        world = self.world
        player = world.player
        tactics = effective_skill(player, world.companions, "tactics")
        surgery = effective_skill(player, world.companions, "surgery")
        result = self._fetch(
            "simulating the battle",
            lambda: self.provider.simulate_battle(
                player, enemy_name, enemy_size, world.wars.enemies_of(player.faction_id), world.companions, tactics, surgery
            ),
            parse_battle_result,
        )
        if result is None:
            return []
        return self._extend(apply_battle_result(player, world.companions, result, self.event_bus))

    def roll_enemy(self) -> tuple[str, int]:
        world = self._require_world()
        player = world.player
        enemy_name = self.rng.choice(BANDIT_TYPES)
        if player.faction_id and self.rng.random() < bt.FACTION_PATROL_CHANCE:
            enemies = world.wars.enemies_of(player.faction_id)
            if enemies:
                enemy_name = f"{faction_name(self.rng.choice(enemies))} Patrol"
        fielded = total(player.army) + len(player.companions)
        ratio = bt.ENEMY_SIZE_MIN_RATIO + self.rng.random() * bt.ENEMY_SIZE_RATIO_SPREAD
        return enemy_name, max(1, math.floor(fielded * ratio))

    def seek_battle_intent(self) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        if total(self.world.player.army) == 0:
            return ActionResult.rejected("You have no soldiers fit to fight. Rest or recruit first.")
        with self._busy_gate(), self._atomic():
            self.add_log("You scour the countryside for a fight...", LogKind.SYSTEM)
            enemy_name, enemy_size = self.roll_enemy()
            messages = [self.add_log(f"You spot {enemy_size} {enemy_name}! Battle is joined!", LogKind.BATTLE).message]
            messages += self._fight(enemy_name, enemy_size)
        return ActionResult(messages=messages)

    def seek_quest_intent(self, auto_accept: bool = False) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        world = self.world
        if world.player.active_quest is not None:
            return ActionResult.rejected("Finish your current quest first.")
        location = world.current_location
        with self._busy_gate():
            self.add_log(f"You ask around {location.name} for work...", LogKind.SYSTEM)
            quest = self._fetch(
                "looking for work",
                lambda: self.provider.generate_quest(world.player, location),
                lambda data: parse_quest(data, location, world.locations),
            )
        if quest is None:
            return self._log_result(ActionResult.rejected(f"Nobody in {location.name} has work for you today."))
        if auto_accept:
            world.player.active_quest = quest
            self.add_log(f"[Quest accepted] {quest.title}", LogKind.QUEST)
        else:
            self.quest_offer = quest
            self.add_log(f"[Quest offered] {quest.title}: {quest.description}", LogKind.QUEST)
        return ActionResult(messages=[quest.title])

    def accept_quest_intent(self) -> ActionResult:
        if self.quest_offer is None or not self.has_game:
            return ActionResult.rejected("Nobody has offered you a quest.")
        quest, self.quest_offer = self.quest_offer, None
        self.world.player.active_quest = quest
        return self._log_result(ActionResult(messages=[f"[Quest accepted] {quest.title}"]))

    def decline_quest_intent(self) -> ActionResult:
        if self.quest_offer is None:
            return ActionResult.rejected("Nobody has offered you a quest.")
        self.quest_offer = None
        return self._log_result(ActionResult(messages=["You politely decline the lord's offer."]))

    def bounty_destination_intent(self, quest: Quest) -> Optional[str]:
        world = self._require_world()
        with self._busy_gate():
            return self._fetch(
                "tracking your quarry",
                lambda: self.provider.get_destination_for_bounty_quest(quest, world.locations),
                lambda data: parse_destination(data, world.locations),
            )

    def gather_rumor_intent(self) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        world = self.world
        if world.player.gold < bt.RUMOR_COST:
            return self._log_result(ActionResult.rejected(f"You need {bt.RUMOR_COST} gold to buy a round for the tavern."))
        location = world.current_location
        with self._busy_gate():
            world.player.gold -= bt.RUMOR_COST
            self.add_log("You buy a round of drinks and listen to the talk...", LogKind.SYSTEM)
            rumor = self._fetch("listening for rumors", lambda: self.provider.get_rumor(location), parse_rumor)
            if rumor is None:
                self.world.player.gold += bt.RUMOR_COST
                return ActionResult.rejected("The tavern is quiet today. Your coins are returned.")
        return self._log_result(ActionResult(messages=[f'[Rumor] "{rumor}"']))

    # Economy

    def _economy(self, action: Callable[..., ActionResult], *args: Any) -> ActionResult:
        problem = self._idle_problem()
        if problem:
            return ActionResult.rejected(problem)
        if self._busy:
            raise GameBusyError("Another action is still being resolved.")
        with self._atomic():
            return self._log_result(action(self.world, *args))

    def recruit_troop_intent(self) -> ActionResult:
        return self._economy(self.economy.recruit_troop)

    def recruit_companion_intent(self, companion_id: str) -> ActionResult:
        return self._economy(self.economy.recruit_companion, companion_id)

    def upgrade_units_intent(self, from_unit_id: str, to_unit_id: str, quantity: int = 1) -> ActionResult:
        return self._economy(self.economy.upgrade_units, from_unit_id, to_unit_id, quantity)

    def buy_good_intent(self, good_id: str, quantity: int = 1) -> ActionResult:
        return self._economy(self.economy.buy_good, good_id, quantity)

    def sell_good_intent(self, good_id: str, quantity: int = 1) -> ActionResult:
        return self._economy(self.economy.sell_good, good_id, quantity)

    def buy_item_intent(self, item_id: str) -> ActionResult:
        return self._economy(self.economy.buy_item, item_id)

    def build_enterprise_intent(self, type_id: str) -> ActionResult:
        return self._economy(self.economy.build_enterprise, type_id)

    def equip_item_intent(self, character_id: str, item_id: str) -> ActionResult:
        return self._economy(self.economy.equip_item, character_id, item_id)

    def unequip_item_intent(self, character_id: str, slot: str) -> ActionResult:
        return self._economy(self.economy.unequip_item, character_id, slot)

    def spend_skill_point_intent(self, skill_id: str) -> ActionResult:
        return self._economy(lambda world, skill: spend_skill_point(world.player, skill), skill_id)

    def join_faction_intent(self, faction_id: str) -> ActionResult:
        return self._economy(self.economy.join_faction, faction_id)

    def request_fief_intent(self) -> ActionResult:
        return self._economy(self.economy.request_fief)

    def collect_taxes_intent(self, location_id: str) -> ActionResult:
        return self._economy(self.economy.collect_taxes, location_id)

    def manage_garrison_intent(self, location_id: str, unit_id: str, quantity: int, direction: str) -> ActionResult:
        return self._economy(self.economy.manage_garrison, location_id, unit_id, quantity, direction)

    def raid_location_intent(self, location_id: str) -> ActionResult:
        return self._economy(lambda world, target: self.economy.raid_location(world, target, self.rng), location_id)

    def heal_party_intent(self) -> ActionResult:
        return self._economy(self.economy.heal_party)

    # Delegation

    def toggle_delegation_intent(self, enabled: Optional[bool] = None) -> ActionResult:
        self.is_delegated = (not self.is_delegated) if enabled is None else bool(enabled)
        state = "on" if self.is_delegated else "off"
        return self._log_result(ActionResult(messages=[f"[Delegate] Delegated command is now {state}."]))

    def run_delegated_cycle_intent(self) -> ActionResult:
        return DelegatedDecisionPolicy(self).run_cycle()

    # Views

    def get_party_status_intent(self) -> PartyStatusView:
        world = self._require_world()
        player = world.player
        location = world.current_location
        quest = player.active_quest
        return PartyStatusView(
            name=player.name,
            day=world.day,
            location_name=location.name if location else world.current_location_id,
            faction_name=faction_name(player.faction_id),
            gold=player.gold,
            renown=player.renown,
            level=player.level,
            xp=player.xp,
            hp=player.hp,
            is_wounded=player.is_wounded,
            troops=player.troop_count,
            wounded_troops=player.wounded_count,
            troop_cap=self.economy.troop_cap(world),
            companions=[world.companions[cid].name for cid in player.companions if cid in world.companions],
            active_quest=quest.title if quest else None,
            is_delegated=self.is_delegated,
            tokens_used=self.token_usage.total,
            alert=self.alert,
        )

    def get_market_intent(self) -> List[MarketRowView]:
        world = self._require_world()
        location = world.current_location
        rows = []
        for market_good in location.market:
            good = GOODS.get(market_good.good_id)
            if good is None:
                continue
            rows.append(
                MarketRowView(
                    good_id=good.id,
                    name=good.name,
                    buy_price=self.economy.purchase_price(world, good.id),
                    sell_price=self.economy.sale_price(world, good.id),
                    owned=int(world.player.inventory.get(good.id, 0)),
                )
            )
        return rows

    def get_travel_options_intent(self) -> List[TravelOptionView]:
        world = self._require_world()
        rows = []
        for location_id in world.current_location.connected_to:
            location = world.locations.get(location_id)
            if location is None:
                continue
            rows.append(
                TravelOptionView(
                    location_id=location.id,
                    name=location.name,
                    faction_name=faction_name(location.faction_id),
                    hostile=is_hostile(world, location.id),
                    looted=location.is_looted,
                )
            )
        return rows

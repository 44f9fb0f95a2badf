from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Optional

from warband.domain.models.army import total
from warband.domain.models.quest import Quest
from warband.domain.services.unit_catalog import BASE_RECRUIT_COST
from warband.application.dtos import ActionResult
from warband.application.services import balance_tables as bt

if TYPE_CHECKING:
    from warband.application.services.game_service import GameService


logger = logging.getLogger(__name__)

DELEGATE_PREFIX = "[Delegate]"


class DelegatedDecisionPolicy:
    """Chooses and performs the player's next action while delegation is on.

    Branches are tried in priority order and the first one that acts ends the
    cycle: quest pursuit, finding work, rest, army management, enterprise
    building and finally wandering.
    """

    def __init__(self, game: "GameService", rng: Optional[random.Random] = None) -> None:
        self.game = game
        self.rng = rng or game.rng

    def run_cycle(self) -> ActionResult:
        game = self.game
        if not game.is_delegated:
            return ActionResult.rejected("Delegated command is off.")
        if game.is_busy:
            logger.debug("Delegated tick skipped while busy")
            return ActionResult.rejected("Another action is still being resolved.")
        if not game.has_game:
            return ActionResult.rejected("No game in progress.")
        if game.pending_event is not None:
            self._note("Your captain takes the first option on the road.")
            return game.resolve_travel_event_intent(0)

        for branch in (self._pursue_quest, self._find_work, self._recover, self._manage_army, self._invest):
            result = branch()
            if result is not None:
                return result
        return self._wander()

    def _note(self, message: str) -> None:
        self.game.add_log(f"{DELEGATE_PREFIX} {message}", "system")

    def _with_day(self, result: ActionResult) -> ActionResult:
        day = self.game.advance_day_intent()
        return ActionResult(messages=result.messages + day.messages, ok=result.ok)

    # 1. Quest pursuit

    def _pursue_quest(self) -> Optional[ActionResult]:
        quest = self.game.world.player.active_quest
        if quest is None:
            return None
        if quest.is_delivery:
            return self._pursue_delivery(quest)
        if quest.is_bounty:
            return self._pursue_bounty(quest)
        return None

    def _pursue_delivery(self, quest: Quest) -> Optional[ActionResult]:
        world = self.game.world
        if quest.target_location_id == world.current_location_id:
            return None
        held = int(world.player.inventory.get(quest.required_good_id or "", 0))
        missing = max(0, int(quest.required_quantity or 0) - held)
        if missing > 0:
            bought = self.game.buy_good_intent(quest.required_good_id, missing)
            if not bought.ok:
                return None
            self._note(f"Bought goods for the delivery to {self._place(quest.target_location_id)}.")
            return bought
        self._note(f"Heading to {self._place(quest.target_location_id)} to deliver the goods.")
        return self.game.travel_intent(quest.target_location_id)

    def _pursue_bounty(self, quest: Quest) -> Optional[ActionResult]:
        world = self.game.world
        destination = self.game.bounty_destination_intent(quest)
        if self.game.alert is not None and not self.game.is_delegated:
            return ActionResult.rejected("Delegation stopped.")
        if destination is None:
            self._note(f"No trail of {quest.target_enemy_name or 'the quarry'}; scouting elsewhere.")
            return self._wander()
        if destination != world.current_location_id:
            self._note(f"Tracking {quest.target_enemy_name or 'the quarry'} towards {self._place(destination)}.")
            return self.game.travel_intent(destination)
        if total(world.player.army) == 0:
            return None
        self._note(f"Hunting {quest.target_enemy_name or 'the quarry'} near {self._place(destination)}.")
        return self.game.seek_battle_intent()

    # 2. Finding work

    def _find_work(self) -> Optional[ActionResult]:
        if self.game.world.player.active_quest is not None:
            return None
        self._note("Looking for work.")
        result = self.game.seek_quest_intent(auto_accept=True)
        if result.ok:
            return result
        if not self.game.is_delegated:
            return result
        return self._wander()

    # 3. Rest

    def _recover(self) -> Optional[ActionResult]:
        world = self.game.world
        wounded = world.player.is_wounded or any(row.is_wounded for row in world.recruited_companions())
        if not wounded:
            return None
        self._note("The party rests to tend its wounds.")
        return self.game.rest_intent()

    # 4. Army

    def _manage_army(self) -> Optional[ActionResult]:
        for step in (self._hire_companion, self._upgrade_units, self._recruit_troop):
            result = step()
            if result is not None:
                return self._with_day(result)
        return None

    def _hire_companion(self) -> Optional[ActionResult]:
        world = self.game.world
        for companion in self.game.economy.available_companions(world):
            if world.player.gold >= companion.recruitment_cost:
                self._note(f"Hiring {companion.name}.")
                return self.game.recruit_companion_intent(companion.id)
        return None

    def _upgrade_units(self) -> Optional[ActionResult]:
        world = self.game.world
        economy = self.game.economy
        for unit_id in sorted(world.player.army):
            for target in economy.units.values():
                if target.upgrade_from != unit_id or economy.upgrade_problem(world, unit_id, target.id, 1) is not None:
                    continue
                self._note(f"Training one {economy.units[unit_id].name} into {target.name}.")
                return self.game.upgrade_units_intent(unit_id, target.id, 1)
        return None

    def _recruit_troop(self) -> Optional[ActionResult]:
        world = self.game.world
        economy = self.game.economy
        player = world.player
        location = world.current_location
        if location is None or location.is_looted or location.recruits_available <= 0:
            return None
        if player.party_size >= economy.troop_cap(world):
            return None
        if player.gold <= BASE_RECRUIT_COST * bt.DELEGATE_RECRUIT_GOLD_FACTOR:
            return None
        self._note("Recruiting fresh troops.")
        return self.game.recruit_troop_intent()

    # 5. Economy

    def _invest(self) -> Optional[ActionResult]:
        world = self.game.world
        player = world.player
        if player.gold <= bt.DELEGATE_ENTERPRISE_GOLD:
            return None
        if any(row.location_id == world.current_location_id for row in player.enterprises):
            return None
        best = self.game.economy.best_enterprise()
        if best is None or player.gold < best.cost:
            return None
        self._note(f"Investing in a {best.name}.")
        return self._with_day(self.game.build_enterprise_intent(best.id))

    # 6. Wander

    def _wander(self) -> ActionResult:
        world = self.game.world
        location = world.current_location
        options = [cid for cid in (location.connected_to if location else []) if cid in world.locations]
        if not options:
            self._note("Nowhere to go; waiting a day.")
            return self.game.advance_day_intent()
        destination = self.rng.choice(options)
        self._note(f"Wandering to {self._place(destination)}.")
        return self.game.travel_intent(destination)

    def _place(self, location_id: Optional[str]) -> str:
        location = self.game.world.locations.get(location_id or "")
        return location.name if location else str(location_id)

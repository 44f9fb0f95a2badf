from __future__ import annotations

import logging
import random
from typing import Mapping, Optional

from warband.domain.models.army import add_units, remove_units
from warband.domain.models.character import HP_MAX, CompanionStatus, EquipmentSlot, PlayerEnterprise
from warband.domain.models.location import PLAYER_OWNER_ID, LocationStatus
from warband.domain.models.world_state import WorldState
from warband.domain.services.economy_catalog import ENTERPRISE_TYPES, GOODS, EnterpriseType, GoodDefinition
from warband.domain.services.unit_catalog import BASE_RECRUIT_COST, BASE_RECRUIT_UNIT_ID, ITEMS, UNITS, ItemDefinition, UnitDefinition
from warband.domain.services.world_catalog import FACTIONS, NEUTRAL_FACTION_ID, faction_name
from warband.application.dtos import ActionResult
from warband.application.services import balance_tables as bt
from warband.application.services.battle_service import adjust_relation
from warband.application.services.market_engine import buy_price, sell_price
from warband.application.services.skill_resolution import companion_skill_total, effective_skill


logger = logging.getLogger(__name__)

PLAYER_CHARACTER_ID = "player"


class EconomyService:
    """Validated player actions that move gold, troops, goods and land.

    Every method checks all of its preconditions before touching the world, so a
    rejected action leaves no trace beyond its message.
    """

    def __init__(
        self,
        units: Mapping[str, UnitDefinition] = UNITS,
        items: Mapping[str, ItemDefinition] = ITEMS,
        goods: Mapping[str, GoodDefinition] = GOODS,
        enterprises: Mapping[str, EnterpriseType] = ENTERPRISE_TYPES,
    ) -> None:
        self.units = units
        self.items = items
        self.goods = goods
        self.enterprises = enterprises

    # Army

    def troop_cap(self, world: WorldState) -> int:
        player = world.player
        leadership = effective_skill(player, world.companions, "leadership")
        return bt.BASE_TROOP_CAP + player.renown // bt.RENOWN_PER_EXTRA_TROOP + leadership * bt.TROOPS_PER_LEADERSHIP

    def recruit_cost(self, world: WorldState) -> int:
        location = world.current_location
        base = self.units[BASE_RECRUIT_UNIT_ID].recruit_cost if BASE_RECRUIT_UNIT_ID in self.units else BASE_RECRUIT_COST
        relation = world.player.relation_with(location.faction_id) if location else 0
        modifier = 1 - bt.clamp(relation, -100, 100) / bt.RECRUIT_RELATION_DIVISOR
        return bt.round_half_up((base or BASE_RECRUIT_COST) * modifier)

    def recruit_troop(self, world: WorldState) -> ActionResult:
        player = world.player
        location = world.current_location
        if location is None:
            return ActionResult.rejected("There is nobody here to recruit.")
        if location.is_looted:
            return ActionResult.rejected(f"{location.name} has been sacked; no one is willing to enlist.")
        cap = self.troop_cap(world)
        if player.party_size >= cap:
            return ActionResult.rejected(f"Your party is at its limit of {cap} men.")
        cost = self.recruit_cost(world)
        if player.gold < cost:
            return ActionResult.rejected(f"You cannot afford a recruit (needs {cost} gold).")
        player.gold -= cost
        add_units(player.army, BASE_RECRUIT_UNIT_ID, 1)
        return ActionResult(messages=[f"You recruited 1 soldier for {cost} gold."])

    def upgrade_problem(self, world: WorldState, from_unit_id: str, to_unit_id: str, quantity: int) -> Optional[str]:
        player = world.player
        target = self.units.get(to_unit_id)
        source = self.units.get(from_unit_id)
        if quantity <= 0:
            return "Choose how many soldiers to train."
        if target is None or source is None or target.upgrade_from != from_unit_id:
            return f"{from_unit_id} cannot be trained into {to_unit_id}."
        cost, xp_cost = self.upgrade_costs(world, target, quantity)
        if int(player.army.get(from_unit_id, 0)) < quantity:
            return f"You do not have {quantity} {source.name} to train."
        if player.gold < cost:
            return f"Training costs {cost} gold; you do not have enough."
        if int(player.unit_experience.get(from_unit_id, 0)) < xp_cost:
            return f"Your {source.name} lack the experience to train ({xp_cost} XP needed)."
        if target.requires_locations and world.current_location_id not in target.requires_locations:
            return f"{target.name} can only be trained in specific towns."
        missing = [cid for cid in target.requires_companions if cid not in player.companions]
        if missing:
            return f"Training {target.name} requires a specific companion in your party."
        for item_id, per_unit in target.requires_items.items():
            if int(player.inventory.get(item_id, 0)) < per_unit * quantity:
                return f"Training {target.name} requires special equipment."
        return None

    def upgrade_costs(self, world: WorldState, target: UnitDefinition, quantity: int) -> tuple[int, int]:
        trainer = effective_skill(world.player, world.companions, "trainer")
        unit_cost = bt.round_half_up(target.upgrade_cost * (1 - trainer * bt.UPGRADE_DISCOUNT_PER_TRAINER))
        return unit_cost * quantity, target.xp_to_upgrade * quantity

    def upgrade_units(self, world: WorldState, from_unit_id: str, to_unit_id: str, quantity: int = 1) -> ActionResult:
        problem = self.upgrade_problem(world, from_unit_id, to_unit_id, quantity)
        if problem:
            return ActionResult.rejected(problem)
        player = world.player
        target = self.units[to_unit_id]
        cost, xp_cost = self.upgrade_costs(world, target, quantity)
        remove_units(player.army, from_unit_id, quantity)
        add_units(player.army, to_unit_id, quantity)
        player.unit_experience[from_unit_id] = int(player.unit_experience.get(from_unit_id, 0)) - xp_cost
        player.gold -= cost
        for item_id, per_unit in target.requires_items.items():
            remove_units(player.inventory, item_id, per_unit * quantity)
        return ActionResult(
            messages=[f"Trained {quantity} {self.units[from_unit_id].name} into {target.name} (cost: {cost} gold, {xp_cost} XP)."]
        )

    def recruit_companion(self, world: WorldState, companion_id: str) -> ActionResult:
        player = world.player
        companion = world.companions.get(companion_id)
        if companion is None or companion.is_recruited or companion_id in player.companions:
            return ActionResult.rejected("That companion is not available.")
        if companion.location_id != world.current_location_id:
            return ActionResult.rejected(f"{companion.name} is not in this tavern.")
        if player.gold < companion.recruitment_cost:
            return ActionResult.rejected(f"You need {companion.recruitment_cost} gold to hire {companion.name}.")
        player.gold -= companion.recruitment_cost
        player.companions.append(companion_id)
        companion.status = CompanionStatus.RECRUITED.value
        return ActionResult(messages=[f"{companion.name} has joined your party!"])

    def available_companions(self, world: WorldState):
        return [
            row
            for row in world.companions.values()
            if row.location_id == world.current_location_id
            and not row.is_recruited
            and row.id not in world.player.companions
        ]

    # Trade

    def _trade_modifier(self, world: WorldState) -> float:
        trade = companion_skill_total(world.player, world.companions, "trade")
        persuasion = effective_skill(world.player, world.companions, "persuasion")
        return trade / bt.TRADE_SKILL_DIVISOR + persuasion * bt.PERSUASION_PRICE_BONUS

    def purchase_price(self, world: WorldState, good_id: str) -> int:
        good = self.goods[good_id]
        listed = buy_price(world.current_location, good)
        return max(1, bt.round_half_up(listed * (1 - self._trade_modifier(world))))

    def sale_price(self, world: WorldState, good_id: str) -> int:
        good = self.goods[good_id]
        listed = sell_price(world.current_location, good)
        return bt.round_half_up(listed * (1 + self._trade_modifier(world)))

    def _market_problem(self, world: WorldState, good_id: str, quantity: int) -> Optional[str]:
        location = world.current_location
        if location is None:
            return "There is no market here."
        if location.is_looted:
            return f"The market of {location.name} lies in ruins."
        if good_id not in self.goods:
            return f"Nobody trades in '{good_id}'."
        if quantity <= 0:
            return "Choose a positive quantity."
        return None

    def buy_good(self, world: WorldState, good_id: str, quantity: int = 1) -> ActionResult:
        problem = self._market_problem(world, good_id, quantity)
        if problem:
            return ActionResult.rejected(problem)
        unit_price = self.purchase_price(world, good_id)
        cost = unit_price * quantity
        if world.player.gold < cost:
            return ActionResult.rejected(f"You need {cost} gold.")
        world.player.gold -= cost
        add_units(world.player.inventory, good_id, quantity)
        return ActionResult(messages=[f"Bought {quantity} {self.goods[good_id].name} for {cost} gold."])

    def sell_good(self, world: WorldState, good_id: str, quantity: int = 1) -> ActionResult:
        problem = self._market_problem(world, good_id, quantity)
        if problem:
            return ActionResult.rejected(problem)
        if int(world.player.inventory.get(good_id, 0)) < quantity:
            return ActionResult.rejected(f"You do not have {quantity} {self.goods[good_id].name} to sell.")
        income = self.sale_price(world, good_id) * quantity
        remove_units(world.player.inventory, good_id, quantity)
        world.player.gold += income
        return ActionResult(messages=[f"Sold {quantity} {self.goods[good_id].name} for {income} gold."])

    def buy_item(self, world: WorldState, item_id: str) -> ActionResult:
        item = self.items.get(item_id)
        if item is None:
            return ActionResult.rejected(f"No smith sells '{item_id}'.")
        if world.player.gold < item.price:
            return ActionResult.rejected(f"{item.name} costs {item.price} gold.")
        world.player.gold -= item.price
        add_units(world.player.inventory, item_id, 1)
        return ActionResult(messages=[f"Bought {item.name} for {item.price} gold."])

    def build_enterprise(self, world: WorldState, type_id: str) -> ActionResult:
        kind = self.enterprises.get(type_id)
        location = world.current_location
        if kind is None or location is None:
            return ActionResult.rejected("That enterprise cannot be built here.")
        if any(row.location_id == location.id for row in world.player.enterprises):
            return ActionResult.rejected(f"You already own an enterprise in {location.name}.")
        if world.player.gold < kind.cost:
            return ActionResult.rejected(f"Building a {kind.name} costs {kind.cost} gold.")
        world.player.gold -= kind.cost
        world.player.enterprises.append(PlayerEnterprise(id=f"{kind.id}-{location.id}", type_id=kind.id, location_id=location.id))
        return ActionResult(messages=[f"Built a {kind.name} in {location.name} for {kind.cost} gold."])

    def best_enterprise(self) -> Optional[EnterpriseType]:
        if not self.enterprises:
            return None
        return max(self.enterprises.values(), key=lambda row: row.base_weekly_profit)

    # Equipment

    def equip_item(self, world: WorldState, character_id: str, item_id: str) -> ActionResult:
        player = world.player
        item = self.items.get(item_id)
        if item is None or int(player.inventory.get(item_id, 0)) < 1:
            return ActionResult.rejected("You do not carry that item.")
        owner = self._equipment_owner(world, character_id)
        if isinstance(owner, ActionResult):
            return owner
        name, wounded, equipment = owner
        if wounded:
            return ActionResult.rejected(f"{name} cannot change equipment while wounded.")
        remove_units(player.inventory, item_id, 1)
        displaced = equipment.get(item.slot)
        if displaced:
            add_units(player.inventory, displaced, 1)
        equipment[item.slot] = item_id
        return ActionResult(messages=[f"{name} equipped {item.name}."])

    def unequip_item(self, world: WorldState, character_id: str, slot: str) -> ActionResult:
        try:
            slot_value = EquipmentSlot(slot).value
        except ValueError:
            return ActionResult.rejected(f"Unknown equipment slot '{slot}'.")
        owner = self._equipment_owner(world, character_id)
        if isinstance(owner, ActionResult):
            return owner
        name, wounded, equipment = owner
        if wounded:
            return ActionResult.rejected(f"{name} cannot change equipment while wounded.")
        item_id = equipment.get(slot_value)
        if not item_id:
            return ActionResult.rejected("Nothing is equipped there.")
        equipment.pop(slot_value, None)
        add_units(world.player.inventory, item_id, 1)
        item = self.items.get(item_id)
        return ActionResult(messages=[f"{name} unequipped {item.name if item else item_id}."])

    def _equipment_owner(self, world: WorldState, character_id: str):
        if character_id == PLAYER_CHARACTER_ID:
            return "You", world.player.is_wounded, world.player.equipment
        companion = world.companions.get(character_id)
        if companion is None or character_id not in world.player.companions:
            return ActionResult.rejected("That character is not in your party.")
        return companion.name, companion.is_wounded, companion.equipment

    # Factions and land

    def join_faction(self, world: WorldState, faction_id: str) -> ActionResult:
        player = world.player
        if faction_id not in FACTIONS or faction_id == NEUTRAL_FACTION_ID:
            return ActionResult.rejected(f"There is no realm called '{faction_id}'.")
        if player.faction_id:
            return ActionResult.rejected(f"You already serve {faction_name(player.faction_id)}.")
        if player.renown < bt.JOIN_FACTION_MIN_RENOWN:
            return ActionResult.rejected(f"You need {bt.JOIN_FACTION_MIN_RENOWN} renown to be accepted as a vassal.")
        player.faction_id = faction_id
        relation = adjust_relation(player, faction_id, bt.JOIN_FACTION_RELATION_GAIN)
        return ActionResult(
            messages=[
                f"You are now a sworn vassal of {faction_name(faction_id)}!",
                f"Relations with {faction_name(faction_id)} improved by {bt.JOIN_FACTION_RELATION_GAIN} (now {relation}).",
            ]
        )

    def request_fief(self, world: WorldState) -> ActionResult:
        player = world.player
        if not player.faction_id:
            return ActionResult.rejected("Only a sworn vassal may ask for land.")
        if player.fiefs:
            return ActionResult.rejected("You already hold a fief.")
        if player.renown < bt.FIEF_MIN_RENOWN:
            return ActionResult.rejected(f"You need {bt.FIEF_MIN_RENOWN} renown before your liege will grant you land.")
        candidates = [
            row for row in world.locations.values() if row.faction_id == player.faction_id and row.owner_id != PLAYER_OWNER_ID
        ]
        if not candidates:
            return ActionResult.rejected(f"{faction_name(player.faction_id)} has no land left to grant.")
        fief = min(candidates, key=lambda row: row.recruits_available)
        fief.owner_id = PLAYER_OWNER_ID
        player.fiefs.append(fief.id)
        return ActionResult(messages=[f"Your liege rewards your service with the fief of {fief.name}!"])

    def collect_taxes(self, world: WorldState, location_id: str) -> ActionResult:
        location = world.locations.get(location_id)
        if location is None or location.owner_id != PLAYER_OWNER_ID:
            return ActionResult.rejected("You can only collect taxes from your own fiefs.")
        if location.accumulated_taxes <= 0:
            return ActionResult.rejected(f"There are no taxes to collect in {location.name}.")
        amount = location.accumulated_taxes
        location.accumulated_taxes = 0
        world.player.gold += amount
        return ActionResult(messages=[f"Collected {amount} gold in taxes from {location.name}."])

    def manage_garrison(
        self, world: WorldState, location_id: str, unit_id: str, quantity: int, direction: str
    ) -> ActionResult:
        location = world.locations.get(location_id)
        unit = self.units.get(unit_id)
        if location is None or location.owner_id != PLAYER_OWNER_ID:
            return ActionResult.rejected("You can only garrison your own fiefs.")
        if unit is None or quantity <= 0:
            return ActionResult.rejected("Choose a unit and a positive quantity.")
        if direction == "to":
            if int(world.player.army.get(unit_id, 0)) < quantity:
                return ActionResult.rejected(f"You do not have {quantity} {unit.name} to station.")
            remove_units(world.player.army, unit_id, quantity)
            add_units(location.garrison, unit_id, quantity)
            return ActionResult(messages=[f"Stationed {quantity} {unit.name} in the garrison of {location.name}."])
        if direction == "from":
            if int(location.garrison.get(unit_id, 0)) < quantity:
                return ActionResult.rejected(f"The garrison of {location.name} has fewer than {quantity} {unit.name}.")
            remove_units(location.garrison, unit_id, quantity)
            add_units(world.player.army, unit_id, quantity)
            return ActionResult(messages=[f"Took {quantity} {unit.name} from the garrison of {location.name}."])
        return ActionResult.rejected(f"Unknown garrison direction '{direction}'.")

    def raid_location(self, world: WorldState, location_id: str, rng: random.Random) -> ActionResult:
        player = world.player
        location = world.locations.get(location_id)
        if location is None or location.is_looted or location_id in player.fiefs:
            return ActionResult.rejected("This place cannot be raided.")
        if location.faction_id not in FACTIONS:
            return ActionResult.rejected("This place cannot be raided.")
        gold = rng.randrange(bt.RAID_GOLD_SPREAD) + bt.RAID_GOLD_BASE
        player.gold += gold
        player.renown = max(0, player.renown - bt.RAID_RENOWN_PENALTY)
        relation = adjust_relation(player, location.faction_id, -bt.RAID_RELATION_PENALTY)
        location.status = LocationStatus.LOOTED.value
        location.looted_until_day = world.day + bt.RAID_LOOTED_DAYS
        logger.info("Player raided %s on day %d", location_id, world.day)
        return ActionResult(
            messages=[
                f"You and your men sack {location.name}!",
                f"You carry off {gold} gold.",
                f"Your renown falls by {bt.RAID_RENOWN_PENALTY} and {faction_name(location.faction_id)} will not forget this (relation {relation}).",
            ]
        )

    def heal_party(self, world: WorldState) -> ActionResult:
        player = world.player
        patients = [cid for cid in player.companions if cid in world.companions and world.companions[cid].is_wounded]
        if not player.is_wounded and not patients:
            return ActionResult.rejected("Nobody in your party needs rest.")
        if player.gold < bt.HEAL_PARTY_COST:
            return ActionResult.rejected(f"A proper rest costs {bt.HEAL_PARTY_COST} gold.")
        player.gold -= bt.HEAL_PARTY_COST
        messages = [f"You paid {bt.HEAL_PARTY_COST} gold for a comfortable rest."]
        if player.is_wounded:
            player.hp = min(HP_MAX, player.hp + bt.HEAL_PARTY_HP)
            if player.hp >= HP_MAX:
                player.is_wounded = False
                messages.append("You have fully recovered.")
            else:
                messages.append(f"You recovered some strength (HP {player.hp}).")
        for companion_id in patients:
            companion = world.companions[companion_id]
            companion.hp = min(HP_MAX, companion.hp + bt.HEAL_PARTY_HP)
            if companion.hp >= HP_MAX:
                companion.is_wounded = False
                messages.append(f"{companion.name} has fully recovered.")
            else:
                messages.append(f"{companion.name} recovered some strength (HP {companion.hp}).")
        return ActionResult(messages=messages)

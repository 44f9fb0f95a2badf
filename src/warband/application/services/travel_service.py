from __future__ import annotations

from typing import List, Mapping, Optional

from warband.domain.models.character import HP_MAX, Companion, Player
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.quest import TravelEventChoice
from warband.domain.models.world_state import WorldState
from warband.domain.services.economy_catalog import GOODS
from warband.domain.services.world_catalog import faction_name
from warband.application.services import balance_tables as bt
from warband.application.services.battle_service import adjust_relation, quest_reward_gold
from warband.application.services.event_bus import EventBus
from warband.application.services.progression_service import apply_level_ups
from warband.application.services.skill_resolution import effective_skill


def is_hostile(world: WorldState, location_id: str) -> bool:
    player = world.player
    location = world.locations.get(location_id)
    if player is None or location is None or not player.faction_id:
        return False
    return world.wars.at_war(player.faction_id, location.faction_id)


def complete_travel(world: WorldState, location_id: str, event_bus: Optional[EventBus] = None) -> List[LogEntry]:
    """Arrive at ``location_id`` and settle any delivery quest that targets it."""
    location = world.locations[location_id]
    player = world.player
    world.current_location_id = location_id
    logs = [entry(f"You arrived at {location.name}.", LogKind.SYSTEM)]
    if player is None:
        return logs

    if is_hostile(world, location_id):
        logs.append(
            entry(
                f"The guards of {location.name} eye your banner with open hostility. "
                f"Your dealings here will be restricted while {faction_name(player.faction_id)} is at war with {faction_name(location.faction_id)}.",
                LogKind.EVENT,
            )
        )

    quest = player.active_quest
    if quest is None or not quest.is_delivery or quest.target_location_id != location_id:
        return logs

    good = GOODS.get(quest.required_good_id or "")
    if good is None:
        player.active_quest = None
        logs.append(
            entry(
                f"[Quest error] The good '{quest.required_good_id}' required by \"{quest.title}\" is unknown. The quest is abandoned.",
                LogKind.SYSTEM,
            )
        )
        return logs

    required = int(quest.required_quantity or 0)
    if int(player.inventory.get(good.id, 0)) < required:
        logs.append(entry(f'You still need {required} {good.name} to complete "{quest.title}".', LogKind.QUEST))
        return logs

    persuasion = effective_skill(player, world.companions, "persuasion")
    reward = quest_reward_gold(quest.reward_gold, persuasion)
    remaining = int(player.inventory.get(good.id, 0)) - required
    if remaining > 0:
        player.inventory[good.id] = remaining
    else:
        player.inventory.pop(good.id, None)
    player.gold += reward
    player.renown += quest.reward_renown
    player.xp += quest.reward_renown * bt.QUEST_XP_PER_RENOWN
    relation = adjust_relation(player, quest.faction_id, bt.DELIVERY_RELATION_GAIN)
    player.active_quest = None

    giver = quest.giver or "the quest giver"
    logs.append(entry(f"[Quest complete] {quest.title}: delivered {required} {good.name} to {giver}.", LogKind.QUEST))
    logs.append(entry(f"Reward: {reward} gold, {quest.reward_renown} renown.", LogKind.QUEST))
    if reward > quest.reward_gold:
        logs.append(entry(f"(+{reward - quest.reward_gold} gold thanks to persuasion)", LogKind.QUEST))
    logs.append(
        entry(
            f"Relations with {faction_name(quest.faction_id)} improved by {bt.DELIVERY_RELATION_GAIN} (now {relation}).",
            LogKind.QUEST,
        )
    )
    logs.extend(apply_level_ups(player, event_bus))
    return logs


def apply_event_choice(player: Player, choice: TravelEventChoice) -> List[LogEntry]:
    logs = [entry(choice.outcome_text, LogKind.EVENT)]
    if choice.gold_change:
        player.gold = max(0, player.gold + choice.gold_change)
    if choice.renown_change:
        player.renown = max(0, player.renown + choice.renown_change)
    if choice.hp_change:
        player.hp = int(bt.clamp(player.hp + choice.hp_change, 0, HP_MAX))
    if player.hp <= 0:
        player.is_wounded = True
        player.hp = bt.DEFEATED_HP
        logs.append(entry("You collapse and lose consciousness...", LogKind.BATTLE))
    for item_id, delta in choice.inventory_changes.items():
        value = int(player.inventory.get(item_id, 0)) + int(delta)
        if value > 0:
            player.inventory[item_id] = value
        else:
            player.inventory.pop(item_id, None)
    return logs


def party_skill_levels(player: Player, companions: Mapping[str, Companion]) -> dict:
    return {
        "tactics": effective_skill(player, companions, "tactics"),
        "surgery": effective_skill(player, companions, "surgery"),
    }

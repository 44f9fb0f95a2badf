from __future__ import annotations

import logging
from typing import List, MutableMapping, Optional

from warband.domain.models.army import add_units, remove_units, total
from warband.domain.models.character import Companion, Player
from warband.domain.models.faction import clamp_relation
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.quest import BattleOutcome, BattleResult
from warband.domain.services.world_catalog import faction_name
from warband.application.services import balance_tables as bt
from warband.application.services.event_bus import EventBus
from warband.application.services.progression_service import apply_level_ups
from warband.application.services.skill_resolution import companion_skill_total, effective_skill


logger = logging.getLogger(__name__)


def quest_reward_gold(reward_gold: int, persuasion: int) -> int:
    return bt.round_half_up(reward_gold * (1 + persuasion * bt.PERSUASION_REWARD_BONUS))


def adjust_relation(player: Player, faction_id: str, delta: int) -> int:
    value = int(clamp_relation(player.relation_with(faction_id) + delta))
    player.faction_relations[faction_id] = value
    return value


def apply_battle_result(
    player: Player,
    companions: MutableMapping[str, Companion],
    result: BattleResult,
    event_bus: Optional[EventBus] = None,
) -> List[LogEntry]:
    """Apply a validated battle report to the player's party in place.

    Reported losses and wounded are capped at what the party actually fields,
    so no unit count ever goes negative and every soldier removed is accounted
    for as dead or wounded.
    """
    logs: List[LogEntry] = []

    dead = 0
    for unit_id, count in result.losses.items():
        dead += remove_units(player.army, unit_id, count)
    moved = 0
    for unit_id, count in result.wounded.items():
        taken = remove_units(player.army, unit_id, count)
        add_units(player.wounded_army, unit_id, taken)
        moved += taken

    summary = f"[Battle] {result.narrative}"
    outcome = str(result.outcome)
    if outcome == BattleOutcome.VICTORY.value:
        looting = companion_skill_total(player, companions, "looting")
        gold = bt.round_half_up(max(0, result.gold_looted) * (1 + looting / 100))
        player.gold += gold
        player.renown += bt.VICTORY_RENOWN
        summary += (
            f"\nVictory! Dead: {dead}, wounded: {moved}. Enemy losses: {result.enemy_losses}. "
            f"Loot: {gold} gold. Renown +{bt.VICTORY_RENOWN}."
        )
        if gold > result.gold_looted > 0:
            summary += f" (+{gold - result.gold_looted} gold from companions' looting)"
        quest = player.active_quest
        if result.quest_update is not None and result.quest_update.completed and quest is not None and quest.is_bounty:
            reward = quest_reward_gold(quest.reward_gold, effective_skill(player, companions, "persuasion"))
            player.gold += reward
            player.renown += quest.reward_renown
            relation = adjust_relation(player, quest.faction_id, bt.BOUNTY_RELATION_GAIN)
            player.active_quest = None
            if result.quest_update.message:
                summary += f"\n[Quest complete] {result.quest_update.message}"
            logs.append(
                entry(
                    f'Quest "{quest.title}" complete! Reward: {reward} gold, {quest.reward_renown} renown.',
                    LogKind.QUEST,
                )
            )
            logs.append(
                entry(
                    f"Relations with {faction_name(quest.faction_id)} improved by {bt.BOUNTY_RELATION_GAIN} (now {relation}).",
                    LogKind.QUEST,
                )
            )
    elif outcome == BattleOutcome.DEFEAT.value:
        player.renown = max(0, player.renown - bt.DEFEAT_RENOWN_PENALTY)
        summary += (
            f"\nDefeat... Dead: {dead}, wounded: {moved}. Enemy losses: {result.enemy_losses}. "
            f"Renown -{bt.DEFEAT_RENOWN_PENALTY}."
        )
    else:
        summary += f"\nThe battle ended in a draw. Dead: {dead}, wounded: {moved}. Enemy losses: {result.enemy_losses}."
    logs.insert(0, entry(summary, LogKind.BATTLE))

    if result.player_defeated:
        player.is_wounded = True
        player.hp = bt.DEFEATED_HP
        for companion_id in player.companions:
            companion = companions.get(companion_id)
            if companion is not None:
                companion.is_wounded = True
                companion.hp = bt.DEFEATED_HP
        logs.append(entry("You were knocked unconscious...", LogKind.BATTLE))

    survivors = total(player.army) + len(player.companions)
    if result.xp_gained > 0 and survivors > 0:
        per_survivor = result.xp_gained // survivors
        if per_survivor > 0:
            for unit_id, count in player.army.items():
                player.unit_experience[unit_id] = int(player.unit_experience.get(unit_id, 0)) + per_survivor * int(count)
            logs.append(entry(f"Each surviving soldier gained {per_survivor} experience.", LogKind.SYSTEM))
    player.xp += max(0, result.player_xp_gained)

    logs.extend(apply_level_ups(player, event_bus))
    logger.debug("Battle applied: outcome=%s dead=%d wounded=%d", outcome, dead, moved)
    return logs

"""Structural validation of untrusted provider payloads.

Every parser either returns a fully-typed domain object or raises
``MalformedPayloadError``; nothing half-parsed ever reaches the world state.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Mapping, Optional

from warband.domain.models.location import Location
from warband.domain.models.quest import (
    BattleOutcome,
    BattleResult,
    ForcedBattle,
    Quest,
    QuestStatus,
    QuestType,
    QuestUpdate,
    TravelEvent,
    TravelEventChoice,
)
from warband.domain.services.economy_catalog import GOODS
from warband.domain.services.unit_catalog import ITEMS, UNITS
from warband.application.errors import MalformedPayloadError


logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000
_OUTCOMES = {row.value for row in BattleOutcome}
_OUTCOME_ALIASES = {"victory": BattleOutcome.VICTORY.value, "defeat": BattleOutcome.DEFEAT.value}


def require_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError(f"{what} payload must be an object, got {type(payload).__name__}")
    return payload


def number(value: Any, field: str, default: Optional[int] = None) -> int:
    if value is None:
        if default is None:
            raise MalformedPayloadError(f"Missing numeric field '{field}'")
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedPayloadError(f"Field '{field}' must be a number")
    if value != value or value in (float("inf"), float("-inf")):
        raise MalformedPayloadError(f"Field '{field}' must be finite")
    return int(value)


def text(value: Any, field: str, required: bool = True) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise MalformedPayloadError(f"Missing text field '{field}'")
        return ""
    if not isinstance(value, str):
        raise MalformedPayloadError(f"Field '{field}' must be a string")
    return value.strip()[:MAX_TEXT_LENGTH]


def _counts(value: Any, field: str, known: Mapping[str, Any]) -> Dict[str, int]:
    if value is None:
        return {}
    rows = require_mapping(value, field)
    counts: Dict[str, int] = {}
    for key, raw in rows.items():
        amount = number(raw, f"{field}.{key}")
        if amount < 0:
            raise MalformedPayloadError(f"Field '{field}.{key}' must not be negative")
        if key not in known:
            logger.warning("Ignoring unknown id %r in %s", key, field)
            continue
        if amount:
            counts[str(key)] = amount
    return counts


def parse_battle_result(payload: Any) -> BattleResult:
    row = require_mapping(payload, "battle")
    outcome = text(row.get("outcome"), "outcome").lower()
    outcome = _OUTCOME_ALIASES.get(outcome, outcome)
    if outcome not in _OUTCOMES:
        raise MalformedPayloadError(f"Unknown battle outcome '{outcome}'")
    quest_update = None
    raw_update = row.get("questUpdate")
    if raw_update is not None:
        update = require_mapping(raw_update, "questUpdate")
        completed = update.get("completed")
        if not isinstance(completed, bool):
            raise MalformedPayloadError("questUpdate.completed must be a boolean")
        quest_update = QuestUpdate(completed=completed, message=text(update.get("narrative"), "questUpdate.narrative", required=False))
    defeated = row.get("playerDefeated", False)
    if not isinstance(defeated, bool):
        raise MalformedPayloadError("playerDefeated must be a boolean")
    return BattleResult(
        outcome=outcome,
        narrative=text(row.get("narrative"), "narrative"),
        losses=_counts(row.get("playerLosses"), "playerLosses", UNITS),
        wounded=_counts(row.get("playerWounded"), "playerWounded", UNITS),
        gold_looted=max(0, number(row.get("goldLooted"), "goldLooted", 0)),
        enemy_losses=max(0, number(row.get("enemyLosses"), "enemyLosses", 0)),
        xp_gained=max(0, number(row.get("xpGained"), "xpGained", 0)),
        player_xp_gained=max(0, number(row.get("playerXpGained"), "playerXpGained", 0)),
        player_defeated=defeated,
        quest_update=quest_update,
    )


def parse_quest(payload: Any, giver_location: Location, locations: Mapping[str, Location]) -> Quest:
    row = require_mapping(payload, "quest")
    quest_type = text(row.get("type"), "type").lower()
    if quest_type not in {QuestType.BOUNTY.value, QuestType.DELIVERY.value}:
        raise MalformedPayloadError(f"Unknown quest type '{quest_type}'")
    reward_gold = number(row.get("rewardGold"), "rewardGold")
    reward_renown = number(row.get("rewardRenown"), "rewardRenown")
    if reward_gold < 0 or reward_renown < 0:
        raise MalformedPayloadError("Quest rewards must not be negative")

    target_location_id = row.get("targetLocationId") or None
    required_good_id = row.get("targetItemId") or None
    required_quantity = None
    target_enemy_name = None
    if quest_type == QuestType.DELIVERY.value:
        if target_location_id not in locations:
            raise MalformedPayloadError(f"Delivery target '{target_location_id}' does not exist")
        if target_location_id == giver_location.id:
            raise MalformedPayloadError("Delivery quests must target a different town")
        if required_good_id not in GOODS:
            raise MalformedPayloadError(f"Delivery good '{required_good_id}' does not exist")
        required_quantity = number(row.get("targetItemQuantity"), "targetItemQuantity")
        if required_quantity <= 0:
            raise MalformedPayloadError("Delivery quantity must be positive")
    else:
        target_enemy_name = text(row.get("targetEnemyName"), "targetEnemyName")
        if target_location_id is not None and target_location_id not in locations:
            target_location_id = None
        required_good_id = None

    return Quest(
        id=text(row.get("id"), "id", required=False) or f"{quest_type}-{uuid.uuid4().hex[:8]}",
        title=text(row.get("title"), "title"),
        description=text(row.get("description"), "description", required=False),
        type=quest_type,
        giver_location_id=giver_location.id,
        faction_id=giver_location.faction_id,
        reward_gold=reward_gold,
        reward_renown=reward_renown,
        target_location_id=target_location_id,
        required_good_id=required_good_id,
        required_quantity=required_quantity,
        target_enemy_name=target_enemy_name,
        target_enemy_location_hint=text(row.get("targetEnemyLocationHint"), "targetEnemyLocationHint", required=False) or None,
        giver=giver_location.owner_id,
        status=QuestStatus.ACTIVE.value,
    )


def parse_destination(payload: Any, locations: Mapping[str, Location]) -> str:
    if isinstance(payload, str):
        destination = payload.strip()
    else:
        destination = text(require_mapping(payload, "destination").get("destinationId"), "destinationId")
    if destination not in locations:
        raise MalformedPayloadError(f"Destination '{destination}' does not exist")
    return destination


def parse_rumor(payload: Any) -> str:
    rumor = text(payload, "rumor").strip().strip('"').strip()
    if not rumor:
        raise MalformedPayloadError("Rumor is empty")
    return rumor


def _parse_choice(raw: Any, index: int) -> TravelEventChoice:
    row = require_mapping(raw, f"choices[{index}]")
    battle = None
    if row.get("startBattle") is not None:
        fight = require_mapping(row.get("startBattle"), f"choices[{index}].startBattle")
        battle = ForcedBattle(
            enemy_name=text(fight.get("enemyName"), "startBattle.enemyName"),
            enemy_size=max(1, number(fight.get("enemySize"), "startBattle.enemySize")),
        )
    known = {**GOODS, **ITEMS}
    changes: Dict[str, int] = {}
    for key, raw_amount in require_mapping(row.get("itemChanges") or {}, "itemChanges").items():
        amount = number(raw_amount, f"itemChanges.{key}")
        if key in known and amount:
            changes[str(key)] = amount
    return TravelEventChoice(
        text=text(row.get("text"), "text"),
        outcome_text=text(row.get("resultNarrative"), "resultNarrative"),
        gold_change=number(row.get("goldChange"), "goldChange", 0),
        renown_change=number(row.get("renownChange"), "renownChange", 0),
        hp_change=number(row.get("hpChange"), "hpChange", 0),
        inventory_changes=changes,
        start_battle=battle,
    )


def parse_travel_event(payload: Any) -> TravelEvent:
    row = require_mapping(payload, "travel event")
    choices = row.get("choices")
    if not isinstance(choices, list) or not choices:
        raise MalformedPayloadError("Travel events need at least one choice")
    return TravelEvent(
        id=text(row.get("id"), "id", required=False) or f"event-{uuid.uuid4().hex[:8]}",
        title=text(row.get("title"), "title"),
        description=text(row.get("narrative"), "narrative"),
        choices=[_parse_choice(choice, index) for index, choice in enumerate(choices)],
    )

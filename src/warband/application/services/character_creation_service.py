from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from warband.domain.models.character import HP_MAX, EquipmentSlot, Player
from warband.domain.services.unit_catalog import BASE_RECRUIT_UNIT_ID, ITEMS
from warband.domain.services.world_catalog import PLAYABLE_FACTION_IDS
from warband.application.errors import MalformedPayloadError
from warband.application.services import balance_tables as bt
from warband.application.services.provider_validation import number, require_mapping, text


STARTING_BODY_ITEM = "tattered_rags"


@dataclass(frozen=True)
class BackgroundRule:
    id: str
    name: str
    description: str
    gold: Tuple[int, int]
    renown: Tuple[int, int]
    recruits: Tuple[int, int]
    weapon: Optional[str] = None


BACKGROUNDS: Dict[str, BackgroundRule] = {
    row.id: row
    for row in (
        BackgroundRule("nomad", "Steppe Nomad", "Raised in the saddle on the endless steppe.", (1000, 1500), (10, 30), (2, 5)),
        BackgroundRule("merchant", "Merchant", "A trader with a head for numbers and a heavy purse.", (2000, 2500), (10, 30), (2, 5)),
        BackgroundRule("poacher", "Poacher", "A hunter of the lord's deer, with friends who ask no questions.", (1000, 1500), (10, 30), (5, 8)),
        BackgroundRule("noble", "Impoverished Noble", "A name that still opens doors, if not coffers.", (1500, 2000), (50, 100), (2, 5)),
        BackgroundRule("blacksmith", "Blacksmith", "Strong arms and a blade of your own making.", (1000, 1500), (10, 30), (2, 5), weapon="rusty_sword"),
    )
}


def _clamp_int(value: int, bounds: Tuple[int, int]) -> int:
    return int(bt.clamp(int(value), bounds[0], bounds[1]))


def _roll(rng: random.Random, bounds: Tuple[int, int]) -> int:
    return rng.randint(bounds[0], bounds[1])


def background_rule(background_id: str) -> BackgroundRule:
    rule = BACKGROUNDS.get(str(background_id or "").strip().lower())
    if rule is None:
        raise ValueError(f"Unknown background '{background_id}'. Choose one of: {', '.join(BACKGROUNDS)}")
    return rule


def starting_relations() -> Dict[str, int]:
    return {faction_id: 0 for faction_id in PLAYABLE_FACTION_IDS}


def _fresh_player(name: str, rule: BackgroundRule, gold: int, renown: int, recruits: int) -> Player:
    equipment = {EquipmentSlot.BODY.value: STARTING_BODY_ITEM}
    if rule.weapon:
        equipment[EquipmentSlot.WEAPON.value] = rule.weapon
    return Player(
        name=name,
        background=rule.id,
        gold=gold,
        renown=renown,
        level=1,
        xp=0,
        skill_points=1,
        hp=HP_MAX,
        is_wounded=False,
        army={BASE_RECRUIT_UNIT_ID: recruits} if recruits > 0 else {},
        equipment=equipment,
        faction_relations=starting_relations(),
    )


def roll_player(background_id: str, rng: random.Random, name: str = "") -> Player:
    rule = background_rule(background_id)
    return _fresh_player(
        name or f"Wanderer of {rule.name}",
        rule,
        _roll(rng, rule.gold),
        _roll(rng, rule.renown),
        _roll(rng, rule.recruits),
    )


def normalize_generated_player(payload: Any, background_id: str, rng: random.Random) -> Player:
    """Build a starting player from provider output, clamped to the background's rule table."""
    rule = background_rule(background_id)
    row = require_mapping(payload, "character")
    name = text(row.get("name"), "name")
    gold = number(row.get("gold"), "gold", _roll(rng, rule.gold))
    renown = number(row.get("renown"), "renown", _roll(rng, rule.renown))
    army = row.get("army")
    if army is not None and not isinstance(army, dict):
        raise MalformedPayloadError("army must be an object")
    recruits = number((army or {}).get(BASE_RECRUIT_UNIT_ID), "army.recruit", _roll(rng, rule.recruits))
    player = _fresh_player(
        name,
        rule,
        _clamp_int(gold, rule.gold),
        _clamp_int(renown, rule.renown),
        _clamp_int(recruits, rule.recruits),
    )
    equipment = row.get("equipment")
    if isinstance(equipment, dict) and not rule.weapon:
        weapon = equipment.get(EquipmentSlot.WEAPON.value)
        item = ITEMS.get(weapon) if isinstance(weapon, str) else None
        if item is not None and item.slot == EquipmentSlot.WEAPON.value and item.price <= ITEMS["rusty_sword"].price:
            player.equipment[EquipmentSlot.WEAPON.value] = item.id
    return player

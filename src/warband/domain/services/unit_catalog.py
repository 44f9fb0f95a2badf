from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class UnitDefinition:
    id: str
    name: str
    attack: int
    defense: int
    recruit_cost: int = 0
    upgrade_from: Optional[str] = None
    upgrade_cost: int = 0
    xp_to_upgrade: int = 0
    requires_locations: Tuple[str, ...] = ()
    requires_companions: Tuple[str, ...] = ()
    requires_items: Mapping[str, int] = field(default_factory=dict)

    @property
    def strength(self) -> int:
        return self.attack + self.defense


@dataclass(frozen=True)
class ItemDefinition:
    id: str
    name: str
    slot: str
    price: int
    armor: int = 0
    attack: int = 0
    speed: int = 0


BASE_RECRUIT_UNIT_ID = "recruit"
BASE_RECRUIT_COST = 10

SWADIAN_TOWNS = ("pravend", "suno", "uxkhal", "dhirim")
NORD_TOWNS = ("sargoth", "tihr", "wercheg")
RHODOK_TOWNS = ("jelkala", "veluca")


UNIT_CATALOG: Tuple[UnitDefinition, ...] = (
    UnitDefinition("recruit", "Recruit", 3, 3, recruit_cost=BASE_RECRUIT_COST),
    UnitDefinition("militia", "Militia", 5, 5, upgrade_from="recruit", upgrade_cost=20, xp_to_upgrade=100),
    UnitDefinition("footman", "Footman", 8, 8, upgrade_from="militia", upgrade_cost=50, xp_to_upgrade=250),
    UnitDefinition("archer", "Archer", 9, 5, upgrade_from="militia", upgrade_cost=60, xp_to_upgrade=250),
    UnitDefinition(
        "man_at_arms",
        "Man at Arms",
        12,
        11,
        upgrade_from="footman",
        upgrade_cost=120,
        xp_to_upgrade=500,
        requires_items={"saddle_horse": 1},
    ),
    UnitDefinition(
        "swadian_knight",
        "Swadian Knight",
        17,
        16,
        upgrade_from="man_at_arms",
        upgrade_cost=300,
        xp_to_upgrade=1000,
        requires_locations=SWADIAN_TOWNS,
        requires_items={"saddle_horse": 1},
    ),
    UnitDefinition(
        "nord_huscarl",
        "Nord Huscarl",
        15,
        15,
        upgrade_from="footman",
        upgrade_cost=200,
        xp_to_upgrade=800,
        requires_locations=NORD_TOWNS,
    ),
    UnitDefinition(
        "horse_archer",
        "Khergit Horse Archer",
        13,
        9,
        upgrade_from="archer",
        upgrade_cost=180,
        xp_to_upgrade=700,
        requires_companions=("borcha",),
        requires_items={"steppe_horse": 1},
    ),
    UnitDefinition(
        "sharpshooter",
        "Rhodok Sharpshooter",
        15,
        8,
        upgrade_from="archer",
        upgrade_cost=150,
        xp_to_upgrade=700,
        requires_locations=RHODOK_TOWNS,
    ),
)

UNITS: Dict[str, UnitDefinition] = {row.id: row for row in UNIT_CATALOG}


ITEM_CATALOG: Tuple[ItemDefinition, ...] = (
    ItemDefinition("tattered_rags", "Tattered Rags", "body", 5, armor=1),
    ItemDefinition("padded_cloth", "Padded Cloth", "body", 120, armor=3),
    ItemDefinition("mail_hauberk", "Mail Hauberk", "body", 900, armor=8),
    ItemDefinition("nasal_helmet", "Nasal Helmet", "head", 250, armor=3),
    ItemDefinition("leather_boots", "Leather Boots", "feet", 80, armor=1),
    ItemDefinition("rusty_sword", "Rusty Sword", "weapon", 30, attack=1),
    ItemDefinition("war_spear", "War Spear", "weapon", 320, attack=3),
    ItemDefinition("arming_sword", "Arming Sword", "weapon", 400, attack=4),
    ItemDefinition("sumpter_horse", "Sumpter Horse", "horse", 500, speed=1),
    ItemDefinition("saddle_horse", "Saddle Horse", "horse", 800, speed=2),
    ItemDefinition("steppe_horse", "Steppe Horse", "horse", 700, speed=2),
)

ITEMS: Dict[str, ItemDefinition] = {row.id: row for row in ITEM_CATALOG}


def unit_name(unit_id: str) -> str:
    row = UNITS.get(unit_id)
    return row.name if row else unit_id

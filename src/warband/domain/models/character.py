from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from warband.domain.models.army import total
from warband.domain.models.quest import Quest


HP_MAX = 100


class EquipmentSlot(str, Enum):
    HEAD = "head"
    BODY = "body"
    FEET = "feet"
    WEAPON = "weapon"
    HORSE = "horse"


class CompanionStatus(str, Enum):
    UNRECRUITED = "unrecruited"
    RECRUITED = "recruited"


@dataclass
class PlayerEnterprise:
    id: str
    type_id: str
    location_id: str


@dataclass
class Companion:
    id: str
    name: str
    skills: Dict[str, int] = field(default_factory=dict)
    recruitment_cost: int = 0
    location_id: str = ""
    hp: int = HP_MAX
    is_wounded: bool = False
    description: str = ""
    equipment: Dict[str, Optional[str]] = field(default_factory=dict)
    status: str = CompanionStatus.UNRECRUITED.value

    @property
    def is_recruited(self) -> bool:
        return self.status == CompanionStatus.RECRUITED.value


@dataclass
class Player:
    name: str
    background: str
    gold: int = 0
    renown: int = 0
    level: int = 1
    xp: int = 0
    skill_points: int = 0
    hp: int = HP_MAX
    is_wounded: bool = False
    faction_id: Optional[str] = None
    skills: Dict[str, int] = field(default_factory=dict)
    army: Dict[str, int] = field(default_factory=dict)
    wounded_army: Dict[str, int] = field(default_factory=dict)
    unit_experience: Dict[str, int] = field(default_factory=dict)
    companions: List[str] = field(default_factory=list)
    inventory: Dict[str, int] = field(default_factory=dict)
    equipment: Dict[str, Optional[str]] = field(default_factory=dict)
    active_quest: Optional[Quest] = None
    faction_relations: Dict[str, int] = field(default_factory=dict)
    fiefs: List[str] = field(default_factory=list)
    enterprises: List[PlayerEnterprise] = field(default_factory=list)

    @property
    def troop_count(self) -> int:
        return total(self.army)

    @property
    def wounded_count(self) -> int:
        return total(self.wounded_army)

    @property
    def party_size(self) -> int:
        return self.troop_count + self.wounded_count + len(self.companions)

    def skill(self, skill_id: str) -> int:
        return int(self.skills.get(skill_id, 0))

    def relation_with(self, faction_id: str) -> int:
        return int(self.faction_relations.get(faction_id, 0))

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class QuestType(str, Enum):
    DELIVERY = "delivery"
    BOUNTY = "bounty"


class QuestStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Quest:
    id: str
    title: str
    description: str
    type: str
    giver_location_id: str
    faction_id: str
    reward_gold: int
    reward_renown: int
    target_location_id: Optional[str] = None
    required_good_id: Optional[str] = None
    required_quantity: Optional[int] = None
    target_enemy_name: Optional[str] = None
    target_enemy_location_hint: Optional[str] = None
    giver: str = ""
    status: str = QuestStatus.ACTIVE.value

    @property
    def is_delivery(self) -> bool:
        return str(self.type) == QuestType.DELIVERY.value

    @property
    def is_bounty(self) -> bool:
        return str(self.type) == QuestType.BOUNTY.value


class BattleOutcome(str, Enum):
    VICTORY = "player_victory"
    DEFEAT = "player_defeat"
    DRAW = "draw"


@dataclass
class QuestUpdate:
    completed: bool
    message: str = ""


@dataclass
class BattleResult:
    outcome: str
    narrative: str
    losses: Dict[str, int] = field(default_factory=dict)
    wounded: Dict[str, int] = field(default_factory=dict)
    gold_looted: int = 0
    enemy_losses: int = 0
    xp_gained: int = 0
    player_xp_gained: int = 0
    player_defeated: bool = False
    quest_update: Optional[QuestUpdate] = None

    @property
    def is_victory(self) -> bool:
        return str(self.outcome) == BattleOutcome.VICTORY.value


@dataclass
class ForcedBattle:
    enemy_name: str
    enemy_size: int


@dataclass
class TravelEventChoice:
    text: str
    outcome_text: str
    gold_change: int = 0
    renown_change: int = 0
    hp_change: int = 0
    inventory_changes: Dict[str, int] = field(default_factory=dict)
    start_battle: Optional[ForcedBattle] = None


@dataclass
class TravelEvent:
    id: str
    title: str
    description: str
    choices: List[TravelEventChoice] = field(default_factory=list)

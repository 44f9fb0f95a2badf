from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


PLAYER_OWNER_ID = "player"


class LocationStatus(str, Enum):
    NORMAL = "normal"
    LOOTED = "looted"


@dataclass
class MarketGood:
    good_id: str
    # > 1.0 means scarce (expensive), < 1.0 means glut (cheap)
    price_multiplier: float = 1.0


@dataclass
class Location:
    id: str
    name: str
    owner_id: str
    faction_id: str
    connected_to: List[str] = field(default_factory=list)
    recruits_available: int = 0
    x: int = 0
    y: int = 0
    description: str = ""
    market: List[MarketGood] = field(default_factory=list)
    garrison: Dict[str, int] = field(default_factory=dict)
    accumulated_taxes: int = 0
    status: str = LocationStatus.NORMAL.value
    looted_until_day: int = 0
    production: List[str] = field(default_factory=list)

    @property
    def is_looted(self) -> bool:
        return str(self.status) == LocationStatus.LOOTED.value

    @property
    def is_player_owned(self) -> bool:
        return self.owner_id == PLAYER_OWNER_ID

    def produces(self, good_id: str) -> bool:
        return good_id in self.production

    def multiplier_for(self, good_id: str) -> float:
        for row in self.market:
            if row.good_id == good_id:
                return float(row.price_multiplier)
        return 1.0

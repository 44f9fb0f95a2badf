from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from warband.domain.models.army import total


@dataclass
class AILord:
    id: str
    name: str
    faction_id: str
    location_id: str
    army: Dict[str, int] = field(default_factory=dict)
    is_defeated: bool = False
    defeated_until_day: int = 0

    @property
    def troop_count(self) -> int:
        return total(self.army)

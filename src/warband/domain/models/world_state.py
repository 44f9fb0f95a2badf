from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from warband.domain.models.character import Companion, Player
from warband.domain.models.faction import FactionRelations, Wars
from warband.domain.models.location import Location
from warband.domain.models.lord import AILord


@dataclass
class WorldState:
    """Everything the simulation mutates between days."""

    day: int = 1
    current_location_id: str = ""
    player: Optional[Player] = None
    locations: Dict[str, Location] = field(default_factory=dict)
    companions: Dict[str, Companion] = field(default_factory=dict)
    lords: Dict[str, AILord] = field(default_factory=dict)
    relations: FactionRelations = field(default_factory=FactionRelations)
    wars: Wars = field(default_factory=Wars)
    seed: int = 0

    @property
    def current_location(self) -> Optional[Location]:
        return self.locations.get(self.current_location_id)

    def recruited_companions(self) -> List[Companion]:
        if self.player is None:
            return []
        return [self.companions[cid] for cid in self.player.companions if cid in self.companions]

    def snapshot(self) -> "WorldState":
        return copy.deepcopy(self)

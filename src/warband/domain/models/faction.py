from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Set, Tuple


RELATION_MIN = -100
RELATION_MAX = 100


@dataclass(frozen=True)
class Faction:
    id: str
    name: str


def clamp_relation(value: float) -> float:
    return max(float(RELATION_MIN), min(float(RELATION_MAX), float(value)))


class FactionRelations:
    """Symmetric relation table between factions.

    A relation is stored once per unordered pair so both directions can never
    drift apart. Asking for a faction's relation with itself is an error.
    """

    def __init__(self, faction_ids: Iterable[str] = (), values: Mapping[str, Mapping[str, float]] | None = None) -> None:
        self._factions: List[str] = []
        self._values: Dict[Tuple[str, str], float] = {}
        for faction_id in faction_ids:
            self._add_faction(str(faction_id))
        for first, row in (values or {}).items():
            if not isinstance(row, Mapping):
                continue
            for second, value in row.items():
                if str(first) == str(second):
                    continue
                self._add_faction(str(first))
                self._add_faction(str(second))
                self._values[self._key(str(first), str(second))] = clamp_relation(float(value))

    def _add_faction(self, faction_id: str) -> None:
        if faction_id not in self._factions:
            self._factions.append(faction_id)
            for other in self._factions:
                if other != faction_id:
                    self._values.setdefault(self._key(faction_id, other), 0.0)

    @staticmethod
    def _key(first: str, second: str) -> Tuple[str, str]:
        if first == second:
            raise ValueError(f"Relation of faction '{first}' with itself is undefined")
        return (first, second) if first < second else (second, first)

    @property
    def faction_ids(self) -> List[str]:
        return list(self._factions)

    def get(self, first: str, second: str) -> float:
        return float(self._values.get(self._key(first, second), 0.0))

    def set(self, first: str, second: str, value: float) -> float:
        self._add_faction(first)
        self._add_faction(second)
        clamped = clamp_relation(value)
        self._values[self._key(first, second)] = clamped
        return clamped

    def pairs(self) -> List[Tuple[str, str]]:
        return sorted(self._values.keys())

    def copy(self) -> "FactionRelations":
        clone = FactionRelations(self._factions)
        clone._values = dict(self._values)
        return clone

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        table: Dict[str, Dict[str, float]] = {faction_id: {} for faction_id in self._factions}
        for (first, second), value in self._values.items():
            table.setdefault(first, {})[second] = value
            table.setdefault(second, {})[first] = value
        return table


class Wars:
    """Symmetric war table: B is an enemy of A exactly when A is an enemy of B."""

    def __init__(self, values: Mapping[str, Iterable[str]] | None = None) -> None:
        self._enemies: Dict[str, Set[str]] = {}
        for first, enemies in (values or {}).items():
            for second in enemies or ():
                if str(first) != str(second):
                    self.declare(str(first), str(second))

    def at_war(self, first: str | None, second: str | None) -> bool:
        if not first or not second:
            return False
        return second in self._enemies.get(first, set())

    def enemies_of(self, faction_id: str | None) -> List[str]:
        if not faction_id:
            return []
        return sorted(self._enemies.get(faction_id, set()))

    def has_enemies(self, faction_id: str | None) -> bool:
        return bool(self.enemies_of(faction_id))

    def declare(self, first: str, second: str) -> None:
        if first == second:
            raise ValueError("A faction cannot declare war on itself")
        self._enemies.setdefault(first, set()).add(second)
        self._enemies.setdefault(second, set()).add(first)

    def make_peace(self, first: str, second: str) -> None:
        self._enemies.get(first, set()).discard(second)
        self._enemies.get(second, set()).discard(first)

    def copy(self) -> "Wars":
        clone = Wars()
        clone._enemies = {key: set(value) for key, value in self._enemies.items()}
        return clone

    def to_dict(self) -> Dict[str, List[str]]:
        return {key: sorted(value) for key, value in sorted(self._enemies.items()) if value}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Wars):
            return NotImplemented
        return self.to_dict() == other.to_dict()

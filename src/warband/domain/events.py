from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DayAdvanced:
    day: int


@dataclass(frozen=True)
class WarDeclared:
    faction_a: str
    faction_b: str
    day: int


@dataclass(frozen=True)
class PeaceSigned:
    faction_a: str
    faction_b: str
    day: int


@dataclass(frozen=True)
class LocationLooted:
    location_id: str
    day: int


@dataclass(frozen=True)
class LevelGained:
    level: int
    skill_points: int

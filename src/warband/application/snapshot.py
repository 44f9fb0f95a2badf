"""Plain-dict snapshots of the world aggregate for external storage."""

from __future__ import annotations

from dataclasses import asdict, fields, is_dataclass
from typing import Any, Dict, Mapping, Type, TypeVar

from warband.domain.models.character import Companion, CompanionStatus, Player, PlayerEnterprise
from warband.domain.models.faction import FactionRelations, Wars
from warband.domain.models.location import Location, MarketGood
from warband.domain.models.lord import AILord
from warband.domain.models.quest import Quest
from warband.domain.models.world_state import WorldState
from warband.domain.services.world_catalog import (
    PLAYABLE_FACTION_IDS,
    build_companions,
    build_locations,
    build_lords,
    build_relations,
    build_wars,
)
from warband.application.errors import SnapshotError


SNAPSHOT_VERSION = 1
REQUIRED_KEYS = ("player", "currentLocationId")

T = TypeVar("T")


def _build(cls: Type[T], data: Any) -> T:
    if not isinstance(data, Mapping):
        raise SnapshotError(f"Expected an object for {cls.__name__}")
    names = {row.name for row in fields(cls)}
    try:
        return cls(**{key: value for key, value in data.items() if key in names})
    except TypeError as exc:
        raise SnapshotError(f"Cannot rebuild {cls.__name__}: {exc}") from exc


def _player(data: Any) -> Player:
    player = _build(Player, data)
    if player.active_quest is not None:
        player.active_quest = _build(Quest, player.active_quest)
    player.enterprises = [_build(PlayerEnterprise, row) for row in (player.enterprises or [])]
    player.army = dict(player.army or {})
    player.wounded_army = dict(player.wounded_army or {})
    player.inventory = dict(player.inventory or {})
    player.faction_relations = {**{fid: 0 for fid in PLAYABLE_FACTION_IDS}, **dict(player.faction_relations or {})}
    return player


def _location(data: Any) -> Location:
    location = _build(Location, data)
    location.market = [_build(MarketGood, row) for row in (location.market or [])]
    return location


def world_to_snapshot(world: WorldState) -> Dict[str, Any]:
    def dump(value: Any) -> Any:
        return asdict(value) if is_dataclass(value) else value

    return {
        "version": SNAPSHOT_VERSION,
        "player": dump(world.player) if world.player is not None else None,
        "locations": {key: dump(row) for key, row in world.locations.items()},
        "companions": {key: dump(row) for key, row in world.companions.items()},
        "aiLords": {key: dump(row) for key, row in world.lords.items()},
        "currentLocationId": world.current_location_id,
        "day": world.day,
        "wars": world.wars.to_dict(),
        "factionRelations": world.relations.to_dict(),
        "seed": world.seed,
    }


def world_from_snapshot(data: Any) -> WorldState:
    """Rebuild a world, substituting catalog defaults for absent optional sections.

    Raises ``SnapshotError`` when a required section is missing or cannot be decoded;
    nothing is partially hydrated in that case.
    """
    if not isinstance(data, Mapping):
        raise SnapshotError("Snapshot must be an object")
    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise SnapshotError(f"Snapshot is missing required fields: {', '.join(missing)}")

    try:
        return _world(data)
    except SnapshotError:
        raise
    except (AttributeError, TypeError, ValueError) as exc:
        raise SnapshotError(f"Snapshot holds a value of the wrong shape: {exc}") from exc


def _world(data: Mapping[str, Any]) -> WorldState:
    locations = (
        {key: _location(row) for key, row in data["locations"].items()} if data.get("locations") else build_locations()
    )
    current = str(data["currentLocationId"])
    if current not in locations:
        raise SnapshotError(f"Snapshot location '{current}' does not exist")
    raw_wars = data.get("wars")
    if raw_wars is not None and not isinstance(raw_wars, Mapping):
        raise SnapshotError("Snapshot wars must map faction ids to enemy lists")
    wars = Wars(raw_wars) if raw_wars is not None else build_wars()
    relations = (
        FactionRelations(PLAYABLE_FACTION_IDS, data["factionRelations"]) if data.get("factionRelations") else build_relations()
    )
    player = _player(data["player"])
    companions = (
        {key: _build(Companion, row) for key, row in data["companions"].items()}
        if data.get("companions")
        else build_companions()
    )
    for companion_id in player.companions:
        if companion_id in companions:
            companions[companion_id].status = CompanionStatus.RECRUITED.value
    return WorldState(
        day=max(1, int(data.get("day", 1))),
        current_location_id=current,
        player=player,
        locations=locations,
        companions=companions,
        lords={key: _build(AILord, row) for key, row in data["aiLords"].items()} if data.get("aiLords") else build_lords(),
        relations=relations,
        wars=wars,
        seed=int(data.get("seed", 0)),
    )

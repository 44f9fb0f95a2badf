"""Helpers for unit-count mappings (armies, wounded pools, garrisons, inventories)."""

from __future__ import annotations

from typing import Dict, Mapping, MutableMapping


def total(counts: Mapping[str, int]) -> int:
    return sum(max(0, int(value)) for value in counts.values())


def add_units(counts: MutableMapping[str, int], unit_id: str, quantity: int) -> None:
    if quantity <= 0:
        return
    counts[unit_id] = int(counts.get(unit_id, 0)) + int(quantity)


def remove_units(counts: MutableMapping[str, int], unit_id: str, quantity: int) -> int:
    """Remove up to ``quantity`` units and return how many were actually removed.

    Entries that reach zero are dropped so mappings never hold zero or negative counts.
    """
    have = int(counts.get(unit_id, 0))
    taken = max(0, min(have, int(quantity)))
    remaining = have - taken
    if remaining > 0:
        counts[unit_id] = remaining
    else:
        counts.pop(unit_id, None)
    return taken


def pruned(counts: Mapping[str, int]) -> Dict[str, int]:
    return {key: int(value) for key, value in counts.items() if int(value) > 0}

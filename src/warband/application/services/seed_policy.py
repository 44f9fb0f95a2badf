from __future__ import annotations

import hashlib
import json
import random
from typing import Any, Mapping


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _canonical(val) for key, val in sorted(value.items(), key=lambda item: str(item[0]))}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(item) for item in value), key=lambda item: json.dumps(item, sort_keys=True, default=str))
    return value


def derive_seed(namespace: str, context: Mapping[str, Any]) -> int:
    """Stable 32-bit seed for a namespace plus context, independent of dict ordering."""
    payload = {"namespace": namespace, "context": _canonical(context)}
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return int(hashlib.sha256(serialized.encode("utf-8")).hexdigest(), 16) % (2**32)


def seeded_rng(namespace: str, context: Mapping[str, Any]) -> random.Random:
    return random.Random(derive_seed(namespace, context))


def day_rng(world_seed: int, day: int, stream: str = "world.day") -> random.Random:
    return seeded_rng(stream, {"seed": int(world_seed), "day": int(day)})

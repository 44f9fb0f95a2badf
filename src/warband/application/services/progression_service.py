from __future__ import annotations

import logging
from typing import List, Optional

from warband.domain.events import LevelGained
from warband.domain.models.character import Player
from warband.domain.models.log import LogEntry, LogKind, entry
from warband.domain.models.skill import SKILL_BY_SLUG, normalize_skill_slug
from warband.application.dtos import ActionResult
from warband.application.services import balance_tables as bt
from warband.application.services.event_bus import EventBus


logger = logging.getLogger(__name__)


def apply_level_ups(
    player: Player,
    event_bus: Optional[EventBus] = None,
    max_iterations: int = bt.LEVEL_UP_MAX_ITERATIONS,
) -> List[LogEntry]:
    """Consume XP into levels until below the next threshold.

    One large grant may cross several thresholds in a single call. The loop is
    bounded; any XP left above the threshold after the bound is kept for the
    next call.
    """
    logs: List[LogEntry] = []
    iterations = 0
    while player.xp >= bt.level_threshold(player.level):
        if iterations >= max_iterations:
            logger.warning("Level-up loop bound reached for %s at level %d", player.name, player.level)
            break
        player.xp -= bt.level_threshold(player.level)
        player.level += 1
        player.skill_points += 1
        iterations += 1
        logs.append(entry(f"You reached level {player.level}! You gained a skill point.", LogKind.SYSTEM))
        if event_bus is not None:
            event_bus.publish(LevelGained(level=player.level, skill_points=player.skill_points))
    return logs


def spend_skill_point(player: Player, skill_id: str) -> ActionResult:
    slug = normalize_skill_slug(skill_id)
    definition = SKILL_BY_SLUG.get(slug)
    if definition is None or not definition.player_trainable:
        return ActionResult.rejected(f"You cannot train '{skill_id}'.")
    if player.skill_points <= 0:
        return ActionResult.rejected("You have no skill points to spend.")
    current = player.skill(slug)
    if current >= definition.max_level:
        return ActionResult.rejected(f"{definition.label} is already at its maximum level.")
    player.skills[slug] = current + 1
    player.skill_points -= 1
    return ActionResult(messages=[f"{definition.label} increased to {current + 1}."])

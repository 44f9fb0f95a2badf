from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple


@dataclass(frozen=True)
class SkillDefinition:
    slug: str
    label: str
    max_level: int
    description: str
    player_trainable: bool = True


SKILL_CATALOG: Tuple[SkillDefinition, ...] = (
    SkillDefinition("leadership", "Leadership", 10, "Raises the number of troops the party can field."),
    SkillDefinition("tactics", "Tactics", 5, "Improves battle planning and odds in the field."),
    SkillDefinition("trainer", "Trainer", 5, "Troops gain more experience each day."),
    SkillDefinition("surgery", "Surgery", 5, "Wounded soldiers are more likely to survive a battle."),
    SkillDefinition("wound_treatment", "Wound Treatment", 5, "Party members recover hit points faster."),
    SkillDefinition("persuasion", "Persuasion", 5, "Better trade prices and larger quest rewards."),
    SkillDefinition("looting", "Looting", 10, "More gold is taken from defeated enemies.", player_trainable=False),
    SkillDefinition("trade", "Trade", 20, "Every point improves buying and selling prices by one percent.", player_trainable=False),
)

SKILL_BY_SLUG: Dict[str, SkillDefinition] = {row.slug: row for row in SKILL_CATALOG}

# The party uses the best value among the player and healthy companions for these.
PARTY_SKILLS: FrozenSet[str] = frozenset({"tactics", "trainer", "surgery", "wound_treatment", "persuasion"})

# Companion-only skills that stack across all healthy companions.
COMPANION_STACKED_SKILLS: FrozenSet[str] = frozenset({"looting", "trade"})


def normalize_skill_slug(value: str) -> str:
    return str(value or "").strip().lower().replace("-", "_").replace(" ", "_")

from __future__ import annotations

from typing import Iterable, Mapping

from warband.domain.models.character import Companion, Player
from warband.domain.models.skill import COMPANION_STACKED_SKILLS, PARTY_SKILLS


def _healthy(companions: Mapping[str, Companion], player: Player) -> Iterable[Companion]:
    for companion_id in player.companions:
        companion = companions.get(companion_id)
        if companion is not None and not companion.is_wounded:
            yield companion


def effective_skill(player: Player, companions: Mapping[str, Companion], skill_id: str) -> int:
    """Skill level the party can actually use.

    Party skills take the best level among the player and healthy recruited
    companions. Any other skill is the player's own level, zero while wounded.
    """
    own = 0 if player.is_wounded else player.skill(skill_id)
    if skill_id not in PARTY_SKILLS:
        return own
    best = own
    for companion in _healthy(companions, player):
        best = max(best, int(companion.skills.get(skill_id, 0)))
    return best


def companion_skill_total(player: Player, companions: Mapping[str, Companion], skill_id: str) -> int:
    if skill_id not in COMPANION_STACKED_SKILLS:
        return 0
    return sum(int(companion.skills.get(skill_id, 0)) for companion in _healthy(companions, player))

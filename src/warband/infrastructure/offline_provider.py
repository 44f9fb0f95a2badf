import logging
import math
import random
from typing import List, Mapping, Optional

from warband.domain.models.army import total
from warband.domain.models.character import Companion, Player
from warband.domain.models.location import Location
from warband.domain.models.quest import BattleOutcome, Quest, QuestType
from warband.domain.services.economy_catalog import GOODS
from warband.domain.services.unit_catalog import ITEMS, UNITS
from warband.application.contract import ContentProvider
from warband.application.dtos import ProviderReply
from warband.application.services.character_creation_service import background_rule


logger = logging.getLogger(__name__)

FIRST_NAMES = ("Aldric", "Bertrand", "Cedric", "Dagmar", "Edda", "Fenris", "Gisela", "Hakon", "Isolde", "Jorund")
QUARRIES = ("Forest Bandits", "Sea Raiders", "Steppe Bandits", "Mountain Bandits", "Deserters")
RUMORS = (
    "They say the lord of {name} has been hoarding grain against a hard winter.",
    "A merchant swore the roads out of {name} are crawling with deserters.",
    "Someone in the corner of this tavern is looking for a captain worth following.",
    "Word is that velvet fetches a king's ransom wherever the looms have stopped.",
    "The garrison of {name} has not been paid in weeks, and it shows.",
)
ENEMY_UNIT_STRENGTH = 8
COMPANION_STRENGTH = 30
TACTICS_BONUS = 0.1
OUTCOME_SHARE = {BattleOutcome.VICTORY.value: 1.0, BattleOutcome.DRAW.value: 0.5, BattleOutcome.DEFEAT.value: 0.2}


def _kebab(value: str) -> str:
    return "-".join(part for part in value.lower().replace("_", " ").split() if part)


class OfflineContentProvider(ContentProvider):
    """Rule-table stand-in used when no API key is configured.

    Produces payloads with the same shape as the live provider so the same
    validation path runs for both.
    """

    is_live = False

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def verify_key(self) -> bool:
        return False

    def generate_character(self, background_id: str) -> ProviderReply:
        rule = background_rule(background_id)
        name = self.rng.choice(FIRST_NAMES)
        equipment = {"body": "tattered_rags", "weapon": rule.weapon}
        return ProviderReply(
            data={
                "name": name,
                "backstory": f"{name} left home as a {rule.name.lower()}. {rule.description}",
                "gold": self.rng.randint(*rule.gold),
                "renown": self.rng.randint(*rule.renown),
                "army": {"recruit": self.rng.randint(*rule.recruits)},
                "equipment": equipment,
            }
        )

    def _party_strength(self, player: Player, companions: Mapping[str, Companion], tactics: int) -> float:
        strength = sum(UNITS[uid].strength * qty for uid, qty in player.army.items() if uid in UNITS)
        strength += sum(ITEMS[iid].attack + ITEMS[iid].armor for iid in player.equipment.values() if iid in ITEMS)
        strength += COMPANION_STRENGTH * sum(
            1 for cid in player.companions if cid in companions and not companions[cid].is_wounded
        )
        if player.is_wounded:
            strength *= 0.5
        return strength * (1 + tactics * TACTICS_BONUS)

    def _spread(self, army: Mapping[str, int], count: int) -> dict:
        # weakest units take the casualties first
        result: dict = {}
        for unit_id in sorted(army, key=lambda uid: UNITS[uid].strength if uid in UNITS else 0):
            if count <= 0:
                break
            taken = min(int(army[unit_id]), count)
            if taken:
                result[unit_id] = taken
                count -= taken
        return result

    def simulate_battle(
        self,
        player: Player,
        enemy_name: str,
        enemy_size: int,
        at_war_with: List[str],
        companions: Mapping[str, Companion],
        tactics: int,
        surgery: int,
    ) -> ProviderReply:
        ours = self._party_strength(player, companions, tactics)
        theirs = max(1, enemy_size) * ENEMY_UNIT_STRENGTH
        roll = ours * self.rng.uniform(0.75, 1.25) / theirs
        if roll >= 1.1:
            outcome = BattleOutcome.VICTORY.value
        elif roll >= 0.9:
            outcome = BattleOutcome.DRAW.value
        else:
            outcome = BattleOutcome.DEFEAT.value

        troops = total(player.army)
        casualty_rate = {BattleOutcome.VICTORY.value: 0.1, BattleOutcome.DRAW.value: 0.25}.get(outcome, 0.5)
        casualties = min(troops, math.floor(troops * casualty_rate / (1 + tactics * TACTICS_BONUS)))
        wounded_count = min(casualties, round(casualties * (0.5 + surgery * 0.1)))
        hurt = self._spread(player.army, casualties)
        wounded = self._spread(hurt, wounded_count)
        losses = {uid: qty - wounded.get(uid, 0) for uid, qty in hurt.items() if qty - wounded.get(uid, 0) > 0}

        share = OUTCOME_SHARE[outcome]
        victory = outcome == BattleOutcome.VICTORY.value
        quest = player.active_quest
        quest_update = None
        if victory and quest is not None and quest.is_bounty and (quest.target_enemy_name or "") == enemy_name:
            quest_update = {"completed": True, "narrative": f"The {enemy_name} will trouble no one again."}
        narrative = {
            BattleOutcome.VICTORY.value: f"Your line holds and the {enemy_name} break and flee.",
            BattleOutcome.DRAW.value: f"Neither side gives ground and the {enemy_name} withdraw at dusk.",
            BattleOutcome.DEFEAT.value: f"The {enemy_name} overrun your position.",
        }[outcome]
        return ProviderReply(
            data={
                "narrative": narrative,
                "outcome": outcome,
                "playerLosses": losses,
                "playerWounded": wounded,
                "playerDefeated": outcome == BattleOutcome.DEFEAT.value,
                "enemyLosses": math.floor(enemy_size * share),
                "goldLooted": enemy_size * self.rng.randint(10, 20) if victory else 0,
                "xpGained": math.floor(enemy_size * 5 * share),
                "playerXpGained": math.floor(enemy_size * 10 * share),
                "questUpdate": quest_update,
            }
        )

    def generate_quest(self, player: Player, location: Location) -> ProviderReply:
        others = [cid for cid in location.connected_to if cid != location.id]
        if others and self.rng.random() < 0.5:
            target = self.rng.choice(others)
            good_id = self.rng.choice(sorted(GOODS))
            quantity = self.rng.randint(2, 6)
            data = {
                "id": f"delivery-{good_id}-{target}",
                "title": f"{GOODS[good_id].name} for {target.title()}",
                "description": f"Carry {quantity} {GOODS[good_id].name.lower()} to {target.title()} for me.",
                "type": QuestType.DELIVERY.value,
                "targetLocationId": target,
                "targetItemId": good_id,
                "targetItemQuantity": quantity,
                "rewardGold": self.rng.randint(100, 300),
                "rewardRenown": self.rng.randint(5, 10),
            }
        else:
            quarry = self.rng.choice(QUARRIES)
            hint = self.rng.choice(others) if others else location.id
            data = {
                "id": f"bounty-{_kebab(quarry)}-{location.id}",
                "title": f"Hunt the {quarry}",
                "description": f"{quarry} have been seen near {hint.title()}. Deal with them.",
                "type": QuestType.BOUNTY.value,
                "targetLocationId": hint,
                "targetEnemyName": quarry,
                "targetEnemyLocationHint": hint,
                "rewardGold": self.rng.randint(200, 800),
                "rewardRenown": self.rng.randint(10, 25),
            }
        data.update({"giver": location.owner_id, "factionId": location.faction_id, "status": "active"})
        return ProviderReply(data=data)

    def get_destination_for_bounty_quest(self, quest: Quest, locations: Mapping[str, Location]) -> ProviderReply:
        for candidate in (quest.target_location_id, quest.target_enemy_location_hint):
            if candidate and candidate in locations:
                return ProviderReply(data={"destinationId": candidate})
        hint = (quest.target_enemy_location_hint or "").lower()
        for location in locations.values():
            if location.name.lower() in hint:
                return ProviderReply(data={"destinationId": location.id})
        return ProviderReply(data=None)

    def get_rumor(self, location: Location) -> ProviderReply:
        return ProviderReply(data=self.rng.choice(RUMORS).format(name=location.name))

    def generate_travel_event(self, player: Player, origin: Location, destination: Location) -> ProviderReply:
        toll = min(player.gold, 50)
        return ProviderReply(
            data={
                "id": f"toll-{origin.id}-{destination.id}",
                "title": "A Toll on the Road",
                "narrative": f"Armed men block the road to {destination.name} and demand a toll.",
                "choices": [
                    {
                        "text": f"Pay {toll} gold.",
                        "resultNarrative": "They step aside with mocking bows.",
                        "goldChange": -toll,
                    },
                    {
                        "text": "Refuse and fight.",
                        "resultNarrative": "Steel is drawn.",
                        "startBattle": {"enemyName": "Highwaymen", "enemySize": max(1, total(player.army) // 2)},
                    },
                ],
            }
        )

import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.domain.models.character import Player
from warband.domain.models.quest import Quest
from warband.domain.services.world_catalog import build_companions, build_locations
from warband.application.services.character_creation_service import normalize_generated_player
from warband.application.services.provider_validation import (
    parse_battle_result,
    parse_destination,
    parse_quest,
    parse_rumor,
    parse_travel_event,
)
from warband.infrastructure.offline_provider import FIRST_NAMES, OfflineContentProvider


def _bounty(**fields) -> Quest:
    row = {
        "id": "bounty-1",
        "title": "Hunt the Deserters",
        "description": "",
        "type": "bounty",
        "giver_location_id": "pravend",
        "faction_id": "swadia",
        "reward_gold": 300,
        "reward_renown": 10,
        "target_enemy_name": "Deserters",
    }
    row.update(fields)
    return Quest(**row)


class OfflineProviderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.provider = OfflineContentProvider(random.Random(5))
        self.locations = build_locations()

    def test_is_not_live_and_has_no_key(self) -> None:
        self.assertFalse(self.provider.is_live)
        self.assertFalse(self.provider.verify_key())

    def test_character_passes_validation(self) -> None:
        reply = self.provider.generate_character("poacher")
        player = normalize_generated_player(reply.data, "poacher", random.Random(1))

        self.assertIn(player.name, FIRST_NAMES)
        self.assertTrue(5 <= player.army["recruit"] <= 8)
        self.assertTrue(reply.data["backstory"])

    def test_strong_party_wins_and_completes_bounty(self) -> None:
        player = Player(name="Ayla", background="nomad", army={"footman": 20}, active_quest=_bounty())

        reply = self.provider.simulate_battle(player, "Deserters", 1, [], build_companions(), 0, 0)
        result = parse_battle_result(reply.data)

        self.assertTrue(result.is_victory)
        self.assertFalse(result.player_defeated)
        self.assertEqual(2, sum(result.losses.values()) + sum(result.wounded.values()))
        self.assertTrue(result.quest_update.completed)
        self.assertEqual(10, result.player_xp_gained)

    def test_tiny_party_is_overrun(self) -> None:
        player = Player(name="Ayla", background="nomad", army={"recruit": 2})

        result = parse_battle_result(self.provider.simulate_battle(player, "Sea Raiders", 50, [], {}, 0, 0).data)

        self.assertEqual("player_defeat", result.outcome)
        self.assertTrue(result.player_defeated)
        self.assertEqual(0, result.gold_looted)
        self.assertIsNone(result.quest_update)
        self.assertEqual(100, result.player_xp_gained)

    def test_quests_pass_validation(self) -> None:
        giver = self.locations["pravend"]
        player = Player(name="Ayla", background="nomad")
        kinds = set()
        for _ in range(20):
            quest = parse_quest(self.provider.generate_quest(player, giver).data, giver, self.locations)
            kinds.add(quest.type)
            self.assertEqual("swadia", quest.faction_id)
        self.assertEqual({"delivery", "bounty"}, kinds)

    def test_bounty_destination_uses_ids_then_hint_names(self) -> None:
        by_id = self.provider.get_destination_for_bounty_quest(_bounty(target_location_id="suno"), self.locations)
        by_name = self.provider.get_destination_for_bounty_quest(
            _bounty(target_enemy_location_hint="the hills past Praven"), self.locations
        )
        unknown = self.provider.get_destination_for_bounty_quest(_bounty(), self.locations)

        self.assertEqual("suno", parse_destination(by_id.data, self.locations))
        self.assertEqual("pravend", parse_destination(by_name.data, self.locations))
        self.assertIsNone(unknown.data)

    def test_rumor_names_the_town(self) -> None:
        rumors = {parse_rumor(self.provider.get_rumor(self.locations["suno"]).data) for _ in range(20)}
        self.assertTrue(any("Suno" in rumor for rumor in rumors))

    def test_travel_event_offers_toll_or_fight(self) -> None:
        player = Player(name="Ayla", background="nomad", gold=30, army={"recruit": 5})

        event = parse_travel_event(
            self.provider.generate_travel_event(player, self.locations["pravend"], self.locations["suno"]).data
        )

        self.assertEqual("A Toll on the Road", event.title)
        self.assertEqual(-30, event.choices[0].gold_change)
        self.assertEqual("Highwaymen", event.choices[1].start_battle.enemy_name)
        self.assertEqual(2, event.choices[1].start_battle.enemy_size)


if __name__ == "__main__":
    unittest.main()

import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.domain.models.quest import Quest
from warband.application.errors import ProviderRateLimitError
from warband.application.services.delegation_policy import DelegatedDecisionPolicy
from warband.application.services.game_service import GameService
from warband.infrastructure.offline_provider import OfflineContentProvider


class _LiveProvider(OfflineContentProvider):
    is_live = True


class _ExhaustedTracker(OfflineContentProvider):
    def get_destination_for_bounty_quest(self, quest, locations):
        raise ProviderRateLimitError("quota")


class _AlwaysEventRng(random.Random):
    def random(self):
        return 0.0


def _game(provider=None, **kwargs) -> GameService:
    game = GameService(provider or OfflineContentProvider(random.Random(11)), seed=11, **kwargs)
    game.start_new_game_intent("merchant")
    game.toggle_delegation_intent(True)
    return game


def _quest(kind: str, **fields) -> Quest:
    row = {
        "id": f"{kind}-1",
        "title": "Errand",
        "description": "",
        "type": kind,
        "giver_location_id": "suno",
        "faction_id": "swadia",
        "reward_gold": 200,
        "reward_renown": 8,
    }
    row.update(fields)
    return Quest(**row)


def _idle_quest() -> Quest:
    return _quest("delivery", target_location_id="pravend", required_good_id="wine", required_quantity=1)


def _delegate_notes(game: GameService) -> list:
    return [row.message for row in game.log if row.message.startswith("[Delegate]")]


class CycleGuardTests(unittest.TestCase):
    def test_cycle_needs_delegation(self) -> None:
        game = _game()
        game.toggle_delegation_intent(False)
        self.assertEqual(["Delegated command is off."], game.run_delegated_cycle_intent().messages)

    def test_cycle_needs_a_game(self) -> None:
        game = GameService(OfflineContentProvider(random.Random(1)))
        game.is_delegated = True
        self.assertEqual(["No game in progress."], game.run_delegated_cycle_intent().messages)

    def test_busy_game_skips_the_tick(self) -> None:
        game = _game()
        game._busy = True
        result = game.run_delegated_cycle_intent()
        self.assertFalse(result.ok)
        self.assertEqual(1, game.world.day)

    def test_pending_road_event_takes_first_choice(self) -> None:
        game = _game(_LiveProvider(random.Random(11)), rng=_AlwaysEventRng())
        game.travel_intent("suno")

        game.run_delegated_cycle_intent()

        self.assertIsNone(game.pending_event)
        self.assertEqual("suno", game.world.current_location_id)


class QuestBranchTests(unittest.TestCase):
    def test_delivery_buys_goods_then_travels(self) -> None:
        game = _game()
        game.world.player.active_quest = _quest(
            "delivery", target_location_id="suno", required_good_id="wine", required_quantity=3
        )

        game.run_delegated_cycle_intent()
        self.assertEqual(3, game.world.player.inventory["wine"])
        self.assertEqual("pravend", game.world.current_location_id)

        game.run_delegated_cycle_intent()
        self.assertEqual("suno", game.world.current_location_id)
        self.assertIsNone(game.world.player.active_quest)

    def test_bounty_travels_towards_quarry(self) -> None:
        game = _game()
        game.world.player.active_quest = _quest("bounty", target_enemy_name="Deserters", target_location_id="uxkhal")

        game.run_delegated_cycle_intent()

        self.assertEqual("uxkhal", game.world.current_location_id)
        self.assertIn("[Delegate] Tracking Deserters towards Uxkhal.", _delegate_notes(game))

    def test_bounty_at_quarry_seeks_battle(self) -> None:
        game = _game()
        game.world.player.active_quest = _quest("bounty", target_enemy_name="Deserters", target_location_id="pravend")

        result = game.run_delegated_cycle_intent()

        self.assertIn("Battle is joined!", result.messages[0])
        self.assertIn("[Delegate] Hunting Deserters near Praven.", _delegate_notes(game))

    def test_lost_trail_wanders(self) -> None:
        game = _game()
        game.world.player.active_quest = _quest("bounty", target_enemy_name="Deserters")

        game.run_delegated_cycle_intent()

        self.assertIn(game.world.current_location_id, {"suno", "uxkhal", "tihr"})

    def test_rate_limit_stops_delegation(self) -> None:
        game = _game()
        game.provider = _ExhaustedTracker(random.Random(11))
        game.world.player.active_quest = _quest("bounty", target_enemy_name="Deserters")

        result = game.run_delegated_cycle_intent()

        self.assertEqual(["Delegation stopped."], result.messages)
        self.assertFalse(game.is_delegated)
        self.assertIsNotNone(game.alert)

    def test_idle_party_takes_work(self) -> None:
        game = _game()

        result = game.run_delegated_cycle_intent()

        self.assertTrue(result.ok)
        self.assertIsNotNone(game.world.player.active_quest)


class UpkeepBranchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.game = _game()
        player = self.game.world.player
        player.active_quest = _idle_quest()
        player.gold = 1000

    def test_wounded_party_rests(self) -> None:
        self.game.world.player.is_wounded = True
        self.game.world.player.hp = 30

        self.game.run_delegated_cycle_intent()

        self.assertEqual(2, self.game.world.day)
        self.assertIn("[Delegate] The party rests to tend its wounds.", _delegate_notes(self.game))

    def test_hires_companion_in_town(self) -> None:
        self.game.run_delegated_cycle_intent()

        self.assertIn("jeremus", self.game.world.player.companions)
        self.assertEqual(2, self.game.world.day)

    def test_recruits_when_purse_allows(self) -> None:
        self.game.world.player.companions.append("jeremus")
        troops = self.game.world.player.troop_count

        self.game.run_delegated_cycle_intent()

        self.assertIn("[Delegate] Recruiting fresh troops.", _delegate_notes(self.game))
        self.assertEqual(2, self.game.world.day)
        self.assertGreaterEqual(self.game.world.player.troop_count, troops)

    def test_recruit_threshold_uses_base_price(self) -> None:
        player = self.game.world.player
        player.companions.append("jeremus")
        player.faction_relations["swadia"] = -100
        player.gold = 60
        player.wounded_army = {}
        troops = player.troop_count

        self.game.run_delegated_cycle_intent()

        self.assertIn("[Delegate] Recruiting fresh troops.", _delegate_notes(self.game))
        self.assertEqual(troops + 1, self.game.world.player.troop_count)

    def test_trains_one_soldier_per_cycle(self) -> None:
        player = self.game.world.player
        player.companions.append("jeremus")
        player.army = {"recruit": 3, "militia": 2}
        player.unit_experience = {"recruit": 1000, "militia": 1000}
        player.wounded_army = {}

        self.game.run_delegated_cycle_intent()

        army = self.game.world.player.army
        self.assertEqual(3, army["recruit"])
        self.assertEqual(1, army["militia"])
        self.assertEqual(5, sum(army.values()))
        self.assertEqual(2, self.game.world.day)

    def test_rich_party_invests(self) -> None:
        world = self.game.world
        world.player.companions.append("jeremus")
        world.player.gold = 20000
        world.locations["pravend"].recruits_available = 0

        self.game.run_delegated_cycle_intent()

        self.assertEqual(["dyeworks"], [row.type_id for row in self.game.world.player.enterprises])
        self.assertEqual(2, self.game.world.day)

    def test_nothing_to_do_wanders(self) -> None:
        world = self.game.world
        world.player.companions.append("jeremus")
        world.locations["pravend"].recruits_available = 0

        policy = DelegatedDecisionPolicy(self.game, rng=random.Random(2))
        policy.run_cycle()

        self.assertIn(self.game.world.current_location_id, {"suno", "uxkhal", "tihr"})
        self.assertEqual(2, self.game.world.day)


if __name__ == "__main__":
    unittest.main()

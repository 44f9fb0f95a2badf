import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.domain.models.character import Player
from warband.domain.models.quest import BattleOutcome, BattleResult, Quest, QuestType, QuestUpdate
from warband.domain.services.world_catalog import build_companions
from warband.application.services.battle_service import apply_battle_result, quest_reward_gold


def _result(**fields) -> BattleResult:
    defaults = {"outcome": BattleOutcome.VICTORY.value, "narrative": "Steel rang across the field."}
    defaults.update(fields)
    return BattleResult(**defaults)


def _bounty() -> Quest:
    return Quest(
        id="bounty-sea-raiders",
        title="Hunt the Sea Raiders",
        description="",
        type=QuestType.BOUNTY.value,
        giver_location_id="tihr",
        faction_id="nords",
        reward_gold=200,
        reward_renown=15,
        target_enemy_name="Sea Raiders",
    )


class ApplyBattleResultTests(unittest.TestCase):
    def setUp(self) -> None:
        self.companions = build_companions()
        self.player = Player(name="Ayla", background="noble", gold=100, renown=20, army={"recruit": 10})

    def test_victory_moves_losses_and_wounded_and_pays_loot(self) -> None:
        self.player.companions = ["rolf"]
        result = _result(losses={"recruit": 2}, wounded={"recruit": 3}, gold_looted=100, enemy_losses=8)

        logs = apply_battle_result(self.player, self.companions, result)

        self.assertEqual({"recruit": 5}, self.player.army)
        self.assertEqual({"recruit": 3}, self.player.wounded_army)
        # Rolf's looting 5 adds five percent.
        self.assertEqual(100 + 105, self.player.gold)
        self.assertEqual(30, self.player.renown)
        self.assertEqual("battle", logs[0].kind)
        self.assertIn("Loot: 105 gold", logs[0].message)

    def test_reported_losses_are_capped_at_the_fielded_army(self) -> None:
        result = _result(outcome=BattleOutcome.DEFEAT.value, losses={"recruit": 8}, wounded={"recruit": 8})

        apply_battle_result(self.player, self.companions, result)

        self.assertEqual({}, self.player.army)
        self.assertEqual({"recruit": 2}, self.player.wounded_army)

    def test_defeat_costs_renown_without_going_negative(self) -> None:
        self.player.renown = 3

        apply_battle_result(self.player, self.companions, _result(outcome=BattleOutcome.DEFEAT.value))

        self.assertEqual(0, self.player.renown)
        self.assertEqual(100, self.player.gold)

    def test_knocked_out_player_and_companions_are_wounded(self) -> None:
        self.player.companions = ["jeremus"]
        result = _result(outcome=BattleOutcome.DEFEAT.value, player_defeated=True)

        apply_battle_result(self.player, self.companions, result)

        self.assertTrue(self.player.is_wounded)
        self.assertEqual(1, self.player.hp)
        self.assertTrue(self.companions["jeremus"].is_wounded)
        self.assertEqual(1, self.companions["jeremus"].hp)

    def test_draw_changes_neither_gold_nor_renown(self) -> None:
        apply_battle_result(self.player, self.companions, _result(outcome=BattleOutcome.DRAW.value, gold_looted=50))

        self.assertEqual(100, self.player.gold)
        self.assertEqual(20, self.player.renown)

    def test_experience_is_shared_among_survivors(self) -> None:
        self.player.companions = ["firentis"]
        result = _result(losses={"recruit": 5}, xp_gained=60, player_xp_gained=40)

        apply_battle_result(self.player, self.companions, result)

        # Five soldiers and one companion survive: 60 // 6 = 10 each.
        self.assertEqual({"recruit": 50}, self.player.unit_experience)
        self.assertEqual(40, self.player.xp)

    def test_player_experience_triggers_level_up(self) -> None:
        apply_battle_result(self.player, self.companions, _result(player_xp_gained=520))

        self.assertEqual(2, self.player.level)
        self.assertEqual(20, self.player.xp)
        self.assertEqual(1, self.player.skill_points)

    def test_bounty_completes_on_reported_victory(self) -> None:
        self.player.active_quest = _bounty()
        self.player.skills = {"persuasion": 5}
        result = _result(quest_update=QuestUpdate(completed=True, message="The raiders are scattered."))

        logs = apply_battle_result(self.player, self.companions, result)

        self.assertIsNone(self.player.active_quest)
        self.assertEqual(100 + 240, self.player.gold)
        self.assertEqual(20 + 10 + 15, self.player.renown)
        self.assertEqual(10, self.player.relation_with("nords"))
        self.assertTrue(any(row.kind == "quest" for row in logs))

    def test_quest_update_is_ignored_on_defeat(self) -> None:
        self.player.active_quest = _bounty()
        result = _result(outcome=BattleOutcome.DEFEAT.value, quest_update=QuestUpdate(completed=True))

        apply_battle_result(self.player, self.companions, result)

        self.assertIsNotNone(self.player.active_quest)

    def test_persuasion_bonus_rounds_half_up(self) -> None:
        self.assertEqual(200, quest_reward_gold(200, 0))
        self.assertEqual(216, quest_reward_gold(200, 2))
        self.assertEqual(113, quest_reward_gold(109, 1))


if __name__ == "__main__":
    unittest.main()

import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.domain.models.faction import Wars
from warband.domain.models.location import Location, LocationStatus
from warband.domain.models.lord import AILord
from warband.application.services.lord_controller import LordController


def _locations(**recruits) -> dict:
    rows = [
        Location(id="home", name="Home", owner_id="Lord A", faction_id="a", recruits_available=recruits.get("home", 0)),
        Location(id="home2", name="Second Home", owner_id="Lord B", faction_id="a", recruits_available=recruits.get("home2", 0)),
        Location(id="enemy", name="Enemy Keep", owner_id="Lord C", faction_id="b", recruits_available=recruits.get("enemy", 20)),
    ]
    return {row.id: row for row in rows}


def _lord(lord_id: str = "lord_a", location_id: str = "home", troops: int = 20, faction_id: str = "a", **fields) -> AILord:
    return AILord(id=lord_id, name=lord_id.replace("_", " ").title(), faction_id=faction_id, location_id=location_id, army={"recruit": troops}, **fields)


def _controller(capital: str | None = "home2") -> LordController:
    return LordController(capital_lookup=lambda _name: capital, respawn_army=lambda _lord_id: {"recruit": 15})


class LordRaidTests(unittest.TestCase):
    def test_strong_lord_sacks_enemy_town(self) -> None:
        lords = {"lord_a": _lord(location_id="enemy", troops=40)}
        wars = Wars({"a": ["b"]})

        new_lords, new_locations, logs = _controller().run_day(lords, _locations(), wars, 4, random.Random(1))

        town = new_locations["enemy"]
        self.assertTrue(town.is_looted)
        self.assertEqual(9, town.looted_until_day)
        self.assertEqual(0, town.recruits_available)
        self.assertEqual({"recruit": 38}, new_lords["lord_a"].army)
        self.assertIn("has sacked Enemy Keep, losing 2 men", logs[0].message)
        self.assertEqual("rumor", logs[0].kind)

    def test_small_army_does_not_raid(self) -> None:
        lords = {"lord_a": _lord(location_id="enemy", troops=30)}

        _, new_locations, _ = _controller().run_day(lords, _locations(), Wars({"a": ["b"]}), 4, random.Random(1))

        self.assertFalse(new_locations["enemy"].is_looted)

    def test_looted_town_is_not_sacked_twice(self) -> None:
        locations = _locations()
        locations["enemy"].status = LocationStatus.LOOTED.value
        lords = {"lord_a": _lord(location_id="enemy", troops=40)}

        new_lords, _, logs = _controller().run_day(lords, locations, Wars({"a": ["b"]}), 4, random.Random(1))

        self.assertEqual({"recruit": 40}, new_lords["lord_a"].army)
        self.assertEqual([], logs)

    def test_inputs_are_not_mutated(self) -> None:
        locations = _locations()
        lords = {"lord_a": _lord(location_id="enemy", troops=40)}

        _controller().run_day(lords, locations, Wars({"a": ["b"]}), 4, random.Random(1))

        self.assertEqual({"recruit": 40}, lords["lord_a"].army)
        self.assertFalse(locations["enemy"].is_looted)


class LordRecruitTests(unittest.TestCase):
    def test_lord_recruits_at_most_a_batch(self) -> None:
        lords = {"lord_a": _lord(troops=20)}

        new_lords, new_locations, logs = _controller().run_day(lords, _locations(home=12), Wars(), 4, random.Random(1))

        self.assertEqual(30, new_lords["lord_a"].army["recruit"])
        self.assertEqual(2, new_locations["home"].recruits_available)
        self.assertIn("gathered 10 recruits", logs[0].message)

    def test_lord_takes_whole_small_pool(self) -> None:
        lords = {"lord_a": _lord(troops=20)}

        new_lords, new_locations, _ = _controller().run_day(lords, _locations(home=8), Wars(), 4, random.Random(1))

        self.assertEqual(28, new_lords["lord_a"].army["recruit"])
        self.assertEqual(0, new_locations["home"].recruits_available)

    def test_thin_pool_is_left_alone(self) -> None:
        lords = {"lord_a": _lord(troops=20)}

        new_lords, new_locations, _ = _controller().run_day(lords, _locations(home=5), Wars(), 4, random.Random(1))

        self.assertEqual(20, new_lords["lord_a"].army["recruit"])
        self.assertEqual(5, new_locations["home"].recruits_available)

    def test_later_lords_see_earlier_recruiting(self) -> None:
        lords = {"lord_a": _lord("lord_a", troops=20), "lord_b": _lord("lord_b", troops=20)}

        new_lords, new_locations, _ = _controller().run_day(lords, _locations(home=12), Wars(), 4, random.Random(1))

        self.assertEqual(30, new_lords["lord_a"].army["recruit"])
        self.assertEqual(20, new_lords["lord_b"].army["recruit"])
        self.assertEqual(2, new_locations["home"].recruits_available)


class LordMovementTests(unittest.TestCase):
    def test_large_army_marches_on_unlooted_enemy_town(self) -> None:
        locations = _locations()
        locations["enemy2"] = Location(
            id="enemy2", name="Burnt Keep", owner_id="Lord D", faction_id="b", status=LocationStatus.LOOTED.value
        )
        lords = {"lord_a": _lord(troops=60)}

        new_lords, _, _ = _controller().run_day(lords, locations, Wars({"a": ["b"]}), 4, random.Random(3))

        self.assertEqual("enemy", new_lords["lord_a"].location_id)

    def test_strong_lord_patrols_when_every_enemy_town_is_looted(self) -> None:
        locations = _locations()
        locations["enemy"].status = LocationStatus.LOOTED.value
        lords = {"lord_a": _lord(troops=60)}

        new_lords, _, _ = _controller().run_day(lords, locations, Wars({"a": ["b"]}), 4, random.Random(3))

        self.assertEqual("home2", new_lords["lord_a"].location_id)

    def test_fresh_recruits_do_not_count_toward_marching_strength(self) -> None:
        lords = {"lord_a": _lord(troops=45)}

        new_lords, _, _ = _controller().run_day(lords, _locations(home=20), Wars({"a": ["b"]}), 4, random.Random(3))

        self.assertEqual({"recruit": 55}, new_lords["lord_a"].army)
        self.assertEqual("home2", new_lords["lord_a"].location_id)

    def test_peaceful_lord_patrols_own_lands(self) -> None:
        lords = {"lord_a": _lord(troops=60)}

        new_lords, _, _ = _controller().run_day(lords, _locations(), Wars(), 4, random.Random(3))

        self.assertEqual("home2", new_lords["lord_a"].location_id)

    def test_lost_lord_is_moved_to_a_faction_fief(self) -> None:
        lords = {"lord_a": _lord(location_id="nowhere")}

        new_lords, _, _ = _controller().run_day(lords, _locations(), Wars(), 4, random.Random(1))

        self.assertEqual("home", new_lords["lord_a"].location_id)
        self.assertFalse(new_lords["lord_a"].is_defeated)

    def test_lost_lord_without_fiefs_is_defeated(self) -> None:
        lords = {"lord_c": _lord("lord_c", location_id="nowhere", faction_id="c")}

        new_lords, _, logs = _controller().run_day(lords, _locations(), Wars(), 4, random.Random(1))

        lord = new_lords["lord_c"]
        self.assertTrue(lord.is_defeated)
        self.assertEqual(9, lord.defeated_until_day)
        self.assertEqual({}, lord.army)
        self.assertEqual(1, len(logs))


class LordRespawnTests(unittest.TestCase):
    def test_defeated_lord_waits_until_due(self) -> None:
        lords = {"lord_a": _lord(troops=0, is_defeated=True, defeated_until_day=5)}

        new_lords, _, logs = _controller().run_day(lords, _locations(), Wars(), 4, random.Random(1))

        self.assertTrue(new_lords["lord_a"].is_defeated)
        self.assertEqual([], logs)

    def test_lord_respawns_at_capital(self) -> None:
        lords = {"lord_a": _lord(location_id="enemy", troops=0, is_defeated=True, defeated_until_day=4)}

        new_lords, _, logs = _controller("home2").run_day(lords, _locations(), Wars(), 4, random.Random(1))

        lord = new_lords["lord_a"]
        self.assertFalse(lord.is_defeated)
        self.assertEqual("home2", lord.location_id)
        self.assertEqual({"recruit": 15}, lord.army)
        self.assertIn("raised a new army at Second Home", logs[0].message)

    def test_lost_capital_sends_lord_to_another_fief(self) -> None:
        lords = {"lord_a": _lord(location_id="enemy", troops=0, is_defeated=True, defeated_until_day=4)}

        new_lords, _, _ = _controller("enemy").run_day(lords, _locations(), Wars(), 4, random.Random(1))

        self.assertIn(new_lords["lord_a"].location_id, {"home", "home2"})

    def test_landless_faction_lord_vanishes_with_one_log(self) -> None:
        lords = {"lord_c": _lord("lord_c", troops=0, faction_id="c", is_defeated=True, defeated_until_day=4)}
        controller = _controller()

        first_lords, _, first_logs = controller.run_day(lords, _locations(), Wars(), 4, random.Random(1))
        _, _, second_logs = controller.run_day(first_lords, _locations(), Wars(), 5, random.Random(1))

        self.assertTrue(first_lords["lord_c"].is_defeated)
        self.assertEqual(4 + 9999, first_lords["lord_c"].defeated_until_day)
        self.assertEqual(1, len(first_logs))
        self.assertEqual([], second_logs)


if __name__ == "__main__":
    unittest.main()

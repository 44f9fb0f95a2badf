import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.domain.models.faction import Wars
from warband.domain.models.location import LocationStatus
from warband.domain.models.lord import AILord
from warband.domain.services.economy_catalog import GOODS
from warband.domain.services.world_catalog import build_locations, build_wars
from warband.application.services.market_engine import buy_price, sell_price, target_multiplier, update_market


def _set_multiplier(location, good_id: str, value: float) -> None:
    for row in location.market:
        if row.good_id == good_id:
            row.price_multiplier = value


class TargetMultiplierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.locations = build_locations()
        self.wars = build_wars()

    def test_local_production_and_war_luxury_lower_the_target(self) -> None:
        # Praven produces velvet and Swadia is at war with the Nords.
        value = target_multiplier(self.locations["pravend"], "velvet", self.locations, self.wars, 0)
        self.assertAlmostEqual(0.4, value)

    def test_war_raises_strategic_goods(self) -> None:
        value = target_multiplier(self.locations["pravend"], "tools", self.locations, self.wars, 0)
        self.assertAlmostEqual(1.5, value)

    def test_peace_leaves_unproduced_goods_at_base(self) -> None:
        value = target_multiplier(self.locations["pravend"], "tools", self.locations, Wars(), 0)
        self.assertAlmostEqual(1.0, value)

    def test_present_lords_raise_provisions(self) -> None:
        value = target_multiplier(self.locations["pravend"], "ale", self.locations, self.wars, 2)
        self.assertAlmostEqual(1.3, value)

    def test_looted_producing_neighbor_raises_target(self) -> None:
        self.locations["uxkhal"].status = LocationStatus.LOOTED.value
        value = target_multiplier(self.locations["pravend"], "iron", self.locations, Wars(), 0)
        self.assertAlmostEqual(1.6, value)

    def test_target_is_clamped(self) -> None:
        value = target_multiplier(self.locations["pravend"], "salt", self.locations, self.wars, 20)
        self.assertEqual(3.0, value)


class UpdateMarketTests(unittest.TestCase):
    def test_prices_move_towards_target_with_smoothing(self) -> None:
        locations = build_locations()

        updated, _ = update_market(locations, build_wars(), {}, random.Random(1))

        self.assertAlmostEqual(1.15, updated["pravend"].multiplier_for("tools"))
        self.assertAlmostEqual(0.82, updated["pravend"].multiplier_for("velvet"))

    def test_inputs_are_not_mutated(self) -> None:
        locations = build_locations()

        updated, _ = update_market(locations, build_wars(), {}, random.Random(1))

        self.assertEqual(1.0, locations["pravend"].multiplier_for("tools"))
        self.assertIsNot(locations["pravend"], updated["pravend"])

    def test_market_keeps_catalog_order_by_name(self) -> None:
        updated, _ = update_market(build_locations(), build_wars(), {}, random.Random(1))

        names = [GOODS[row.good_id].name for row in updated["suno"].market]
        self.assertEqual(sorted(names), names)
        self.assertEqual(len(GOODS), len(names))

    def test_looted_towns_are_pinned_to_crisis_prices(self) -> None:
        locations = build_locations()
        locations["tihr"].status = LocationStatus.LOOTED.value

        updated, _ = update_market(locations, build_wars(), {}, random.Random(1))

        self.assertTrue(all(row.price_multiplier == 2.5 for row in updated["tihr"].market))

    def test_defeated_lords_do_not_count_as_present(self) -> None:
        locations = build_locations()
        lords = {
            "a": AILord(id="a", name="A", faction_id="swadia", location_id="suno", is_defeated=True),
        }

        updated, _ = update_market(locations, Wars(), lords, random.Random(1))

        self.assertAlmostEqual(1.0, updated["suno"].multiplier_for("ale"))

    def test_large_swing_produces_single_market_log(self) -> None:
        locations = build_locations()
        locations["uxkhal"].status = LocationStatus.LOOTED.value
        _set_multiplier(locations["pravend"], "tools", 0.5)

        _, logs = update_market(locations, build_wars(), {}, random.Random(1))

        self.assertEqual(1, len(logs))
        self.assertEqual("market", logs[0].kind)
        self.assertIn("soaring", logs[0].message)

    def test_quiet_day_has_no_log(self) -> None:
        _, logs = update_market(build_locations(), Wars(), {}, random.Random(1))
        self.assertEqual([], logs)


class PriceTests(unittest.TestCase):
    def test_buy_and_sell_prices_round_half_up(self) -> None:
        location = build_locations()["pravend"]
        _set_multiplier(location, "tools", 1.15)

        self.assertEqual(207, buy_price(location, GOODS["tools"]))
        self.assertEqual(186, sell_price(location, GOODS["tools"]))


if __name__ == "__main__":
    unittest.main()

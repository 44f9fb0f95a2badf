import inspect
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.application import dtos
from warband.application.contract import (
    COMMAND_INTENTS,
    CONTRACT_DTO_TYPES,
    CONTRACT_VERSION,
    QUERY_INTENTS,
    ContentProvider,
)
from warband.application.services.game_service import GameService
from warband.infrastructure.gemini_provider import GeminiContentProvider
from warband.infrastructure.offline_provider import OfflineContentProvider


class ApplicationContractTests(unittest.TestCase):
    def test_contract_version_uses_semver(self) -> None:
        self.assertRegex(CONTRACT_VERSION, r"^\d+\.\d+\.\d+$")

    def test_game_service_implements_declared_command_and_query_intents(self) -> None:
        for name in COMMAND_INTENTS + QUERY_INTENTS:
            self.assertTrue(hasattr(GameService, name), f"Missing contract intent: {name}")

    def test_declared_dto_types_exist(self) -> None:
        for dto_name in CONTRACT_DTO_TYPES:
            self.assertTrue(hasattr(dtos, dto_name), f"Missing contract DTO: {dto_name}")

    def test_both_providers_implement_every_provider_operation(self) -> None:
        abstract = set(ContentProvider.__abstractmethods__)
        for provider in (GeminiContentProvider, OfflineContentProvider):
            self.assertFalse(inspect.isabstract(provider), provider.__name__)
            for name in abstract:
                self.assertIn(name, provider.__dict__, f"{provider.__name__} is missing {name}")


if __name__ == "__main__":
    unittest.main()

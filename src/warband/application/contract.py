from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from warband.domain.models.character import Companion, Player
from warband.domain.models.location import Location
from warband.domain.models.quest import Quest
from warband.application.dtos import ProviderReply


CONTRACT_VERSION = "1.0.0"

COMMAND_INTENTS = (
    "start_new_game_intent",
    "advance_day_intent",
    "rest_intent",
    "travel_intent",
    "resolve_travel_event_intent",
    "seek_battle_intent",
    "seek_quest_intent",
    "accept_quest_intent",
    "decline_quest_intent",
    "gather_rumor_intent",
    "recruit_troop_intent",
    "recruit_companion_intent",
    "upgrade_units_intent",
    "buy_good_intent",
    "sell_good_intent",
    "buy_item_intent",
    "build_enterprise_intent",
    "equip_item_intent",
    "unequip_item_intent",
    "spend_skill_point_intent",
    "join_faction_intent",
    "request_fief_intent",
    "collect_taxes_intent",
    "manage_garrison_intent",
    "raid_location_intent",
    "heal_party_intent",
    "toggle_delegation_intent",
    "run_delegated_cycle_intent",
)

QUERY_INTENTS = (
    "get_party_status_intent",
    "get_market_intent",
    "get_travel_options_intent",
    "to_snapshot",
)

CONTRACT_DTO_TYPES = (
    "ActionResult",
    "PartyStatusView",
    "MarketRowView",
    "TravelOptionView",
    "ProviderReply",
    "TokenUsage",
)


class ContentProvider(ABC):
    """Source of generated content. Every reply is untrusted and validated by the caller."""

    is_live: bool = False

    @abstractmethod
    def verify_key(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def generate_character(self, background_id: str) -> ProviderReply:
        raise NotImplementedError

    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
    def generate_quest(self, player: Player, location: Location) -> ProviderReply:
        raise NotImplementedError

    @abstractmethod
    def get_destination_for_bounty_quest(self, quest: Quest, locations: Mapping[str, Location]) -> ProviderReply:
        raise NotImplementedError

    @abstractmethod
    def get_rumor(self, location: Location) -> ProviderReply:
        raise NotImplementedError

    @abstractmethod
    def generate_travel_event(self, player: Player, origin: Location, destination: Location) -> ProviderReply:
        raise NotImplementedError


class SnapshotRepository(ABC):
    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

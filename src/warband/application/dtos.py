from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ActionResult:
    messages: List[str] = field(default_factory=list)
    ok: bool = True

    @classmethod
    def rejected(cls, message: str) -> "ActionResult":
        return cls(messages=[message], ok=False)


@dataclass
class ProviderReply:
    data: Any
    tokens: int = 0


@dataclass
class TokenUsage:
    total: int = 0
    session: int = 0
    last: int = 0

    def record(self, tokens: int) -> None:
        tokens = max(0, int(tokens or 0))
        if tokens <= 0:
            return
        self.total += tokens
        self.session += tokens
        self.last = tokens


@dataclass
class PartyStatusView:
    name: str
    day: int
    location_name: str
    faction_name: str
    gold: int
    renown: int
    level: int
    xp: int
    hp: int
    is_wounded: bool
    troops: int
    wounded_troops: int
    troop_cap: int
    companions: List[str] = field(default_factory=list)
    active_quest: Optional[str] = None
    is_delegated: bool = False
    tokens_used: int = 0
    alert: Optional[str] = None


@dataclass
class MarketRowView:
    good_id: str
    name: str
    buy_price: int
    sell_price: int
    owned: int


@dataclass
class TravelOptionView:
    location_id: str
    name: str
    faction_name: str
    hostile: bool
    looted: bool
    extra: Dict[str, Any] = field(default_factory=dict)

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class GoodDefinition:
    id: str
    name: str
    base_price: int


@dataclass(frozen=True)
class EnterpriseType:
    id: str
    name: str
    cost: int
    base_weekly_profit: int
    output_good_id: str


GOODS_CATALOG: Tuple[GoodDefinition, ...] = (
    GoodDefinition("grain", "Grain", 30),
    GoodDefinition("ale", "Ale", 60),
    GoodDefinition("wine", "Wine", 110),
    GoodDefinition("salt", "Salt", 90),
    GoodDefinition("tools", "Tools", 180),
    GoodDefinition("velvet", "Velvet", 400),
    GoodDefinition("iron", "Iron", 120),
    GoodDefinition("wool", "Wool", 70),
    GoodDefinition("furs", "Furs", 200),
    GoodDefinition("dried_meat", "Dried Meat", 50),
    GoodDefinition("spice", "Spice", 300),
    GoodDefinition("linen", "Linen", 140),
    GoodDefinition("oil", "Oil", 250),
    GoodDefinition("pottery", "Pottery", 65),
)

GOODS: Dict[str, GoodDefinition] = {row.id: row for row in GOODS_CATALOG}


ENTERPRISE_CATALOG: Tuple[EnterpriseType, ...] = (
    EnterpriseType("brewery", "Brewery", 4000, 250, "ale"),
    EnterpriseType("linen_weavery", "Linen Weavery", 5000, 320, "linen"),
    EnterpriseType("winery", "Winery", 6000, 400, "wine"),
    EnterpriseType("oil_press", "Oil Press", 7000, 480, "oil"),
    EnterpriseType("toolsmith", "Toolsmith", 8000, 550, "tools"),
    EnterpriseType("dyeworks", "Dyeworks", 10000, 700, "velvet"),
)

ENTERPRISE_TYPES: Dict[str, EnterpriseType] = {row.id: row for row in ENTERPRISE_CATALOG}


def good_name(good_id: str) -> str:
    row = GOODS.get(good_id)
    return row.name if row else good_id

"""Static world definition: factions, towns, companions and the lords who hold them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from warband.domain.models.character import Companion
from warband.domain.models.faction import Faction, FactionRelations, Wars
from warband.domain.models.location import Location, MarketGood
from warband.domain.models.lord import AILord
from warband.domain.services.economy_catalog import GOODS_CATALOG


NEUTRAL_FACTION_ID = "neutral"
DEFAULT_START_LOCATION_ID = "pravend"


FACTION_CATALOG: Tuple[Faction, ...] = (
    Faction("swadia", "Kingdom of Swadia"),
    Faction("vaegirs", "Kingdom of Vaegirs"),
    Faction("khergits", "Khergit Khanate"),
    Faction("nords", "Kingdom of Nords"),
    Faction("rhodoks", "Kingdom of Rhodoks"),
    Faction("sarranid", "Sarranid Sultanate"),
    Faction(NEUTRAL_FACTION_ID, "Independent"),
)

FACTIONS: Dict[str, Faction] = {row.id: row for row in FACTION_CATALOG}

PLAYABLE_FACTION_IDS: Tuple[str, ...] = tuple(row.id for row in FACTION_CATALOG if row.id != NEUTRAL_FACTION_ID)

INITIAL_RELATIONS: Tuple[Tuple[str, str, int], ...] = (
    ("swadia", "nords", -20),
    ("vaegirs", "khergits", -15),
)

INITIAL_WARS: Tuple[Tuple[str, str], ...] = (("swadia", "nords"),)


@dataclass(frozen=True)
class LocationTemplate:
    id: str
    name: str
    owner: str
    faction_id: str
    recruits: int
    x: int
    y: int
    production: Tuple[str, ...]
    description: str


@dataclass(frozen=True)
class CompanionTemplate:
    id: str
    name: str
    skills: Mapping[str, int]
    recruitment_cost: int
    location_id: str
    description: str


@dataclass(frozen=True)
class LordTemplate:
    id: str
    name: str
    faction_id: str
    army: Mapping[str, int] = field(default_factory=dict)


LOCATION_CATALOG: Tuple[LocationTemplate, ...] = (
    LocationTemplate("pravend", "Praven", "King Harlaus", "swadia", 40, 320, 260, ("velvet", "wine"),
                     "The Swadian capital, crowded with knights and merchants."),
    LocationTemplate("suno", "Suno", "Count Grainwad", "swadia", 30, 380, 210, ("grain", "wool"),
                     "A river town surrounded by wheat fields."),
    LocationTemplate("uxkhal", "Uxkhal", "Count Delinard", "swadia", 30, 300, 340, ("tools", "iron"),
                     "Smithies line the streets of this fortified market."),
    LocationTemplate("dhirim", "Dhirim", "Count Rafard", "swadia", 25, 470, 320, ("pottery", "ale"),
                     "A crossroads city claimed by many and held by few."),
    LocationTemplate("sargoth", "Sargoth", "King Ragnar", "nords", 40, 330, 80, ("dried_meat", "ale"),
                     "A sea-king's hall above a cold harbour."),
    LocationTemplate("tihr", "Tihr", "Jarl Aedin", "nords", 25, 250, 150, ("furs", "salt"),
                     "Longships beach beside a palisade of dark pine."),
    LocationTemplate("wercheg", "Wercheg", "Jarl Turya", "nords", 25, 450, 60, ("salt", "iron"),
                     "A salt port on the northern coast."),
    LocationTemplate("reyvadin", "Reyvadin", "King Yaroglek", "vaegirs", 40, 620, 130, ("furs", "linen"),
                     "Onion domes and fur markets in the Vaegir heartland."),
    LocationTemplate("curaw", "Curaw", "Boyar Vlan", "vaegirs", 25, 560, 60, ("iron", "tools"),
                     "A mining town hemmed in by snowbound hills."),
    LocationTemplate("khudan", "Khudan", "Boyar Krogoth", "vaegirs", 25, 610, 230, ("wool", "grain"),
                     "A frontier fortress watching over the steppe road."),
    LocationTemplate("tulga", "Tulga", "Sanjar Khan", "khergits", 35, 760, 240, ("spice", "dried_meat"),
                     "Tents and horse pens stretch beyond the walls of the khan's seat."),
    LocationTemplate("narra", "Narra", "Khan Dashgar", "khergits", 25, 690, 330, ("wool", "salt"),
                     "A caravan stop where the steppe meets the desert."),
    LocationTemplate("jelkala", "Jelkala", "King Graveth", "rhodoks", 40, 180, 400, ("linen", "wine"),
                     "A hill city of crossbowmen and vineyards."),
    LocationTemplate("veluca", "Veluca", "Count Matheas", "rhodoks", 25, 200, 300, ("oil", "pottery"),
                     "Olive groves and pottery kilns crowd the valley."),
    LocationTemplate("shariz", "Shariz", "Sultan Hakim", "sarranid", 40, 460, 520, ("spice", "oil"),
                     "A white-walled port where the sultan keeps court."),
    LocationTemplate("durquba", "Durquba", "Emir Atis", "sarranid", 25, 620, 460, ("velvet", "salt"),
                     "Caravans rest among palm gardens and dye pits."),
)

ROAD_NETWORK: Tuple[Tuple[str, str], ...] = (
    ("pravend", "suno"),
    ("pravend", "uxkhal"),
    ("pravend", "tihr"),
    ("suno", "dhirim"),
    ("suno", "tihr"),
    ("uxkhal", "dhirim"),
    ("uxkhal", "veluca"),
    ("sargoth", "tihr"),
    ("sargoth", "wercheg"),
    ("wercheg", "curaw"),
    ("curaw", "reyvadin"),
    ("reyvadin", "khudan"),
    ("reyvadin", "tulga"),
    ("khudan", "dhirim"),
    ("tulga", "narra"),
    ("narra", "dhirim"),
    ("narra", "durquba"),
    ("durquba", "shariz"),
    ("shariz", "jelkala"),
    ("jelkala", "veluca"),
)

COMPANION_CATALOG: Tuple[CompanionTemplate, ...] = (
    CompanionTemplate("jeremus", "Jeremus", {"surgery": 4, "wound_treatment": 3}, 600, "pravend",
                      "A defrocked physician who knows his way around a bone saw."),
    CompanionTemplate("firentis", "Firentis", {"tactics": 2, "trainer": 3}, 550, "suno",
                      "A disgraced sergeant eager to drill anyone who will listen."),
    CompanionTemplate("rolf", "Rolf", {"tactics": 3, "looting": 5}, 500, "sargoth",
                      "A veteran raider who always knows where the silver is kept."),
    CompanionTemplate("ymira", "Ymira", {"trade": 10, "wound_treatment": 1}, 400, "reyvadin",
                      "A merchant's daughter with a sharp ear for a bargain."),
    CompanionTemplate("borcha", "Borcha", {"tactics": 1, "looting": 3}, 300, "tulga",
                      "A steppe tracker who rides like he was born in the saddle."),
    CompanionTemplate("katrin", "Katrin", {"trade": 15, "persuasion": 2}, 450, "jelkala",
                      "A quartermaster who counts every coin twice."),
    CompanionTemplate("deshavi", "Deshavi", {"looting": 8, "persuasion": 1}, 350, "shariz",
                      "A quiet archer with quick hands and few questions."),
)


def _lord_army(size: str) -> Dict[str, int]:
    if size == "king":
        return {"recruit": 20, "militia": 25, "footman": 20, "archer": 15}
    return {"recruit": 15, "militia": 15, "footman": 10}


FACTION_CAPITALS = frozenset({"pravend", "sargoth", "reyvadin", "tulga", "jelkala", "shariz"})


def lord_id_for(name: str) -> str:
    return name.strip().lower().replace(" ", "_")


LORD_CATALOG: Tuple[LordTemplate, ...] = tuple(
    LordTemplate(
        id=lord_id_for(row.owner),
        name=row.owner,
        faction_id=row.faction_id,
        army=_lord_army("king" if row.id in FACTION_CAPITALS else "vassal"),
    )
    for row in LOCATION_CATALOG
)


def connections() -> Dict[str, List[str]]:
    graph: Dict[str, List[str]] = {row.id: [] for row in LOCATION_CATALOG}
    for first, second in ROAD_NETWORK:
        graph[first].append(second)
        graph[second].append(first)
    return graph


def capital_location_id(lord_name: str) -> str | None:
    """Return the template seat of a lord, matched by the lord's name as original owner."""
    for row in LOCATION_CATALOG:
        if row.owner == lord_name:
            return row.id
    return None


def build_locations() -> Dict[str, Location]:
    graph = connections()
    locations: Dict[str, Location] = {}
    for row in LOCATION_CATALOG:
        locations[row.id] = Location(
            id=row.id,
            name=row.name,
            owner_id=row.owner,
            faction_id=row.faction_id,
            connected_to=list(graph[row.id]),
            recruits_available=row.recruits,
            x=row.x,
            y=row.y,
            description=row.description,
            market=[MarketGood(good.id, 1.0) for good in sorted(GOODS_CATALOG, key=lambda good: good.name)],
            production=list(row.production),
        )
    return locations


def build_companions() -> Dict[str, Companion]:
    return {
        row.id: Companion(
            id=row.id,
            name=row.name,
            skills=dict(row.skills),
            recruitment_cost=row.recruitment_cost,
            location_id=row.location_id,
            description=row.description,
        )
        for row in COMPANION_CATALOG
    }


def build_lords() -> Dict[str, AILord]:
    lords: Dict[str, AILord] = {}
    for template in LORD_CATALOG:
        seat = capital_location_id(template.name) or DEFAULT_START_LOCATION_ID
        lords[template.id] = AILord(
            id=template.id,
            name=template.name,
            faction_id=template.faction_id,
            location_id=seat,
            army=dict(template.army),
        )
    return lords


def lord_respawn_army(lord_id: str) -> Dict[str, int]:
    for template in LORD_CATALOG:
        if template.id == lord_id:
            return dict(template.army)
    return _lord_army("vassal")


def build_relations() -> FactionRelations:
    relations = FactionRelations(PLAYABLE_FACTION_IDS)
    for first, second, value in INITIAL_RELATIONS:
        relations.set(first, second, value)
    return relations


def build_wars() -> Wars:
    wars = Wars()
    for first, second in INITIAL_WARS:
        wars.declare(first, second)
    return wars


def faction_name(faction_id: str | None) -> str:
    if not faction_id:
        return "no faction"
    row = FACTIONS.get(faction_id)
    return row.name if row else faction_id

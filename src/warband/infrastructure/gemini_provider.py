import json
import logging
import re
from typing import Any, List, Mapping

import httpx

from warband.domain.models.army import total
from warband.domain.models.character import Companion, Player
from warband.domain.models.location import Location
from warband.domain.models.quest import Quest
from warband.domain.services.economy_catalog import GOODS
from warband.domain.services.unit_catalog import ITEMS, UNITS
from warband.domain.services.world_catalog import faction_name
from warband.application.contract import ContentProvider
from warband.application.dtos import ProviderReply
from warband.application.errors import MalformedPayloadError, ProviderError, ProviderRateLimitError
from warband.application.services.character_creation_service import background_rule
from warband.infrastructure.resilient_http import post_json_with_retry


logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def parse_json_text(text: str) -> Any:
    """Decode a model reply, tolerating a surrounding markdown code fence."""
    raw = str(text or "").strip()
    match = _FENCE_PATTERN.match(raw)
    if match and match.group(2):
        raw = match.group(2).strip()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise MalformedPayloadError(f"Reply is not valid JSON: {raw[:80]!r}") from exc


def _army_text(army: Mapping[str, int]) -> str:
    if not army:
        return "none"
    return ", ".join(f"{UNITS[uid].name if uid in UNITS else uid}: {qty}" for uid, qty in army.items())


def _equipment_text(equipment: Mapping[str, str]) -> tuple[str, int, int]:
    items = [ITEMS[item_id] for item_id in equipment.values() if item_id in ITEMS]
    if not items:
        return "none", 0, 0
    return ", ".join(item.name for item in items), sum(i.attack for i in items), sum(i.armor for i in items)


def _companions_text(player: Player, companions: Mapping[str, Companion]) -> str:
    rows = []
    for companion_id in player.companions:
        companion = companions.get(companion_id)
        if companion is None:
            continue
        gear, _, _ = _equipment_text(companion.equipment)
        skills = ", ".join(f"{skill} {level}" for skill, level in companion.skills.items())
        state = "wounded" if companion.is_wounded else "healthy"
        rows.append(f"- {companion.name} (state: {state}, equipment: {gear}, skills: {skills})")
    return "\n".join(rows) or "none"


class GeminiContentProvider(ContentProvider):
    BASE_URL = "https://generativelanguage.googleapis.com"
    API_PREFIX = "/v1beta/models"
    DEFAULT_MODEL = "gemini-2.5-flash"

    is_live = True

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = BASE_URL,
        timeout: float | None = None,
        retries: int = 0,
        backoff_seconds: float = 0.2,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("GeminiContentProvider requires an API key")
        self._api_key = api_key
        self.model = model
        self._retries = retries
        self._backoff_seconds = backoff_seconds
        self.client = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def _generate(self, prompt: str, *, temperature: float, json_mode: bool = True, thinking: bool = True) -> tuple[str, int]:
        config: dict[str, Any] = {"temperature": temperature}
        if json_mode:
            config["responseMimeType"] = "application/json"
        if not thinking:
            config["thinkingConfig"] = {"thinkingBudget": 0}
        try:
            body = post_json_with_retry(
                self.client,
                f"{self.API_PREFIX}/{self.model}:generateContent",
                payload={"contents": [{"parts": [{"text": prompt}]}], "generationConfig": config},
                params={"key": self._api_key},
                headers={"Accept": "application/json"},
                retries=self._retries,
                backoff_seconds=self._backoff_seconds,
            )
        except ProviderError:
            raise
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"Gemini request failed: {exc}") from exc

        tokens = int((body.get("usageMetadata") or {}).get("totalTokenCount") or 0)
        error = body.get("error")
        if isinstance(error, dict):
            if str(error.get("status", "")).upper() == "RESOURCE_EXHAUSTED":
                raise ProviderRateLimitError(str(error.get("message", "quota exhausted")))
            raise ProviderError(str(error.get("message", "unknown provider error")))
        candidates = body.get("candidates") or []
        first = candidates[0] if isinstance(candidates, list) and candidates else {}
        if not isinstance(first, dict):
            raise MalformedPayloadError("Gemini reply has no readable candidate")
        content = first.get("content") or {}
        if not isinstance(content, dict):
            raise MalformedPayloadError("Gemini reply content must be an object")
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise MalformedPayloadError("Gemini reply parts must be a list")
        text = "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
        return text, tokens

    def _json(self, prompt: str, *, temperature: float, thinking: bool = True) -> ProviderReply:
        text, tokens = self._generate(prompt, temperature=temperature, thinking=thinking)
        return ProviderReply(data=parse_json_text(text), tokens=tokens)

    def verify_key(self) -> bool:
        try:
            text, _ = self._generate("Hi", temperature=0.0, json_mode=False, thinking=False)
        except ProviderError as exc:
            logger.warning("API key verification failed: %s", exc)
            return False
        return bool(text)

    def generate_character(self, background_id: str) -> ProviderReply:
        rule = background_rule(background_id)
        weapon = f' The weapon is "{rule.weapon}".' if rule.weapon else ""
        prompt = f"""
Create a player character for a Mount & Blade style world.
Chosen background: "{rule.name} - {rule.description}"
Invent a fitting medieval European name, a one or two sentence backstory, starting gold, renown and recruits.

Rules:
- Gold between {rule.gold[0]} and {rule.gold[1]}.
- Renown between {rule.renown[0]} and {rule.renown[1]}.
- Between {rule.recruits[0]} and {rule.recruits[1]} recruits.
- Everyone wears "tattered_rags" on the body.{weapon}

Return ONLY this JSON object:
{{"name": "string", "backstory": "string", "gold": number, "renown": number, "army": {{"recruit": number}},
 "equipment": {{"body": "tattered_rags", "weapon": "string | null"}}}}
"""
        return self._json(prompt, temperature=0.9)

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
        gear, attack, armor = _equipment_text(player.equipment)
        quest = player.active_quest
        if quest is not None and quest.is_bounty:
            quest_part = (
                f'The player hunts "{quest.target_enemy_name}" for the quest "{quest.title}". '
                "If this enemy is that target and the player wins, fill questUpdate with completed=true."
            )
        else:
            quest_part = "The player has no bounty quest; questUpdate must be null."
        wars = ", ".join(faction_name(fid) for fid in at_war_with) or "none"
        prompt = f"""
Simulate a text battle in the style of Mount & Blade.

Player:
- Faction: {faction_name(player.faction_id)}
- At war with: {wars}
- Army: {total(player.army)} troops (+{len(player.companions)} companions)
- Composition: {_army_text(player.army)}
- Renown: {player.renown}
- Player state: {'wounded' if player.is_wounded else 'healthy'}
- Equipment: {gear} (attack +{attack}, armor +{armor})
- Party tactics level: {tactics}
- Party surgery level: {surgery}
- Companions:
{_companions_text(player, companions)}

Enemy: {enemy_size} {enemy_name}

Quest: {quest_part}

Rules:
1. outcome is one of "player_victory", "player_defeat", "draw".
2. Skills, equipment, companions and troop quality matter most. Higher tactics means fewer losses.
   Higher surgery turns deaths into wounded. A wounded player fights at a heavy disadvantage.
3. narrative is two or three dramatic sentences.
4. Distribute playerLosses and playerWounded over the composition above, weaker units first. Companions never die.
5. On defeat set playerDefeated to true.
6. On victory goldLooted is usually 10 to 20 times the enemy size.
7. playerXpGained = enemy size x 10 and xpGained = enemy size x 5, at 100% for victory, 50% for a draw, 20% for defeat. Integers only.

Return ONLY this JSON object:
{{"narrative": "string", "outcome": "player_victory", "playerLosses": {{"recruit": 0}}, "playerWounded": {{"recruit": 0}},
 "playerDefeated": false, "enemyLosses": 0, "goldLooted": 0, "xpGained": 0, "playerXpGained": 0,
 "questUpdate": {{"completed": true, "narrative": "string"}} | null}}
"""
        return self._json(prompt, temperature=1.0, thinking=False)

    def generate_quest(self, player: Player, location: Location) -> ProviderReply:
        goods = ", ".join(sorted(GOODS))
        prompt = f"""
You generate quests for a Mount & Blade inspired game.
The quest is given in {location.name} by {location.owner_id} of faction {location.faction_id}.

Player: level {player.level}, renown {player.renown}, army {total(player.army)}, gold {player.gold},
faction {faction_name(player.faction_id)}, companions {len(player.companions)}.

Rules:
1. type is "bounty" (hunt a named enemy) or "delivery" (carry goods).
2. Scale difficulty to the player. Faction members get quests serving their faction.
3. Delivery quests target a different town and one of these goods: {goods}.
4. Rewards: delivery 100-300 gold and 5-10 renown, bounty 200-800 gold and 10-25 renown.

Return ONLY this JSON object:
{{"id": "kebab-case-id", "title": "string", "description": "string", "type": "bounty" | "delivery",
 "giver": "{location.owner_id}", "factionId": "{location.faction_id}", "status": "active",
 "targetLocationId": "string | null", "targetItemId": "string | null", "targetItemQuantity": "number | null",
 "targetEnemyName": "string | null", "targetEnemyLocationHint": "string | null",
 "rewardGold": number, "rewardRenown": number}}
"""
        return self._json(prompt, temperature=1.2)

    def get_destination_for_bounty_quest(self, quest: Quest, locations: Mapping[str, Location]) -> ProviderReply:
        places = json.dumps(
            [{"id": row.id, "name": row.name, "description": row.description} for row in locations.values()],
            ensure_ascii=False,
        )
        prompt = f"""
A player on a bounty quest must choose where to look for the target.
Quest: "{quest.title}"
Target: "{quest.target_enemy_name}"
Location hint: "{quest.target_enemy_location_hint}"

Locations: {places}

Match the hint against the names and descriptions and choose the single best location id.
Return ONLY this JSON object: {{"destinationId": "string"}}
"""
        return self._json(prompt, temperature=0.1)

    def get_rumor(self, location: Location) -> ProviderReply:
        prompt = f"""
You are a talkative patron in a tavern in {location.name}, a town described as "{location.description}".
Tell a traveller one short, interesting rumor (one or two sentences) about trade, lords, bandits, politics
or a notable stranger sitting in the corner. Reply with the rumor text only.
"""
        text, tokens = self._generate(prompt, temperature=1.0, json_mode=False)
        return ProviderReply(data=text.strip(), tokens=tokens)

    def generate_travel_event(self, player: Player, origin: Location, destination: Location) -> ProviderReply:
        prompt = f"""
Create a short random event on the road from {origin.name} to {destination.name} in a Mount & Blade style world.
The traveller leads {total(player.army)} troops, has {player.gold} gold and {player.renown} renown.

Offer two or three choices. A choice may change gold, renown or hp, add or remove goods
({', '.join(sorted(GOODS))}) and may start a battle.

Return ONLY this JSON object:
{{"id": "string", "title": "string", "narrative": "string",
 "choices": [{{"text": "string", "resultNarrative": "string", "goldChange": 0, "renownChange": 0, "hpChange": 0,
   "itemChanges": {{}}, "startBattle": {{"enemyName": "string", "enemySize": number}} | null}}]}}
"""
        return self._json(prompt, temperature=1.0)

    def close(self) -> None:
        self.client.close()

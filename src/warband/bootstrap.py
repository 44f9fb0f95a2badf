import logging
import os
import random

from warband.domain.services.world_catalog import DEFAULT_START_LOCATION_ID, build_locations
from warband.application.contract import ContentProvider
from warband.application.services.economy_service import EconomyService
from warband.application.services.event_bus import EventBus
from warband.application.services.game_service import GameService
from warband.application.services.world_progression import WorldProgression
from warband.infrastructure.gemini_provider import GeminiContentProvider
from warband.infrastructure.offline_provider import OfflineContentProvider
from warband.infrastructure.snapshot_store import DEFAULT_SAVE_PATH, JsonSnapshotStore


logger = logging.getLogger(__name__)


def _api_key() -> str:
    for name in ("WARBAND_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY"):
        value = os.getenv(name, "").strip()
        if value:
            return value
    return ""


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


def _seed() -> int:
    raw = os.getenv("WARBAND_SEED", "").strip()
    return int(raw) if raw else random.SystemRandom().randrange(2**31)


def create_content_provider(rng: random.Random | None = None) -> ContentProvider:
    api_key = _api_key()
    if not api_key:
        logger.info("No API key configured; using the offline content provider")
        return OfflineContentProvider(rng=rng)
    return GeminiContentProvider(
        api_key=api_key,
        model=os.getenv("WARBAND_GEMINI_MODEL", GeminiContentProvider.DEFAULT_MODEL),
        base_url=os.getenv("WARBAND_GEMINI_BASE_URL", GeminiContentProvider.BASE_URL),
        timeout=_optional_float("WARBAND_PROVIDER_TIMEOUT_S"),
        retries=int(os.getenv("WARBAND_PROVIDER_RETRIES", "0")),
        backoff_seconds=float(os.getenv("WARBAND_PROVIDER_BACKOFF_S", "0.2")),
    )


def create_snapshot_store() -> JsonSnapshotStore:
    return JsonSnapshotStore(os.getenv("WARBAND_SAVE_PATH", DEFAULT_SAVE_PATH))


def create_game_service(provider: ContentProvider | None = None) -> GameService:
    seed = _seed()
    rng = random.Random(seed)
    start_location_id = os.getenv("WARBAND_START_LOCATION", DEFAULT_START_LOCATION_ID).strip().lower()
    if start_location_id not in build_locations():
        raise ValueError(f"WARBAND_START_LOCATION '{start_location_id}' is not a known town")
    event_bus = EventBus()
    return GameService(
        provider=provider or create_content_provider(rng=random.Random(seed + 1)),
        event_bus=event_bus,
        progression=WorldProgression(event_bus),
        economy=EconomyService(),
        rng=rng,
        seed=seed,
        start_location_id=start_location_id,
    )

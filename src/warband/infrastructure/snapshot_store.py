import json
import logging
import os
import time
from pathlib import Path
from typing import Any

from warband.application.contract import SnapshotRepository
from warband.application.errors import SnapshotError
from warband.application.snapshot import world_from_snapshot


logger = logging.getLogger(__name__)

DEFAULT_SAVE_PATH = ".warband/save.json"


class JsonSnapshotStore(SnapshotRepository):
    """Single-slot save file. A snapshot that cannot be rebuilt into a world is discarded on load."""

    def __init__(self, path: str | Path = DEFAULT_SAVE_PATH) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            envelope = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Discarding unreadable save %s: %s", self.path, exc)
            self.clear()
            return None
        snapshot = envelope.get("snapshot") if isinstance(envelope, dict) and "snapshot" in envelope else envelope
        if not isinstance(snapshot, dict):
            logger.warning("Discarding save %s: not an object", self.path)
            self.clear()
            return None
        try:
            world_from_snapshot(snapshot)
        except SnapshotError as exc:
            logger.warning("Discarding inconsistent save %s: %s", self.path, exc)
            self.clear()
            return None
        return snapshot

    def save(self, snapshot: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        envelope = {
            "stored_at": int(time.time()),
            "snapshot": snapshot,
        }
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(envelope, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return

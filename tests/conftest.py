import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def disable_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda *_args, **_kwargs: None)


@pytest.fixture(autouse=True)
def isolated_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("WARBAND_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY", "WARBAND_SEED", "WARBAND_START_LOCATION"):
        monkeypatch.delenv(name, raising=False)

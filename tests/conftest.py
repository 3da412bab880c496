import sys
from pathlib import Path
from typing import Iterator

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from atk_lib.config import CONFIG_ENV_KEYS  # noqa: E402
from atk_lib.logs import reset_logging  # noqa: E402


@pytest.fixture(autouse=True)
def reset_atk_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate Codespace/ATK env and logger handlers between tests."""

    for var in (*CONFIG_ENV_KEYS, "ATK_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    reset_logging()
    yield
    reset_logging()

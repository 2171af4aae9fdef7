import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import
from tests.util.fakes import FakeClock  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _propagate_nettest_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """The CLI detaches the package logger from root; let caplog see it again."""

    monkeypatch.setattr(logging.getLogger("nettest"), "propagate", True)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "NETTEST_CONFIG",
        "NETTEST_HOST",
        "NETTEST_INTERVAL",
        "NETTEST_PING_BIN",
        "NETTEST_DIALECT",
        "NETTEST_WINDOW",
        "NETTEST_THRESHOLDS",
    ):
        monkeypatch.delenv(key, raising=False)

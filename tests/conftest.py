import sys
from pathlib import Path

import pytest

# Ensure repository root is on the import path for local package imports during tests.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bibverify.providers.clients.base import BaseHttpClient  # noqa: E402


@pytest.fixture()
def no_retry_sleep(monkeypatch):
    """Skip the real backoff sleeps between HTTP retries."""

    sleeps = []
    monkeypatch.setattr(BaseHttpClient._send.retry, "sleep", sleeps.append)
    return sleeps


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now
        self.sleeps = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()

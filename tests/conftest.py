"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from boomboard.engine.calendar import CalendarPolicy, HolidayCalendar
from boomboard.storage.ledger import LedgerStore

ZONE = ZoneInfo("Africa/Johannesburg")


class FakeClock:
    """Settable clock for LedgerStore; ``advance`` moves it forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 7, 10, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_local_ts(iso: str, micros: int = 0) -> str:
    """Slack-style ts for a local Johannesburg wall-clock time."""
    dt = datetime.fromisoformat(iso).replace(tzinfo=ZONE)
    return f"{int(dt.timestamp())}.{micros:06d}"


@pytest.fixture
def local_ts():
    """Factory: ``local_ts("2025-03-03T12:00:05")`` → ``"1740996005.000000"``."""
    return make_local_ts


@pytest.fixture
def holiday_dir(tmp_path: Path) -> Path:
    """Holiday directory seeded with a JSONC-style 2025 file."""
    d = tmp_path / "holidays"
    d.mkdir()
    (d / "za-2025.json").write_text(
        '[\n  "2025-03-21", // Human Rights Day\n  "2025-04-18", // Good Friday\n]\n',
        encoding="utf-8",
    )
    return d


@pytest.fixture
def policy(holiday_dir: Path) -> CalendarPolicy:
    return CalendarPolicy(
        ZONE,
        scoring_hour=12,
        variant_weekday=3,
        holidays=HolidayCalendar(holiday_dir, country="za"),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "store.json"


@pytest.fixture
def store(store_path: Path, clock: FakeClock) -> LedgerStore:
    """Fresh ledger in a temp directory with a frozen clock."""
    return LedgerStore(store_path, clock=clock)

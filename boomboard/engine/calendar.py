"""
boomboard.engine.calendar — Calendar & Scoring-Window Policy
=============================================================

Decides *when* a post can score:

* the local calendar date of an instant (configured IANA zone),
* whether that date is a working day (Mon–Fri and not a public holiday),
* whether the instant falls inside the single scoring hour,
* which games are required on a given weekday.

Week boundaries are ISO-8601: weeks start on Monday and the week key uses
the ISO week-year, so ``2024-12-30`` belongs to ``2025-W01``.

Holiday files live at ``<holiday_dir>/<country>-<year>.json`` and hold a JSON
list of ISO dates.  ``//`` comments and trailing commas are tolerated.  A
missing file means no holidays that year; an unreadable file is logged and
the year falls back to the operator-supplied extra dates only.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from boomboard.engine.events import BASE_GAMES, VARIANT_GAME, Game, parse_message_ts

if TYPE_CHECKING:
    from boomboard.config import BoomConfig

logger = logging.getLogger(__name__)

__all__ = [
    "CalendarPolicy",
    "DayInfo",
    "HolidayCalendar",
    "as_date",
    "week_key_for",
    "week_range",
]

_LINE_COMMENT = re.compile(r"//[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_TRAILING_COMMA = re.compile(r",(\s*[\]}])")


@dataclass(frozen=True, slots=True)
class DayInfo:
    """Local calendar classification of an instant."""

    date: str  # YYYY-MM-DD in the configured zone
    weekday: int  # ISO: 1=Mon .. 7=Sun
    is_holiday: bool
    is_workday: bool


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------
def as_date(value: date | str) -> date:
    """Accept a :class:`date` or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def week_key_for(value: date | str) -> str:
    """ISO week key, e.g. ``2025-W10``."""
    iso_year, iso_week, _ = as_date(value).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def week_range(value: date | str) -> tuple[str, str]:
    """Monday and Friday (ISO strings) of the ISO week containing *value*."""
    d = as_date(value)
    monday = d - timedelta(days=d.isoweekday() - 1)
    friday = monday + timedelta(days=4)
    return monday.isoformat(), friday.isoformat()


def _parse_holiday_document(text: str) -> object:
    text = _BLOCK_COMMENT.sub("", text)
    text = _LINE_COMMENT.sub("", text)
    text = _TRAILING_COMMA.sub(r"\1", text)
    return json.loads(text)


# ---------------------------------------------------------------------------
# Holidays
# ---------------------------------------------------------------------------
class HolidayCalendar:
    """Per-year holiday sets, loaded lazily and cached by year."""

    def __init__(
        self,
        holiday_dir: str | Path,
        *,
        country: str = "za",
        extra_holidays: tuple[str, ...] | list[str] = (),
    ) -> None:
        self._dir = Path(holiday_dir)
        self._country = country
        self._extra = tuple(extra_holidays)
        # year → set of ISO dates
        self._cache: dict[int, frozenset[str]] = {}

    def path_for(self, year: int) -> Path:
        return self._dir / f"{self._country}-{year}.json"

    def is_holiday(self, value: date | str) -> bool:
        d = as_date(value)
        return d.isoformat() in self.holidays_for(d.year)

    def holidays_for(self, year: int) -> frozenset[str]:
        if year not in self._cache:
            self._cache[year] = self._load_year(year)
        return self._cache[year]

    def clear_cache(self) -> None:
        self._cache.clear()

    def _load_year(self, year: int) -> frozenset[str]:
        dates = set(self._load_file(year))
        prefix = f"{year}-"
        dates.update(d for d in self._extra if d.startswith(prefix))
        logger.debug("Loaded %d holidays for %d", len(dates), year)
        return frozenset(dates)

    def _load_file(self, year: int) -> list[str]:
        path = self.path_for(year)
        if not path.exists():
            return []
        try:
            data = _parse_holiday_document(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.exception(
                "Holiday file %s is unreadable; using only extra holidays for %d",
                path,
                year,
            )
            return []
        if not isinstance(data, list):
            logger.error(
                "Holiday file %s must contain a JSON list, got %s; "
                "using only extra holidays for %d",
                path,
                type(data).__name__,
                year,
            )
            return []

        valid: list[str] = []
        for entry in data:
            try:
                valid.append(date.fromisoformat(str(entry)).isoformat())
            except ValueError:
                logger.warning("Skipping invalid holiday entry %r in %s", entry, path)
        return valid


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------
class CalendarPolicy:
    """Local-day, scoring-window and required-game rules.

    Usage::

        policy = CalendarPolicy.from_config(cfg)
        day = policy.resolve_local_day("1741003205.000100")
        if day.is_workday and policy.is_in_scoring_window("1741003205.000100"):
            games = policy.required_games_for_weekday(day.weekday)
    """

    def __init__(
        self,
        zone: ZoneInfo | str = "Africa/Johannesburg",
        *,
        scoring_hour: int = 12,
        variant_weekday: int = 3,
        holidays: HolidayCalendar | None = None,
    ) -> None:
        self.zone = zone if isinstance(zone, ZoneInfo) else ZoneInfo(zone)
        self.scoring_hour = scoring_hour
        self.variant_weekday = variant_weekday
        self.holidays = holidays

    @classmethod
    def from_config(cls, cfg: BoomConfig) -> CalendarPolicy:
        return cls(
            cfg.zone,
            scoring_hour=cfg.scoring_hour,
            variant_weekday=cfg.variant_weekday,
            holidays=HolidayCalendar(
                cfg.holiday_dir,
                country=cfg.holiday_country,
                extra_holidays=cfg.extra_holidays,
            ),
        )

    def to_local(self, ts: str | float | int | datetime) -> datetime:
        """Convert a Slack ts, epoch seconds or aware datetime to local time.

        Raises ``ValueError`` for an unparseable timestamp or a naive datetime.
        """
        if isinstance(ts, datetime):
            if ts.tzinfo is None:
                raise ValueError("naive datetime has no defined instant")
            return ts.astimezone(self.zone)
        seconds = parse_message_ts(ts)
        if seconds is None:
            raise ValueError(f"unparseable timestamp: {ts!r}")
        try:
            return datetime.fromtimestamp(seconds, tz=UTC).astimezone(self.zone)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"timestamp out of range: {ts!r}") from exc

    def is_holiday(self, value: date | str) -> bool:
        return self.holidays is not None and self.holidays.is_holiday(value)

    def is_workday(self, value: date | str) -> bool:
        d = as_date(value)
        return d.isoweekday() <= 5 and not self.is_holiday(d)

    def resolve_local_day(self, ts: str | float | int | datetime) -> DayInfo:
        local = self.to_local(ts)
        d = local.date()
        weekday = d.isoweekday()
        holiday = self.is_holiday(d)
        return DayInfo(
            date=d.isoformat(),
            weekday=weekday,
            is_holiday=holiday,
            is_workday=weekday <= 5 and not holiday,
        )

    def is_in_scoring_window(self, ts: str | float | int | datetime) -> bool:
        return self.to_local(ts).hour == self.scoring_hour

    def required_games_for_weekday(self, weekday: int) -> frozenset[Game]:
        if weekday == self.variant_weekday:
            return BASE_GAMES | {VARIANT_GAME}
        return BASE_GAMES

    def is_final_workday_of_week(self, value: date | str) -> bool:
        """True if *value* is a workday and no later Mon–Fri date of its week is."""
        d = as_date(value)
        if not self.is_workday(d):
            return False
        _, friday = week_range(d)
        later = d + timedelta(days=1)
        while later <= as_date(friday):
            if self.is_workday(later):
                return False
            later += timedelta(days=1)
        return True

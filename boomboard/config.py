"""
boomboard.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for the game's calendar and storage settings, then
applies environment overrides (``.env`` is honoured via python-dotenv).

Usage::

    from boomboard.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.timezone)          # "Africa/Johannesburg"
    print(cfg.scoring_hour)      # 12

Environment overrides:

* ``TIMEZONE``          — IANA zone name
* ``HOLIDAYS``          — comma-separated ISO dates added to every year
* ``BOOMBOARD_STORE``   — path of the JSON ledger file
* ``ALLOWED_CHANNELS``  — comma-separated channel ids (empty = all)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv

DEFAULT_TIMEZONE = "Africa/Johannesburg"
DEFAULT_STORE_PATH = "data/store.json"
DEFAULT_HOLIDAY_DIR = "data/holidays"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class BoomConfig:
    """Immutable configuration loaded from ``config.yaml`` + environment."""

    # Calendar
    timezone: str = DEFAULT_TIMEZONE
    scoring_hour: int = 12  # Local hour (0-23) during which posts score
    variant_weekday: int = 3  # ISO weekday of the variant game (3 = Wednesday)

    # Holidays
    holiday_country: str = "za"  # File prefix: <holiday_dir>/<country>-<year>.json
    holiday_dir: str = DEFAULT_HOLIDAY_DIR
    extra_holidays: tuple[str, ...] = ()

    # Storage
    store_path: str = DEFAULT_STORE_PATH

    # Intake
    allowed_channels: frozenset[str] | None = field(default=None)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _validate(cfg: BoomConfig) -> BoomConfig:
    try:
        ZoneInfo(cfg.timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {cfg.timezone!r}") from exc
    if not 0 <= cfg.scoring_hour <= 23:
        raise ValueError(f"scoring_hour must be 0-23, got {cfg.scoring_hour}")
    if not 1 <= cfg.variant_weekday <= 7:
        raise ValueError(
            f"variant_weekday must be an ISO weekday 1-7, got {cfg.variant_weekday}"
        )
    return cfg


def apply_env_overrides(cfg: BoomConfig) -> BoomConfig:
    """Return *cfg* with ``TIMEZONE``/``HOLIDAYS``/… environment values applied."""
    changes: dict = {}
    if tz := os.getenv("TIMEZONE"):
        changes["timezone"] = tz
    if extra := _split_csv(os.getenv("HOLIDAYS")):
        changes["extra_holidays"] = tuple(dict.fromkeys([*cfg.extra_holidays, *extra]))
    if store := os.getenv("BOOMBOARD_STORE"):
        changes["store_path"] = store
    if channels := _split_csv(os.getenv("ALLOWED_CHANNELS")):
        changes["allowed_channels"] = frozenset(channels)
    return _validate(replace(cfg, **changes)) if changes else cfg


def default_config() -> BoomConfig:
    """Defaults with environment overrides, for callers without a YAML file."""
    load_dotenv()
    return apply_env_overrides(BoomConfig())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> BoomConfig:
    """Read *path* and return a :class:`BoomConfig` instance.

    Every key is optional; missing keys keep their defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If the time zone is unknown or an hour/weekday is out of range.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    channels = raw.get("allowed_channels") or []
    cfg = BoomConfig(
        timezone=str(raw.get("timezone", DEFAULT_TIMEZONE)),
        scoring_hour=int(raw.get("scoring_hour", 12)),
        variant_weekday=int(raw.get("variant_weekday", 3)),
        holiday_country=str(raw.get("holiday_country", "za")),
        holiday_dir=str(raw.get("holiday_dir", DEFAULT_HOLIDAY_DIR)),
        extra_holidays=tuple(str(d) for d in raw.get("extra_holidays") or ()),
        store_path=str(raw.get("store_path", DEFAULT_STORE_PATH)),
        allowed_channels=frozenset(str(c) for c in channels) if channels else None,
    )

    load_dotenv()
    return apply_env_overrides(_validate(cfg))

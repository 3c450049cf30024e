"""
boomboard.storage.schema — Persisted Document Shape & Legacy Migration
=======================================================================

The ledger is a single JSON document.  :func:`normalize_document` is the one
place that tolerates loose shapes: it runs once at load time, folds legacy
layouts forward, and hands back a typed :class:`StoreData`.  Everything after
load works on the typed structure only.

Versions
--------
* **1** (unversioned) — arrival-ordered ``placements`` and, in the oldest
  files, a top-level ``wins`` map with the same shape.  Event records may use
  ``created_at`` instead of ``recorded_at``.
* **2** — adds the ``version`` marker; raw ``messages`` are authoritative.

Unknown top-level keys and unknown game keys are dropped on read.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from boomboard.engine.events import Game, ScoringEvent

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

__all__ = [
    "SCHEMA_VERSION",
    "CrownRecord",
    "StoreData",
    "crowned_at_millis",
    "normalize_document",
    "to_document",
]


@dataclass(frozen=True, slots=True)
class CrownRecord:
    """A week's champion(s).  ``winners`` holds every user tied at ``points``."""

    week_key: str
    winners: tuple[str, ...]
    points: int
    crowned_at: str


@dataclass
class StoreData:
    """Typed in-memory form of the ledger document."""

    # date → game → raw events (authoritative)
    messages: dict[str, dict[Game, list[ScoringEvent]]] = field(default_factory=dict)
    # date → game → valid posts inside the window
    counts: dict[str, dict[Game, int]] = field(default_factory=dict)
    # date → game → arrival-ordered users (legacy fallback)
    placements: dict[str, dict[Game, list[str]]] = field(default_factory=dict)
    # date → ISO time of the daily podium announcement
    daily_announced: dict[str, str] = field(default_factory=dict)
    # week key → ISO time the crowning was attempted
    weekly_crowned: dict[str, str] = field(default_factory=dict)
    # week key → crown
    weekly_kings: dict[str, CrownRecord] = field(default_factory=dict)
    # week key → user → baseline points
    weekly_adjustments: dict[str, dict[str, int]] = field(default_factory=dict)

    def clone(self) -> StoreData:
        """Copy every container; events and crowns are immutable and shared."""
        return StoreData(
            messages={
                d: {g: list(evs) for g, evs in per_game.items()}
                for d, per_game in self.messages.items()
            },
            counts={d: dict(per_game) for d, per_game in self.counts.items()},
            placements={
                d: {g: list(users) for g, users in per_game.items()}
                for d, per_game in self.placements.items()
            },
            daily_announced=dict(self.daily_announced),
            weekly_crowned=dict(self.weekly_crowned),
            weekly_kings=dict(self.weekly_kings),
            weekly_adjustments={
                wk: dict(per_user) for wk, per_user in self.weekly_adjustments.items()
            },
        )


def crowned_at_millis(value: str) -> int | None:
    """Epoch milliseconds of an ISO timestamp (naive values are taken as UTC)."""
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(round(dt.timestamp() * 1000))


# ---------------------------------------------------------------------------
# Load-time normalization
# ---------------------------------------------------------------------------
def _as_game(key: object) -> Game | None:
    try:
        return Game(str(key))
    except ValueError:
        logger.debug("Ignoring unknown game key %r", key)
        return None


def _dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def _is_number(value: object) -> bool:
    """Finite int or float; bools and NaN/Infinity are rejected."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def _event_from_raw(raw: object) -> ScoringEvent | None:
    if not isinstance(raw, dict):
        return None
    user_id = raw.get("user_id")
    message_ts = raw.get("message_ts")
    if not user_id or not message_ts:
        return None
    return ScoringEvent(
        user_id=str(user_id),
        channel_id=str(raw.get("channel_id") or ""),
        message_ts=str(message_ts),
        recorded_at=str(raw.get("recorded_at") or raw.get("created_at") or ""),
    )


def _load_messages(raw: object) -> dict[str, dict[Game, list[ScoringEvent]]]:
    out: dict[str, dict[Game, list[ScoringEvent]]] = {}
    for date_key, per_game in _dict(raw).items():
        for game_key, events in _dict(per_game).items():
            game = _as_game(game_key)
            if game is None or not isinstance(events, list):
                continue
            parsed = [ev for ev in map(_event_from_raw, events) if ev is not None]
            if len(parsed) != len(events):
                logger.warning(
                    "Dropped %d malformed event(s) for %s/%s",
                    len(events) - len(parsed),
                    date_key,
                    game,
                )
            out.setdefault(str(date_key), {})[game] = parsed
    return out


def _load_counts(raw: object) -> dict[str, dict[Game, int]]:
    out: dict[str, dict[Game, int]] = {}
    for date_key, per_game in _dict(raw).items():
        for game_key, count in _dict(per_game).items():
            game = _as_game(game_key)
            if game is None or isinstance(count, bool) or not isinstance(count, int):
                continue
            out.setdefault(str(date_key), {})[game] = count
    return out


def _load_placements(raw: object, into: dict[str, dict[Game, list[str]]]) -> None:
    for date_key, per_game in _dict(raw).items():
        for game_key, users in _dict(per_game).items():
            game = _as_game(game_key)
            if game is None or not isinstance(users, list):
                continue
            into.setdefault(str(date_key), {})[game] = [str(u) for u in users if u]


def _load_crowns(raw: object) -> dict[str, CrownRecord]:
    out: dict[str, CrownRecord] = {}
    for week_key, crown in _dict(raw).items():
        if not isinstance(crown, dict) or not crown.get("crowned_at"):
            continue
        points = crown.get("points")
        if points is None:
            points = 0
        if not _is_number(points):
            logger.warning("Dropped crown %s with non-numeric points %r", week_key, points)
            continue
        winners = crown.get("winners")
        out[str(week_key)] = CrownRecord(
            week_key=str(week_key),
            winners=tuple(str(w) for w in winners) if isinstance(winners, list) else (),
            points=int(points),
            crowned_at=str(crown["crowned_at"]),
        )
    return out


def _load_adjustments(raw: object) -> dict[str, dict[str, int]]:
    out: dict[str, dict[str, int]] = {}
    for week_key, per_user in _dict(raw).items():
        clean = {
            str(user): int(points)
            for user, points in _dict(per_user).items()
            if _is_number(points)
        }
        if clean:
            out[str(week_key)] = clean
    return out


def normalize_document(raw: dict[str, Any]) -> StoreData:
    """Build a :class:`StoreData` from a parsed document of any known version."""
    version = raw.get("version", 1)
    if isinstance(version, int) and version > SCHEMA_VERSION:
        logger.warning(
            "Ledger document version %d is newer than supported %d; "
            "unknown fields will be dropped on the next write",
            version,
            SCHEMA_VERSION,
        )

    placements: dict[str, dict[Game, list[str]]] = {}
    _load_placements(raw.get("placements"), placements)
    if "wins" in raw:
        # Oldest layout: same shape as placements under a different key
        _load_placements(raw.get("wins"), placements)
        logger.info("Migrated legacy 'wins' map into placements")

    return StoreData(
        messages=_load_messages(raw.get("messages")),
        counts=_load_counts(raw.get("counts")),
        placements=placements,
        daily_announced={str(k): str(v) for k, v in _dict(raw.get("daily_announced")).items() if v},
        weekly_crowned={str(k): str(v) for k, v in _dict(raw.get("weekly_crowned")).items() if v},
        weekly_kings=_load_crowns(raw.get("weekly_kings")),
        weekly_adjustments=_load_adjustments(raw.get("weekly_adjustments")),
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def to_document(data: StoreData) -> dict[str, Any]:
    """Lossless JSON-ready form of *data*."""
    return {
        "version": SCHEMA_VERSION,
        "messages": {
            d: {
                g.value: [
                    {
                        "user_id": ev.user_id,
                        "channel_id": ev.channel_id,
                        "message_ts": ev.message_ts,
                        "recorded_at": ev.recorded_at,
                    }
                    for ev in events
                ]
                for g, events in per_game.items()
            }
            for d, per_game in data.messages.items()
        },
        "counts": {
            d: {g.value: n for g, n in per_game.items()}
            for d, per_game in data.counts.items()
        },
        "placements": {
            d: {g.value: list(users) for g, users in per_game.items()}
            for d, per_game in data.placements.items()
        },
        "daily_announced": dict(data.daily_announced),
        "weekly_crowned": dict(data.weekly_crowned),
        "weekly_kings": {
            wk: {
                "winners": list(crown.winners),
                "points": crown.points,
                "crowned_at": crown.crowned_at,
            }
            for wk, crown in data.weekly_kings.items()
        },
        "weekly_adjustments": {
            wk: dict(per_user) for wk, per_user in data.weekly_adjustments.items()
        },
    }

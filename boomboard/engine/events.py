"""
boomboard.engine.events — Game, ScoringEvent and message parsing
================================================================

Every inbound chat message is reduced to a :class:`ScoringEvent` before the
ledger sees it.  The helpers here are pure: no I/O, no clock reads beyond the
``recorded_at`` default.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

__all__ = [
    "BASE_GAMES",
    "GAME_EMOJI",
    "Game",
    "ScoringEvent",
    "detect_any_game_emoji",
    "detect_game_from_message",
    "parse_message_ts",
    "utc_now_iso",
]


class Game(StrEnum):
    """Scoring categories.  Values double as persisted keys."""

    BOOM = "boom"
    HADEDA = "hadeda"
    WEDNESDAY = "wednesday"


BASE_GAMES: frozenset[Game] = frozenset({Game.BOOM, Game.HADEDA})
VARIANT_GAME = Game.WEDNESDAY

# Reaction name (without colons) used for the first-place acknowledgement
GAME_EMOJI: dict[Game, str] = {
    Game.BOOM: "boom",
    Game.HADEDA: "hadeda-boom",
    Game.WEDNESDAY: "wednesday-boom",
}

# Exact message bodies that count as a post for each game
_GAME_TOKENS: dict[str, Game] = {
    ":boom:": Game.BOOM,
    "\U0001f4a5": Game.BOOM,  # 💥 — clients sometimes render :boom: as unicode
    ":hadeda-boom:": Game.HADEDA,
    ":wednesday-boom:": Game.WEDNESDAY,
}


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


# ---------------------------------------------------------------------------
# ScoringEvent — an immutable ledger fact
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ScoringEvent:
    """One valid game post.

    ``message_ts`` is the external ``seconds.microseconds`` string exactly as
    delivered; it is compared numerically first and as a string second.
    """

    user_id: str
    channel_id: str
    message_ts: str
    recorded_at: str = field(default_factory=utc_now_iso)

    @property
    def ts_value(self) -> float:
        value = parse_message_ts(self.message_ts)
        return value if value is not None else math.inf

    @property
    def sort_key(self) -> tuple[float, str]:
        return (self.ts_value, self.message_ts)


# ---------------------------------------------------------------------------
# Timestamp parsing
# ---------------------------------------------------------------------------
def parse_message_ts(ts: str | float | int | None) -> float | None:
    """Parse a ``"1757498400.276939"`` style timestamp.

    Returns ``None`` for anything that isn't a finite, non-negative number.
    """
    if ts is None or isinstance(ts, bool):
        return None
    if isinstance(ts, int | float):
        value = float(ts)
    else:
        text = ts.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


# ---------------------------------------------------------------------------
# Game detection
# ---------------------------------------------------------------------------
def detect_any_game_emoji(text: str | None) -> Game | None:
    """Return the game whose token is the whole (trimmed) message, ignoring weekday rules."""
    return _GAME_TOKENS.get((text or "").strip())


def detect_game_from_message(
    text: str | None, weekday: int, *, variant_weekday: int = 3
) -> Game | None:
    """Like :func:`detect_any_game_emoji`, but the variant game only counts on its weekday."""
    game = detect_any_game_emoji(text)
    if game is VARIANT_GAME and weekday != variant_weekday:
        return None
    return game

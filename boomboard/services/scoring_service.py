"""
boomboard.services.scoring_service — Message → Ledger → Announcements
======================================================================

Shared service module callable by any transport (Slack handler, replay CLI,
tests).  It owns the intake control flow and returns a
:class:`ScoringOutcome` describing what the transport should do; it never
talks to a chat API itself.

Pipeline for one message:

1. Drop bot/system messages, foreign channels and unparseable timestamps.
2. A game emoji outside the scoring hour, or for a game / day whose podium
   is already full, is ``CLOSED`` (transport adds a non-scoring reaction).
3. Weekends and holidays are ``NOT_PLAYED``.
4. Count the post, record it in the ledger, report the seat it earned.
5. Once every required game has enough posts, build the daily summary once.
6. On the week's final workday the first ``boom`` post crowns the week once.

Closure is applied here, at intake: once a game has three seats for a date,
nothing more is recorded for it, so the podium never changes afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from boomboard.constants import ANNOUNCE_THRESHOLD, CLOSED_REACTION, PODIUM_SIZE
from boomboard.engine.calendar import (
    CalendarPolicy,
    DayInfo,
    as_date,
    week_key_for,
    week_range,
)
from boomboard.engine.events import (
    GAME_EMOJI,
    Game,
    detect_any_game_emoji,
    detect_game_from_message,
)
from boomboard.engine.leaderboard import LeaderboardRow, crown_winners
from boomboard.storage.ledger import LedgerStore
from boomboard.storage.schema import CrownRecord

logger = logging.getLogger(__name__)

# Game that triggers the weekly crown on the final workday
CROWN_GAME = Game.BOOM


class OutcomeStatus(StrEnum):
    IGNORED = "ignored"
    CLOSED = "closed"
    NOT_PLAYED = "not_played"
    RECORDED = "recorded"


# ---------------------------------------------------------------------------
# Inputs & outputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class IncomingMessage:
    """Transport-neutral view of a chat message."""

    user_id: str | None
    channel_id: str | None
    text: str | None
    ts: str | None
    subtype: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> IncomingMessage:
        """Build from a Slack-style ``{"user", "channel", "text", "ts"}`` dict."""

        def _opt(key: str) -> str | None:
            value = payload.get(key)
            return None if value is None else str(value)

        return cls(
            user_id=_opt("user"),
            channel_id=_opt("channel"),
            text=_opt("text"),
            ts=_opt("ts"),
            subtype=_opt("subtype"),
        )


@dataclass(frozen=True, slots=True)
class GamePodium:
    game: Game
    users: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DailySummary:
    """Everything needed to announce a day's podiums."""

    date: str
    podiums: tuple[GamePodium, ...]
    week_start: str
    week_end: str
    leaderboard: tuple[LeaderboardRow, ...]


@dataclass(frozen=True, slots=True)
class CrownResult:
    week_key: str
    week_start: str
    week_end: str
    winners: tuple[str, ...]
    points: int

    @property
    def has_winners(self) -> bool:
        return bool(self.winners)


@dataclass(frozen=True, slots=True)
class ScoringOutcome:
    status: OutcomeStatus
    day: DayInfo | None = None
    game: Game | None = None
    position: int = 0
    count: int = 0
    daily_summary: DailySummary | None = None
    crown: CrownResult | None = None

    @property
    def first_place_reaction(self) -> str | None:
        """Reaction name for a fresh 1st place, else ``None``."""
        if self.status is OutcomeStatus.RECORDED and self.position == 1 and self.game:
            return GAME_EMOJI[self.game]
        return None

    @property
    def reaction(self) -> str | None:
        """Reaction the transport should add to the source message, if any."""
        if self.status is OutcomeStatus.CLOSED:
            return CLOSED_REACTION
        return self.first_place_reaction


@dataclass(frozen=True, slots=True)
class LeaderboardView:
    week_start: str
    week_end: str
    rows: tuple[LeaderboardRow, ...]
    latest_crown: CrownRecord | None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _game_closed(store: LedgerStore, date_key: str, game: Game) -> bool:
    return store.placements_count(date_key, game) >= PODIUM_SIZE


def build_daily_summary(
    store: LedgerStore, policy: CalendarPolicy, date_key: str
) -> DailySummary:
    """Podiums for the day's required games plus the week-to-date leaderboard."""
    weekday = as_date(date_key).isoweekday()
    games = sorted(policy.required_games_for_weekday(weekday), key=list(Game).index)
    start, end = week_range(date_key)
    return DailySummary(
        date=date_key,
        podiums=tuple(
            GamePodium(game=g, users=tuple(store.get_placements(date_key, g)))
            for g in games
        ),
        week_start=start,
        week_end=end,
        leaderboard=tuple(store.weekly_totals(start, end)),
    )


def crown_week(store: LedgerStore, date_key: str) -> CrownResult | None:
    """Crown the ISO week containing *date_key* if it hasn't been crowned yet.

    Returns ``None`` if the week was already crowned.  With no participants
    the week is still marked crowned and the result has no winners.
    """
    week_key = week_key_for(date_key)
    if store.has_crowned(week_key):
        return None

    start, end = week_range(date_key)
    winners, points = crown_winners(store.weekly_totals(start, end))
    if not winners:
        logger.info("No participants in %s; marking crowned without a winner", week_key)
    store.crown(week_key, winners, points)
    return CrownResult(
        week_key=week_key,
        week_start=start,
        week_end=end,
        winners=winners,
        points=points,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def process_message(
    store: LedgerStore,
    policy: CalendarPolicy,
    message: IncomingMessage,
    *,
    allowed_channels: frozenset[str] | None = None,
) -> ScoringOutcome:
    """Run one message through the scoring pipeline.

    Raises :class:`~boomboard.storage.ledger.LedgerWriteError` if the ledger
    could not be committed; every other bad input yields ``IGNORED``.
    """
    if not message.user_id or message.subtype:
        return ScoringOutcome(OutcomeStatus.IGNORED)
    if allowed_channels is not None and message.channel_id not in allowed_channels:
        return ScoringOutcome(OutcomeStatus.IGNORED)

    try:
        day = policy.resolve_local_day(message.ts or "")
        in_window = policy.is_in_scoring_window(message.ts or "")
    except ValueError:
        logger.debug("Ignoring message with unparseable ts %r", message.ts)
        return ScoringOutcome(OutcomeStatus.IGNORED)

    required = policy.required_games_for_weekday(day.weekday)
    any_game = detect_any_game_emoji(message.text)
    if any_game is not None:
        game_closed = _game_closed(store, day.date, any_game)
        day_closed = all(_game_closed(store, day.date, g) for g in required)
        if not in_window or game_closed or day_closed:
            return ScoringOutcome(OutcomeStatus.CLOSED, day=day, game=any_game)

    if not day.is_workday:
        return ScoringOutcome(OutcomeStatus.NOT_PLAYED, day=day, game=any_game)
    if not in_window:
        return ScoringOutcome(OutcomeStatus.IGNORED, day=day)

    game = detect_game_from_message(
        message.text, day.weekday, variant_weekday=policy.variant_weekday
    )
    if game is None:
        return ScoringOutcome(OutcomeStatus.IGNORED, day=day)
    if store.has_event(day.date, game, message.user_id, message.ts or ""):
        # Re-delivery of a post we already counted
        return ScoringOutcome(OutcomeStatus.IGNORED, day=day, game=game)

    count = store.increment_count(day.date, game)
    position = store.record_event(
        day.date, game, message.user_id, message.ts or "", message.channel_id or ""
    )

    summary = None
    counts = store.get_counts(day.date)
    ready = all(counts.get(g, 0) >= ANNOUNCE_THRESHOLD for g in required)
    if ready and not store.has_daily_announced(day.date):
        summary = build_daily_summary(store, policy, day.date)
        store.mark_daily_announced(day.date)
        logger.info("Daily podium ready for %s", day.date)

    crown = None
    if game is CROWN_GAME and policy.is_final_workday_of_week(day.date):
        crown = crown_week(store, day.date)

    return ScoringOutcome(
        OutcomeStatus.RECORDED,
        day=day,
        game=game,
        position=position,
        count=count,
        daily_summary=summary,
        crown=crown,
    )


def leaderboard(
    store: LedgerStore, policy: CalendarPolicy, when: str | float | datetime
) -> LeaderboardView:
    """Week-to-date leaderboard for the local week containing *when*."""
    day = policy.resolve_local_day(when)
    start, end = week_range(day.date)
    return LeaderboardView(
        week_start=start,
        week_end=end,
        rows=tuple(store.weekly_totals(start, end)),
        latest_crown=store.get_latest_crown(),
    )

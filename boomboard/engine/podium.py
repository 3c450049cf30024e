"""
boomboard.engine.podium — Earliest-Timestamp Podium Resolution
===============================================================

Pure functions over a day's recorded events for one game.  The podium is
re-derived from scratch on every call, so the arrival order of events never
matters, only the timestamp each message carries.

Ordering: a user's *earliest* event decides their seat.  Users are ranked by
``(ts numeric, ts string, user_id)``; the string and user id keys make the
order total even when two timestamps parse to the same float.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from boomboard.constants import PODIUM_SIZE
from boomboard.engine.events import ScoringEvent

__all__ = [
    "earliest_events",
    "is_earliest_for_user",
    "position_for_event",
    "rank_users",
    "resolve_podium",
]


def earliest_events(events: Iterable[ScoringEvent]) -> dict[str, ScoringEvent]:
    """Map each user to their earliest event (numeric ts, then raw string)."""
    earliest: dict[str, ScoringEvent] = {}
    for ev in events:
        if not ev.user_id:
            continue
        current = earliest.get(ev.user_id)
        if current is None or ev.sort_key < current.sort_key:
            earliest[ev.user_id] = ev
    return earliest


def rank_users(events: Iterable[ScoringEvent]) -> list[str]:
    """Every distinct user, ordered by their earliest event."""
    earliest = earliest_events(events)
    ordered = sorted(
        earliest.items(),
        key=lambda item: (*item[1].sort_key, item[0]),
    )
    return [user_id for user_id, _ in ordered]


def resolve_podium(
    events: Iterable[ScoringEvent], size: int = PODIUM_SIZE
) -> list[str]:
    """First *size* users by earliest event."""
    return rank_users(events)[:size]


def is_earliest_for_user(
    events: Iterable[ScoringEvent], user_id: str, message_ts: str
) -> bool:
    earliest = earliest_events(e for e in events if e.user_id == user_id)
    ev = earliest.get(user_id)
    return ev is not None and ev.message_ts == message_ts


def position_for_event(
    events: Sequence[ScoringEvent], user_id: str, message_ts: str
) -> int:
    """1-based podium position earned by this specific event, else 0.

    Nonzero only when the user is seated *and* this event is the user's
    earliest; a later retry by a seated user never reports a fresh seat.
    """
    podium = resolve_podium(events)
    if user_id not in podium:
        return 0
    if not is_earliest_for_user(events, user_id, message_ts):
        return 0
    return podium.index(user_id) + 1

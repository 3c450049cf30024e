"""
boomboard.engine.leaderboard — Weekly 5-3-1 Reduction & Crown Winners
======================================================================

Pure calculation: podiums in, sorted point totals out.  The ledger feeds it
one podium per (date, game); baselines seed the totals first.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from boomboard.constants import points_for_position

__all__ = ["LeaderboardRow", "crown_winners", "tally_podiums"]


@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    user_id: str
    points: int


def tally_podiums(
    podiums: Iterable[Sequence[str]],
    baselines: Mapping[str, int] | None = None,
) -> list[LeaderboardRow]:
    """Sum weighted placements across *podiums*.

    Sorted by points descending, ties broken by ``user_id`` ascending.
    """
    totals: dict[str, int] = {}
    for user_id, points in (baselines or {}).items():
        totals[user_id] = int(points)

    for podium in podiums:
        for idx, user_id in enumerate(podium, start=1):
            pts = points_for_position(idx)
            if pts > 0:
                totals[user_id] = totals.get(user_id, 0) + pts

    return sorted(
        (LeaderboardRow(user_id=u, points=p) for u, p in totals.items()),
        key=lambda row: (-row.points, row.user_id),
    )


def crown_winners(rows: Sequence[LeaderboardRow]) -> tuple[tuple[str, ...], int]:
    """Every user tied at the top score, and that score.

    Returns ``((), 0)`` when there are no participants.
    """
    if not rows:
        return (), 0
    top = max(row.points for row in rows)
    winners = tuple(sorted(row.user_id for row in rows if row.points == top))
    return winners, top

"""
boomboard.services.formatting — Plain-text announcement builders
=================================================================

All announcement text lives here so transports only need to post a string.
User ids are rendered as ``<@U123>`` mentions unless a *name_for* resolver
is supplied.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from boomboard.constants import (
    CROWN_EMOJI,
    LEADERBOARD_LIMIT,
    NUMBER_BADGES,
    RANK_BADGES,
    pluralize_points,
    points_for_position,
)
from boomboard.engine.events import GAME_EMOJI, Game
from boomboard.engine.leaderboard import LeaderboardRow
from boomboard.services.scoring_service import CrownResult, DailySummary, LeaderboardView

NameResolver = Callable[[str], str]


def _mention(user_id: str) -> str:
    return f"<@{user_id}>"


def game_token(game: Game) -> str:
    return f":{GAME_EMOJI[game]}:"


def rank_label(rank: int) -> str:
    """Medal for the top 3, keycap emoji up to 10, then ``N.``."""
    if 1 <= rank <= len(RANK_BADGES):
        return RANK_BADGES[rank - 1]
    return NUMBER_BADGES.get(rank, f"{rank}.")


def leaderboard_lines(
    rows: Sequence[LeaderboardRow],
    *,
    name_for: NameResolver = _mention,
    limit: int = LEADERBOARD_LIMIT,
) -> list[str]:
    return [
        f"{rank}. {name_for(row.user_id)} — {pluralize_points(row.points)}"
        for rank, row in enumerate(rows[:limit], start=1)
    ]


def build_daily_podium_text(
    summary: DailySummary, *, name_for: NameResolver = _mention
) -> str:
    """Daily podium per game followed by the week-to-date leaderboard."""
    lines = [f"Boom Game — Daily Podium ({summary.date})"]
    for podium in summary.podiums:
        if not podium.users:
            lines.append(f"• {game_token(podium.game)} — no podium yet")
            continue
        seats = "  ".join(
            f"{i}) {name_for(u)} +{points_for_position(i)}pt"
            for i, u in enumerate(podium.users, start=1)
        )
        lines.append(f"• {game_token(podium.game)} {seats}")

    if summary.leaderboard:
        lines.append("")
        lines.append("Leaderboard (week-to-date):")
        lines.extend(leaderboard_lines(summary.leaderboard, name_for=name_for))
    return "\n".join(lines)


def build_crown_text(crown: CrownResult, *, name_for: NameResolver = _mention) -> str:
    header = f"\U0001f451 Boom Game — Weekly Crown ({crown.week_start} to {crown.week_end})"
    if not crown.has_winners:
        return f"{header}\nNo winners this week."
    label = "Winners" if len(crown.winners) > 1 else "Winner"
    names = ", ".join(name_for(u) for u in crown.winners)
    return f"{header}\n{label}: {names} — {pluralize_points(crown.points)}"


def build_leaderboard_text(
    view: LeaderboardView, *, name_for: NameResolver = _mention
) -> str:
    """Week-to-date leaderboard with the most recent crown underneath."""
    lines = [
        "Boom Game — Leaderboard (week-to-date)",
        f"{view.week_start} to {view.week_end}",
    ]
    if not view.rows:
        lines.append("No results yet this week.")
    else:
        for rank, row in enumerate(view.rows[:LEADERBOARD_LIMIT], start=1):
            lines.append(
                f"{rank_label(rank)} {name_for(row.user_id)} — {pluralize_points(row.points)}"
            )

    lines.append("")
    crown = view.latest_crown
    if crown and crown.winners:
        label = "kings" if len(crown.winners) > 1 else "king"
        names = ", ".join(name_for(u) for u in crown.winners)
        lines.append(f"{CROWN_EMOJI} Current {label}: {names}")
    else:
        lines.append(f"{CROWN_EMOJI} Current king(s): none crowned yet")
    return "\n".join(lines)

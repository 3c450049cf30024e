"""
boomboard.constants — Shared Constants & Helpers
=================================================

Single source of truth for scoring weights and presentation constants.
Import from here instead of duplicating in the engine, store, and renderers.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
PODIUM_SIZE = 3

# Points for 1st, 2nd, 3rd place
POINT_WEIGHTS: tuple[int, ...] = (5, 3, 1)

# Valid posts per game before the daily podium is announced
ANNOUNCE_THRESHOLD = 3

# Leaderboard rows rendered in announcements
LEADERBOARD_LIMIT = 10


def points_for_position(position: int) -> int:
    """Points earned for a 1-based podium *position* (0 outside the podium)."""
    if 1 <= position <= len(POINT_WEIGHTS):
        return POINT_WEIGHTS[position - 1]
    return 0


# ---------------------------------------------------------------------------
# Presentation (used by services.formatting)
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = [
    ":first_place_medal:",
    ":second_place_medal:",
    ":third_place_medal:",
]

NUMBER_BADGES: dict[int, str] = {
    4: ":four:",
    5: ":five:",
    6: ":six:",
    7: ":seven:",
    8: ":eight:",
    9: ":nine:",
    10: ":keycap_ten:",
}

CROWN_EMOJI = ":crown:"
CLOSED_REACTION = "clown_face"


def pluralize_points(points: int) -> str:
    """``1 pt`` / ``4 pts``."""
    return f"{points} pt" if points == 1 else f"{points} pts"

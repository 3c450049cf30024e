"""
Boomboard — Podium & Weekly Crown Engine for the Noon Boom Game
================================================================
Ingests timestamped game messages, resolves the true order in which they
were posted, seats a daily podium per game, and rolls the podiums up into a
weekly leaderboard with a tie-aware weekly crown.

Package layout::

    boomboard/
    ├── config.py          # YAML + env → typed Python config
    ├── constants.py       # Point weights, podium size, badges
    ├── engine/
    │   ├── events.py      # Game enum, ScoringEvent, ts parsing, emoji detection
    │   ├── calendar.py    # Local day, scoring window, holidays, ISO weeks
    │   ├── podium.py      # Earliest-timestamp podium resolution
    │   └── leaderboard.py # 5-3-1 weekly reduction + crown winners
    ├── storage/
    │   ├── schema.py      # Persisted document shape + legacy migration
    │   └── ledger.py      # File-backed append-only ledger and crown history
    └── services/
        ├── scoring_service.py  # Message → ledger → announcements pipeline
        └── formatting.py       # Plain-text podium / leaderboard / crown
"""

__version__ = "0.2.0"

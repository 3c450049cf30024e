"""
boomboard.__main__ — Operator CLI for ``python -m boomboard``
=============================================================

Wiring:
1. Load .env and config.yaml (falls back to defaults when absent).
2. Build the CalendarPolicy and open the LedgerStore.
3. Run one subcommand against the ledger.

Subcommands::

    python -m boomboard leaderboard [--date 2025-03-05]
    python -m boomboard podium 2025-03-03
    python -m boomboard crown
    python -m boomboard ingest messages.jsonl
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, time
from pathlib import Path

from boomboard.config import BoomConfig, default_config, load_config
from boomboard.engine.calendar import CalendarPolicy, as_date
from boomboard.engine.events import Game
from boomboard.services import formatting
from boomboard.services.scoring_service import (
    IncomingMessage,
    OutcomeStatus,
    leaderboard,
    process_message,
)
from boomboard.storage.ledger import LedgerStore

logger = logging.getLogger("boomboard")


def _setup_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def _load(config_path: str) -> BoomConfig:
    if Path(config_path).exists():
        return load_config(config_path)
    logger.info("No %s found; using defaults", config_path)
    return default_config()


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------
def cmd_leaderboard(args, cfg: BoomConfig, store: LedgerStore, policy: CalendarPolicy) -> int:
    if args.date:
        when = datetime.combine(as_date(args.date), time(12), tzinfo=policy.zone)
    else:
        when = datetime.now(policy.zone)
    print(formatting.build_leaderboard_text(leaderboard(store, policy, when)))
    return 0


def cmd_podium(args, cfg: BoomConfig, store: LedgerStore, policy: CalendarPolicy) -> int:
    for game in Game:
        users = store.get_placements(args.date, game)
        seats = ", ".join(users) if users else "-"
        count = store.get_counts(args.date)[game]
        print(f"{formatting.game_token(game)} [{count} post(s)] {seats}")
    return 0


def cmd_crown(args, cfg: BoomConfig, store: LedgerStore, policy: CalendarPolicy) -> int:
    crown = store.get_latest_crown()
    if crown is None:
        print("No week has been crowned yet.")
        return 0
    print(f"{crown.week_key}: {', '.join(crown.winners)} — {crown.points} pts ({crown.crowned_at})")
    return 0


def cmd_ingest(args, cfg: BoomConfig, store: LedgerStore, policy: CalendarPolicy) -> int:
    recorded = 0
    with open(args.file, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("%s:%d is not valid JSON; skipped", args.file, lineno)
                continue
            outcome = process_message(
                store,
                policy,
                IncomingMessage.from_payload(payload),
                allowed_channels=cfg.allowed_channels,
            )
            if outcome.status is OutcomeStatus.RECORDED:
                recorded += 1
            if outcome.daily_summary:
                print(formatting.build_daily_podium_text(outcome.daily_summary))
            if outcome.crown:
                print(formatting.build_crown_text(outcome.crown))
    logger.info("Ingested %s: %d post(s) recorded", args.file, recorded)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="boomboard", description=__doc__.split("\n")[1])
    parser.add_argument("--config", default="config.yaml", help="path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("leaderboard", help="week-to-date leaderboard")
    p.add_argument("--date", help="any date in the week (default: today)")
    p.set_defaults(func=cmd_leaderboard)

    p = sub.add_parser("podium", help="podiums for one date")
    p.add_argument("date")
    p.set_defaults(func=cmd_podium)

    p = sub.add_parser("crown", help="most recent weekly crown")
    p.set_defaults(func=cmd_crown)

    p = sub.add_parser("ingest", help="replay a JSON-lines file of messages")
    p.add_argument("file")
    p.set_defaults(func=cmd_ingest)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Bootstrap and run one CLI command."""
    _setup_logging()
    args = build_parser().parse_args(argv)

    cfg = _load(args.config)
    policy = CalendarPolicy.from_config(cfg)
    store = LedgerStore.from_config(cfg)
    return args.func(args, cfg, store, policy)


if __name__ == "__main__":
    sys.exit(main())

"""
boomboard.storage.ledger — File-Backed Event Ledger & Crown History
====================================================================

:class:`LedgerStore` owns one JSON file and is the only writer of it.
Construct it once per process and hand it to whoever needs it.

Durability
----------
Every mutating call commits before it returns: the new document is written
to ``<file>.tmp``, fsynced, then ``os.replace``-d over the canonical path.
Mutations are applied to a copy of the in-memory state; the copy becomes
current only after the write succeeded, so a failed write leaves both the
file and the in-memory view exactly as they were and raises
:class:`LedgerWriteError`.

Reads never cache derived state.  Podiums and totals are recomputed from the
committed events on every call.

Usage::

    store = LedgerStore("data/store.json")
    pos = store.record_event("2025-03-03", Game.BOOM, "U1", "1741003205.000100", "C1")
    store.get_placements("2025-03-03", Game.BOOM)   # ["U1"]
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Callable, Iterator
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from boomboard.constants import PODIUM_SIZE
from boomboard.engine.calendar import as_date, week_key_for
from boomboard.engine.events import Game, ScoringEvent, parse_message_ts
from boomboard.engine.leaderboard import LeaderboardRow, tally_podiums
from boomboard.engine.podium import position_for_event, resolve_podium
from boomboard.storage.schema import (
    CrownRecord,
    StoreData,
    crowned_at_millis,
    normalize_document,
    to_document,
)

if TYPE_CHECKING:
    from boomboard.config import BoomConfig

logger = logging.getLogger(__name__)

__all__ = ["LedgerStore", "LedgerWriteError"]


class LedgerWriteError(RuntimeError):
    """The ledger file could not be committed; nothing was changed."""


def _coerce_game(game: Game | str) -> Game | None:
    try:
        return Game(game)
    except ValueError:
        return None


def _coerce_date(value: date | str) -> str | None:
    try:
        return as_date(value).isoformat()
    except (TypeError, ValueError):
        return None


class LedgerStore:
    """Append-only scoring ledger persisted as a single JSON document."""

    def __init__(
        self,
        path: str | Path,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._data = self._load()

    @classmethod
    def from_config(cls, cfg: BoomConfig) -> LedgerStore:
        return cls(cfg.store_path)

    @property
    def path(self) -> Path:
        return self._path

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def _load(self) -> StoreData:
        if not self._path.exists():
            data = StoreData()
            self._write(data)
            logger.info("Created new ledger at %s", self._path)
            return data

        text = self._path.read_bytes()
        try:
            raw = json.loads(text.decode("utf-8"))
            if not isinstance(raw, dict):
                raise ValueError(f"top-level JSON is {type(raw).__name__}, not an object")
        except ValueError as exc:  # JSONDecodeError and UnicodeDecodeError included
            return self._recover_corrupt(exc)

        data = normalize_document(raw)
        logger.info(
            "Ledger loaded from %s: %d day(s) of events, %d crown(s)",
            self._path,
            len(data.messages),
            len(data.weekly_kings),
        )
        return data

    def _recover_corrupt(self, exc: Exception) -> StoreData:
        backup = self._path.with_name(self._path.name + ".corrupt")
        logger.error(
            "Ledger %s is corrupt (%s); moving it to %s and starting from an "
            "EMPTY state — historical scores are no longer visible",
            self._path,
            exc,
            backup,
        )
        try:
            os.replace(self._path, backup)
        except OSError as err:
            raise LedgerWriteError(
                f"Failed to move corrupt ledger {self._path} aside: {err}"
            ) from err
        data = StoreData()
        self._write(data)
        return data

    def _write(self, data: StoreData) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as fh:
                json.dump(to_document(data), fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise LedgerWriteError(f"Failed to commit ledger {self._path}: {exc}") from exc

    @contextlib.contextmanager
    def _mutate(self) -> Iterator[StoreData]:
        """Yield a draft of the state; commit it durably, then make it current."""
        draft = self._data.clone()
        yield draft
        self._write(draft)
        self._data = draft

    def _now(self) -> datetime:
        return self._clock()

    def _now_iso(self) -> str:
        return self._now().astimezone(UTC).isoformat(timespec="milliseconds")

    # -------------------------------------------------------------------
    # Derived reads
    # -------------------------------------------------------------------
    def events_for(self, date_key: date | str, game: Game | str) -> tuple[ScoringEvent, ...]:
        d, g = _coerce_date(date_key), _coerce_game(game)
        if d is None or g is None:
            return ()
        return tuple(self._data.messages.get(d, {}).get(g, ()))

    def has_event(
        self, date_key: date | str, game: Game | str, user_id: str, ts: str
    ) -> bool:
        message_ts = ts.strip() if isinstance(ts, str) else ""
        return any(
            ev.user_id == user_id and ev.message_ts == message_ts
            for ev in self.events_for(date_key, game)
        )

    def _podium(self, date_key: str, game: Game) -> list[str]:
        events = self._data.messages.get(date_key, {}).get(game)
        if events:
            return resolve_podium(events)
        # Legacy fallback: arrival-ordered placements from before raw events existed
        legacy = self._data.placements.get(date_key, {}).get(game, [])
        return legacy[:PODIUM_SIZE]

    def get_placements(self, date_key: date | str, game: Game | str) -> list[str]:
        d, g = _coerce_date(date_key), _coerce_game(game)
        if d is None or g is None:
            return []
        return self._podium(d, g)

    def placements_count(self, date_key: date | str, game: Game | str) -> int:
        return len(self.get_placements(date_key, game))

    def get_counts(self, date_key: date | str) -> dict[Game, int]:
        d = _coerce_date(date_key)
        stored = self._data.counts.get(d, {}) if d else {}
        return {g: stored.get(g, 0) for g in Game}

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def record_event(
        self,
        date_key: date | str,
        game: Game | str,
        user_id: str,
        ts: str,
        channel_id: str = "",
    ) -> int:
        """Append one game post and return the podium position it earned.

        Returns 0 for a malformed event, a duplicate ``(user_id, ts)``, a user
        off the podium, or a later post by an already-seated user.

        Raises :class:`LedgerWriteError` if the event could not be committed.
        """
        d, g = _coerce_date(date_key), _coerce_game(game)
        message_ts = ts.strip() if isinstance(ts, str) else ""
        if d is None or g is None or not user_id or parse_message_ts(message_ts) is None:
            logger.debug(
                "Ignoring malformed event date=%r game=%r user=%r ts=%r",
                date_key,
                game,
                user_id,
                ts,
            )
            return 0

        if self.has_event(d, g, user_id, message_ts):
            logger.debug("Duplicate event %s/%s user=%s ts=%s", d, g, user_id, message_ts)
            return 0

        event = ScoringEvent(
            user_id=user_id,
            channel_id=channel_id or "",
            message_ts=message_ts,
            recorded_at=self._now_iso(),
        )
        with self._mutate() as data:
            data.messages.setdefault(d, {}).setdefault(g, []).append(event)

        position = position_for_event(self._data.messages[d][g], user_id, message_ts)
        logger.info(
            "Recorded %s post for %s by %s at %s → position %d",
            g,
            d,
            user_id,
            message_ts,
            position,
        )
        return position

    def add_legacy_placement(
        self, date_key: date | str, game: Game | str, user_id: str
    ) -> int:
        """Arrival-ordered seat for posts that carry no timestamp.

        Returns the 1-based position, or 0 if the user is already seated or
        the legacy podium is full.
        """
        d, g = _coerce_date(date_key), _coerce_game(game)
        if d is None or g is None or not user_id:
            return 0
        current = self._data.placements.get(d, {}).get(g, [])
        if user_id in current or len(current) >= PODIUM_SIZE:
            return 0
        with self._mutate() as data:
            seated = data.placements.setdefault(d, {}).setdefault(g, [])
            seated.append(user_id)
        return len(current) + 1

    def increment_count(self, date_key: date | str, game: Game | str) -> int:
        """Bump the valid-post counter; returns the new count (0 if malformed)."""
        d, g = _coerce_date(date_key), _coerce_game(game)
        if d is None or g is None:
            logger.debug("Ignoring count for malformed date/game %r/%r", date_key, game)
            return 0
        with self._mutate() as data:
            per_game = data.counts.setdefault(d, {g_: 0 for g_ in Game})
            per_game[g] = per_game.get(g, 0) + 1
            new_count = per_game[g]
        return new_count

    # -------------------------------------------------------------------
    # Daily announcement markers
    # -------------------------------------------------------------------
    def has_daily_announced(self, date_key: date | str) -> bool:
        return _coerce_date(date_key) in self._data.daily_announced

    def mark_daily_announced(self, date_key: date | str) -> None:
        d = _coerce_date(date_key)
        if d is None:
            logger.debug("Ignoring announcement marker for malformed date %r", date_key)
            return
        with self._mutate() as data:
            data.daily_announced[d] = self._now_iso()

    # -------------------------------------------------------------------
    # Weekly totals & baselines
    # -------------------------------------------------------------------
    def get_weekly_adjustments(self, week_key: str) -> dict[str, int]:
        return dict(self._data.weekly_adjustments.get(week_key, {}))

    def set_weekly_adjustment(self, week_key: str, user_id: str, points: int) -> None:
        """Set (not add) a user's baseline points for *week_key*."""
        with self._mutate() as data:
            data.weekly_adjustments.setdefault(week_key, {})[user_id] = int(points)
        logger.info("Weekly baseline %s for %s set to %d", week_key, user_id, points)

    def weekly_totals(
        self, start_date: date | str, end_date: date | str
    ) -> list[LeaderboardRow]:
        """5-3-1 totals for every date in ``[start_date, end_date]``.

        Baselines of the ISO week containing *start_date* seed the totals.
        """
        start, end = as_date(start_date), as_date(end_date)
        podiums: list[list[str]] = []
        day = start
        while day <= end:
            key = day.isoformat()
            for game in Game:
                podium = self._podium(key, game)
                if podium:
                    podiums.append(podium)
            day += timedelta(days=1)
        baselines = self._data.weekly_adjustments.get(week_key_for(start), {})
        return tally_podiums(podiums, baselines)

    # -------------------------------------------------------------------
    # Crowns
    # -------------------------------------------------------------------
    def has_crowned(self, week_key: str) -> bool:
        return week_key in self._data.weekly_crowned

    def mark_crowned(self, week_key: str) -> None:
        with self._mutate() as data:
            data.weekly_crowned[week_key] = self._now_iso()

    def _crown_record(
        self, week_key: str, winners: list[str] | tuple[str, ...], points: int
    ) -> CrownRecord:
        """Build a crown stamped strictly later than every crown on record.

        If the clock hasn't moved past the latest one, it is stamped 1 ms later.
        """
        latest_ms = max(
            (
                ms
                for crown in self._data.weekly_kings.values()
                if (ms := crowned_at_millis(crown.crowned_at)) is not None
            ),
            default=None,
        )
        now_ms = int(self._now().timestamp() * 1000)
        if latest_ms is not None and now_ms <= latest_ms:
            now_ms = latest_ms + 1

        stamp = datetime.fromtimestamp(now_ms // 1000, UTC) + timedelta(
            milliseconds=now_ms % 1000
        )
        return CrownRecord(
            week_key=week_key,
            winners=tuple(winners),
            points=int(points),
            crowned_at=stamp.isoformat(timespec="milliseconds"),
        )

    def set_crown(
        self, week_key: str, winners: list[str] | tuple[str, ...], points: int
    ) -> CrownRecord:
        """Persist the week's champion set; ``crowned_at`` is monotonic."""
        record = self._crown_record(week_key, winners, points)
        with self._mutate() as data:
            data.weekly_kings[week_key] = record
        logger.info("Crowned %s: %s with %d pts", week_key, ", ".join(record.winners), points)
        return record

    def crown(
        self, week_key: str, winners: list[str] | tuple[str, ...], points: int
    ) -> CrownRecord | None:
        """Store the crown (if there are winners) and mark the week crowned.

        Both land in one commit, so a week is never left crowned but unmarked.
        Returns the stored record, or ``None`` when *winners* is empty.
        """
        record = self._crown_record(week_key, winners, points) if winners else None
        with self._mutate() as data:
            if record is not None:
                data.weekly_kings[week_key] = record
            data.weekly_crowned[week_key] = self._now_iso()
        if record is not None:
            logger.info(
                "Crowned %s: %s with %d pts", week_key, ", ".join(record.winners), points
            )
        return record

    def get_crown(self, week_key: str) -> CrownRecord | None:
        return self._data.weekly_kings.get(week_key)

    def get_latest_crown(self) -> CrownRecord | None:
        best: tuple[int, str] | None = None
        latest: CrownRecord | None = None
        for crown in self._data.weekly_kings.values():
            ms = crowned_at_millis(crown.crowned_at)
            if ms is None:
                continue
            key = (ms, crown.week_key)
            if best is None or key > best:
                best, latest = key, crown
        return latest

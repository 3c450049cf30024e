"""
tests/test_podium.py — Podium Resolver Unit Tests
==================================================

Pure resolution over event lists (no ledger, no I/O): earliest-timestamp
ordering, delivery-order invariance, tie-breaks, the 3-seat cap and the
per-event position rule.
"""

from __future__ import annotations

import itertools

from boomboard.engine.events import ScoringEvent
from boomboard.engine.podium import (
    earliest_events,
    position_for_event,
    rank_users,
    resolve_podium,
)


def _ev(user: str, ts: str) -> ScoringEvent:
    return ScoringEvent(user_id=user, channel_id="C1", message_ts=ts, recorded_at="")


class TestResolvePodium:
    def test_orders_by_timestamp_not_arrival(self):
        events = [_ev("U1", "100.0"), _ev("U2", "50.0"), _ev("U3", "75.0")]
        assert resolve_podium(events) == ["U2", "U3", "U1"]

    def test_every_delivery_order_gives_the_same_podium(self):
        events = [
            _ev("U1", "1741003205.000300"),
            _ev("U2", "1741003205.000100"),
            _ev("U3", "1741003206.000000"),
            _ev("U4", "1741003205.000200"),
            _ev("U5", "1741003204.999999"),
        ]
        expected = ["U5", "U2", "U4"]
        for perm in itertools.permutations(events):
            assert resolve_podium(list(perm)) == expected

    def test_capped_at_three(self):
        events = [_ev(f"U{i}", f"{i}.0") for i in range(1, 6)]
        podium = resolve_podium(events)
        assert podium == ["U1", "U2", "U3"]
        assert "U4" not in podium

    def test_users_only_seated_once(self):
        events = [_ev("U1", "1.0"), _ev("U1", "2.0"), _ev("U1", "3.0"), _ev("U2", "4.0")]
        assert resolve_podium(events) == ["U1", "U2"]

    def test_earliest_event_decides_membership(self):
        # U1's later retry at 0.5 is actually earlier than U2
        events = [_ev("U1", "10.0"), _ev("U2", "5.0"), _ev("U1", "0.5")]
        assert resolve_podium(events) == ["U1", "U2"]

    def test_identical_numeric_ts_breaks_on_string(self):
        events = [_ev("UA", "100.000000"), _ev("UB", "100.0")]
        assert resolve_podium(events) == ["UB", "UA"]

    def test_identical_ts_breaks_on_user_id(self):
        events = [_ev("UZ", "100.000000"), _ev("UA", "100.000000"), _ev("UM", "100.000000")]
        assert resolve_podium(events) == ["UA", "UM", "UZ"]

    def test_tie_break_is_stable_across_runs(self):
        events = [_ev("U2", "100.000000"), _ev("U1", "100.0"), _ev("U3", "100.000000")]
        first = resolve_podium(events)
        for perm in itertools.permutations(events):
            assert resolve_podium(list(perm)) == first
        assert first == ["U1", "U2", "U3"]

    def test_empty(self):
        assert resolve_podium([]) == []

    def test_events_without_user_are_skipped(self):
        assert rank_users([_ev("", "1.0"), _ev("U1", "2.0")]) == ["U1"]


class TestEarliestEvents:
    def test_keeps_smallest_timestamp_per_user(self):
        earliest = earliest_events([_ev("U1", "3.0"), _ev("U1", "1.0"), _ev("U1", "2.0")])
        assert earliest["U1"].message_ts == "1.0"


class TestPositionForEvent:
    def test_earliest_event_of_seated_user_gets_position(self):
        events = [_ev("U1", "100.0"), _ev("U2", "50.0"), _ev("U3", "75.0")]
        assert position_for_event(events, "U2", "50.0") == 1
        assert position_for_event(events, "U3", "75.0") == 2
        assert position_for_event(events, "U1", "100.0") == 3

    def test_later_event_of_seated_user_gets_zero(self):
        events = [_ev("U1", "1.0"), _ev("U1", "5.0")]
        assert position_for_event(events, "U1", "1.0") == 1
        assert position_for_event(events, "U1", "5.0") == 0

    def test_fourth_user_gets_zero(self):
        events = [_ev(f"U{i}", f"{i}.0") for i in range(1, 5)]
        assert position_for_event(events, "U4", "4.0") == 0

"""
tests/test_events.py — Timestamp Parsing & Game Detection Tests
================================================================
"""

from __future__ import annotations

import math

import pytest

from boomboard.engine.events import (
    Game,
    ScoringEvent,
    detect_any_game_emoji,
    detect_game_from_message,
    parse_message_ts,
)


class TestParseMessageTs:
    def test_slack_ts(self):
        assert parse_message_ts("1757498400.276939") == pytest.approx(1757498400.276939)

    def test_whitespace_is_trimmed(self):
        assert parse_message_ts(" 100.5 ") == 100.5

    def test_numbers_pass_through(self):
        assert parse_message_ts(100) == 100.0

    @pytest.mark.parametrize("bad", [None, "", "   ", "abc", "nan", "inf", "-1", True])
    def test_rejects_malformed(self, bad):
        assert parse_message_ts(bad) is None


class TestScoringEvent:
    def test_sort_key_uses_number_then_string(self):
        a = ScoringEvent("U1", "C1", "100.0")
        b = ScoringEvent("U2", "C1", "100.000000")
        assert a.ts_value == b.ts_value
        assert a.sort_key < b.sort_key

    def test_numeric_order_beats_string_order(self):
        # "9.5" > "10.0" as strings, but 9.5 < 10.0 as numbers
        assert ScoringEvent("U1", "C1", "9.5").sort_key < ScoringEvent("U2", "C1", "10.0").sort_key

    def test_unparseable_ts_sorts_last(self):
        assert ScoringEvent("U1", "C1", "garbage").ts_value == math.inf

    def test_recorded_at_defaults_to_now(self):
        assert ScoringEvent("U1", "C1", "1.0").recorded_at


class TestGameDetection:
    def test_exact_tokens(self):
        assert detect_game_from_message(":boom:", 3) is Game.BOOM
        assert detect_game_from_message("\U0001f4a5", 3) is Game.BOOM
        assert detect_game_from_message(":hadeda-boom:", 3) is Game.HADEDA
        assert detect_game_from_message(":wednesday-boom:", 3) is Game.WEDNESDAY

    def test_variant_only_on_its_weekday(self):
        assert detect_game_from_message(":wednesday-boom:", 1) is None
        assert detect_game_from_message(":wednesday-boom:", 5, variant_weekday=5) is Game.WEDNESDAY

    def test_surrounding_whitespace_allowed(self):
        assert detect_game_from_message(" :boom: ", 3) is Game.BOOM

    @pytest.mark.parametrize("text", [":boom: extra", "extra :boom:", "", None, "boom"])
    def test_anything_else_is_not_a_game(self, text):
        assert detect_game_from_message(text, 3) is None

    def test_any_game_ignores_weekday(self):
        assert detect_any_game_emoji(":wednesday-boom:") is Game.WEDNESDAY
        assert detect_any_game_emoji("something else") is None

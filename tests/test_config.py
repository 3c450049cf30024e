"""
tests/test_config.py — YAML Config & Environment Override Tests
================================================================
"""

from __future__ import annotations

from pathlib import Path

import pytest

from boomboard.config import BoomConfig, apply_env_overrides, default_config, load_config

_ENV_KEYS = ("TIMEZONE", "HOLIDAYS", "BOOMBOARD_STORE", "ALLOWED_CHANNELS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate from the developer's shell and any local .env file."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("boomboard.config.load_dotenv", lambda *a, **kw: False)


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_full_file(self, tmp_path):
        path = _write(
            tmp_path,
            "timezone: Europe/London\n"
            "scoring_hour: 9\n"
            "variant_weekday: 5\n"
            "holiday_country: gb\n"
            "holiday_dir: /srv/holidays\n"
            "extra_holidays: ['2025-12-24']\n"
            "store_path: /srv/store.json\n"
            "allowed_channels: [C1, C2]\n",
        )
        cfg = load_config(path)
        assert cfg.timezone == "Europe/London"
        assert cfg.scoring_hour == 9
        assert cfg.variant_weekday == 5
        assert cfg.holiday_country == "gb"
        assert cfg.holiday_dir == "/srv/holidays"
        assert cfg.extra_holidays == ("2025-12-24",)
        assert cfg.store_path == "/srv/store.json"
        assert cfg.allowed_channels == frozenset({"C1", "C2"})

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_config(_write(tmp_path, "")) == BoomConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize(
        "body",
        ["timezone: Mars/Olympus_Mons\n", "scoring_hour: 24\n", "variant_weekday: 0\n"],
    )
    def test_invalid_values(self, tmp_path, body):
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, body))


class TestEnvOverrides:
    def test_env_wins_over_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "UTC")
        monkeypatch.setenv("BOOMBOARD_STORE", "/tmp/other.json")
        monkeypatch.setenv("ALLOWED_CHANNELS", "C9, C8")
        cfg = load_config(_write(tmp_path, "timezone: Europe/London\n"))
        assert cfg.timezone == "UTC"
        assert cfg.store_path == "/tmp/other.json"
        assert cfg.allowed_channels == frozenset({"C8", "C9"})

    def test_holidays_are_merged(self, monkeypatch):
        monkeypatch.setenv("HOLIDAYS", "2025-12-26,2025-12-24")
        cfg = apply_env_overrides(BoomConfig(extra_holidays=("2025-12-24",)))
        assert cfg.extra_holidays == ("2025-12-24", "2025-12-26")

    def test_bad_env_timezone(self, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "Nowhere/Special")
        with pytest.raises(ValueError, match="Unknown timezone"):
            default_config()

    def test_defaults(self):
        cfg = default_config()
        assert cfg.timezone == "Africa/Johannesburg"
        assert cfg.allowed_channels is None
        assert str(cfg.zone) == "Africa/Johannesburg"

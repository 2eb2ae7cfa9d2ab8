"""
tests/test_config.py
--------------------
Unit tests for config.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from pathlib import Path

import pytest

from config import ConfigError, DatabaseConfig, load_config, parse_table_list

_REQUIRED = {
    "SYNC_SOURCE_DATABASE": "src_db",
    "SYNC_DESTINATION_DATABASE": "dst_db",
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    import os

    for name in list(os.environ):
        if name.startswith("SYNC_") or name in {"LOG_LEVEL", "LOG_FILE"}:
            monkeypatch.delenv(name, raising=False)
    # keep any real .env next to config.py out of the tests
    monkeypatch.setattr("config._DEFAULT_ENV_FILE", tmp_path / "missing.env")


@pytest.fixture
def required_env(monkeypatch):
    for name, value in _REQUIRED.items():
        monkeypatch.setenv(name, value)


class TestDefaults:
    def test_defaults(self, required_env) -> None:
        cfg = load_config()
        assert cfg.batch_size == 1000
        assert cfg.skip_tables == frozenset()
        assert cfg.source.port == 3306
        assert cfg.source.connect_timeout_ms == 60_000
        assert cfg.source.charset == "utf8mb4"
        assert cfg.allow_key_mismatch is False
        assert cfg.report_file is None

    def test_missing_database_rejected(self) -> None:
        with pytest.raises(ConfigError):
            load_config()


class TestEnvironment:
    def test_reads_both_sides(self, required_env, monkeypatch) -> None:
        monkeypatch.setenv("SYNC_SOURCE_HOST", "10.0.0.1")
        monkeypatch.setenv("SYNC_DESTINATION_PORT", "3307")
        monkeypatch.setenv("SYNC_DESTINATION_CONNECT_TIMEOUT_MS", "5000")
        cfg = load_config()
        assert cfg.source.host == "10.0.0.1"
        assert cfg.destination.port == 3307
        assert cfg.destination.connect_timeout_seconds == 5

    def test_skip_tables(self, required_env, monkeypatch) -> None:
        monkeypatch.setenv("SYNC_SKIP_TABLES", "audit_log, sessions,,")
        assert load_config().skip_tables == frozenset({"audit_log", "sessions"})

    def test_bad_integer(self, required_env, monkeypatch) -> None:
        monkeypatch.setenv("SYNC_BATCH_SIZE", "lots")
        with pytest.raises(ConfigError):
            load_config()

    def test_zero_batch_size_rejected(self, required_env, monkeypatch) -> None:
        monkeypatch.setenv("SYNC_BATCH_SIZE", "0")
        with pytest.raises(ConfigError):
            load_config()

    def test_allow_key_mismatch_flag(self, required_env, monkeypatch) -> None:
        monkeypatch.setenv("SYNC_ALLOW_KEY_MISMATCH", "yes")
        assert load_config().allow_key_mismatch is True


class TestOverridesAndFiles:
    def test_overrides_win(self, required_env, monkeypatch) -> None:
        monkeypatch.setenv("SYNC_BATCH_SIZE", "10")
        cfg = load_config(batch_size=25, batch_delay_ms=None)
        assert cfg.batch_size == 25
        assert cfg.batch_delay_ms == 50

    def test_env_file_loaded(self, tmp_path: Path, monkeypatch) -> None:
        # register the names so monkeypatch removes what load_dotenv sets
        for name in ("SYNC_SOURCE_DATABASE", "SYNC_DESTINATION_DATABASE", "SYNC_BATCH_SIZE"):
            monkeypatch.setenv(name, "placeholder")
            monkeypatch.delenv(name)
        env = tmp_path / ".env"
        env.write_text(
            "SYNC_SOURCE_DATABASE=a\nSYNC_DESTINATION_DATABASE=b\nSYNC_BATCH_SIZE=7\n",
            encoding="utf-8",
        )
        cfg = load_config(env_file=env)
        assert cfg.source.database == "a"
        assert cfg.batch_size == 7

    def test_missing_env_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(env_file=tmp_path / "nope.env")

    def test_config_is_frozen(self, required_env) -> None:
        cfg = load_config()
        with pytest.raises(Exception):
            cfg.batch_size = 5  # type: ignore[misc]


def test_parse_table_list_empty() -> None:
    assert parse_table_list("") == frozenset()
    assert parse_table_list(None) == frozenset()


def test_timeout_rounds_up() -> None:
    assert DatabaseConfig(connect_timeout_ms=1).connect_timeout_seconds == 1
    assert DatabaseConfig(connect_timeout_ms=60_000).connect_timeout_seconds == 60

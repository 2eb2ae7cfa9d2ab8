"""
config.py
---------
Centralised configuration management for the table sync tool.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed, validated settings as frozen dataclasses
so configuration is immutable at runtime.

Design Decision:
    The configuration is built exactly once by ``load_config()`` at process
    start and handed explicitly to every component. Nothing in the engine
    reads the environment on its own.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

_ENV_PREFIX = "SYNC_"
_DEFAULT_ENV_FILE = Path(__file__).parent / ".env"


class ConfigError(ValueError):
    """Raised when a configuration value is missing or malformed."""


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_table_list(raw: str | None) -> frozenset[str]:
    """Split a comma-separated table list, dropping blanks."""
    if not raw:
        return frozenset()
    return frozenset(t.strip() for t in raw.split(",") if t.strip())


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for one side of the sync (source or destination)."""
    host: str = "localhost"
    user: str = "root"
    password: str = ""
    database: str = ""
    port: int = 3306
    connect_timeout_ms: int = 60_000
    charset: str = "utf8mb4"

    @property
    def connect_timeout_seconds(self) -> int:
        # mysql-connector takes whole seconds
        return max(1, -(-self.connect_timeout_ms // 1000))

    @property
    def display_name(self) -> str:
        return f"{self.host}:{self.port}/{self.database}"

    @classmethod
    def from_env(cls, side: str) -> "DatabaseConfig":
        """
        Read ``SYNC_<SIDE>_*`` variables for one connection.

        Args:
            side: ``"SOURCE"`` or ``"DESTINATION"``.
        """
        prefix = f"{_ENV_PREFIX}{side.upper()}_"
        return cls(
            host=_env(prefix + "HOST", "localhost"),
            user=_env(prefix + "USER", "root"),
            password=_env(prefix + "PASSWORD", ""),
            database=_env(prefix + "DATABASE", ""),
            port=_env_int(prefix + "PORT", 3306),
            connect_timeout_ms=_env_int(prefix + "CONNECT_TIMEOUT_MS", 60_000),
            charset=_env(prefix + "CHARSET", "utf8mb4"),
        )

    def validate(self, side: str) -> None:
        if not self.database:
            raise ConfigError(f"{side} database name is not configured.")
        if not 0 < self.port < 65536:
            raise ConfigError(f"{side} port {self.port} is out of range.")
        if self.connect_timeout_ms <= 0:
            raise ConfigError(f"{side} connect timeout must be positive.")


@dataclass(frozen=True)
class SyncConfig:
    """Root configuration for one sync run."""
    source: DatabaseConfig = field(default_factory=DatabaseConfig)
    destination: DatabaseConfig = field(default_factory=DatabaseConfig)
    batch_size: int = 1000
    skip_tables: frozenset[str] = frozenset()
    batch_delay_ms: int = 50
    allow_key_mismatch: bool = False
    connect_retries: int = 3
    log_level: str = "INFO"
    log_file: str | None = None  # None → log to stderr only
    report_file: Path | None = None

    def validate(self) -> "SyncConfig":
        self.source.validate("Source")
        self.destination.validate("Destination")
        if self.batch_size < 1:
            raise ConfigError("Batch size must be at least 1.")
        if self.batch_delay_ms < 0:
            raise ConfigError("Batch delay cannot be negative.")
        if self.connect_retries < 1:
            raise ConfigError("Connect retries must be at least 1.")
        return self


def load_config(env_file: str | Path | None = None, **overrides: Any) -> SyncConfig:
    """
    Build, validate and return the sync configuration.

    Args:
        env_file:  Optional ``.env`` path. Defaults to ``.env`` next to this
                   module when it exists. Real environment variables win.
        overrides: Field values (e.g. from the command line) that replace
                   the environment-derived ones. ``None`` values are ignored.

    Returns:
        SyncConfig: Fully populated (and frozen) configuration object.

    Raises:
        ConfigError: If any value is missing or invalid.

    Example::

        cfg = load_config(batch_size=500)
        print(cfg.source.host)
    """
    path = Path(env_file) if env_file else _DEFAULT_ENV_FILE
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)
    elif env_file:
        raise ConfigError(f"Env file '{path}' does not exist.")

    report = _env(_ENV_PREFIX + "REPORT_FILE")
    config = SyncConfig(
        source=DatabaseConfig.from_env("SOURCE"),
        destination=DatabaseConfig.from_env("DESTINATION"),
        batch_size=_env_int(_ENV_PREFIX + "BATCH_SIZE", 1000),
        skip_tables=parse_table_list(_env(_ENV_PREFIX + "SKIP_TABLES")),
        batch_delay_ms=_env_int(_ENV_PREFIX + "BATCH_DELAY_MS", 50),
        allow_key_mismatch=_env_bool(_ENV_PREFIX + "ALLOW_KEY_MISMATCH"),
        connect_retries=_env_int(_ENV_PREFIX + "CONNECT_RETRIES", 3),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        log_file=_env("LOG_FILE"),
        report_file=Path(report) if report else None,
    )
    changes = {k: v for k, v in overrides.items() if v is not None}
    if changes:
        config = replace(config, **changes)
    return config.validate()


def get_log_level(name: str) -> int:
    """Convert a string log level to the logging module constant."""
    level = getattr(logging, name.upper(), None)
    if not isinstance(level, int):
        return logging.INFO
    return level

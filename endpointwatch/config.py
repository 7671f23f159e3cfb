"""Watcher configuration: timing constants, thresholds and environment overrides."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path

from endpointwatch.errors import ConfigError

ENV_PREFIX = "ENDPOINTWATCH_"
DATABASE_FILE_NAME = "database.txt"

# Default values.
DEFAULT_TICK_INTERVAL: float = 1.0
DEFAULT_CONNECT_FALLBACK: float = 60.0
DEFAULT_RETRY_DELAY_MIN: float = 10.0
DEFAULT_RETRY_DELAY_MAX: float = 30.0
DEFAULT_FIRST_RETRY_DELAY_MAX: float = 60.0
DEFAULT_ONLINE_RECONNECT_MIN: float = 5 * 60.0
DEFAULT_ONLINE_RECONNECT_JITTER: float = 5 * 60.0
DEFAULT_REMOVAL_WINDOW: float = 24 * 3600.0
DEFAULT_MIGRATE_ATTEMPTS_THRESHOLD: int = 2
DEFAULT_ALERT_ATTEMPTS_THRESHOLD: int = 10
DEFAULT_STAGGER_MODULO: int = 40
DEFAULT_LOCALITY_COUNT: int = 220
DEFAULT_DISCOVERY_INTERVAL: float = 11 * 60.0
DEFAULT_DISCOVERY_JITTER_MIN: float = 10.0
DEFAULT_DISCOVERY_JITTER_MAX: float = 120.0
DEFAULT_SWEEP_INTERVAL: float = 6 * 3600.0
DEFAULT_SWEEP_DELAY_MIN: float = 1.0
DEFAULT_SWEEP_DELAY_MAX: float = 5.0
DEFAULT_SUPPLEMENTAL_LOCALITY: int = 47
DEFAULT_SUPPLEMENTAL_EVERY: int = 10
DEFAULT_SESSION_TIMEOUT: float = 15.0

# Validation boundaries.
MIN_TICK_INTERVAL: float = 0.01
MAX_TICK_INTERVAL: float = 60.0


@dataclass(frozen=True)
class WatchConfig:
    """Timing and threshold configuration of the watcher.

    All durations are in seconds. The removal and migration thresholds are
    empirically tuned and kept overridable.
    """

    tick_interval: float = DEFAULT_TICK_INTERVAL
    connect_fallback: float = DEFAULT_CONNECT_FALLBACK
    retry_delay_min: float = DEFAULT_RETRY_DELAY_MIN
    retry_delay_max: float = DEFAULT_RETRY_DELAY_MAX
    first_retry_delay_max: float = DEFAULT_FIRST_RETRY_DELAY_MAX
    online_reconnect_min: float = DEFAULT_ONLINE_RECONNECT_MIN
    online_reconnect_jitter: float = DEFAULT_ONLINE_RECONNECT_JITTER
    removal_success_window: float = DEFAULT_REMOVAL_WINDOW
    removal_seen_window: float = DEFAULT_REMOVAL_WINDOW
    migrate_attempts_threshold: int = DEFAULT_MIGRATE_ATTEMPTS_THRESHOLD
    alert_attempts_threshold: int = DEFAULT_ALERT_ATTEMPTS_THRESHOLD
    stagger_modulo: int = DEFAULT_STAGGER_MODULO
    locality_count: int = DEFAULT_LOCALITY_COUNT
    discovery_interval: float = DEFAULT_DISCOVERY_INTERVAL
    discovery_jitter_min: float = DEFAULT_DISCOVERY_JITTER_MIN
    discovery_jitter_max: float = DEFAULT_DISCOVERY_JITTER_MAX
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    sweep_delay_min: float = DEFAULT_SWEEP_DELAY_MIN
    sweep_delay_max: float = DEFAULT_SWEEP_DELAY_MAX
    supplemental_locality: int | None = DEFAULT_SUPPLEMENTAL_LOCALITY
    supplemental_every: int = DEFAULT_SUPPLEMENTAL_EVERY
    session_timeout: float = DEFAULT_SESSION_TIMEOUT
    supplemental_realm: str = ""
    database_url: str = ""
    discovery_url: str = ""

    def validate(self) -> None:
        """Validate the configuration values."""
        if not MIN_TICK_INTERVAL <= self.tick_interval <= MAX_TICK_INTERVAL:
            msg = f"tick_interval must be between {MIN_TICK_INTERVAL} and {MAX_TICK_INTERVAL}"
            raise ValueError(msg)
        if self.retry_delay_min <= 0:
            msg = "retry_delay_min must be positive"
            raise ValueError(msg)
        if self.retry_delay_max <= self.retry_delay_min:
            msg = "retry_delay_max must be greater than retry_delay_min"
            raise ValueError(msg)
        if self.first_retry_delay_max < self.retry_delay_max:
            msg = "first_retry_delay_max must not be less than retry_delay_max"
            raise ValueError(msg)
        if self.connect_fallback <= 0:
            msg = "connect_fallback must be positive"
            raise ValueError(msg)
        if self.removal_success_window <= 0 or self.removal_seen_window <= 0:
            msg = "removal windows must be positive"
            raise ValueError(msg)
        if self.migrate_attempts_threshold < 0:
            msg = "migrate_attempts_threshold must not be negative"
            raise ValueError(msg)
        if self.alert_attempts_threshold < 2:
            msg = "alert_attempts_threshold must be at least 2"
            raise ValueError(msg)
        if self.stagger_modulo < 1:
            msg = "stagger_modulo must be at least 1"
            raise ValueError(msg)
        if self.locality_count < 1:
            msg = "locality_count must be at least 1"
            raise ValueError(msg)
        if self.discovery_jitter_max < self.discovery_jitter_min:
            msg = "discovery_jitter_max must not be less than discovery_jitter_min"
            raise ValueError(msg)
        if self.sweep_delay_max < self.sweep_delay_min:
            msg = "sweep_delay_max must not be less than sweep_delay_min"
            raise ValueError(msg)
        if self.sweep_interval < 0:
            msg = "sweep_interval must not be negative"
            raise ValueError(msg)
        if self.supplemental_every < 1:
            msg = "supplemental_every must be at least 1"
            raise ValueError(msg)
        if self.session_timeout <= 0:
            msg = "session_timeout must be positive"
            raise ValueError(msg)

    def require_database_url(self) -> str:
        """Return the store DSN or raise ConfigError when none is configured."""
        if not self.database_url:
            msg = (
                f"database connection string is required: set {ENV_PREFIX}DATABASE_URL "
                f"or put it in {DATABASE_FILE_NAME}"
            )
            raise ConfigError(msg)
        return self.database_url

    @classmethod
    def from_env(
        cls,
        environ: dict[str, str] | None = None,
        base_dir: Path | None = None,
    ) -> WatchConfig:
        """Build a configuration from ``ENDPOINTWATCH_<FIELD>`` variables.

        The database DSN falls back to the contents of ``database.txt`` in
        ``base_dir`` (the working directory by default).
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        for f in dataclasses.fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            overrides[f.name] = _coerce(f.name, raw, f.default, optional="None" in str(f.type))

        if not overrides.get("database_url"):
            path = (base_dir or Path.cwd()) / DATABASE_FILE_NAME
            if path.is_file():
                overrides["database_url"] = path.read_text(encoding="utf-8").strip()

        try:
            config = cls(**overrides)  # type: ignore[arg-type]
            config.validate()
        except ValueError as e:
            raise ConfigError(str(e)) from e
        return config


def _coerce(name: str, raw: str, default: object, *, optional: bool = False) -> object:
    """Convert an environment value to the type of the field default."""
    env_name = f"{ENV_PREFIX}{name.upper()}"
    if optional and raw.strip().lower() in ("", "none"):
        return None
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError:
        msg = f"invalid value for {env_name}: {raw!r}"
        raise ConfigError(msg) from None
    return raw


def default_watch_config() -> WatchConfig:
    """Return a configuration with default values."""
    return WatchConfig()

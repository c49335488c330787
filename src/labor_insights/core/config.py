"""Cache and analytics configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from labor_insights.domain.models import ShiftSchedule

ENV_PREFIX = "LABOR_INSIGHTS_"


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number value: {value}") from exc


@dataclass(frozen=True)
class InsightsConfig:
    """Immutable configuration object loaded from env or files."""

    store_backend: str = "sqlite"
    db_path: str = "labor_insights.db"
    refresh_interval_seconds: int = 60
    days_to_cache: int = 60
    parallel_fetches: int = 3
    day_shift_start_hour: int = 6
    night_shift_start_hour: int = 18
    store_retry_attempts: int = 3
    store_retry_delay: float = 0.1
    fetch_base_url: Optional[str] = None
    fetch_timeout_seconds: float = 30.0

    _ALLOWED_BACKENDS = {"sqlite", "memory"}
    _MAX_PARALLEL_FETCHES = 8

    def __post_init__(self) -> None:
        self.validate()

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.refresh_interval_seconds)

    @property
    def shift_schedule(self) -> ShiftSchedule:
        return ShiftSchedule(
            day_start_hour=self.day_shift_start_hour,
            night_start_hour=self.night_shift_start_hour,
        )

    @classmethod
    def from_env(cls) -> "InsightsConfig":
        defaults = cls()

        def env(name: str) -> str | None:
            return os.getenv(f"{ENV_PREFIX}{name}")

        return cls(
            store_backend=env("STORE_BACKEND") or defaults.store_backend,
            db_path=env("DB_PATH") or defaults.db_path,
            refresh_interval_seconds=_str_to_int(
                env("REFRESH_INTERVAL_SECONDS"), defaults.refresh_interval_seconds
            ),
            days_to_cache=_str_to_int(env("DAYS_TO_CACHE"), defaults.days_to_cache),
            parallel_fetches=_str_to_int(
                env("PARALLEL_FETCHES"), defaults.parallel_fetches
            ),
            day_shift_start_hour=_str_to_int(
                env("DAY_SHIFT_START_HOUR"), defaults.day_shift_start_hour
            ),
            night_shift_start_hour=_str_to_int(
                env("NIGHT_SHIFT_START_HOUR"), defaults.night_shift_start_hour
            ),
            store_retry_attempts=_str_to_int(
                env("STORE_RETRY_ATTEMPTS"), defaults.store_retry_attempts
            ),
            store_retry_delay=_str_to_float(
                env("STORE_RETRY_DELAY"), defaults.store_retry_delay
            ),
            fetch_base_url=env("FETCH_BASE_URL") or defaults.fetch_base_url,
            fetch_timeout_seconds=_str_to_float(
                env("FETCH_TIMEOUT_SECONDS"), defaults.fetch_timeout_seconds
            ),
        )

    @classmethod
    def from_file(cls, path: str) -> "InsightsConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def validate(self) -> None:
        if self.store_backend not in self._ALLOWED_BACKENDS:
            raise ValueError(
                f"store_backend must be one of {sorted(self._ALLOWED_BACKENDS)}"
            )
        if self.store_backend == "sqlite" and not self.db_path:
            raise ValueError("db_path is required for the sqlite backend")
        if self.refresh_interval_seconds < 0:
            raise ValueError("refresh_interval_seconds must be non-negative")
        if self.days_to_cache <= 0:
            raise ValueError("days_to_cache must be greater than zero")
        if not 1 <= self.parallel_fetches <= self._MAX_PARALLEL_FETCHES:
            raise ValueError(
                f"parallel_fetches must be between 1 and {self._MAX_PARALLEL_FETCHES}"
            )
        if self.store_retry_attempts < 1:
            raise ValueError("store_retry_attempts must be at least 1")
        if self.store_retry_delay < 0:
            raise ValueError("store_retry_delay must be non-negative")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be greater than zero")
        # raises on out-of-range or inverted shift boundaries
        self.shift_schedule

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return {
            f.name: data.get(f.name, getattr(defaults, f.name)) for f in fields(cls)
        }

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}

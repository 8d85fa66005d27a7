"""Configuration helpers for the review scheduler runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from src.srs.params import DEFAULT_TARGET_RETENTION, MAX_INTERVAL_DAYS, SchedulerConfig


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    target_retention: float
    max_interval_days: float
    strict: bool

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Recall Scheduler")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")

        try:
            target_retention = float(
                os.getenv("SRS_TARGET_RETENTION", str(DEFAULT_TARGET_RETENTION))
            )
        except ValueError as exc:  # pragma: no cover - defensive parsing
            raise RuntimeError("SRS_TARGET_RETENTION must be a number.") from exc
        if not 0.0 < target_retention < 1.0:
            raise RuntimeError("SRS_TARGET_RETENTION must be between 0 and 1 (exclusive).")

        try:
            max_interval_days = float(os.getenv("SRS_MAX_INTERVAL_DAYS", str(MAX_INTERVAL_DAYS)))
        except ValueError as exc:  # pragma: no cover - defensive parsing
            raise RuntimeError("SRS_MAX_INTERVAL_DAYS must be a number.") from exc
        if max_interval_days < 1.0:
            raise RuntimeError("SRS_MAX_INTERVAL_DAYS must be at least 1 day.")

        raw_strict = os.getenv("SRS_STRICT")
        if raw_strict is None:
            strict = app_env.lower() != "production"
        elif raw_strict.lower() in _TRUE_VALUES:
            strict = True
        elif raw_strict.lower() in _FALSE_VALUES:
            strict = False
        else:
            raise RuntimeError("SRS_STRICT must be a boolean flag (true/false).")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            target_retention=target_retention,
            max_interval_days=max_interval_days,
            strict=strict,
        )

    def scheduler_config(self) -> SchedulerConfig:
        """Scheduler configuration derived from these settings."""
        return SchedulerConfig(
            target_retention=self.target_retention,
            max_interval_days=self.max_interval_days,
            strict=self.strict,
        )

"""Tunable constants for the scheduling engine.

The growth and lapse coefficients are calibration choices. Any values accepted
by :class:`SchedulerConfig` keep the engine's guarantees: stability never drops
below ``min_stability``, difficulty stays inside its bounds, correct answers
strengthen a memory more when it was closer to being forgotten and less when
the card is harder.
"""

from __future__ import annotations

from dataclasses import dataclass


DEFAULT_TARGET_RETENTION = 0.9
MAX_INTERVAL_DAYS = 365.0

MIN_STABILITY = 0.1
MAX_STABILITY = 36500.0

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
DEFAULT_DIFFICULTY = 5.0

MINUTES_PER_DAY = 1440.0


@dataclass(frozen=True)
class SchedulerConfig:
    """Configuration bound to one :class:`~src.srs.scheduler.Scheduler` instance."""

    target_retention: float = DEFAULT_TARGET_RETENTION
    max_interval_days: float = MAX_INTERVAL_DAYS
    # Graduated intervals never go below this many days.
    min_interval_days: float = 0.5
    graduation_threshold_days: float = 1.0

    min_stability: float = MIN_STABILITY
    max_stability: float = MAX_STABILITY
    min_difficulty: float = MIN_DIFFICULTY
    max_difficulty: float = MAX_DIFFICULTY
    default_difficulty: float = DEFAULT_DIFFICULTY

    # Stability assigned by the very first answer, keyed by correctness.
    initial_stability_good: float = 3.0
    initial_stability_again: float = 0.5

    stability_growth: float = 2.0
    stability_damping: float = 0.2
    recall_bonus: float = 2.0
    lapse_multiplier: float = 0.5
    lapse_recall_penalty: float = 0.5

    difficulty_ease_step: float = 0.3
    difficulty_lapse_step: float = 1.5

    learning_step_minutes: float = 10.0
    learning_retry_minutes: float = 1.0
    relearning_step_minutes: float = 10.0

    strict: bool = True

    def __post_init__(self) -> None:
        if not 0.0 < self.target_retention < 1.0:
            raise ValueError("target_retention must be strictly between 0 and 1.")
        if self.min_stability <= 0.0:
            raise ValueError("min_stability must be positive.")
        if self.max_stability < self.min_stability:
            raise ValueError("max_stability must not be smaller than min_stability.")
        if not self.min_difficulty < self.max_difficulty:
            raise ValueError("min_difficulty must be smaller than max_difficulty.")
        if not self.min_difficulty <= self.default_difficulty <= self.max_difficulty:
            raise ValueError("default_difficulty must lie within the difficulty bounds.")
        if self.max_interval_days < self.min_interval_days or self.min_interval_days <= 0.0:
            raise ValueError("Interval bounds must be positive and ordered.")
        if self.graduation_threshold_days <= 0.0:
            raise ValueError("graduation_threshold_days must be positive.")
        for name in ("initial_stability_good", "initial_stability_again"):
            if getattr(self, name) < self.min_stability:
                raise ValueError(f"{name} must not be below min_stability.")
        for name in (
            "stability_growth",
            "stability_damping",
            "recall_bonus",
            "difficulty_ease_step",
            "difficulty_lapse_step",
        ):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must not be negative.")
        if not 0.0 < self.lapse_multiplier <= 1.0:
            raise ValueError("lapse_multiplier must be in (0, 1].")
        if not 0.0 <= self.lapse_recall_penalty < 1.0:
            raise ValueError("lapse_recall_penalty must be in [0, 1).")
        for name in ("learning_step_minutes", "learning_retry_minutes", "relearning_step_minutes"):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be positive.")

    def step_days(self, minutes: float) -> float:
        """Convert a learning step expressed in minutes into days."""
        return minutes / MINUTES_PER_DAY

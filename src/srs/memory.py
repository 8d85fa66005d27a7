"""Forgetting-curve math and memory-state updates.

Everything here is a pure function of its arguments.

Retrievability follows an exponential curve with stability as its half-life::

    R = exp(-elapsed_days / stability * ln 2)

The interval for a target retention is the inverse of that curve::

    scheduled_days = stability * log2(1 / target_retention)

After a correct answer stability grows by::

    S' = S * (1 + growth * ease(D) * S^-damping * exp(recall_bonus * (1 - R)))
    ease(D) = (D_max + 1 - D) / D_max

and after an incorrect answer it shrinks by::

    S' = S * lapse_multiplier * (1 - lapse_recall_penalty * R)

Difficulty moves by a fixed step scaled by the remaining distance to the bound
it is heading for, then is clamped to ``[D_min, D_max]``.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.srs.cards import Grade, ensure_aware
from src.srs.params import MIN_STABILITY, SchedulerConfig


SECONDS_PER_DAY = 86400.0
LN_2 = math.log(2.0)


@dataclass(frozen=True, slots=True)
class MemoryUpdate:
    """Stability and difficulty produced by one review."""

    stability: float
    difficulty: float


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``; NaN collapses to ``lower``."""
    if math.isnan(value):
        return lower
    return max(lower, min(upper, value))


def elapsed_days(last_review_at: Optional[datetime], now: datetime) -> float:
    """Days between the last review and ``now``, never negative."""
    if last_review_at is None:
        return 0.0
    delta = ensure_aware(now) - ensure_aware(last_review_at)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def retrievability(stability: float, elapsed: float, min_stability: float = MIN_STABILITY) -> float:
    """Probability of recall after ``elapsed`` days for a memory of the given stability.

    The result is always in ``(0, 1]``: it equals 1 when no time has passed and
    halves every ``stability`` days.
    """
    stability = max(min_stability, stability) if not math.isnan(stability) else min_stability
    elapsed = max(0.0, elapsed) if not math.isnan(elapsed) else 0.0
    value = math.exp(-elapsed / stability * LN_2)
    return max(value, sys.float_info.min)


def scheduled_days(stability: float, target_retention: float) -> float:
    """Days until retrievability decays to ``target_retention``."""
    if not 0.0 < target_retention < 1.0:
        raise ValueError("target_retention must be strictly between 0 and 1.")
    if math.isnan(stability) or stability <= 0.0:
        return 0.0
    return stability * math.log2(1.0 / target_retention)


def next_difficulty(difficulty: float, grade: Grade, config: SchedulerConfig) -> float:
    low, high = config.min_difficulty, config.max_difficulty
    span = high - low
    if grade is Grade.AGAIN:
        updated = difficulty + config.difficulty_lapse_step * (high - difficulty) / span
    else:
        updated = difficulty - config.difficulty_ease_step * (difficulty - low) / span
    return clamp(updated, low, high)


def stability_after_success(
    stability: float, difficulty: float, recall: float, config: SchedulerConfig
) -> float:
    """Grow stability after a correct answer.

    Lower retrievability at review time and lower difficulty both produce a
    larger gain. The gain is always positive.
    """
    difficulty = clamp(difficulty, config.min_difficulty, config.max_difficulty)
    recall = clamp(recall, 0.0, 1.0)
    ease = (config.max_difficulty + 1.0 - difficulty) / config.max_difficulty
    gain = (
        config.stability_growth
        * ease
        * math.pow(stability, -config.stability_damping)
        * math.exp(config.recall_bonus * (1.0 - recall))
    )
    return clamp(stability * (1.0 + gain), config.min_stability, config.max_stability)


def stability_after_lapse(stability: float, recall: float, config: SchedulerConfig) -> float:
    """Shrink stability after an incorrect answer, never below the floor."""
    recall = clamp(recall, 0.0, 1.0)
    factor = config.lapse_multiplier * (1.0 - config.lapse_recall_penalty * recall)
    return clamp(min(stability, stability * factor), config.min_stability, config.max_stability)


def update_memory(
    stability: float,
    difficulty: float,
    recall: float,
    grade: Grade,
    config: SchedulerConfig,
) -> MemoryUpdate:
    """Return the next stability and difficulty for a reviewed card."""
    stability = clamp(stability, config.min_stability, config.max_stability)
    difficulty = clamp(difficulty, config.min_difficulty, config.max_difficulty)

    if grade is Grade.AGAIN:
        new_stability = stability_after_lapse(stability, recall, config)
    else:
        new_stability = stability_after_success(stability, difficulty, recall, config)

    return MemoryUpdate(
        stability=new_stability,
        difficulty=next_difficulty(difficulty, grade, config),
    )

"""Review scheduling: the card state machine and its orchestrator."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from src.srs.cards import Card, CardState, Grade, ReviewOutcome, ensure_aware
from src.srs.errors import CorruptCardError, DeletedCardError
from src.srs.memory import clamp, elapsed_days, retrievability, scheduled_days, update_memory
from src.srs.params import SchedulerConfig


LOGGER = logging.getLogger(__name__)

DEFAULT_REPLAY_LIMIT = 50


@dataclass(frozen=True, slots=True)
class Transition:
    """Next lifecycle state and interval chosen for a reviewed card."""

    state: CardState
    scheduled_days: float
    lapsed: bool = False


@dataclass(frozen=True, slots=True)
class ReplayResult:
    """Card state rebuilt from a sequence of past outcomes."""

    card: Card
    applied: int


def transition(
    state: CardState,
    grade: Grade,
    candidate_days: float,
    config: SchedulerConfig,
) -> Transition:
    """Apply one step of the new/learning/review/relearning state machine.

    ``candidate_days`` is the interval the forgetting curve suggests for the
    updated stability. It is only used once a card graduates; learning and
    relearning sub-steps use the fixed step sizes from ``config``.
    """
    correct = grade is not Grade.AGAIN
    graduated = clamp(candidate_days, config.min_interval_days, config.max_interval_days)

    if state is CardState.NEW:
        minutes = config.learning_step_minutes if correct else config.learning_retry_minutes
        return Transition(CardState.LEARNING, config.step_days(minutes))

    if state is CardState.LEARNING:
        if not correct:
            return Transition(CardState.LEARNING, config.step_days(config.learning_retry_minutes))
        if candidate_days >= config.graduation_threshold_days:
            return Transition(CardState.REVIEW, graduated)
        return Transition(CardState.LEARNING, config.step_days(config.learning_step_minutes))

    if state is CardState.REVIEW:
        if not correct:
            return Transition(
                CardState.RELEARNING,
                config.step_days(config.relearning_step_minutes),
                lapsed=True,
            )
        return Transition(CardState.REVIEW, graduated)

    if state is CardState.RELEARNING:
        if correct and candidate_days >= config.graduation_threshold_days:
            return Transition(CardState.REVIEW, graduated)
        return Transition(CardState.RELEARNING, config.step_days(config.relearning_step_minutes))

    raise ValueError(f"Unknown card state: {state!r}")


class Scheduler:
    """Configuration-bound spaced-repetition scheduler.

    Instances hold no per-card state, so one scheduler can be shared across
    threads and tasks.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None) -> None:
        self.config = config or SchedulerConfig()

    def initialize_card(self, owner_id: str, card_id: Optional[str] = None) -> Card:
        """Return a never-reviewed card that is due immediately."""
        return Card(id=card_id or uuid.uuid4().hex, owner_id=owner_id)

    def review_card(self, card: Card, outcome: ReviewOutcome) -> Card:
        """Return ``card`` updated for the given answer.

        Raises :class:`DeletedCardError` for soft-deleted cards. In strict mode
        out-of-range stored values raise :class:`CorruptCardError`; otherwise
        they are clamped and logged.
        """
        if card.is_deleted:
            raise DeletedCardError(card.id)

        config = self.config
        answered_at = ensure_aware(outcome.answered_at)

        if card.is_new:
            stability = (
                config.initial_stability_good if outcome.is_correct else config.initial_stability_again
            )
            difficulty = config.default_difficulty
        else:
            current_stability, current_difficulty = self._checked_memory(card)
            recall = retrievability(
                current_stability,
                elapsed_days(card.last_review_at, answered_at),
                config.min_stability,
            )
            update = update_memory(
                current_stability, current_difficulty, recall, outcome.grade, config
            )
            stability, difficulty = update.stability, update.difficulty

        candidate = scheduled_days(stability, config.target_retention)
        step = transition(card.state, outcome.grade, candidate, config)

        LOGGER.debug(
            "Card %s moved %s -> %s (stability=%.3f, difficulty=%.3f, interval=%.4f days).",
            card.id,
            card.state.value,
            step.state.value,
            stability,
            difficulty,
            step.scheduled_days,
        )

        return replace(
            card,
            state=step.state,
            stability=stability,
            difficulty=difficulty,
            reps=card.reps + 1,
            lapses=card.lapses + (1 if step.lapsed else 0),
            last_review_at=answered_at,
            scheduled_days=step.scheduled_days,
            next_review_at=answered_at + timedelta(days=step.scheduled_days),
        )

    def replay(
        self,
        card: Card,
        outcomes: Iterable[ReviewOutcome],
        limit: int = DEFAULT_REPLAY_LIMIT,
    ) -> ReplayResult:
        """Apply past outcomes in chronological order, keeping the latest ``limit``."""
        history = sorted(outcomes, key=lambda outcome: ensure_aware(outcome.answered_at))
        if not history or limit <= 0:
            return ReplayResult(card=card, applied=0)

        applied = 0
        for outcome in history[-limit:]:
            card = self.review_card(card, outcome)
            applied += 1
        return ReplayResult(card=card, applied=applied)

    def current_retrievability(self, card: Card, now: Optional[datetime] = None) -> Optional[float]:
        """Recall probability right now, or ``None`` for cards without a review."""
        if card.is_new or card.stability is None or card.last_review_at is None:
            return None
        if now is None:
            now = datetime.now(timezone.utc)
        return retrievability(
            card.stability,
            elapsed_days(card.last_review_at, now),
            self.config.min_stability,
        )

    @staticmethod
    def is_due(card: Card, now: Optional[datetime] = None) -> bool:
        if card.is_deleted:
            return False
        if card.next_review_at is None:
            return True
        if now is None:
            now = datetime.now(timezone.utc)
        return ensure_aware(card.next_review_at) <= ensure_aware(now)

    def _checked_memory(self, card: Card) -> tuple[float, float]:
        config = self.config
        stability = self._checked_value(
            card,
            "stability",
            card.stability,
            config.min_stability,
            config.max_stability,
            fallback=config.min_stability,
        )
        difficulty = self._checked_value(
            card,
            "difficulty",
            card.difficulty,
            config.min_difficulty,
            config.max_difficulty,
            fallback=config.default_difficulty,
        )
        return stability, difficulty

    def _checked_value(
        self,
        card: Card,
        field: str,
        value: Optional[float],
        lower: float,
        upper: float,
        *,
        fallback: float,
    ) -> float:
        if value is not None and not math.isnan(value) and lower <= value <= upper:
            return value

        if self.config.strict:
            raise CorruptCardError(card.id, field, value)

        repaired = fallback if value is None or math.isnan(value) else clamp(value, lower, upper)
        LOGGER.warning(
            "Card %s has out-of-range %s %r; continuing with %r.", card.id, field, value, repaired
        )
        return repaired

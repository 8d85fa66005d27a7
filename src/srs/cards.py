"""Card memory-state records and review outcomes."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class CardState(str, Enum):
    """Lifecycle state of a card in the review state machine."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class Grade(str, Enum):
    """Rating attached to a review outcome.

    Answers are binary today, so only AGAIN and GOOD are produced.
    """

    AGAIN = "again"
    GOOD = "good"


def ensure_aware(moment: datetime) -> datetime:
    """Return ``moment`` with UTC attached when it was stored without a timezone."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """A single answer submitted by the learner."""

    grade: Grade
    answered_at: datetime

    @classmethod
    def from_answer(cls, is_correct: bool, answered_at: datetime) -> ReviewOutcome:
        """Build an outcome from a correct/incorrect answer."""
        return cls(grade=Grade.GOOD if is_correct else Grade.AGAIN, answered_at=answered_at)

    @property
    def is_correct(self) -> bool:
        return self.grade is not Grade.AGAIN


@dataclass(frozen=True, slots=True)
class Card:
    """Memory state of one schedulable question.

    ``stability`` and ``difficulty`` stay ``None`` until the first review moves
    the card out of ``CardState.NEW``. A missing ``next_review_at`` means the
    card is due immediately.
    """

    id: str
    owner_id: str
    state: CardState = CardState.NEW
    stability: Optional[float] = None
    difficulty: Optional[float] = None
    reps: int = 0
    lapses: int = 0
    last_review_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None
    scheduled_days: float = 0.0
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_new(self) -> bool:
        return self.state is CardState.NEW


def soft_delete(card: Card, now: Optional[datetime] = None) -> Card:
    """Hide a card from scheduling without touching its memory state."""
    if now is None:
        now = datetime.now(timezone.utc)
    return replace(card, deleted_at=now)


def restore(card: Card) -> Card:
    """Make a soft-deleted card visible again with its memory state intact."""
    return replace(card, deleted_at=None)

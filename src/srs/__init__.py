"""Spaced-repetition scheduling engine."""

from .cards import Card, CardState, Grade, ReviewOutcome, restore, soft_delete
from .errors import CorruptCardError, DeletedCardError, SchedulingError
from .memory import retrievability, scheduled_days
from .params import SchedulerConfig
from .queue import CardStats, DueSet, card_stats, due_cards, next_card
from .scheduler import ReplayResult, Scheduler

__all__ = [
    "Card",
    "CardState",
    "CardStats",
    "CorruptCardError",
    "DeletedCardError",
    "DueSet",
    "Grade",
    "ReplayResult",
    "ReviewOutcome",
    "Scheduler",
    "SchedulerConfig",
    "SchedulingError",
    "card_stats",
    "due_cards",
    "next_card",
    "restore",
    "retrievability",
    "scheduled_days",
    "soft_delete",
]

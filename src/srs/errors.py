"""Exceptions raised by the scheduling engine."""

from __future__ import annotations

from typing import Optional


class SchedulingError(ValueError):
    """Base class for invariant violations detected while scheduling a card."""


class DeletedCardError(SchedulingError):
    """Raised when a soft-deleted card is passed to the scheduler."""

    def __init__(self, card_id: str) -> None:
        super().__init__(f"Card {card_id} is soft-deleted and cannot be reviewed.")
        self.card_id = card_id


class CorruptCardError(SchedulingError):
    """Raised when stored memory-state values fall outside their documented bounds."""

    def __init__(self, card_id: str, field: str, value: Optional[float]) -> None:
        super().__init__(f"Card {card_id} has out-of-range {field}: {value!r}.")
        self.card_id = card_id
        self.field = field
        self.value = value

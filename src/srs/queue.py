"""Review queue selection over a snapshot of an owner's cards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, NamedTuple, Optional

from src.srs.cards import Card, CardState, ensure_aware


class DueSet(NamedTuple):
    """Cards eligible for review, in presentation order, with bucket counts."""

    due: list[Card]
    new_count: int
    due_count: int


@dataclass(slots=True)
class CardStats:
    """Summary of an owner's collection, ignoring soft-deleted cards."""

    total_cards: int
    new_count: int
    learning_count: int
    mature_count: int
    due_count: int
    next_review_at: Optional[datetime]


def due_cards(cards: Iterable[Card], now: Optional[datetime] = None) -> DueSet:
    """Select the cards that can be reviewed at ``now``.

    Previously scheduled cards come first, most overdue first, followed by
    never-scheduled cards. Ties are broken by card id.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    now = ensure_aware(now)

    scheduled: list[Card] = []
    fresh: list[Card] = []
    for card in cards:
        if card.is_deleted:
            continue
        if card.next_review_at is None:
            fresh.append(card)
        elif ensure_aware(card.next_review_at) <= now:
            scheduled.append(card)

    scheduled.sort(key=lambda card: (ensure_aware(card.next_review_at), card.id))
    fresh.sort(key=lambda card: card.id)

    return DueSet(due=scheduled + fresh, new_count=len(fresh), due_count=len(scheduled))


def next_card(cards: Iterable[Card], now: Optional[datetime] = None) -> Optional[Card]:
    """Return the card to present next, or ``None`` when nothing is due."""
    selection = due_cards(cards, now)
    return selection.due[0] if selection.due else None


def card_stats(cards: Iterable[Card], now: Optional[datetime] = None) -> CardStats:
    if now is None:
        now = datetime.now(timezone.utc)
    now = ensure_aware(now)

    total = new = learning = mature = due = 0
    upcoming: Optional[datetime] = None
    for card in cards:
        if card.is_deleted:
            continue
        total += 1
        if card.state is CardState.NEW:
            new += 1
        elif card.state in (CardState.LEARNING, CardState.RELEARNING):
            learning += 1
        else:
            mature += 1

        if card.next_review_at is None:
            continue
        next_review_at = ensure_aware(card.next_review_at)
        if next_review_at <= now:
            due += 1
        elif upcoming is None or next_review_at < upcoming:
            upcoming = next_review_at

    return CardStats(
        total_cards=total,
        new_count=new,
        learning_count=learning,
        mature_count=mature,
        due_count=due,
        next_review_at=upcoming,
    )

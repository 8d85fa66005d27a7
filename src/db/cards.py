"""Helpers for persisting cards and their review history."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.srs.cards import Card, CardState, ensure_aware

from . import CardRecord, Interaction


class CardNotFoundError(LookupError):
    """Raised when a card does not exist or belongs to another owner."""

    def __init__(self, card_id: str) -> None:
        super().__init__(f"Card {card_id} not found or unauthorized.")
        self.card_id = card_id


class StaleCardError(RuntimeError):
    """Raised when a card changed between read and write."""

    def __init__(self, card_id: str) -> None:
        super().__init__(f"Card {card_id} was modified concurrently; reload and retry.")
        self.card_id = card_id


def _utc(moment: Optional[datetime]) -> Optional[datetime]:
    # sqlite keeps the wall-clock time and drops the offset.
    return ensure_aware(moment).astimezone(timezone.utc) if moment is not None else None


def _aware(moment: Optional[datetime]) -> Optional[datetime]:
    return ensure_aware(moment) if moment is not None else None


def to_card(record: CardRecord) -> Card:
    """Build the scheduler's view of a stored card."""
    return Card(
        id=record.id,
        owner_id=record.owner_id,
        state=CardState(record.state),
        stability=record.stability,
        difficulty=record.difficulty,
        reps=record.reps,
        lapses=record.lapses,
        last_review_at=_aware(record.last_review_at),
        next_review_at=_aware(record.next_review_at),
        scheduled_days=record.scheduled_days,
        deleted_at=_aware(record.deleted_at),
    )


def apply_card(record: CardRecord, card: Card) -> None:
    """Copy every memory-state field of ``card`` onto ``record``."""
    record.owner_id = card.owner_id
    record.state = card.state.value
    record.stability = card.stability
    record.difficulty = card.difficulty
    record.reps = card.reps
    record.lapses = card.lapses
    record.last_review_at = _utc(card.last_review_at)
    record.next_review_at = _utc(card.next_review_at)
    record.scheduled_days = card.scheduled_days
    record.deleted_at = _utc(card.deleted_at)


async def create_card(
    session: AsyncSession,
    card: Card,
    now: Optional[datetime] = None,
) -> CardRecord:
    """Persist a freshly initialised card."""
    if now is None:
        now = datetime.now(timezone.utc)
    now = _utc(now)

    record = CardRecord(id=card.id, created_at=now, updated_at=now)
    apply_card(record, card)
    session.add(record)
    await session.flush()
    return record


async def get_card(session: AsyncSession, card_id: str) -> Optional[CardRecord]:
    return await session.get(CardRecord, card_id)


async def get_owned_card(session: AsyncSession, owner_id: str, card_id: str) -> CardRecord:
    """Return a card only when it belongs to ``owner_id``."""
    record = await session.get(CardRecord, card_id)
    if record is None or record.owner_id != owner_id:
        raise CardNotFoundError(card_id)
    return record


async def list_cards_for_owner(
    session: AsyncSession,
    owner_id: str,
    include_deleted: bool = False,
) -> list[CardRecord]:
    """Return an owner's cards, soonest due first."""
    stmt = (
        select(CardRecord)
        .where(CardRecord.owner_id == owner_id)
        .order_by(CardRecord.next_review_at, CardRecord.id)
    )
    if not include_deleted:
        stmt = stmt.where(CardRecord.deleted_at.is_(None))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def save_reviewed_card(
    session: AsyncSession,
    record: CardRecord,
    card: Card,
    *,
    is_correct: bool,
    now: Optional[datetime] = None,
) -> None:
    """Write a scheduling decision back, failing if the row moved underneath us."""
    if now is None:
        now = datetime.now(timezone.utc)
    now = _utc(now)

    apply_card(record, card)
    record.attempt_count = (record.attempt_count or 0) + 1
    record.correct_count = (record.correct_count or 0) + (1 if is_correct else 0)
    record.last_attempted_at = now
    record.updated_at = now

    try:
        await session.flush()
    except StaleDataError as exc:
        raise StaleCardError(card.id) from exc


async def record_interaction(
    session: AsyncSession,
    owner_id: str,
    card_id: str,
    is_correct: bool,
    user_answer: str = "",
    attempted_at: Optional[datetime] = None,
    time_spent_ms: Optional[int] = None,
    session_id: Optional[str] = None,
) -> Interaction:
    """Append an answer to the card's review history."""
    if attempted_at is None:
        attempted_at = datetime.now(timezone.utc)
    attempted_at = _utc(attempted_at)

    interaction = Interaction(
        owner_id=owner_id,
        card_id=card_id,
        user_answer=user_answer,
        is_correct=is_correct,
        attempted_at=attempted_at,
        time_spent_ms=time_spent_ms,
        session_id=session_id,
    )
    session.add(interaction)
    await session.flush()
    return interaction


async def list_interactions(
    session: AsyncSession,
    owner_id: str,
    card_id: str,
    limit: Optional[int] = 10,
) -> list[Interaction]:
    """Return the most recent answers for a card, newest first."""
    stmt = (
        select(Interaction)
        .where(Interaction.owner_id == owner_id, Interaction.card_id == card_id)
        .order_by(Interaction.attempted_at.desc(), Interaction.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _owned_records(
    session: AsyncSession, owner_id: str, card_ids: Sequence[str]
) -> list[CardRecord]:
    if not card_ids:
        return []
    stmt = select(CardRecord).where(
        CardRecord.owner_id == owner_id,
        CardRecord.id.in_(list(card_ids)),
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def soft_delete_cards(
    session: AsyncSession,
    owner_id: str,
    card_ids: Sequence[str],
    now: Optional[datetime] = None,
) -> int:
    """Hide cards from the review queue. Returns how many were newly deleted."""
    if now is None:
        now = datetime.now(timezone.utc)
    now = _utc(now)

    changed = 0
    for record in await _owned_records(session, owner_id, card_ids):
        if record.deleted_at is None:
            record.deleted_at = now
            changed += 1
    if changed:
        await session.flush()
    return changed


async def restore_cards(
    session: AsyncSession,
    owner_id: str,
    card_ids: Sequence[str],
) -> int:
    """Bring soft-deleted cards back with their schedule untouched."""
    changed = 0
    for record in await _owned_records(session, owner_id, card_ids):
        if record.deleted_at is not None:
            record.deleted_at = None
            changed += 1
    if changed:
        await session.flush()
    return changed

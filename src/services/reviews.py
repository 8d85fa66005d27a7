"""Review workflow tying the scheduler to the card store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.cards import (
    StaleCardError,
    create_card,
    get_owned_card,
    list_cards_for_owner,
    list_interactions,
    record_interaction,
    restore_cards,
    save_reviewed_card,
    soft_delete_cards,
    to_card,
)
from src.srs import (
    Card,
    CardState,
    CardStats,
    DueSet,
    ReplayResult,
    ReviewOutcome,
    Scheduler,
    card_stats,
    due_cards,
    next_card,
)
from src.srs.errors import DeletedCardError
from src.srs.scheduler import DEFAULT_REPLAY_LIMIT


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ReviewResult:
    """Outcome of answering a card, ready to show to the learner."""

    card: Card
    previous_state: CardState
    next_review_at: Optional[datetime]
    scheduled_days: float
    retrievability: Optional[float]


class ReviewService:
    """Loads, schedules and persists cards on behalf of an authorised owner.

    Every method opens its own transaction. The scheduler is shared and holds
    no per-card state.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._scheduler = scheduler
        self._session_factory = session_factory

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    async def add_card(self, owner_id: str, now: Optional[datetime] = None) -> Card:
        card = self._scheduler.initialize_card(owner_id)
        async with self._session_factory() as session:
            async with session.begin():
                await create_card(session, card, now=now)
        LOGGER.info("Created card %s for owner %s.", card.id, owner_id)
        return card

    async def submit_answer(
        self,
        owner_id: str,
        card_id: str,
        is_correct: bool,
        user_answer: str = "",
        time_spent_ms: Optional[int] = None,
        session_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewResult:
        """Schedule the next review of a card and log the answer.

        Raises ``CardNotFoundError`` for missing or foreign cards,
        ``DeletedCardError`` for soft-deleted cards and ``StaleCardError`` when
        another writer updated the card first.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        outcome = ReviewOutcome.from_answer(is_correct, now)

        async with self._session_factory() as session:
            async with session.begin():
                record = await get_owned_card(session, owner_id, card_id)
                card = to_card(record)
                if card.is_deleted:
                    raise DeletedCardError(card_id)

                updated = self._scheduler.review_card(card, outcome)
                try:
                    await save_reviewed_card(
                        session, record, updated, is_correct=is_correct, now=now
                    )
                except StaleCardError:
                    LOGGER.warning(
                        "Card %s changed concurrently for owner %s; review not saved.",
                        card_id,
                        owner_id,
                    )
                    raise
                await record_interaction(
                    session,
                    owner_id,
                    card_id,
                    is_correct,
                    user_answer=user_answer,
                    attempted_at=now,
                    time_spent_ms=time_spent_ms,
                    session_id=session_id,
                )

        LOGGER.info(
            "Owner %s answered card %s %s: %s -> %s, next review in %.3f days.",
            owner_id,
            card_id,
            "correctly" if is_correct else "incorrectly",
            card.state.value,
            updated.state.value,
            updated.scheduled_days,
        )

        return ReviewResult(
            card=updated,
            previous_state=card.state,
            next_review_at=updated.next_review_at,
            scheduled_days=updated.scheduled_days,
            retrievability=self._scheduler.current_retrievability(updated, now),
        )

    async def load_cards(self, owner_id: str, include_deleted: bool = False) -> list[Card]:
        async with self._session_factory() as session:
            records = await list_cards_for_owner(session, owner_id, include_deleted=include_deleted)
            return [to_card(record) for record in records]

    async def due_queue(self, owner_id: str, now: Optional[datetime] = None) -> DueSet:
        return due_cards(await self.load_cards(owner_id), now)

    async def next_card(self, owner_id: str, now: Optional[datetime] = None) -> Optional[Card]:
        return next_card(await self.load_cards(owner_id), now)

    async def card_stats(self, owner_id: str, now: Optional[datetime] = None) -> CardStats:
        return card_stats(await self.load_cards(owner_id), now)

    async def delete_cards(
        self,
        owner_id: str,
        card_ids: Sequence[str],
        now: Optional[datetime] = None,
    ) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                changed = await soft_delete_cards(session, owner_id, card_ids, now=now)
        LOGGER.info("Soft-deleted %s card(s) for owner %s.", changed, owner_id)
        return changed

    async def restore_cards(self, owner_id: str, card_ids: Sequence[str]) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                changed = await restore_cards(session, owner_id, card_ids)
        LOGGER.info("Restored %s card(s) for owner %s.", changed, owner_id)
        return changed

    async def rebuild_card(
        self,
        owner_id: str,
        card_id: str,
        limit: int = DEFAULT_REPLAY_LIMIT,
    ) -> ReplayResult:
        """Recompute a card's memory state from its logged answers.

        The replay starts from a fresh card, so only the latest ``limit``
        answers contribute. The stored card is not modified.
        """
        async with self._session_factory() as session:
            record = await get_owned_card(session, owner_id, card_id)
            interactions = await list_interactions(session, owner_id, card_id, limit=None)

        outcomes = [
            ReviewOutcome.from_answer(interaction.is_correct, interaction.attempted_at)
            for interaction in interactions
        ]
        blank = self._scheduler.initialize_card(record.owner_id, card_id=record.id)
        return self._scheduler.replay(blank, outcomes, limit=limit)

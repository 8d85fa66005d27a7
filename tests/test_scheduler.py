from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone

import pytest

from src.srs import (
    Card,
    CardState,
    CorruptCardError,
    DeletedCardError,
    ReviewOutcome,
    Scheduler,
    SchedulerConfig,
    soft_delete,
)
from src.srs.cards import Grade
from src.srs.params import MIN_STABILITY
from src.srs.scheduler import transition


T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
TEN_MINUTES = timedelta(minutes=10)


def _answer(is_correct: bool, at: datetime) -> ReviewOutcome:
    return ReviewOutcome.from_answer(is_correct, at)


def _review_card(**overrides) -> Card:
    values = dict(
        id="card-1",
        owner_id="owner-1",
        state=CardState.REVIEW,
        stability=10.0,
        difficulty=5.0,
        reps=5,
        lapses=1,
        last_review_at=T0 - timedelta(days=10),
        next_review_at=T0,
        scheduled_days=10.0,
    )
    values.update(overrides)
    return Card(**values)


def test_initialize_card_is_new_and_due() -> None:
    scheduler = Scheduler()
    card = scheduler.initialize_card("owner-1")

    assert card.state is CardState.NEW
    assert card.owner_id == "owner-1"
    assert card.id
    assert card.reps == 0
    assert card.lapses == 0
    assert card.stability is None
    assert card.difficulty is None
    assert card.last_review_at is None
    assert card.next_review_at is None
    assert card.scheduled_days == 0.0
    assert scheduler.is_due(card, T0)


def test_initialize_card_keeps_supplied_id() -> None:
    card = Scheduler().initialize_card("owner-1", card_id="q-42")

    assert card.id == "q-42"


def test_first_correct_answer_enters_learning() -> None:
    scheduler = Scheduler()
    card = scheduler.review_card(scheduler.initialize_card("owner-1"), _answer(True, T0))

    assert card.state is CardState.LEARNING
    assert card.reps == 1
    assert card.lapses == 0
    assert card.last_review_at == T0
    assert card.next_review_at == T0 + TEN_MINUTES
    assert card.next_review_at > T0
    assert card.difficulty == scheduler.config.default_difficulty
    assert card.stability == scheduler.config.initial_stability_good


def test_first_incorrect_answer_retries_quickly() -> None:
    scheduler = Scheduler()
    card = scheduler.review_card(scheduler.initialize_card("owner-1"), _answer(False, T0))

    assert card.state is CardState.LEARNING
    assert card.reps == 1
    assert card.lapses == 0
    assert card.next_review_at == T0 + timedelta(minutes=1)
    assert card.stability == scheduler.config.initial_stability_again


def test_learning_card_graduates_after_consistent_recall() -> None:
    scheduler = Scheduler()
    card = scheduler.review_card(scheduler.initialize_card("owner-1"), _answer(True, T0))

    moment = T0
    for _ in range(5):
        if card.state is CardState.REVIEW:
            break
        assert card.state is CardState.LEARNING
        moment = moment + TEN_MINUTES
        card = scheduler.review_card(card, _answer(True, moment))

    assert card.state is CardState.REVIEW
    assert card.scheduled_days >= scheduler.config.graduation_threshold_days
    assert card.next_review_at == moment + timedelta(days=card.scheduled_days)
    assert card.lapses == 0


def test_incorrect_answer_while_learning_stays_in_learning() -> None:
    scheduler = Scheduler()
    card = scheduler.review_card(scheduler.initialize_card("owner-1"), _answer(True, T0))

    failed = scheduler.review_card(card, _answer(False, T0 + TEN_MINUTES))

    assert failed.state is CardState.LEARNING
    assert failed.scheduled_days == pytest.approx(1.0 / 1440.0)
    assert failed.lapses == 0
    assert failed.reps == 2
    assert failed.stability < card.stability
    assert failed.difficulty > card.difficulty


def test_mature_card_lapse_moves_to_relearning() -> None:
    scheduler = Scheduler()
    card = _review_card()

    lapsed = scheduler.review_card(card, _answer(False, T0))

    assert lapsed.state is CardState.RELEARNING
    assert lapsed.lapses == card.lapses + 1
    assert lapsed.stability < 10.0
    assert lapsed.difficulty > card.difficulty
    assert lapsed.next_review_at == T0 + TEN_MINUTES


def test_failing_again_while_relearning_does_not_count_another_lapse() -> None:
    scheduler = Scheduler()
    lapsed = scheduler.review_card(_review_card(), _answer(False, T0))

    again = scheduler.review_card(lapsed, _answer(False, T0 + TEN_MINUTES))

    assert again.state is CardState.RELEARNING
    assert again.lapses == lapsed.lapses
    assert again.stability <= lapsed.stability


def test_relearning_card_returns_to_review() -> None:
    scheduler = Scheduler()
    card = scheduler.review_card(_review_card(), _answer(False, T0))
    lapses = card.lapses

    moment = T0
    for _ in range(5):
        if card.state is CardState.REVIEW:
            break
        assert card.state is CardState.RELEARNING
        moment = moment + TEN_MINUTES
        card = scheduler.review_card(card, _answer(True, moment))

    assert card.state is CardState.REVIEW
    assert card.lapses == lapses
    assert card.scheduled_days >= scheduler.config.graduation_threshold_days


def test_review_interval_grows_but_respects_maximum() -> None:
    scheduler = Scheduler()
    card = _review_card(stability=30000.0, difficulty=1.0, last_review_at=T0 - timedelta(days=400))

    reviewed = scheduler.review_card(card, _answer(True, T0))

    assert reviewed.state is CardState.REVIEW
    assert reviewed.scheduled_days == scheduler.config.max_interval_days
    assert reviewed.stability <= scheduler.config.max_stability
    assert reviewed.next_review_at == T0 + timedelta(days=365)


def test_review_interval_has_a_minimum() -> None:
    scheduler = Scheduler()
    card = _review_card(stability=0.2, difficulty=10.0, last_review_at=T0)

    reviewed = scheduler.review_card(card, _answer(True, T0))

    assert reviewed.state is CardState.REVIEW
    assert reviewed.scheduled_days == scheduler.config.min_interval_days


@pytest.mark.parametrize("state", list(CardState))
@pytest.mark.parametrize("is_correct", [True, False])
def test_state_machine_is_closed(state: CardState, is_correct: bool) -> None:
    scheduler = Scheduler()
    if state is CardState.NEW:
        card = scheduler.initialize_card("owner-1")
    else:
        card = _review_card(state=state, stability=2.0, last_review_at=T0 - timedelta(days=1))

    reviewed = scheduler.review_card(card, _answer(is_correct, T0))

    assert reviewed.state in set(CardState)
    assert reviewed.state is not CardState.NEW
    assert reviewed.reps == card.reps + 1
    assert reviewed.scheduled_days > 0.0
    assert reviewed.next_review_at > T0


def test_transition_rejects_unknown_states() -> None:
    with pytest.raises(ValueError):
        transition("archived", Grade.GOOD, 3.0, SchedulerConfig())  # type: ignore[arg-type]


def test_lapses_count_review_to_relearning_edges_only() -> None:
    scheduler = Scheduler()
    rng = random.Random(7)
    card = scheduler.initialize_card("owner-1")
    moment = T0
    expected_lapses = 0

    for _ in range(300):
        moment = moment + timedelta(hours=rng.choice([0.2, 6, 24, 72]))
        is_correct = rng.random() < 0.7
        previous = card
        card = scheduler.review_card(card, _answer(is_correct, moment))
        if previous.state is CardState.REVIEW and card.state is CardState.RELEARNING:
            expected_lapses += 1
        assert card.lapses >= previous.lapses
        assert card.stability >= MIN_STABILITY

    assert card.reps == 300
    assert card.lapses == expected_lapses


def test_stability_never_collapses_under_repeated_failures() -> None:
    scheduler = Scheduler()
    card = _review_card()
    moment = T0
    for _ in range(100):
        card = scheduler.review_card(card, _answer(False, moment))
        moment = moment + TEN_MINUTES

    assert card.stability >= MIN_STABILITY
    assert card.stability == card.stability  # not NaN
    assert card.difficulty <= scheduler.config.max_difficulty
    assert card.lapses == 2


def test_reviewing_deleted_card_is_rejected() -> None:
    scheduler = Scheduler()
    card = soft_delete(_review_card(), T0)

    with pytest.raises(DeletedCardError):
        scheduler.review_card(card, _answer(True, T0))


def test_strict_scheduler_rejects_corrupt_memory_state() -> None:
    scheduler = Scheduler(SchedulerConfig(strict=True))

    with pytest.raises(CorruptCardError) as excinfo:
        scheduler.review_card(_review_card(stability=-5.0), _answer(True, T0))

    assert excinfo.value.field == "stability"


def test_lenient_scheduler_clamps_corrupt_memory_state(caplog: pytest.LogCaptureFixture) -> None:
    scheduler = Scheduler(SchedulerConfig(strict=False))
    card = _review_card(stability=-5.0, difficulty=42.0)

    with caplog.at_level(logging.WARNING, logger="src.srs.scheduler"):
        reviewed = scheduler.review_card(card, _answer(True, T0))

    assert reviewed.stability >= MIN_STABILITY
    assert reviewed.difficulty <= scheduler.config.max_difficulty
    assert "out-of-range stability" in caplog.text
    assert "out-of-range difficulty" in caplog.text


def test_naive_answer_time_is_treated_as_utc() -> None:
    scheduler = Scheduler()
    card = scheduler.review_card(
        scheduler.initialize_card("owner-1"),
        _answer(True, datetime(2025, 1, 1, 12, 0)),
    )

    assert card.last_review_at == T0


def test_out_of_order_answer_is_scheduled_from_answer_time() -> None:
    scheduler = Scheduler()
    card = _review_card(last_review_at=T0 + timedelta(days=1))

    reviewed = scheduler.review_card(card, _answer(True, T0))

    assert reviewed.last_review_at == T0
    assert reviewed.stability > card.stability


def test_replay_applies_outcomes_chronologically() -> None:
    scheduler = Scheduler()
    outcomes = [
        _answer(True, T0),
        _answer(True, T0 + TEN_MINUTES),
        _answer(False, T0 + timedelta(days=2)),
        _answer(True, T0 + timedelta(days=3)),
    ]
    blank = scheduler.initialize_card("owner-1", card_id="card-1")

    expected = blank
    for outcome in outcomes:
        expected = scheduler.review_card(expected, outcome)

    result = scheduler.replay(blank, reversed(outcomes))

    assert result.applied == 4
    assert result.card == expected


def test_replay_keeps_only_latest_outcomes() -> None:
    scheduler = Scheduler()
    outcomes = [_answer(True, T0 + timedelta(days=day)) for day in range(10)]
    blank = scheduler.initialize_card("owner-1")

    result = scheduler.replay(blank, outcomes, limit=3)

    assert result.applied == 3
    assert result.card.reps == 3
    assert result.card.last_review_at == T0 + timedelta(days=9)


def test_replay_without_outcomes_is_a_no_op() -> None:
    scheduler = Scheduler()
    blank = scheduler.initialize_card("owner-1")

    assert scheduler.replay(blank, []).applied == 0
    assert scheduler.replay(blank, [_answer(True, T0)], limit=0).card == blank


def test_current_retrievability() -> None:
    scheduler = Scheduler()
    new_card = scheduler.initialize_card("owner-1")
    reviewed = _review_card(last_review_at=T0)

    assert scheduler.current_retrievability(new_card, T0) is None
    assert scheduler.current_retrievability(reviewed, T0) == 1.0
    assert scheduler.current_retrievability(reviewed, T0 + timedelta(days=10)) == pytest.approx(0.5)


def test_is_due() -> None:
    card = _review_card(next_review_at=T0)

    assert Scheduler.is_due(card, T0)
    assert not Scheduler.is_due(card, T0 - timedelta(seconds=1))
    assert not Scheduler.is_due(soft_delete(card, T0), T0)

from __future__ import annotations

from collections import deque
from typing import List, Tuple

import pytest

from src.app import AppSettings, bootstrap, build_scheduler
from src.db import run_migrations_if_needed
from src.main import _summarize_all, summarize_queue
from src.services import ReviewService


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_ENV", "SRS_TARGET_RETENTION", "SRS_MAX_INTERVAL_DAYS", "SRS_STRICT"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings.from_env()

    assert settings.app_env == "development"
    assert settings.target_retention == 0.9
    assert settings.max_interval_days == 365.0
    assert settings.strict is True


def test_settings_are_lenient_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("SRS_STRICT", raising=False)

    assert AppSettings.from_env().strict is False

    monkeypatch.setenv("SRS_STRICT", "yes")
    assert AppSettings.from_env().strict is True


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SRS_TARGET_RETENTION", "1.2"),
        ("SRS_TARGET_RETENTION", "0"),
        ("SRS_MAX_INTERVAL_DAYS", "0.5"),
        ("SRS_STRICT", "maybe"),
    ],
)
def test_settings_reject_invalid_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError):
        AppSettings.from_env()


def test_build_scheduler_uses_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SRS_TARGET_RETENTION", "0.85")
    monkeypatch.setenv("SRS_MAX_INTERVAL_DAYS", "180")
    monkeypatch.setenv("SRS_STRICT", "false")

    scheduler = build_scheduler(AppSettings.from_env())

    assert scheduler.config.target_retention == 0.85
    assert scheduler.config.max_interval_days == 180.0
    assert scheduler.config.strict is False


def test_run_migrations_if_needed_invokes_upgrade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Tuple[object, str]] = []

    def fake_upgrade(config: object, target: str) -> None:
        calls.append((config, target))

    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "true")
    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert calls and calls[0][1] == "head"


def test_run_migrations_if_needed_skips_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "false")

    calls: deque[str] = deque()

    def fake_upgrade(_: object, target: str) -> None:
        calls.append(target)

    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert not calls


def test_bootstrap_builds_review_service(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: deque[str] = deque()
    monkeypatch.setattr("src.app.runtime.run_migrations_if_needed", lambda: calls.append("migrate"))
    monkeypatch.setenv("SRS_TARGET_RETENTION", "0.8")
    sentinel_factory = object()

    service = bootstrap(AppSettings.from_env(), session_factory=sentinel_factory)  # type: ignore[arg-type]

    assert isinstance(service, ReviewService)
    assert service.scheduler.config.target_retention == 0.8
    assert list(calls) == ["migrate"]


def test_bootstrap_propagates_migration_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken() -> None:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("src.app.runtime.run_migrations_if_needed", broken)

    with pytest.raises(RuntimeError, match="database unavailable"):
        bootstrap(AppSettings.from_env(), session_factory=object())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_summarize_queue_reports_counts(review_service) -> None:
    await review_service.add_card("owner-1")
    await review_service.add_card("owner-1")

    summary = await summarize_queue(review_service, "owner-1")

    assert summary.startswith("owner-1: 0 due, 2 new, 2 total")
    assert summary.endswith("next scheduled review none")


@pytest.mark.asyncio
async def test_summarize_all_disposes_engine(review_service, monkeypatch: pytest.MonkeyPatch) -> None:
    disposed: deque[str] = deque()

    class FakeEngine:
        async def dispose(self) -> None:
            disposed.append("disposed")

    monkeypatch.setattr("src.main.get_engine", lambda: FakeEngine())
    await review_service.add_card("owner-1")

    lines = await _summarize_all(review_service, ["owner-1", "owner-2"])

    assert [line.split(":")[0] for line in lines] == ["owner-1", "owner-2"]
    assert list(disposed) == ["disposed"]

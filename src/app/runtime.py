"""Bootstrap logic for the review scheduler."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.app.settings import AppSettings
from src.db import get_session_factory, run_migrations_if_needed
from src.services import ReviewService
from src.srs import Scheduler


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_scheduler(settings: AppSettings) -> Scheduler:
    """Create the single configuration-bound scheduler for this process."""
    return Scheduler(settings.scheduler_config())


def bootstrap(
    settings: AppSettings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> ReviewService:
    """Prepare logging, the database schema and the review service."""
    _configure_logging(settings.log_level)

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    if session_factory is None:
        session_factory = get_session_factory()

    scheduler = build_scheduler(settings)
    LOGGER.info(
        "%s ready in %s mode (target retention %.2f, max interval %.0f days, strict=%s).",
        settings.app_name,
        settings.app_env,
        settings.target_retention,
        settings.max_interval_days,
        settings.strict,
    )
    return ReviewService(scheduler, session_factory)

"""
Scheduled retention sweep: purge inactive sessions and expired usage rows.
"""

import asyncio
import logging
from typing import Callable

from src.app.services.activity_tracker import NullActivityTracker
from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sessions import SessionManager
from src.app.use_cases.usage import RateLimiter

logger = logging.getLogger(__name__)


async def run_maintenance(
    uow_factory: Callable[[], UnitOfWork],
    config_provider: RateLimitConfigProvider,
) -> dict:
    session_manager = SessionManager(
        uow_factory(),
        NullActivityTracker(),
        AuditTrail(uow_factory),
    )
    deleted_sessions = (await session_manager.cleanup_expired()).value
    usage = (await RateLimiter(uow_factory(), config_provider).reset_daily_usage()).value
    return {"deleted_sessions": deleted_sessions, "deleted_usage_rows": usage.deleted_rows}


async def maintenance_scheduler(
    interval_minutes: int,
    uow_factory: Callable[[], UnitOfWork],
    config_provider: RateLimitConfigProvider,
) -> None:
    logger.info(f"Maintenance scheduler started, interval {interval_minutes} min")
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            summary = await run_maintenance(uow_factory, config_provider)
            logger.info(f"Scheduled maintenance done: {summary}")
        except Exception:
            logger.exception("Scheduled maintenance failed")

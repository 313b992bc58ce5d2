"""Periodic job: expire PENDING claims past their deadline."""

from __future__ import annotations

import logging

from app.core.database import async_session_factory
from app.services.claims import expire_stale_claims as _expire

logger = logging.getLogger(__name__)


async def expire_stale_claims(ctx: dict) -> dict:
    """Cron task: sweep every overdue PENDING claim to EXPIRED."""
    async with async_session_factory() as session:
        expired = await _expire(session)
    if expired:
        logger.info("Claim expiry sweep: %d claims expired", expired)
    else:
        logger.info("Claim expiry sweep: nothing to expire")
    return {"expired": expired}

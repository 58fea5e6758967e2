"""
Reliability Score Jobs

Recomputes courier scores whose stored row is missing or older than the
staleness window, in batches.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

from app.config import settings

logger = logging.getLogger(__name__)


async def refresh_stale_scores() -> Dict[str, Any]:
    """
    Refresh stale reliability scores.

    Runs every SCORE_REFRESH_INTERVAL_MINUTES and handles at most
    SCORE_REFRESH_BATCH_SIZE couriers per run.
    """
    logger.info("Starting reliability score refresh...")
    start_time = datetime.now(timezone.utc)

    # Import here to avoid circular imports
    from app.database import get_db_session
    from app.services.reliability_service import ReliabilityService

    async with get_db_session() as session:
        service = ReliabilityService(session)
        stats = await service.refresh_stale_scores(
            max_age=timedelta(hours=settings.SCORE_STALE_AFTER_HOURS),
            limit=settings.SCORE_REFRESH_BATCH_SIZE,
        )

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        f"Score refresh completed in {duration:.2f}s: "
        f"{stats['refreshed']} refreshed, {stats['failed']} failed"
    )
    return {**stats, "duration_seconds": duration}

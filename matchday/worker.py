"""
arq Worker Configuration.

This module defines the background task worker. Its only scheduled job sweeps
expired WebAuthn challenges so abandoned ceremonies do not accumulate.

Run the worker with:
    arq matchday.worker.WorkerSettings
"""

import logging
from datetime import UTC, datetime
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from matchday.config import get_settings

logger = logging.getLogger(__name__)

# Sweep cadence in minutes
CLEANUP_INTERVAL_MINUTES = 5


async def cleanup_expired_challenges_task(_ctx: dict[str, Any]) -> int:
    """
    Delete every WebAuthn challenge whose expiry has passed.

    Running it again right away deletes nothing, and it is safe to run while
    ceremonies are in flight: unexpired challenges are never touched.

    Args:
        _ctx: arq context (contains redis connection, job info, etc.)

    Returns:
        Number of challenges deleted
    """
    from matchday.core.database import get_db_context
    from matchday.repositories.challenge import ChallengeRepository

    now = datetime.now(UTC)

    async with get_db_context() as db:
        deleted_count = await ChallengeRepository(db).delete_expired(now)
        await db.commit()

    logger.info(
        f"Challenge cleanup complete: deleted {deleted_count} expired challenges",
        extra={
            "deleted_count": deleted_count,
            "cutoff": now.isoformat(),
        },
    )
    return deleted_count


class WorkerSettings:
    """
    arq worker settings.

    Configures the worker's connection to Redis, task functions,
    concurrency limits, timeouts, and retry behavior.
    """

    functions = [cleanup_expired_challenges_task]

    cron_jobs = [
        cron(
            cleanup_expired_challenges_task,
            minute=set(range(0, 60, CLEANUP_INTERVAL_MINUTES)),
            run_at_startup=True,
        ),
    ]

    # Redis connection settings (loaded from environment)
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)

    max_jobs = 10

    job_timeout = 60

    retry_jobs = True

    max_tries = 3

"""
ARQ Background Worker
Retries job side effects (activity records, notifications, customer emails)
left pending in the outbox.
"""

import logging
import os
from dataclasses import replace

from arq.connections import RedisSettings
from arq.cron import cron

from . import models  # noqa: F401 - register all tables
from .config import OUTBOX_BATCH_SIZE, REDIS_URL
from .database import SessionLocal
from .services.outbox import OutboxDispatcher

logger = logging.getLogger(__name__)


def get_redis_settings(url: str = REDIS_URL) -> RedisSettings:
    """Redis settings for the worker; a rediss:// URL turns on TLS"""
    return replace(RedisSettings.from_dsn(url), conn_timeout=15, conn_retry_delay=1)


async def dispatch_outbox_task(ctx, limit: int = OUTBOX_BATCH_SIZE):
    """
    Cron job that retries pending outbox events.
    Events that keep failing are marked failed after OUTBOX_MAX_ATTEMPTS.
    """
    db = SessionLocal()
    try:
        summary = await OutboxDispatcher(db).dispatch_pending(limit)
        if summary["sent"] or summary["pending"] or summary["failed"]:
            logger.info(f"📤 Outbox dispatch complete: {summary}")
        return summary
    except Exception as e:
        logger.error(f"❌ Outbox dispatch failed: {str(e)}")
        raise
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [dispatch_outbox_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "300"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))  # Keep job results for 1 hour

    health_check_interval = 60

    cron_jobs = [
        # Every 5 minutes
        cron(dispatch_outbox_task, minute=set(range(0, 60, 5))),
    ]

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")

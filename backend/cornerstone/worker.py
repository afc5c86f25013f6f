"""
ARQ Worker for background scheduling jobs.

This worker handles:
- reschedule_all: Full reschedule of every work item in one transaction
- daily_reschedule (cron): The same sweep once a day, so not-started work
  whose start has slipped into the past moves up to today and milestone
  completions recorded outside the API are picked up

Usage:
    arq cornerstone.worker.WorkerSettings
"""

from urllib.parse import urlparse

from arq import cron
from arq.connections import RedisSettings

from cornerstone.config import get_settings
from cornerstone.services.reschedule import reschedule_all
from cornerstone.logging_config import setup_logging, get_logger

# Initialize logging for the worker
setup_logging()
logger = get_logger(__name__)

settings = get_settings()


def parse_redis_url(url: str) -> RedisSettings:
    """Parse redis URL into RedisSettings."""
    # redis://localhost:6380/2 -> host=localhost, port=6380, database=2
    parsed = urlparse(url)
    database = parsed.path.lstrip("/")
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(database) if database else 0,
        password=parsed.password,
    )


async def daily_reschedule(ctx: dict) -> str:
    """Cron entry point for the nightly sweep."""
    logger.info("Running daily reschedule")
    result = await reschedule_all(ctx)
    logger.info(f"Daily reschedule finished: {result}")
    return result


async def startup(ctx: dict) -> None:
    """Worker startup."""
    logger.info("ARQ Worker starting up...")
    logger.info(f"Redis: {settings.redis_url}")


async def shutdown(ctx: dict) -> None:
    """Worker shutdown - cleanup."""
    logger.info("ARQ Worker shutting down...")


class WorkerSettings:
    """ARQ Worker configuration."""

    functions = [reschedule_all]
    cron_jobs = [cron(daily_reschedule, hour={settings.daily_reschedule_hour}, minute={0})]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = parse_redis_url(settings.redis_url)
    max_jobs = 1  # One full reschedule at a time
    job_timeout = 300  # 5 minutes max per job

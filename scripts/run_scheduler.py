"""Standalone scheduler process for the nightly Strava sync."""
from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from filelock import FileLock
from sqlalchemy import select

from runboard.config import get_settings
from runboard.database import run_migrations, session_scope
from runboard.exceptions import RunboardError
from runboard.logging_config import configure_logging
from runboard.models.database_models import Profile
from runboard.services.activity_matcher import RecommendationStore
from runboard.services.sync_service import SyncService


logger = logging.getLogger("scheduler")


def acquire_lock(lock_path: Path) -> FileLock:
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_path))
    lock.acquire(timeout=0)
    return lock


def perform_daily_sync() -> Dict[str, Dict[str, Any]]:
    """
    Sync every profile holding a Strava token, then expire stale recommendations.

    Each profile is synced in its own transaction so one failure does not
    undo the others.

    Returns:
        dict: mapping user id -> sync summary (or the error that stopped it)
    """
    summary: Dict[str, Dict[str, Any]] = {}

    with session_scope() as db:
        user_ids = db.scalars(
            select(Profile.id).where(Profile.strava_access_token.is_not(None))
        ).all()
    logger.info("Daily sync for %d connected profile(s)", len(user_ids))

    for user_id in user_ids:
        try:
            with session_scope() as db:
                summary[user_id] = SyncService(db).sync(user_id).to_dict()
        except RunboardError as exc:
            logger.warning("Sync skipped for %s: %s", user_id, exc)
            summary[user_id] = {"error": str(exc)}

    with session_scope() as db:
        expired = RecommendationStore(db).expire_stale()
    logger.info("Expired %d stale recommendation(s) across all profiles", expired)
    return summary


async def run_daily_job() -> None:
    start = datetime.now(timezone.utc)
    logger.info("Daily scheduler job started")

    try:
        sync_summary = await asyncio.to_thread(perform_daily_sync)
    except Exception:
        logger.exception("Daily sync failed")
        return

    elapsed = (datetime.now(timezone.utc) - start).total_seconds()
    logger.info("Daily scheduler job finished in %.2fs", elapsed)
    for user_id, details in sync_summary.items():
        logger.debug("Detail %s -> %s", user_id, details)


async def main(run_now: bool) -> None:
    configure_logging()
    settings = get_settings()
    run_migrations()

    lock_path = settings.scheduler_lock_file
    lock = acquire_lock(lock_path)
    logger.info("Acquired scheduler lock at %s", lock_path)
    try:
        if run_now:
            await run_daily_job()
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            run_daily_job,
            "cron",
            hour=settings.scheduler_hour,
            minute=settings.scheduler_minute,
        )
        scheduler.start()

        logger.info(
            "Scheduler running (cron %02d:%02d). Press Ctrl+C to exit.",
            settings.scheduler_hour,
            settings.scheduler_minute,
        )
        await asyncio.Event().wait()
    finally:
        lock.release()
        logger.info("Released scheduler lock at %s", lock_path)
        if lock_path.exists():
            lock_path.unlink()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run scheduler process")
    parser.add_argument("--run-now", action="store_true", help="Execute job immediately and exit")
    args = parser.parse_args()

    try:
        asyncio.run(main(run_now=args.run_now))
    except TimeoutError:
        logger.warning("Scheduler already running; exiting.")

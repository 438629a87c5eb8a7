"""One-off Strava sync for a single profile."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from runboard.config import get_settings
from runboard.database import run_migrations, session_scope
from runboard.exceptions import RunboardError
from runboard.logging_config import configure_logging
from runboard.services.sync_service import SyncResult, SyncService


logger = logging.getLogger("scripts.sync_data")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync Strava running activities for one profile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Incremental sync (best efforts only for new activities)
  python scripts/sync_data.py --user-id alice

  # Re-download best efforts for every activity
  python scripts/sync_data.py --user-id alice --refresh-efforts
        """
    )
    parser.add_argument("--user-id", required=True, help="Profile identifier to sync")
    parser.add_argument(
        "--refresh-efforts",
        action="store_true",
        help="Fetch best efforts for all activities, not only new ones"
    )
    return parser.parse_args()


def sync_user(user_id: str, refresh_best_efforts: bool = False) -> SyncResult:
    """Run a sync in its own session and commit the outcome."""

    with session_scope() as db:
        return SyncService(db).sync(user_id, refresh_best_efforts=refresh_best_efforts)


def main() -> None:
    args = parse_args()

    configure_logging()
    get_settings()
    run_migrations()

    logger.info("🔄 Syncing Strava activities for %s", args.user_id)
    try:
        result = sync_user(args.user_id, refresh_best_efforts=args.refresh_efforts)
    except RunboardError as exc:
        logger.error("❌ Sync failed: %s", exc)
        sys.exit(1)

    logger.info(
        "✅ Sync complete | running=%d created=%d updated=%d best_efforts=%s records=%d",
        result.running,
        result.created,
        result.updated,
        result.best_efforts_status,
        result.personal_records,
    )
    for warning in result.warnings:
        logger.warning("⚠️  %s", warning)


if __name__ == "__main__":
    main()

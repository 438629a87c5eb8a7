"""Router exposing basic system endpoints."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter

from runboard.config import get_settings
from runboard.dependencies import CurrentUser, DbSession
from runboard.models.database_models import Profile
from runboard.services.strava_service import RateLimitTracker


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/status")
async def get_status() -> dict[str, str]:
    """Return a minimal status payload."""
    return {"status": "online"}


@router.get("/sync-status")
async def get_sync_status(user_id: CurrentUser, db: DbSession) -> dict:
    """
    Check the staleness of the user's synced data.

    Returns:
        dict: {
            "last_sync": ISO timestamp or None,
            "is_stale": bool,
            "staleness_threshold_hours": int,
            "needs_sync": bool,
            "strava_connected": bool
        }
    """
    staleness_threshold_hours = 1
    profile = db.get(Profile, user_id)
    connected = bool(profile and profile.strava_access_token)
    last_sync = profile.last_sync_at if profile else None

    if last_sync is None:
        return {
            "last_sync": None,
            "is_stale": True,
            "staleness_threshold_hours": staleness_threshold_hours,
            "needs_sync": connected,
            "strava_connected": connected,
        }

    if last_sync.tzinfo is None:
        last_sync = last_sync.replace(tzinfo=timezone.utc)
    threshold = datetime.now(timezone.utc) - timedelta(hours=staleness_threshold_hours)
    is_stale = last_sync < threshold

    logger.debug("Sync status for %s | last_sync=%s stale=%s", user_id, last_sync.isoformat(), is_stale)
    return {
        "last_sync": last_sync.isoformat(),
        "is_stale": is_stale,
        "staleness_threshold_hours": staleness_threshold_hours,
        "needs_sync": is_stale and connected,
        "strava_connected": connected,
    }


@router.get("/strava-quota")
async def get_strava_quota() -> dict:
    """Requests used today against the Strava daily budget."""
    settings = get_settings()
    return RateLimitTracker(settings.strava_daily_limit, settings.strava_safety_margin).status()

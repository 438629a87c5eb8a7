"""Strava connection status for the current profile.

The OAuth code exchange and token refresh happen outside this service; it
only stores the resulting tokens and reports whether they are usable.
"""
from __future__ import annotations

import logging
import time

from fastapi import APIRouter

from runboard.dependencies import CurrentUser, DbSession
from runboard.models.database_models import Profile
from runboard.models.schemas import StravaConnection


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _connection_status(profile: Profile) -> dict:
    connected = bool(profile.strava_access_token)
    expired = bool(
        connected
        and profile.strava_expires_at is not None
        and profile.strava_expires_at <= int(time.time())
    )
    return {
        "connected": connected,
        "expired": expired,
        "athlete_id": profile.strava_athlete_id,
        "expires_at": profile.strava_expires_at,
        "last_sync": profile.last_sync_at.isoformat() if profile.last_sync_at else None,
    }


@router.get("/strava")
async def get_strava_status(user_id: CurrentUser, db: DbSession) -> dict:
    return _connection_status(db.get(Profile, user_id))


@router.put("/strava")
async def connect_strava(payload: StravaConnection, user_id: CurrentUser, db: DbSession) -> dict:
    profile = db.get(Profile, user_id)
    profile.strava_athlete_id = payload.athlete_id
    profile.strava_access_token = payload.access_token
    profile.strava_refresh_token = payload.refresh_token
    profile.strava_expires_at = payload.expires_at
    if payload.display_name:
        profile.display_name = payload.display_name
    db.flush()
    logger.info("Stored Strava tokens for %s (athlete %s)", user_id, payload.athlete_id)
    return _connection_status(profile)


@router.delete("/strava")
async def disconnect_strava(user_id: CurrentUser, db: DbSession) -> dict:
    profile = db.get(Profile, user_id)
    profile.strava_access_token = None
    profile.strava_refresh_token = None
    profile.strava_expires_at = None
    db.flush()
    logger.info("Disconnected Strava for %s", user_id)
    return _connection_status(profile)

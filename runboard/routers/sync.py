"""Manual Strava sync endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from runboard.dependencies import CurrentUser, DbSession, to_http_exception
from runboard.exceptions import RunboardError
from runboard.services.sync_service import SyncService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.post("/now")
def sync_now(user_id: CurrentUser, db: DbSession, refresh_best_efforts: bool = False) -> dict:
    """
    Fetch the user's Strava activities and rebuild derived data.

    Returns:
        dict: counts of fetched/created/updated activities, best-effort
        status (complete, partial or failed), personal records and
        recommendation matches.
    """

    try:
        result = SyncService(db).sync(user_id, refresh_best_efforts=refresh_best_efforts)
        return result.to_dict()
    except RunboardError as err:
        db.rollback()
        logger.warning("Sync failed for %s: %s", user_id, err)
        raise to_http_exception(err)
    except Exception as e:
        db.rollback()
        logger.exception("Unexpected sync failure for %s", user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to sync activities: {str(e)}"
        )

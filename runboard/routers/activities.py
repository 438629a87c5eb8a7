"""Activity list, detail, effort rating and deletion endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from runboard.dependencies import CurrentUser, DbSession
from runboard.models.schemas import ActivityDetail, ActivityPage, ActivitySummary, EffortUpdate
from runboard.services import activity_store
from runboard.services.activity_store import ActivityNotFoundError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("", response_model=ActivityPage)
async def list_activities(
    user_id: CurrentUser,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=200),
    search: str | None = None,
):
    """Paginated activities, newest first, optionally filtered by name."""

    total, rows = activity_store.list_activities(db, user_id, page, page_size, search)
    return ActivityPage(
        total=total,
        page=page,
        page_size=page_size,
        activities=[ActivitySummary.model_validate(row) for row in rows],
    )


@router.get("/{activity_id}", response_model=ActivityDetail)
async def get_activity(activity_id: int, user_id: CurrentUser, db: DbSession):
    try:
        return ActivityDetail.model_validate(activity_store.get_activity(db, user_id, activity_id))
    except ActivityNotFoundError:
        raise HTTPException(status_code=404, detail="Activity not found")


@router.patch("/{activity_id}/effort", response_model=ActivitySummary)
async def update_effort(activity_id: int, update: EffortUpdate, user_id: CurrentUser, db: DbSession):
    """Record perceived effort (1-10) and notes; sync never overwrites these."""

    try:
        activity = activity_store.update_effort(db, user_id, activity_id, update)
        return ActivitySummary.model_validate(activity)
    except ActivityNotFoundError:
        raise HTTPException(status_code=404, detail="Activity not found")


@router.delete("/{activity_id}")
async def delete_activity(activity_id: int, user_id: CurrentUser, db: DbSession) -> dict:
    """
    Delete an activity and everything derived from it.

    Best efforts and linked recommendations are removed, personal records
    recomputed and cached statistics invalidated.
    """

    try:
        activity_store.delete_activity(db, user_id, activity_id)
    except ActivityNotFoundError:
        raise HTTPException(status_code=404, detail="Activity not found")
    except Exception as e:
        db.rollback()
        logger.exception("Failed to delete activity %s", activity_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete activity: {str(e)}"
        )

    return {"status": "success", "message": "Activity deleted"}

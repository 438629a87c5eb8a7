"""Personal records endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from runboard.dependencies import CurrentUser, DbSession
from runboard.models.schemas import PersonalRecordResponse
from runboard.services import records


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["records"])


def _serialize(record) -> dict:
    payload = PersonalRecordResponse.model_validate(record).model_dump(mode="json")
    payload["time_formatted"] = records.format_duration(record.time_seconds)
    payload["pace"] = records.format_pace(record.distance_meters, record.time_seconds)
    return payload


@router.get("")
async def list_records(user_id: CurrentUser, db: DbSession) -> dict:
    rows = records.list_personal_records(db, user_id)
    return {"count": len(rows), "records": [_serialize(row) for row in rows]}


@router.post("/recompute")
async def recompute_records(user_id: CurrentUser, db: DbSession) -> dict:
    """Rebuild records from stored best efforts without calling Strava."""

    rows = records.replace_personal_records(db, user_id)
    return {"count": len(rows), "records": [_serialize(row) for row in rows]}


@router.get("/history")
async def get_distance_history(
    user_id: CurrentUser,
    db: DbSession,
    distance: float = Query(gt=0, description="Best-effort distance in meters"),
) -> dict:
    """Every best effort at one distance with improvement over the previous best."""

    history = records.distance_history(db, user_id, distance)
    return {
        "distance": distance,
        "label": records.distance_label(distance),
        "count": len(history),
        "history": history,
    }

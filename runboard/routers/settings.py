"""Training settings and monthly goal endpoints (upsert on save)."""
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Query

from runboard.dependencies import CurrentUser, DbSession
from runboard.models.schemas import MonthlyGoalPayload, TrainingSettingsPayload
from runboard.services import settings_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("/training", response_model=TrainingSettingsPayload)
async def get_training_settings(user_id: CurrentUser, db: DbSession):
    """Stored settings, or defaults when the user never saved any."""

    return settings_service.training_settings_or_default(db, user_id)


@router.put("/training", response_model=TrainingSettingsPayload)
async def save_training_settings(payload: TrainingSettingsPayload, user_id: CurrentUser, db: DbSession):
    row = settings_service.save_training_settings(db, user_id, payload)
    return TrainingSettingsPayload.model_validate(row)


@router.get("/goal")
async def get_monthly_goal(
    user_id: CurrentUser,
    db: DbSession,
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
) -> dict:
    today = date.today()
    goal = settings_service.get_monthly_goal(db, user_id, year or today.year, month or today.month)
    return {"year": goal.year, "month": goal.month, "goal_km": goal.goal_km}


@router.put("/goal")
async def set_monthly_goal(payload: MonthlyGoalPayload, user_id: CurrentUser, db: DbSession) -> dict:
    goal = settings_service.set_monthly_goal(db, user_id, payload.goal_km, payload.year, payload.month)
    return {"year": goal.year, "month": goal.month, "goal_km": goal.goal_km}

"""Dashboard statistics endpoints."""
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Query

from runboard.dependencies import CurrentUser, DbSession
from runboard.services.stats_service import StatsService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


def _parse_day(value: str | None) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")


@router.get("/dashboard")
async def get_dashboard(user_id: CurrentUser, db: DbSession, day: str | None = None) -> dict:
    """Month-to-date and year-to-date totals, longest run of the month and latest run."""

    return StatsService(db).dashboard(user_id, _parse_day(day))


@router.get("/monthly")
async def get_monthly(
    user_id: CurrentUser,
    db: DbSession,
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
) -> dict:
    today = date.today()
    return StatsService(db).monthly(user_id, year or today.year, month or today.month)


@router.get("/yearly")
async def get_yearly(
    user_id: CurrentUser,
    db: DbSession,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> dict:
    """Year totals with a per-month breakdown for the calendar view."""

    return StatsService(db).yearly(user_id, year or date.today().year)


@router.get("/weekly")
async def get_weekly(user_id: CurrentUser, db: DbSession, day: str | None = None) -> dict:
    """Monday-to-Sunday kilometres for the week containing ``day``."""

    return StatsService(db).weekly(user_id, _parse_day(day))


@router.get("/goal")
async def get_goal_progress(user_id: CurrentUser, db: DbSession) -> dict:
    return StatsService(db).goal(user_id)

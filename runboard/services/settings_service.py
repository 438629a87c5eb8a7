"""Per-user training settings and monthly goals (upsert on save)."""
from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from runboard.config import get_settings
from runboard.models.database_models import MonthlyGoal, TrainingSettings
from runboard.models.schemas import TrainingSettingsPayload


logger = logging.getLogger(__name__)


def get_training_settings(session: Session, user_id: str) -> TrainingSettings | None:
    return session.scalars(
        select(TrainingSettings).where(TrainingSettings.user_id == user_id)
    ).first()


def training_settings_or_default(session: Session, user_id: str) -> TrainingSettingsPayload:
    row = get_training_settings(session, user_id)
    if row is None:
        return TrainingSettingsPayload()
    return TrainingSettingsPayload.model_validate(row)


def save_training_settings(
    session: Session, user_id: str, payload: TrainingSettingsPayload
) -> TrainingSettings:
    """Insert or replace the user's single settings row."""

    row = get_training_settings(session, user_id)
    if row is None:
        row = TrainingSettings(user_id=user_id)
        session.add(row)

    for field, value in payload.model_dump().items():
        setattr(row, field, value)

    session.flush()
    logger.info("Saved training settings for %s | race=%s date=%s", user_id, row.target_race, row.target_date)
    return row


def get_monthly_goal(session: Session, user_id: str, year: int, month: int) -> MonthlyGoal:
    """Return the goal for a month, creating it with the default on first read."""

    goal = session.scalars(
        select(MonthlyGoal).where(
            MonthlyGoal.user_id == user_id,
            MonthlyGoal.year == year,
            MonthlyGoal.month == month,
        )
    ).first()
    if goal is None:
        goal = MonthlyGoal(
            user_id=user_id,
            year=year,
            month=month,
            goal_km=get_settings().default_monthly_goal_km,
        )
        session.add(goal)
        session.flush()
        logger.debug("Created default monthly goal for %s %04d-%02d", user_id, year, month)
    return goal


def set_monthly_goal(
    session: Session,
    user_id: str,
    goal_km: float,
    year: int | None = None,
    month: int | None = None,
) -> MonthlyGoal:
    today = date.today()
    goal = get_monthly_goal(session, user_id, year or today.year, month or today.month)
    goal.goal_km = goal_km
    session.flush()
    logger.info("Monthly goal for %s %04d-%02d set to %.1f km", user_id, goal.year, goal.month, goal_km)
    return goal

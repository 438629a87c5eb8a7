"""Queries and user edits over stored activities."""
from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, selectinload

from runboard.exceptions import RunboardError
from runboard.models.database_models import Activity, AIRecommendation
from runboard.models.schemas import EffortUpdate
from runboard.services.records import replace_personal_records
from runboard.services.stats_service import StatsService


logger = logging.getLogger(__name__)


class ActivityNotFoundError(RunboardError):
    pass


def list_activities(
    session: Session,
    user_id: str,
    page: int = 1,
    page_size: int = 20,
    search: str | None = None,
) -> tuple[int, list[Activity]]:
    """One page of the user's activities, newest first, with the total count."""

    stmt = select(Activity).where(Activity.user_id == user_id)
    if search:
        term = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        stmt = stmt.where(Activity.name.ilike(f"%{term}%", escape="\\"))

    total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = session.scalars(
        stmt.order_by(Activity.start_date.desc(), Activity.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return total, list(rows)


def get_activity(session: Session, user_id: str, activity_id: int) -> Activity:
    activity = session.scalars(
        select(Activity)
        .where(Activity.id == activity_id, Activity.user_id == user_id)
        .options(selectinload(Activity.best_efforts))
    ).first()
    if activity is None:
        raise ActivityNotFoundError(f"Activity {activity_id} not found")
    return activity


def update_effort(session: Session, user_id: str, activity_id: int, update: EffortUpdate) -> Activity:
    activity = get_activity(session, user_id, activity_id)
    for name, value in update.model_dump(exclude_unset=True).items():
        setattr(activity, name, value)
    session.flush()
    logger.info("Updated effort for activity %s (rating=%s)", activity_id, activity.effort_rating)
    return activity


def delete_activity(session: Session, user_id: str, activity_id: int) -> None:
    """Delete an activity with its best efforts and linked recommendations.

    Personal records are recomputed and cached stats dropped in the same
    transaction, so a record sourced only from this activity disappears.
    """

    activity = get_activity(session, user_id, activity_id)
    removed = session.execute(
        delete(AIRecommendation).where(AIRecommendation.matching_activity_id == activity_id)
    ).rowcount
    session.delete(activity)
    session.flush()

    records = replace_personal_records(session, user_id)
    StatsService(session).invalidate(user_id)
    logger.info(
        "Deleted activity %s for %s | recommendations_removed=%s records_now=%d",
        activity_id,
        user_id,
        removed,
        len(records),
    )

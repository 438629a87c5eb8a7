"""Personal records derived from per-activity best efforts."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, joinedload

from runboard.models.database_models import Activity, BestEffort, PersonalRecord


logger = logging.getLogger(__name__)

MIN_RECORD_DISTANCE = 400

# Strava best-effort distances in meters
DISTANCE_LABELS: dict[int, str] = {
    400: "400m",
    805: "1/2 mile",
    1000: "1km",
    1609: "1 mile",
    3219: "2 mile",
    5000: "5km",
    10000: "10km",
    15000: "15km",
    16093: "10 mile",
    20000: "20km",
    21097: "semi",
    30000: "30km",
    42195: "marathon",
    50000: "50km",
}


class EffortLike(Protocol):
    activity_id: int
    distance: float
    moving_time: int
    start_date_local: datetime | None


def distance_label(distance: float) -> str:
    """Canonical bucket label, falling back to one-decimal kilometres."""

    label = DISTANCE_LABELS.get(int(round(distance)))
    if label is not None:
        return label
    return f"{distance / 1000:.1f}km"


def _rank(effort: EffortLike) -> tuple[int, datetime, int]:
    # Equal times: the earliest effort holds the record, then the lowest activity id.
    return (effort.moving_time, effort.start_date_local or datetime.max, effort.activity_id)


def extract_personal_records(best_efforts: Iterable[EffortLike]) -> dict[str, EffortLike]:
    """Fastest effort per distance bucket, ordered by bucket distance.

    Efforts shorter than 400 m never produce a record.
    """

    winners: dict[str, EffortLike] = {}
    for effort in best_efforts:
        if effort.distance is None or effort.moving_time is None:
            continue
        if effort.distance < MIN_RECORD_DISTANCE:
            continue
        label = distance_label(effort.distance)
        current = winners.get(label)
        if current is None or _rank(effort) < _rank(current):
            winners[label] = effort

    return dict(sorted(winners.items(), key=lambda item: item[1].distance))


def replace_personal_records(session: Session, user_id: str) -> list[PersonalRecord]:
    """Recompute the user's records and swap them in within the current transaction.

    The new set is computed before anything is deleted, and nothing is
    committed here: the caller's commit publishes the delete and the inserts
    together.
    """

    efforts = session.scalars(
        select(BestEffort)
        .where(BestEffort.user_id == user_id)
        .options(joinedload(BestEffort.activity))
    ).all()
    winners = extract_personal_records(efforts)

    records = [
        PersonalRecord(
            user_id=user_id,
            distance_type=label,
            distance_meters=effort.distance,
            time_seconds=effort.moving_time,
            activity_id=effort.activity_id,
            date=effort.start_date_local or effort.activity.start_date_local,
            location=effort.activity.location,
        )
        for label, effort in winners.items()
    ]

    session.execute(delete(PersonalRecord).where(PersonalRecord.user_id == user_id))
    session.add_all(records)
    session.flush()
    logger.info("Recomputed %d personal records for %s from %d best efforts", len(records), user_id, len(efforts))
    return records


def list_personal_records(session: Session, user_id: str) -> list[PersonalRecord]:
    return list(
        session.scalars(
            select(PersonalRecord)
            .where(PersonalRecord.user_id == user_id)
            .order_by(PersonalRecord.distance_meters.asc())
        )
    )


def distance_history(session: Session, user_id: str, distance: float) -> list[dict[str, Any]]:
    """Every best effort at one distance, newest first.

    ``improvement`` is the best earlier time minus this time in seconds, so a
    positive value is a new best and the oldest effort reports 0.
    """

    rows = session.execute(
        select(BestEffort, Activity.name)
        .join(Activity, Activity.id == BestEffort.activity_id)
        .where(BestEffort.user_id == user_id, BestEffort.distance == distance)
        .order_by(BestEffort.start_date_local.asc(), BestEffort.id.asc())
    ).all()

    history: list[dict[str, Any]] = []
    previous_best: int | None = None
    for effort, activity_name in rows:
        improvement = 0 if previous_best is None else previous_best - effort.moving_time
        history.append(
            {
                "id": effort.id,
                "activity_id": effort.activity_id,
                "activity_name": activity_name,
                "distance": effort.distance,
                "moving_time": effort.moving_time,
                "start_date_local": effort.start_date_local.isoformat() if effort.start_date_local else None,
                "improvement": improvement,
            }
        )
        if previous_best is None or effort.moving_time < previous_best:
            previous_best = effort.moving_time

    history.reverse()
    return history


def format_duration(seconds: int) -> str:
    """``h:mm:ss`` above one hour, ``m:ss`` otherwise."""

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_pace(distance_meters: float, seconds: int) -> str:
    if not distance_meters:
        return "-"
    pace = seconds / (distance_meters / 1000)
    minutes, secs = divmod(int(round(pace)), 60)
    return f"{minutes}:{secs:02d}/km"

"""Tests for recommendation matching and lifecycle."""
from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from runboard.models.database_models import Activity
from runboard.services.activity_matcher import (
    ActivityMatcher,
    RecommendationNotFoundError,
    RecommendationStore,
)

GENERATED_AT = datetime(2025, 10, 10, 6, 0)

ENDURANCE_50 = {
    "type": "endurance",
    "title": "Aerobic run",
    "description": "",
    "duration": 50,
    "intensity": "moderate",
    "targetPace": "5:00-5:15 min/km",
    "targetHR": {"min": 140, "max": 160},
}


def _run(start: datetime, distance_km: float, minutes: float, heart_rate: float | None = None):
    return SimpleNamespace(
        start_date=start,
        distance=distance_km * 1000,
        moving_time=int(minutes * 60),
        average_heartrate=heart_rate,
    )


def _store_activity(session, activity_id: int, start: datetime, distance_km: float, minutes: float, heart_rate: float | None = None):
    activity = Activity(
        id=activity_id,
        user_id="runner-1",
        name=f"Run {activity_id}",
        type="Run",
        distance=distance_km * 1000,
        moving_time=int(minutes * 60),
        elapsed_time=int(minutes * 60),
        start_date=start,
        start_date_local=start,
        average_heartrate=heart_rate,
    )
    session.add(activity)
    session.flush()
    return activity


def test_pace_from_first_pace_in_target():
    matcher = ActivityMatcher()

    assert matcher.pace_for(ENDURANCE_50) == pytest.approx(5.0)
    assert matcher.pace_for({"type": "tempo", "targetPace": "fast"}) == 5.0
    assert matcher.pace_for({"type": "unknown"}) == 6.0


def test_matching_within_tolerances():
    matcher = ActivityMatcher()
    activity = _run(GENERATED_AT + timedelta(days=1), distance_km=10.2, minutes=51, heart_rate=150)

    assert matcher.is_matching(activity, ENDURANCE_50, GENERATED_AT)


@pytest.mark.parametrize(
    "activity",
    [
        _run(GENERATED_AT - timedelta(hours=1), 10, 50),
        _run(GENERATED_AT + timedelta(days=8), 10, 50),
        _run(GENERATED_AT + timedelta(days=1), 11, 50),
        _run(GENERATED_AT + timedelta(days=1), 10, 60),
        _run(GENERATED_AT + timedelta(days=1), 10, 50, heart_rate=185),
    ],
)
def test_non_matching_activities(activity):
    assert not ActivityMatcher().is_matching(activity, ENDURANCE_50, GENERATED_AT)


def test_missing_heart_rate_does_not_block_match():
    activity = _run(GENERATED_AT + timedelta(days=2), 10, 50)

    assert ActivityMatcher().is_matching(activity, ENDURANCE_50, GENERATED_AT)


def test_zero_duration_never_matches():
    activity = _run(GENERATED_AT + timedelta(days=1), 0, 0)

    assert not ActivityMatcher().is_matching(activity, {**ENDURANCE_50, "duration": 0}, GENERATED_AT)


def test_each_activity_completes_one_recommendation(db_session):
    store = RecommendationStore(db_session)
    first, second = store.save("runner-1", [ENDURANCE_50, ENDURANCE_50], generated_at=GENERATED_AT)
    _store_activity(db_session, 501, GENERATED_AT + timedelta(days=1), 10, 50)

    assert store.match_pending("runner-1") == 1
    assert first.status == "completed"
    assert first.matching_activity_id == 501
    assert first.is_manual_match is False
    assert second.status == "pending"

    # A second pass must not reuse the same activity
    assert store.match_pending("runner-1") == 0


def test_manual_association_and_dissociation(db_session):
    store = RecommendationStore(db_session)
    (recommendation,) = store.save("runner-1", [ENDURANCE_50], generated_at=GENERATED_AT)
    _store_activity(db_session, 777, GENERATED_AT + timedelta(days=3), 3, 20)

    store.associate("runner-1", recommendation.id, 777)
    assert recommendation.status == "completed"
    assert recommendation.is_manual_match is True

    store.dissociate("runner-1", recommendation.id)
    assert recommendation.status == "pending"
    assert recommendation.matching_activity_id is None


def test_associate_rejects_unknown_activity(db_session):
    store = RecommendationStore(db_session)
    (recommendation,) = store.save("runner-1", [ENDURANCE_50], generated_at=GENERATED_AT)

    with pytest.raises(RecommendationNotFoundError):
        store.associate("runner-1", recommendation.id, 999)


def test_expire_stale_only_touches_old_pending(db_session):
    store = RecommendationStore(db_session)
    (old,) = store.save("runner-1", [ENDURANCE_50], generated_at=GENERATED_AT)
    (fresh,) = store.save("runner-1", [ENDURANCE_50], generated_at=GENERATED_AT + timedelta(days=6))

    expired = store.expire_stale("runner-1", now=GENERATED_AT + timedelta(days=8))

    assert expired == 1
    assert old.status == "expired"
    assert fresh.status == "pending"
    assert [row.id for row in store.for_user("runner-1", "expired")] == [old.id]

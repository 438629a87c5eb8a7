"""Reconciles stored coach recommendations with later real activities."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from runboard.exceptions import RunboardError
from runboard.models.database_models import Activity, AIRecommendation


logger = logging.getLogger(__name__)

PACE_PATTERN = re.compile(r"(\d+):(\d+)")

DEFAULT_MATCHING: dict[str, Any] = {
    "window_days": 7,
    "distance_tolerance": 0.05,
    "duration_tolerance": 0.05,
    "heart_rate_tolerance": 0.10,
    "default_pace_min_per_km": 6.0,
    "type_paces_min_per_km": {
        "recovery": 7.0,
        "endurance": 6.0,
        "tempo": 5.0,
        "intervals": 4.5,
        "long": 6.5,
    },
}


class RecommendationNotFoundError(RunboardError):
    pass


class ActivityMatcher:
    """Tolerance-based test of whether an activity fulfils a recommendation."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        cfg = {**DEFAULT_MATCHING, **(config or {})}
        self.window = timedelta(days=cfg["window_days"])
        self.distance_tolerance = cfg["distance_tolerance"]
        self.duration_tolerance = cfg["duration_tolerance"]
        self.heart_rate_tolerance = cfg["heart_rate_tolerance"]
        self.default_pace = cfg["default_pace_min_per_km"]
        self.type_paces = cfg["type_paces_min_per_km"]

    def pace_for(self, recommendation: dict[str, Any]) -> float:
        """Minutes per km from the first ``m:ss`` in targetPace, else by workout type."""

        target_pace = recommendation.get("targetPace")
        if target_pace:
            match = PACE_PATTERN.search(target_pace)
            if match:
                pace = int(match.group(1)) + int(match.group(2)) / 60
                if pace > 0:
                    return pace
        return self.type_paces.get(recommendation.get("type"), self.default_pace)

    def is_matching(self, activity: Any, recommendation: dict[str, Any], generated_at: datetime) -> bool:
        elapsed = activity.start_date - generated_at
        if elapsed < timedelta(0) or elapsed > self.window:
            return False

        duration = recommendation.get("duration") or 0
        if duration <= 0:
            return False

        expected_km = duration / self.pace_for(recommendation)
        actual_km = (activity.distance or 0) / 1000
        if not _within(actual_km, expected_km, self.distance_tolerance):
            return False

        actual_minutes = (activity.moving_time or 0) / 60
        if not _within(actual_minutes, duration, self.duration_tolerance):
            return False

        target_hr = recommendation.get("targetHR")
        if target_hr and activity.average_heartrate:
            low = target_hr["min"] * (1 - self.heart_rate_tolerance)
            high = target_hr["max"] * (1 + self.heart_rate_tolerance)
            if not low <= activity.average_heartrate <= high:
                return False

        return True


def _within(actual: float, expected: float, tolerance: float) -> bool:
    return expected * (1 - tolerance) <= actual <= expected * (1 + tolerance)


class RecommendationStore:
    """Persistence and lifecycle transitions for coach recommendations."""

    def __init__(self, session: Session, matcher: ActivityMatcher | None = None) -> None:
        self.session = session
        self.matcher = matcher or ActivityMatcher()

    def save(self, user_id: str, recommendations: Iterable[dict[str, Any]], generated_at: datetime | None = None) -> list[AIRecommendation]:
        generated_at = generated_at or datetime.utcnow()
        rows = [
            AIRecommendation(
                user_id=user_id,
                recommendation_data=data,
                status="pending",
                generated_at=generated_at,
            )
            for data in recommendations
        ]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def for_user(self, user_id: str, status: str | None = None) -> list[AIRecommendation]:
        stmt = select(AIRecommendation).where(AIRecommendation.user_id == user_id)
        if status:
            stmt = stmt.where(AIRecommendation.status == status)
        return list(self.session.scalars(stmt.order_by(AIRecommendation.generated_at.desc(), AIRecommendation.id.desc())))

    def get(self, user_id: str, recommendation_id: int) -> AIRecommendation:
        row = self.session.scalars(
            select(AIRecommendation).where(
                AIRecommendation.id == recommendation_id,
                AIRecommendation.user_id == user_id,
            )
        ).first()
        if row is None:
            raise RecommendationNotFoundError(f"Recommendation {recommendation_id} not found")
        return row

    def delete(self, user_id: str, recommendation_id: int) -> None:
        self.session.delete(self.get(user_id, recommendation_id))
        self.session.flush()

    def match_pending(self, user_id: str) -> int:
        """Complete pending recommendations that a later activity satisfies.

        Each activity completes at most one recommendation; oldest
        recommendations are served first.
        """

        pending = list(
            self.session.scalars(
                select(AIRecommendation)
                .where(AIRecommendation.user_id == user_id, AIRecommendation.status == "pending")
                .order_by(AIRecommendation.generated_at.asc(), AIRecommendation.id.asc())
            )
        )
        if not pending:
            return 0

        earliest = pending[0].generated_at
        used = set(
            self.session.scalars(
                select(AIRecommendation.matching_activity_id).where(
                    AIRecommendation.user_id == user_id,
                    AIRecommendation.matching_activity_id.is_not(None),
                )
            )
        )
        candidates = [
            activity
            for activity in self.session.scalars(
                select(Activity)
                .where(Activity.user_id == user_id, Activity.start_date >= earliest)
                .order_by(Activity.start_date.asc())
            )
            if activity.id not in used
        ]

        matched = 0
        for recommendation in pending:
            for activity in candidates:
                if activity.id in used:
                    continue
                if self.matcher.is_matching(activity, recommendation.recommendation_data, recommendation.generated_at):
                    self._complete(recommendation, activity, manual=False)
                    used.add(activity.id)
                    matched += 1
                    logger.info("Recommendation %s matched activity %s", recommendation.id, activity.id)
                    break

        self.session.flush()
        return matched

    def associate(self, user_id: str, recommendation_id: int, activity_id: int) -> AIRecommendation:
        """Manually mark a recommendation as done by the given activity."""

        recommendation = self.get(user_id, recommendation_id)
        activity = self.session.scalars(
            select(Activity).where(Activity.id == activity_id, Activity.user_id == user_id)
        ).first()
        if activity is None:
            raise RecommendationNotFoundError(f"Activity {activity_id} not found")
        self._complete(recommendation, activity, manual=True)
        self.session.flush()
        return recommendation

    def dissociate(self, user_id: str, recommendation_id: int) -> AIRecommendation:
        recommendation = self.get(user_id, recommendation_id)
        recommendation.status = "pending"
        recommendation.completed_at = None
        recommendation.matching_activity_id = None
        recommendation.is_manual_match = False
        self.session.flush()
        return recommendation

    def expire_stale(self, user_id: str | None = None, now: datetime | None = None) -> int:
        """Expire pending recommendations older than the matching window."""

        cutoff = (now or datetime.utcnow()) - self.matcher.window
        stmt = select(AIRecommendation).where(
            AIRecommendation.status == "pending",
            AIRecommendation.generated_at < cutoff,
        )
        if user_id is not None:
            stmt = stmt.where(AIRecommendation.user_id == user_id)

        expired = 0
        for recommendation in self.session.scalars(stmt):
            recommendation.status = "expired"
            expired += 1
        self.session.flush()
        if expired:
            logger.info("Expired %d stale recommendation(s)", expired)
        return expired

    @staticmethod
    def _complete(recommendation: AIRecommendation, activity: Activity, manual: bool) -> None:
        recommendation.status = "completed"
        recommendation.completed_at = datetime.utcnow()
        recommendation.matching_activity_id = activity.id
        recommendation.is_manual_match = manual

"""API endpoints for AI coach recommendations and their lifecycle."""
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException

from runboard.dependencies import CurrentUser, DbSession, to_http_exception
from runboard.exceptions import RunboardError
from runboard.models.schemas import CoachRequest, ManualMatchRequest, StoredRecommendation
from runboard.services.activity_matcher import RecommendationNotFoundError, RecommendationStore
from runboard.services.coach import CoachAnalyzer


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/coach", tags=["coach"])


@router.post("/recommendations")
def generate_recommendations(user_id: CurrentUser, db: DbSession, request: CoachRequest | None = None) -> dict:
    """
    Generate personalised sessions from recent history and training settings.

    The analyzer refuses to start without an Anthropic key (500) and without
    any stored activity (400). Model or parsing failures are not errors: a
    single fallback recommendation is returned with ``fallback`` set.
    """

    planned_date = request.planned_date if request else None
    try:
        analyzer = CoachAnalyzer()
        return analyzer.generate_recommendations(db, user_id, planned_date=planned_date)
    except RunboardError as err:
        db.rollback()
        logger.warning("Coach analysis refused for %s: %s", user_id, err)
        raise to_http_exception(err)
    except Exception as e:
        db.rollback()
        logger.exception("Failed to generate coach recommendations for %s", user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate recommendations: {str(e)}"
        )


@router.get("/recommendations", response_model=list[StoredRecommendation])
async def list_recommendations(
    user_id: CurrentUser,
    db: DbSession,
    status: Literal["pending", "completed", "expired"] | None = None,
):
    return RecommendationStore(db).for_user(user_id, status)


@router.post("/recommendations/match")
async def match_recommendations(user_id: CurrentUser, db: DbSession) -> dict:
    """Run automatic matching and expiry without a Strava sync."""

    store = RecommendationStore(db)
    return {
        "matched": store.match_pending(user_id),
        "expired": store.expire_stale(user_id),
    }


@router.post("/recommendations/{recommendation_id}/associate", response_model=StoredRecommendation)
async def associate_activity(
    recommendation_id: int,
    payload: ManualMatchRequest,
    user_id: CurrentUser,
    db: DbSession,
):
    """Mark a recommendation completed by an activity the user picked."""

    try:
        return RecommendationStore(db).associate(user_id, recommendation_id, payload.activity_id)
    except RecommendationNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err))


@router.post("/recommendations/{recommendation_id}/dissociate", response_model=StoredRecommendation)
async def dissociate_activity(recommendation_id: int, user_id: CurrentUser, db: DbSession):
    try:
        return RecommendationStore(db).dissociate(user_id, recommendation_id)
    except RecommendationNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err))


@router.delete("/recommendations/{recommendation_id}")
async def delete_recommendation(recommendation_id: int, user_id: CurrentUser, db: DbSession) -> dict:
    try:
        RecommendationStore(db).delete(user_id, recommendation_id)
    except RecommendationNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err))
    return {"status": "success", "message": "Recommendation deleted"}

"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import json
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

_TMP_DIR = Path(tempfile.mkdtemp(prefix="runboard-tests-"))

os.environ["ANTHROPIC_API_KEY"] = os.environ.get("ANTHROPIC_API_KEY") or "test-anthropic-key"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'runboard-test.db'}"
os.environ["LOG_DIR"] = str(_TMP_DIR / "logs")

from runboard.logging_config import configure_logging

configure_logging()

from runboard.database import Base, SessionLocal, engine
from runboard.main import app
from runboard.models.database_models import Activity, BestEffort, Profile
from runboard.services.strava_service import RateLimitTracker

Base.metadata.create_all(engine)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def test_client() -> TestClient:
    """Provide a FastAPI test client."""

    return TestClient(app)


@pytest.fixture()
def db_session() -> Iterator[Session]:
    """Isolated in-memory database with one registered profile."""

    memory_engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(memory_engine)
    session = sessionmaker(bind=memory_engine, future=True)()
    session.add(Profile(id="runner-1", strava_access_token="token", strava_expires_at=4102444800))
    session.flush()
    try:
        yield session
    finally:
        session.close()
        memory_engine.dispose()


@pytest.fixture(autouse=True)
def reset_rate_limit() -> Iterator[None]:
    RateLimitTracker.reset()
    yield
    RateLimitTracker.reset()


def _load(name: str) -> Any:
    with (FIXTURES_DIR / name).open("r", encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture(scope="session")
def strava_activities_fixture() -> List[Dict[str, Any]]:
    """Return a Strava athlete activity list page."""

    return _load("strava_activities.json")


@pytest.fixture(scope="session")
def strava_details_fixture() -> Dict[str, Dict[str, Any]]:
    """Return Strava activity details keyed by activity id."""

    return _load("strava_activity_detail.json")


@pytest.fixture(scope="session")
def anthropic_fixture() -> Dict[str, Any]:
    """Return an Anthropic coach payload fixture."""

    return _load("anthropic_coach_response.json")


@pytest.fixture()
def api_user() -> str:
    """Fresh profile id for API tests sharing the file database."""

    user_id = f"user-{uuid.uuid4().hex[:12]}"
    with SessionLocal() as session:
        session.add(Profile(id=user_id))
        session.commit()
    return user_id


@pytest.fixture()
def seed_activity():
    """Insert an activity (and optional best efforts) for a user and commit."""

    def _seed(
        user_id: str,
        activity_id: int,
        start: datetime,
        distance: float = 10000,
        moving_time: int = 3000,
        efforts: List[Tuple[float, int]] | None = None,
        activity_type: str = "Run",
        name: str = "Morning Run",
    ) -> int:
        with SessionLocal() as session:
            activity = Activity(
                id=activity_id,
                user_id=user_id,
                name=name,
                type=activity_type,
                distance=distance,
                moving_time=moving_time,
                elapsed_time=moving_time,
                start_date=start,
                start_date_local=start,
                location_city="Paris",
            )
            for effort_distance, effort_time in efforts or []:
                activity.best_efforts.append(
                    BestEffort(
                        user_id=user_id,
                        name=f"{int(effort_distance)}m",
                        distance=effort_distance,
                        moving_time=effort_time,
                        start_date_local=start,
                    )
                )
            session.add(activity)
            session.commit()
        return activity_id

    return _seed

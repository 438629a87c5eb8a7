"""Tests for the Claude coach analyzer."""
from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from anthropic import APIConnectionError
from sqlalchemy import select

from runboard.config import Settings
from runboard.exceptions import CoachConfigurationError, InsufficientDataError
from runboard.models.database_models import Activity, AIRecommendation
from runboard.models.schemas import TrainingSettingsPayload
from runboard.services.coach import CoachAnalyzer

TODAY = date(2025, 10, 18)


class DummyMessages:
    def __init__(self, text: str | None = None, error: Exception | None = None, content: list | None = None) -> None:
        self.text = text
        self.error = error
        self.content = content
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.content is not None:
            return SimpleNamespace(content=self.content)
        return SimpleNamespace(content=[SimpleNamespace(text=self.text)])


def _install_anthropic(monkeypatch: pytest.MonkeyPatch, messages: DummyMessages) -> None:
    class DummyAnthropic:
        def __init__(self, api_key: str):  # noqa: D401
            self.messages = messages

    monkeypatch.setattr("runboard.services.coach.Anthropic", DummyAnthropic)


def _add_runs(session, count: int = 4, rating: int | None = None) -> None:
    for index in range(count):
        start = datetime(2025, 10, 16, 7, 0) - timedelta(days=2 * index)
        session.add(
            Activity(
                id=900 + index,
                user_id="runner-1",
                name="Steady run",
                type="Run",
                distance=8000,
                moving_time=2700,
                elapsed_time=2750,
                start_date=start,
                start_date_local=start,
                average_heartrate=155,
                effort_rating=rating,
            )
        )
    session.flush()


@pytest.fixture()
def settings() -> Settings:
    return Settings(anthropic_api_key="test-key")


def test_missing_api_key_is_a_configuration_error():
    with pytest.raises(CoachConfigurationError):
        CoachAnalyzer(Settings(anthropic_api_key=None))


def test_no_activities_raises_insufficient_data(monkeypatch, settings, db_session):
    _install_anthropic(monkeypatch, DummyMessages(text="{}"))

    with pytest.raises(InsufficientDataError):
        CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)


def test_recommendations_are_parsed_and_stored(monkeypatch, settings, db_session, anthropic_fixture):
    messages = DummyMessages(text="```json\n" + json.dumps(anthropic_fixture) + "\n```")
    _install_anthropic(monkeypatch, messages)
    _add_runs(db_session)

    result = CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)

    assert result["success"] is True
    assert result["fallback"] is False
    assert [rec["type"] for rec in result["recommendations"]] == ["endurance", "recovery"]
    assert result["analysis"]["days_since_last_activity"] == 2
    assert result["analysis"]["total_activities"] == 4

    stored = db_session.scalars(select(AIRecommendation)).all()
    assert len(stored) == 2
    assert all(row.status == "pending" for row in stored)
    assert messages.calls[0]["model"] == "claude-sonnet-4-5-20250929"
    assert "Steady run" in messages.calls[0]["messages"][0]["content"]
    assert "Preferred days: Monday, Wednesday, Saturday" in messages.calls[0]["messages"][0]["content"]


def test_invalid_json_falls_back_to_single_session(monkeypatch, settings, db_session):
    _install_anthropic(monkeypatch, DummyMessages(text="I cannot answer in JSON today."))
    _add_runs(db_session, rating=8)

    result = CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)

    assert result["fallback"] is True
    assert len(result["recommendations"]) == 1
    fallback = result["recommendations"][0]
    assert fallback["type"] == "recovery"
    assert fallback["duration"] == 30
    assert fallback["targetHR"] == {"min": 120, "max": 140}


def test_empty_recommendation_list_falls_back(monkeypatch, settings, db_session):
    _install_anthropic(monkeypatch, DummyMessages(text=json.dumps({"recommendations": []})))
    _add_runs(db_session)

    result = CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)

    assert result["fallback"] is True
    assert result["recommendations"][0]["type"] == "endurance"


@pytest.mark.parametrize(
    "content",
    [[], [SimpleNamespace(type="tool_use", id="toolu_1", name="plan", input={})]],
    ids=["empty", "non-text"],
)
def test_response_without_text_block_falls_back(monkeypatch, settings, db_session, content):
    _install_anthropic(monkeypatch, DummyMessages(content=content))
    _add_runs(db_session)

    result = CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)

    assert result["fallback"] is True
    assert len(result["recommendations"]) == 1
    assert result["recommendations"][0]["type"] == "endurance"


def test_text_block_after_other_blocks_is_used(monkeypatch, settings, db_session, anthropic_fixture):
    content = [
        SimpleNamespace(type="thinking", thinking="Recent load looks moderate."),
        SimpleNamespace(type="text", text=json.dumps(anthropic_fixture)),
    ]
    _install_anthropic(monkeypatch, DummyMessages(content=content))
    _add_runs(db_session)

    result = CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)

    assert result["fallback"] is False
    assert [rec["type"] for rec in result["recommendations"]] == ["endurance", "recovery"]


def test_api_failure_falls_back(monkeypatch, settings, db_session):
    error = APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    _install_anthropic(monkeypatch, DummyMessages(error=error))
    _add_runs(db_session)

    result = CoachAnalyzer(settings).generate_recommendations(db_session, "runner-1", today=TODAY)

    assert result["fallback"] is True
    assert len(db_session.scalars(select(AIRecommendation)).all()) == 1


def test_target_paces_from_goal_time(monkeypatch, settings):
    _install_anthropic(monkeypatch, DummyMessages(text="{}"))
    analyzer = CoachAnalyzer(settings)

    paces = analyzer.calculate_target_paces(50, "10k")

    assert paces == {"easy": "6:00", "tempo": "5:15", "threshold": "4:54", "intervals": "4:45"}


@pytest.mark.parametrize("weeks,phase", [(20, "Base"), (10, "Build"), (5, "Peak"), (2, "Taper")])
def test_periodization_phases(monkeypatch, settings, weeks, phase):
    _install_anthropic(monkeypatch, DummyMessages(text="{}"))

    assert CoachAnalyzer(settings).periodization(weeks)["phase"] == phase


def test_context_ignores_past_race_date(monkeypatch, settings, db_session):
    _install_anthropic(monkeypatch, DummyMessages(text="{}"))
    _add_runs(db_session)
    activities = db_session.scalars(select(Activity).order_by(Activity.start_date.desc())).all()
    training = TrainingSettingsPayload(target_race="10k", target_date=date(2025, 9, 1), target_time_minutes=50)

    context = CoachAnalyzer(settings).build_context(activities, training, None, TODAY)

    assert context.weeks_until_race is None
    assert context.periodization is None
    assert context.race_summary == ""
    assert context.target_paces is not None


def test_context_with_upcoming_race(monkeypatch, settings, db_session):
    _install_anthropic(monkeypatch, DummyMessages(text="{}"))
    _add_runs(db_session)
    activities = db_session.scalars(select(Activity).order_by(Activity.start_date.desc())).all()
    training = TrainingSettingsPayload(target_race="semi", target_date=TODAY + timedelta(days=70))

    context = CoachAnalyzer(settings).build_context(activities, training, TODAY + timedelta(days=1), TODAY)

    assert context.weeks_until_race == 10
    assert context.periodization["phase"] == "Build"
    assert "Half marathon" in context.race_summary
    assert context.days_until_planned == 1
    assert context.fatigue_score == 5.0

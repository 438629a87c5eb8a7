"""Integration tests for the coach recommendation endpoints."""
from __future__ import annotations

import json
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from runboard.config import Settings


def _headers(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


@pytest.fixture()
def dummy_anthropic(monkeypatch: pytest.MonkeyPatch, anthropic_fixture):
    class DummyMessages:
        def create(self, **kwargs):
            return SimpleNamespace(content=[SimpleNamespace(text=json.dumps(anthropic_fixture))])

    class DummyAnthropic:
        def __init__(self, api_key: str):  # noqa: D401
            self.messages = DummyMessages()

    monkeypatch.setattr("runboard.services.coach.Anthropic", DummyAnthropic)


def test_generate_requires_activities(test_client, api_user, dummy_anthropic):
    response = test_client.post("/api/coach/recommendations", headers=_headers(api_user))

    assert response.status_code == 400


def test_generate_without_api_key_is_server_error(monkeypatch, test_client, api_user, seed_activity):
    seed_activity(api_user, 40001, datetime.utcnow() - timedelta(days=1))
    monkeypatch.setattr("runboard.services.coach.get_settings", lambda: Settings(anthropic_api_key=None))

    response = test_client.post("/api/coach/recommendations", headers=_headers(api_user))

    assert response.status_code == 500
    assert "ANTHROPIC_API_KEY" in response.json()["detail"]


def test_generate_list_and_delete(test_client, api_user, seed_activity, dummy_anthropic):
    seed_activity(api_user, 40101, datetime.utcnow() - timedelta(days=2))

    response = test_client.post(
        "/api/coach/recommendations",
        json={"planned_date": (datetime.utcnow() + timedelta(days=1)).date().isoformat()},
        headers=_headers(api_user),
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["fallback"] is False
    assert len(payload["recommendation_ids"]) == 2

    pending = test_client.get("/api/coach/recommendations", params={"status": "pending"}, headers=_headers(api_user)).json()
    assert len(pending) == 2
    assert {rec["recommendation_data"]["type"] for rec in pending} == {"endurance", "recovery"}

    deleted = test_client.delete(f"/api/coach/recommendations/{pending[0]['id']}", headers=_headers(api_user))
    assert deleted.status_code == 200
    remaining = test_client.get("/api/coach/recommendations", headers=_headers(api_user)).json()
    assert len(remaining) == 1


def test_manual_association_round_trip(test_client, api_user, seed_activity, dummy_anthropic):
    seed_activity(api_user, 40201, datetime.utcnow() - timedelta(days=3))
    ids = test_client.post("/api/coach/recommendations", headers=_headers(api_user)).json()["recommendation_ids"]
    seed_activity(api_user, 40202, datetime.utcnow(), distance=3000, moving_time=900)

    associated = test_client.post(
        f"/api/coach/recommendations/{ids[0]}/associate",
        json={"activity_id": 40202},
        headers=_headers(api_user),
    )
    assert associated.status_code == 200
    assert associated.json()["status"] == "completed"
    assert associated.json()["is_manual_match"] is True

    dissociated = test_client.post(f"/api/coach/recommendations/{ids[0]}/dissociate", headers=_headers(api_user))
    assert dissociated.json()["status"] == "pending"

    foreign = test_client.post(
        f"/api/coach/recommendations/{ids[0]}/associate",
        json={"activity_id": 40202},
        headers=_headers("someone-else"),
    )
    assert foreign.status_code == 404

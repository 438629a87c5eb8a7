"""Integration tests for the statistics endpoints."""
from __future__ import annotations

from datetime import date, datetime


def _headers(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


def test_dashboard_totals_and_cache_invalidation(test_client, api_user, seed_activity):
    seed_activity(api_user, 30001, datetime(2025, 10, 2, 7), distance=10000)
    seed_activity(api_user, 30002, datetime(2025, 10, 12, 9), distance=21100)
    seed_activity(api_user, 30003, datetime(2025, 3, 1, 8), distance=5000)
    seed_activity(api_user, 30004, datetime(2025, 10, 13, 18), distance=40000, activity_type="Ride")

    first = test_client.get("/api/stats/dashboard", params={"day": "2025-10-18"}, headers=_headers(api_user))
    assert first.status_code == 200
    payload = first.json()
    assert payload["monthly"]["count"] == 2
    assert payload["monthly"]["distance_km"] == 31.1
    assert payload["monthly"]["longest_activity"]["id"] == 30002
    assert payload["yearly"]["count"] == 3
    assert payload["latest_activity"]["id"] == 30002

    # Served from cache until something invalidates it
    seed_activity(api_user, 30005, datetime(2025, 10, 15, 7), distance=8000)
    cached = test_client.get("/api/stats/dashboard", params={"day": "2025-10-18"}, headers=_headers(api_user)).json()
    assert cached["monthly"]["count"] == 2

    test_client.delete("/api/activities/30001", headers=_headers(api_user))
    fresh = test_client.get("/api/stats/dashboard", params={"day": "2025-10-18"}, headers=_headers(api_user)).json()
    assert fresh["monthly"]["count"] == 2
    assert fresh["monthly"]["distance_km"] == 29.1
    assert fresh["latest_activity"]["id"] == 30005


def test_dashboard_rejects_bad_day(test_client, api_user):
    response = test_client.get("/api/stats/dashboard", params={"day": "18/10/2025"}, headers=_headers(api_user))

    assert response.status_code == 400


def test_monthly_yearly_and_weekly(test_client, api_user, seed_activity):
    seed_activity(api_user, 30101, datetime(2024, 6, 3, 7), distance=12000)
    seed_activity(api_user, 30102, datetime(2024, 6, 5, 7), distance=8000)

    monthly = test_client.get("/api/stats/monthly", params={"year": 2024, "month": 6}, headers=_headers(api_user)).json()
    assert monthly["count"] == 2
    assert monthly["distance_km"] == 20.0

    yearly = test_client.get("/api/stats/yearly", params={"year": 2024}, headers=_headers(api_user)).json()
    assert len(yearly["months"]) == 12
    assert yearly["months"][5]["distance_km"] == 20.0

    weekly = test_client.get("/api/stats/weekly", params={"day": "2024-06-06"}, headers=_headers(api_user)).json()
    assert weekly["week_start"] == "2024-06-03"
    assert weekly["running_days"] == 2


def test_goal_progress_uses_monthly_goal(test_client, api_user, seed_activity):
    today = date.today()
    seed_activity(api_user, 30201, datetime(today.year, today.month, 1, 0, 30), distance=50000)

    saved = test_client.put("/api/settings/goal", json={"goal_km": 100}, headers=_headers(api_user))
    assert saved.status_code == 200

    progress = test_client.get("/api/stats/goal", headers=_headers(api_user)).json()
    assert progress["goal_km"] == 100
    assert progress["distance_km"] == 50.0
    assert progress["percentage"] == 50.0
    assert progress["remaining_km"] == 50.0

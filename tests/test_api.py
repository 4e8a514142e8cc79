from datetime import datetime
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from prayer_dashboard.api import create_app
from prayer_dashboard.plugins.prayer_times.cache import CalendarCache, MemoryCacheStore
from prayer_dashboard.plugins.prayer_times.errors import FetchFailure
from prayer_dashboard.plugins.prayer_times.session import PrayerTimesSession

from conftest import make_schedule

NOW = datetime(2026, 10, 19, 13, 0)


@pytest.fixture
def backend():
    backend = Mock()
    backend.fetch_month.return_value = make_schedule(2026, 10)
    return backend


@pytest.fixture
def session(casablanca, backend):
    locator = Mock()
    locator.city = "Casablanca"
    locator.locate.return_value = casablanca
    return PrayerTimesSession(CalendarCache(MemoryCacheStore(), backend), locator, clock=lambda: NOW)


def make_client(components):
    dashboard_app = SimpleNamespace(
        config=SimpleNamespace(data={
            "components": {"Prayer Times": {"enable": True, "city": "Casablanca", "api_key": "hidden"}},
        }),
        plugin_manager=SimpleNamespace(components={"Prayer Times": object}),
        components=components,
    )
    return TestClient(create_app(dashboard_app))


@pytest.fixture
def client(session):
    return make_client([SimpleNamespace(name="Prayer Times", session=session)])


def test_list_components_hides_secrets(client):
    response = client.get("/api/components")
    assert response.status_code == 200
    assert response.json() == [{
        "name": "Prayer Times",
        "enabled": True,
        "config": {"enable": True, "city": "Casablanca"},
    }]


def test_data_before_load(client):
    data = client.get("/api/components/prayer_times/data").json()
    assert data["current_day"] is None
    assert data["next_prayer"] is None
    assert data["days_in_schedule"] == 0


def test_schedule_missing_until_loaded(client):
    assert client.get("/api/components/prayer_times/schedule").status_code == 404


def test_refresh_then_read(client):
    response = client.post("/api/components/prayer_times/refresh")
    assert response.status_code == 200
    data = response.json()
    assert data["city"] == "Casablanca"
    assert data["current_day"]["date"] == "2026-10-19"
    assert data["next_prayer"]["name"] == "Asr"
    assert data["next_prayer"]["remaining_seconds"] == 3 * 3600 + 5 * 60

    schedule = client.get("/api/components/prayer_times/schedule").json()
    assert (schedule["year"], schedule["month"], len(schedule["days"])) == (2026, 10, 31)
    assert schedule["days"][0]["prayers"]["Fajr"] == "05:10"


def test_navigation(client):
    client.post("/api/components/prayer_times/refresh")
    assert client.post("/api/components/prayer_times/navigate/next").json()["selected_index"] == 19
    assert client.post("/api/components/prayer_times/navigate/previous").json()["selected_index"] == 18


def test_refresh_failure_reports_error(client, backend):
    backend.fetch_month.side_effect = FetchFailure("Network error: offline")
    data = client.post("/api/components/prayer_times/refresh").json()
    assert data["error"] == "Network error: offline"
    assert data["is_loading"] is False


def test_missing_component_is_404():
    client = make_client([])
    assert client.get("/api/components/prayer_times/data").status_code == 404

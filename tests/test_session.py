from datetime import date, datetime, timedelta
from unittest.mock import Mock

import pytest

from prayer_dashboard.plugins.prayer_times.cache import (
    CacheEntry,
    CalendarCache,
    DatabaseCacheStore,
    JsonFileCacheStore,
    MemoryCacheStore,
)
from prayer_dashboard.plugins.prayer_times.errors import FetchFailure, LocationUnavailable
from prayer_dashboard.plugins.prayer_times.resolver import NO_MORE_PRAYERS
from prayer_dashboard.plugins.prayer_times.session import (
    PrayerTimesSession,
    create_calendar_cache,
    create_session,
)
from prayer_dashboard.plugins.prayer_times.timings import Coordinates

from conftest import make_schedule

NOW = datetime(2026, 10, 19, 13, 0)


def make_session(casablanca, schedule=None, entry=None):
    backend = Mock()
    backend.fetch_month.return_value = schedule or make_schedule(2026, 10)
    cache = CalendarCache(MemoryCacheStore(entry), backend)
    locator = Mock()
    locator.city = "Casablanca"
    locator.locate.return_value = casablanca
    session = PrayerTimesSession(cache, locator, clock=lambda: NOW)
    return session, backend, locator


def test_refresh_selects_today(casablanca):
    session, backend, _ = make_session(casablanca)
    assert session.refresh() is True

    assert session.current_day().date == date(2026, 10, 19)
    assert session.next_prayer.name == "Asr"
    assert session.coordinates == casablanca
    assert session.is_loading is False
    assert session.error is None
    backend.fetch_month.assert_called_once_with(casablanca, 2026, 10)


def test_navigation_stays_within_month(casablanca):
    session, _, _ = make_session(casablanca)
    session.refresh(now=datetime(2026, 10, 1, 9, 0))

    assert session.selected_index == 0
    assert session.go_to_previous_day() is False
    assert session.selected_index == 0

    for _ in range(30):
        assert session.go_to_next_day() is True
    assert session.selected_index == 30
    assert session.go_to_next_day() is False
    assert session.current_day().date == date(2026, 10, 31)


def test_navigation_before_load_does_nothing(casablanca):
    session, _, _ = make_session(casablanca)
    assert session.go_to_next_day() is False
    assert session.go_to_previous_day() is False
    assert session.current_day() is None


def test_navigation_keeps_reference_time(casablanca):
    schedule = make_schedule(2026, 10, fajr_by_day={20: "05:30"})
    session, _, _ = make_session(casablanca, schedule)
    session.refresh(now=datetime(2026, 10, 19, 3, 0))

    session.go_to_next_day()
    assert session.reference_time == datetime(2026, 10, 19, 3, 0)
    assert session.next_prayer.name == "Fajr"
    assert session.next_prayer.remaining == timedelta(hours=2, minutes=30)


def test_last_day_after_isha_has_no_more_prayers(casablanca):
    session, _, _ = make_session(casablanca)
    session.refresh(now=datetime(2026, 10, 31, 22, 0))
    assert session.selected_index == 30
    assert session.next_prayer == NO_MORE_PRAYERS


def test_after_isha_counts_down_to_tomorrows_fajr(casablanca):
    schedule = make_schedule(2026, 10, fajr_by_day={20: "05:12"})
    session, _, _ = make_session(casablanca, schedule)
    session.refresh(now=datetime(2026, 10, 19, 23, 0))
    assert session.next_prayer.name == "Fajr"
    assert session.next_prayer.at == datetime(2026, 10, 20, 5, 12)


def test_tick_follows_the_clock(casablanca):
    session, _, _ = make_session(casablanca)
    session.refresh()
    assert session.tick(datetime(2026, 10, 19, 16, 30)).name == "Maghrib"
    assert session.reference_time == datetime(2026, 10, 19, 16, 30)


def test_fetch_failure_keeps_previous_schedule(casablanca):
    session, backend, _ = make_session(casablanca)
    session.refresh()
    shown = session.schedule

    backend.fetch_month.side_effect = FetchFailure("Network error: offline")
    assert session.refresh(now=NOW + timedelta(days=2)) is False

    assert isinstance(session.error, FetchFailure)
    assert session.schedule is shown
    assert session.is_loading is False


def test_retry_clears_error(casablanca):
    session, backend, _ = make_session(casablanca)
    backend.fetch_month.side_effect = FetchFailure("Network error: offline")
    session.refresh()
    assert session.error is not None

    backend.fetch_month.side_effect = None
    assert session.retry() is True
    assert session.error is None
    assert session.schedule is not None


def test_location_failure_without_fallback_is_reported(casablanca):
    session, backend, locator = make_session(casablanca)
    locator.locate.side_effect = LocationUnavailable("Location lookup failed")
    assert session.refresh() is False
    assert isinstance(session.error, LocationUnavailable)
    backend.fetch_month.assert_not_called()


def test_location_failure_uses_cached_coordinates(casablanca, october_schedule):
    entry = CacheEntry(casablanca, october_schedule, NOW - timedelta(hours=1))
    session, backend, locator = make_session(casablanca, entry=entry)
    locator.locate.side_effect = LocationUnavailable("Location lookup failed")

    assert session.refresh() is True
    assert session.coordinates == casablanca
    assert session.schedule is october_schedule
    backend.fetch_month.assert_not_called()


def test_stale_refresh_result_is_discarded(casablanca):
    session, backend, _ = make_session(casablanca)
    older = session.begin_refresh()
    newer = session.begin_refresh()
    assert session.is_loading

    september = make_schedule(2026, 9)
    backend.fetch_month.return_value = make_schedule(2026, 10)
    assert session.refresh(newer) is True
    assert session.is_loading is False
    applied = session.schedule

    backend.fetch_month.return_value = september
    assert session.refresh(older, now=datetime(2026, 9, 10, 12, 0)) is False
    assert session.schedule is applied


def test_loading_flag_stays_on_until_latest_request_finishes(casablanca):
    session, _, _ = make_session(casablanca)
    older = session.begin_refresh()
    session.begin_refresh()
    session.refresh(older)
    assert session.is_loading is True


def test_restore_cached_shows_entry_without_fetching(casablanca, october_schedule):
    entry = CacheEntry(casablanca, october_schedule, NOW - timedelta(days=3))
    session, backend, _ = make_session(casablanca, entry=entry)

    assert session.restore_cached() is True
    assert session.schedule is october_schedule
    assert session.current_day().date == date(2026, 10, 19)
    backend.fetch_month.assert_not_called()


def test_restore_cached_with_empty_cache(casablanca):
    session, _, _ = make_session(casablanca)
    assert session.restore_cached() is False
    assert session.schedule is None


def test_month_mismatch_clamps_selection(casablanca):
    september = make_schedule(2026, 9)
    entry = CacheEntry(casablanca, september, datetime(2026, 9, 30, 20, 0))
    session, _, _ = make_session(casablanca, entry=entry)
    session.restore_cached(now=datetime(2026, 10, 1, 0, 30))
    assert session.selected_index == 29


def test_snapshot(casablanca):
    session, _, _ = make_session(casablanca)
    session.refresh()
    data = session.snapshot()

    assert data["city"] == "Casablanca"
    assert data["coordinates"] == {"latitude": 33.59, "longitude": -7.62}
    assert data["days_in_schedule"] == 31
    assert data["selected_index"] == 18
    assert data["current_day"]["prayers"]["Asr"] == "16:05"
    assert data["current_day"]["auxiliary"] == {"Sunrise": "06:40"}
    assert data["next_prayer"] == {
        "name": "Asr",
        "at": datetime(2026, 10, 19, 16, 5),
        "remaining_seconds": 3 * 3600 + 5 * 60,
    }
    assert data["error"] is None


def test_snapshot_before_load(casablanca):
    session, _, _ = make_session(casablanca)
    data = session.snapshot()
    assert data["current_day"] is None
    assert data["next_prayer"] is None
    assert data["days_in_schedule"] == 0


@pytest.mark.parametrize("backend,store_type", [
    ("json", JsonFileCacheStore),
    ("database", DatabaseCacheStore),
    ("memory", MemoryCacheStore),
])
def test_create_calendar_cache_store(tmp_path, backend, store_type):
    cache = create_calendar_cache({"cache": {"backend": backend, "max_age_hours": 6}}, str(tmp_path))
    assert isinstance(cache.store, store_type)
    assert cache.max_age == timedelta(hours=6)


def test_create_calendar_cache_rejects_unknown_store(tmp_path):
    with pytest.raises(ValueError):
        create_calendar_cache({"cache": {"backend": "redis"}}, str(tmp_path))


def test_create_session_uses_configured_location(tmp_path):
    session = create_session({
        "city": "Rabat",
        "location": {"provider": "config", "lat": 34.02, "lon": -6.84},
        "cache": {"backend": "memory"},
    }, str(tmp_path))
    assert session.location_provider.locate() == Coordinates(34.02, -6.84)
    assert session.location_provider.city == "Rabat"


def test_tick_after_midnight_moves_to_new_day(casablanca):
    session, backend, _ = make_session(casablanca)
    session.refresh(now=datetime(2026, 10, 19, 22, 0))

    result = session.tick(datetime(2026, 10, 20, 1, 0))
    assert session.current_day().date == date(2026, 10, 20)
    assert result.name == "Fajr"
    assert result.at == datetime(2026, 10, 20, 5, 10)


def test_tick_after_midnight_keeps_browsed_day(casablanca):
    session, _, _ = make_session(casablanca)
    session.refresh(now=datetime(2026, 10, 19, 22, 0))
    session.go_to_next_day()
    session.go_to_next_day()

    session.tick(datetime(2026, 10, 20, 1, 0))
    assert session.current_day().date == date(2026, 10, 21)


def test_next_day_refresh_reuses_cached_month(casablanca):
    session, backend, _ = make_session(casablanca)
    session.refresh(now=datetime(2026, 10, 19, 13, 0))
    session.refresh(now=datetime(2026, 10, 20, 0, 0, 5))

    assert session.current_day().date == date(2026, 10, 20)
    assert backend.fetch_month.call_count == 1


def test_crossing_month_boundary_loads_next_month(casablanca):
    session, backend, _ = make_session(casablanca)
    backend.fetch_month.side_effect = lambda coords, year, month: make_schedule(year, month)
    session.refresh(now=datetime(2026, 10, 31, 13, 0))

    session.tick(datetime(2026, 11, 1, 0, 0, 5))
    assert session.current_day().date == date(2026, 10, 31)

    assert session.refresh(now=datetime(2026, 11, 1, 0, 0, 5)) is True
    backend.fetch_month.assert_called_with(casablanca, 2026, 11)
    assert session.current_day().date == date(2026, 11, 1)
    assert session.tick(datetime(2026, 11, 1, 21, 0)).name == "Fajr"


def test_unexpected_error_becomes_session_error(casablanca):
    store = Mock()
    store.get.side_effect = RuntimeError("database is locked")
    locator = Mock()
    locator.locate.return_value = casablanca
    session = PrayerTimesSession(CalendarCache(store, Mock()), locator, clock=lambda: NOW)

    assert session.restore_cached() is False
    assert session.refresh() is False
    assert isinstance(session.error, FetchFailure)
    assert "database is locked" in session.error.detail
    assert session.is_loading is False

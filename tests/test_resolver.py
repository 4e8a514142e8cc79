from datetime import date, datetime, timedelta, timezone

import pytest

from prayer_dashboard.plugins.prayer_times.resolver import (
    NO_MORE_PRAYERS,
    format_countdown,
    next_prayer,
)

from conftest import make_day

DAY = date(2026, 10, 19)


@pytest.fixture
def record():
    return make_day(DAY)


def test_before_first_prayer_returns_fajr(record):
    now = datetime(2026, 10, 19, 3, 0)
    result = next_prayer(record, now)
    assert result.name == "Fajr"
    assert result.at == datetime(2026, 10, 19, 5, 10)
    assert result.remaining == timedelta(hours=2, minutes=10)


def test_afternoon_returns_asr_with_countdown(record):
    now = datetime(2026, 10, 19, 13, 0)
    result = next_prayer(record, now)
    assert result.name == "Asr"
    assert result.remaining == timedelta(hours=3, minutes=5)


def test_exact_prayer_time_counts_as_passed(record):
    result = next_prayer(record, datetime(2026, 10, 19, 12, 45))
    assert result.name == "Asr"


def test_sunrise_is_never_next(record):
    result = next_prayer(record, datetime(2026, 10, 19, 6, 0))
    assert result.name == "Dhuhr"


def test_after_isha_rolls_to_next_day_fajr(record):
    now = datetime(2026, 10, 19, 21, 30)
    result = next_prayer(record, now)
    assert result.name == "Fajr"
    assert result.at == datetime(2026, 10, 20, 5, 10)
    assert timedelta(0) < result.remaining < timedelta(hours=24)


def test_after_isha_uses_following_day_fajr(record):
    following = make_day(date(2026, 10, 20), {
        "Fajr": "05:12", "Dhuhr": "12:45", "Asr": "16:04", "Maghrib": "19:18", "Isha": "20:48",
    })
    result = next_prayer(record, datetime(2026, 10, 19, 23, 0), following=following)
    assert result.at == datetime(2026, 10, 20, 5, 12)
    assert result.remaining == timedelta(hours=6, minutes=12)


def test_last_day_after_isha_has_no_more_prayers(record):
    result = next_prayer(record, datetime(2026, 10, 19, 22, 0), last_day=True)
    assert result == NO_MORE_PRAYERS
    assert result.exhausted
    assert result.remaining == timedelta(0)


def test_last_day_before_isha_still_resolves(record):
    result = next_prayer(record, datetime(2026, 10, 19, 20, 0), last_day=True)
    assert result.name == "Isha"


def test_keeps_timezone_of_now(record):
    tz = timezone(timedelta(hours=1))
    now = datetime(2026, 10, 19, 13, 0, tzinfo=tz)
    result = next_prayer(record, now)
    assert result.at.tzinfo is tz
    assert result.remaining == timedelta(hours=3, minutes=5)


def test_same_inputs_same_answer(record):
    now = datetime(2026, 10, 19, 17, 30, 15)
    assert next_prayer(record, now) == next_prayer(record, now)


def test_seconds_are_counted(record):
    result = next_prayer(record, datetime(2026, 10, 19, 16, 4, 30))
    assert result.name == "Asr"
    assert result.remaining == timedelta(seconds=30)


def test_format_countdown():
    assert format_countdown(timedelta(0)) == "00:00:00"
    assert format_countdown(timedelta(hours=3, minutes=5)) == "03:05:00"
    assert format_countdown(timedelta(seconds=3661)) == "01:01:01"
    assert format_countdown(timedelta(seconds=-5)) == "00:00:00"

from calendar import monthrange
from datetime import date, datetime, time
from typing import Dict, Optional
from unittest.mock import Mock

import pytest

from prayer_dashboard.core import db
from prayer_dashboard.plugins.prayer_times.timings import (
    Coordinates,
    DailyPrayerRecord,
    MonthlySchedule,
    parse_time_of_day,
)

SAMPLE_TIMES = {
    'Fajr': '05:10',
    'Sunrise': '06:40',
    'Dhuhr': '12:45',
    'Asr': '16:05',
    'Maghrib': '19:20',
    'Isha': '20:50',
}


def make_day(day: date, times: Optional[Dict[str, str]] = None) -> DailyPrayerRecord:
    times = times or SAMPLE_TIMES
    return DailyPrayerRecord(
        date=day,
        gregorian=day.strftime('%d %b %Y'),
        hijri=f"{day.day:02d}-04-1448",
        timings={name: parse_time_of_day(value) for name, value in times.items()},
    )


def make_schedule(year: int = 2026, month: int = 10, fajr_by_day: Optional[Dict[int, str]] = None) -> MonthlySchedule:
    """A month of identical days; fajr_by_day overrides Fajr for specific days of month"""
    fajr_by_day = fajr_by_day or {}
    days = []
    for number in range(1, monthrange(year, month)[1] + 1):
        times = dict(SAMPLE_TIMES)
        if number in fajr_by_day:
            times['Fajr'] = fajr_by_day[number]
        days.append(make_day(date(year, month, number), times))
    return MonthlySchedule(year=year, month=month, days=tuple(days))


def aladhan_payload(year: int = 2026, month: int = 10, annotate: bool = True) -> dict:
    """Calendar response shaped like api.aladhan.com/v1/calendar"""
    suffix = " (WEST)" if annotate else ""
    data = []
    for number in range(1, monthrange(year, month)[1] + 1):
        day = date(year, month, number)
        data.append({
            'timings': {name: f"{value}{suffix}" for name, value in SAMPLE_TIMES.items()},
            'date': {
                'readable': day.strftime('%d %b %Y'),
                'timestamp': str(int(datetime.combine(day, time()).timestamp())),
                'gregorian': {'date': day.strftime('%d-%m-%Y')},
                'hijri': {'date': f"{number:02d}-04-1448"},
            },
        })
    return {'code': 200, 'status': 'OK', 'data': data}


def mock_response(status_code: int = 200, payload=None, json_error: bool = False) -> Mock:
    response = Mock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def casablanca():
    return Coordinates(33.59, -7.62)


@pytest.fixture
def october_schedule():
    return make_schedule(2026, 10)


@pytest.fixture
def database(tmp_path):
    db.dispose_db()
    db.init_db(db_url=f"sqlite:///{tmp_path / 'test.db'}")
    yield
    db.dispose_db()

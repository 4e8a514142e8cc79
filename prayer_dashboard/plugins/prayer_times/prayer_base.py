import requests
from datetime import datetime
from typing import Any, Dict, Optional
import logging
from abc import ABC, abstractmethod

from .errors import FetchFailure
from .timings import (
    AUXILIARY_MARKERS,
    PRAYER_ORDER,
    Coordinates,
    DailyPrayerRecord,
    MonthlySchedule,
    parse_time_of_day,
)


class PrayerBackend(ABC):
    """Base class for monthly prayer calendar providers"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def fetch_month(self, coords: Coordinates, year: int, month: int) -> MonthlySchedule:
        """Fetch every day of a month for the given coordinates
        Args:
            coords: location to compute times for
            year, month: calendar month to fetch
        Returns:
            MonthlySchedule for that month
        Raises:
            FetchFailure on network errors or unusable responses
        """
        pass


class AladhanBackend(PrayerBackend):
    """Monthly calendar backend using api.aladhan.com"""

    CALENDAR_URL = "https://api.aladhan.com/v1/calendar"
    DEFAULT_METHOD = 21
    DEFAULT_TIMEOUT = 10

    def __init__(self, config: Dict[str, Any], session: Optional[requests.Session] = None):
        super().__init__(config)
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': 'PrayerDashboard/1.0'})

    @property
    def method(self) -> int:
        return int(self.config.get('calculation_method', self.DEFAULT_METHOD))

    def fetch_month(self, coords: Coordinates, year: int, month: int) -> MonthlySchedule:
        params = {
            'latitude': coords.latitude,
            'longitude': coords.longitude,
            'method': self.method,
            'month': month,
            'year': year,
        }
        timeout = self.config.get('request_timeout', self.DEFAULT_TIMEOUT)

        self.logger.info(f"Making API request to {self.CALENDAR_URL} with params {params}")
        try:
            response = self.session.get(self.CALENDAR_URL, params=params, timeout=timeout)
        except requests.RequestException as e:
            self.logger.error(f"Prayer calendar request failed: {e}")
            raise FetchFailure(f"Network error: {e}") from e

        if response.status_code != 200:
            self.logger.error(f"Prayer calendar request returned HTTP {response.status_code}")
            raise FetchFailure(f"Prayer times service returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchFailure("Prayer times service returned invalid JSON") from e

        if not isinstance(payload, dict) or payload.get('code', 200) != 200:
            raise FetchFailure(f"Prayer times service error: {payload.get('status') if isinstance(payload, dict) else payload!r}")

        days = payload.get('data')
        if not isinstance(days, list):
            raise FetchFailure("Prayer times response has no calendar data")

        try:
            schedule = MonthlySchedule(year=year, month=month, days=tuple(self._parse_day(day) for day in days))
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Malformed prayer calendar for {year}-{month:02d}: {e}")
            raise FetchFailure(f"Malformed prayer times data: {e}") from e

        self.logger.info(f"Fetched {len(schedule)} days of prayer times for {year}-{month:02d} at {coords}")
        return schedule

    def _parse_day(self, day: Dict[str, Any]) -> DailyPrayerRecord:
        """Convert one calendar entry from the API into a DailyPrayerRecord"""
        timings = day['timings']
        parsed = {}
        for name in PRAYER_ORDER + AUXILIARY_MARKERS:
            if name in timings:
                parsed[name] = parse_time_of_day(timings[name])

        date_block = day['date']
        gregorian_date = datetime.strptime(date_block['gregorian']['date'], '%d-%m-%Y').date()
        return DailyPrayerRecord(
            date=gregorian_date,
            gregorian=date_block.get('readable') or gregorian_date.strftime('%d %b %Y'),
            hijri=date_block['hijri']['date'],
            timings=parsed,
        )


def create_backend(config: Dict[str, Any]) -> PrayerBackend:
    """Create prayer times backend based on configuration"""
    backend_type = config.get('backend', 'aladhan')
    if backend_type == 'aladhan':
        return AladhanBackend(config)
    raise ValueError(f"Unknown prayer times backend: {backend_type}")

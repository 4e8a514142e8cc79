"""
State behind the prayer times widget: which month is loaded, which day is
shown, what the next prayer is, and whether a refresh is running or failed.
"""
import itertools
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from .cache import CalendarCache, DatabaseCacheStore, JsonFileCacheStore, MemoryCacheStore
from .errors import FetchFailure, LocationUnavailable, PrayerTimesError
from .geolocation import LocationProvider, create_location_provider
from .prayer_base import create_backend
from .resolver import NextPrayer, next_prayer
from .timings import Coordinates, DailyPrayerRecord, MonthlySchedule, format_time_of_day


class PrayerTimesSession:
    """Owns the selected day and next-prayer state for one widget.

    refresh() may run on a worker thread; every public method takes the
    session lock. Each refresh carries a request number and a result is only
    applied when no newer one has been applied already.
    """

    def __init__(
        self,
        calendar_cache: CalendarCache,
        location_provider: LocationProvider,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.calendar_cache = calendar_cache
        self.location_provider = location_provider
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

        self.coordinates: Optional[Coordinates] = None
        self.schedule: Optional[MonthlySchedule] = None
        self.selected_index: Optional[int] = None
        self.reference_time: Optional[datetime] = None
        self.next_prayer: Optional[NextPrayer] = None
        self.is_loading = False
        self.error: Optional[PrayerTimesError] = None

        self._lock = threading.RLock()
        self._requests = itertools.count(1)
        self._latest_request = 0
        self._applied_request = 0

    # ------------------------------------------------------------------ loading

    def restore_cached(self, now: Optional[datetime] = None) -> bool:
        """Show whatever month the cache holds, without any network access"""
        try:
            entry = self.calendar_cache.cached_entry()
        except Exception as e:
            self.logger.error(f"Error reading cached prayer calendar: {e}")
            return False
        if entry is None:
            return False
        with self._lock:
            if self.schedule is not None:
                return False
            self.logger.info(f"Restored cached prayer calendar {entry.schedule.year}-{entry.schedule.month:02d}")
            self.coordinates = entry.coordinates
            self._show(entry.schedule, now or self.clock())
        return True

    def begin_refresh(self) -> int:
        """Mark a refresh as in flight and return its request number"""
        with self._lock:
            request_id = next(self._requests)
            self._latest_request = request_id
            self.is_loading = True
            return request_id

    def refresh(self, request_id: Optional[int] = None, now: Optional[datetime] = None) -> bool:
        """Locate, resolve the month and select today. Errors end up in self.error.

        Returns True when this request's schedule was applied.
        """
        if request_id is None:
            request_id = self.begin_refresh()
        now = now or self.clock()

        try:
            coords = self._locate()
            schedule = self.calendar_cache.resolve_schedule(coords, now)
        except PrayerTimesError as e:
            self.logger.error(f"Prayer times refresh #{request_id} failed: {e.detail}")
            return self._fail(request_id, e)
        except Exception as e:
            self.logger.exception(f"Unexpected error in prayer times refresh #{request_id}: {e}")
            return self._fail(request_id, FetchFailure(f"Unexpected error: {e}"))

        with self._lock:
            if request_id < self._applied_request:
                self.logger.info(f"Discarding refresh #{request_id}; #{self._applied_request} already applied")
                self._finish(request_id)
                return False
            self._applied_request = request_id
            self.coordinates = coords
            self.error = None
            self._show(schedule, now)
            self._finish(request_id)
        return True

    def retry(self) -> bool:
        """Manual retry after a failure"""
        return self.refresh()

    def _fail(self, request_id: int, error: PrayerTimesError) -> bool:
        with self._lock:
            if request_id > self._applied_request:
                self._applied_request = request_id
                self.error = error
            self._finish(request_id)
        return False

    def _finish(self, request_id: int) -> None:
        if request_id >= self._latest_request:
            self.is_loading = False

    def _locate(self) -> Coordinates:
        try:
            return self.location_provider.locate()
        except LocationUnavailable as e:
            fallback = self.coordinates
            if fallback is None:
                entry = self.calendar_cache.cached_entry()
                fallback = entry.coordinates if entry else None
            if fallback is None:
                raise
            self.logger.warning(f"{e.detail}; using last known coordinates {fallback}")
            return fallback

    def _show(self, schedule: MonthlySchedule, now: datetime) -> None:
        self.schedule = schedule
        self.selected_index = self._today_index(schedule, now)
        self._resolve(now)

    @staticmethod
    def _today_index(schedule: MonthlySchedule, now: datetime) -> int:
        index = schedule.index_of(now.date())
        if index is not None:
            return index
        # Month mismatch: show the nearest end of the held month
        return 0 if (now.year, now.month) < (schedule.year, schedule.month) else len(schedule) - 1

    # --------------------------------------------------------------- resolution

    def _resolve(self, now: datetime) -> None:
        self.reference_time = now
        if self.schedule is None or self.selected_index is None:
            self.next_prayer = None
            return
        index = self.selected_index
        following = self.schedule[index + 1] if index + 1 < len(self.schedule) else None
        self.next_prayer = next_prayer(
            self.schedule[index],
            now,
            following=following,
            last_day=following is None,
        )

    def tick(self, now: Optional[datetime] = None) -> Optional[NextPrayer]:
        """Recompute the next prayer for the selected day against the live clock.

        When the date has moved on while today's record was selected, the
        selection follows to the new today (as far as the held month allows).
        """
        with self._lock:
            now = now or self.clock()
            if self._follows_today(now):
                self.selected_index = self._today_index(self.schedule, now)
            self._resolve(now)
            return self.next_prayer

    def _follows_today(self, now: datetime) -> bool:
        previous = self.reference_time
        if self.schedule is None or previous is None or previous.date() == now.date():
            return False
        return self.selected_index == self._today_index(self.schedule, previous)

    # --------------------------------------------------------------- navigation

    def go_to_previous_day(self) -> bool:
        return self._move(-1)

    def go_to_next_day(self) -> bool:
        return self._move(1)

    def _move(self, step: int) -> bool:
        with self._lock:
            if self.schedule is None or self.selected_index is None:
                return False
            target = self.selected_index + step
            if not 0 <= target < len(self.schedule):
                return False
            self.selected_index = target
            # Navigation keeps the clock where it was
            self._resolve(self.reference_time or self.clock())
            return True

    def current_day(self) -> Optional[DailyPrayerRecord]:
        with self._lock:
            if self.schedule is None or self.selected_index is None:
                return None
            return self.schedule[self.selected_index]

    def snapshot(self) -> Dict[str, Any]:
        """Plain data view of the session for the HTTP API"""
        with self._lock:
            day = self.current_day()
            upcoming = self.next_prayer
            return {
                "coordinates": self.coordinates.to_dict() if self.coordinates else None,
                "city": self.location_provider.city,
                "is_loading": self.is_loading,
                "error": self.error.detail if self.error else None,
                "selected_index": self.selected_index,
                "days_in_schedule": len(self.schedule) if self.schedule else 0,
                "reference_time": self.reference_time,
                "current_day": _day_view(day) if day else None,
                "next_prayer": {
                    "name": upcoming.name,
                    "at": upcoming.at,
                    "remaining_seconds": int(upcoming.remaining.total_seconds()),
                } if upcoming else None,
            }


def _day_view(day: DailyPrayerRecord) -> Dict[str, Any]:
    return {
        "date": day.date,
        "gregorian": day.gregorian,
        "hijri": day.hijri,
        "prayers": {name: format_time_of_day(value) for name, value in day.prayers.items()},
        "auxiliary": {name: format_time_of_day(value) for name, value in day.auxiliary.items()},
    }


def create_calendar_cache(config: Dict[str, Any], cache_dir: Optional[str] = None) -> CalendarCache:
    """Build the calendar cache and its store from the component's cache config"""
    cache_config = config.get("cache") or {}
    store_type = cache_config.get("backend", "json")
    if store_type == "json":
        store = JsonFileCacheStore(cache_dir)
    elif store_type == "database":
        store = DatabaseCacheStore()
    elif store_type == "memory":
        store = MemoryCacheStore()
    else:
        raise ValueError(f"Unknown prayer calendar cache backend: {store_type}")

    return CalendarCache(
        store,
        create_backend(config),
        max_age=timedelta(hours=float(cache_config.get("max_age_hours", 24))),
        tolerance=float(cache_config.get("tolerance_degrees", 0.01)),
        refresh_on_month_change=bool(cache_config.get("refresh_on_month_change", True)),
    )


def create_session(config: Dict[str, Any], cache_dir: Optional[str] = None) -> PrayerTimesSession:
    return PrayerTimesSession(
        create_calendar_cache(config, cache_dir),
        create_location_provider(config),
    )

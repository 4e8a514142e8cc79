"""
Calendar cache: keep one month of prayer times per location and decide when
it has to be fetched again.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from prayer_dashboard.core.cache_helper import CacheHelper

from .prayer_base import PrayerBackend
from .timings import Coordinates, MonthlySchedule

logger = logging.getLogger(__name__)

CACHE_KEY = "prayer_calendar"
DEFAULT_MAX_AGE = timedelta(hours=24)
DEFAULT_TOLERANCE = 0.01


@dataclass(frozen=True)
class CacheEntry:
    coordinates: Coordinates
    schedule: MonthlySchedule
    captured_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinates": self.coordinates.to_dict(),
            "schedule": self.schedule.to_dict(),
            "captured_at": self.captured_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            coordinates=Coordinates.from_dict(data["coordinates"]),
            schedule=MonthlySchedule.from_dict(data["schedule"]),
            captured_at=datetime.fromisoformat(data["captured_at"]),
        )


class CacheStore(ABC):
    """A single slot holding the current CacheEntry"""

    @abstractmethod
    def get(self) -> Optional[CacheEntry]:
        pass

    @abstractmethod
    def set(self, entry: CacheEntry) -> None:
        pass


class MemoryCacheStore(CacheStore):
    def __init__(self, entry: Optional[CacheEntry] = None):
        self._entry = entry

    def get(self) -> Optional[CacheEntry]:
        return self._entry

    def set(self, entry: CacheEntry) -> None:
        self._entry = entry


class JsonFileCacheStore(CacheStore):
    """Entry kept as a JSON file in the dashboard cache directory"""

    def __init__(self, cache_dir: Optional[str] = None, key: str = CACHE_KEY):
        self.key = key
        self.cache_helper = CacheHelper(cache_dir, "prayer_times")

    def get(self) -> Optional[CacheEntry]:
        content = self.cache_helper.get_cached_content(self.key)
        if not content:
            return None
        try:
            return CacheEntry.from_dict(content)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Ignoring unreadable prayer calendar cache: {e}")
            return None

    def set(self, entry: CacheEntry) -> None:
        self.cache_helper.save_to_cache(self.key, entry.to_dict())


class DatabaseCacheStore(CacheStore):
    """Entry kept as one row of the dashboard database"""

    def __init__(self, key: str = CACHE_KEY):
        self.key = key

    def get(self) -> Optional[CacheEntry]:
        from .service import get_calendar_cache_record

        record = get_calendar_cache_record(self.key)
        if record is None:
            return None
        try:
            return CacheEntry(
                coordinates=Coordinates(record.latitude, record.longitude),
                schedule=MonthlySchedule.from_dict(record.data),
                captured_at=record.captured_at,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Ignoring unreadable prayer calendar row: {e}")
            return None

    def set(self, entry: CacheEntry) -> None:
        from .service import save_calendar_cache

        save_calendar_cache(
            self.key,
            entry.coordinates.latitude,
            entry.coordinates.longitude,
            entry.captured_at,
            entry.schedule.to_dict(),
        )


class CalendarCache:
    """Serve the cached month while it is still good, otherwise fetch a new one.

    An entry is stale when it is older than max_age, when the requested
    coordinates are more than tolerance degrees away on either axis, or (with
    refresh_on_month_change) when it holds a different month than now's.

    Fetches are numbered. A result only replaces the stored entry when no
    newer fetch has been committed in the meantime.
    """

    def __init__(
        self,
        store: CacheStore,
        backend: PrayerBackend,
        max_age: timedelta = DEFAULT_MAX_AGE,
        tolerance: float = DEFAULT_TOLERANCE,
        refresh_on_month_change: bool = True,
    ):
        self.store = store
        self.backend = backend
        self.max_age = max_age
        self.tolerance = tolerance
        self.refresh_on_month_change = refresh_on_month_change
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._committed = 0

    def is_fresh(self, entry: Optional[CacheEntry], coords: Coordinates, now: datetime) -> bool:
        if entry is None:
            return False
        if not entry.coordinates.close_to(coords, self.tolerance):
            self.logger.info(f"Cached calendar is for {entry.coordinates}, requested {coords}")
            return False
        if now - entry.captured_at > self.max_age:
            self.logger.info(f"Cached calendar captured at {entry.captured_at} has expired")
            return False
        if self.refresh_on_month_change and not entry.schedule.covers(now):
            self.logger.info(f"Cached calendar is for {entry.schedule.year}-{entry.schedule.month:02d}, now is {now:%Y-%m}")
            return False
        return True

    def cached_entry(self) -> Optional[CacheEntry]:
        return self.store.get()

    def resolve_schedule(self, coords: Coordinates, now: datetime) -> MonthlySchedule:
        """Return a schedule for the month containing now, fetching only when the cache is stale.

        Raises FetchFailure when a fetch is needed and fails; the stored entry is left as it was.
        """
        entry = self.store.get()
        if self.is_fresh(entry, coords, now):
            self.logger.debug(f"Using cached prayer calendar captured at {entry.captured_at}")
            return entry.schedule

        with self._lock:
            sequence = next(self._sequence)

        schedule = self.backend.fetch_month(coords, now.year, now.month)

        with self._lock:
            if sequence < self._committed:
                self.logger.info(f"Discarding fetch #{sequence}; fetch #{self._committed} already stored")
                return schedule
            self._committed = sequence
            try:
                self.store.set(CacheEntry(coords, schedule, now))
            except Exception as e:
                self.logger.error(f"Error saving prayer calendar to cache: {e}")
                return schedule
        self.logger.info(f"Stored prayer calendar {schedule.year}-{schedule.month:02d} for {coords} (fetch #{sequence})")
        return schedule

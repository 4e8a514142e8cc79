"""
Prayer time value types: coordinates, one day's timings and a month of days.
"""
import re
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import InvalidTimeFormat

FAJR = "Fajr"
DHUHR = "Dhuhr"
ASR = "Asr"
MAGHRIB = "Maghrib"
ISHA = "Isha"

PRAYER_ORDER: Tuple[str, ...] = (FAJR, DHUHR, ASR, MAGHRIB, ISHA)

# Shown alongside prayers but never picked as the next prayer
AUXILIARY_MARKERS: Tuple[str, ...] = ("Imsak", "Sunrise", "Sunset", "Midnight", "Firstthird", "Lastthird")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time_of_day(text: str) -> time:
    """Parse an API time string such as "05:10" or "05:10 (WEST)" into a time.

    Anything after the first whitespace is an annotation and is dropped; what
    remains must be a strict H:MM or HH:MM value.
    """
    if not isinstance(text, str):
        raise InvalidTimeFormat(f"Expected a time string, got {text!r}")
    parts = text.strip().split(maxsplit=1)
    if not parts:
        raise InvalidTimeFormat("Empty time string")
    match = _TIME_RE.match(parts[0])
    if not match:
        raise InvalidTimeFormat(f"Malformed time of day: {text!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidTimeFormat(f"Time of day out of range: {text!r}")
    return time(hour, minute)


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self):
        lat, lon = float(self.latitude), float(self.longitude)
        if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
            raise ValueError("Latitude must be between -90 and 90, longitude between -180 and 180")
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)

    def close_to(self, other: "Coordinates", tolerance: float = 0.01) -> bool:
        """True when neither axis differs from other by more than tolerance degrees"""
        return (abs(self.latitude - other.latitude) <= tolerance
                and abs(self.longitude - other.longitude) <= tolerance)

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinates":
        return cls(data["latitude"], data["longitude"])

    def __str__(self) -> str:
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


@dataclass(frozen=True)
class DailyPrayerRecord:
    """One calendar day: Gregorian and Hijri labels plus the day's timings."""

    date: date
    gregorian: str
    hijri: str
    timings: Dict[str, time] = field(default_factory=dict)

    def __post_init__(self):
        missing = [name for name in PRAYER_ORDER if name not in self.timings]
        if missing:
            raise ValueError(f"{self.date}: missing prayer times for {', '.join(missing)}")
        previous = None
        for name in PRAYER_ORDER:
            current = self.timings[name]
            if previous is not None and current < previous[1]:
                raise ValueError(f"{self.date}: {name} ({current}) is earlier than {previous[0]} ({previous[1]})")
            previous = (name, current)

    @property
    def prayers(self) -> Dict[str, time]:
        """Canonical prayers in order"""
        return {name: self.timings[name] for name in PRAYER_ORDER}

    @property
    def auxiliary(self) -> Dict[str, time]:
        return {name: value for name, value in self.timings.items() if name not in PRAYER_ORDER}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "gregorian": self.gregorian,
            "hijri": self.hijri,
            "timings": {name: format_time_of_day(value) for name, value in self.timings.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyPrayerRecord":
        return cls(
            date=date.fromisoformat(data["date"]),
            gregorian=data["gregorian"],
            hijri=data["hijri"],
            timings={name: parse_time_of_day(value) for name, value in data["timings"].items()},
        )


@dataclass(frozen=True)
class MonthlySchedule:
    """Every day of one month, index = day of month - 1."""

    year: int
    month: int
    days: Tuple[DailyPrayerRecord, ...]

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(self.days))
        expected = monthrange(self.year, self.month)[1]
        if len(self.days) != expected:
            raise ValueError(f"{self.year}-{self.month:02d} has {expected} days, got {len(self.days)} records")
        for index, day in enumerate(self.days):
            if day.date != date(self.year, self.month, index + 1):
                raise ValueError(f"Record {index} is dated {day.date}, expected day {index + 1} of {self.year}-{self.month:02d}")

    def __len__(self) -> int:
        return len(self.days)

    def __getitem__(self, index: int) -> DailyPrayerRecord:
        return self.days[index]

    def __iter__(self) -> Iterator[DailyPrayerRecord]:
        return iter(self.days)

    def covers(self, moment: datetime) -> bool:
        return (moment.year, moment.month) == (self.year, self.month)

    def index_of(self, day: date) -> Optional[int]:
        """Index of day in this schedule, or None if it belongs to another month"""
        if (day.year, day.month) != (self.year, self.month):
            return None
        return day.day - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "days": [day.to_dict() for day in self.days],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonthlySchedule":
        days: List[DailyPrayerRecord] = [DailyPrayerRecord.from_dict(day) for day in data["days"]]
        return cls(year=int(data["year"]), month=int(data["month"]), days=tuple(days))

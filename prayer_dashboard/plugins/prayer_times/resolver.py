"""
Next prayer resolution: which canonical prayer comes next and how long until it.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from .timings import FAJR, PRAYER_ORDER, DailyPrayerRecord


@dataclass(frozen=True)
class NextPrayer:
    name: Optional[str]
    at: Optional[datetime]
    remaining: timedelta

    @property
    def exhausted(self) -> bool:
        """True when the held schedule has no further prayer"""
        return self.name is None


NO_MORE_PRAYERS = NextPrayer(None, None, timedelta(0))


def _on_date(day: date, value: time, now: datetime) -> datetime:
    return datetime.combine(day, value, tzinfo=now.tzinfo)


def next_prayer(
    day: DailyPrayerRecord,
    now: datetime,
    following: Optional[DailyPrayerRecord] = None,
    last_day: bool = False,
) -> NextPrayer:
    """Find the first canonical prayer strictly after now.

    Times of day are placed on now's calendar date. Once Isha has passed the
    answer is Fajr on the next date, taken from following when known and from
    day otherwise. When day is the last record held (last_day) there is no
    such Fajr and NO_MORE_PRAYERS is returned.
    """
    today = now.date()
    for name in PRAYER_ORDER:
        at = _on_date(today, day.timings[name], now)
        if at > now:
            return NextPrayer(name, at, at - now)

    if last_day:
        return NO_MORE_PRAYERS

    source = following if following is not None else day
    at = _on_date(today + timedelta(days=1), source.timings[FAJR], now)
    return NextPrayer(FAJR, at, at - now)


def format_countdown(remaining: timedelta) -> str:
    """Render a duration as HH:MM:SS, clamped at zero"""
    total = max(0, int(remaining.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

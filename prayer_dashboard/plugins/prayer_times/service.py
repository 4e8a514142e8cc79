"""
Service layer: save and load the calendar cache row from DB.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, delete

from prayer_dashboard.core.db import session_scope
from prayer_dashboard.plugins.prayer_times.models import CalendarCacheRecord


def save_calendar_cache(
    cache_key: str,
    latitude: float,
    longitude: float,
    captured_at: datetime,
    schedule_data: Dict[str, Any],
) -> None:
    """Replace the cached calendar under cache_key. schedule_data: MonthlySchedule.to_dict()."""
    with session_scope() as session:
        session.execute(
            delete(CalendarCacheRecord).where(CalendarCacheRecord.cache_key == cache_key)
        )
        session.add(
            CalendarCacheRecord(
                cache_key=cache_key,
                latitude=latitude,
                longitude=longitude,
                year=schedule_data["year"],
                month=schedule_data["month"],
                captured_at=captured_at,
                data=schedule_data,
            )
        )


def get_calendar_cache_record(cache_key: str) -> Optional[CalendarCacheRecord]:
    """Return the cached calendar row for cache_key, if any."""
    with session_scope() as session:
        return (
            session.execute(
                select(CalendarCacheRecord).where(CalendarCacheRecord.cache_key == cache_key)
            )
            .scalars().first()
        )

"""
SQLAlchemy model for the persisted calendar cache: one row per cache key.
"""
from sqlalchemy import Column, String, DateTime, Float, Integer, JSON

from prayer_dashboard.core.db import Base


class CalendarCacheRecord(Base):
    """The single cached month. data is JSON: MonthlySchedule.to_dict()."""
    __tablename__ = "prayer_calendar_cache"

    cache_key = Column(String(255), primary_key=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    captured_at = Column(DateTime(timezone=False), nullable=False, index=True)
    data = Column(JSON, nullable=False)  # {year, month, days: [...]}

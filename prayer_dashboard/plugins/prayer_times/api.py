"""
Per-plugin API for Prayer Times. Mounted at /api/components/prayer_times/.
Serves the widget's session state with Pydantic response models.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .timings import format_time_of_day

COMPONENT_NAME = "Prayer Times"


class CoordinatesResponse(BaseModel):
    latitude: float
    longitude: float


class DayResponse(BaseModel):
    date: date
    gregorian: str
    hijri: str
    prayers: Dict[str, str]
    auxiliary: Dict[str, str] = {}


class NextPrayerResponse(BaseModel):
    name: Optional[str] = None
    at: Optional[datetime] = None
    remaining_seconds: int = 0


class SessionResponse(BaseModel):
    """Snapshot of the widget: selected day, next prayer, loading and error state."""

    coordinates: Optional[CoordinatesResponse] = None
    city: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None
    selected_index: Optional[int] = None
    days_in_schedule: int = 0
    reference_time: Optional[datetime] = None
    current_day: Optional[DayResponse] = None
    next_prayer: Optional[NextPrayerResponse] = None


class ScheduleResponse(BaseModel):
    year: int
    month: int
    days: List[DayResponse]


def _find_session(dashboard_app) -> Any:
    for component in getattr(dashboard_app, "components", []):
        if component.name == COMPONENT_NAME:
            return component.session
    raise HTTPException(status_code=404, detail="Prayer Times component is not enabled")


def get_router(dashboard_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/components/prayer_times."""
    router = APIRouter(tags=["Prayer Times"])

    @router.get("/data", response_model=SessionResponse)
    def get_data() -> SessionResponse:
        """Current day, next prayer and status of the widget."""
        return SessionResponse.model_validate(_find_session(dashboard_app).snapshot())

    @router.get("/schedule", response_model=ScheduleResponse)
    def get_schedule() -> ScheduleResponse:
        """Every day of the loaded month."""
        schedule = _find_session(dashboard_app).schedule
        if schedule is None:
            raise HTTPException(status_code=404, detail="No prayer times data available")
        return ScheduleResponse(
            year=schedule.year,
            month=schedule.month,
            days=[
                DayResponse(
                    date=day.date,
                    gregorian=day.gregorian,
                    hijri=day.hijri,
                    prayers={name: format_time_of_day(value) for name, value in day.prayers.items()},
                    auxiliary={name: format_time_of_day(value) for name, value in day.auxiliary.items()},
                )
                for day in schedule
            ],
        )

    @router.post("/navigate/previous", response_model=SessionResponse)
    def navigate_previous() -> SessionResponse:
        session = _find_session(dashboard_app)
        session.go_to_previous_day()
        return SessionResponse.model_validate(session.snapshot())

    @router.post("/navigate/next", response_model=SessionResponse)
    def navigate_next() -> SessionResponse:
        session = _find_session(dashboard_app)
        session.go_to_next_day()
        return SessionResponse.model_validate(session.snapshot())

    @router.post("/refresh", response_model=SessionResponse)
    def refresh() -> SessionResponse:
        """Re-run location and calendar resolution (the Retry action)."""
        session = _find_session(dashboard_app)
        session.refresh()
        return SessionResponse.model_validate(session.snapshot())

    return router

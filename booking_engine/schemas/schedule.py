"""
Read models for business hours and the per-day schedule view
"""
from datetime import date, time
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from booking_engine.schemas.availability import BookingPreferencesOut


class DayHours(BaseModel):
    """Business hours for one weekday in canonical form"""
    day_of_week: int
    day_name: str
    is_open: bool
    open: Optional[time] = None
    close: Optional[time] = None


class BusinessHoursOut(BaseModel):
    business_id: UUID
    days: List[DayHours]


class BusinessHoursUpdate(BaseModel):
    """Accepts the same loose shapes the dashboard has always sent, e.g.
    {"monday": {"open": "09:00", "close": "17:00", "closed": false}}"""
    business_hours: Dict[str, dict] = Field(default_factory=dict)


class DayScheduleView(BaseModel):
    date: date
    day_of_week: int
    status: str  # blocked, available, no_schedule
    origin: Optional[str] = None  # inherited or manual when available
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location_mode: Optional[str] = None
    block_reason: Optional[str] = None
    slots: List[time] = Field(default_factory=list)


class ScheduleView(BaseModel):
    provider_id: UUID
    start_date: date
    days: List[DayScheduleView]
    has_inherited_days: bool
    has_manual_days: bool
    preferences: BookingPreferencesOut


class SyncReportOut(BaseModel):
    business_id: UUID
    provider_ids: List[UUID]
    rows_written: int
    open_days: List[int]

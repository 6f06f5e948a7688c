"""
Pydantic schemas for weekly availability, blocked intervals and booking preferences
"""
from datetime import date, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.models.availability import ScheduleOrigin
from booking_engine.models.provider import LocationMode


# ============================================================================
# Request Schemas
# ============================================================================

class AvailabilityEntryIn(BaseModel):
    """One weekly window. Range checks happen in AvailabilityService so the
    error can name the offending day."""
    day_of_week: int = Field(..., description="0=Sunday ... 6=Saturday")
    start_time: time
    end_time: time
    location_mode: LocationMode = LocationMode.BOTH


class WeeklyScheduleRequest(BaseModel):
    entries: List[AvailabilityEntryIn]
    origin: ScheduleOrigin = ScheduleOrigin.MANUAL


class DayScheduleRequest(BaseModel):
    start_time: time
    end_time: time
    location_mode: LocationMode = LocationMode.BOTH


class BlockIntervalRequest(BaseModel):
    start_date: date
    end_date: Optional[date] = None  # single day when omitted
    reason: str = Field(..., min_length=1, max_length=255)


class BookingPreferencesUpdate(BaseModel):
    """Only send what you want to change"""
    max_bookings_per_day: Optional[int] = None
    slot_duration_minutes: Optional[int] = None
    buffer_minutes: Optional[int] = None
    min_advance_hours: Optional[int] = None
    max_advance_days: Optional[int] = None
    auto_accept_bookings: Optional[bool] = None
    allow_cancellation: Optional[bool] = None
    cancellation_window_hours: Optional[int] = None


# ============================================================================
# Response Schemas
# ============================================================================

class AvailabilityEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    location_mode: str
    origin: str


class BlockedIntervalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    start_date: date
    end_date: date
    reason: str


class ProviderScheduleOut(BaseModel):
    provider_id: UUID
    entries: List[AvailabilityEntryOut]
    blocked: List[BlockedIntervalOut]


class BookingPreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider_id: UUID
    max_bookings_per_day: int
    slot_duration_minutes: int
    buffer_minutes: int
    min_advance_hours: int
    max_advance_days: int
    auto_accept_bookings: bool
    allow_cancellation: bool
    cancellation_window_hours: int
    is_default: bool = False


class AdmissibilityOut(BaseModel):
    admissible: bool
    reasons: List[str]

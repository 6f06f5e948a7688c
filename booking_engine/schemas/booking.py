"""
Pydantic schemas for booking transitions and provider assignment
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TransitionRequest(BaseModel):
    status: str = Field(..., description="Target status, e.g. confirmed, declined, in_progress")
    reason: Optional[str] = Field(None, max_length=1000)


class AssignProviderRequest(BaseModel):
    provider_id: Optional[UUID] = Field(None, description="null unassigns the booking")


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    provider_id: Optional[UUID]
    customer_id: UUID
    service_id: Optional[UUID]
    booking_date: date
    start_time: time
    end_time: time
    status: str
    total_amount: Optional[Decimal]
    cancellation_reason: Optional[str]


class AssignmentOut(BaseModel):
    booking: BookingOut
    warnings: List[str]


class CancellationPolicyOut(BaseModel):
    booking_id: UUID
    cancellation_allowed: bool
    cancellation_window_hours: int
    evaluated_at: datetime

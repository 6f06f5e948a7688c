# ===== booking_engine/models/booking_preferences.py =====
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.sql import func
import uuid
from booking_engine.models.base import Base


class BookingPreferences(Base):
    """Per-provider slot and timing configuration"""
    __tablename__ = "provider_booking_preferences"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(Uuid, ForeignKey("providers.id"), nullable=False, unique=True)

    max_bookings_per_day = Column(Integer, nullable=False, default=8)
    slot_duration_minutes = Column(Integer, nullable=False, default=60)
    buffer_minutes = Column(Integer, nullable=False, default=15)  # Between appointments
    min_advance_hours = Column(Integer, nullable=False, default=2)
    max_advance_days = Column(Integer, nullable=False, default=30)

    auto_accept_bookings = Column(Boolean, nullable=False, default=False)
    allow_cancellation = Column(Boolean, nullable=False, default=True)
    cancellation_window_hours = Column(Integer, nullable=False, default=24)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("max_bookings_per_day >= 1", name="booking_prefs_daily_cap_positive"),
        CheckConstraint("slot_duration_minutes > 0", name="booking_prefs_slot_positive"),
        CheckConstraint("buffer_minutes >= 0", name="booking_prefs_buffer_non_negative"),
        CheckConstraint("min_advance_hours >= 0", name="booking_prefs_advance_non_negative"),
    )

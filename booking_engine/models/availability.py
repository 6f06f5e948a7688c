# ===== booking_engine/models/availability.py =====
from sqlalchemy import Column, String, Integer, Boolean, Time, Date, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.sql import func
import uuid
import enum
from booking_engine.models.base import Base


class ScheduleOrigin(str, enum.Enum):
    MANUAL = "manual"
    INHERITED = "inherited"


class WeeklyAvailability(Base):
    """Weekly recurring availability window for one provider and one weekday"""
    __tablename__ = "provider_availability"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(Uuid, ForeignKey("providers.id"), nullable=False, index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    location_mode = Column(String(20), nullable=False, default="both")  # business, mobile, both

    is_active = Column(Boolean, default=True, nullable=False)
    origin = Column(String(20), nullable=False, default=ScheduleOrigin.MANUAL.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # At most one active recurring window per provider and day
        Index(
            "uq_provider_availability_active_day",
            "provider_id",
            "day_of_week",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    def __repr__(self):
        return f"<WeeklyAvailability(provider={self.provider_id}, day={self.day_of_week}, origin={self.origin})>"


class BlockedInterval(Base):
    """Date range a provider is unavailable (vacation, sick day, etc.)"""
    __tablename__ = "provider_blocked_intervals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(Uuid, ForeignKey("providers.id"), nullable=False, index=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)  # inclusive
    reason = Column(String(255), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def covers(self, day) -> bool:
        return self.start_date <= day <= self.end_date

# ===== booking_engine/models/booking.py =====
from sqlalchemy import Column, String, Text, Date, Time, DateTime, Numeric, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid
import enum
from booking_engine.models.base import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    COMPLETED = "completed"


class Booking(Base):
    """One appointment. Rows are retained for audit and financial reporting."""
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False, index=True)
    provider_id = Column(Uuid, ForeignKey("providers.id"), nullable=True, index=True)  # NULL = unassigned
    customer_id = Column(Uuid, nullable=False)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=True)

    # Appointment details
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Booking(id={self.id}, status={self.status}, provider={self.provider_id})>"


class BookingStatusHistory(Base):
    """Append-only audit of status changes and provider assignments"""
    __tablename__ = "booking_status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False, index=True)

    event = Column(String(20), nullable=False, default="status")  # status, assignment
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    from_provider_id = Column(Uuid, nullable=True)
    to_provider_id = Column(Uuid, nullable=True)

    changed_by = Column(Uuid, nullable=True)  # NULL for system changes
    actor_role = Column(String(20), nullable=False)
    reason = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), server_default=func.now())

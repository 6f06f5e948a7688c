# ============================================================================
# FILE: booking_engine/models/provider.py
# Schedulable individuals and their role inside a business
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from booking_engine.models.base import Base


class ProviderRole(str, enum.Enum):
    """Roles within a business."""
    OWNER = "owner"
    DISPATCHER = "dispatcher"
    PROVIDER = "provider"


class LocationMode(str, enum.Enum):
    """Where a provider delivers services during an availability window."""
    BUSINESS = "business"
    MOBILE = "mobile"
    BOTH = "both"


class Provider(Base):
    __tablename__ = "providers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False, index=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    role = Column(
        SQLEnum(ProviderRole, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=ProviderRole.PROVIDER,
        nullable=False,
    )

    # Soft-deactivated, never deleted
    is_active = Column(Boolean, default=True, nullable=False)
    verification_status = Column(String(30), default="pending")  # pending, approved, rejected
    background_check_status = Column(String(30), default="pending")

    # Used for rows created by business-hours inheritance
    default_location_mode = Column(String(20), default=LocationMode.BOTH.value, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="providers")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f"<Provider {self.id} ({self.role})>"

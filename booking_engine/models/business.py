# booking_engine/models/business.py
"""
Business Model
Business hours live on the business row as a JSON document owned by the
business-settings screens. Its shape is not stable (capitalized or lowercase
day keys, optional `closed` flag), so nothing reads it directly:
use BusinessHoursSource, which normalizes it once.
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from booking_engine.models.base import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    timezone = Column(String(50), default="UTC")

    # Raw weekly hours, e.g. {"Monday": {"open": "09:00", "close": "17:00"}}
    business_hours = Column(JSON, default=dict)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    providers = relationship("Provider", back_populates="business")

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"

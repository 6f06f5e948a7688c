# booking_engine/models/service.py
"""
Service catalog models
The catalog (services, add-ons and their compatibility) is global; a business
opts into a catalog service by creating a BusinessService row with its own
price and delivery type.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func
import uuid
from booking_engine.models.base import Base


class CatalogService(Base):
    __tablename__ = "services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Floor price; businesses may charge more
    min_price = Column(Numeric(10, 2), nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<CatalogService(id={self.id}, name={self.name})>"


class CatalogAddon(Base):
    __tablename__ = "service_addons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ServiceAddonEligibility(Base):
    __tablename__ = "service_addon_eligibility"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    service_id = Column(Uuid, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    addon_id = Column(Uuid, ForeignKey("service_addons.id", ondelete="CASCADE"), nullable=False)
    is_recommended = Column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("service_id", "addon_id", name="uq_service_addon_eligibility"),
    )


class BusinessService(Base):
    """Junction row: this business offers this catalog service"""
    __tablename__ = "business_services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Uuid, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)

    business_price = Column(Numeric(10, 2), nullable=True)
    delivery_type = Column(String(20), nullable=True)  # business, mobile, both, virtual
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("business_id", "service_id", name="uq_business_services_business_service"),
    )

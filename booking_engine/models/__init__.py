# booking_engine/models/__init__.py
from .base import Base
from .business import Business
from .provider import Provider, ProviderRole, LocationMode
from .availability import WeeklyAvailability, BlockedInterval, ScheduleOrigin
from .booking_preferences import BookingPreferences
from .booking import Booking, BookingStatus, BookingStatusHistory
from .service import CatalogService, CatalogAddon, ServiceAddonEligibility, BusinessService

__all__ = [
    "Base",
    "Business",
    "Provider",
    "ProviderRole",
    "LocationMode",
    "WeeklyAvailability",
    "BlockedInterval",
    "ScheduleOrigin",
    "BookingPreferences",
    "Booking",
    "BookingStatus",
    "BookingStatusHistory",
    "CatalogService",
    "CatalogAddon",
    "ServiceAddonEligibility",
    "BusinessService",
]

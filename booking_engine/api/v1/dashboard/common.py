"""Helpers shared by the dashboard routers"""
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from booking_engine.config.settings import get_settings

logger = logging.getLogger(__name__)


def business_now(business) -> datetime:
    """Current wall-clock time in the business's timezone"""
    name = (business.timezone if business is not None else None) or get_settings().DEFAULT_TIMEZONE
    try:
        zone = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using {get_settings().DEFAULT_TIMEZONE}")
        zone = ZoneInfo(get_settings().DEFAULT_TIMEZONE)
    return datetime.now(zone)

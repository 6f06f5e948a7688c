# booking_engine/services/business/business_hours_source.py
"""
Read/write access to a business's own weekly hours.

The stored JSON has been written by several generations of dashboard screens:
    {"Monday": {"open": "09:00", "close": "17:00"}}
    {"monday": {"open": "09:00", "close": "17:00", "closed": false}}
    {"monday": {"isOpen": true, "openTime": "09:00", "closeTime": "17:00"}}
normalize_business_hours() turns any of them into a fixed 7-tuple
(index = day of week, Sunday=0) of OpenHours | Closed. Consumers only ever
see the normalized form.
"""
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Dict, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session
import logging

from booking_engine.core.errors import NotFound, ValidationError
from booking_engine.models.business import Business
from booking_engine.services.authorization import Actor, ensure_manager

logger = logging.getLogger(__name__)

DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

_DAY_ALIASES: Dict[str, int] = {}
for _index, _name in enumerate(DAY_NAMES):
    _DAY_ALIASES[_name] = _index
    _DAY_ALIASES[_name[:3]] = _index

_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p")


@dataclass(frozen=True)
class OpenHours:
    start: time
    end: time

    @property
    def is_open(self) -> bool:
        return True


@dataclass(frozen=True)
class Closed:
    @property
    def is_open(self) -> bool:
        return False


DayHours = Union[OpenHours, Closed]
WeeklyHours = Tuple[DayHours, DayHours, DayHours, DayHours, DayHours, DayHours, DayHours]


def parse_time(value: Any) -> Optional[time]:
    """Parse "09:00", "09:00:00" or "9:00 AM"; None when unparseable"""
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    candidate = value.strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).time()
        except ValueError:
            continue
    return None


def day_index(key: Any) -> Optional[int]:
    if not isinstance(key, str):
        return None
    return _DAY_ALIASES.get(key.strip().lower())


def _raw_times(value: Dict[str, Any]) -> Tuple[Any, Any]:
    raw_open = value.get("open", value.get("openTime", value.get("open_time")))
    raw_close = value.get("close", value.get("closeTime", value.get("close_time")))
    return raw_open, raw_close


def _is_marked_closed(value: Dict[str, Any]) -> bool:
    if value.get("closed") is True:
        return True
    return any(flag in value and not value[flag] for flag in ("isOpen", "is_open"))


def _normalize_day(day_name: str, value: Any) -> DayHours:
    if not isinstance(value, dict):
        # None, "closed", or anything else we cannot read
        return Closed()

    if _is_marked_closed(value):
        return Closed()

    raw_open, raw_close = _raw_times(value)
    if raw_open is None and raw_close is None:
        return Closed()

    start = parse_time(raw_open)
    end = parse_time(raw_close)
    if start is None or end is None:
        logger.warning(f"Unreadable business hours for {day_name}: {value!r}, treating as closed")
        return Closed()
    if start >= end:
        logger.warning(f"Business hours for {day_name} close before they open ({start}-{end}), treating as closed")
        return Closed()

    return OpenHours(start=start, end=end)


def normalize_business_hours(raw: Optional[Dict[str, Any]]) -> WeeklyHours:
    """Normalize the stored JSON into 7 entries, Sunday first. Missing days are closed."""
    days = [Closed()] * 7
    for key, value in (raw or {}).items():
        index = day_index(key)
        if index is None:
            logger.debug(f"Ignoring unknown business hours key {key!r}")
            continue
        days[index] = _normalize_day(DAY_NAMES[index], value)
    return tuple(days)


def _validate_day(index: int, value: Any) -> DayHours:
    day_name = DAY_NAMES[index]
    if value is None:
        return Closed()
    if not isinstance(value, dict):
        raise ValidationError(f"Hours for {day_name} must be an object, got {value!r}", day_of_week=index)
    if _is_marked_closed(value):
        return Closed()

    raw_open, raw_close = _raw_times(value)
    if raw_open is None and raw_close is None:
        raise ValidationError(f"Hours for {day_name} need open and close times or closed=true", day_of_week=index)

    start = parse_time(raw_open)
    end = parse_time(raw_close)
    if start is None or end is None:
        raise ValidationError(
            f"Unreadable hours for {day_name}: open={raw_open!r} close={raw_close!r}", day_of_week=index
        )
    if start >= end:
        raise ValidationError(f"Hours for {day_name} must open before they close ({start}-{end})", day_of_week=index)

    return OpenHours(start=start, end=end)


def validate_business_hours(raw: Dict[str, Any]) -> WeeklyHours:
    """
    Strict counterpart of normalize_business_hours() for incoming edits.

    Unknown day keys, duplicated days and unreadable or inverted times raise
    ValidationError instead of being read as closed. Days left out are closed.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Business hours must be an object keyed by day name")

    days = [Closed()] * 7
    seen = set()
    for key, value in raw.items():
        index = day_index(key)
        if index is None:
            raise ValidationError(f"Unknown day in business hours: {key!r}")
        if index in seen:
            raise ValidationError(f"{DAY_NAMES[index]} appears more than once", day_of_week=index)
        seen.add(index)
        days[index] = _validate_day(index, value)
    return tuple(days)


def serialize_business_hours(hours: WeeklyHours) -> Dict[str, Dict[str, Any]]:
    """Canonical stored shape: lowercase keys, every day present"""
    data = {}
    for index, day in enumerate(hours):
        if isinstance(day, OpenHours):
            data[DAY_NAMES[index]] = {
                "open": day.start.strftime("%H:%M"),
                "close": day.end.strftime("%H:%M"),
                "closed": False,
            }
        else:
            data[DAY_NAMES[index]] = {"open": None, "close": None, "closed": True}
    return data


class BusinessHoursSource:
    """Business hours owned by the business-settings collaborator"""

    @staticmethod
    def get_business(db: Session, business_id: UUID) -> Business:
        business = db.query(Business).filter(Business.id == business_id).first()
        if not business:
            raise NotFound(f"Business {business_id} not found")
        return business

    @staticmethod
    def get_weekly_hours(db: Session, business_id: UUID) -> WeeklyHours:
        business = BusinessHoursSource.get_business(db, business_id)
        return normalize_business_hours(business.business_hours)

    @staticmethod
    def update_business_hours(
            db: Session,
            business_id: UUID,
            raw_hours: Dict[str, Any],
            actor: Actor
    ) -> WeeklyHours:
        """
        Store new hours in canonical form.

        Does not touch any provider schedule: inherited providers pick the
        change up only when someone applies or syncs business hours.
        """
        business = BusinessHoursSource.get_business(db, business_id)
        ensure_manager(actor, business.id, "edit business hours")

        hours = validate_business_hours(raw_hours)
        business.business_hours = serialize_business_hours(hours)
        db.commit()

        logger.info(f"Updated business hours for {business_id}: {sum(d.is_open for d in hours)} open days")
        return hours

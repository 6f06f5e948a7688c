# booking_engine/core/errors.py
"""Domain errors raised by the engine services and rendered by the API layer"""
from typing import Optional


class BookingEngineError(Exception):
    """Base class for every error the engine surfaces to callers"""

    status_code = 400
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationError(BookingEngineError):
    """Malformed input (start >= end, non-positive slot duration, ...)"""

    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, day_of_week: Optional[int] = None):
        super().__init__(message)
        self.day_of_week = day_of_week

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.day_of_week is not None:
            data["day_of_week"] = self.day_of_week
        return data


class NotFound(BookingEngineError):
    status_code = 404
    code = "not_found"


class Forbidden(BookingEngineError):
    status_code = 403
    code = "forbidden"


class _StateConflict(BookingEngineError):
    status_code = 409

    def __init__(self, message: str, current_status: str):
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class InvalidTransition(_StateConflict):
    code = "invalid_transition"


class BookingLocked(_StateConflict):
    code = "booking_locked"


class UpstreamUnavailable(BookingEngineError):
    """Both eligibility paths failed"""

    status_code = 503
    code = "upstream_unavailable"

# booking_engine/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from contextvars import ContextVar
from booking_engine.config.settings import get_settings

# Set per request by correlation_id_middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the current request's correlation id"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging"""
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[handler]
    )

    if not verbose:
        # Silence noisy loggers; booking_engine.* keeps the configured level
        for name in ("sqlalchemy", "alembic", "httpx", "httpcore", "uvicorn", "uvicorn.access"):
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False

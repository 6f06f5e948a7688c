import uuid
from datetime import date, datetime, time, timedelta, timezone

import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from booking_engine.config.settings import get_settings
from booking_engine.models import (
    Base,
    Booking,
    BookingStatus,
    Business,
    Provider,
    ProviderRole,
)
from booking_engine.services.authorization import Actor

STANDARD_HOURS = {
    "Monday": {"open": "09:00", "close": "17:00"},
    "Tuesday": {"open": "09:00", "close": "17:00"},
    "Wednesday": {"open": "09:00", "close": "17:00"},
    "Thursday": {"open": "09:00", "close": "17:00"},
    "Friday": {"open": "09:00", "close": "17:00"},
    "Saturday": {"open": "10:00", "close": "16:00"},
    "Sunday": {"closed": True},
}

# A Monday well in the future so advance-notice rules never interfere
FUTURE_MONDAY = date(2031, 6, 2)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Factories
# ============================================================================

def make_business(db, hours=None, **kwargs):
    business = Business(
        name=kwargs.pop("name", "Roam Wellness"),
        timezone=kwargs.pop("timezone", "UTC"),
        business_hours=STANDARD_HOURS if hours is None else hours,
        **kwargs
    )
    db.add(business)
    db.commit()
    return business


def make_provider(db, business, role=ProviderRole.PROVIDER, **kwargs):
    provider = Provider(
        business_id=business.id,
        first_name=kwargs.pop("first_name", "Alex"),
        last_name=kwargs.pop("last_name", "Rivera"),
        role=role,
        **kwargs
    )
    db.add(provider)
    db.commit()
    return provider


def make_booking(db, business, provider=None, status=BookingStatus.PENDING, **kwargs):
    booking = Booking(
        business_id=business.id,
        provider_id=provider.id if provider is not None else None,
        customer_id=kwargs.pop("customer_id", uuid.uuid4()),
        booking_date=kwargs.pop("booking_date", FUTURE_MONDAY),
        start_time=kwargs.pop("start_time", time(10, 0)),
        end_time=kwargs.pop("end_time", time(11, 0)),
        status=status.value if hasattr(status, "value") else status,
        **kwargs
    )
    db.add(booking)
    db.commit()
    return booking


def access_token_for(provider, expires_in=timedelta(minutes=30)):
    """Sign a token the way the auth service does; sub is the provider id"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    claims = {"sub": str(provider.id), "type": "access", "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def actor_for(provider):
    return Actor.from_provider(provider)


@pytest.fixture
def business(db):
    return make_business(db)


@pytest.fixture
def owner(db, business):
    return make_provider(db, business, role=ProviderRole.OWNER, first_name="Olivia")


@pytest.fixture
def dispatcher(db, business):
    return make_provider(db, business, role=ProviderRole.DISPATCHER, first_name="Dana")


@pytest.fixture
def provider(db, business):
    return make_provider(db, business, first_name="Pat")


@pytest.fixture
def other_provider(db, business):
    return make_provider(db, business, first_name="Quinn")


class RecordingHook:
    """Collects (booking_id, status) pairs passed to on_status_change"""

    def __init__(self):
        self.calls = []

    def __call__(self, booking_id, status):
        self.calls.append((booking_id, status))


@pytest.fixture
def recorder():
    return RecordingHook()


def days_after(start, count):
    return start + timedelta(days=count)

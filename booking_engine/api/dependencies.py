# ============================================================================
# FILE: booking_engine/api/dependencies.py
# JWT actor resolution and service dependencies
# ============================================================================
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from jose import JWTError, jwt
from uuid import UUID

from booking_engine.config.database import get_db
from booking_engine.config.settings import get_settings
from booking_engine.models.provider import Provider
from booking_engine.services.authorization import Actor
from booking_engine.services.eligibility.eligibility_client import EligibilityClient
from booking_engine.services.eligibility.eligibility_resolver import EligibilityResolver
from booking_engine.services.notification.realtime_notifier import RealtimeNotifier

# ============================================================================
# Security Schemes
# ============================================================================

# Tokens are issued by the auth service; this service only verifies them
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


# ============================================================================
# Actor Dependencies
# ============================================================================

def get_current_provider(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> Provider:
    """
    Resolve the provider record behind the bearer token (`sub` = provider id).

    Raises:
        HTTPException 401: If token is invalid or provider not found
        HTTPException 403: If the provider has been deactivated
    """
    payload = verify_access_token(credentials.credentials)

    provider_id_str: Optional[str] = payload.get("sub")
    if provider_id_str is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        provider_id = UUID(provider_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid provider ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Provider not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not provider.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive provider account"
        )

    return provider


def get_current_actor(provider: Provider = Depends(get_current_provider)) -> Actor:
    """Role and business of the caller, as the services expect them"""
    return Actor.from_provider(provider)


# ============================================================================
# Service Dependencies
# ============================================================================

def get_notifier() -> RealtimeNotifier:
    """Lazy initialization of the real-time notifier"""
    return RealtimeNotifier()


def get_eligibility_resolver() -> EligibilityResolver:
    return EligibilityResolver(EligibilityClient.from_settings())

# booking_engine/services/authorization.py
"""Role checks shared by the schedule, sync and booking services"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from booking_engine.core.errors import Forbidden
from booking_engine.models.provider import Provider, ProviderRole

MANAGER_ROLES = (ProviderRole.OWNER, ProviderRole.DISPATCHER)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation"""
    provider_id: Optional[UUID]
    business_id: UUID
    role: ProviderRole

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    @classmethod
    def from_provider(cls, provider: Provider) -> "Actor":
        return cls(
            provider_id=provider.id,
            business_id=provider.business_id,
            role=ProviderRole(provider.role),
        )


def ensure_same_business(actor: Actor, business_id: UUID) -> None:
    if actor.business_id != business_id:
        raise Forbidden("Actor does not belong to this business")


def ensure_manager(actor: Actor, business_id: UUID, action: str) -> None:
    """Owner or dispatcher of the given business"""
    ensure_same_business(actor, business_id)
    if not actor.is_manager:
        raise Forbidden(f"Only owners and dispatchers may {action}")


def ensure_can_manage_provider(actor: Actor, provider: Provider) -> None:
    """Managers may edit any provider of their business, providers only themselves"""
    ensure_same_business(actor, provider.business_id)
    if actor.is_manager:
        return
    if actor.provider_id != provider.id:
        raise Forbidden("Providers may only edit their own schedule")

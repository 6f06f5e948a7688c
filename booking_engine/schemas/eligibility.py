"""
Eligibility partition schemas

EligibleServiceSet is derived on demand and never persisted.
"""
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

GENERAL_ADDON_BUCKET = "general"


class EligibleService(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    min_price: Optional[Decimal] = None
    duration_minutes: Optional[int] = None
    is_configured: bool = False
    business_price: Optional[Decimal] = None
    delivery_type: Optional[str] = None
    business_is_active: Optional[bool] = None
    display_price: Optional[Decimal] = None


class EligibleAddon(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None


class EligibleServiceSet(BaseModel):
    configured_services: List[EligibleService] = Field(default_factory=list)
    available_services: List[EligibleService] = Field(default_factory=list)
    eligible_addons: List[EligibleAddon] = Field(default_factory=list)
    # service id (or "general") -> add-on ids
    service_addon_map: Dict[str, List[str]] = Field(default_factory=dict)

    @property
    def configured_count(self) -> int:
        return len(self.configured_services)

    @property
    def available_count(self) -> int:
        return len(self.available_services)

    @property
    def addon_count(self) -> int:
        return len(self.eligible_addons)


class EligibilityResultOut(BaseModel):
    business_id: UUID
    source: str  # primary, fallback, unavailable
    primary_error: Optional[str] = None
    configured_count: int
    available_count: int
    addon_count: int
    set: EligibleServiceSet


# ----------------------------------------------------------------------------
# Remote function payload
# ----------------------------------------------------------------------------

class RemoteEligiblePayload(BaseModel):
    """Body returned by the eligible-services function"""
    business_id: Optional[str] = None
    eligible_services: List[EligibleService]
    eligible_addons: List[EligibleAddon] = Field(default_factory=list)
    service_addon_map: Dict[str, List[str]] = Field(default_factory=dict)

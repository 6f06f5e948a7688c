# ===== booking_engine/services/eligibility/eligibility_resolver.py =====
"""
Which catalog services and add-ons a business can offer.

Primary path: the remote eligible-services function. On any primary failure
(timeout, non-2xx, empty or malformed body) the set is rebuilt from local
tables once; the primary is never retried within a resolution. Only when the
local rebuild fails too is the result marked unavailable.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from booking_engine.core.errors import UpstreamUnavailable
from booking_engine.models.service import (
    BusinessService,
    CatalogAddon,
    CatalogService,
    ServiceAddonEligibility,
)
from booking_engine.schemas.eligibility import (
    GENERAL_ADDON_BUCKET,
    EligibilityResultOut,
    EligibleAddon,
    EligibleService,
    EligibleServiceSet,
    RemoteEligiblePayload,
)
from booking_engine.services.eligibility.eligibility_client import (
    EligibilityClient,
    PrimaryErr,
    PrimaryOk,
)

logger = logging.getLogger(__name__)


class EligibilitySource(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    UNAVAILABLE = "unavailable"


@dataclass
class EligibilityResult:
    set: EligibleServiceSet
    source: EligibilitySource
    primary_error: Optional[PrimaryErr] = None

    def to_out(self, business_id: UUID) -> EligibilityResultOut:
        return EligibilityResultOut(
            business_id=business_id,
            source=self.source.value,
            primary_error=self.primary_error.kind.value if self.primary_error else None,
            configured_count=self.set.configured_count,
            available_count=self.set.available_count,
            addon_count=self.set.addon_count,
            set=self.set,
        )


def display_price(service: EligibleService) -> Optional[Decimal]:
    """Business price when the business configured one, catalog floor otherwise"""
    if service.is_configured and service.business_price is not None:
        return service.business_price
    return service.min_price


def partition_payload(payload: RemoteEligiblePayload) -> EligibleServiceSet:
    configured, available = [], []
    for service in payload.eligible_services:
        service = service.model_copy(update={"display_price": display_price(service)})
        (configured if service.is_configured else available).append(service)

    return EligibleServiceSet(
        configured_services=configured,
        available_services=available,
        eligible_addons=list(payload.eligible_addons),
        service_addon_map={key: list(ids) for key, ids in payload.service_addon_map.items()},
    )


def require_available(result: EligibilityResult) -> EligibilityResult:
    """Strict mode: turn an unavailable result into an error"""
    if result.source == EligibilitySource.UNAVAILABLE:
        raise UpstreamUnavailable("Eligible services could not be loaded from any source")
    return result


class EligibilityResolver:

    def __init__(self, client: EligibilityClient):
        self.client = client

    async def resolve(self, db: Session, business_id: UUID) -> EligibilityResult:
        primary = await self.client.fetch(business_id)

        if isinstance(primary, PrimaryOk):
            eligible = partition_payload(primary.payload)
            logger.info(
                f"Eligibility for {business_id} from primary: "
                f"{eligible.configured_count} configured, {eligible.available_count} available"
            )
            return EligibilityResult(set=eligible, source=EligibilitySource.PRIMARY)

        logger.warning(f"Eligibility primary failed for {business_id} ({primary.kind.value}): {primary.detail}")
        try:
            eligible = self._fallback(db, business_id)
        except SQLAlchemyError as e:
            logger.error(f"Eligibility fallback failed for {business_id}: {str(e)}")
            db.rollback()
            return EligibilityResult(
                set=EligibleServiceSet(),
                source=EligibilitySource.UNAVAILABLE,
                primary_error=primary,
            )

        logger.info(
            f"Eligibility for {business_id} from fallback: "
            f"{eligible.configured_count} configured, {eligible.available_count} available"
        )
        return EligibilityResult(set=eligible, source=EligibilitySource.FALLBACK, primary_error=primary)

    @staticmethod
    def _fallback(db: Session, business_id: UUID) -> EligibleServiceSet:
        """Rebuild the partition from the catalog and the business's junction rows"""
        configured_rows = db.query(CatalogService, BusinessService).join(
            BusinessService, BusinessService.service_id == CatalogService.id
        ).filter(
            BusinessService.business_id == business_id,
            CatalogService.is_active == True
        ).order_by(CatalogService.name).all()

        configured = []
        for service, junction in configured_rows:
            item = EligibleService(
                id=service.id,
                name=service.name,
                description=service.description,
                min_price=service.min_price,
                duration_minutes=service.duration_minutes,
                is_configured=True,
                business_price=junction.business_price,
                delivery_type=junction.delivery_type,
                business_is_active=junction.is_active,
            )
            configured.append(item.model_copy(update={"display_price": display_price(item)}))

        configured_ids = {service.id for service in configured}
        available = [
            EligibleService(
                id=service.id,
                name=service.name,
                description=service.description,
                min_price=service.min_price,
                duration_minutes=service.duration_minutes,
                is_configured=False,
                display_price=service.min_price,
            )
            for service in db.query(CatalogService).filter(
                CatalogService.is_active == True
            ).order_by(CatalogService.name).all()
            if service.id not in configured_ids
        ]

        addons = [
            EligibleAddon(id=addon.id, name=addon.name, description=addon.description)
            for addon in db.query(CatalogAddon).filter(
                CatalogAddon.is_active == True
            ).order_by(CatalogAddon.name).all()
        ]

        service_ids = configured_ids | {service.id for service in available}
        addon_ids = {addon.id for addon in addons}
        service_addon_map: Dict[str, List[str]] = {}
        if service_ids and addon_ids:
            links = db.query(ServiceAddonEligibility).filter(
                ServiceAddonEligibility.service_id.in_(service_ids),
                ServiceAddonEligibility.addon_id.in_(addon_ids)
            ).all()
            for link in links:
                service_addon_map.setdefault(str(link.service_id), []).append(str(link.addon_id))

        if not service_addon_map and addons:
            # No compatibility rows: every add-on is offered with every service
            service_addon_map[GENERAL_ADDON_BUCKET] = [str(addon.id) for addon in addons]

        return EligibleServiceSet(
            configured_services=configured,
            available_services=available,
            eligible_addons=addons,
            service_addon_map=service_addon_map,
        )

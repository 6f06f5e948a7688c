# ===== booking_engine/services/eligibility/eligibility_client.py =====
"""
Client for the remote eligible-services function.

fetch() never raises for upstream trouble: it returns PrimaryOk with the
parsed payload or PrimaryErr with a machine-readable kind, so callers branch
on the type instead of inspecting error text.
"""
import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from uuid import UUID

import httpx
from pydantic import ValidationError as PayloadValidationError
import logging

from booking_engine.config.settings import get_settings
from booking_engine.schemas.eligibility import RemoteEligiblePayload

logger = logging.getLogger(__name__)


class PrimaryErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    EMPTY_BODY = "empty_body"
    INVALID_BODY = "invalid_body"
    TRANSPORT = "transport"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class PrimaryOk:
    payload: RemoteEligiblePayload


@dataclass(frozen=True)
class PrimaryErr:
    kind: PrimaryErrorKind
    detail: str = ""
    status_code: Optional[int] = None


PrimaryResult = Union[PrimaryOk, PrimaryErr]


class EligibilityClient:

    def __init__(
            self,
            base_url: str,
            token: str = "",
            timeout: float = 5.0,
            transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "EligibilityClient":
        settings = get_settings()
        return cls(
            base_url=settings.ELIGIBILITY_FUNCTION_URL,
            token=settings.ELIGIBILITY_FUNCTION_TOKEN,
            timeout=settings.ELIGIBILITY_TIMEOUT_SECONDS,
        )

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, business_id: UUID) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.get(
                self.base_url,
                params={"business_id": str(business_id)},
                headers=self._headers(),
            )

    async def fetch(self, business_id: UUID) -> PrimaryResult:
        if not self.base_url:
            return PrimaryErr(PrimaryErrorKind.NOT_CONFIGURED, "ELIGIBILITY_FUNCTION_URL is not set")

        try:
            # httpx timeouts cover each phase; wait_for bounds the whole call
            response = await asyncio.wait_for(self._get(business_id), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return PrimaryErr(PrimaryErrorKind.TIMEOUT, f"Request timeout ({self.timeout}s)")
        except httpx.RequestError as e:
            return PrimaryErr(PrimaryErrorKind.TRANSPORT, f"Request error: {str(e)[:200]}")

        if not 200 <= response.status_code < 300:
            return PrimaryErr(
                PrimaryErrorKind.HTTP_STATUS,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if not response.content or not response.content.strip():
            return PrimaryErr(PrimaryErrorKind.EMPTY_BODY, "Response body was empty", response.status_code)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return PrimaryErr(PrimaryErrorKind.INVALID_BODY, f"Response is not JSON: {str(e)[:200]}")

        if not isinstance(data, dict):
            return PrimaryErr(PrimaryErrorKind.INVALID_BODY, f"Expected a JSON object, got {type(data).__name__}")
        if "error" in data and "eligible_services" not in data:
            return PrimaryErr(PrimaryErrorKind.INVALID_BODY, f"Function reported an error: {str(data['error'])[:200]}")

        try:
            payload = RemoteEligiblePayload.model_validate(data)
        except PayloadValidationError as e:
            return PrimaryErr(PrimaryErrorKind.INVALID_BODY, f"Unexpected payload shape: {str(e)[:200]}")

        return PrimaryOk(payload)

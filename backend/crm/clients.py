from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import uuid4

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class CRMError(Exception):
    """Raised when the CRM rejects a request or cannot be reached."""


class BaseCRMClient:
    """
    Minimal JSON-over-HTTP client for a CRM.

    Subclasses provide the endpoint paths and payload mapping; this class owns
    authentication headers, timeouts and error translation.
    """

    provider = "base"

    def __init__(self, api_url: str, api_key: str, api_secret: str = "", timeout: float = 10.0, session=None):
        if not api_url:
            raise CRMError("CRM_API_URL is not configured.")
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_secret:
            headers["X-API-Secret"] = self.api_secret
        return headers

    def request(self, method: str, endpoint: str, payload: Optional[dict] = None) -> Any:
        url = f"{self.api_url}{endpoint}"
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("CRM %s %s failed: %s", method, endpoint, exc)
            raise CRMError(f"CRM API error: {exc}") from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise CRMError("CRM returned a non-JSON response") from exc

    def health_check(self) -> bool:
        try:
            self.request("GET", "/api/v1/health")
        except CRMError:
            return False
        return True

    def push_contact(self, payload: dict, crm_id: str = "") -> str:
        raise NotImplementedError

    def push_property(self, payload: dict, crm_id: str = "") -> str:
        raise NotImplementedError

    def push_booking(self, payload: dict, crm_id: str = "") -> str:
        raise NotImplementedError


class TreadSoftClient(BaseCRMClient):
    provider = "treadsoft"

    def _upsert(self, resource: str, payload: dict, crm_id: str) -> str:
        if crm_id:
            self.request("PUT", f"/api/v1/{resource}/{crm_id}", payload)
            return crm_id
        response = self.request("POST", f"/api/v1/{resource}", payload)
        new_id = response.get("id") or response.get("data", {}).get("id")
        if not new_id:
            raise CRMError(f"CRM did not return an id for new {resource}")
        return str(new_id)

    def push_contact(self, payload: dict, crm_id: str = "") -> str:
        contact = {
            "email": payload["email"],
            "first_name": payload.get("first_name", ""),
            "last_name": payload.get("last_name", ""),
            "phone": payload.get("phone", ""),
            "company": payload.get("company_name", ""),
            "contact_type": payload.get("role", "guest"),
            "external_id": payload.get("id"),
        }
        return self._upsert("contacts", contact, crm_id)

    def push_property(self, payload: dict, crm_id: str = "") -> str:
        return self._upsert("properties", payload, crm_id)

    def push_booking(self, payload: dict, crm_id: str = "") -> str:
        return self._upsert("bookings", payload, crm_id)


class MockCRMClient(BaseCRMClient):
    """Used when the CRM integration is disabled; records nothing remotely."""

    provider = "mock"

    def __init__(self, *args, **kwargs):
        self.api_url = ""
        self.timeout = 0

    def request(self, method: str, endpoint: str, payload: Optional[dict] = None) -> Any:
        logger.debug("Mock CRM %s %s", method, endpoint)
        return {}

    def _mock_id(self, kind: str, crm_id: str) -> str:
        return crm_id or f"mock-{kind}-{uuid4().hex[:12]}"

    def push_contact(self, payload: dict, crm_id: str = "") -> str:
        return self._mock_id("contact", crm_id)

    def push_property(self, payload: dict, crm_id: str = "") -> str:
        return self._mock_id("property", crm_id)

    def push_booking(self, payload: dict, crm_id: str = "") -> str:
        return self._mock_id("booking", crm_id)


CLIENTS = {
    "treadsoft": TreadSoftClient,
    # Custom deployments speak the TreadSoft API.
    "custom": TreadSoftClient,
}


def get_crm_client() -> BaseCRMClient:
    if not getattr(settings, "CRM_ENABLED", False):
        return MockCRMClient()

    provider = getattr(settings, "CRM_PROVIDER", "treadsoft")
    client_class = CLIENTS.get(provider)
    if client_class is None:
        logger.warning("Unknown CRM provider %s; using mock client", provider)
        return MockCRMClient()
    return client_class(
        api_url=settings.CRM_API_URL,
        api_key=settings.CRM_API_KEY,
        api_secret=getattr(settings, "CRM_API_SECRET", ""),
        timeout=getattr(settings, "CRM_TIMEOUT", 10.0),
    )

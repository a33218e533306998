"""HubSpot CRM v3 API client for owners, deals, meetings and statements."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from src.config import settings

logger = logging.getLogger(__name__)

DEAL_PROPERTIES = [
    "amount",
    "closedate",
    "dealstage",
    "hubspot_owner_id",
    "deal_channel",
    "payment_terms",
    "sdr_owner",
]

MEETING_PROPERTIES = [
    "hs_meeting_start_time",
    "hs_meeting_type",
    "hs_meeting_outcome",
    "hubspot_owner_id",
]

SEARCH_PAGE_SIZE = 100


class CRMError(Exception):
    """HubSpot request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class CRMConfigurationError(CRMError):
    """HubSpot is not configured (no token)."""


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class HubSpotClient:
    """Client for the HubSpot CRM API (api.hubapi.com).

    Authenticates with a private app token. Search endpoints are paginated
    with the ``after`` cursor until HubSpot stops returning ``paging.next``
    or ``max_pages`` is reached.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_pages: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HubSpot client.

        Args:
            token: Private app token; defaults to HUBSPOT_PRIVATE_TOKEN
            base_url: API root; defaults to HUBSPOT_BASE_URL
            timeout: Per-request timeout in seconds
            max_pages: Safety limit for paginated calls
            transport: Optional httpx transport (used by tests)
        """
        self.token = token if token is not None else settings.hubspot_private_token
        if not self.token:
            raise CRMConfigurationError("HubSpot token not configured")
        self.base_url = (base_url or settings.hubspot_base_url).rstrip("/")
        self.timeout = timeout or settings.hubspot_timeout_seconds
        self.max_pages = max_pages or settings.hubspot_max_pages
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated request and return the decoded JSON body."""
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers={
                        "Authorization": f"Bearer {self.token}",
                        "Content-Type": "application/json",
                    },
                    params=params,
                    json=json_data,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                logger.error(f"HubSpot API error {e.response.status_code}: {e.response.text}")
                raise CRMError(
                    f"HubSpot API error: {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e

            except httpx.HTTPError as e:
                logger.error(f"HubSpot request error: {str(e)}")
                raise CRMError(f"HubSpot request failed: {e}") from e

    async def _search(
        self,
        object_type: str,
        filters: List[Dict[str, Any]],
        properties: List[str],
    ) -> List[Dict[str, Any]]:
        """Run a CRM search, following ``after`` cursors."""
        results: List[Dict[str, Any]] = []
        body: Dict[str, Any] = {
            "filterGroups": [{"filters": filters}],
            "properties": properties,
            "limit": SEARCH_PAGE_SIZE,
        }
        pages_fetched = 0

        while pages_fetched < self.max_pages:
            response = await self._request(
                "POST", f"/crm/v3/objects/{object_type}/search", json_data=body
            )
            results.extend(response.get("results", []))
            pages_fetched += 1

            after = response.get("paging", {}).get("next", {}).get("after")
            if not after:
                break
            body["after"] = after
        else:
            logger.warning(f"HubSpot {object_type} search stopped at {self.max_pages} pages")

        return results

    async def list_owners(self) -> List[Dict[str, Any]]:
        """Fetch every CRM owner."""
        owners: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {"limit": SEARCH_PAGE_SIZE}
        pages_fetched = 0

        while pages_fetched < self.max_pages:
            response = await self._request("GET", "/crm/v3/owners/", params=params)
            owners.extend(response.get("results", []))
            pages_fetched += 1

            after = response.get("paging", {}).get("next", {}).get("after")
            if not after:
                break
            params["after"] = after

        logger.info(f"Fetched {len(owners)} HubSpot owners")
        return owners

    async def get_owner(self, owner_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/crm/v3/owners/{owner_id}")

    async def search_deals(
        self,
        start: datetime,
        end: datetime,
        extra_filters: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """Deals whose close date falls inside [start, end]."""
        filters = [
            {"propertyName": "closedate", "operator": "GTE", "value": _epoch_ms(start)},
            {"propertyName": "closedate", "operator": "LTE", "value": _epoch_ms(end)},
        ]
        filters.extend(extra_filters or [])
        return await self._search("deals", filters, DEAL_PROPERTIES)

    async def search_meetings(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
    ) -> List[Dict[str, Any]]:
        """Meetings owned by ``owner_id`` starting inside [start, end]."""
        filters = [
            {"propertyName": "hubspot_owner_id", "operator": "EQ", "value": owner_id},
            {"propertyName": "hs_meeting_start_time", "operator": "GTE", "value": _epoch_ms(start)},
            {"propertyName": "hs_meeting_start_time", "operator": "LTE", "value": _epoch_ms(end)},
        ]
        return await self._search("meetings", filters, MEETING_PROPERTIES)

    async def create_commission_statement(self, properties: Dict[str, Any]) -> str:
        """Create a commission statement record and return its HubSpot id."""
        response = await self._request(
            "POST",
            f"/crm/v3/objects/{settings.hubspot_commission_object}",
            json_data={"properties": properties},
        )
        record_id = str(response.get("id", ""))
        logger.info(f"Created commission statement in HubSpot: {record_id}")
        return record_id

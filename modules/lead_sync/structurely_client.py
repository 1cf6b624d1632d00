"""
Structurely API client for the lead sync.

Handles the leads endpoint: upsert by externalLeadId and fetch by id.
"""

from typing import Optional

import httpx

from .exceptions import RemoteAPIError
from .log import get_logger
from .models import Lead, LeadPush

logger = get_logger(__name__)


class StructurelyClient:
    """Structurely direct API client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = 'https://datalayer.structurely.com/api/direct/v2',
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                'Authorization': f'Bearer {api_key}',
                'Accept': 'application/json',
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> 'StructurelyClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, endpoint: str, json_data: Optional[dict] = None) -> dict:
        """Make a request to the Structurely API."""
        response = await self._client.request(method, f'/{endpoint}', json=json_data)

        if response.is_error:
            raise RemoteAPIError(
                f"Structurely {method} /{endpoint} returned {response.status_code}",
                service='structurely',
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError:
            raise RemoteAPIError(
                f"Structurely {method} /{endpoint} returned a non-JSON body",
                service='structurely',
                status_code=response.status_code,
                body=response.text,
            )

    async def push_lead(self, record: LeadPush) -> Lead:
        """Create or update a lead (Structurely upserts on externalLeadId)."""
        logger.info(f"Sending GHL contact {record.external_lead_id} to Structurely...")
        data = await self._request('POST', 'leads', json_data=record.to_api())
        lead = Lead.from_api(data)
        logger.success(f"Lead synced to Structurely with ID: {lead.id}")
        return lead

    async def get_lead(self, lead_id: str) -> Lead:
        """Get a single lead by ID."""
        logger.debug(f"Retrieving lead {lead_id} from Structurely")
        data = await self._request('GET', f'leads/{lead_id}')
        return Lead.from_api(data)

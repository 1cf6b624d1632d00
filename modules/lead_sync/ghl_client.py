"""
GoHighLevel API client for the lead sync.

Handles contact listing and custom field updates.
"""

from typing import Optional

import httpx

from .exceptions import RemoteAPIError
from .log import get_logger
from .models import Contact, ContactPage

logger = get_logger(__name__)


class GHLClient:
    """GoHighLevel v1 API client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = 'https://rest.gohighlevel.com/v1',
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                'Authorization': f'Bearer {api_key}',
                'Content-Type': 'application/json',
                'Accept': 'application/json',
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> 'GHLClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
    ) -> dict:
        """Make a request to the GHL API."""
        response = await self._client.request(method, f'/{endpoint}', params=params, json=json_data)

        # Check rate limits
        remaining = response.headers.get('X-RateLimit-Remaining')
        if remaining and remaining.isdigit() and int(remaining) < 10:
            logger.warning(f"GHL rate limit low: {remaining} remaining")

        if response.is_error:
            raise RemoteAPIError(
                f"GHL {method} /{endpoint} returned {response.status_code}",
                service='ghl',
                status_code=response.status_code,
                body=response.text,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise RemoteAPIError(
                f"GHL {method} /{endpoint} returned a non-JSON body",
                service='ghl',
                status_code=response.status_code,
                body=response.text,
            )

    async def list_contacts(self, limit: int = 100, offset: int = 0) -> ContactPage:
        """Get one page of contacts."""
        logger.info(f"Fetching contacts from GHL (limit: {limit}, offset: {offset})...")
        data = await self._request('GET', 'contacts/', params={'limit': limit, 'offset': offset})

        contacts = [Contact.from_api(c) for c in data.get('contacts', [])]
        has_more = len(contacts) >= limit

        logger.success(f"Found {len(contacts)} contacts in GHL")
        return ContactPage(contacts=contacts, has_more=has_more)

    async def update_contact_fields(self, contact_id: str, fields: dict[str, str]) -> dict:
        """Write custom field values onto a contact."""
        data = await self._request('PUT', f'contacts/{contact_id}', json_data={'customField': fields})
        logger.success(f"Updated GHL contact {contact_id} with Structurely data")
        return data

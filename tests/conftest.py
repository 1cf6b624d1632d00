"""
pytest configuration and fixtures for lead sync tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from modules.lead_sync.config import SyncConfig  # noqa: E402
from modules.lead_sync.exceptions import RemoteAPIError  # noqa: E402
from modules.lead_sync.models import Contact, ContactPage, Lead  # noqa: E402


def _take_failure(failures, key):
    """Consume one scheduled failure for key (-1 = always fail)."""
    remaining = failures.get(key, 0)
    if remaining > 0:
        failures[key] = remaining - 1
    return remaining != 0


class FakeLeadStore:
    """In-memory Structurely that upserts on externalLeadId."""

    def __init__(self):
        self.leads: dict[str, dict] = {}
        self.by_external_id: dict[str, str] = {}
        self.pushes = []
        self.fetches = []
        # key -> number of failures still to raise (-1 = always)
        self.push_failures: dict[str, int] = {}  # by contact id
        self.fetch_failures: dict[str, int] = {}  # by lead id

    async def push_lead(self, record):
        self.pushes.append(record)

        if _take_failure(self.push_failures, record.external_lead_id):
            raise RemoteAPIError("Structurely POST /leads returned 503", 'structurely', 503, 'unavailable')

        body = record.to_api()
        lead_id = self.by_external_id.get(record.external_lead_id)
        if lead_id is None:
            lead_id = f"L{len(self.by_external_id) + 1}"
            self.by_external_id[record.external_lead_id] = lead_id

        self.leads[lead_id] = {
            'id': lead_id,
            'name': body['name'],
            'properties': body['properties'],
            'stages': ['new'],
            'muted': False,
            'type': body['properties']['leadType'],
        }
        return Lead.from_api(self.leads[lead_id])

    async def get_lead(self, lead_id):
        self.fetches.append(lead_id)
        if _take_failure(self.fetch_failures, lead_id):
            raise RemoteAPIError(f"Structurely GET /leads/{lead_id} returned 503", 'structurely', 503, 'unavailable')
        return Lead.from_api(self.leads[lead_id])


class FakeContactStore:
    """In-memory GHL contact listing with offset pagination."""

    def __init__(self, contacts=None):
        self.contacts: list[Contact] = list(contacts or [])
        self.updates: dict[str, dict] = {}
        self.list_calls: list[tuple[int, int]] = []
        self.failing_offsets: set[int] = set()
        self.update_failures: dict[str, int] = {}

    async def list_contacts(self, limit, offset):
        self.list_calls.append((limit, offset))
        if offset in self.failing_offsets:
            raise RemoteAPIError("GHL GET /contacts/ returned 502", 'ghl', 502, 'bad gateway')
        page = self.contacts[offset:offset + limit]
        return ContactPage(contacts=page, has_more=len(page) >= limit)

    async def update_contact_fields(self, contact_id, fields):
        if _take_failure(self.update_failures, contact_id):
            raise RemoteAPIError(f"GHL PUT /contacts/{contact_id} returned 422", 'ghl', 422, 'unknown custom field')
        self.updates[contact_id] = dict(fields)
        for contact in self.contacts:
            if contact.id == contact_id:
                contact.custom_fields.update(fields)
        return {'contact': {'id': contact_id}}


@pytest.fixture
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def sync_config():
    """Config with test keys and a small page size."""
    return SyncConfig(
        structurely_api_key='test_structurely_key',
        ghl_api_key='test_ghl_key',
        page_size=3,
    )


@pytest.fixture
def sleeps():
    """Delays requested by the code under test."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    """Async sleep that records the delay instead of waiting."""
    async def _sleep(delay):
        sleeps.append(delay)
    return _sleep


@pytest.fixture
def lead_store():
    return FakeLeadStore()


@pytest.fixture
def make_contact():
    """Build a GHL contact from API-shaped data."""
    def _make(contact_id, first='Test', last='Contact', **custom):
        return Contact.from_api({
            'id': contact_id,
            'firstName': first,
            'lastName': last,
            'email': f"{contact_id}@example.com",
            'phone': '+15550000000',
            'customField': custom,
        })
    return _make


@pytest.fixture
def contact_store_factory():
    return FakeContactStore


@pytest.fixture
def sample_contact_data():
    """Sample GHL contact payload."""
    return {
        "id": "c1",
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane@x.com",
        "phone": "+15551234567",
        "customField": {
            "property_min_price": "400000",
            "property_max_price": "700000",
            "bedrooms": "3",
            "bathrooms": "2",
        },
    }


@pytest.fixture
def env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("STRUCTURELY_API_KEY", "env_structurely_key")
    monkeypatch.setenv("GHL_API_KEY", "env_ghl_key")
    for name in (
        "LEAD_SYNC_PAGE_SIZE",
        "LEAD_SYNC_INTERVAL",
        "LEAD_SYNC_RECENCY_MINUTES",
        "LEAD_SYNC_LEAD_TYPE",
        "LEAD_SYNC_LEAD_TYPE_FIELD",
        "LEAD_SYNC_LOG_LEVEL",
        "LEAD_SYNC_LOG_FILE",
        "STRUCTURELY_BASE_URL",
        "GHL_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)

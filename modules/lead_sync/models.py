"""
Data models for the lead sync module.

GHL contacts, Structurely leads, and the in-memory state of one sync run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional


@dataclass
class Contact:
    """Contact from GoHighLevel."""
    id: str
    first_name: str = ''
    last_name: str = ''
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    custom_fields: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> 'Contact':
        """Create from GHL API response."""
        return cls(
            id=str(data['id']),
            first_name=data.get('firstName') or '',
            last_name=data.get('lastName') or '',
            email=data.get('email') or None,
            phone=data.get('phone') or None,
            notes=data.get('notes') or None,
            custom_fields=_custom_field_map(data.get('customField')),
        )

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def custom(self, key: str) -> Optional[str]:
        """Get a custom field value, None when missing or blank."""
        value = self.custom_fields.get(key)
        if value is None or str(value).strip() == '':
            return None
        return str(value)

    def first_custom(self, keys: Iterable[str]) -> Optional[str]:
        """Get the first custom field present among alias keys."""
        for key in keys:
            value = self.custom(key)
            if value is not None:
                return value
        return None


def _custom_field_map(raw: Any) -> dict[str, str]:
    # GHL returns either {key: value} or [{"id"|"key": ..., "value": ...}]
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): v for k, v in raw.items() if v is not None}

    fields = {}
    for item in raw:
        key = item.get('key') or item.get('id')
        if key and item.get('value') is not None:
            fields[str(key)] = item['value']
    return fields


@dataclass
class ContactPage:
    """One page of the GHL contact listing."""
    contacts: list[Contact]
    has_more: bool = False


@dataclass
class LeadProperties:
    """Property preferences sent with a lead."""
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    timeframe: str = ''
    location: str = ''
    property_type: str = 'residential'
    lead_type: str = ''
    notes: str = ''

    def to_api(self) -> dict:
        return {
            'priceMin': self.price_min,
            'priceMax': self.price_max,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'timeframe': self.timeframe,
            'location': self.location,
            'propertyType': self.property_type,
            'leadType': self.lead_type,
            'notes': self.notes,
        }


@dataclass
class LeadPush:
    """
    Outgoing lead record for Structurely.

    Structurely upserts on external_lead_id, so pushing the same contact
    twice updates the existing lead.
    """
    external_lead_id: str
    name: str
    email: str
    phone: str
    source: str
    properties: LeadProperties = field(default_factory=LeadProperties)

    def to_api(self) -> dict:
        """Render the POST /leads request body."""
        return {
            'externalLeadId': self.external_lead_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'source': self.source,
            'properties': self.properties.to_api(),
        }


@dataclass
class Lead:
    """Lead from Structurely, including AI-derived enrichment."""
    id: str
    name: str = ''
    properties: dict = field(default_factory=dict)
    stages: list[str] = field(default_factory=list)
    muted: bool = False
    type: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> 'Lead':
        """Create from Structurely API response."""
        return cls(
            id=str(data['id']),
            name=data.get('name') or '',
            properties=data.get('properties') or {},
            stages=[str(s) for s in data.get('stages') or []],
            muted=_as_bool(data.get('muted')),
            type=data.get('type'),
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1')
    return value is True or value == 1


@dataclass
class ContactError:
    """A contact whose sync failed after retries."""
    contact_id: str
    message: str
    status_code: Optional[int] = None
    body: Optional[str] = None


@dataclass
class SyncRun:
    """
    State of a single sync run.

    Created at the start of each run and discarded at its end. Nothing here
    survives the run; the last-synced custom field written back to each
    contact is the only durable marker.
    """
    started_at: datetime
    cutoff: datetime
    offset: int = 0
    seen_ids: set[str] = field(default_factory=set)

    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0

    pages_failed: int = 0
    errors: list[ContactError] = field(default_factory=list)
    aborted: Optional[str] = None
    finished_at: Optional[datetime] = None

    @property
    def duration(self) -> float:
        """Wall-clock duration in seconds (0 while still running)."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> dict:
        return {
            'processed': self.processed,
            'succeeded': self.succeeded,
            'skipped': self.skipped,
            'failed': self.failed,
            'pages_failed': self.pages_failed,
            'duration': self.duration,
            'aborted': self.aborted,
        }

"""
Field mapping between GHL contacts and Structurely leads.

contact_to_lead() builds the record pushed to Structurely.
lead_to_custom_fields() builds the custom field write-back for GHL.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from .config import SyncConfig
from .models import Contact, Lead, LeadProperties, LeadPush

# Structurely rejects empty email/phone
FALLBACK_EMAIL = 'unknown@example.com'
FALLBACK_PHONE = '+10000000000'

# The only property type this integration's Structurely account accepts
PROPERTY_TYPE = 'residential'

# GHL custom field keys read from contacts
CONTACT_FIELDS = {
    'price_min': 'property_min_price',
    'price_max': 'property_max_price',
    'bedrooms': 'bedrooms',
    'bathrooms': 'bathrooms',
    'timeframe': 'timeframe',
    'location': 'location',
    'notes': 'notes',
}


def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a number; None when absent or unparseable (never 0)."""
    if value is None:
        return None
    try:
        number = float(str(value).replace(',', '').replace('$', '').strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer, truncating decimals ("2.5" -> 2); None when absent."""
    number = parse_float(value)
    return int(number) if number is not None else None


def resolve_lead_type(contact: Contact, config: SyncConfig) -> str:
    """Lead type is the configured constant unless a contact field overrides it."""
    if config.lead_type_field:
        value = contact.custom(config.lead_type_field)
        if value:
            return value
    return config.lead_type


def contact_to_lead(contact: Contact, config: SyncConfig) -> LeadPush:
    """Build the Structurely lead record for a GHL contact."""
    properties = LeadProperties(
        price_min=parse_float(contact.custom(CONTACT_FIELDS['price_min'])),
        price_max=parse_float(contact.custom(CONTACT_FIELDS['price_max'])),
        bedrooms=parse_int(contact.custom(CONTACT_FIELDS['bedrooms'])),
        bathrooms=parse_int(contact.custom(CONTACT_FIELDS['bathrooms'])),
        timeframe=contact.custom(CONTACT_FIELDS['timeframe']) or '',
        location=contact.custom(CONTACT_FIELDS['location']) or '',
        property_type=PROPERTY_TYPE,
        lead_type=resolve_lead_type(contact, config),
        notes=contact.notes or contact.custom(CONTACT_FIELDS['notes']) or '',
    )

    return LeadPush(
        external_lead_id=contact.id,
        name=contact.name,
        email=contact.email or FALLBACK_EMAIL,
        phone=contact.phone or FALLBACK_PHONE,
        source=config.lead_source,
        properties=properties,
    )


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value)


def lead_to_custom_fields(
    lead: Lead,
    config: SyncConfig,
    now: Optional[datetime] = None,
) -> dict[str, str]:
    """
    Build the GHL custom field map for a fetched Structurely lead.

    The lead id and last-synced timestamp are written under every alias key.
    The last-synced value is what the eligibility filter reads next run.
    """
    now = now or datetime.now(timezone.utc)
    props = lead.properties or {}
    aliases = config.field_aliases

    fields = {key: lead.id for key in aliases.lead_id}
    fields.update({
        'structurely_price_min': _text(props.get('priceMin')),
        'structurely_price_max': _text(props.get('priceMax')),
        'structurely_bedrooms': _text(props.get('bedrooms')),
        'structurely_bathrooms': _text(props.get('bathrooms')),
        'structurely_ai_conversation_status': ', '.join(lead.stages),
        'structurely_lead_type': _text(lead.type),
        'structurely_timeframe': _text(props.get('timeframe')),
        'structurely_location': _text(props.get('location')),
        'structurely_property_type': _text(props.get('propertyType')),
        'structurely_muted': 'Yes' if lead.muted else 'No',
        'structurely_notes': _text(props.get('notes')),
        'structurely_ai_conversation_link': f"{config.conversation_link_base.rstrip('/')}/{lead.id}",
    })

    synced = now.astimezone(timezone.utc).isoformat()
    for key in aliases.last_synced:
        fields[key] = synced

    return fields

"""
Decides whether a contact is due for a sync pass in the current run.
"""

from datetime import datetime, timedelta, timezone
from typing import AbstractSet, Iterable, Optional

from .config import FieldAliases
from .models import Contact

DEFAULT_LAST_SYNCED_KEYS = FieldAliases().last_synced


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    if not value:
        return None
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def last_synced_at(contact: Contact, keys: Iterable[str] = DEFAULT_LAST_SYNCED_KEYS) -> Optional[datetime]:
    """Latest parseable last-synced value across all alias keys."""
    stamps = [parse_timestamp(contact.custom(key)) for key in keys]
    stamps = [s for s in stamps if s is not None]
    return max(stamps) if stamps else None


def cutoff_for(now: datetime, window: timedelta) -> datetime:
    """Contacts synced after this instant are skipped."""
    return now - window


def is_eligible(
    contact: Contact,
    seen_ids: AbstractSet[str],
    cutoff: datetime,
    keys: Iterable[str] = DEFAULT_LAST_SYNCED_KEYS,
) -> bool:
    """
    Return True if the contact should be synced in this run.

    False when the contact was already handled in this run, or when it was
    last synced after the cutoff. Contacts never synced (or with an
    unreadable timestamp) are always eligible.
    """
    if contact.id in seen_ids:
        return False

    synced = last_synced_at(contact, keys)
    if synced is not None and synced > cutoff:
        return False

    return True

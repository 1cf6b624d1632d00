"""
Configuration for the Structurely ↔ GHL lead sync.

Loads environment variables and builds an immutable config value that is
passed into the sync engine and poller.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Find project root (.env lives there)
PROJECT_ROOT = Path(__file__).parent.parent.parent


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded linear backoff: the pause before retry k is base_delay * k."""
    max_retries: int = 3
    base_delay: float = 2.0


@dataclass(frozen=True)
class FieldAliases:
    """
    Custom field keys that hold the same logical value.

    The first key of each tuple is the canonical one. Writes go to every
    key, reads take whichever key is present.
    """
    lead_id: tuple[str, ...] = (
        'structurely_lead_id',
        'structurelyLeadId',
        'contact.structurely_lead_id',
    )
    last_synced: tuple[str, ...] = (
        'structurely_last_synced',
        'structurelyLastSynced',
        'contact.structurely_last_synced',
    )


@dataclass(frozen=True)
class SyncConfig:
    """Lead sync configuration."""

    # Secrets
    structurely_api_key: str = ''
    ghl_api_key: str = ''

    # Endpoints
    structurely_base_url: str = 'https://datalayer.structurely.com/api/direct/v2'
    ghl_base_url: str = 'https://rest.gohighlevel.com/v1'
    conversation_link_base: str = 'https://homechat.structurely.com/#/inbox'
    request_timeout: float = 20.0

    # Batching and pacing (seconds)
    page_size: int = 10
    sync_interval: int = 300
    recency_window: timedelta = timedelta(minutes=60)
    contact_pause: float = 0.5
    batch_pause: float = 2.0
    max_page_failures: int = 3

    # Retry policy per call site
    lead_push_retry: RetryPolicy = field(default_factory=RetryPolicy)
    lead_fetch_retry: RetryPolicy = field(default_factory=RetryPolicy)
    contact_list_retry: RetryPolicy = field(default_factory=RetryPolicy)
    contact_update_retry: RetryPolicy = field(default_factory=RetryPolicy)

    field_aliases: FieldAliases = field(default_factory=FieldAliases)

    # Lead classification sent to Structurely. When lead_type_field is set and
    # the contact carries that custom field, its value wins over the constant.
    lead_type: str = 'raw_lead'
    lead_type_field: Optional[str] = None
    lead_source: str = 'GoHighLevel'

    # Logging (set LEAD_SYNC_LOG_LEVEL=DEBUG for verbose output)
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> 'SyncConfig':
        """Build config from the process environment (and .env if present)."""
        load_dotenv(env_path or PROJECT_ROOT / '.env')

        return cls(
            structurely_api_key=os.getenv('STRUCTURELY_API_KEY', ''),
            ghl_api_key=os.getenv('GHL_API_KEY', ''),
            structurely_base_url=os.getenv('STRUCTURELY_BASE_URL', cls.structurely_base_url),
            ghl_base_url=os.getenv('GHL_BASE_URL', cls.ghl_base_url),
            page_size=_env_int('LEAD_SYNC_PAGE_SIZE', cls.page_size),
            sync_interval=_env_int('LEAD_SYNC_INTERVAL', cls.sync_interval),
            recency_window=timedelta(minutes=_env_int('LEAD_SYNC_RECENCY_MINUTES', 60)),
            lead_type=os.getenv('LEAD_SYNC_LEAD_TYPE', cls.lead_type),
            lead_type_field=os.getenv('LEAD_SYNC_LEAD_TYPE_FIELD') or None,
            log_level=os.getenv('LEAD_SYNC_LOG_LEVEL', cls.log_level).upper(),
            log_file=os.getenv('LEAD_SYNC_LOG_FILE') or None,
        )

    def validate(self) -> list[str]:
        """Validate required configuration. Returns list of errors."""
        errors = []

        if not self.structurely_api_key:
            errors.append("STRUCTURELY_API_KEY is required")

        if not self.ghl_api_key:
            errors.append("GHL_API_KEY is required")

        if self.page_size <= 0:
            errors.append("LEAD_SYNC_PAGE_SIZE must be positive")

        if self.sync_interval <= 0:
            errors.append("LEAD_SYNC_INTERVAL must be positive")

        policies = {
            'lead push': self.lead_push_retry,
            'lead fetch': self.lead_fetch_retry,
            'contact list': self.contact_list_retry,
            'contact update': self.contact_update_retry,
        }
        for name, policy in policies.items():
            if policy.max_retries < 0 or policy.base_delay < 0:
                errors.append(f"Retry policy for {name} must not be negative")

        return errors


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None

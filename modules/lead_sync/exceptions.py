# =========================================================================
# CUSTOM EXCEPTIONS
# =========================================================================

from typing import Optional

import httpx


class LeadSyncError(Exception):
    """Base exception for lead sync errors"""
    pass


class ConfigurationError(LeadSyncError):
    """Configuration missing or malformed"""
    pass


class RemoteAPIError(LeadSyncError):
    """Request to Structurely or GHL failed"""

    def __init__(
        self,
        message: str,
        service: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.service = service
        self.status_code = status_code
        self.body = body

    @property
    def is_transient(self) -> bool:
        # No status means the request never got a response
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying: timeouts, network errors, 429 and 5xx."""
    if isinstance(exc, RemoteAPIError):
        return exc.is_transient
    return isinstance(exc, httpx.TransportError)

"""
Sync engine for GHL → Structurely → GHL.

Each run pages through every GHL contact, pushes the eligible ones to
Structurely as leads, then fetches each lead back and writes its enrichment
into the contact's custom fields.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol

import httpx

from .config import SyncConfig
from .eligibility import cutoff_for, is_eligible
from .exceptions import RemoteAPIError
from .log import get_logger
from .mappers import contact_to_lead, lead_to_custom_fields
from .models import Contact, ContactError, ContactPage, Lead, LeadPush, SyncRun
from .retry import with_retry

logger = get_logger(__name__)


class LeadStore(Protocol):
    """Remote lead store (Structurely)."""

    async def push_lead(self, record: LeadPush) -> Lead:  # pragma: no cover - protocol
        ...

    async def get_lead(self, lead_id: str) -> Lead:  # pragma: no cover - protocol
        ...


class ContactStore(Protocol):
    """Remote contact store (GHL)."""

    async def list_contacts(self, limit: int, offset: int) -> ContactPage:  # pragma: no cover - protocol
        ...

    async def update_contact_fields(self, contact_id: str, fields: dict[str, str]) -> dict:  # pragma: no cover - protocol
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """Drives one sync run at a time over all GHL contacts."""

    def __init__(
        self,
        config: SyncConfig,
        leads: LeadStore,
        contacts: ContactStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.leads = leads
        self.contacts = contacts
        self._sleep = sleep
        self._clock = clock

    # =========================================================================
    # RUN
    # =========================================================================

    async def run_sync(self) -> SyncRun:
        """
        Run one full pass over all contact pages.

        Never raises: contact and page failures are counted, and anything
        else ends the run early with the error recorded on the result.
        """
        started = self._clock()
        run = SyncRun(started_at=started, cutoff=cutoff_for(started, self.config.recency_window))
        logger.info(f"Running periodic sync at {started.isoformat()}")

        try:
            await self._run_pages(run)
        except Exception as e:
            run.aborted = str(e) or e.__class__.__name__
            logger.exception(f"Periodic sync failed: {e}")

        run.finished_at = self._clock()
        summary = (
            f"processed={run.processed} succeeded={run.succeeded} "
            f"skipped={run.skipped} failed={run.failed} duration={run.duration:.1f}s"
        )
        if run.aborted:
            logger.error(f"Periodic sync aborted. {summary}")
        else:
            logger.success(f"Periodic sync completed. {summary}")
        return run

    async def _run_pages(self, run: SyncRun) -> None:
        page_size = self.config.page_size
        consecutive_failures = 0

        while True:
            page = await self._fetch_page(run)

            if page is None:
                run.pages_failed += 1
                consecutive_failures += 1
                # Skip past the bad page so one failure can't stall the run
                run.offset += page_size
                if consecutive_failures >= self.config.max_page_failures:
                    logger.error(f"Giving up after {consecutive_failures} failed page fetches")
                    break
                await self._sleep(self.config.batch_pause)
                continue

            consecutive_failures = 0
            contacts = page.contacts

            if not contacts:
                logger.info("No more contacts to process")
                break

            logger.info(f"Processing batch of {len(contacts)} contacts (offset {run.offset})...")
            await self._process_page(run, contacts)

            run.offset += len(contacts)
            if not page.has_more:
                break

            # Delay between batches to respect rate limits
            await self._sleep(self.config.batch_pause)

    async def _fetch_page(self, run: SyncRun) -> Optional[ContactPage]:
        offset = run.offset
        try:
            return await with_retry(
                lambda: self.contacts.list_contacts(self.config.page_size, offset),
                self.config.contact_list_retry,
                label=f"GHL contact list (offset {offset})",
                sleep=self._sleep,
            )
        except (RemoteAPIError, httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            # Malformed listings count as a failed page too
            logger.error(f"Error fetching GHL contacts at offset {offset}: {e}")
            return None

    async def _process_page(self, run: SyncRun, contacts: list[Contact]) -> None:
        keys = self.config.field_aliases.last_synced

        for contact in contacts:
            if not is_eligible(contact, run.seen_ids, run.cutoff, keys):
                run.skipped += 1
                logger.debug(f"Skipping {contact.id}: seen this run or synced recently")
                continue

            run.seen_ids.add(contact.id)
            run.processed += 1
            logger.info(f"Processing: {contact.name or '(no name)'} ({contact.id})")

            try:
                await self.sync_contact(contact)
            except Exception as e:
                run.failed += 1
                run.errors.append(_contact_error(contact, e))
                logger.error(f"Error syncing contact {contact.id}: {e}")
                if isinstance(e, RemoteAPIError) and e.status_code is not None:
                    logger.error(f"Status: {e.status_code}")
                    logger.error(f"Response: {e.body}")
                continue

            run.succeeded += 1
            logger.success(f"Successfully synced contact: {contact.name or contact.id}")

    # =========================================================================
    # SINGLE CONTACT
    # =========================================================================

    async def sync_contact(self, contact: Contact) -> Lead:
        """Push a contact to Structurely, then write the lead back onto it."""
        record = contact_to_lead(contact, self.config)

        pushed = await with_retry(
            lambda: self.leads.push_lead(record),
            self.config.lead_push_retry,
            label=f"Structurely push for {contact.id}",
            sleep=self._sleep,
        )

        # Wait a moment to avoid API throttling
        await self._sleep(self.config.contact_pause)

        lead = await with_retry(
            lambda: self.leads.get_lead(pushed.id),
            self.config.lead_fetch_retry,
            label=f"Structurely fetch for lead {pushed.id}",
            sleep=self._sleep,
        )

        fields = lead_to_custom_fields(lead, self.config, now=self._clock())
        await with_retry(
            lambda: self.contacts.update_contact_fields(contact.id, fields),
            self.config.contact_update_retry,
            label=f"GHL update for {contact.id}",
            sleep=self._sleep,
        )
        return lead


def _contact_error(contact: Contact, exc: Exception) -> ContactError:
    if isinstance(exc, RemoteAPIError):
        return ContactError(contact.id, str(exc), exc.status_code, exc.body)
    return ContactError(contact.id, str(exc) or exc.__class__.__name__)

"""Lead fetching and enrichment with notes and tasks."""

import asyncio
import contextlib
import logging

from close2sheets.close.client import CloseClient
from close2sheets.config import Settings
from close2sheets.exceptions import CloseAPIError
from close2sheets.models import Lead

logger = logging.getLogger(__name__)


class LeadEnricher:
    """Attaches the latest notes and tasks to a lead."""

    def __init__(self, client: CloseClient):
        self.client = client

    async def enrich(self, lead: Lead) -> Lead:
        """
        Fetch notes and tasks for the lead concurrently and attach them.

        The client already degrades failed calls to empty lists, so this
        never raises.
        """
        notes, tasks = await asyncio.gather(
            self.client.list_notes_for_lead(lead.id),
            self.client.list_tasks_for_lead(lead.id),
        )
        lead.notes = notes
        lead.tasks = tasks
        return lead


class LeadFetcher:
    """Lists the leads tagged with the configured source and enriches them."""

    def __init__(self, client: CloseClient, settings: Settings, enricher: LeadEnricher | None = None):
        self.client = client
        self.settings = settings
        self.enricher = enricher or LeadEnricher(client)

    async def _enrich_all(self, leads: list[Lead]) -> list[Lead]:
        """Enrich every lead concurrently. gather keeps the input order."""
        limit = self.settings.enrich_concurrency
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def enrich_one(lead: Lead) -> Lead:
            guard = semaphore if semaphore is not None else contextlib.nullcontext()
            async with guard:
                return await self.enricher.enrich(lead)

        return list(await asyncio.gather(*(enrich_one(lead) for lead in leads)))

    async def run(self) -> list[Lead]:
        """
        Fetch and enrich all leads for the source tag.

        A failed or empty listing yields [] so the daily schedule keeps going.
        """
        tag = self.settings.source_tag
        logger.info(f"Fetching leads tagged '{tag}' from Close...")

        try:
            leads = await self.client.list_leads_by_source_tag(tag)
        except CloseAPIError as e:
            logger.error(f"Error fetching leads: {e}")
            return []

        if not leads:
            logger.info("No leads found")
            return []

        custom_count = len(leads[0].custom)
        logger.info(f"Fetched {len(leads)} leads with {custom_count} custom fields")

        logger.info("Fetching notes and tasks for each lead...")
        enriched = await self._enrich_all(leads)
        logger.info(f"Added notes and tasks to {len(enriched)} leads")

        return enriched

"""Export run: fetch leads from Close and publish them to Google Sheets."""

import asyncio
import logging
import sys
from datetime import date

from close2sheets.close.fetcher import LeadFetcher
from close2sheets.config import Settings
from close2sheets.exceptions import ConfigurationError
from close2sheets.models import ExportStats
from close2sheets.sheets.publisher import SheetPublisher, spreadsheet_url
from close2sheets.sheets.rows import build_lead_sheet, build_opportunity_sheet
from close2sheets.sheets.schema import BASE_LEAD_HEADERS

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


class SheetExporter:
    """Runs fetch -> rows -> publish once per call to `run`."""

    def __init__(self, fetcher: LeadFetcher, publisher: SheetPublisher | None, settings: Settings):
        self.fetcher = fetcher
        self.publisher = publisher
        self.settings = settings
        self._spreadsheet_id: str | None = settings.google_sheet_id or None

    async def resolve_spreadsheet(self) -> str:
        """Return the configured spreadsheet, creating one if none is set."""
        if self._spreadsheet_id:
            return self._spreadsheet_id

        title = f"Close.com Leads - {date.today().isoformat()}"
        logger.info("No spreadsheet ID configured, creating a new Google Sheet...")
        spreadsheet_id = await asyncio.to_thread(
            self.publisher.create_spreadsheet, title, self.settings.share_with_link
        )
        logger.info(f"Set GOOGLE_SHEET_ID={spreadsheet_id} to reuse this spreadsheet")

        # Later runs in this process reuse it
        self._spreadsheet_id = spreadsheet_id
        return spreadsheet_id

    async def run(self, dry_run: bool = False) -> ExportStats:
        """
        Perform one export.

        Fetch failures degrade to an empty lead list and still publish a
        header-only sheet. Publish failures propagate.
        """
        stats = ExportStats()

        leads = await self.fetcher.run()
        logger.info(f"Fetched {len(leads)} leads from Close")

        lead_grid = build_lead_sheet(leads)
        opportunity_grid = build_opportunity_sheet(leads)

        stats.leads = len(leads)
        stats.opportunities = len(opportunity_grid) - 1
        stats.custom_fields = len(lead_grid[0]) - len(BASE_LEAD_HEADERS)

        if dry_run:
            logger.info("Dry run: skipping publish")
            return stats

        if self.publisher is None:
            raise ConfigurationError("No Google Sheets publisher configured")

        spreadsheet_id = await self.resolve_spreadsheet()
        stats.spreadsheet_id = spreadsheet_id

        if self.settings.admin_email:
            await asyncio.to_thread(self.publisher.share, spreadsheet_id, self.settings.admin_email)

        logger.info(f"Writing data to Google Sheets (ID: {spreadsheet_id})...")
        await asyncio.to_thread(self.publisher.publish, spreadsheet_id, lead_grid, opportunity_grid)
        stats.published = True

        logger.info("Export completed successfully!")
        logger.info(f"Google Sheet URL: {spreadsheet_url(spreadsheet_id)}")
        return stats

"""Close CRM REST API client."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from close2sheets.config import Settings
from close2sheets.exceptions import CloseAPIError
from close2sheets.models import Lead, Note, Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

LEAD_PAGE_SIZE = 100
NOTE_LIMIT = 3
TASK_LIMIT = 5

# Field projection for the lead listing
LEAD_FIELDS = [
    "id",
    "display_name",
    "created_by_name",
    "custom",
    "date_created",
    "date_updated",
    "html_url",
    "status_label",
    "opportunities",
    "contacts",
]


class CloseClient:
    """Async client for the Close REST API using basic auth."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.close_api_base.rstrip("/"),
                # API key as username, empty password
                auth=(self.settings.close_api_key, ""),
                timeout=self.settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, endpoint: str, params: dict | None = None) -> list[dict]:
        """Make authenticated GET request and return the `data` list."""
        client = await self._get_client()

        try:
            response = await client.get(endpoint, params=params)
        except httpx.HTTPError as e:
            raise CloseAPIError(None, str(e) or type(e).__name__, endpoint) from e

        if response.status_code >= 400:
            raise CloseAPIError(response.status_code, response.text, endpoint)

        try:
            data = response.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise CloseAPIError(response.status_code, f"Unexpected response body: {e}", endpoint) from e

        if not isinstance(data, list):
            raise CloseAPIError(response.status_code, f"Expected a data list, got {type(data).__name__}", endpoint)
        return data

    async def _request_with_retry(self, endpoint: str, params: dict, what: str) -> list[dict]:
        """GET with linear backoff. Returns [] once all attempts are exhausted."""
        attempts = self.settings.max_attempts

        for attempt in range(1, attempts + 1):
            try:
                return await self._request(endpoint, params)
            except CloseAPIError as e:
                if attempt == attempts:
                    logger.warning(f"Error fetching {what} after {attempts} attempts: {e}")
                    return []
                logger.debug(f"Attempt {attempt} fetching {what} failed, retrying: {e}")
                await self._sleep(attempt * 1.0)

        return []

    async def list_leads_by_source_tag(self, tag: str) -> list[Lead]:
        """
        Fetch leads whose source custom field equals `tag`.

        Not retried: a failure here raises CloseAPIError.
        """
        params = {
            "_limit": LEAD_PAGE_SIZE,
            "query": f'custom.{self.settings.source_field_id}:"{tag}"',
            "_fields": ",".join(LEAD_FIELDS),
        }
        data = await self._request("/lead/", params=params)

        return _parse_items(data, Lead.from_close_api, "lead")

    async def list_notes_for_lead(self, lead_id: str) -> list[Note]:
        """Fetch the most recent notes for a lead, newest first."""
        params = {
            "_limit": NOTE_LIMIT,
            "lead_id": lead_id,
            "_order_by": "-date_created",
        }
        data = await self._request_with_retry("/activity/note/", params, f"notes for lead {lead_id}")
        return _parse_items(data, Note.from_close_api, f"note for lead {lead_id}")

    async def list_tasks_for_lead(self, lead_id: str) -> list[Task]:
        """Fetch the most recent tasks for a lead, newest first."""
        params = {
            "_limit": TASK_LIMIT,
            "lead_id": lead_id,
            "_order_by": "-date_created",
        }
        data = await self._request_with_retry("/task/", params, f"tasks for lead {lead_id}")
        return _parse_items(data, Task.from_close_api, f"task for lead {lead_id}")


def _parse_items(data: list, parse: Callable[[dict], T], what: str) -> list[T]:
    """Parse each item, skipping the ones that fail."""
    parsed = []
    for item in data:
        try:
            parsed.append(parse(item))
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            item_id = item.get("id", "?") if isinstance(item, dict) else "?"
            logger.warning(f"Failed to parse {what} {item_id}: {e}")
    return parsed

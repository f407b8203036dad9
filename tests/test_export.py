"""End-to-end tests for an export run with Close and Sheets mocked."""

import asyncio
from unittest.mock import MagicMock

import httpx
import pytest

from close2sheets.close.client import CloseClient
from close2sheets.close.fetcher import LeadFetcher
from close2sheets.config import Settings
from close2sheets.exceptions import SheetsPublishError
from close2sheets.export import SheetExporter
from close2sheets.sheets.publisher import SheetPublisher
from close2sheets.sheets.schema import BASE_LEAD_HEADERS, OPPORTUNITY_HEADERS

COLUMN = {name: i for i, name in enumerate(BASE_LEAD_HEADERS)}


def close_transport(leads: list[dict] | None, fail_activities: bool = False) -> httpx.MockTransport:
    """Close API stub. `leads=None` makes the lead listing fail."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/lead/"):
            if leads is None:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json={"data": leads})
        if fail_activities:
            return httpx.Response(500, text="boom")
        if path.endswith("/activity/note/"):
            lead_id = request.url.params["lead_id"]
            return httpx.Response(200, json={"data": [{"id": "acti_1", "note": f"Note on {lead_id}"}]})
        return httpx.Response(200, json={"data": []})

    return httpx.MockTransport(handler)


async def no_sleep(seconds: float) -> None:
    return None


def make_exporter(settings: Settings, transport: httpx.MockTransport) -> tuple[SheetExporter, MagicMock]:
    client = CloseClient(settings, transport=transport, sleep=no_sleep)
    publisher = MagicMock(spec=SheetPublisher)
    publisher.create_spreadsheet.return_value = "created456"
    return SheetExporter(LeadFetcher(client, settings), publisher, settings), publisher


def published_grids(publisher: MagicMock) -> tuple[str, list, list]:
    spreadsheet_id, lead_grid, opportunity_grid = publisher.publish.call_args.args
    return spreadsheet_id, lead_grid, opportunity_grid


class TestSheetExporter:
    def test_publishes_enriched_leads(self, settings: Settings, close_lead_payload: dict) -> None:
        exporter, publisher = make_exporter(settings, close_transport([close_lead_payload]))

        stats = asyncio.run(exporter.run())

        spreadsheet_id, lead_grid, opportunity_grid = published_grids(publisher)
        assert spreadsheet_id == "sheet123"
        assert lead_grid[1][COLUMN["Latest Notes"]] == "[Unknown date] Unknown: Note on lead_1"
        assert lead_grid[1][COLUMN["Tasks"]] == "No tasks available"
        assert len(opportunity_grid) == 3
        assert stats.leads == 1
        assert stats.opportunities == 2
        assert stats.custom_fields == 3
        assert stats.published is True
        publisher.share.assert_called_once_with("sheet123", "admin@example.com")

    def test_failed_notes_and_tasks_still_produce_rows(
        self, settings: Settings, close_lead_payload: dict
    ) -> None:
        exporter, publisher = make_exporter(
            settings, close_transport([close_lead_payload], fail_activities=True)
        )

        asyncio.run(exporter.run())

        _, lead_grid, _ = published_grids(publisher)
        assert lead_grid[1][COLUMN["Display Name"]] == "Acme Ltd"
        assert lead_grid[1][COLUMN["Latest Notes"]] == "No notes available"
        assert lead_grid[1][COLUMN["Tasks"]] == "No tasks available"

    def test_empty_listing_publishes_header_only(self, settings: Settings) -> None:
        exporter, publisher = make_exporter(settings, close_transport([]))

        stats = asyncio.run(exporter.run())

        _, lead_grid, opportunity_grid = published_grids(publisher)
        assert lead_grid == [BASE_LEAD_HEADERS]
        assert opportunity_grid == [OPPORTUNITY_HEADERS]
        assert stats.leads == 0

    def test_listing_failure_publishes_header_only(self, settings: Settings) -> None:
        exporter, publisher = make_exporter(settings, close_transport(None))

        asyncio.run(exporter.run())

        _, lead_grid, _ = published_grids(publisher)
        assert lead_grid == [BASE_LEAD_HEADERS]

    def test_publish_failure_propagates(self, settings: Settings) -> None:
        exporter, publisher = make_exporter(settings, close_transport([]))
        publisher.publish.side_effect = SheetsPublishError("sheet123", RuntimeError("quota"))

        with pytest.raises(SheetsPublishError):
            asyncio.run(exporter.run())

    def test_creates_spreadsheet_once_when_not_configured(self, settings: Settings) -> None:
        unset = settings.model_copy(update={"google_sheet_id": None, "share_with_link": True})
        exporter, publisher = make_exporter(unset, close_transport([]))

        async def two_runs() -> None:
            await exporter.run()
            await exporter.run()

        asyncio.run(two_runs())

        publisher.create_spreadsheet.assert_called_once()
        title, share_with_link = publisher.create_spreadsheet.call_args.args
        assert title.startswith("Close.com Leads - ")
        assert share_with_link is True
        assert [c.args[0] for c in publisher.publish.call_args_list] == ["created456", "created456"]

    def test_no_admin_email_skips_sharing(self, settings: Settings) -> None:
        no_email = settings.model_copy(update={"admin_email": None})
        exporter, publisher = make_exporter(no_email, close_transport([]))

        asyncio.run(exporter.run())

        publisher.share.assert_not_called()

    def test_dry_run_does_not_publish(self, settings: Settings, close_lead_payload: dict) -> None:
        exporter, publisher = make_exporter(settings, close_transport([close_lead_payload]))

        stats = asyncio.run(exporter.run(dry_run=True))

        publisher.publish.assert_not_called()
        publisher.share.assert_not_called()
        assert stats.leads == 1
        assert stats.published is False

    def test_null_notes_for_one_lead_keep_both_rows(
        self, settings: Settings, close_lead_payload: dict
    ) -> None:
        second = {**close_lead_payload, "id": "lead_2", "display_name": "Beta plc"}

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path.endswith("/lead/"):
                return httpx.Response(200, json={"data": [close_lead_payload, second]})
            lead_id = request.url.params["lead_id"]
            if path.endswith("/activity/note/"):
                if lead_id == "lead_2":
                    return httpx.Response(200, json={"data": None})
                return httpx.Response(200, json={"data": [{"id": "acti_1", "note": "Hello"}]})
            return httpx.Response(200, json={"data": []})

        exporter, publisher = make_exporter(settings, httpx.MockTransport(handler))

        stats = asyncio.run(exporter.run())

        _, lead_grid, _ = published_grids(publisher)
        assert [row[COLUMN["Display Name"]] for row in lead_grid[1:]] == ["Acme Ltd", "Beta plc"]
        assert lead_grid[1][COLUMN["Latest Notes"]] == "[Unknown date] Unknown: Hello"
        assert lead_grid[2][COLUMN["Latest Notes"]] == "No notes available"
        assert stats.leads == 2

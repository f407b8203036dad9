"""Google Sheets publisher built on gspread."""

import logging

import gspread
from gspread.exceptions import GSpreadException, WorksheetNotFound

from close2sheets.config import Settings
from close2sheets.exceptions import ConfigurationError, SheetsError, SheetsPublishError
from close2sheets.sheets.schema import LEADS_SHEET, OPPORTUNITIES_SHEET

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Columns covered by auto-resize
RESIZE_COLUMN_LIMIT = 50

HEADER_BACKGROUND = {"red": 0.2, "green": 0.2, "blue": 0.2}
HEADER_FOREGROUND = {"red": 1.0, "green": 1.0, "blue": 1.0}
BAND_BACKGROUND = {"red": 0.95, "green": 0.95, "blue": 0.95}
BAND_FORMULA = "=MOD(ROW(),2)=0"


def spreadsheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"


class SheetPublisher:
    """Writes lead and opportunity grids into a spreadsheet.

    All calls are blocking; run them off the event loop.
    """

    def __init__(self, client: gspread.Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetPublisher":
        """Authorize with the configured service account key file."""
        key_path = settings.google_service_account_path
        if not key_path.is_file():
            raise ConfigurationError(f"Service account key file not found: {key_path}")
        return cls(gspread.service_account(filename=str(key_path), scopes=SCOPES))

    def create_spreadsheet(self, title: str, share_with_link: bool = False) -> str:
        """
        Create a new spreadsheet with a 'Leads' sheet and a frozen header.

        Returns the new spreadsheet ID.
        """
        try:
            spreadsheet = self.client.create(title)
            leads = spreadsheet.sheet1
            leads.update_title(LEADS_SHEET)
            leads.freeze(rows=1)
        except GSpreadException as e:
            raise SheetsError(f"Failed to create spreadsheet '{title}': {e}") from e

        logger.info(f"Created new spreadsheet with ID: {spreadsheet.id}")

        if share_with_link:
            try:
                spreadsheet.share(None, perm_type="anyone", role="writer", with_link=True)
                logger.info("Made spreadsheet accessible to anyone with the link")
            except Exception as e:
                logger.warning(f"Failed to make spreadsheet link-accessible: {e}")

        return spreadsheet.id

    def share(self, spreadsheet_id: str, email: str) -> bool:
        """Give `email` writer access. Failures are logged, not raised."""
        try:
            spreadsheet = self.client.open_by_key(spreadsheet_id)
            spreadsheet.share(email, perm_type="user", role="writer", notify=False)
        except Exception as e:
            logger.warning(f"Failed to share spreadsheet with {email}: {e}")
            return False

        logger.info(f"Shared spreadsheet with {email}")
        return True

    def _worksheet(self, spreadsheet: gspread.Spreadsheet, title: str, cols: int) -> gspread.Worksheet:
        try:
            return spreadsheet.worksheet(title)
        except WorksheetNotFound:
            logger.info(f"Adding missing worksheet '{title}'")
            return spreadsheet.add_worksheet(title=title, rows=100, cols=max(cols, 26))

    def publish(
        self,
        spreadsheet_id: str,
        lead_grid: list[list[str]],
        opportunity_grid: list[list[str]],
    ) -> None:
        """
        Replace the contents of the Leads and Opportunities sheets.

        Clear and write are separate API calls, so a failure between them
        leaves the sheets empty. Either failure raises SheetsPublishError.
        Resizing and formatting failures are only logged.
        """
        grids = {LEADS_SHEET: lead_grid, OPPORTUNITIES_SHEET: opportunity_grid}

        try:
            spreadsheet = self.client.open_by_key(spreadsheet_id)

            for title, grid in grids.items():
                width = max((len(row) for row in grid), default=0)
                worksheet = self._worksheet(spreadsheet, title, width)
                worksheet.clear()
                # Writes past the grid bounds are rejected
                if worksheet.row_count < len(grid) or worksheet.col_count < width:
                    worksheet.resize(
                        rows=max(worksheet.row_count, len(grid)),
                        cols=max(worksheet.col_count, width),
                    )

            spreadsheet.values_batch_update(
                {
                    "valueInputOption": "RAW",
                    "data": [
                        {"range": f"'{title}'!A1", "values": grid}
                        for title, grid in grids.items()
                    ],
                }
            )
        except GSpreadException as e:
            raise SheetsPublishError(spreadsheet_id, e) from e

        logger.info(
            f"Wrote {len(lead_grid) - 1} lead rows and "
            f"{len(opportunity_grid) - 1} opportunity rows"
        )

        self.auto_resize_columns(spreadsheet)
        self.apply_formatting(spreadsheet)

    def _sheet_metadata(self, spreadsheet: gspread.Spreadsheet) -> list[dict]:
        metadata = spreadsheet.fetch_sheet_metadata(
            params={"fields": "sheets(properties(sheetId,title,gridProperties(columnCount)),conditionalFormats)"}
        )
        return metadata.get("sheets", [])

    def auto_resize_columns(self, spreadsheet: gspread.Spreadsheet) -> None:
        """Fit column widths on every sheet."""
        try:
            requests = [
                {
                    "autoResizeDimensions": {
                        "dimensions": {
                            "sheetId": sheet["properties"]["sheetId"],
                            "dimension": "COLUMNS",
                            "startIndex": 0,
                            "endIndex": _resize_end(sheet),
                        }
                    }
                }
                for sheet in self._sheet_metadata(spreadsheet)
            ]
            if requests:
                spreadsheet.batch_update({"requests": requests})
        except Exception as e:
            logger.warning(f"Error auto-resizing columns: {e}")

    def apply_formatting(self, spreadsheet: gspread.Spreadsheet) -> None:
        """Dark bold header row and alternate row banding on every sheet."""
        try:
            requests = []
            for sheet in self._sheet_metadata(spreadsheet):
                sheet_id = sheet["properties"]["sheetId"]

                requests.append(
                    {
                        "repeatCell": {
                            "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                            "cell": {
                                "userEnteredFormat": {
                                    "backgroundColor": HEADER_BACKGROUND,
                                    "textFormat": {"bold": True, "foregroundColor": HEADER_FOREGROUND},
                                }
                            },
                            "fields": "userEnteredFormat(backgroundColor,textFormat)",
                        }
                    }
                )

                # Rules persist across runs; add the banding rule only once
                if _has_banding_rule(sheet):
                    continue

                requests.append(
                    {
                        "addConditionalFormatRule": {
                            "rule": {
                                "ranges": [{"sheetId": sheet_id, "startRowIndex": 1}],
                                "booleanRule": {
                                    "condition": {
                                        "type": "CUSTOM_FORMULA",
                                        "values": [{"userEnteredValue": BAND_FORMULA}],
                                    },
                                    "format": {"backgroundColor": BAND_BACKGROUND},
                                },
                            },
                            "index": 0,
                        }
                    }
                )

            if requests:
                spreadsheet.batch_update({"requests": requests})
            logger.info("Sheet formatting applied successfully")
        except Exception as e:
            logger.warning(f"Error applying sheet formatting: {e}")


def _has_banding_rule(sheet: dict) -> bool:
    for rule in sheet.get("conditionalFormats", []):
        values = rule.get("booleanRule", {}).get("condition", {}).get("values", [])
        if any(v.get("userEnteredValue") == BAND_FORMULA for v in values):
            return True
    return False


def _resize_end(sheet: dict) -> int:
    """Resize range end, kept inside the sheet's grid."""
    columns = sheet["properties"].get("gridProperties", {}).get("columnCount")
    if not columns:
        return RESIZE_COLUMN_LIMIT
    return min(RESIZE_COLUMN_LIMIT, columns)

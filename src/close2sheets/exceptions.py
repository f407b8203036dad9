"""Custom exceptions for close2sheets."""


class Close2SheetsError(Exception):
    """Base exception for all close2sheets errors."""


class ConfigurationError(Close2SheetsError):
    """Configuration or environment variable error."""


class CloseAPIError(Close2SheetsError):
    """Error from the Close REST API."""

    def __init__(self, status_code: int | None, message: str, endpoint: str | None = None):
        self.status_code = status_code
        self.endpoint = endpoint
        prefix = f"Close API error ({status_code})" if status_code else "Close API request failed"
        super().__init__(f"{prefix}: {message}")


class SheetsError(Close2SheetsError):
    """Error from Google Sheets or Drive."""


class SheetsPublishError(SheetsError):
    """Clearing or writing the target spreadsheet failed."""

    def __init__(self, spreadsheet_id: str, original_error: Exception):
        self.spreadsheet_id = spreadsheet_id
        self.original_error = original_error
        super().__init__(f"Failed to publish to spreadsheet '{spreadsheet_id}': {original_error}")

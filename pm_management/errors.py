"""Exception types raised by the PM aggregation and export workflow."""

from __future__ import annotations

GENERIC_EXPORT_MESSAGE = "Failed to download PM reports"
GENERIC_FETCH_MESSAGE = "Failed to fetch PM records"


class PMError(Exception):
    """Base class for every error surfaced to the dashboard or CLI."""


class ConfigurationError(PMError):
    pass


class FetchError(PMError):
    """The row source (or a sibling endpoint) could not be reached or refused the request."""

    def __init__(self, message: str = GENERIC_FETCH_MESSAGE, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ExportError(PMError):
    """The export collaborator failed; ``message`` is the server text when it sent one."""

    def __init__(self, message: str = GENERIC_EXPORT_MESSAGE, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NoSelectionError(PMError):
    def __init__(self, message: str = "Select at least one PM event to export.") -> None:
        super().__init__(message)


class AmbiguousTimestampError(PMError):
    """Two events of the same asset share the latest PM date."""

    def __init__(self, asset_id: object, pm_date: object, pm_ids: tuple[object, object]) -> None:
        super().__init__(
            f"Asset {asset_id} has events {pm_ids[0]} and {pm_ids[1]} dated {pm_date}; "
            "cannot choose the current checklist snapshot."
        )
        self.asset_id = asset_id
        self.pm_date = pm_date
        self.pm_ids = pm_ids

"""HTTP client for the PM row source, checklist definitions and report export endpoints."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Protocol

import httpx

from .data_loader import parse_checklist_definitions, parse_rows
from .errors import GENERIC_EXPORT_MESSAGE, GENERIC_FETCH_MESSAGE, ExportError, FetchError
from .models import (
    ChecklistDefinition,
    EventSubmission,
    ExportDocument,
    ExportRequest,
    MaintenanceRow,
    PMId,
)

logger = logging.getLogger(__name__)

_FILENAME_PATTERN = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


class RowSource(Protocol):
    async def fetch_rows(self, customer_id: str, branch: str) -> List[MaintenanceRow]: ...


class ExportCollaborator(Protocol):
    async def export_reports(self, request: ExportRequest, *, fallback_filename: str = ...) -> ExportDocument: ...


class PMApiClient:
    """
    Async client for the ``/pm`` API.

    Pass an existing :class:`httpx.AsyncClient` to share a connection pool (or a
    mock transport in tests); otherwise one is created and closed with the client.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "PMApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def fetch_rows(self, customer_id: str, branch: str) -> List[MaintenanceRow]:
        payload = await self._get_json("pm/filter", params={"customerId": customer_id, "branch": branch})
        if not isinstance(payload, list):
            raise FetchError("Unexpected PM row payload from server")
        rows = parse_rows(payload)
        logger.info(
            "Fetched %d PM rows (%d usable) for customer=%s branch=%s",
            len(payload),
            len(rows),
            customer_id,
            branch,
        )
        return rows

    async def fetch_checklist_definitions(self, category_id: int | str) -> List[ChecklistDefinition]:
        payload = await self._get_json(f"pm/all-checklist/{category_id}")
        return parse_checklist_definitions(payload if isinstance(payload, list) else [])

    async def fetch_customers(self) -> List[dict[str, Any]]:
        payload = await self._get_json("pm/customers")
        return [item for item in payload if isinstance(item, dict)] if isinstance(payload, list) else []

    async def fetch_branches(self, customer_id: str) -> List[str]:
        payload = await self._get_json(f"pm/customers/{customer_id}/branches")
        if not isinstance(payload, list):
            return []
        branches = []
        for item in payload:
            value = item.get("Branch") if isinstance(item, dict) else item
            if value:
                branches.append(str(value))
        return branches

    async def submit_event(self, submission: EventSubmission) -> PMId:
        """Create a PM event and return the id assigned by the server."""
        try:
            response = await self._http.post(self._url("pm"), json=submission.to_payload())
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to create PM record: {exc}") from exc
        if response.is_error:
            raise FetchError(
                error_message(response, "Failed to create PM record"),
                status_code=response.status_code,
            )
        body = response.json()
        data = body.get("data") if isinstance(body, dict) else None
        pm_id = data.get("pmId") if isinstance(data, dict) else None
        if pm_id is None:
            raise FetchError("Server did not return the new PM id")
        logger.info("Created PM %s for asset %s", pm_id, submission.asset_id)
        return pm_id

    async def export_reports(
        self,
        request: ExportRequest,
        *,
        fallback_filename: str = "PM_Reports.pdf",
    ) -> ExportDocument:
        try:
            response = await self._http.post(self._url("pm/reports/bulk"), json=request.to_payload())
        except httpx.HTTPError as exc:
            logger.warning("Export request failed: %s", exc)
            raise ExportError() from exc
        if response.is_error:
            raise ExportError(error_message(response, GENERIC_EXPORT_MESSAGE), status_code=response.status_code)

        filename = filename_from_disposition(response.headers.get("Content-Disposition")) or fallback_filename
        media_type = response.headers.get("Content-Type", "application/pdf").split(";", 1)[0].strip()
        return ExportDocument(content=response.content, filename=filename, media_type=media_type)

    async def _get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._http.get(self._url(path), params=params)
        except httpx.HTTPError as exc:
            logger.warning("GET %s failed: %s", path, exc)
            raise FetchError(f"{GENERIC_FETCH_MESSAGE}: {exc}") from exc
        if response.is_error:
            raise FetchError(error_message(response, GENERIC_FETCH_MESSAGE), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError("Server returned invalid JSON") from exc


def error_message(response: httpx.Response, fallback: str) -> str:
    """The ``message`` (or ``error``) field of a JSON error body, else ``fallback``."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback


def filename_from_disposition(header: str | None) -> str | None:
    if not header:
        return None
    match = _FILENAME_PATTERN.search(header)
    if not match:
        return None
    name = match.group(1).strip()
    return name or None


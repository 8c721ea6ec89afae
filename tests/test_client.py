from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from pm_management.client import PMApiClient, filename_from_disposition
from pm_management.errors import ExportError, FetchError
from pm_management.models import ChecklistResult, EventSubmission, ExportRequest

BASE_URL = "http://pm.test/api/v1"


def _client(handler) -> PMApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PMApiClient(BASE_URL, http_client=http)


def test_fetch_rows_sends_filter_and_parses_rows():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json=[
                {"Asset_ID": 1, "Category": "Printer", "PM_ID": 5, "PM_Date": "2024-01-01T00:00:00.000Z",
                 "checklist_results": [{"Checklist_ID": 3, "Check_Item": "Fan", "Is_OK_bool": 1}]},
                {"Asset_ID": None, "PM_ID": 6},
            ],
        )

    rows = asyncio.run(_client(handler).fetch_rows("M24050", "KL"))
    assert seen == {"path": "/api/v1/pm/filter", "params": {"customerId": "M24050", "branch": "KL"}}
    assert len(rows) == 1
    assert rows[0].event.pm_id == 5
    assert rows[0].checklist_results[0].is_ok is True


def test_fetch_rows_surfaces_server_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Customer ID and Branch are required"})

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(_client(handler).fetch_rows("", ""))
    assert excinfo.value.message == "Customer ID and Branch are required"
    assert excinfo.value.status_code == 400


def test_fetch_rows_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError):
        asyncio.run(_client(handler).fetch_rows("M1", "HQ"))


def test_fetch_checklist_definitions_and_branches():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/pm/all-checklist/4"):
            return httpx.Response(200, json=[{"Checklist_ID": 2, "Category_ID": 4, "Check_Item": "Fan"}])
        if request.url.path.endswith("/pm/customers/M1/branches"):
            return httpx.Response(200, json=[{"Branch": "HQ"}, {"Branch": "KL"}])
        return httpx.Response(404, json={"error": "not found"})

    client = _client(handler)
    definitions = asyncio.run(client.fetch_checklist_definitions(4))
    assert definitions[0].checklist_id == 2
    assert definitions[0].check_item_long == "Fan"
    assert asyncio.run(client.fetch_branches("M1")) == ["HQ", "KL"]


def test_export_reports_uses_content_disposition():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"pmIds": [12, 10]}
        return httpx.Response(
            200,
            content=b"%PDF-1.4",
            headers={"Content-Type": "application/pdf", "Content-Disposition": 'attachment; filename="PM_Reports_ACME.pdf"'},
        )

    document = asyncio.run(_client(handler).export_reports(ExportRequest(pm_ids=(12, 10))))
    assert document.content == b"%PDF-1.4"
    assert document.filename == "PM_Reports_ACME.pdf"
    assert document.media_type == "application/pdf"


def test_export_reports_falls_back_to_generated_filename():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"zip", headers={"Content-Type": "application/zip"})

    document = asyncio.run(
        _client(handler).export_reports(ExportRequest(pm_ids=(1,)), fallback_filename="PM_Reports_X_Y_1.pdf")
    )
    assert document.filename == "PM_Reports_X_Y_1.pdf"


def test_export_error_message_verbatim_or_generic():
    def with_message(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "PDF generator offline"})

    def without_message(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(ExportError) as excinfo:
        asyncio.run(_client(with_message).export_reports(ExportRequest(pm_ids=(1,))))
    assert excinfo.value.message == "PDF generator offline"

    with pytest.raises(ExportError) as excinfo:
        asyncio.run(_client(without_message).export_reports(ExportRequest(pm_ids=(1,))))
    assert excinfo.value.message == "Failed to download PM reports"


def test_submit_event_returns_new_id():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["assetId"] == 7
        assert body["checklistResults"] == [{"Checklist_ID": 1, "Is_OK_bool": 0, "Remarks": "worn"}]
        return httpx.Response(201, json={"success": True, "data": {"pmId": 99}})

    submission = EventSubmission(
        asset_id=7,
        pm_date="2024-06-01",
        checklist_results=(ChecklistResult(checklist_id=1, is_ok=False, remarks="worn"),),
    )
    assert asyncio.run(_client(handler).submit_event(submission)) == 99


def test_filename_from_disposition():
    assert filename_from_disposition('attachment; filename="a b.pdf"') == "a b.pdf"
    assert filename_from_disposition("attachment; filename=report.zip") == "report.zip"
    assert filename_from_disposition("inline") is None
    assert filename_from_disposition(None) is None

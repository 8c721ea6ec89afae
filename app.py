"""Streamlit dashboard for PM checklist pivots and bulk report export."""

from __future__ import annotations

import asyncio
import json
from typing import List

import streamlit as st

from pm_management import MaintenanceDashboard, parse_rows
from pm_management.analytics import (
    build_category_breakdown,
    build_checklist_status_chart,
    build_failure_breakdown,
    build_pm_activity_chart,
    build_summary,
    checklist_column_help,
    pivot_to_frame,
    summary_to_frame,
)
from pm_management.client import PMApiClient
from pm_management.config import load_settings
from pm_management.errors import ExportError, NoSelectionError, PMError
from pm_management.models import CategoryGroup, ChecklistDefinition, ExportDocument, MaintenanceRow
from pm_management.reporting import build_export_request, build_pdf_report, export_excel_report, export_filename
from pm_management.selection import filter_available

st.set_page_config(page_title="Preventive Maintenance Checklists", layout="wide")
st.title("🛠️ Preventive Maintenance Checklists")

SETTINGS = load_settings()


class _SessionRowSource:
    """Opens a fresh HTTP client per fetch; each Streamlit rerun runs its own event loop."""

    async def fetch_rows(self, customer_id: str, branch: str) -> List[MaintenanceRow]:
        async with PMApiClient(SETTINGS.api_url, timeout=SETTINGS.timeout) as client:
            return await client.fetch_rows(customer_id, branch)


def _dashboard() -> MaintenanceDashboard:
    if "dashboard" not in st.session_state:
        st.session_state["dashboard"] = MaintenanceDashboard(_SessionRowSource(), tie_break=SETTINGS.tie_break)
    return st.session_state["dashboard"]


@st.cache_data(show_spinner=False, ttl=300)
def _customers() -> list[dict]:
    async def _fetch() -> list[dict]:
        async with PMApiClient(SETTINGS.api_url, timeout=SETTINGS.timeout) as client:
            return await client.fetch_customers()

    return asyncio.run(_fetch())


@st.cache_data(show_spinner=False, ttl=300)
def _branches(customer_id: str) -> list[str]:
    async def _fetch() -> list[str]:
        async with PMApiClient(SETTINGS.api_url, timeout=SETTINGS.timeout) as client:
            return await client.fetch_branches(customer_id)

    return asyncio.run(_fetch())


@st.cache_data(show_spinner=False, ttl=300)
def _checklist_definitions(category_id: int | str) -> list[ChecklistDefinition]:
    async def _fetch() -> list[ChecklistDefinition]:
        async with PMApiClient(SETTINGS.api_url, timeout=SETTINGS.timeout) as client:
            return await client.fetch_checklist_definitions(category_id)

    return asyncio.run(_fetch())


def _pivot_column_config(group: CategoryGroup) -> dict:
    """Show each checklist item's long description as its column tooltip."""
    category_id = next(
        (summary.asset.category_id for summary in group.assets.values() if summary.asset.category_id is not None),
        None,
    )
    if category_id is None:
        return {}
    try:
        definitions = _checklist_definitions(category_id)
    except PMError as exc:
        st.caption(f"Checklist descriptions unavailable: {exc}")
        return {}
    return {
        label: st.column_config.Column(help=text)
        for label, text in checklist_column_help(group, definitions).items()
    }


def _request_export(customer: str | None, branch: str | None) -> ExportDocument:
    request = build_export_request(_dashboard().selection)

    async def _send() -> ExportDocument:
        async with PMApiClient(SETTINGS.api_url, timeout=SETTINGS.timeout) as client:
            return await client.export_reports(request, fallback_filename=export_filename(customer, branch))

    return asyncio.run(_send())


def _download_bytes(data: bytes, *, file_name: str, mime: str, label: str, key: str) -> None:
    st.download_button(
        label,
        data=data,
        file_name=file_name,
        mime=mime,
        use_container_width=True,
        key=key,
    )


def _sidebar(dashboard: MaintenanceDashboard) -> None:
    with st.sidebar:
        st.header("Data source")
        uploaded = st.file_uploader("Load a JSON row snapshot", type=["json"])
        if uploaded is not None:
            payload = json.loads(uploaded.getvalue().decode("utf-8"))
            if isinstance(payload, dict):
                payload = payload.get("rows", payload.get("data", []))
            if st.button("Use snapshot", use_container_width=True):
                dashboard.set_rows(parse_rows(payload if isinstance(payload, list) else []))
            return

        try:
            customers = _customers()
        except PMError as exc:
            st.error(str(exc))
            return

        options = {
            str(item.get("Customer_Ref_Number")): f"{item.get('Customer_Name', '')} ({item.get('Customer_Ref_Number')})"
            for item in customers
            if item.get("Customer_Ref_Number")
        }
        customer_id = st.selectbox("Customer", list(options), format_func=options.get, index=None)
        if not customer_id:
            return
        try:
            branches = _branches(customer_id)
        except PMError as exc:
            st.error(str(exc))
            return
        branch = st.selectbox("Branch", branches, index=None)
        if branch and (dashboard.scope is None or (dashboard.scope.customer_id, dashboard.scope.branch) != (customer_id, branch)):
            with st.spinner("Loading PM records..."):
                asyncio.run(dashboard.load(customer_id, branch))


def _render_pivots(dashboard: MaintenanceDashboard) -> None:
    search = st.text_input("Search assets (tag, item name, serial)", value=dashboard.search_text)
    if search != dashboard.search_text:
        dashboard.apply_search(search)

    groups = dashboard.groups
    if not groups:
        st.info("No PM records for the current selection.")
        return

    summary = build_summary(groups)
    cols = st.columns(4)
    cols[0].metric("Assets", f"{summary.total_assets:,}")
    cols[1].metric("Never maintained", f"{summary.assets_without_pm:,}")
    cols[2].metric("PM events", f"{summary.total_events:,}")
    cols[3].metric("Failed checks", f"{summary.failed_checks:,}")
    st.dataframe(summary_to_frame(groups, summary), use_container_width=True, hide_index=True)

    tabs = st.tabs(list(groups))
    for tab, (category, group) in zip(tabs, groups.items()):
        with tab:
            st.dataframe(
                pivot_to_frame(group),
                use_container_width=True,
                hide_index=True,
                column_config=_pivot_column_config(group),
            )
            st.plotly_chart(build_checklist_status_chart(group), use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.dataframe(build_category_breakdown(groups), use_container_width=True, hide_index=True)
    with col2:
        st.dataframe(build_failure_breakdown(groups), use_container_width=True, hide_index=True)
    st.plotly_chart(build_pm_activity_chart(groups), use_container_width=True)

    excel_bytes = export_excel_report(groups, summary)
    _download_bytes(
        excel_bytes,
        file_name="pm_checklist_pivot.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        label="📊 Download pivot workbook",
        key="download_excel",
    )
    try:
        pdf_bytes = build_pdf_report(groups, summary)
    except ImportError as exc:
        st.warning(str(exc))
    else:
        _download_bytes(
            pdf_bytes,
            file_name="pm_checklist_pivot.pdf",
            mime="application/pdf",
            label="📄 Download PDF summary",
            key="download_pdf",
        )


def _render_export_selection(dashboard: MaintenanceDashboard) -> None:
    st.subheader("Bulk PM report export")
    selection = dashboard.selection

    query = st.text_input("Find assets to add", key="export_search")
    available = [
        summary
        for summary in filter_available(query, dashboard.all_assets())
        if summary.pm_count and summary.asset_id not in selection
    ]
    labels = {summary.asset_id: f"{summary.asset.asset_tag_id} · {summary.asset.item_name}" for summary in available}
    chosen = st.selectbox("Asset", list(labels), format_func=labels.get, index=None, key="export_pick")
    if chosen is not None and st.button("Add asset"):
        selection.add_asset(next(summary for summary in available if summary.asset_id == chosen))
        st.rerun()

    for summary in selection.selected_assets:
        with st.expander(f"{summary.asset.asset_tag_id} · {summary.asset.item_name}", expanded=True):
            for record in summary.all_pm_records:
                date_text = record.pm_date.strftime("%Y-%m-%d") if record.pm_date is not None else "undated"
                checked = selection.is_event_selected(summary.asset_id, record.pm_id)
                key = f"pm_{summary.asset_id}_{record.pm_id}"
                if st.checkbox(f"PM {record.pm_id} ({date_text})", value=checked, key=key) != checked:
                    selection.toggle_pm_event(summary.asset_id, record.pm_id)
            if st.button("Remove", key=f"remove_{summary.asset_id}"):
                selection.remove_asset(summary.asset_id)
                st.rerun()

    st.caption(f"{selection.total_selected_events()} PM events selected")
    if not st.button("Request PM reports", type="primary"):
        return

    scope = dashboard.scope
    try:
        document = _request_export(scope.customer_id if scope else None, scope.branch if scope else None)
    except NoSelectionError as exc:
        st.warning(str(exc))
        return
    except ExportError as exc:
        st.error(exc.message)
        return

    st.session_state["export_document"] = document
    selection.clear()


def main() -> None:
    dashboard = _dashboard()
    _sidebar(dashboard)

    if dashboard.error:
        st.error(dashboard.error)
        return

    _render_pivots(dashboard)
    _render_export_selection(dashboard)

    document = st.session_state.get("export_document")
    if document is not None:
        _download_bytes(
            document.content,
            file_name=document.filename,
            mime=document.media_type,
            label="⬇️ Save PM reports",
            key="download_export",
        )


if __name__ == "__main__":
    main()

"""Plotly visualisations for aggregated PM histories."""

from __future__ import annotations

from typing import Mapping

import pandas as pd
import plotly.express as px

from ..models import CategoryGroup
from .breakdowns import build_event_history_table
from .pivot import CellStatus, build_rows

_STATUS_COLORS = {
    CellStatus.PASS.value: "#059669",
    CellStatus.FAIL.value: "#dc2626",
    CellStatus.NOT_APPLICABLE.value: "#94a3b8",
}


def _empty_figure(message: str):
    fig = px.scatter()
    fig.add_annotation(text=message, showarrow=False)
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(height=320, margin=dict(l=10, r=10, t=40, b=10))
    return fig


def build_checklist_status_chart(group: CategoryGroup):
    """Stacked pass/fail/not-applicable counts per checklist column of one category."""
    if not group.assets or not group.checklist_columns:
        return _empty_figure(f"No checklist results for {group.category}.")

    rows = build_rows(group)
    records = [
        {
            "Check item": column.check_item or str(column.checklist_id),
            "Status": row.cells[column.checklist_id].value,
        }
        for row in rows
        for column in group.checklist_columns
    ]
    data = pd.DataFrame(records).groupby(["Check item", "Status"], sort=False).size().reset_index(name="Assets")
    fig = px.bar(
        data,
        x="Check item",
        y="Assets",
        color="Status",
        color_discrete_map=_STATUS_COLORS,
        title=f"{group.category}: current checklist status",
    )
    fig.update_layout(barmode="stack", legend_title_text="Status", height=400)
    return fig


def build_pm_activity_chart(groups: Mapping[str, CategoryGroup], *, freq: str = "M"):
    """PM events per period, one line per category."""
    history = build_event_history_table(groups).dropna(subset=["PM Date"])
    if history.empty:
        return _empty_figure("No dated PM events captured.")

    timeline = (
        history.assign(period=lambda frame: frame["PM Date"].dt.to_period(freq).dt.to_timestamp())
        .groupby(["period", "Category"])
        .size()
        .reset_index(name="Events")
        .sort_values("period")
    )
    fig = px.line(timeline, x="period", y="Events", color="Category", markers=True, title="PM activity")
    fig.update_layout(height=400, xaxis_title="Period", yaxis_title="PM events")
    return fig

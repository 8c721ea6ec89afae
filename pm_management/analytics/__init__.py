"""Aggregation, pivot and summary helpers for PM checklist results."""

from .aggregation import TieBreak, aggregate, append_event
from .pivot import CellStatus, PivotRow, build_rows, checklist_column_help, column_labels, pivot_to_frame
from .summaries import PMSummary, build_summary, summary_to_frame
from .breakdowns import build_category_breakdown, build_event_history_table, build_failure_breakdown
from .visuals import build_checklist_status_chart, build_pm_activity_chart

__all__ = [
    "TieBreak",
    "aggregate",
    "append_event",
    "CellStatus",
    "PivotRow",
    "build_rows",
    "checklist_column_help",
    "column_labels",
    "pivot_to_frame",
    "PMSummary",
    "build_summary",
    "summary_to_frame",
    "build_category_breakdown",
    "build_event_history_table",
    "build_failure_breakdown",
    "build_checklist_status_chart",
    "build_pm_activity_chart",
]

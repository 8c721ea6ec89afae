"""Preventive-maintenance checklist aggregation and export package."""

from .data_loader import load_rows, parse_rows
from .analytics.aggregation import TieBreak, aggregate
from .analytics.pivot import build_rows, pivot_to_frame
from .dashboard import MaintenanceDashboard
from .selection import SelectionState, filter_available

__all__ = [
    "load_rows",
    "parse_rows",
    "TieBreak",
    "aggregate",
    "build_rows",
    "pivot_to_frame",
    "MaintenanceDashboard",
    "SelectionState",
    "filter_available",
]

"""Breakdown tables for aggregated PM histories."""

from __future__ import annotations

from typing import Dict, List, Mapping

import pandas as pd

from ..models import CategoryGroup


def build_category_breakdown(groups: Mapping[str, CategoryGroup]) -> pd.DataFrame:
    """Asset, event and failure counts per category."""
    columns = ["Category", "Assets", "Never Maintained", "PM Events", "Checklist Items", "Failed Checks"]
    if not groups:
        return pd.DataFrame(columns=columns)

    records: List[Dict[str, object]] = []
    for category, group in groups.items():
        summaries = list(group.assets.values())
        records.append(
            {
                "Category": category,
                "Assets": len(summaries),
                "Never Maintained": sum(1 for summary in summaries if summary.pm_count == 0),
                "PM Events": sum(summary.pm_count for summary in summaries),
                "Checklist Items": len(group.checklist_columns),
                "Failed Checks": sum(
                    1
                    for summary in summaries
                    for result in summary.current_checklist_results
                    if not result.is_ok
                ),
            }
        )

    result = pd.DataFrame(records, columns=columns)
    return result.sort_values(["Failed Checks", "Assets"], ascending=[False, False]).reset_index(drop=True)


def build_failure_breakdown(groups: Mapping[str, CategoryGroup], *, top_n: int = 15) -> pd.DataFrame:
    """Return the checklist items failing most often on current snapshots."""
    columns = ["Category", "Check Item", "Checked", "Failures", "Failure %"]
    records: List[Dict[str, object]] = []
    for category, group in groups.items():
        for column in group.checklist_columns:
            outcomes = [
                result.is_ok
                for summary in group.assets.values()
                for result in summary.current_checklist_results
                if result.checklist_id == column.checklist_id
            ]
            if not outcomes:
                continue
            failures = outcomes.count(False)
            records.append(
                {
                    "Category": category,
                    "Check Item": column.check_item,
                    "Checked": len(outcomes),
                    "Failures": failures,
                    "Failure %": round(failures / len(outcomes) * 100.0, 1),
                }
            )

    if not records:
        return pd.DataFrame(columns=columns)

    result = pd.DataFrame(records, columns=columns)
    result = result.sort_values(["Failures", "Checked"], ascending=[False, False]).head(top_n)
    return result.reset_index(drop=True)


def build_event_history_table(groups: Mapping[str, CategoryGroup]) -> pd.DataFrame:
    """Flat list of every PM event, oldest first."""
    columns = ["Category", "Asset Tag", "Serial Number", "PM ID", "PM Date", "Status", "Remarks"]
    records = [
        {
            "Category": category,
            "Asset Tag": summary.asset.asset_tag_id,
            "Serial Number": summary.asset.asset_serial_number,
            "PM ID": record.pm_id,
            "PM Date": record.pm_date,
            "Status": record.status,
            "Remarks": record.remarks,
        }
        for category, group in groups.items()
        for summary in group.assets.values()
        for record in summary.all_pm_records
    ]
    if not records:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame(records, columns=columns)
    frame["PM Date"] = pd.to_datetime(frame["PM Date"])
    return frame.sort_values("PM Date", na_position="last", kind="stable").reset_index(drop=True)

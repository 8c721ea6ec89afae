"""Reduce flat (asset x event) rows into per-category asset histories."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from ..data_loader import parse_pm_date, parse_row
from ..errors import AmbiguousTimestampError
from ..models import (
    UNCATEGORIZED,
    AssetSummary,
    CategoryGroup,
    ChecklistColumn,
    ChecklistResult,
    EventSubmission,
    MaintenanceRow,
    PMId,
    PMRecord,
    checklist_sort_key,
)


class TieBreak(str, Enum):
    """Which event provides the current checklist snapshot when two share the latest date."""

    FIRST_WINS = "first"
    LAST_WINS = "last"
    REJECT = "reject"


def aggregate(
    rows: Iterable[MaintenanceRow | Mapping[str, Any]],
    *,
    tie_break: TieBreak | str = TieBreak.FIRST_WINS,
) -> Dict[str, CategoryGroup]:
    """
    Group maintenance rows by category and asset.

    Rows are processed in input order. Each asset keeps a count of its events,
    every ``(PM_ID, PM_Date)`` pair in encounter order, and the checklist results
    of its most recent event. Checklist columns are the union of every checklist
    id seen in the category, sorted by id.

    Rows without an asset id are skipped; raw mappings are parsed leniently so a
    malformed row never aborts the rest of the aggregation.
    """

    policy = TieBreak(tie_break)
    groups: Dict[str, CategoryGroup] = {}
    seen_columns: Dict[str, set] = {}

    for raw in rows:
        row = parse_row(raw)
        if row is None:
            continue

        category = row.category or UNCATEGORIZED
        group = groups.get(category)
        if group is None:
            group = CategoryGroup(category=category)
            groups[category] = group
            seen_columns[category] = set()

        summary = group.assets.get(row.asset_id)
        if summary is None:
            group.assets[row.asset_id] = _seed_summary(row)
        elif row.event is not None:
            _record_event(summary, row, policy)

        _collect_columns(group, seen_columns[category], row.checklist_results)

    for group in groups.values():
        group.checklist_columns.sort(key=lambda column: checklist_sort_key(column.checklist_id))

    return groups


def _seed_summary(row: MaintenanceRow) -> AssetSummary:
    if row.event is None:
        return AssetSummary(asset=row.asset)
    return AssetSummary(
        asset=row.asset,
        pm_count=1,
        latest_pm_date=row.event.pm_date,
        all_pm_records=[row.event],
        current_checklist_results=row.checklist_results,
    )


def _record_event(summary: AssetSummary, row: MaintenanceRow, policy: TieBreak) -> None:
    event = row.event
    summary.pm_count += 1
    summary.all_pm_records.append(event)

    if _is_newer(event, summary, policy):
        summary.latest_pm_date = event.pm_date
        summary.current_checklist_results = row.checklist_results


def _is_newer(event: PMRecord, summary: AssetSummary, policy: TieBreak) -> bool:
    if event.pm_date is None:
        return False
    current = summary.latest_pm_date
    if current is None:
        return True
    if event.pm_date > current:
        return True
    if event.pm_date < current:
        return False

    if policy is TieBreak.LAST_WINS:
        return True
    if policy is TieBreak.REJECT:
        holder = _snapshot_holder(summary, current, exclude=event.pm_id)
        raise AmbiguousTimestampError(summary.asset_id, current, (holder, event.pm_id))
    return False


def _snapshot_holder(summary: AssetSummary, pm_date, *, exclude: PMId) -> PMId:
    for record in summary.all_pm_records:
        if record.pm_date == pm_date and record.pm_id != exclude:
            return record.pm_id
    return exclude


def _collect_columns(group: CategoryGroup, seen: set, results: Sequence[ChecklistResult]) -> None:
    for result in results:
        if result.checklist_id in seen:
            continue
        seen.add(result.checklist_id)
        group.checklist_columns.append(ChecklistColumn(result.checklist_id, result.check_item))


def row_from_submission(
    submission: EventSubmission,
    pm_id: PMId,
    *,
    template: MaintenanceRow,
    columns: Sequence[ChecklistColumn] = (),
) -> MaintenanceRow:
    """
    Build the in-memory row equivalent of a freshly submitted PM event.

    ``template`` is any existing row of the same asset; it supplies the asset
    attributes and category. Check item labels missing from the submission are
    filled in from ``columns``.
    """

    labels = {column.checklist_id: column.check_item for column in columns}
    results = tuple(
        ChecklistResult(
            checklist_id=result.checklist_id,
            check_item=result.check_item or labels.get(result.checklist_id, ""),
            is_ok=result.is_ok,
            remarks=result.remarks,
        )
        for result in submission.checklist_results
    )
    return MaintenanceRow(
        asset=template.asset,
        category=template.category,
        event=PMRecord(
            pm_id=pm_id,
            pm_date=parse_pm_date(submission.pm_date),
            remarks=submission.remarks,
            status=submission.status,
        ),
        checklist_results=results,
    )


def append_event(
    rows: List[MaintenanceRow],
    submission: EventSubmission,
    pm_id: PMId,
    *,
    columns: Sequence[ChecklistColumn] = (),
) -> MaintenanceRow:
    """Append the row for a submitted event to ``rows`` and return it."""
    template = next((row for row in rows if row.asset_id == submission.asset_id), None)
    if template is None:
        raise KeyError(f"Asset {submission.asset_id} is not part of the loaded rows")
    row = row_from_submission(submission, pm_id, template=template, columns=columns)
    rows.append(row)
    return row

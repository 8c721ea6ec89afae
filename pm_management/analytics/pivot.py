"""Project aggregated asset histories onto their category's checklist columns."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from ..models import (
    AssetSummary,
    CategoryGroup,
    ChecklistColumn,
    ChecklistDefinition,
    ChecklistId,
    PMRecord,
)


class CellStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    NOT_APPLICABLE = "not applicable"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {
    CellStatus.PASS: "✓",
    CellStatus.FAIL: "✗",
    CellStatus.NOT_APPLICABLE: "-",
}

ASSET_COLUMNS = [
    "Asset Tag",
    "Item Name",
    "Serial Number",
    "Recipient",
    "Department",
    "PM Count",
    "Latest PM",
]


@dataclass(slots=True)
class PivotRow:
    """One asset rendered across the checklist columns of its category."""

    summary: AssetSummary
    cells: Dict[ChecklistId, CellStatus]
    pm_records: List[PMRecord]

    @property
    def asset_id(self):
        return self.summary.asset_id

    def event_labels(self) -> List[str]:
        """Labels for the per-event actions, numbered in date order."""
        labels = []
        for index, record in enumerate(self.pm_records, start=1):
            date_text = record.pm_date.strftime("%Y-%m-%d") if record.pm_date is not None else "undated"
            labels.append(f"PM {index} ({date_text})")
        return labels


def build_rows(group: CategoryGroup) -> List[PivotRow]:
    """
    Build one pivot row per asset of ``group``.

    A cell passes when the current snapshot marks the item OK, fails when the
    snapshot holds the item but not OK, and is not applicable when the item was
    not part of the snapshot at all.
    """

    rows: List[PivotRow] = []
    for summary in group.assets.values():
        lookup = {result.checklist_id: result.is_ok for result in summary.current_checklist_results}
        cells = {
            column.checklist_id: _cell_status(lookup, column.checklist_id)
            for column in group.checklist_columns
        }
        rows.append(PivotRow(summary=summary, cells=cells, pm_records=sort_pm_records(summary.all_pm_records)))
    return rows


def _cell_status(lookup: Dict[ChecklistId, bool], checklist_id: ChecklistId) -> CellStatus:
    if checklist_id not in lookup:
        return CellStatus.NOT_APPLICABLE
    return CellStatus.PASS if lookup[checklist_id] else CellStatus.FAIL


def sort_pm_records(records: Iterable[PMRecord]) -> List[PMRecord]:
    """Order events by date, oldest first; undated events go last in encounter order."""
    records = list(records)
    dated = [record for record in records if record.pm_date is not None]
    undated = [record for record in records if record.pm_date is None]
    return sorted(dated, key=lambda record: record.pm_date) + undated


def column_labels(group: CategoryGroup) -> List[Tuple[ChecklistColumn, str]]:
    """Frame header for each checklist column, kept distinct from the asset columns and each other."""
    labels = _deduplicate_headers(
        [column.check_item or f"Check {column.checklist_id}" for column in group.checklist_columns],
        reserved=ASSET_COLUMNS,
    )
    return list(zip(group.checklist_columns, labels))


def pivot_to_frame(group: CategoryGroup, *, symbols: bool = True) -> pd.DataFrame:
    """Render the pivot of one category as a dataframe, one row per asset."""
    labelled = column_labels(group)
    columns = ASSET_COLUMNS + [label for _, label in labelled]

    records: List[Dict[str, object]] = []
    for row in build_rows(group):
        asset = row.summary.asset
        record: Dict[str, object] = {
            "Asset Tag": asset.asset_tag_id,
            "Item Name": asset.item_name,
            "Serial Number": asset.asset_serial_number,
            "Recipient": asset.recipient_name,
            "Department": asset.department,
            "PM Count": row.summary.pm_count,
            "Latest PM": row.summary.latest_pm_date,
        }
        for column, label in labelled:
            status = row.cells[column.checklist_id]
            record[label] = status.symbol if symbols else status.value
        records.append(record)

    frame = pd.DataFrame(records, columns=columns)
    frame["Latest PM"] = pd.to_datetime(frame["Latest PM"])
    return frame


def _deduplicate_headers(headers: Iterable[str], *, reserved: Iterable[str] = ()) -> list[str]:
    result: list[str] = []
    taken = set(reserved)
    for header in headers:
        base = header or "column"
        candidate = base
        count = 1
        while candidate in taken:
            count += 1
            candidate = f"{base}_{count}"
        taken.add(candidate)
        result.append(candidate)
    return result


def checklist_column_help(
    group: CategoryGroup, definitions: Iterable[ChecklistDefinition]
) -> Dict[str, str]:
    """Long descriptions of the category's checklist items, keyed by frame header."""
    long_text = {
        str(definition.checklist_id): definition.check_item_long
        for definition in definitions
        if definition.check_item_long
    }
    return {
        label: long_text[str(column.checklist_id)]
        for column, label in column_labels(group)
        if str(column.checklist_id) in long_text
    }

from __future__ import annotations

import pandas as pd
import pytest

from pm_management.analytics.aggregation import TieBreak, aggregate, append_event
from pm_management.data_loader import parse_rows
from pm_management.errors import AmbiguousTimestampError
from pm_management.models import ChecklistResult, EventSubmission


def _row(asset_id, pm_id, pm_date, results, *, category="Printer", tag=None):
    return {
        "Asset_ID": asset_id,
        "Asset_Tag_ID": tag or f"TAG-{asset_id}",
        "Item_Name": f"Item {asset_id}",
        "Asset_Serial_Number": f"SN{asset_id}",
        "Category": category,
        "Category_ID": 1,
        "PM_ID": pm_id,
        "PM_Date": pm_date,
        "checklist_results": [
            {"Checklist_ID": checklist_id, "Check_Item": f"Check {checklist_id}", "Is_OK_bool": ok, "Remarks": None}
            for checklist_id, ok in results
        ],
    }


def test_two_events_keep_latest_snapshot():
    groups = aggregate(
        [
            _row("X", 10, "2024-01-01", [(1, True)]),
            _row("X", 12, "2024-03-01", [(1, False), (2, True)]),
        ]
    )
    summary = groups["Printer"].assets["X"]
    assert summary.pm_count == 2
    assert summary.latest_pm_date == pd.Timestamp("2024-03-01")
    assert [result.checklist_id for result in summary.current_checklist_results] == [1, 2]
    assert [record.pm_id for record in summary.all_pm_records] == [10, 12]


def test_older_event_after_newer_keeps_snapshot_but_counts():
    groups = aggregate(
        [
            _row("X", 12, "2024-03-01", [(1, False)]),
            _row("X", 10, "2024-01-01", [(1, True), (3, True)]),
        ]
    )
    summary = groups["Printer"].assets["X"]
    assert summary.pm_count == 2
    assert summary.latest_pm_date == pd.Timestamp("2024-03-01")
    assert summary.current_checklist_results[0].is_ok is False
    assert [record.pm_id for record in summary.all_pm_records] == [12, 10]
    # columns come from every row of the category, not only the current snapshot
    assert [column.checklist_id for column in groups["Printer"].checklist_columns] == [1, 3]


def test_asset_without_events():
    groups = aggregate([_row("Y", None, None, [])])
    summary = groups["Printer"].assets["Y"]
    assert summary.pm_count == 0
    assert summary.all_pm_records == []
    assert summary.latest_pm_date is None
    assert summary.current_checklist_results == ()


def test_null_event_row_after_real_event_changes_nothing():
    groups = aggregate([_row("X", 10, "2024-01-01", [(1, True)]), _row("X", None, None, [])])
    summary = groups["Printer"].assets["X"]
    assert summary.pm_count == 1
    assert summary.latest_pm_date == pd.Timestamp("2024-01-01")


def test_rows_without_asset_id_and_malformed_rows_are_skipped():
    rows = [
        {"Asset_ID": None, "Category": "Printer", "PM_ID": 1, "PM_Date": "2024-01-01"},
        "not a row",
        {"Asset_ID": 7, "PM_ID": 3, "PM_Date": "2024-02-02", "checklist_results": "oops"},
        _row("X", 10, "2024-01-01", [(1, True)]),
    ]
    groups = aggregate(rows)
    assert set(groups) == {"Uncategorized", "Printer"}
    orphan = groups["Uncategorized"].assets[7]
    assert orphan.pm_count == 1
    assert orphan.current_checklist_results == ()
    assert groups["Uncategorized"].checklist_columns == []


def test_columns_are_unique_and_sorted_across_assets():
    groups = aggregate(
        [
            _row("A", 1, "2024-01-01", [(5, True), (2, True)]),
            _row("B", 2, "2024-01-02", [(2, False), (9, True), (1, True)]),
            _row("C", 3, "2024-01-03", [(4, True)], category="Laptop"),
        ]
    )
    printer_ids = [column.checklist_id for column in groups["Printer"].checklist_columns]
    assert printer_ids == [1, 2, 5, 9]
    assert len(printer_ids) == len(set(printer_ids))
    assert [column.checklist_id for column in groups["Laptop"].checklist_columns] == [4]


def test_pm_count_matches_records_and_latest_is_max():
    rows = [
        _row("A", 1, "2024-05-01", [(1, True)]),
        _row("A", 2, "2023-05-01", [(1, True)]),
        _row("A", 3, "2024-07-01", [(1, False)]),
        _row("B", 4, "2024-02-01", [(1, True)]),
        _row("B", None, None, []),
    ]
    for summary in aggregate(rows)["Printer"].assets.values():
        assert summary.pm_count == len(summary.all_pm_records)
        assert summary.latest_pm_date == max(record.pm_date for record in summary.all_pm_records)


def _tied_rows():
    return [
        _row("X", 10, "2024-03-01", [(1, True)]),
        _row("X", 11, "2024-03-01", [(1, False)]),
    ]


def test_tie_break_first_wins_by_default():
    summary = aggregate(_tied_rows())["Printer"].assets["X"]
    assert summary.current_checklist_results[0].is_ok is True


def test_tie_break_last_wins():
    summary = aggregate(_tied_rows(), tie_break=TieBreak.LAST_WINS)["Printer"].assets["X"]
    assert summary.current_checklist_results[0].is_ok is False
    assert summary.pm_count == 2


def test_tie_break_reject_raises():
    with pytest.raises(AmbiguousTimestampError) as excinfo:
        aggregate(_tied_rows(), tie_break="reject")
    assert excinfo.value.pm_ids == (10, 11)


def test_dated_event_replaces_undated_latest():
    summary = aggregate(
        [_row("X", 10, None, [(1, False)]), _row("X", 11, "2024-01-01", [(1, True)])]
    )["Printer"].assets["X"]
    assert summary.latest_pm_date == pd.Timestamp("2024-01-01")
    assert summary.current_checklist_results[0].is_ok is True


def test_append_event_folds_submission_into_rows():
    rows = parse_rows([_row("Y", None, None, []), _row("X", 10, "2024-01-01", [(1, True)])])
    submission = EventSubmission(
        asset_id="Y",
        pm_date="2024-06-01",
        checklist_results=(ChecklistResult(checklist_id=1, is_ok=False),),
    )
    columns = aggregate(rows)["Printer"].checklist_columns
    appended = append_event(rows, submission, 99, columns=columns)

    assert appended.checklist_results[0].check_item == "Check 1"
    summary = aggregate(rows)["Printer"].assets["Y"]
    assert summary.pm_count == 1
    assert summary.pm_ids == [99]
    assert summary.latest_pm_date == pd.Timestamp("2024-06-01")


def test_append_event_unknown_asset():
    rows = parse_rows([_row("X", 10, "2024-01-01", [])])
    with pytest.raises(KeyError):
        append_event(rows, EventSubmission(asset_id="Z", pm_date="2024-01-01", checklist_results=()), 5)

from __future__ import annotations

from pm_management.analytics.aggregation import aggregate
from pm_management.selection import SelectionState, filter_available


def _summaries():
    rows = [
        {"Asset_ID": "X", "Asset_Tag_ID": "PRN-001", "Item_Name": "LaserJet", "Asset_Serial_Number": "ABC123",
         "Category": "Printer", "PM_ID": 10, "PM_Date": "2024-01-01"},
        {"Asset_ID": "X", "Asset_Tag_ID": "PRN-001", "Item_Name": "LaserJet", "Asset_Serial_Number": "ABC123",
         "Category": "Printer", "PM_ID": 12, "PM_Date": "2024-03-01"},
        {"Asset_ID": "Y", "Asset_Tag_ID": "LAP-009", "Item_Name": "ThinkPad", "Asset_Serial_Number": "ZZ9",
         "Category": "Laptop", "PM_ID": 20, "PM_Date": "2024-02-01"},
    ]
    groups = aggregate(rows)
    return groups["Printer"].assets["X"], groups["Laptop"].assets["Y"]


def test_add_asset_is_idempotent_and_ordered():
    x, y = _summaries()
    selection = SelectionState()
    assert selection.add_asset(y) is True
    assert selection.add_asset(x) is True
    assert selection.add_asset(y) is False
    assert [summary.asset_id for summary in selection.selected_assets] == ["Y", "X"]


def test_toggle_twice_restores_state():
    x, _ = _summaries()
    selection = SelectionState()
    selection.add_asset(x)
    selection.toggle_pm_event("X", 10)
    before = selection.selected_pm_events
    assert selection.toggle_pm_event("X", 12) is True
    assert selection.toggle_pm_event("X", 12) is False
    assert selection.selected_pm_events == before == {"X": (10,)}


def test_toggle_requires_selected_asset_and_known_event():
    x, _ = _summaries()
    selection = SelectionState()
    assert selection.toggle_pm_event("X", 10) is False
    assert selection.selected_pm_events == {}

    selection.add_asset(x)
    assert selection.toggle_pm_event("X", 20) is False
    assert selection.total_selected_events() == 0


def test_remove_asset_cascades_to_events():
    _, y = _summaries()
    selection = SelectionState()
    selection.add_asset(y)
    selection.toggle_pm_event("Y", 20)
    selection.remove_asset("Y")
    assert "Y" not in selection
    assert selection.selected_assets == []
    assert "Y" not in selection.selected_pm_events


def test_total_and_flattened_order():
    x, y = _summaries()
    selection = SelectionState()
    selection.add_asset(x)
    selection.add_asset(y)
    selection.toggle_pm_event("X", 12)
    selection.toggle_pm_event("Y", 20)
    selection.toggle_pm_event("X", 10)
    assert selection.total_selected_events() == 3
    assert selection.flattened_pm_ids() == [12, 10, 20]


def test_select_all_and_clear_events():
    x, _ = _summaries()
    selection = SelectionState()
    selection.add_asset(x)
    selection.select_all_events("X")
    assert selection.selected_pm_events == {"X": (10, 12)}
    selection.clear_events("X")
    assert selection.total_selected_events() == 0
    assert "X" in selection


def test_filter_available_matches_tag_name_or_serial():
    x, y = _summaries()
    assert filter_available("prn", [x, y]) == [x]
    assert filter_available("thinkpad", [x, y]) == [y]
    assert filter_available("abc1", [x, y]) == [x]
    assert filter_available("", [x, y]) == [x, y]
    assert filter_available("nothing", [x, y]) == []


def test_refresh_points_entries_at_new_summaries():
    x, y = _summaries()
    selection = SelectionState()
    selection.add_asset(x)
    selection.add_asset(y)
    selection.toggle_pm_event("X", 10)
    selection.toggle_pm_event("X", 12)
    selection.toggle_pm_event("Y", 20)

    rebuilt = aggregate(
        [
            {"Asset_ID": "X", "Asset_Tag_ID": "PRN-001", "Category": "Printer", "PM_ID": 12, "PM_Date": "2024-03-01"},
            {"Asset_ID": "X", "Asset_Tag_ID": "PRN-001", "Category": "Printer", "PM_ID": 15, "PM_Date": "2024-04-01"},
        ]
    )["Printer"].assets["X"]
    selection.refresh({"X": rebuilt})

    assert selection.selected_assets == [rebuilt, y]
    assert selection.selected_pm_events == {"X": (12,), "Y": (20,)}
    assert selection.toggle_pm_event("X", 15) is True

"""Selection of assets and their historical PM events for bulk export."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from .models import AssetId, AssetSummary, PMId


@dataclass(slots=True)
class SelectedAsset:
    """A chosen asset together with the subset of its events picked for export."""

    summary: AssetSummary
    pm_ids: Dict[PMId, None] = field(default_factory=dict)

    @property
    def asset_id(self) -> AssetId:
        return self.summary.asset_id

    def available_pm_ids(self) -> List[PMId]:
        return self.summary.pm_ids


class SelectionState:
    """
    Assets chosen for export, in the order they were added.

    Event selections live inside each selected asset entry, so dropping an
    asset drops its events with it and no event can be selected for an asset
    that is not itself selected.
    """

    def __init__(self) -> None:
        self._entries: Dict[AssetId, SelectedAsset] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._entries

    @property
    def selected_assets(self) -> List[AssetSummary]:
        return [entry.summary for entry in self._entries.values()]

    @property
    def selected_pm_events(self) -> Dict[AssetId, Tuple[PMId, ...]]:
        """Chosen event ids per selected asset; assets with no chosen events are omitted."""
        return {
            asset_id: tuple(entry.pm_ids)
            for asset_id, entry in self._entries.items()
            if entry.pm_ids
        }

    def add_asset(self, summary: AssetSummary) -> bool:
        if summary.asset_id in self._entries:
            return False
        self._entries[summary.asset_id] = SelectedAsset(summary=summary)
        return True

    def remove_asset(self, asset_id: AssetId) -> bool:
        return self._entries.pop(asset_id, None) is not None

    def toggle_pm_event(self, asset_id: AssetId, pm_id: PMId) -> bool:
        """
        Flip the selection of one event and return whether it is now selected.

        Unknown assets and event ids outside the asset's history are ignored.
        """

        entry = self._entries.get(asset_id)
        if entry is None or pm_id not in entry.available_pm_ids():
            return False
        if pm_id in entry.pm_ids:
            del entry.pm_ids[pm_id]
            return False
        entry.pm_ids[pm_id] = None
        return True

    def select_all_events(self, asset_id: AssetId) -> None:
        entry = self._entries.get(asset_id)
        if entry is None:
            return
        for pm_id in entry.available_pm_ids():
            entry.pm_ids.setdefault(pm_id, None)

    def clear_events(self, asset_id: AssetId) -> None:
        entry = self._entries.get(asset_id)
        if entry is not None:
            entry.pm_ids.clear()

    def is_event_selected(self, asset_id: AssetId, pm_id: PMId) -> bool:
        entry = self._entries.get(asset_id)
        return entry is not None and pm_id in entry.pm_ids

    def total_selected_events(self) -> int:
        return sum(len(entry.pm_ids) for entry in self._entries.values())

    def flattened_pm_ids(self) -> List[PMId]:
        """Every chosen event id, asset by asset in the order they were chosen."""
        return [pm_id for entry in self._entries.values() for pm_id in entry.pm_ids]

    def refresh(self, summaries: Mapping[AssetId, AssetSummary]) -> None:
        """
        Point selected assets at their rebuilt summaries.

        Chosen events missing from the new history are dropped. Assets absent
        from ``summaries`` (e.g. picked under another customer) are kept as they are.
        """

        for asset_id, entry in self._entries.items():
            summary = summaries.get(asset_id)
            if summary is None:
                continue
            entry.summary = summary
            available = set(summary.pm_ids)
            for pm_id in [pm_id for pm_id in entry.pm_ids if pm_id not in available]:
                del entry.pm_ids[pm_id]

    def clear(self) -> None:
        self._entries.clear()


def filter_available(search_text: str, summaries: Iterable[AssetSummary]) -> List[AssetSummary]:
    """Assets whose tag, item name or serial number contains ``search_text`` (case-insensitive)."""
    needle = (search_text or "").lower()
    candidates = list(summaries)
    if not needle:
        return candidates
    return [
        summary
        for summary in candidates
        if needle in summary.asset.asset_tag_id.lower()
        or needle in summary.asset.item_name.lower()
        or needle in summary.asset.asset_serial_number.lower()
    ]

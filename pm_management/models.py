"""Record types for maintenance rows and their aggregated views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union

import pandas as pd

AssetId = Union[int, str]
PMId = Union[int, str]
ChecklistId = Union[int, str]

UNCATEGORIZED = "Uncategorized"


@dataclass(slots=True, frozen=True)
class Asset:
    """Identity and descriptive attributes owned by the asset registry."""

    asset_id: AssetId
    asset_tag_id: str = ""
    item_name: str = ""
    asset_serial_number: str = ""
    category: str = ""
    category_id: int | str | None = None
    recipient_name: str = ""
    department: str = ""
    model: str = ""


@dataclass(slots=True, frozen=True)
class ChecklistDefinition:
    checklist_id: ChecklistId
    check_item: str
    check_item_long: str = ""
    category_id: int | str | None = None


@dataclass(slots=True, frozen=True)
class ChecklistResult:
    """Outcome of one checklist item within a single PM event."""

    checklist_id: ChecklistId
    check_item: str = ""
    is_ok: bool = False
    remarks: str = ""


@dataclass(slots=True, frozen=True)
class PMRecord:
    pm_id: PMId
    pm_date: pd.Timestamp | None
    remarks: str = ""
    status: str = ""


@dataclass(slots=True, frozen=True)
class MaintenanceRow:
    """
    One (asset, event) pair delivered by the row source.

    ``event`` is ``None`` for an asset that has never been maintained; such an
    asset appears as exactly one row.
    """

    asset: Asset
    category: str = UNCATEGORIZED
    event: PMRecord | None = None
    checklist_results: Tuple[ChecklistResult, ...] = ()

    @property
    def asset_id(self) -> AssetId:
        return self.asset.asset_id


@dataclass(slots=True, frozen=True)
class ChecklistColumn:
    checklist_id: ChecklistId
    check_item: str


@dataclass(slots=True)
class AssetSummary:
    """Per-asset PM history with the checklist snapshot of the latest event."""

    asset: Asset
    pm_count: int = 0
    latest_pm_date: pd.Timestamp | None = None
    all_pm_records: List[PMRecord] = field(default_factory=list)
    current_checklist_results: Tuple[ChecklistResult, ...] = ()

    @property
    def asset_id(self) -> AssetId:
        return self.asset.asset_id

    @property
    def pm_ids(self) -> List[PMId]:
        return [record.pm_id for record in self.all_pm_records]


@dataclass(slots=True)
class CategoryGroup:
    category: str
    assets: Dict[AssetId, AssetSummary] = field(default_factory=dict)
    checklist_columns: List[ChecklistColumn] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class EventSubmission:
    """Payload of a newly recorded PM event."""

    asset_id: AssetId
    pm_date: str
    checklist_results: Tuple[ChecklistResult, ...]
    remarks: str = ""
    status: str = "In-Process"

    def to_payload(self) -> dict[str, object]:
        return {
            "assetId": self.asset_id,
            "pmDate": self.pm_date,
            "remarks": self.remarks or None,
            "status": self.status,
            "checklistResults": [
                {
                    "Checklist_ID": result.checklist_id,
                    "Is_OK_bool": 1 if result.is_ok else 0,
                    "Remarks": result.remarks or None,
                }
                for result in self.checklist_results
            ],
        }


def checklist_sort_key(checklist_id: ChecklistId) -> tuple[int, int, str]:
    """Numeric ids, including digit-only text, sort by value before other textual ones."""
    if isinstance(checklist_id, int):
        return (0, checklist_id, "")
    text = str(checklist_id)
    if text.isdigit():
        return (0, int(text), text)
    return (1, 0, text)


@dataclass(slots=True, frozen=True)
class ExportRequest:
    pm_ids: Tuple[PMId, ...]

    def to_payload(self) -> dict[str, list]:
        return {"pmIds": list(self.pm_ids)}


@dataclass(slots=True, frozen=True)
class ExportDocument:
    """Binary report returned by the export collaborator."""

    content: bytes
    filename: str
    media_type: str = "application/pdf"

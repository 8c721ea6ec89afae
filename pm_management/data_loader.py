"""Utilities for turning raw row-source payloads into maintenance records."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping

import pandas as pd

from .models import (
    UNCATEGORIZED,
    Asset,
    ChecklistDefinition,
    ChecklistResult,
    MaintenanceRow,
    PMRecord,
)

logger = logging.getLogger(__name__)

_EMPTY_SENTINELS = {"", "none", "nan", "null", "na"}
_TRUE_TOKENS = {"1", "true", "yes", "y", "ok", "pass"}


def load_rows(path: str | Path) -> List[MaintenanceRow]:
    """
    Read a JSON snapshot of row-source output into :class:`MaintenanceRow` objects.

    The file holds either the bare list returned by ``GET /pm/filter`` or an
    object with a ``rows`` (or ``data``) key wrapping that list.

    Raises
    ------
    FileNotFoundError
        If the snapshot path does not exist.
    ValueError
        When the file does not contain a list of rows.
    """

    target = Path(path)
    if not target.exists():
        raise FileNotFoundError(f"Row snapshot not found: {target}")

    payload = json.loads(target.read_text(encoding="utf-8"))
    if isinstance(payload, Mapping):
        payload = payload.get("rows", payload.get("data"))
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of maintenance rows in {target}")
    return parse_rows(payload)


def parse_rows(records: Iterable[Any]) -> List[MaintenanceRow]:
    """Parse raw row mappings, dropping the ones without an asset id."""
    rows: List[MaintenanceRow] = []
    for record in records:
        row = parse_row(record)
        if row is not None:
            rows.append(row)
    return rows


def parse_row(record: Any) -> MaintenanceRow | None:
    """
    Convert one raw row into a :class:`MaintenanceRow`.

    Missing fields fall back to empty defaults. Returns ``None`` for rows that
    cannot be attributed to an asset.
    """

    if isinstance(record, MaintenanceRow):
        return record
    if not isinstance(record, Mapping):
        logger.debug("Skipping non-mapping maintenance row: %r", record)
        return None

    asset_id = _clean_id(record.get("Asset_ID"))
    if asset_id is None:
        logger.debug("Skipping maintenance row without Asset_ID: PM_ID=%r", record.get("PM_ID"))
        return None

    category = _clean_text(record.get("Category")) or UNCATEGORIZED
    asset = Asset(
        asset_id=asset_id,
        asset_tag_id=_clean_text(record.get("Asset_Tag_ID")),
        item_name=_clean_text(record.get("Item_Name")),
        asset_serial_number=_clean_text(record.get("Asset_Serial_Number")),
        category=category,
        category_id=_clean_id(record.get("Category_ID")),
        recipient_name=_clean_text(record.get("Recipient_Name")),
        department=_clean_text(record.get("Department")),
        model=_clean_text(record.get("Model")),
    )

    pm_id = _clean_id(record.get("PM_ID"))
    event = None
    if pm_id is not None:
        event = PMRecord(
            pm_id=pm_id,
            pm_date=parse_pm_date(record.get("PM_Date")),
            remarks=_clean_text(record.get("PM_Remarks", record.get("Remarks"))),
            status=_clean_text(record.get("PM_Status", record.get("Status"))),
        )

    return MaintenanceRow(
        asset=asset,
        category=category,
        event=event,
        checklist_results=parse_checklist_results(record.get("checklist_results")),
    )


def parse_checklist_results(raw: Any) -> tuple[ChecklistResult, ...]:
    """Parse an embedded checklist array; anything that is not a list yields no results."""
    if not isinstance(raw, list):
        return ()

    results: List[ChecklistResult] = []
    for entry in raw:
        if isinstance(entry, ChecklistResult):
            results.append(entry)
            continue
        if not isinstance(entry, Mapping):
            continue
        checklist_id = _clean_id(entry.get("Checklist_ID"))
        if checklist_id is None:
            continue
        results.append(
            ChecklistResult(
                checklist_id=checklist_id,
                check_item=_clean_text(entry.get("Check_Item")),
                is_ok=coerce_flag(entry.get("Is_OK_bool")),
                remarks=_clean_text(entry.get("Remarks")),
            )
        )
    return tuple(results)


def parse_checklist_definitions(records: Iterable[Any]) -> List[ChecklistDefinition]:
    definitions: List[ChecklistDefinition] = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        checklist_id = _clean_id(record.get("Checklist_ID"))
        if checklist_id is None:
            continue
        check_item = _clean_text(record.get("Check_Item"))
        definitions.append(
            ChecklistDefinition(
                checklist_id=checklist_id,
                check_item=check_item,
                check_item_long=_clean_text(record.get("Check_item_Long")) or check_item,
                category_id=_clean_id(record.get("Category_ID")),
            )
        )
    return definitions


def parse_pm_date(value: Any) -> pd.Timestamp | None:
    """Parse a PM date into a naive timestamp; unparseable values become ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().lower() in _EMPTY_SENTINELS:
        return None
    parsed = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.tz_convert(None)


def coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_TOKENS
    if value is None:
        return False
    try:
        if pd.isna(value):
            return False
    except (TypeError, ValueError):
        pass
    return bool(value)


def _clean_id(value: Any) -> int | str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if pd.isna(value):
            return None
        return int(value) if value.is_integer() else str(value)
    text = str(value).strip()
    if text.lower() in _EMPTY_SENTINELS:
        return None
    return text


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    text = str(value).strip()
    return "" if text.lower() in _EMPTY_SENTINELS else text

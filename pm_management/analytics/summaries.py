"""Summary metrics for aggregated PM histories."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

import numpy as np
import pandas as pd

from ..models import CategoryGroup


@dataclass(slots=True)
class PMSummary:
    """Lightweight container for headline PM analytics."""

    total_assets: int
    assets_with_pm: int
    assets_without_pm: int
    total_events: int
    categories: int
    checks_evaluated: int
    failed_checks: int
    pass_rate: float
    latest_pm_date: pd.Timestamp | None
    events_by_status: Dict[str, int] = field(default_factory=dict)
    report_date: pd.Timestamp = field(default_factory=lambda: pd.Timestamp.now().normalize())


def build_summary(groups: Mapping[str, CategoryGroup]) -> PMSummary:
    """Generate headline KPIs from the aggregated category groups."""
    total_assets = 0
    assets_with_pm = 0
    total_events = 0
    checks = 0
    failed = 0
    latest: pd.Timestamp | None = None
    statuses: Counter[str] = Counter()

    for group in groups.values():
        for summary in group.assets.values():
            total_assets += 1
            total_events += summary.pm_count
            if summary.pm_count:
                assets_with_pm += 1
            if summary.latest_pm_date is not None and (latest is None or summary.latest_pm_date > latest):
                latest = summary.latest_pm_date
            for record in summary.all_pm_records:
                statuses[record.status or "Unknown"] += 1
            checks += len(summary.current_checklist_results)
            failed += sum(1 for result in summary.current_checklist_results if not result.is_ok)

    return PMSummary(
        total_assets=total_assets,
        assets_with_pm=assets_with_pm,
        assets_without_pm=total_assets - assets_with_pm,
        total_events=total_events,
        categories=len(groups),
        checks_evaluated=checks,
        failed_checks=failed,
        pass_rate=(checks - failed) / checks if checks else float("nan"),
        latest_pm_date=latest,
        events_by_status=dict(statuses),
    )


def summary_to_frame(groups: Mapping[str, CategoryGroup], summary: PMSummary) -> pd.DataFrame:
    """
    Convert summary metrics into a multi-column dataframe.

    Columns: Metric, All categories, then one column per category.
    """

    cohorts: Dict[str, PMSummary] = {"All categories": summary}
    for category, group in groups.items():
        cohorts[category] = build_summary({category: group})

    metrics: List[tuple[str, object]] = [
        ("Assets", lambda s: s.total_assets),
        ("Assets with PM history", lambda s: s.assets_with_pm),
        ("Assets never maintained", lambda s: s.assets_without_pm),
        ("PM events", lambda s: s.total_events),
        ("Failed checks (current)", lambda s: s.failed_checks),
        ("Pass rate (current)", lambda s: s.pass_rate),
        ("Latest PM", lambda s: s.latest_pm_date),
    ]

    rows: List[Dict[str, object]] = []
    for label, func in metrics:
        row = {"Metric": label}
        for cohort_label, cohort in cohorts.items():
            value = func(cohort)
            row[cohort_label] = _format_percent(value) if label.startswith("Pass rate") else _format_metric_value(value)
        rows.append(row)

    report_row = {"Metric": "Report generated", "All categories": summary.report_date.strftime("%Y-%m-%d")}
    for category in groups:
        report_row[category] = "—"
    rows.append(report_row)

    return pd.DataFrame(rows)


def _format_percent(value: float) -> str:
    if value is None or pd.isna(value):
        return "—"
    return f"{value * 100:.1f}%"


def _format_metric_value(value: object) -> str:
    if value is None or (isinstance(value, float) and (pd.isna(value))):
        return "—"
    if isinstance(value, pd.Timestamp):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (int, np.integer)):
        return f"{int(value):,}"
    return str(value)

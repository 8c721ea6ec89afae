"""Export helpers: bulk PM report requests and local pivot workbooks."""

from __future__ import annotations

import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping

import pandas as pd

from ..analytics.breakdowns import build_category_breakdown, build_event_history_table, build_failure_breakdown
from ..analytics.pivot import pivot_to_frame
from ..analytics.summaries import PMSummary, summary_to_frame
from ..client import ExportCollaborator
from ..errors import NoSelectionError
from ..models import CategoryGroup, ExportDocument, ExportRequest
from ..selection import SelectionState

try:  # Optional dependency for PDF output
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    _REPORTLAB_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    _REPORTLAB_AVAILABLE = False

logger = logging.getLogger(__name__)

_FILENAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")
_SHEET_UNSAFE = re.compile(r"[\[\]:*?/\\]")

SaveStep = Callable[[ExportDocument, Path], Path]


def build_export_request(selection: SelectionState) -> ExportRequest:
    """
    Flatten the selected events into one export request.

    Raises
    ------
    NoSelectionError
        When no event is selected.
    """

    if selection.total_selected_events() == 0:
        raise NoSelectionError()
    return ExportRequest(pm_ids=tuple(selection.flattened_pm_ids()))


def sanitize_for_filename(text: str | None) -> str:
    if not text:
        return "UNKNOWN"
    cleaned = _FILENAME_UNSAFE.sub("", re.sub(r"\s+", "_", text)).upper()[:50]
    return cleaned or "UNKNOWN"


def export_filename(customer: str | None, branch: str | None, *, when: datetime | None = None) -> str:
    stamp = (when or datetime.now()).strftime("%Y%m%d%H%M%S")
    return f"PM_Reports_{sanitize_for_filename(customer)}_{sanitize_for_filename(branch)}_{stamp}.pdf"


def save_export_document(document: ExportDocument, destination: Path) -> Path:
    """Write the document into ``destination`` (a directory) and return the file path."""
    destination.mkdir(parents=True, exist_ok=True)
    target = destination / Path(document.filename).name
    target.write_bytes(document.content)
    return target


class ExportRequester:
    """
    Sends the selected PM events to the export collaborator and saves the result.

    The selection is cleared only after the document has been saved; any failure
    leaves it untouched so the export can be retried.
    """

    def __init__(self, collaborator: ExportCollaborator, *, save: SaveStep = save_export_document) -> None:
        self.collaborator = collaborator
        self.save = save

    async def export(
        self,
        selection: SelectionState,
        *,
        destination: Path,
        customer: str | None = None,
        branch: str | None = None,
    ) -> Path:
        request = build_export_request(selection)
        logger.info("Requesting export of %d PM events", len(request.pm_ids))
        document = await self.collaborator.export_reports(
            request,
            fallback_filename=export_filename(customer, branch),
        )
        path = self.save(document, destination)
        logger.info("Saved PM export to %s", path)
        selection.clear()
        return path


def export_excel_report(
    groups: Mapping[str, CategoryGroup],
    summary: PMSummary,
    *,
    path: str | Path | None = None,
) -> bytes | Path:
    """
    Build an Excel workbook with the summary and one pivot sheet per category.

    If ``path`` is provided, the workbook is written to disk and the path is returned.
    Otherwise the bytes object is returned for download workflows.
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:  # type: ignore[arg-type]
        summary_to_frame(groups, summary).to_excel(writer, sheet_name="Summary", index=False)

        categories = build_category_breakdown(groups)
        if not categories.empty:
            categories.to_excel(writer, sheet_name="Categories", index=False)

        used_names = {"Summary", "Categories"}
        for category, group in groups.items():
            sheet = _sheet_name(category, used_names)
            pivot_to_frame(group).to_excel(writer, sheet_name=sheet, index=False)

        failures = build_failure_breakdown(groups)
        if not failures.empty:
            failures.to_excel(writer, sheet_name=_sheet_name("Top Failures", used_names), index=False)

        history = build_event_history_table(groups)
        if not history.empty:
            history.to_excel(writer, sheet_name=_sheet_name("PM History", used_names), index=False)

    buffer.seek(0)
    if path is None:
        return buffer.getvalue()

    target = Path(path)
    target.write_bytes(buffer.read())
    return target


def build_pdf_report(groups: Mapping[str, CategoryGroup], summary: PMSummary) -> bytes:
    """Create a lightweight PDF report of the headline metrics and each category pivot."""
    if not _REPORTLAB_AVAILABLE:  # pragma: no cover - optional dependency
        raise ImportError("ReportLab is required for PDF export. Install it via `pip install reportlab`.")

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=36,
        rightMargin=36,
        topMargin=42,
        bottomMargin=36,
    )
    styles = getSampleStyleSheet()
    story = [Paragraph("Preventive Maintenance Checklist Summary", styles["Title"]), Spacer(1, 12)]

    story.extend(
        [
            Paragraph("Headline Metrics", styles["Heading2"]),
            _table(summary_to_frame(groups, summary)),
            Spacer(1, 12),
        ]
    )

    failures = build_failure_breakdown(groups)
    if not failures.empty:
        story.extend([Paragraph("Most Failed Checks", styles["Heading2"]), _table(failures), Spacer(1, 12)])

    for category, group in groups.items():
        pivot = pivot_to_frame(group, symbols=False)
        if pivot.empty:
            continue
        pivot["Latest PM"] = pivot["Latest PM"].dt.strftime("%Y-%m-%d").fillna("—")
        story.extend([Paragraph(category, styles["Heading2"]), _table(pivot), Spacer(1, 12)])

    doc.build(story)
    buffer.seek(0)
    return buffer.getvalue()


def _sheet_name(category: str, used: set[str]) -> str:
    base = _SHEET_UNSAFE.sub("_", category).strip("'")[:31] or "Category"
    name = base
    suffix = 2
    while name.lower() in {item.lower() for item in used}:
        tail = f"_{suffix}"
        name = f"{base[: 31 - len(tail)]}{tail}"
        suffix += 1
    used.add(name)
    return name


def _table(df: pd.DataFrame) -> Table:
    values = [df.columns.tolist()] + df.astype(str).values.tolist()
    tbl = Table(values, hAlign="LEFT", repeatRows=1)
    tbl.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#002b55")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
            ]
        )
    )
    return tbl

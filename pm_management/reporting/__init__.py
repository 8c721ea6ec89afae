"""Reporting utilities for PM exports."""

from .exporters import (
    ExportRequester,
    build_export_request,
    build_pdf_report,
    export_excel_report,
    export_filename,
    save_export_document,
)

__all__ = [
    "ExportRequester",
    "build_export_request",
    "build_pdf_report",
    "export_excel_report",
    "export_filename",
    "save_export_document",
]

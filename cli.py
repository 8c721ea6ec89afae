"""Command-line entrypoint for building PM checklist pivots and requesting bulk exports."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pm_management import MaintenanceDashboard, load_rows
from pm_management.analytics import build_summary
from pm_management.client import PMApiClient
from pm_management.config import TIE_BREAK_CHOICES, load_settings
from pm_management.errors import PMError
from pm_management.reporting import ExportRequester, build_pdf_report, export_excel_report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Aggregate PM checklist results and build pivot reports.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--rows", type=Path, help="JSON snapshot of PM rows to aggregate.")
    source.add_argument("--customer", type=str, help="Customer reference number to fetch rows for.")
    parser.add_argument("--branch", type=str, default=None, help="Branch to fetch rows for (with --customer).")
    parser.add_argument("--api-url", type=str, default=None, help="Override PM_API_URL.")
    parser.add_argument("--search", type=str, default="", help="Only keep assets matching tag, name or serial.")
    parser.add_argument(
        "--tie-break",
        choices=TIE_BREAK_CHOICES,
        default=None,
        help="Which event wins when two share the latest PM date (defaults to PM_TIE_BREAK).",
    )
    parser.add_argument(
        "--excel",
        type=Path,
        default=Path("pm_checklist_pivot.xlsx"),
        help="Destination path for the Excel pivot workbook.",
    )
    parser.add_argument(
        "--pdf",
        type=Path,
        default=Path("pm_checklist_pivot.pdf"),
        help="Destination path for the PDF summary report.",
    )
    parser.add_argument(
        "--export-pm",
        type=str,
        nargs="+",
        default=None,
        metavar="ASSET_TAG:PM_ID",
        help="Request the bulk PM report for these events (requires --customer).",
    )
    args = parser.parse_args(argv)
    if args.customer and not args.branch:
        parser.error("--branch is required with --customer")
    if args.export_pm and not args.customer:
        parser.error("--export-pm requires --customer/--branch")
    return args


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    tie_break = args.tie_break or settings.tie_break

    async with PMApiClient(args.api_url or settings.api_url, timeout=settings.timeout) as client:
        dashboard = MaintenanceDashboard(client, tie_break=tie_break)
        if args.rows is not None:
            dashboard.set_rows(load_rows(args.rows))
        else:
            await dashboard.load(args.customer, args.branch)
            if dashboard.error:
                print(f"[ERROR] {dashboard.error}", file=sys.stderr)
                return 1

        if args.search:
            dashboard.apply_search(args.search)

        groups = dashboard.groups
        summary = build_summary(groups)
        export_excel_report(groups, summary, path=args.excel)

        try:
            pdf_bytes = build_pdf_report(groups, summary)
        except ImportError as exc:
            print(f"[WARN] PDF export skipped: {exc}")
        else:
            args.pdf.write_bytes(pdf_bytes)

        print(
            f"Pivot generated for {summary.total_assets} assets in {summary.categories} categories:\n"
            f" - Excel: {args.excel}\n - PDF: {args.pdf if args.pdf.exists() else 'skipped'}"
        )

        if args.export_pm:
            _select_events(dashboard, args.export_pm)
            saved = await ExportRequester(client).export(
                dashboard.selection,
                destination=settings.export_dir,
                customer=args.customer,
                branch=args.branch,
            )
            print(f" - PM reports: {saved}")
    return 0


def _select_events(dashboard: MaintenanceDashboard, specs: list[str]) -> None:
    by_tag = {summary.asset.asset_tag_id: summary for summary in dashboard.all_assets()}
    for spec in specs:
        tag, _, raw_pm_id = spec.rpartition(":")
        summary = by_tag.get(tag)
        if summary is None:
            raise PMError(f"Unknown asset tag {tag!r}")
        pm_id = next((pm_id for pm_id in summary.pm_ids if str(pm_id) == raw_pm_id), None)
        if pm_id is None:
            raise PMError(f"Asset {tag!r} has no PM event {raw_pm_id!r}")
        dashboard.selection.add_asset(summary)
        if not dashboard.selection.is_event_selected(summary.asset_id, pm_id):
            dashboard.selection.toggle_pm_event(summary.asset_id, pm_id)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        code = asyncio.run(_run(args))
    except PMError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()

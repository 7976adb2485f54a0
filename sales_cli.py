"""Command line access to sales history exports, summaries and invoices."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from invoice_renderer import InvoiceRenderer
from reporting.export_coordinator import ExportCoordinator, default_export_path
from reporting.filters import apply_filters, summarize
from reporting.flatten import flatten_sales
from reporting.formatting import format_currency
from reporting.invoice_pdf import print_invoice_pdf
from reporting.models import ExportFormat, ExportOptions, ExportRequest, FilterCriteria, SaleLineItem
from reporting.sales_api import SalesApiClient, SalesApiError, decode_sales_response
from settings import DEFAULT_SETTINGS_PATH, AppSettings, load_settings

logger = logging.getLogger(__name__)

LOAD_ERRORS = (OSError, ValueError, SalesApiError)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def _parse_format(value: str) -> ExportFormat:
    try:
        return ExportFormat.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _load_records(args: argparse.Namespace, settings: AppSettings) -> List[SaleLineItem]:
    if args.input:
        with open(args.input, "r", encoding="utf-8") as handle:
            payload = json.load(handle, parse_float=Decimal)
        sales = list(decode_sales_response(payload).items)
    else:
        client = SalesApiClient(args.api_url or settings.api.base_url, timeout=settings.api.timeout_seconds)
        sales = client.fetch_all_sales(page_size=settings.api.page_size, max_pages=settings.api.max_pages)
    return flatten_sales(sales)


def _criteria(args: argparse.Namespace, settings: AppSettings) -> FilterCriteria:
    end = args.end or date.today()
    start = args.start or end - timedelta(days=settings.export.lookback_days)
    return FilterCriteria(start_date=start, end_date=end, search_term=args.search or "")


def _filtered_records(args: argparse.Namespace, settings: AppSettings) -> Optional[List[SaleLineItem]]:
    try:
        records = _load_records(args, settings)
    except LOAD_ERRORS as exc:
        logger.exception("Unable to load sales")
        print(f"Error: {exc}", file=sys.stderr)
        return None
    return apply_filters(records, _criteria(args, settings))


def command_export(args: argparse.Namespace) -> int:
    settings = load_settings(args.settings)
    records = _filtered_records(args, settings)
    if records is None:
        return 1

    export_format = args.format or settings.export.default_format
    output = args.output or str(default_export_path(export_format, settings.export.directory_path))
    request = ExportRequest(
        format=export_format,
        options=ExportOptions(
            file_path=output,
            include_headers=not args.no_headers,
            include_summary=not args.no_summary,
            include_timestamp=not args.no_timestamp,
        ),
    )
    result = ExportCoordinator().export(request, records)
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    if result.substituted:
        print(f"Warning: {result.message}", file=sys.stderr)
    print(f"Exported {len(records)} record(s) to: {result.final_file_path}")
    return 0


def command_summary(args: argparse.Namespace) -> int:
    settings = load_settings(args.settings)
    records = _filtered_records(args, settings)
    if records is None:
        return 1

    summary = summarize(records)
    print(f"Transactions : {summary.count}")
    print(f"Revenue      : {format_currency(summary.total_revenue)}")
    print(f"Average      : {format_currency(summary.average_transaction)}")
    print(f"Date range   : {summary.date_range_text()}")
    return 0


def command_invoice(args: argparse.Namespace) -> int:
    settings = load_settings(args.settings)
    try:
        records = _load_records(args, settings)
    except LOAD_ERRORS as exc:
        logger.exception("Unable to load sales")
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    matches = [record for record in records if record.invoice_number == args.invoice]
    if args.product:
        needle = args.product.strip().lower()
        matches = [record for record in matches if needle in record.product_name.lower()]
    if not matches:
        print(f"Error: no line item found for invoice {args.invoice}", file=sys.stderr)
        return 1
    if len(matches) > 1:
        print(
            f"Invoice {args.invoice} has {len(matches)} line items; printing the first. "
            "Use --product to choose another.",
            file=sys.stderr,
        )
    record = matches[0]

    try:
        if args.png:
            warnings = InvoiceRenderer(settings.company).export_png(record, args.output)
        else:
            print_invoice_pdf(record, settings.company, args.output)
            warnings = []
    except Exception as exc:
        logger.exception("Unable to write invoice %s", args.invoice)
        print(f"Error: unable to write invoice: {exc}", file=sys.stderr)
        return 1
    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    print(f"Invoice written to: {args.output}")
    return 0


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", type=Path, help="Read sales from a saved JSON response instead of the API")
    parser.add_argument("--api-url", help="Override the sales service URL")


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="start", type=_parse_date, help="First day to include (YYYY-MM-DD)")
    parser.add_argument("--to", dest="end", type=_parse_date, help="Last day to include (YYYY-MM-DD)")
    parser.add_argument("--search", default="", help="Only include matching product or customer names")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SalesHistory reporting tool")
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_PATH, help="Path to settings.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Export filtered sales to CSV, XLSX or PDF")
    _add_source_arguments(export_parser)
    _add_filter_arguments(export_parser)
    export_parser.add_argument("--format", type=_parse_format, help="csv, xlsx or pdf")
    export_parser.add_argument("--output", help="Target file (defaults to the export folder)")
    export_parser.add_argument("--no-headers", action="store_true", help="Omit the header row")
    export_parser.add_argument("--no-summary", action="store_true", help="Omit the summary block")
    export_parser.add_argument("--no-timestamp", action="store_true", help="Omit the export timestamp")
    export_parser.set_defaults(func=command_export)

    summary_parser = subparsers.add_parser("summary", help="Print totals for the filtered sales")
    _add_source_arguments(summary_parser)
    _add_filter_arguments(summary_parser)
    summary_parser.set_defaults(func=command_summary)

    invoice_parser = subparsers.add_parser("invoice", help="Render one line item as an invoice page")
    _add_source_arguments(invoice_parser)
    invoice_parser.add_argument("--invoice", type=int, required=True, help="Invoice (sale) number")
    invoice_parser.add_argument("--product", help="Product name when the sale has several items")
    invoice_parser.add_argument("--output", required=True, help="Target PDF or PNG file")
    invoice_parser.add_argument("--png", action="store_true", help="Write a PNG preview instead of a PDF")
    invoice_parser.set_defaults(func=command_invoice)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

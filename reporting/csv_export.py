"""Delimited text export of sales line items."""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from typing import Callable, List, Sequence

from reporting.filters import summarize
from reporting.formatting import DATETIME_FORMAT, exported_on, format_amount, format_currency
from reporting.models import ExportOptions, SaleLineItem

logger = logging.getLogger(__name__)

CSV_HEADERS = (
    "Date",
    "Product",
    "Customer",
    "Quantity",
    "Unit Price",
    "Total Price",
    "Invoice #",
    "Payment Method",
    "Status",
)


def record_to_row(record: SaleLineItem) -> List[str]:
    return [
        record.date.strftime(DATETIME_FORMAT),
        record.product_name,
        record.customer_name,
        str(record.quantity),
        format_amount(record.unit_price),
        format_amount(record.total_price),
        str(record.invoice_number),
        record.payment_method,
        record.status,
    ]


class CsvExporter:
    """Write records as UTF-8, comma separated text."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def export(self, records: Sequence[SaleLineItem], options: ExportOptions) -> None:
        with open(options.file_path, "w", newline="", encoding="utf-8") as csv_file:
            writer = csv.writer(csv_file)
            if options.include_headers:
                writer.writerow(CSV_HEADERS)
            for record in records:
                writer.writerow(record_to_row(record))

            if options.include_summary:
                summary = summarize(records)
                writer.writerow([])
                writer.writerow(["SUMMARY"])
                writer.writerow([f"Total Transactions: {summary.count}"])
                writer.writerow([f"Total Revenue: {format_currency(summary.total_revenue)}"])
                writer.writerow([f"Average Transaction: {format_currency(summary.average_transaction)}"])
                writer.writerow([f"Date Range: {summary.date_range_text()}"])

            if options.include_timestamp:
                writer.writerow([])
                writer.writerow([exported_on(self._clock())])

        logger.info("Exported %d record(s) to CSV %s", len(records), options.file_path)


__all__ = ["CSV_HEADERS", "CsvExporter", "record_to_row"]

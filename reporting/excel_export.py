"""Styled spreadsheet export built on :mod:`openpyxl`."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from reporting.csv_export import CSV_HEADERS
from reporting.filters import summarize
from reporting.formatting import exported_on
from reporting.models import ExportOptions, SaleLineItem

logger = logging.getLogger(__name__)

SHEET_TITLE = "Sales History"
CURRENCY_FORMAT = "$#,##0.00"
DATE_NUMBER_FORMAT = "yyyy-mm-dd hh:mm"
HEADER_FILL = PatternFill(start_color="343A40", end_color="343A40", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
STATUS_FILLS: Dict[str, PatternFill] = {
    "completed": PatternFill(start_color="DCFCE7", end_color="DCFCE7", fill_type="solid"),
    "pending": PatternFill(start_color="FEF9C3", end_color="FEF9C3", fill_type="solid"),
    "cancelled": PatternFill(start_color="FEE2E2", end_color="FEE2E2", fill_type="solid"),
}
MIN_COLUMN_WIDTH = 12
MAX_COLUMN_WIDTH = 50

DATE_COLUMN = 1
CURRENCY_COLUMNS = (5, 6)
STATUS_COLUMN = 9


def status_fill(status: str) -> Optional[PatternFill]:
    """Return the background for ``status`` or ``None`` for unknown values."""

    return STATUS_FILLS.get((status or "").strip().lower())


def _display_length(cell) -> int:
    value = cell.value
    if isinstance(value, datetime):
        return len("yyyy-mm-dd hh:mm")
    if cell.number_format == CURRENCY_FORMAT and isinstance(value, (int, float, Decimal)):
        return len(f"${value:,.2f}")
    return len(str(value))


def _autosize_columns(sheet: Worksheet) -> None:
    """Size every column to its longest rendered value, summary and footer included."""

    for column_index in range(1, len(CSV_HEADERS) + 1):
        longest = 0
        for row_index in range(1, sheet.max_row + 1):
            cell = sheet.cell(row=row_index, column=column_index)
            if cell.value is None:
                continue
            length = _display_length(cell)
            longest = max(longest, length)
        width = min(MAX_COLUMN_WIDTH, max(MIN_COLUMN_WIDTH, longest + 2))
        sheet.column_dimensions[get_column_letter(column_index)].width = width


class SpreadsheetExporter:
    """Write records to a single ``Sales History`` worksheet."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def export(self, records: Sequence[SaleLineItem], options: ExportOptions) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE

        row = 1
        if options.include_headers:
            for column_index, header in enumerate(CSV_HEADERS, start=1):
                cell = sheet.cell(row=row, column=column_index, value=header)
                cell.font = HEADER_FONT
                cell.fill = HEADER_FILL
            row += 1

        for record in records:
            self._write_record(sheet, row, record)
            row += 1
        last_data_row = row - 1

        if options.include_summary:
            row = last_data_row + 2
            summary = summarize(records)
            label = sheet.cell(row=row, column=1, value="SUMMARY")
            label.font = Font(bold=True, size=14)
            row += 1
            entries = (
                ("Total Transactions", summary.count, None),
                ("Total Revenue", summary.total_revenue, CURRENCY_FORMAT),
                ("Average Transaction", summary.average_transaction, CURRENCY_FORMAT),
                ("Date Range", summary.date_range_text(), None),
            )
            for caption, value, number_format in entries:
                sheet.cell(row=row, column=1, value=caption).font = Font(bold=True)
                cell = sheet.cell(row=row, column=2, value=value)
                if number_format:
                    cell.number_format = number_format
                row += 1

        if options.include_timestamp:
            row += 1
            stamp = sheet.cell(row=row, column=1, value=exported_on(self._clock()))
            stamp.font = Font(italic=True)

        _autosize_columns(sheet)
        workbook.save(options.file_path)
        logger.info("Exported %d record(s) to spreadsheet %s", len(records), options.file_path)

    @staticmethod
    def _write_record(sheet: Worksheet, row: int, record: SaleLineItem) -> None:
        values = (
            record.date,
            record.product_name,
            record.customer_name,
            record.quantity,
            record.unit_price,
            record.total_price,
            record.invoice_number,
            record.payment_method,
            record.status,
        )
        for column_index, value in enumerate(values, start=1):
            cell = sheet.cell(row=row, column=column_index, value=value)
            if column_index == DATE_COLUMN:
                cell.number_format = DATE_NUMBER_FORMAT
            elif column_index in CURRENCY_COLUMNS:
                cell.number_format = CURRENCY_FORMAT

        fill = status_fill(record.status)
        if fill is not None:
            sheet.cell(row=row, column=STATUS_COLUMN).fill = fill


__all__ = ["CURRENCY_FORMAT", "SHEET_TITLE", "STATUS_FILLS", "SpreadsheetExporter", "status_fill"]

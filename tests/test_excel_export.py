from __future__ import annotations

import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from openpyxl import load_workbook

from reporting.csv_export import CSV_HEADERS
from reporting.excel_export import CURRENCY_FORMAT, MIN_COLUMN_WIDTH, SHEET_TITLE, SpreadsheetExporter
from reporting.models import ExportOptions, SaleLineItem

FIXED_NOW = datetime(2024, 2, 1, 9, 15, 30)


def _record(status: str, invoice: int = 1) -> SaleLineItem:
    return SaleLineItem(
        date=datetime(2024, 1, invoice, 11, 0),
        product_name="Widget",
        customer_name="Ada",
        quantity=2,
        unit_price=Decimal("12.50"),
        total_price=Decimal("25.00"),
        invoice_number=invoice,
        payment_method="Cash",
        status=status,
    )


def _export(tmp_path, records, **options):
    target = tmp_path / "sales.xlsx"
    SpreadsheetExporter(lambda: FIXED_NOW).export(records, ExportOptions(str(target), **options))
    return load_workbook(target)


def test_single_named_sheet_with_styled_header(tmp_path) -> None:
    workbook = _export(tmp_path, [_record("Completed")])

    assert workbook.sheetnames == [SHEET_TITLE]
    sheet = workbook[SHEET_TITLE]
    assert [cell.value for cell in sheet[1]] == list(CSV_HEADERS)
    header = sheet.cell(row=1, column=1)
    assert header.font.bold
    assert header.fill.fgColor.rgb.endswith("343A40")


def test_currency_columns_and_status_palette(tmp_path) -> None:
    records = [_record("Completed", 1), _record("pending", 2), _record("Cancelled", 3), _record("Refunded", 4)]
    sheet = _export(tmp_path, records, include_summary=False, include_timestamp=False)[SHEET_TITLE]

    assert sheet.cell(row=2, column=5).number_format == CURRENCY_FORMAT
    assert sheet.cell(row=2, column=6).number_format == CURRENCY_FORMAT
    assert float(sheet.cell(row=2, column=6).value) == 25.0

    fills = [sheet.cell(row=row, column=9).fill for row in range(2, 6)]
    assert fills[0].fgColor.rgb.endswith("DCFCE7")
    assert fills[1].fgColor.rgb.endswith("FEF9C3")
    assert fills[2].fgColor.rgb.endswith("FEE2E2")
    assert fills[3].fill_type is None


def test_summary_two_rows_below_data_and_italic_timestamp(tmp_path) -> None:
    records = [_record("Completed", 1), _record("Completed", 2)]
    sheet = _export(tmp_path, records)[SHEET_TITLE]

    last_data_row = 1 + len(records)
    label = sheet.cell(row=last_data_row + 2, column=1)
    assert label.value == "SUMMARY"
    assert label.font.bold
    assert sheet.cell(row=last_data_row + 3, column=2).value == 2
    revenue = sheet.cell(row=last_data_row + 4, column=2)
    assert float(revenue.value) == 50.0
    assert revenue.number_format == CURRENCY_FORMAT

    stamp_cells = [cell for cell in sheet["A"] if isinstance(cell.value, str) and cell.value.startswith("Exported on:")]
    assert len(stamp_cells) == 1
    assert stamp_cells[0].value == "Exported on: 2024-02-01 09:15:30"
    assert stamp_cells[0].font.italic


def test_columns_respect_minimum_width(tmp_path) -> None:
    sheet = _export(tmp_path, [_record("Completed")])[SHEET_TITLE]

    for letter in "ABCDEFGHI":
        assert sheet.column_dimensions[letter].width >= MIN_COLUMN_WIDTH


def test_without_headers_data_starts_on_first_row(tmp_path) -> None:
    sheet = _export(tmp_path, [_record("Completed")], include_headers=False, include_summary=False, include_timestamp=False)[SHEET_TITLE]

    assert sheet.cell(row=1, column=2).value == "Widget"
    assert sheet.max_row == 1


def test_summary_and_timestamp_text_widen_their_columns(tmp_path) -> None:
    records = [_record("Completed", 1), _record("Completed", 9)]
    sheet = _export(tmp_path, records)[SHEET_TITLE]

    date_range = "2024-01-01 to 2024-01-09"
    assert sheet.column_dimensions["B"].width >= len(date_range)
    assert sheet.column_dimensions["A"].width >= len("Exported on: 2024-02-01 09:15:30")


def test_header_text_in_currency_columns_is_sized_as_text(tmp_path) -> None:
    sheet = _export(tmp_path, [_record("Completed")], include_summary=False, include_timestamp=False)[SHEET_TITLE]

    assert sheet.cell(row=1, column=5).value == "Unit Price"
    assert sheet.column_dimensions["F"].width >= len("Total Price")

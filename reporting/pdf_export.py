"""Landscape PDF report of sales line items using reportlab platypus."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from reporting.errors import FormatEngineError
from reporting.filters import summarize
from reporting.formatting import DATETIME_FORMAT, exported_on, format_currency
from reporting.models import ExportOptions, SaleLineItem

logger = logging.getLogger(__name__)

REPORT_TITLE = "Sales History Report"
TABLE_HEADERS = ("Date", "Invoice #", "Product", "Customer", "Qty", "Unit Price", "Total", "Status")
COLUMN_WIDTHS = (90, 60, 190, 160, 45, 75, 80, 70)
PAGE_MARGIN = 36
HEADER_BACKGROUND = colors.HexColor("#343A40")
HEADER_TEXT = colors.HexColor("#F8F9FA")
ROW_STRIPE = colors.HexColor("#F3F4F6")
GRID_COLOR = colors.HexColor("#D1D5DB")
TABLE_FONT_SIZE = 8


def _styles():
    sample = getSampleStyleSheet()
    title = ParagraphStyle(
        "ReportTitle",
        parent=sample["Title"],
        fontName="Helvetica-Bold",
        fontSize=18,
        leading=22,
        alignment=TA_CENTER,
    )
    cell = ParagraphStyle(
        "ReportCell",
        parent=sample["Normal"],
        fontName="Helvetica",
        fontSize=TABLE_FONT_SIZE,
        leading=TABLE_FONT_SIZE + 2,
    )
    timestamp = ParagraphStyle(
        "ReportTimestamp",
        parent=sample["Normal"],
        fontName="Helvetica-Oblique",
        fontSize=8,
        alignment=TA_RIGHT,
        textColor=colors.HexColor("#6B7280"),
    )
    return title, cell, timestamp


def _record_row(record: SaleLineItem, cell_style: ParagraphStyle) -> List[object]:
    return [
        record.date.strftime(DATETIME_FORMAT),
        str(record.invoice_number),
        Paragraph(escape(record.product_name), cell_style),
        Paragraph(escape(record.customer_name), cell_style),
        str(record.quantity),
        format_currency(record.unit_price),
        format_currency(record.total_price),
        record.status,
    ]


def _records_table(records: Sequence[SaleLineItem], cell_style: ParagraphStyle) -> Table:
    data: List[List[object]] = [list(TABLE_HEADERS)]
    data.extend(_record_row(record, cell_style) for record in records)
    table = Table(data, colWidths=COLUMN_WIDTHS, repeatRows=1)
    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BACKGROUND),
        ("TEXTCOLOR", (0, 0), (-1, 0), HEADER_TEXT),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), TABLE_FONT_SIZE),
        ("ALIGN", (4, 1), (6, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ("GRID", (0, 0), (-1, -1), 0.25, GRID_COLOR),
    ]
    for row_index in range(2, len(data), 2):
        commands.append(("BACKGROUND", (0, row_index), (-1, row_index), ROW_STRIPE))
    table.setStyle(TableStyle(commands))
    return table


def _summary_table(records: Sequence[SaleLineItem]) -> Table:
    summary = summarize(records)
    rows = [
        ("Total Transactions:", str(summary.count)),
        ("Total Revenue:", format_currency(summary.total_revenue)),
        ("Average Transaction:", format_currency(summary.average_transaction)),
    ]
    table = Table(rows, colWidths=[140, 120], hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTNAME", (1, 0), (1, -1), "Helvetica"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("LEFTPADDING", (0, 0), (-1, -1), 3),
                ("RIGHTPADDING", (0, 0), (-1, -1), 3),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ]
        )
    )
    return table


class DocumentExporter:
    """Build a paginated landscape report.

    Any failure while composing or writing the document is raised as
    :class:`FormatEngineError`, which is what the export coordinator keys its
    spreadsheet fallback on.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def export(self, records: Sequence[SaleLineItem], options: ExportOptions) -> None:
        try:
            self._build(records, options)
        except FormatEngineError:
            raise
        except Exception as exc:
            raise FormatEngineError(f"Unable to generate PDF report: {exc}") from exc
        logger.info("Exported %d record(s) to PDF %s", len(records), options.file_path)

    def _build(self, records: Sequence[SaleLineItem], options: ExportOptions) -> None:
        title_style, cell_style, timestamp_style = _styles()
        document = SimpleDocTemplate(
            options.file_path,
            pagesize=landscape(A4),
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title=REPORT_TITLE,
        )
        elements: List[object] = [
            Paragraph(REPORT_TITLE, title_style),
            Spacer(1, 12),
            _records_table(records, cell_style),
        ]
        if options.include_summary:
            elements.append(Spacer(1, 14))
            elements.append(_summary_table(records))
        if options.include_timestamp:
            elements.append(Spacer(1, 10))
            elements.append(Paragraph(escape(exported_on(self._clock())), timestamp_style))
        document.build(elements)


__all__ = ["COLUMN_WIDTHS", "DocumentExporter", "REPORT_TITLE", "TABLE_HEADERS"]

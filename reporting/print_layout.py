"""Coordinate based layout of a single printed invoice page.

Everything here is expressed in page units of 1/100 inch on a portrait
Letter page (850 x 1100). The engine never draws directly: it issues
rectangles, lines and text to a :class:`DrawingSurface`, and each surface
scales the units to its own device (PDF points, raster pixels).

Text coordinates always name the top-left corner of the text box. Right
aligned text is positioned by measuring its rendered width on the surface
and subtracting it from the right edge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ContextManager, Dict, Optional, Protocol, Tuple

from reporting.formatting import DISPLAY_DATE_FORMAT, format_currency, format_invoice_number, format_timestamp
from reporting.models import CompanyInfo, SaleLineItem

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

WHITE: Color = (255, 255, 255)
PRIMARY: Color = (59, 130, 246)
TEXT_PRIMARY: Color = (31, 41, 55)
TEXT_SECONDARY: Color = (107, 114, 128)
BORDER: Color = (229, 231, 235)
SHADE: Color = (248, 250, 252)
TABLE_HEADER: Color = (52, 58, 64)
STATUS_COLORS: Dict[str, Color] = {
    "completed": (22, 163, 74),
    "pending": (161, 98, 7),
    "cancelled": (185, 28, 28),
}

LEFT = "left"
RIGHT = "right"
CENTER = "center"


@dataclass(frozen=True)
class FontSpec:
    """A font request in points; surfaces map it to a concrete face."""

    size: float
    bold: bool = False
    italic: bool = False
    family: str = "Helvetica"


@dataclass(frozen=True)
class ColumnSpec:
    title: str
    offset: float
    width: float
    align: str = LEFT


@dataclass(frozen=True)
class InvoiceLayout:
    """Declarative description of the invoice page.

    ``blocks`` is the vertical stack drawn top to bottom with the running
    cursor. The footer is not part of the stack: it is pinned
    ``footer_offset`` units above the bottom edge.
    """

    page_width: float = 850
    page_height: float = 1100
    margin: float = 60
    header_height: float = 100
    section_rule_end_x: float = 400
    section_gap: float = 30
    section_title_height: float = 25
    box_padding: float = 15
    bill_to_height: float = 70
    table_header_height: float = 30
    table_row_height: float = 35
    payment_height: float = 60
    footer_offset: float = 80
    columns: Tuple[ColumnSpec, ...] = (
        ColumnSpec("Product", 15, 280),
        ColumnSpec("Qty", 300, 70),
        ColumnSpec("Unit Price", 380, 110),
        ColumnSpec("Total", 500, 120),
    )
    blocks: Tuple[str, ...] = ("header", "title", "dates", "bill_to", "products", "payment")

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def right_edge(self) -> float:
        return self.page_width - self.margin

    @property
    def footer_y(self) -> float:
        return self.page_height - self.footer_offset


class DrawingSurface(Protocol):
    def page(self) -> ContextManager[None]:
        """Acquire per-page resources and release them when the page is done."""

    def fill_rect(self, x: float, y: float, width: float, height: float, color: Color) -> None: ...

    def stroke_rect(
        self, x: float, y: float, width: float, height: float, color: Color, line_width: float = 1
    ) -> None: ...

    def draw_line(
        self, x1: float, y1: float, x2: float, y2: float, color: Color, line_width: float = 1
    ) -> None: ...

    def draw_text(self, text: str, x: float, y: float, font: FontSpec, color: Color) -> None: ...

    def measure_text(self, text: str, font: FontSpec) -> float: ...


TITLE_FONT = FontSpec(24, bold=True)
COMPANY_FONT = FontSpec(20, bold=True)
TAGLINE_FONT = FontSpec(10)
INVOICE_NUMBER_FONT = FontSpec(14, bold=True)
BODY_FONT = FontSpec(10)
BODY_BOLD_FONT = FontSpec(10, bold=True)
SECTION_FONT = FontSpec(11, bold=True)
STATUS_FONT = FontSpec(12, bold=True)
CUSTOMER_FONT = FontSpec(12, bold=True)
PAYMENT_FONT = FontSpec(11)
TOTAL_FONT = FontSpec(14, bold=True)
FOOTER_FONT = FontSpec(8, italic=True)
THANKS_FONT = FontSpec(10, italic=True)


@dataclass
class _PageState:
    surface: DrawingSurface
    record: SaleLineItem
    generated_at: datetime
    cursor: float = 0.0


class PrintLayoutEngine:
    """Render one :class:`SaleLineItem` as one invoice page."""

    def __init__(
        self,
        company: CompanyInfo,
        layout: Optional[InvoiceLayout] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.company = company
        self.layout = layout or InvoiceLayout()
        self._clock = clock
        self._blocks: Dict[str, Callable[[_PageState], None]] = {
            "header": self._draw_header,
            "title": self._draw_title,
            "dates": self._draw_dates,
            "bill_to": self._draw_bill_to,
            "products": self._draw_products,
            "payment": self._draw_payment,
        }

    def render_page(self, surface: DrawingSurface, record: SaleLineItem) -> float:
        """Draw the full page and return the final cursor position."""

        state = _PageState(surface=surface, record=record, generated_at=self._clock())
        with surface.page():
            for name in self.layout.blocks:
                try:
                    block = self._blocks[name]
                except KeyError:
                    raise ValueError(f"Unknown invoice block: {name!r}") from None
                block(state)
            self._draw_footer(state)
        logger.debug("Rendered invoice %s for %s", record.invoice_number, record.product_name)
        return state.cursor

    # region helpers
    def _draw_right(self, state: _PageState, text: str, right: float, y: float, font: FontSpec, color: Color) -> float:
        width = state.surface.measure_text(text, font)
        x = right - width
        state.surface.draw_text(text, x, y, font, color)
        return x

    def _draw_section_header(self, state: _PageState, title: str) -> None:
        layout = self.layout
        surface = state.surface
        surface.draw_text(title, layout.margin, state.cursor, SECTION_FONT, TEXT_PRIMARY)
        text_end = layout.margin + surface.measure_text(title, SECTION_FONT)
        rule_y = state.cursor + layout.section_title_height / 2
        surface.draw_line(text_end + 10, rule_y, layout.section_rule_end_x, rule_y, BORDER, 1)
        state.cursor += layout.section_title_height

    def _draw_column_text(self, state: _PageState, column: ColumnSpec, text: str, y: float, font: FontSpec, color: Color) -> None:
        left = self.layout.margin + column.offset
        if column.align == RIGHT:
            self._draw_right(state, text, left + column.width, y, font, color)
            return
        if column.align == CENTER:
            width = state.surface.measure_text(text, font)
            state.surface.draw_text(text, left + (column.width - width) / 2, y, font, color)
            return
        state.surface.draw_text(text, left, y, font, color)

    # endregion

    def _draw_header(self, state: _PageState) -> None:
        layout = self.layout
        surface = state.surface
        surface.fill_rect(0, 0, layout.page_width, layout.header_height, PRIMARY)
        surface.draw_text(self.company.name, layout.margin, 25, COMPANY_FONT, WHITE)
        if self.company.tagline:
            surface.draw_text(self.company.tagline, layout.margin, 62, TAGLINE_FONT, WHITE)
        state.cursor = layout.header_height + layout.section_gap

    def _draw_title(self, state: _PageState) -> None:
        layout = self.layout
        state.surface.draw_text("INVOICE", layout.margin, state.cursor, TITLE_FONT, TEXT_PRIMARY)
        number = format_invoice_number(state.record.invoice_number)
        self._draw_right(state, number, layout.right_edge, state.cursor + 8, INVOICE_NUMBER_FONT, TEXT_SECONDARY)
        state.cursor += 50

    def _draw_dates(self, state: _PageState) -> None:
        layout = self.layout
        surface = state.surface
        sale_date = state.record.date
        surface.draw_text(f"Date: {sale_date.strftime(DISPLAY_DATE_FORMAT)}", layout.margin, state.cursor, BODY_FONT, TEXT_SECONDARY)
        surface.draw_text(f"Time: {sale_date.strftime('%I:%M %p')}", layout.margin, state.cursor + 18, BODY_FONT, TEXT_SECONDARY)
        status = (state.record.status or "").strip() or "Unknown"
        color = STATUS_COLORS.get(status.lower(), TEXT_SECONDARY)
        self._draw_right(state, status.upper(), layout.right_edge, state.cursor + 4, STATUS_FONT, color)
        state.cursor += 50

    def _draw_bill_to(self, state: _PageState) -> None:
        layout = self.layout
        surface = state.surface
        self._draw_section_header(state, "BILL TO")
        top = state.cursor
        surface.fill_rect(layout.margin, top, layout.content_width, layout.bill_to_height, SHADE)
        surface.stroke_rect(layout.margin, top, layout.content_width, layout.bill_to_height, BORDER)
        text_x = layout.margin + layout.box_padding
        surface.draw_text(state.record.customer_name or "Walk-in Customer", text_x, top + 12, CUSTOMER_FONT, TEXT_PRIMARY)
        purchase = state.record.date.strftime(DISPLAY_DATE_FORMAT)
        surface.draw_text(f"Purchase Date: {purchase}", text_x, top + 40, BODY_FONT, TEXT_SECONDARY)
        state.cursor = top + layout.bill_to_height + layout.section_gap

    def _draw_products(self, state: _PageState) -> None:
        layout = self.layout
        surface = state.surface
        record = state.record
        self._draw_section_header(state, "PRODUCT DETAILS")

        top = state.cursor
        surface.fill_rect(layout.margin, top, layout.content_width, layout.table_header_height, TABLE_HEADER)
        for column in layout.columns:
            self._draw_column_text(state, column, column.title, top + 8, BODY_BOLD_FONT, WHITE)
        top += layout.table_header_height

        surface.stroke_rect(layout.margin, top, layout.content_width, layout.table_row_height, BORDER)
        values = (
            record.product_name,
            str(record.quantity),
            format_currency(record.unit_price),
            format_currency(record.total_price),
        )
        for column, value in zip(layout.columns, values):
            self._draw_column_text(state, column, value, top + 10, BODY_FONT, TEXT_PRIMARY)
        state.cursor = top + layout.table_row_height + layout.section_gap

    def _draw_payment(self, state: _PageState) -> None:
        layout = self.layout
        surface = state.surface
        self._draw_section_header(state, "PAYMENT INFORMATION")
        top = state.cursor
        surface.fill_rect(layout.margin, top, layout.content_width, layout.payment_height, SHADE)
        surface.stroke_rect(layout.margin, top, layout.content_width, layout.payment_height, BORDER)
        method = state.record.payment_method or "N/A"
        surface.draw_text(f"Payment Method: {method}", layout.margin + layout.box_padding, top + 20, PAYMENT_FONT, TEXT_PRIMARY)
        total = f"TOTAL: {format_currency(state.record.total_price)}"
        self._draw_right(state, total, layout.right_edge - layout.box_padding, top + 18, TOTAL_FONT, TEXT_PRIMARY)
        state.cursor = top + layout.payment_height

    def _draw_footer(self, state: _PageState) -> None:
        layout = self.layout
        surface = state.surface
        y = layout.footer_y
        surface.draw_line(layout.margin, y, layout.right_edge, y, BORDER, 1)
        generated = format_timestamp(state.generated_at)
        surface.draw_text(f"Generated on: {generated}", layout.margin, y + 10, FOOTER_FONT, TEXT_SECONDARY)
        thanks = "Thank you for your business!"
        width = surface.measure_text(thanks, THANKS_FONT)
        surface.draw_text(thanks, (layout.page_width - width) / 2, y + 30, THANKS_FONT, TEXT_PRIMARY)


__all__ = [
    "ColumnSpec",
    "DrawingSurface",
    "FontSpec",
    "InvoiceLayout",
    "PrintLayoutEngine",
    "STATUS_COLORS",
]

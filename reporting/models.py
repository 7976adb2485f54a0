"""Typed records shared by the sales history loader, filters and exporters."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Tuple

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class SaleItem:
    """One product/quantity/price entry inside a remote sale."""

    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class Sale:
    """A sale transaction as returned by the remote sales API."""

    id: int
    date: datetime
    customer_name: str
    payment_method: str
    status: str
    items: Tuple[SaleItem, ...] = ()


@dataclass(frozen=True)
class SalesPage:
    """One page of sales plus the paging metadata sent by the API."""

    items: Tuple[Sale, ...]
    page_number: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return -(-self.total_count // self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages


@dataclass(frozen=True)
class SaleLineItem:
    """A flat, read-only record describing one item of one sale."""

    date: datetime
    product_name: str
    customer_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    invoice_number: int
    payment_method: str
    status: str


@dataclass(frozen=True)
class FilterCriteria:
    start_date: date
    end_date: date
    search_term: str = ""

    @classmethod
    def last_days(cls, days: int, today: Optional[date] = None, search_term: str = "") -> "FilterCriteria":
        """Return the rolling window ending ``today`` used as the default filter."""

        today = today or date.today()
        return cls(start_date=today - timedelta(days=days), end_date=today, search_term=search_term)


@dataclass(frozen=True)
class FilterSummary:
    count: int
    total_revenue: Decimal
    average_transaction: Decimal
    first_date: Optional[datetime] = None
    last_date: Optional[datetime] = None

    def date_range_text(self, fmt: str = "%Y-%m-%d") -> str:
        if self.first_date is None or self.last_date is None:
            return "N/A"
        return f"{self.first_date.strftime(fmt)} to {self.last_date.strftime(fmt)}"


class ExportFormat(enum.Enum):
    CSV = "csv"
    SPREADSHEET = "xlsx"
    DOCUMENT = "pdf"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @classmethod
    def parse(cls, value: str) -> "ExportFormat":
        """Accept ``csv``/``xlsx``/``pdf`` as well as the enum names."""

        text = (value or "").strip().lower().lstrip(".")
        aliases = {
            "csv": cls.CSV,
            "xlsx": cls.SPREADSHEET,
            "excel": cls.SPREADSHEET,
            "spreadsheet": cls.SPREADSHEET,
            "pdf": cls.DOCUMENT,
            "document": cls.DOCUMENT,
        }
        try:
            return aliases[text]
        except KeyError:
            raise ValueError(f"Unsupported export format: {value!r}") from None


@dataclass(frozen=True)
class ExportOptions:
    file_path: str
    include_headers: bool = True
    include_summary: bool = True
    include_timestamp: bool = True


@dataclass(frozen=True)
class ExportRequest:
    format: ExportFormat
    options: ExportOptions


@dataclass(frozen=True)
class ExportResult:
    success: bool
    final_file_path: str = ""
    substituted: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class CompanyInfo:
    name: str
    tagline: str = ""


__all__ = [
    "CENT",
    "CompanyInfo",
    "ExportFormat",
    "ExportOptions",
    "ExportRequest",
    "ExportResult",
    "FilterCriteria",
    "FilterSummary",
    "Sale",
    "SaleItem",
    "SaleLineItem",
    "SalesPage",
    "ZERO",
]

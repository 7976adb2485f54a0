"""Text formatting shared by the exporters and the invoice layout."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from reporting.models import CENT

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DISPLAY_DATE_FORMAT = "%b %d, %Y"


def money(value: Decimal) -> Decimal:
    """Round ``value`` to cents using commercial rounding."""

    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Return ``value`` with exactly two decimals and no currency symbol."""

    return f"{money(value):.2f}"


def format_currency(value: Decimal) -> str:
    amount = money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_invoice_number(invoice_number: int) -> str:
    return f"INV-{invoice_number:06d}"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def exported_on(moment: datetime) -> str:
    return f"Exported on: {format_timestamp(moment)}"


__all__ = [
    "DATE_FORMAT",
    "DATETIME_FORMAT",
    "DISPLAY_DATE_FORMAT",
    "TIMESTAMP_FORMAT",
    "exported_on",
    "format_amount",
    "format_currency",
    "format_invoice_number",
    "format_timestamp",
    "money",
]

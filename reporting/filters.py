"""Date range and text filtering for flattened sales records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Sequence

from reporting.formatting import money
from reporting.models import ZERO, FilterCriteria, FilterSummary, SaleLineItem


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _matches_search(record: SaleLineItem, needle: str) -> bool:
    return needle in record.product_name.lower() or needle in record.customer_name.lower()


def apply_filters(records: Iterable[SaleLineItem], criteria: FilterCriteria) -> List[SaleLineItem]:
    """Return the records matching ``criteria`` ordered newest first.

    The date bounds are inclusive and compared on the calendar date only. When
    ``end_date`` precedes ``start_date`` nothing can match and an empty list is
    returned. A blank search term disables the text filter.
    """

    start = _as_date(criteria.start_date)
    end = _as_date(criteria.end_date)
    if end < start:
        return []

    needle = (criteria.search_term or "").strip().lower()
    filtered = [record for record in records if start <= record.date.date() <= end]
    if needle:
        filtered = [record for record in filtered if _matches_search(record, needle)]

    filtered.sort(key=lambda record: record.date, reverse=True)
    return filtered


def total_revenue(records: Iterable[SaleLineItem]) -> Decimal:
    return sum((record.total_price for record in records), ZERO)


def summarize(records: Sequence[SaleLineItem]) -> FilterSummary:
    """Aggregate the figures shown under the grid and in export summaries."""

    count = len(records)
    total = total_revenue(records)
    average = money(total / count) if count else ZERO
    if not records:
        return FilterSummary(count=0, total_revenue=total, average_transaction=average)
    dates = [record.date for record in records]
    return FilterSummary(
        count=count,
        total_revenue=total,
        average_transaction=average,
        first_date=min(dates),
        last_date=max(dates),
    )


__all__ = ["apply_filters", "summarize", "total_revenue"]

"""Expand nested sales into per-item line records."""

from __future__ import annotations

import logging
from typing import Iterable, List

from reporting.models import Sale, SaleLineItem

logger = logging.getLogger(__name__)


def flatten_sale(sale: Sale) -> List[SaleLineItem]:
    """Return one :class:`SaleLineItem` for each item of ``sale``.

    Sale level fields are copied onto every row and ``total_price`` is taken
    from the item's subtotal as delivered by the API. A sale without items
    yields an empty list.
    """

    return [
        SaleLineItem(
            date=sale.date,
            product_name=item.product_name,
            customer_name=sale.customer_name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.subtotal,
            invoice_number=sale.id,
            payment_method=sale.payment_method,
            status=sale.status,
        )
        for item in sale.items
    ]


def flatten_sales(sales: Iterable[Sale]) -> List[SaleLineItem]:
    records: List[SaleLineItem] = []
    empty_sales = 0
    for sale in sales:
        rows = flatten_sale(sale)
        if not rows:
            empty_sales += 1
        records.extend(rows)
    if empty_sales:
        logger.debug("Skipped %d sale(s) without line items", empty_sales)
    return records


__all__ = ["flatten_sale", "flatten_sales"]

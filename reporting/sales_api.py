"""Client for the remote sales service.

The service answers every request with an envelope of the form
``{"success": bool, "data": {...}, "message": str}``. This module is the only
place where those loosely typed payloads are inspected: everything it returns
is a frozen dataclass from :mod:`reporting.models`, and every failure surfaces
as a subclass of :class:`SalesApiError` so the rest of the application never
has to probe dictionaries or guess at key casing.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from reporting.models import Sale, SaleItem, SalesPage

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 15.0
USER_AGENT = "SalesHistory-Client"

_FRACTION_RE = re.compile(r"\.(\d{1,6})\d*")


class SalesApiError(RuntimeError):
    """Base error raised for sales service failures."""


class SalesApiConnectionError(SalesApiError):
    """Raised when the sales service cannot be reached."""


class SalesApiResponseError(SalesApiError):
    """Raised when the service answers with a payload that cannot be decoded."""


def _lookup(payload: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Return ``payload[key]`` matching the key case-insensitively."""

    if key in payload:
        return payload[key]
    lowered = key.lower()
    for candidate, value in payload.items():
        if isinstance(candidate, str) and candidate.lower() == lowered:
            return value
    return default


def _require_mapping(value: Any, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SalesApiResponseError(f"Expected an object for {context}, got {type(value).__name__}")
    return value


def _parse_decimal(value: Any, context: str) -> Decimal:
    if isinstance(value, bool):
        raise SalesApiResponseError(f"Invalid amount for {context}: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise SalesApiResponseError(f"Invalid amount for {context}: {value!r}") from exc


def _parse_int(value: Any, context: str) -> int:
    if isinstance(value, bool):
        raise SalesApiResponseError(f"Invalid integer for {context}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SalesApiResponseError(f"Invalid integer for {context}: {value!r}") from exc


def parse_timestamp(value: Any) -> datetime:
    """Parse the ISO-8601 timestamps produced by the service.

    Fractions are padded or truncated to microseconds and timezone aware values
    are converted to naive local time so that all records compare cleanly.
    """

    if not isinstance(value, str) or not value.strip():
        raise SalesApiResponseError(f"Invalid sale date: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda match: "." + match.group(1).ljust(6, "0"), text, count=1)
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as exc:
        raise SalesApiResponseError(f"Invalid sale date: {value!r}") from exc
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def decode_sale_item(payload: Any) -> SaleItem:
    data = _require_mapping(payload, "sale item")
    quantity = _parse_int(_lookup(data, "quantity", 0), "quantity")
    unit_price = _parse_decimal(_lookup(data, "unitPrice", 0), "unitPrice")
    raw_subtotal = _lookup(data, "subtotal")
    if raw_subtotal is None:
        subtotal = unit_price * quantity
    else:
        subtotal = _parse_decimal(raw_subtotal, "subtotal")
    return SaleItem(
        product_name=str(_lookup(data, "productName") or ""),
        quantity=quantity,
        unit_price=unit_price,
        subtotal=subtotal,
    )


def decode_sale(payload: Any) -> Sale:
    data = _require_mapping(payload, "sale")
    raw_items = _lookup(data, "items") or []
    if not isinstance(raw_items, list):
        raise SalesApiResponseError("Sale items must be a list")
    return Sale(
        id=_parse_int(_lookup(data, "id"), "id"),
        date=parse_timestamp(_lookup(data, "date")),
        customer_name=str(_lookup(data, "customerName") or ""),
        payment_method=str(_lookup(data, "paymentMethod") or ""),
        status=str(_lookup(data, "status") or ""),
        items=tuple(decode_sale_item(item) for item in raw_items),
    )


def decode_sales_response(payload: Any) -> SalesPage:
    """Decode the ``{Success, Data: {Items: [...]}, Message}`` envelope."""

    envelope = _require_mapping(payload, "response")
    if not _lookup(envelope, "success", False):
        message = str(_lookup(envelope, "message") or "The sales service reported a failure.")
        raise SalesApiError(message)

    data = _lookup(envelope, "data")
    if data is None:
        return SalesPage(items=(), page_number=1, page_size=0, total_count=0)
    data = _require_mapping(data, "data")

    raw_items = _lookup(data, "items") or []
    if not isinstance(raw_items, list):
        raise SalesApiResponseError("Response items must be a list")
    sales = tuple(decode_sale(item) for item in raw_items)
    page_size = _parse_int(_lookup(data, "pageSize", len(sales)), "pageSize")
    total_count = _parse_int(_lookup(data, "totalCount", len(sales)), "totalCount")
    return SalesPage(
        items=sales,
        page_number=_parse_int(_lookup(data, "pageNumber", 1), "pageNumber"),
        page_size=page_size,
        total_count=total_count,
    )


class SalesApiClient:
    """Small HTTP client for ``GET /sales`` built on :mod:`urllib.request`."""

    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not base_url:
            raise SalesApiError("No sales service URL is configured.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_url(self, page_number: int, page_size: int) -> str:
        query = urllib.parse.urlencode({"pageNumber": page_number, "pageSize": page_size})
        return f"{self.base_url}/sales?{query}"

    def _get_json(self, url: str) -> Any:
        request = urllib.request.Request(
            url,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:  # nosec: B310 - configured URL
                body = response.read()
        except urllib.error.HTTPError as exc:
            raise SalesApiError(self._describe_http_error(exc)) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise SalesApiConnectionError(f"Unable to reach the sales service: {exc}") from exc

        try:
            return json.loads(body.decode("utf-8"), parse_float=Decimal)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SalesApiResponseError(f"Error processing server response: {exc}") from exc

    @staticmethod
    def _describe_http_error(exc: urllib.error.HTTPError) -> str:
        fallback = f"Request failed with status {exc.code}: {exc.reason}"
        try:
            payload = json.loads(exc.read().decode("utf-8"))
        except (OSError, UnicodeDecodeError, ValueError):
            return fallback
        if isinstance(payload, Mapping):
            message = _lookup(payload, "message")
            if message:
                return str(message)
        return fallback

    def fetch_page(self, page_number: int = 1, page_size: int = MAX_PAGE_SIZE) -> SalesPage:
        page_size = max(1, min(MAX_PAGE_SIZE, int(page_size)))
        url = self._build_url(max(1, int(page_number)), page_size)
        logger.debug("Requesting %s", url)
        return decode_sales_response(self._get_json(url))

    def fetch_all_sales(self, page_size: int = MAX_PAGE_SIZE, max_pages: Optional[int] = None) -> List[Sale]:
        """Fetch every page of sales, stopping early after ``max_pages``."""

        sales: List[Sale] = []
        page_number = 1
        while True:
            page = self.fetch_page(page_number, page_size)
            sales.extend(page.items)
            if not page.has_next_page or not page.items:
                break
            if max_pages is not None and page_number >= max_pages:
                logger.warning("Stopped loading sales after %d page(s)", page_number)
                break
            page_number += 1
        logger.info("Loaded %d sale(s) from %s", len(sales), self.base_url)
        return sales


__all__ = [
    "MAX_PAGE_SIZE",
    "SalesApiClient",
    "SalesApiConnectionError",
    "SalesApiError",
    "SalesApiResponseError",
    "decode_sale",
    "decode_sale_item",
    "decode_sales_response",
    "parse_timestamp",
]

from __future__ import annotations

import io
import json
import sys
import urllib.error
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from reporting import sales_api
from reporting.sales_api import (
    SalesApiClient,
    SalesApiConnectionError,
    SalesApiError,
    SalesApiResponseError,
    decode_sales_response,
    parse_timestamp,
)


def _sale_payload(sale_id: int, items=None, **overrides):
    payload = {
        "id": sale_id,
        "date": "2024-01-15T10:30:00",
        "customerName": "Ada",
        "paymentMethod": "Cash",
        "status": "Completed",
        "items": items if items is not None else [
            {"productName": "Widget", "quantity": 2, "unitPrice": 12.5, "subtotal": 25.0},
        ],
    }
    payload.update(overrides)
    return payload


def _envelope(items, page_number=1, page_size=2, total_count=None):
    return {
        "success": True,
        "data": {
            "items": items,
            "pageNumber": page_number,
            "pageSize": page_size,
            "totalCount": len(items) if total_count is None else total_count,
        },
        "message": None,
    }


def test_decode_accepts_pascal_case_keys() -> None:
    payload = {
        "Success": True,
        "Data": {
            "Items": [
                {
                    "Id": 7,
                    "Date": "2024-02-01T08:00:00",
                    "CustomerName": "Grace",
                    "PaymentMethod": "Card",
                    "Status": "Pending",
                    "Items": [{"ProductName": "Gadget", "Quantity": 1, "UnitPrice": "9.99", "Subtotal": "9.99"}],
                }
            ],
            "PageNumber": 1,
            "PageSize": 100,
            "TotalCount": 1,
        },
    }

    page = decode_sales_response(payload)

    (sale,) = page.items
    assert sale.id == 7
    assert sale.customer_name == "Grace"
    assert sale.items[0].unit_price == Decimal("9.99")
    assert not page.has_next_page


def test_missing_subtotal_is_derived_from_quantity_and_price() -> None:
    payload = _envelope([_sale_payload(1, items=[{"productName": "Bolt", "quantity": 4, "unitPrice": "0.25"}])])

    page = decode_sales_response(payload)

    assert page.items[0].items[0].subtotal == Decimal("1.00")


def test_unsuccessful_envelope_raises_with_server_message() -> None:
    with pytest.raises(SalesApiError, match="Database offline"):
        decode_sales_response({"success": False, "data": None, "message": "Database offline"})


def test_null_data_is_an_empty_page() -> None:
    page = decode_sales_response({"success": True, "data": None})

    assert page.items == ()
    assert not page.has_next_page


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"success": True, "data": {"items": {"id": 1}}},
        {"success": True, "data": {"items": [_sale_payload(1, date="yesterday")]}},
        {"success": True, "data": {"items": [_sale_payload(1, items=[{"quantity": "two"}])]}},
    ],
)
def test_malformed_payloads_raise_response_errors(payload) -> None:
    with pytest.raises(SalesApiResponseError):
        decode_sales_response(payload)


def test_parse_timestamp_handles_utc_and_long_fractions() -> None:
    naive = parse_timestamp("2024-01-15T10:30:00.1234567")
    assert naive == datetime(2024, 1, 15, 10, 30, 0, 123456)

    aware = parse_timestamp("2024-01-15T10:30:00Z")
    assert aware.tzinfo is None


def test_fetch_all_sales_follows_pages(monkeypatch) -> None:
    client = SalesApiClient("http://sales.local/api/")
    requested = []
    pages = {
        1: _envelope([_sale_payload(1), _sale_payload(2)], page_number=1, total_count=5),
        2: _envelope([_sale_payload(3), _sale_payload(4)], page_number=2, total_count=5),
        3: _envelope([_sale_payload(5)], page_number=3, total_count=5),
    }

    def fake_get_json(url):
        requested.append(url)
        number = int(url.split("pageNumber=")[1].split("&")[0])
        return pages[number]

    monkeypatch.setattr(client, "_get_json", fake_get_json)

    sales = client.fetch_all_sales(page_size=2)

    assert [sale.id for sale in sales] == [1, 2, 3, 4, 5]
    assert requested[0] == "http://sales.local/api/sales?pageNumber=1&pageSize=2"
    assert len(requested) == 3


def test_fetch_all_sales_respects_max_pages(monkeypatch) -> None:
    client = SalesApiClient("http://sales.local/api")
    monkeypatch.setattr(
        client,
        "_get_json",
        lambda url: _envelope([_sale_payload(1)], page_number=int(url.split("pageNumber=")[1].split("&")[0]), page_size=1, total_count=10),
    )

    assert len(client.fetch_all_sales(page_size=1, max_pages=3)) == 3


def test_page_size_is_clamped(monkeypatch) -> None:
    client = SalesApiClient("http://sales.local/api")
    requested = []

    def fake_get_json(url):
        requested.append(url)
        return _envelope([])

    monkeypatch.setattr(client, "_get_json", fake_get_json)

    client.fetch_page(1, 500)
    client.fetch_page(1, 0)

    assert requested[0].endswith("pageSize=100")
    assert requested[1].endswith("pageSize=1")


def test_connection_failures_are_wrapped(monkeypatch) -> None:
    def refuse(request, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(sales_api.urllib.request, "urlopen", refuse)

    with pytest.raises(SalesApiConnectionError):
        SalesApiClient("http://sales.local/api").fetch_page()


def test_http_errors_surface_the_server_message(monkeypatch) -> None:
    def reject(request, timeout):
        body = io.BytesIO(json.dumps({"success": False, "message": "Invalid page"}).encode("utf-8"))
        raise urllib.error.HTTPError(request.full_url, 400, "Bad Request", {}, body)

    monkeypatch.setattr(sales_api.urllib.request, "urlopen", reject)

    with pytest.raises(SalesApiError, match="Invalid page"):
        SalesApiClient("http://sales.local/api").fetch_page()


def test_invalid_json_is_a_response_error(monkeypatch) -> None:
    class FakeResponse:
        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return False

        def read(self):
            return b"<html>oops</html>"

    monkeypatch.setattr(sales_api.urllib.request, "urlopen", lambda request, timeout: FakeResponse())

    with pytest.raises(SalesApiResponseError):
        SalesApiClient("http://sales.local/api").fetch_page()


def test_blank_base_url_is_rejected() -> None:
    with pytest.raises(SalesApiError):
        SalesApiClient("")


@pytest.mark.parametrize(
    "text, microsecond",
    [
        ("2024-01-10T12:34:56.5", 500000),
        ("2024-01-10T12:34:56.12", 120000),
        ("2024-01-10T12:34:56.1234", 123400),
        ("2024-01-10T12:34:56", 0),
    ],
)
def test_parse_timestamp_accepts_trimmed_fractions(text, microsecond) -> None:
    assert parse_timestamp(text) == datetime(2024, 1, 10, 12, 34, 56, microsecond)


def test_short_fraction_with_offset_is_converted_to_naive() -> None:
    moment = parse_timestamp("2024-01-10T12:34:56.12+02:00")

    assert moment.tzinfo is None
    assert moment.microsecond == 120000

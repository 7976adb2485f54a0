from __future__ import annotations

import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from reporting import pdf_export
from reporting.errors import ExportError, FormatEngineError
from reporting.models import ExportOptions, SaleLineItem


def _records(count: int):
    return [
        SaleLineItem(
            date=datetime(2024, 3, 1 + index % 28, 9, 0),
            product_name=f"Widget <{index}> & more",
            customer_name="O'Brien & Sons",
            quantity=1,
            unit_price=Decimal("4.99"),
            total_price=Decimal("4.99"),
            invoice_number=index,
            payment_method="Card",
            status="Pending",
        )
        for index in range(count)
    ]


def test_document_is_written(tmp_path) -> None:
    target = tmp_path / "report.pdf"

    pdf_export.DocumentExporter(lambda: datetime(2024, 3, 2, 8, 0)).export(
        _records(120), ExportOptions(str(target))
    )

    assert target.read_bytes().startswith(b"%PDF")


def test_empty_report_still_renders(tmp_path) -> None:
    target = tmp_path / "empty.pdf"

    pdf_export.DocumentExporter().export([], ExportOptions(str(target), include_summary=False, include_timestamp=False))

    assert target.exists()


def test_engine_failures_are_wrapped(monkeypatch, tmp_path) -> None:
    def broken_build(self, flowables, *args, **kwargs):
        raise ValueError("layout exploded")

    monkeypatch.setattr(pdf_export.SimpleDocTemplate, "build", broken_build)

    with pytest.raises(FormatEngineError) as excinfo:
        pdf_export.DocumentExporter().export(_records(2), ExportOptions(str(tmp_path / "x.pdf")))

    assert isinstance(excinfo.value, ExportError)
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert "layout exploded" in str(excinfo.value)

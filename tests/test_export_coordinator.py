from __future__ import annotations

import sys
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from reporting.csv_export import CsvExporter
from reporting.errors import ExportError, ExportIOError, ExportValidationError, FormatEngineError
from reporting.excel_export import SpreadsheetExporter
from reporting.export_coordinator import (
    ExportCoordinator,
    ExportState,
    default_export_path,
    with_format_extension,
)
from reporting.models import ExportFormat, ExportOptions, ExportRequest, SaleLineItem

FIXED_NOW = datetime(2024, 2, 1, 9, 15, 30)


def _records(count: int = 3):
    return [
        SaleLineItem(
            date=datetime(2024, 1, index + 1, 12, 0),
            product_name=f"Item {index}",
            customer_name="Ada",
            quantity=1,
            unit_price=Decimal("1.00"),
            total_price=Decimal("1.00"),
            invoice_number=index,
            payment_method="Cash",
            status="Completed",
        )
        for index in range(count)
    ]


class FailingExporter:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    def export(self, records, options) -> None:
        self.calls += 1
        raise self.error


class RecordingExporter:
    def __init__(self) -> None:
        self.calls = []

    def export(self, records, options) -> None:
        self.calls.append((records, options))
        Path(options.file_path).write_text("ok", encoding="utf-8")


class BlockingExporter:
    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()

    def export(self, records, options) -> None:
        self.started.set()
        self.release.wait(timeout=5)
        Path(options.file_path).write_text("done", encoding="utf-8")


def test_failed_document_export_falls_back_to_spreadsheet(tmp_path) -> None:
    document = FailingExporter(FormatEngineError("no fonts"))
    coordinator = ExportCoordinator(
        {
            ExportFormat.DOCUMENT: document,
            ExportFormat.SPREADSHEET: SpreadsheetExporter(lambda: FIXED_NOW),
        }
    )
    target = tmp_path / "report.pdf"

    result = coordinator.invoke(ExportFormat.DOCUMENT, _records(), ExportOptions(str(target)))

    assert document.calls == 1
    assert result.success
    assert result.substituted
    assert result.final_file_path == str(tmp_path / "report.xlsx")
    assert Path(result.final_file_path).exists()
    assert not target.exists()
    assert "Excel" in result.message


def test_fallback_failure_raises_chained_to_pdf_error(tmp_path) -> None:
    original = FormatEngineError("no fonts")
    coordinator = ExportCoordinator(
        {
            ExportFormat.DOCUMENT: FailingExporter(original),
            ExportFormat.SPREADSHEET: FailingExporter(PermissionError("read-only")),
        }
    )

    with pytest.raises(ExportError) as excinfo:
        coordinator.invoke(ExportFormat.DOCUMENT, _records(), ExportOptions(str(tmp_path / "r.pdf")))

    assert excinfo.value.__cause__ is original


@pytest.mark.parametrize("export_format", [ExportFormat.CSV, ExportFormat.SPREADSHEET])
def test_non_document_failures_are_not_retried(tmp_path, export_format) -> None:
    failing = FailingExporter(PermissionError("denied"))
    spare = RecordingExporter()
    exporters = {ExportFormat.CSV: spare, ExportFormat.SPREADSHEET: spare, ExportFormat.DOCUMENT: spare}
    exporters[export_format] = failing
    coordinator = ExportCoordinator(exporters)

    with pytest.raises(ExportIOError):
        coordinator.invoke(export_format, _records(), ExportOptions(str(tmp_path / "out.dat")))

    assert failing.calls == 1
    assert spare.calls == []


def test_unexpected_exporter_errors_become_export_errors(tmp_path) -> None:
    coordinator = ExportCoordinator({ExportFormat.CSV: FailingExporter(KeyError("boom"))})

    with pytest.raises(ExportError):
        coordinator.invoke(ExportFormat.CSV, _records(), ExportOptions(str(tmp_path / "out.csv")))


def test_blank_path_is_rejected_before_any_io() -> None:
    exporter = RecordingExporter()
    coordinator = ExportCoordinator({ExportFormat.CSV: exporter})

    with pytest.raises(ExportValidationError):
        coordinator.invoke(ExportFormat.CSV, _records(), ExportOptions("   "))

    assert exporter.calls == []


def test_missing_parent_directories_are_created(tmp_path) -> None:
    coordinator = ExportCoordinator({ExportFormat.CSV: CsvExporter(lambda: FIXED_NOW)})
    target = tmp_path / "a" / "b" / "sales.csv"

    result = coordinator.invoke(ExportFormat.CSV, _records(), ExportOptions(str(target)))

    assert result.success and not result.substituted
    assert target.exists()


def test_exporter_receives_an_immutable_snapshot(tmp_path) -> None:
    exporter = RecordingExporter()
    coordinator = ExportCoordinator({ExportFormat.CSV: exporter})
    records = _records(2)

    coordinator.export(ExportRequest(ExportFormat.CSV, ExportOptions(str(tmp_path / "s.csv"))), records)
    records.append(_records(5)[4])

    (snapshot, _options), = exporter.calls
    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 2


def test_export_reports_failures_without_raising(tmp_path) -> None:
    coordinator = ExportCoordinator({ExportFormat.CSV: FailingExporter(PermissionError("denied"))})
    notified = []

    result = coordinator.export(
        ExportRequest(ExportFormat.CSV, ExportOptions(str(tmp_path / "s.csv"))),
        _records(),
        notify=notified.append,
    )

    assert not result.success
    assert "denied" in result.message
    assert notified == [result]
    assert coordinator.state is ExportState.FAILED


def test_export_success_message_and_state(tmp_path) -> None:
    coordinator = ExportCoordinator({ExportFormat.CSV: CsvExporter(lambda: FIXED_NOW)})
    target = tmp_path / "s.csv"

    result = coordinator.export(ExportRequest(ExportFormat.CSV, ExportOptions(str(target))), _records(3))

    assert result.success
    assert result.message == f"Exported 3 record(s) to {target}"
    assert coordinator.state is ExportState.SUCCEEDED
    assert not coordinator.busy


def test_second_export_is_rejected_while_one_is_in_flight(tmp_path) -> None:
    blocking = BlockingExporter()
    coordinator = ExportCoordinator({ExportFormat.CSV: blocking})
    request = ExportRequest(ExportFormat.CSV, ExportOptions(str(tmp_path / "s.csv")))
    results = []

    worker = threading.Thread(target=lambda: results.append(coordinator.export(request, _records())))
    worker.start()
    assert blocking.started.wait(timeout=5)

    rejected = coordinator.export(request, _records())
    blocking.release.set()
    worker.join(timeout=5)

    assert not rejected.success
    assert "already in progress" in rejected.message
    assert results and results[0].success


def test_notify_callback_errors_do_not_escape(tmp_path) -> None:
    coordinator = ExportCoordinator({ExportFormat.CSV: CsvExporter(lambda: FIXED_NOW)})

    def explode(result):
        raise RuntimeError("ui gone")

    result = coordinator.export(
        ExportRequest(ExportFormat.CSV, ExportOptions(str(tmp_path / "s.csv"))), _records(), notify=explode
    )

    assert result.success


def test_default_export_path_uses_timestamped_name(tmp_path) -> None:
    path = default_export_path(ExportFormat.SPREADSHEET, tmp_path, now=FIXED_NOW)

    assert path == tmp_path / "SalesHistory_20240201_091530.xlsx"


def test_with_format_extension_swaps_suffix() -> None:
    assert with_format_extension("/tmp/report.csv", ExportFormat.DOCUMENT) == str(Path("/tmp/report.pdf"))
    assert with_format_extension("/tmp/report", ExportFormat.CSV) == str(Path("/tmp/report.csv"))
    assert with_format_extension("", ExportFormat.CSV) == ""


def test_default_exporters_write_spreadsheet_with_headers(tmp_path) -> None:
    coordinator = ExportCoordinator(clock=lambda: FIXED_NOW)
    target = tmp_path / "sales.xlsx"

    result = coordinator.export(ExportRequest(ExportFormat.SPREADSHEET, ExportOptions(str(target))), _records())

    assert result.success, result.message
    assert target.exists()

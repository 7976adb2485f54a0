from __future__ import annotations

import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from reporting.models import ExportFormat, ExportOptions, ExportRequest, ExportResult
from ui.export_worker import ExportWorker


class ImmediateRoot:
    def __init__(self) -> None:
        self.scheduled = []

    def after(self, delay, callback):
        self.scheduled.append(delay)
        callback()


class FakeCoordinator:
    def __init__(self, block: bool = False) -> None:
        self.calls = []
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def export(self, request, records):
        self.calls.append((request, records))
        self.started.set()
        self.release.wait(timeout=5)
        return ExportResult(success=True, final_file_path=request.options.file_path, message="done")


def _request(tmp_path) -> ExportRequest:
    return ExportRequest(ExportFormat.CSV, ExportOptions(str(tmp_path / "out.csv")))


def test_submit_runs_export_and_reports_on_ui_thread(tmp_path) -> None:
    root = ImmediateRoot()
    coordinator = FakeCoordinator()
    results = []
    busy_changes = []
    worker = ExportWorker(root, coordinator, result_callback=results.append, busy_callback=busy_changes.append)

    assert worker.submit(_request(tmp_path), [1, 2, 3]) is True
    worker.join(timeout=5)

    assert busy_changes == [True, False]
    assert results and results[0].message == "done"
    assert root.scheduled == [0]
    (_request_seen, records), = coordinator.calls
    assert records == (1, 2, 3)
    assert not worker.busy


def test_second_submit_is_rejected_while_busy(tmp_path) -> None:
    coordinator = FakeCoordinator(block=True)
    worker = ExportWorker(ImmediateRoot(), coordinator)

    assert worker.submit(_request(tmp_path), [])
    assert coordinator.started.wait(timeout=5)
    assert worker.busy

    assert worker.submit(_request(tmp_path), []) is False

    coordinator.release.set()
    worker.join(timeout=5)
    assert len(coordinator.calls) == 1
    assert worker.submit(_request(tmp_path), []) is True
    worker.join(timeout=5)


def test_records_are_snapshotted_before_the_thread_starts(tmp_path) -> None:
    coordinator = FakeCoordinator(block=True)
    worker = ExportWorker(ImmediateRoot(), coordinator)
    records = ["a", "b"]

    worker.submit(_request(tmp_path), records)
    records.append("c")
    coordinator.started.wait(timeout=5)
    coordinator.release.set()
    worker.join(timeout=5)

    assert coordinator.calls[0][1] == ("a", "b")

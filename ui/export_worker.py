"""Background export worker for the sales history window."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Sequence

from reporting.export_coordinator import ExportCoordinator
from reporting.models import ExportRequest, ExportResult, SaleLineItem


ResultCallback = Callable[[ExportResult], None]
BusyCallback = Callable[[bool], None]


class ExportWorker:
    """Run one export at a time on a background thread and report back via ``root.after``."""

    def __init__(
        self,
        root,
        coordinator: Optional[ExportCoordinator] = None,
        result_callback: Optional[ResultCallback] = None,
        busy_callback: Optional[BusyCallback] = None,
    ) -> None:
        self.root = root
        self.coordinator = coordinator or ExportCoordinator()
        self.result_callback = result_callback
        self.busy_callback = busy_callback
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._logger = logging.getLogger(__name__)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def submit(self, request: ExportRequest, records: Sequence[SaleLineItem]) -> bool:
        """Start an export of ``records``; return ``False`` if one is already running."""

        if not self._lock.acquire(blocking=False):
            self._logger.info("Ignoring export request while another export is running")
            return False
        snapshot = tuple(records)
        if self.busy_callback:
            self.busy_callback(True)
        self._thread = threading.Thread(target=self._execute, args=(request, snapshot), daemon=True)
        self._thread.start()
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _execute(self, request: ExportRequest, snapshot: Sequence[SaleLineItem]) -> None:
        try:
            try:
                result = self.coordinator.export(request, snapshot)
            except Exception as exc:  # pragma: no cover - coordinator reports its own failures
                self._logger.exception("Unexpected error during export", exc_info=True)
                result = ExportResult(success=False, message=f"Export failed: {exc}")
        finally:
            self._lock.release()
        self._dispatch_result(result)

    def _dispatch_result(self, result: ExportResult) -> None:
        def callback() -> None:
            if self.busy_callback:
                self.busy_callback(False)
            if self.result_callback:
                self.result_callback(result)

        self.root.after(0, callback)


__all__ = ["ExportWorker"]

"""Dispatch exports to the per-format exporters.

The coordinator owns the one asymmetric rule of the export subsystem: the PDF
engine is treated as unreliable. When the document exporter fails the same
snapshot is written again, sequentially, as a spreadsheet next to the
requested file and the result is flagged as substituted. Failures of the CSV
and spreadsheet exporters are never retried.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from reporting import app_paths
from reporting.csv_export import CsvExporter
from reporting.errors import ExportError, ExportIOError, ExportValidationError
from reporting.excel_export import SpreadsheetExporter
from reporting.models import ExportFormat, ExportOptions, ExportRequest, ExportResult, SaleLineItem
from reporting.pdf_export import DocumentExporter

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "SalesHistory"

Exporter = Union[CsvExporter, SpreadsheetExporter, DocumentExporter]
Notify = Callable[[ExportResult], None]


class ExportState(enum.Enum):
    IDLE = "idle"
    EXPORTING = "exporting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def default_exporters(clock: Callable[[], datetime] = datetime.now) -> Dict[ExportFormat, Exporter]:
    return {
        ExportFormat.CSV: CsvExporter(clock),
        ExportFormat.SPREADSHEET: SpreadsheetExporter(clock),
        ExportFormat.DOCUMENT: DocumentExporter(clock),
    }


def default_export_path(
    export_format: ExportFormat,
    directory: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Return ``SalesHistory_YYYYmmdd_HHMMSS.<ext>`` inside ``directory``."""

    directory = directory if directory is not None else app_paths.export_directory()
    moment = now or datetime.now()
    return Path(directory) / f"{FILENAME_PREFIX}_{moment:%Y%m%d_%H%M%S}{export_format.extension}"


def with_format_extension(file_path: str, export_format: ExportFormat) -> str:
    """Return ``file_path`` with its suffix replaced by the format's extension."""

    if not file_path.strip():
        return file_path
    return str(Path(file_path).with_suffix(export_format.extension))


def _ensure_parent(file_path: str) -> Path:
    path = Path(file_path).expanduser()
    try:
        app_paths.ensure_directory(path.parent)
    except OSError as exc:
        raise ExportIOError(f"Unable to create export folder {path.parent}: {exc}") from exc
    return path


def _run(exporter: Exporter, snapshot: Tuple[SaleLineItem, ...], options: ExportOptions) -> None:
    try:
        exporter.export(snapshot, options)
    except ExportError:
        raise
    except OSError as exc:
        raise ExportIOError(f"Unable to write {options.file_path}: {exc}") from exc
    except Exception as exc:
        raise ExportError(f"Export to {options.file_path} failed: {exc}") from exc


class ExportCoordinator:
    """Select an exporter for a request and apply the PDF fallback policy."""

    def __init__(
        self,
        exporters: Optional[Mapping[ExportFormat, Exporter]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._exporters: Dict[ExportFormat, Exporter] = dict(exporters or default_exporters(clock))
        self._lock = threading.Lock()
        self.state = ExportState.IDLE

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def invoke(
        self,
        export_format: ExportFormat,
        snapshot: Sequence[SaleLineItem],
        options: ExportOptions,
    ) -> ExportResult:
        """Write ``snapshot`` in ``export_format``, raising :class:`ExportError` on failure."""

        if not options.file_path or not options.file_path.strip():
            raise ExportValidationError("Please choose a file to export to.")
        exporter = self._exporters.get(export_format)
        if exporter is None:
            raise ExportValidationError(f"No exporter is registered for {export_format.value}.")

        records = tuple(snapshot)
        path = _ensure_parent(options.file_path.strip())
        options = dataclasses.replace(options, file_path=str(path))

        if export_format is not ExportFormat.DOCUMENT:
            _run(exporter, records, options)
            return ExportResult(success=True, final_file_path=options.file_path)

        try:
            exporter.export(records, options)
        except Exception as exc:
            logger.warning("PDF export to %s failed, falling back to spreadsheet: %s", path, exc)
            return self._fallback(records, options, exc)
        return ExportResult(success=True, final_file_path=options.file_path)

    def _fallback(
        self,
        records: Tuple[SaleLineItem, ...],
        options: ExportOptions,
        cause: Exception,
    ) -> ExportResult:
        spreadsheet = self._exporters.get(ExportFormat.SPREADSHEET)
        if spreadsheet is None:
            raise ExportError(f"PDF export failed: {cause}") from cause

        fallback_path = Path(options.file_path).with_suffix(ExportFormat.SPREADSHEET.extension)
        fallback_options = dataclasses.replace(options, file_path=str(fallback_path))
        try:
            _run(spreadsheet, records, fallback_options)
        except ExportError as exc:
            raise ExportError(
                f"PDF export failed ({cause}) and the spreadsheet fallback also failed: {exc}"
            ) from cause

        logger.info("Saved spreadsheet %s in place of %s", fallback_path, options.file_path)
        return ExportResult(
            success=True,
            final_file_path=str(fallback_path),
            substituted=True,
            message=(
                "PDF generation failed, so the report was saved as an Excel "
                f"spreadsheet instead:\n{fallback_path}"
            ),
        )

    def export(
        self,
        request: ExportRequest,
        records: Sequence[SaleLineItem],
        notify: Optional[Notify] = None,
    ) -> ExportResult:
        """Run ``request`` and report the outcome without raising.

        ``records`` is copied into an immutable snapshot before anything else
        happens. Only one export runs per coordinator at a time; a second call
        while one is in flight is rejected with a failed result.
        """

        if not self._lock.acquire(blocking=False):
            result = ExportResult(success=False, message="An export is already in progress.")
            self._notify(notify, result)
            return result

        snapshot = tuple(records)
        self.state = ExportState.EXPORTING
        try:
            result = self.invoke(request.format, snapshot, request.options)
        except Exception as exc:
            logger.exception("Export to %s failed", request.options.file_path)
            self.state = ExportState.FAILED
            result = ExportResult(success=False, message=str(exc) or exc.__class__.__name__)
        else:
            self.state = ExportState.SUCCEEDED
            if result.message is None:
                result = dataclasses.replace(
                    result,
                    message=f"Exported {len(snapshot)} record(s) to {result.final_file_path}",
                )
            logger.info("%s", result.message)
        finally:
            self._lock.release()

        self._notify(notify, result)
        return result

    @staticmethod
    def _notify(notify: Optional[Notify], result: ExportResult) -> None:
        if notify is None:
            return
        try:
            notify(result)
        except Exception:
            logger.exception("Export notification callback failed")


__all__ = [
    "ExportCoordinator",
    "ExportState",
    "default_export_path",
    "default_exporters",
    "with_format_extension",
]

"""Exception types raised by the export subsystem.

Callers that talk to the user (the export worker, the command line tool and
the sales history window) only need to catch :class:`ExportError`; the
subclasses exist so the coordinator can tell a bad request from a failing
disk or a failing document engine.
"""

from __future__ import annotations


class ExportError(RuntimeError):
    """Base error raised when an export cannot be completed."""


class ExportValidationError(ExportError):
    """Raised before any I/O when the export request itself is unusable."""


class ExportIOError(ExportError):
    """Raised when the target directory or file cannot be written."""


class FormatEngineError(ExportError):
    """Raised by the document exporter when PDF generation fails."""


__all__ = [
    "ExportError",
    "ExportIOError",
    "ExportValidationError",
    "FormatEngineError",
]

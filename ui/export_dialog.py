"""Dialog collecting the export format, options and target file."""

from __future__ import annotations

import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Optional

from reporting.export_coordinator import default_export_path, with_format_extension
from reporting.models import ExportFormat, ExportOptions, ExportRequest
from settings import ExportDefaults


FORMAT_LABELS = (
    (ExportFormat.CSV, "CSV File (.csv)"),
    (ExportFormat.SPREADSHEET, "Excel Workbook (.xlsx)"),
    (ExportFormat.DOCUMENT, "PDF Document (.pdf)"),
)


class ExportDialog:
    """Modal dialog; ``show()`` returns the request or ``None`` when cancelled."""

    def __init__(self, master: tk.Misc, defaults: ExportDefaults, record_count: int) -> None:
        self.window = tk.Toplevel(master)
        self.window.title("Export Sales Data")
        self.window.transient(master)
        self.window.resizable(False, False)

        self.request: Optional[ExportRequest] = None
        self._defaults = defaults
        self._record_count = record_count

        self.format_var = tk.StringVar(value=defaults.default_format.value)
        self.headers_var = tk.BooleanVar(value=defaults.include_headers)
        self.summary_var = tk.BooleanVar(value=defaults.include_summary)
        self.timestamp_var = tk.BooleanVar(value=defaults.include_timestamp)
        initial_path = default_export_path(defaults.default_format, defaults.directory_path)
        self.path_var = tk.StringVar(value=str(initial_path))

        self._build_ui()
        self.format_var.trace_add("write", lambda *_args: self._on_format_changed())

    # ------------------------------------------------------------------
    # UI helpers
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        frame = ttk.Frame(self.window, padding=12)
        frame.grid(row=0, column=0, sticky="nsew")
        frame.columnconfigure(0, weight=1)

        ttk.Label(frame, text=f"Records to export: {self._record_count}").grid(row=0, column=0, sticky="w")

        format_box = ttk.LabelFrame(frame, text="Export Format", padding=8)
        format_box.grid(row=1, column=0, sticky="ew", pady=(8, 0))
        for index, (export_format, label) in enumerate(FORMAT_LABELS):
            ttk.Radiobutton(
                format_box,
                text=label,
                value=export_format.value,
                variable=self.format_var,
            ).grid(row=index, column=0, sticky="w")

        options_box = ttk.LabelFrame(frame, text="Export Options", padding=8)
        options_box.grid(row=2, column=0, sticky="ew", pady=(8, 0))
        ttk.Checkbutton(options_box, text="Include column headers", variable=self.headers_var).grid(
            row=0, column=0, sticky="w"
        )
        ttk.Checkbutton(options_box, text="Include summary", variable=self.summary_var).grid(
            row=1, column=0, sticky="w"
        )
        ttk.Checkbutton(options_box, text="Include export timestamp", variable=self.timestamp_var).grid(
            row=2, column=0, sticky="w"
        )

        file_box = ttk.LabelFrame(frame, text="Save To", padding=8)
        file_box.grid(row=3, column=0, sticky="ew", pady=(8, 0))
        file_box.columnconfigure(0, weight=1)
        ttk.Entry(file_box, textvariable=self.path_var, width=52).grid(row=0, column=0, sticky="ew")
        ttk.Button(file_box, text="Browse…", command=self._on_browse).grid(row=0, column=1, padx=(8, 0))

        button_bar = ttk.Frame(frame)
        button_bar.grid(row=4, column=0, sticky="e", pady=(12, 0))
        ttk.Button(button_bar, text="Export", command=self._on_export).grid(row=0, column=0, padx=(0, 8))
        ttk.Button(button_bar, text="Cancel", command=self.window.destroy).grid(row=0, column=1)

        self.window.bind("<Return>", lambda _event: self._on_export())
        self.window.bind("<Escape>", lambda _event: self.window.destroy())

    def _selected_format(self) -> ExportFormat:
        return ExportFormat.parse(self.format_var.get())

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _on_format_changed(self) -> None:
        self.path_var.set(with_format_extension(self.path_var.get(), self._selected_format()))

    def _on_browse(self) -> None:
        export_format = self._selected_format()
        current = Path(self.path_var.get() or str(self._defaults.directory_path))
        file_path = filedialog.asksaveasfilename(
            parent=self.window,
            title="Export Sales Data",
            initialdir=str(current.parent),
            initialfile=current.name,
            defaultextension=export_format.extension,
            filetypes=((f"{export_format.value.upper()} files", f"*{export_format.extension}"), ("All files", "*.*")),
        )
        if file_path:
            self.path_var.set(file_path)

    def _on_export(self) -> None:
        file_path = self.path_var.get().strip()
        if not file_path:
            messagebox.showwarning("Export Sales Data", "Please choose a file to export to.", parent=self.window)
            return
        self.request = ExportRequest(
            format=self._selected_format(),
            options=ExportOptions(
                file_path=file_path,
                include_headers=self.headers_var.get(),
                include_summary=self.summary_var.get(),
                include_timestamp=self.timestamp_var.get(),
            ),
        )
        self.window.destroy()

    def show(self) -> Optional[ExportRequest]:
        self.window.grab_set()
        self.window.wait_window()
        return self.request


__all__ = ["ExportDialog"]

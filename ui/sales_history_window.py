"""Sales history window: load, filter, export and print invoices."""

from __future__ import annotations

import logging
import threading
import tkinter as tk
from datetime import datetime
from tkinter import messagebox, ttk
from typing import List, Optional, Tuple

from PIL import ImageTk

from invoice_renderer import InvoiceRenderer
from reporting.csv_export import CSV_HEADERS
from reporting.filters import apply_filters, summarize
from reporting.flatten import flatten_sales
from reporting.formatting import DATE_FORMAT, DATETIME_FORMAT, format_currency
from reporting.invoice_pdf import print_invoice_pdf, send_to_printer
from reporting.models import ExportResult, FilterCriteria, SaleLineItem
from reporting.sales_api import SalesApiClient, SalesApiError
from settings import ApiSettings, AppSettings
from ui.export_dialog import ExportDialog
from ui.export_worker import ExportWorker

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = {"Quantity", "Unit Price", "Total Price", "Invoice #"}


def load_line_items(client: SalesApiClient, api: ApiSettings) -> Tuple[List[SaleLineItem], Optional[str]]:
    """Fetch and flatten every sale; return the records or a user-facing error."""

    try:
        sales = client.fetch_all_sales(page_size=api.page_size, max_pages=api.max_pages)
        return flatten_sales(sales), None
    except SalesApiError as exc:
        logger.warning("Failed to load sales: %s", exc)
        return [], str(exc)
    except Exception as exc:
        logger.exception("Unexpected error while loading sales")
        return [], f"Unexpected error: {exc}"


def _row_values(record: SaleLineItem) -> Tuple[object, ...]:
    return (
        record.date.strftime(DATETIME_FORMAT),
        record.product_name,
        record.customer_name,
        record.quantity,
        format_currency(record.unit_price),
        format_currency(record.total_price),
        record.invoice_number,
        record.payment_method,
        record.status,
    )


class SalesHistoryWindow:
    def __init__(self, root: tk.Tk, settings: AppSettings, client: Optional[SalesApiClient] = None) -> None:
        self.root = root
        self.settings = settings
        self.client = client or SalesApiClient(settings.api.base_url, timeout=settings.api.timeout_seconds)
        self._records: List[SaleLineItem] = []
        self._filtered: List[SaleLineItem] = []
        self._preview_image = None
        self.worker = ExportWorker(
            root,
            result_callback=self._on_export_finished,
            busy_callback=self._set_export_busy,
        )

        criteria = FilterCriteria.last_days(settings.export.lookback_days)
        self.start_var = tk.StringVar(value=criteria.start_date.strftime(DATE_FORMAT))
        self.end_var = tk.StringVar(value=criteria.end_date.strftime(DATE_FORMAT))
        self.search_var = tk.StringVar()
        self.status_var = tk.StringVar(value="Ready")
        self.totals_var = tk.StringVar(value="0 records | Total: $0.00")

        self._build_ui()
        self.refresh()

    # ------------------------------------------------------------------
    # UI helpers
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        container = ttk.Frame(self.root, padding=12)
        container.pack(fill=tk.BOTH, expand=True)

        filters = ttk.Frame(container)
        filters.pack(fill=tk.X)
        ttk.Label(filters, text="From").pack(side=tk.LEFT)
        ttk.Entry(filters, textvariable=self.start_var, width=12).pack(side=tk.LEFT, padx=(4, 8))
        ttk.Label(filters, text="To").pack(side=tk.LEFT)
        ttk.Entry(filters, textvariable=self.end_var, width=12).pack(side=tk.LEFT, padx=(4, 8))
        ttk.Label(filters, text="Search").pack(side=tk.LEFT)
        search_entry = ttk.Entry(filters, textvariable=self.search_var, width=28)
        search_entry.pack(side=tk.LEFT, padx=(4, 8))
        search_entry.bind("<Return>", lambda _event: self.apply_filters())
        ttk.Button(filters, text="Apply", command=self.apply_filters).pack(side=tk.LEFT)

        ttk.Button(filters, text="Print Invoice", command=self.on_print_invoice).pack(side=tk.RIGHT)
        ttk.Button(filters, text="Preview Invoice", command=self.on_preview_invoice).pack(side=tk.RIGHT, padx=(0, 8))
        self.export_button = ttk.Button(filters, text="Export", command=self.on_export)
        self.export_button.pack(side=tk.RIGHT, padx=(0, 8))
        self.refresh_button = ttk.Button(filters, text="Refresh", command=self.refresh)
        self.refresh_button.pack(side=tk.RIGHT, padx=(0, 8))

        table_frame = ttk.Frame(container)
        table_frame.pack(fill=tk.BOTH, expand=True, pady=(12, 0))
        table_frame.columnconfigure(0, weight=1)
        table_frame.rowconfigure(0, weight=1)

        self.tree = ttk.Treeview(table_frame, columns=CSV_HEADERS, show="headings", selectmode="browse")
        for header in CSV_HEADERS:
            anchor = tk.E if header in NUMERIC_COLUMNS else tk.W
            self.tree.heading(header, text=header)
            self.tree.column(header, anchor=anchor, width=120, stretch=header in {"Product", "Customer"})
        self.tree.tag_configure("oddrow", background="#f5f9ff")
        self.tree.tag_configure("evenrow", background="#ffffff")

        yscroll = ttk.Scrollbar(table_frame, orient=tk.VERTICAL, command=self.tree.yview)
        self.tree.configure(yscrollcommand=yscroll.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        yscroll.grid(row=0, column=1, sticky="ns")
        self.tree.bind("<Double-1>", lambda _event: self.on_preview_invoice())

        footer = ttk.Frame(container)
        footer.pack(fill=tk.X, pady=(8, 0))
        ttk.Label(footer, textvariable=self.totals_var).pack(side=tk.LEFT)
        ttk.Label(footer, textvariable=self.status_var).pack(side=tk.RIGHT)

    def _populate_tree(self) -> None:
        self.tree.delete(*self.tree.get_children())
        for index, record in enumerate(self._filtered):
            tag = "oddrow" if index % 2 else "evenrow"
            self.tree.insert("", tk.END, iid=str(index), values=_row_values(record), tags=(tag,))
        summary = summarize(self._filtered)
        self.totals_var.set(f"{summary.count} records | Total: {format_currency(summary.total_revenue)}")

    def _selected_record(self) -> Optional[SaleLineItem]:
        selection = self.tree.selection()
        if not selection:
            messagebox.showwarning("Sales History", "Please select a sale first.", parent=self.root)
            return None
        return self._filtered[int(selection[0])]

    def _parse_criteria(self) -> Optional[FilterCriteria]:
        try:
            start = datetime.strptime(self.start_var.get().strip(), DATE_FORMAT).date()
            end = datetime.strptime(self.end_var.get().strip(), DATE_FORMAT).date()
        except ValueError:
            messagebox.showwarning("Sales History", "Dates must use the YYYY-MM-DD format.", parent=self.root)
            return None
        return FilterCriteria(start_date=start, end_date=end, search_term=self.search_var.get())

    # ------------------------------------------------------------------
    # Loading and filtering
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        self.refresh_button.state(["disabled"])
        self.status_var.set("Loading sales…")

        def _load() -> None:
            records, error = load_line_items(self.client, self.settings.api)
            if error is not None:
                self.root.after(0, lambda: self._on_load_failed(error))
                return
            self.root.after(0, lambda: self._on_loaded(records))

        threading.Thread(target=_load, name="SalesLoadWorker", daemon=True).start()

    def _on_loaded(self, records: List[SaleLineItem]) -> None:
        self.refresh_button.state(["!disabled"])
        self._records = records
        self.status_var.set(f"Loaded {len(records)} line items")
        self.apply_filters()

    def _on_load_failed(self, message: str) -> None:
        self.refresh_button.state(["!disabled"])
        self.status_var.set("Load failed")
        messagebox.showerror("Sales History", f"Unable to load sales:\n{message}", parent=self.root)

    def apply_filters(self) -> None:
        criteria = self._parse_criteria()
        if criteria is None:
            return
        self._filtered = apply_filters(self._records, criteria)
        self._populate_tree()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def on_export(self) -> None:
        if not self._filtered:
            messagebox.showinfo("Export Sales Data", "There are no records to export.", parent=self.root)
            return
        request = ExportDialog(self.root, self.settings.export, len(self._filtered)).show()
        if request is None:
            return
        if not self.worker.submit(request, self._filtered):
            messagebox.showinfo("Export Sales Data", "An export is already in progress.", parent=self.root)

    def _set_export_busy(self, busy: bool) -> None:
        self.export_button.state(["disabled"] if busy else ["!disabled"])
        self.status_var.set("Exporting…" if busy else "Ready")

    def _on_export_finished(self, result: ExportResult) -> None:
        if not result.success:
            messagebox.showerror("Export Sales Data", result.message or "Export failed.", parent=self.root)
        elif result.substituted:
            messagebox.showwarning("Export Sales Data", result.message or result.final_file_path, parent=self.root)
        else:
            messagebox.showinfo("Export Sales Data", f"Export completed:\n{result.final_file_path}", parent=self.root)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def on_preview_invoice(self) -> None:
        record = self._selected_record()
        if record is None:
            return
        try:
            result = InvoiceRenderer(self.settings.company).render_preview(record)
        except Exception as exc:
            logger.exception("Invoice preview failed")
            messagebox.showerror("Preview Invoice", f"Unable to render the invoice:\n{exc}", parent=self.root)
            return
        window = tk.Toplevel(self.root)
        window.title(f"Invoice {record.invoice_number}")
        self._preview_image = ImageTk.PhotoImage(result.image)
        ttk.Label(window, image=self._preview_image).pack(padx=8, pady=8)
        if result.warnings:
            ttk.Label(window, text="\n".join(result.warnings), foreground="#b45309").pack(padx=8, pady=(0, 8))

    def on_print_invoice(self) -> None:
        record = self._selected_record()
        if record is None:
            return
        try:
            pdf_path = print_invoice_pdf(record, self.settings.company)
            warnings = send_to_printer(pdf_path)
        except Exception as exc:
            logger.exception("Invoice printing failed")
            messagebox.showerror("Print Invoice", f"Unable to print the invoice:\n{exc}", parent=self.root)
            return
        if warnings:
            messagebox.showwarning("Print Invoice", "\n".join(warnings), parent=self.root)
        else:
            self.status_var.set(f"Invoice {record.invoice_number} sent to printer")


__all__ = ["SalesHistoryWindow", "load_line_items"]

import logging
import tkinter as tk
from tkinter import messagebox

from reporting.logging_config import configure_logging
from reporting.sales_api import SalesApiError
from reporting.version import __version__
from settings import load_settings
from ui.sales_history_window import SalesHistoryWindow


configure_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    try:
        settings = load_settings()
    except OSError as exc:
        logger.exception("Unable to read settings")
        messagebox.showerror("Sales History", f"Unable to read settings:\n{exc}")
        return

    root = tk.Tk()
    root.title(f"Sales History v{__version__}")
    root.geometry("1200x650")
    try:
        SalesHistoryWindow(root, settings)
    except SalesApiError as exc:
        logger.exception("Sales service is not configured")
        messagebox.showerror("Sales History", str(exc), parent=root)
        root.destroy()
        return
    root.mainloop()


if __name__ == "__main__":
    main()

"""PDF surface for the invoice layout and helpers to open or print the result."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import webbrowser
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from reporting.models import CompanyInfo, SaleLineItem
from reporting.print_layout import Color, FontSpec, InvoiceLayout, PrintLayoutEngine

logger = logging.getLogger(__name__)

POINTS_PER_UNIT = 72 / 100.0

_FACES = {
    (False, False): "",
    (True, False): "-Bold",
    (False, True): "-Oblique",
    (True, True): "-BoldOblique",
}


def _rgb(color: Color) -> Tuple[float, float, float]:
    return color[0] / 255.0, color[1] / 255.0, color[2] / 255.0


class PdfCanvasSurface:
    """Draw layout units onto a reportlab canvas, one page at a time."""

    def __init__(self, canv: canvas.Canvas, layout: InvoiceLayout) -> None:
        self.canvas = canv
        self.layout = layout
        self.page_size = (layout.page_width * POINTS_PER_UNIT, layout.page_height * POINTS_PER_UNIT)
        self._fonts: Dict[FontSpec, str] = {}

    @property
    def open_fonts(self) -> int:
        return len(self._fonts)

    @contextmanager
    def page(self) -> Iterator[None]:
        self.canvas.setPageSize(self.page_size)
        self.canvas.saveState()
        try:
            yield
        finally:
            self.canvas.restoreState()
            self._fonts.clear()

    def _font_name(self, font: FontSpec) -> str:
        name = self._fonts.get(font)
        if name is None:
            name = f"{font.family}{_FACES[(font.bold, font.italic)]}"
            if name not in pdfmetrics.getRegisteredFontNames() and name not in pdfmetrics.standardFonts:
                logger.debug("Font %s is not available, using Helvetica", name)
                name = f"Helvetica{_FACES[(font.bold, font.italic)]}"
            self._fonts[font] = name
        return name

    def _x(self, value: float) -> float:
        return value * POINTS_PER_UNIT

    def _y(self, value: float) -> float:
        return self.page_size[1] - value * POINTS_PER_UNIT

    def fill_rect(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        self.canvas.setFillColorRGB(*_rgb(color))
        self.canvas.rect(
            self._x(x),
            self._y(y + height),
            width * POINTS_PER_UNIT,
            height * POINTS_PER_UNIT,
            stroke=0,
            fill=1,
        )

    def stroke_rect(
        self, x: float, y: float, width: float, height: float, color: Color, line_width: float = 1
    ) -> None:
        self.canvas.setStrokeColorRGB(*_rgb(color))
        self.canvas.setLineWidth(line_width * POINTS_PER_UNIT)
        self.canvas.rect(
            self._x(x),
            self._y(y + height),
            width * POINTS_PER_UNIT,
            height * POINTS_PER_UNIT,
            stroke=1,
            fill=0,
        )

    def draw_line(
        self, x1: float, y1: float, x2: float, y2: float, color: Color, line_width: float = 1
    ) -> None:
        self.canvas.setStrokeColorRGB(*_rgb(color))
        self.canvas.setLineWidth(line_width * POINTS_PER_UNIT)
        self.canvas.line(self._x(x1), self._y(y1), self._x(x2), self._y(y2))

    def draw_text(self, text: str, x: float, y: float, font: FontSpec, color: Color) -> None:
        name = self._font_name(font)
        baseline = self._y(y) - pdfmetrics.getAscent(name, font.size)
        self.canvas.setFont(name, font.size)
        self.canvas.setFillColorRGB(*_rgb(color))
        self.canvas.drawString(self._x(x), baseline, text)

    def measure_text(self, text: str, font: FontSpec) -> float:
        if not text:
            return 0.0
        return pdfmetrics.stringWidth(text, self._font_name(font), font.size) / POINTS_PER_UNIT


def print_invoice_pdf(
    record: SaleLineItem,
    company: CompanyInfo,
    output_path: str | os.PathLike[str] | None = None,
    layout: Optional[InvoiceLayout] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> Path:
    """Render ``record`` as a one page invoice PDF and return its path."""

    if output_path is None:
        fd, temp_name = tempfile.mkstemp(suffix=".pdf", prefix=f"invoice_{record.invoice_number}_")
        os.close(fd)
        output_path = Path(temp_name)
    else:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

    engine = PrintLayoutEngine(company, layout, clock=clock)
    surface = PdfCanvasSurface(canvas.Canvas(str(output_path)), engine.layout)
    engine.render_page(surface, record)
    surface.canvas.showPage()
    surface.canvas.save()
    logger.info("Invoice %s written to %s", record.invoice_number, output_path)
    return output_path


def open_pdf(path: str | os.PathLike[str]) -> None:
    pdf_path = Path(path)
    if os.name == "nt":
        os.startfile(str(pdf_path))  # type: ignore[attr-defined]
    else:
        webbrowser.open(pdf_path.as_uri())


def send_to_printer(path: str | os.PathLike[str]) -> List[str]:
    """Hand ``path`` to the default printer and return any warnings."""

    warnings: List[str] = []
    pdf_path = str(Path(path))
    if os.name == "nt":
        try:
            os.startfile(pdf_path, "print")  # type: ignore[attr-defined]
        except OSError as exc:
            warnings.append(f"Failed to start printing: {exc}")
        return warnings

    lpr = shutil.which("lpr")
    if lpr is None:
        warnings.append("No print command was found. The invoice was opened for manual printing instead.")
        open_pdf(pdf_path)
        return warnings
    completed = subprocess.run([lpr, pdf_path], capture_output=True, text=True, check=False)
    if completed.returncode != 0:
        details = (completed.stderr or completed.stdout or "").strip()
        warnings.append(f"Failed to start printing: {details or completed.returncode}")
    return warnings


__all__ = ["PdfCanvasSurface", "open_pdf", "print_invoice_pdf", "send_to_printer"]

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from reporting.models import CompanyInfo, SaleLineItem
from reporting.print_layout import Color, FontSpec, InvoiceLayout, PrintLayoutEngine

logger = logging.getLogger(__name__)

DEFAULT_DPI = 150
UNITS_PER_INCH = 100

# TrueType candidates per (bold, italic); the first that loads wins.
FONT_CANDIDATES: Dict[Tuple[bool, bool], Sequence[str]] = {
    (False, False): ("arial.ttf", "Arial.ttf", "DejaVuSans.ttf", "LiberationSans-Regular.ttf"),
    (True, False): ("arialbd.ttf", "Arial Bold.ttf", "DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf"),
    (False, True): ("ariali.ttf", "Arial Italic.ttf", "DejaVuSans-Oblique.ttf", "LiberationSans-Italic.ttf"),
    (True, True): (
        "arialbi.ttf",
        "Arial Bold Italic.ttf",
        "DejaVuSans-BoldOblique.ttf",
        "LiberationSans-BoldItalic.ttf",
    ),
}


def measure_text(draw: "ImageDraw.ImageDraw", text: str, font: Any) -> Tuple[int, int]:
    """Measure text dimensions with compatibility across Pillow versions."""

    if not text:
        return 0, 0
    try:
        bbox = draw.textbbox((0, 0), text, font=font)
    except AttributeError:
        bbox = None
    if bbox:
        return int(bbox[2] - bbox[0]), int(bbox[3] - bbox[1])

    width = int(math.ceil(draw.textlength(text, font=font)))
    height = 0
    if hasattr(font, "getmetrics"):
        ascent, descent = font.getmetrics()
        height = int(ascent + descent)
    return max(width, len(text)), max(height, 1)


@dataclass
class RenderResult:
    image: Any
    warnings: List[str]


class ImageSurface:
    """Raster surface used for on-screen previews and PNG exports."""

    def __init__(self, layout: InvoiceLayout, dpi: int = DEFAULT_DPI) -> None:
        self.layout = layout
        self.dpi = dpi
        self.scale = dpi / float(UNITS_PER_INCH)
        self.size = (
            int(round(layout.page_width * self.scale)),
            int(round(layout.page_height * self.scale)),
        )
        self.image: Optional[Image.Image] = None
        self.warnings: List[str] = []
        self._draw: Optional[ImageDraw.ImageDraw] = None
        self._font_cache: Dict[FontSpec, Any] = {}

    @property
    def open_fonts(self) -> int:
        return len(self._font_cache)

    @contextmanager
    def page(self) -> Iterator[None]:
        self.image = Image.new("RGB", self.size, "white")
        self._draw = ImageDraw.Draw(self.image)
        try:
            yield
        finally:
            self._font_cache.clear()
            self._draw = None

    def _px(self, value: float) -> int:
        return int(round(value * self.scale))

    def _require_draw(self) -> ImageDraw.ImageDraw:
        if self._draw is None:
            raise RuntimeError("Drawing is only possible inside ImageSurface.page().")
        return self._draw

    def _load_font(self, spec: FontSpec) -> Any:
        cached = self._font_cache.get(spec)
        if cached is not None:
            return cached
        size_px = max(1, int(round(spec.size / 72.0 * self.dpi)))
        font = None
        for candidate in FONT_CANDIDATES[(spec.bold, spec.italic)]:
            try:
                font = ImageFont.truetype(candidate, size_px)
            except OSError:
                continue
            break
        if font is None:
            warning = "TrueType fonts were unavailable. Using Pillow's default font."
            if warning not in self.warnings:
                self.warnings.append(warning)
            try:
                font = ImageFont.load_default(size=size_px)
            except TypeError:
                font = ImageFont.load_default()
        self._font_cache[spec] = font
        return font

    def fill_rect(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        draw = self._require_draw()
        draw.rectangle([self._px(x), self._px(y), self._px(x + width), self._px(y + height)], fill=color)

    def stroke_rect(
        self, x: float, y: float, width: float, height: float, color: Color, line_width: float = 1
    ) -> None:
        draw = self._require_draw()
        draw.rectangle(
            [self._px(x), self._px(y), self._px(x + width), self._px(y + height)],
            outline=color,
            width=max(1, self._px(line_width)),
        )

    def draw_line(
        self, x1: float, y1: float, x2: float, y2: float, color: Color, line_width: float = 1
    ) -> None:
        draw = self._require_draw()
        draw.line(
            [(self._px(x1), self._px(y1)), (self._px(x2), self._px(y2))],
            fill=color,
            width=max(1, self._px(line_width)),
        )

    def draw_text(self, text: str, x: float, y: float, font: FontSpec, color: Color) -> None:
        draw = self._require_draw()
        draw.text((self._px(x), self._px(y)), text, font=self._load_font(font), fill=color)

    def measure_text(self, text: str, font: FontSpec) -> float:
        draw = self._require_draw()
        width, _ = measure_text(draw, text, self._load_font(font))
        return width / self.scale


class InvoiceRenderer:
    def __init__(
        self,
        company: CompanyInfo,
        layout: Optional[InvoiceLayout] = None,
        dpi: int = DEFAULT_DPI,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.engine = PrintLayoutEngine(company, layout, clock=clock)
        self.dpi = dpi

    def render(self, record: SaleLineItem) -> RenderResult:
        surface = ImageSurface(self.engine.layout, self.dpi)
        self.engine.render_page(surface, record)
        return RenderResult(image=surface.image, warnings=list(surface.warnings))

    def render_preview(self, record: SaleLineItem, max_width: int = 600) -> RenderResult:
        result = self.render(record)
        width, height = result.image.size
        if width > max_width:
            ratio = max_width / float(width)
            new_size = (max_width, int(height * ratio))
            preview = result.image.resize(new_size, Image.LANCZOS)
        else:
            preview = result.image.copy()
        return RenderResult(image=preview, warnings=result.warnings)

    def export_png(self, record: SaleLineItem, path: str) -> List[str]:
        result = self.render(record)
        result.image.save(path, "PNG", dpi=(self.dpi, self.dpi))
        logger.info("Invoice preview for %s saved to %s", record.invoice_number, path)
        return result.warnings


__all__ = [
    "ImageSurface",
    "InvoiceRenderer",
    "RenderResult",
    "measure_text",
]

"""
Drawing surface over a reportlab canvas.

Coordinates are in points with a top-left origin (y grows downward), matching
the layout engine. The surface flips them to reportlab's bottom-left origin.
Only the primitives the service needs are exposed: add a page, draw wrapped
text, draw an image fitted into a box, draw a line, and finish to bytes.
"""

import logging
import os
from functools import lru_cache
from io import BytesIO
from typing import List, Optional

from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from .types import Rect

logger = logging.getLogger(__name__)

DEFAULT_HEADER_FONT = "Helvetica-Bold"
CUSTOM_HEADER_FONT = "ShotListHeader"
LEADING_FACTOR = 1.2


@lru_cache()
def resolve_header_font(font_path: Optional[str] = None) -> str:
    """
    Register the optional custom header font once and return its name.

    Falls back to Helvetica-Bold when no path is configured or the file
    cannot be loaded.
    """
    if not font_path:
        return DEFAULT_HEADER_FONT
    if not os.path.isfile(font_path):
        logger.warning(f"Header font {font_path} not found, using {DEFAULT_HEADER_FONT}")
        return DEFAULT_HEADER_FONT
    try:
        pdfmetrics.registerFont(TTFont(CUSTOM_HEADER_FONT, font_path))
    except (TTFError, OSError) as e:
        logger.warning(f"Header font {font_path} unusable ({e}), using {DEFAULT_HEADER_FONT}")
        return DEFAULT_HEADER_FONT
    logger.info(f"Registered header font {font_path} as {CUSTOM_HEADER_FONT}")
    return CUSTOM_HEADER_FONT


def wrap_text(text: str, font: str, size: float, width: float) -> List[str]:
    """Split text into lines no wider than ``width`` (single long words may overflow)."""
    if not text:
        return []
    return simpleSplit(text, font, size, max(width, 1.0))


def text_block_height(text: str, font: str, size: float, width: float) -> float:
    """Height of ``text`` once wrapped to ``width``."""
    return len(wrap_text(text, font, size, width)) * size * LEADING_FACTOR


class PdfSurface:
    """Append-only PDF drawing surface for one document."""

    def __init__(self, page_width: float, page_height: float, title: Optional[str] = None):
        self.page_width = page_width
        self.page_height = page_height
        self._buffer = BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pagesize=(page_width, page_height))
        if title:
            self._canvas.setTitle(title)
        self._canvas.setCreator("shotlist-service")
        self._page_count = 0
        self._finished = False

    @property
    def page_count(self) -> int:
        return self._page_count

    def _pdf_y(self, y: float) -> float:
        return self.page_height - y

    def add_page(self) -> int:
        """Start a new page and return its 0-based index."""
        if self._finished:
            raise RuntimeError("Surface already finished")
        if self._page_count:
            self._canvas.showPage()
        self._page_count += 1
        return self._page_count - 1

    def draw_text(
        self,
        text: str,
        x: float,
        y: float,
        width: float,
        font: str = "Helvetica",
        size: float = 10,
        align: str = "left",
        max_height: Optional[float] = None,
    ) -> float:
        """
        Draw wrapped text with its first line's top at ``y``.

        Lines that would cross ``max_height`` are dropped when it is given.

        Returns:
            Height consumed by the drawn lines
        """
        leading = size * LEADING_FACTOR
        lines = wrap_text(text, font, size, width)
        if max_height is not None:
            lines = lines[:max(0, int((max_height + 1e-6) // leading))]
        if not lines:
            return 0.0

        self._canvas.setFont(font, size)
        for i, line in enumerate(lines):
            baseline = self._pdf_y(y + size + i * leading)
            if align == "center":
                self._canvas.drawCentredString(x + width / 2, baseline, line)
            elif align == "right":
                self._canvas.drawRightString(x + width, baseline, line)
            else:
                self._canvas.drawString(x, baseline, line)
        return len(lines) * leading

    def draw_image_fit(self, data: bytes, box: Rect) -> Rect:
        """
        Draw image bytes scaled to fit ``box``, aspect preserved and centred.

        Returns:
            The rectangle actually covered by the image
        """
        reader = ImageReader(BytesIO(data))
        img_w, img_h = reader.getSize()
        scale = min(box.width / img_w, box.height / img_h)
        width, height = img_w * scale, img_h * scale
        x = box.x + (box.width - width) / 2
        y = box.y + (box.height - height) / 2
        self._canvas.drawImage(reader, x, self._pdf_y(y + height), width=width, height=height)
        return Rect(x, y, width, height)

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, width: float = 0.5) -> None:
        self._canvas.setLineWidth(width)
        self._canvas.line(x1, self._pdf_y(y1), x2, self._pdf_y(y2))

    def finish(self) -> bytes:
        """Close the document and return the PDF bytes."""
        if not self._finished:
            if not self._page_count:
                self.add_page()
            self._canvas.save()
            self._finished = True
        return self._buffer.getvalue()

"""
Cell rendering: one shot's image and caption inside its layout cell.

A cell never fails the document. When the image cannot be fetched or
decoded, the image box stays blank and the caption is still drawn.

Caption blocks, top to bottom:
1. size label (bold)
2. shot name
3. description (smaller, wrapped)

Overflow policy for captions taller than their box:
- "overflow": draw every line, even past the box (may run into the next row)
- "clip": drop lines that do not fit the caption box
- "grow": the flow layout sizes the box to the caption, then clips like "clip"
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import IssueCollector, ResourceFetchError
from .surface import PdfSurface, text_block_height
from .types import Rect, ShotRecord

logger = logging.getLogger(__name__)

OVERFLOW_POLICIES = ("overflow", "clip", "grow")


@dataclass(frozen=True)
class CaptionStyle:
    """Fonts and spacing for the three caption blocks."""

    size_font: str = "Helvetica-Bold"
    size_size: float = 9
    name_font: str = "Helvetica"
    name_size: float = 8
    description_font: str = "Helvetica"
    description_size: float = 7
    align: str = "center"
    inset: float = 5.0         # Padding between the cell edge and its content

    def blocks(self, shot: ShotRecord) -> List[Tuple[str, str, float]]:
        """Non-empty (text, font, size) blocks for a shot, in draw order."""
        candidates = [
            (shot.size, self.size_font, self.size_size),
            (shot.name, self.name_font, self.name_size),
            (shot.description, self.description_font, self.description_size),
        ]
        return [(text.strip(), font, size) for text, font, size in candidates if text and text.strip()]

    def measure(self, shot: ShotRecord, cell_width: float) -> float:
        """Height the caption needs in a cell of ``cell_width``."""
        width = cell_width - 2 * self.inset
        return sum(
            text_block_height(text, font, size, width)
            for text, font, size in self.blocks(shot)
        )


class CellRenderer:
    """Draws shots onto a PdfSurface, fetching each image just before its caption."""

    def __init__(
        self,
        surface: PdfSurface,
        fetcher,
        style: Optional[CaptionStyle] = None,
        overflow_policy: str = "overflow",
        issues: Optional[IssueCollector] = None,
    ):
        if overflow_policy not in OVERFLOW_POLICIES:
            raise ValueError(f"Unknown overflow policy: {overflow_policy}")
        self.surface = surface
        self.fetcher = fetcher
        self.style = style or CaptionStyle()
        self.overflow_policy = overflow_policy
        self.issues = issues if issues is not None else IssueCollector()

    def render_cell(self, shot: ShotRecord, image_box: Rect, caption_box: Rect) -> bool:
        """
        Draw one shot.

        Returns:
            True if the image was drawn, False if the image box was left blank
        """
        drawn = self._draw_image(shot, image_box.inset(self.style.inset))
        self._draw_caption(shot, caption_box)
        return drawn

    def _draw_image(self, shot: ShotRecord, box: Rect) -> bool:
        if box.width <= 0 or box.height <= 0:
            return False
        try:
            data = self.fetcher.fetch(shot.image)
        except ResourceFetchError as e:
            logger.warning(f"Image skipped for '{shot.name}': {e}")
            self.issues.add_issue(
                stage="render",
                operation="image_fetch",
                message=str(e),
                severity="medium",
                exception=e,
            )
            return False
        self.surface.draw_image_fit(data, box)
        return True

    def _draw_caption(self, shot: ShotRecord, box: Rect) -> None:
        style = self.style
        x = box.x + style.inset
        width = box.width - 2 * style.inset
        clip = self.overflow_policy in ("clip", "grow")
        y = box.y

        for text, font, size in style.blocks(shot):
            max_height = box.bottom - y if clip else None
            if max_height is not None and max_height <= 0:
                break
            y += self.surface.draw_text(
                text, x, y, width,
                font=font, size=size, align=style.align,
                max_height=max_height,
            )

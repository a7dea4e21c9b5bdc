"""
Document assembly: normalize -> group -> lay out -> render -> publish.

One call builds one PDF. The only failures that abort the build are input
validation (before anything is drawn) and writing the finished file.
Everything per-shot is contained by the renderer and the layout engine.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from .config import ShotListSettings
from .errors import IssueCollector, PersistenceError, log_on_exception
from .grouping import group_by_scene
from .helpers import build_filename
from .images import ImageFetcher
from .layout import CellPlacement, HeaderPlacement, LayoutPlan, PageGeometry, plan_layout
from .logger import get_logger
from .normalizer import normalize
from .renderer import CaptionStyle, CellRenderer
from .surface import PdfSurface, resolve_header_font

logger = logging.getLogger(__name__)

TITLE_FONT = "Helvetica-Bold"
TITLE_SIZE = 22
COVER_TEXT_FONT = "Helvetica"
COVER_TEXT_SIZE = 12
HEADER_SIZE = 16


@dataclass
class DocumentResult:
    """Reference to a published document and what went into it."""

    filename: str
    path: str
    url: str
    page_count: int
    shot_count: int
    missing_images: int = 0
    skipped_shots: int = 0


def draw_cover_page(
    surface: PdfSurface,
    geometry: PageGeometry,
    title: Optional[str],
    description: Optional[str],
) -> None:
    """Title page: centred title with the description below it."""
    surface.add_page()
    area = geometry.usable
    y = area.y
    if title:
        y += surface.draw_text(title, area.x, y, area.width, font=TITLE_FONT, size=TITLE_SIZE, align="center")
        y += COVER_TEXT_SIZE
    if description:
        surface.draw_text(
            description, area.x, y, area.width,
            font=COVER_TEXT_FONT, size=COVER_TEXT_SIZE, align="center",
        )


def draw_scene_header(surface: PdfSurface, header: HeaderPlacement, font: str) -> None:
    """Scene label with a rule underneath, inside the header's band."""
    rect = header.rect
    size = min(HEADER_SIZE, rect.height / 1.6) if rect.height > 0 else HEADER_SIZE
    used = surface.draw_text(header.scene, rect.x, rect.y, rect.width, font=font, size=size, max_height=rect.height)
    rule_y = min(rect.y + used + 2, rect.bottom)
    surface.draw_line(rect.x, rule_y, rect.right, rule_y)


def render_plan(
    plan: LayoutPlan,
    surface: PdfSurface,
    renderer: CellRenderer,
    header_font: str,
) -> int:
    """
    Draw every page of the plan in order.

    Returns:
        Number of cells whose image was left blank
    """
    missing = 0
    for page in plan.pages:
        surface.add_page()
        for placement in page.placements:
            if isinstance(placement, HeaderPlacement):
                draw_scene_header(surface, placement, header_font)
            elif isinstance(placement, CellPlacement):
                if not renderer.render_cell(placement.shot, placement.image_rect, placement.caption_rect):
                    missing += 1
    return missing


def publish_pdf(data: bytes, output_dir: str, filename: str) -> Path:
    """
    Write the document under a temporary name, then rename it into place.

    Readers of the output directory never see a partially written file.

    Raises:
        PersistenceError: the directory or file could not be written
    """
    directory = Path(output_dir)
    final_path = directory / filename
    tmp_path = directory / f".{filename}.part"
    try:
        with log_on_exception(logger, "PDF publish", level=logging.ERROR, include_traceback=True):
            directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, final_path)
    except OSError as e:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError as cleanup_error:
                logger.warning(f"Could not remove partial file {tmp_path}: {cleanup_error}")
        raise PersistenceError(f"Failed to write {final_path}: {e}") from e
    return final_path


def build_document(
    fields: Mapping[str, Any],
    settings: ShotListSettings,
    title: Optional[str] = None,
    description: Optional[str] = None,
    fetcher: Optional[ImageFetcher] = None,
    request_id: Optional[str] = None,
) -> DocumentResult:
    """
    Build and publish one shot list PDF.

    Args:
        fields: Raw per-shot fields (images, scenes, sizes, descriptions, names)
        settings: Service settings (layout, output and image policy)
        title: Optional cover page title
        description: Optional cover page description
        fetcher: Image fetcher; one is created from settings when omitted
        request_id: Correlation id for log lines

    Returns:
        DocumentResult with the published filename and URL

    Raises:
        ShotListValidationError: no usable shots
        PersistenceError: the finished file could not be written
    """
    log = get_logger(__name__, request_id=request_id, stage="assemble")

    shots = normalize(fields, settings.join_separator)
    groups = group_by_scene(shots)
    log.info(f"Normalized {len(shots)} shots into {len(groups)} scene groups")

    issues = IssueCollector()
    style = CaptionStyle()
    plan = plan_layout(groups, settings, measure_caption=style.measure, issues=issues)
    log.info(
        f"Layout ({plan.mode}): {len(plan.pages)} pages, {len(plan.headers)} headers, "
        f"{len(plan.cells)} cells, {len(plan.skipped)} skipped"
    )

    geometry = PageGeometry.for_page_size(settings.page_size, settings.page_margin)
    surface = PdfSurface(geometry.width, geometry.height, title=title)
    header_font = resolve_header_font(settings.header_font_path)

    owns_fetcher = fetcher is None
    if fetcher is None:
        fetcher = ImageFetcher.from_settings(settings)
    try:
        if title or description:
            draw_cover_page(surface, geometry, title, description)
        renderer = CellRenderer(
            surface,
            fetcher,
            style=style,
            overflow_policy=settings.overflow_policy,
            issues=issues,
        )
        missing = render_plan(plan, surface, renderer, header_font)
    finally:
        if owns_fetcher:
            fetcher.close()

    data = surface.finish()
    filename = build_filename(title)
    path = publish_pdf(data, settings.output_dir, filename)

    if issues.count():
        render_log = log.child("render")
        render_log.warning(f"Completed with issues: {issues.summary()}")
        for issue in issues.issues:
            render_log.debug(f"Issue: {issue.to_dict()}")
    log.child("publish").info(f"Published {filename} ({len(data)} bytes, {surface.page_count} pages)")

    return DocumentResult(
        filename=filename,
        path=str(path),
        url=settings.pdf_url(filename),
        page_count=surface.page_count,
        shot_count=len(shots),
        missing_images=missing,
        skipped_shots=len(plan.skipped),
    )

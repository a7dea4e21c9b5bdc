"""
Page layout engine for shot list documents.

Turns scene groups into a LayoutPlan: an ordered list of pages, each holding
header and cell placements in draw order. Planning is pure (no drawing), so
the assembler can render the plan sequentially onto one append-only canvas.

Two policies share the same rules:
- GridLayout: fixed rows x cols thumbnails with a header band on top of the page
- FlowLayout: rows of image + caption block stacked by y-offset

Rules enforced by both:
- A scene header is never the last thing on its page (anti-orphan).
- A group spanning several pages draws its header once, on its first page.
- A group always starts at a row boundary.
- Cells never overlap and stay inside the page margins.
- Pages are appended only; nothing is placed on a page once a later page exists.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Union

from reportlab.lib.pagesizes import A4, LETTER

from .errors import IssueCollector, LayoutDegenerateError
from .types import Rect, SceneGroup, ShotRecord

logger = logging.getLogger(__name__)

PAGE_SIZES = {"a4": A4, "letter": LETTER}

# Measures the caption height a shot needs at a given cell width
CaptionMeasure = Callable[[ShotRecord, float], float]


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in points."""

    width: float
    height: float
    margin: float

    @classmethod
    def for_page_size(cls, page_size: str, margin: float) -> "PageGeometry":
        width, height = PAGE_SIZES[page_size.lower()]
        return cls(width=width, height=height, margin=margin)

    @property
    def usable(self) -> Rect:
        return Rect(
            self.margin,
            self.margin,
            self.width - 2 * self.margin,
            self.height - 2 * self.margin,
        )


@dataclass(frozen=True)
class HeaderPlacement:
    """Scene header band."""

    group_index: int
    scene: str
    rect: Rect


@dataclass(frozen=True)
class CellPlacement:
    """One shot's cell, split into its image box and caption box."""

    group_index: int
    shot_index: int            # 0-based position in the normalized sequence
    shot: ShotRecord
    rect: Rect
    image_rect: Rect
    caption_rect: Rect


Placement = Union[HeaderPlacement, CellPlacement]


@dataclass
class PagePlan:
    """Placements for one page, in draw order."""

    index: int
    placements: List[Placement] = field(default_factory=list)

    @property
    def headers(self) -> List[HeaderPlacement]:
        return [p for p in self.placements if isinstance(p, HeaderPlacement)]

    @property
    def cells(self) -> List[CellPlacement]:
        return [p for p in self.placements if isinstance(p, CellPlacement)]


@dataclass
class LayoutPlan:
    """Result of a layout run."""

    mode: str
    pages: List[PagePlan] = field(default_factory=list)
    skipped: List[ShotRecord] = field(default_factory=list)

    @property
    def cells(self) -> List[CellPlacement]:
        return [cell for page in self.pages for cell in page.cells]

    @property
    def headers(self) -> List[HeaderPlacement]:
        return [header for page in self.pages for header in page.headers]

    def pages_for_group(self, group_index: int) -> List[int]:
        """Indices of pages holding at least one cell of the group."""
        return sorted({
            page.index
            for page in self.pages
            for cell in page.cells
            if cell.group_index == group_index
        })


@dataclass
class PageCursor:
    """
    Mutable layout state for one document.

    ``page`` is None until the first page is allocated (NoPage state).
    ``row``/``col`` index the grid, ``y`` is the absolute top of the next row.
    """

    page: Optional[PagePlan] = None
    y: float = 0.0
    row: int = 0
    col: int = 0
    band_used: bool = False

    @property
    def on_page(self) -> bool:
        return self.page is not None

    def allocate_page(self, plan: LayoutPlan, top: float) -> PagePlan:
        self.page = PagePlan(index=len(plan.pages))
        plan.pages.append(self.page)
        self.y = top
        self.row = 0
        self.col = 0
        self.band_used = False
        return self.page

    def place(self, placement: Placement) -> None:
        if self.page is None:
            raise RuntimeError("No page allocated")
        self.page.placements.append(placement)


class LayoutEngine:
    """
    Base class for layout policies.

    Subclasses implement _check_geometry, _start_group and _place_shots.
    """

    mode = ""

    def __init__(
        self,
        geometry: PageGeometry,
        cols: int = 2,
        header_height: float = 30.0,
        new_page_per_scene: bool = False,
        issues: Optional[IssueCollector] = None,
    ):
        self.geometry = geometry
        self.cols = cols
        self.header_height = header_height
        self.new_page_per_scene = new_page_per_scene
        self.issues = issues if issues is not None else IssueCollector()
        self.usable = geometry.usable

    @property
    def cell_width(self) -> float:
        return self.usable.width / self.cols if self.cols > 0 else 0.0

    def plan(self, groups: Sequence[SceneGroup]) -> LayoutPlan:
        """
        Lay out all groups.

        Degenerate geometry does not raise: the shots are recorded as skipped
        and an empty plan is returned.
        """
        plan = LayoutPlan(mode=self.mode)
        try:
            self._check_geometry()
        except LayoutDegenerateError as e:
            logger.warning(f"[{self.mode}] Degenerate page geometry, skipping content: {e}")
            self.issues.add_issue(
                stage="layout",
                operation="page_geometry",
                message=str(e),
                severity="high",
                exception=e,
            )
            plan.skipped = [shot for group in groups for shot in group.shots]
            return plan

        cursor = PageCursor()
        shot_index = 0
        for group_index, group in enumerate(groups):
            if not cursor.on_page:
                cursor.allocate_page(plan, self.usable.y)
            elif self.new_page_per_scene and cursor.page.placements:
                cursor.allocate_page(plan, self.usable.y)

            self._start_group(plan, cursor, group_index, group)
            self._place_shots(plan, cursor, group_index, group, shot_index)
            shot_index += len(group)

        logger.debug(
            f"[{self.mode}] Planned {len(plan.cells)} cells, "
            f"{len(plan.headers)} headers on {len(plan.pages)} pages"
        )
        return plan

    def _check_geometry(self) -> None:
        if self.cell_width <= 0:
            raise LayoutDegenerateError(f"cell width {self.cell_width:.1f} is not positive")

    def _header_rect(self, y: float, height: float) -> Rect:
        return Rect(self.usable.x, y, self.usable.width, height)

    def _start_group(self, plan: LayoutPlan, cursor: PageCursor, group_index: int, group: SceneGroup) -> None:
        raise NotImplementedError

    def _place_shots(
        self,
        plan: LayoutPlan,
        cursor: PageCursor,
        group_index: int,
        group: SceneGroup,
        first_index: int,
    ) -> None:
        raise NotImplementedError


class GridLayout(LayoutEngine):
    """
    Fixed grid of ``rows`` x ``cols`` cells below a header band.

    The first header on a page sits in the band. A header that starts
    mid-page consumes one full grid row and needs at least one more row
    below it, otherwise it moves to a new page.
    """

    mode = "grid"

    def __init__(
        self,
        geometry: PageGeometry,
        rows: int = 4,
        cols: int = 2,
        header_height: float = 30.0,
        caption_height: float = 30.0,
        new_page_per_scene: bool = False,
        issues: Optional[IssueCollector] = None,
    ):
        super().__init__(geometry, cols, header_height, new_page_per_scene, issues)
        self.rows = rows
        self.caption_height = caption_height

    @property
    def grid_top(self) -> float:
        return self.usable.y + self.header_height

    @property
    def cell_height(self) -> float:
        if self.rows <= 0:
            return 0.0
        return (self.usable.height - self.header_height) / self.rows

    def _check_geometry(self) -> None:
        super()._check_geometry()
        if self.cell_height <= 0:
            raise LayoutDegenerateError(f"cell height {self.cell_height:.1f} is not positive")
        if self.cell_height - self.caption_height <= 0:
            raise LayoutDegenerateError(
                f"image box height {self.cell_height - self.caption_height:.1f} is not positive"
            )

    def _row_y(self, row: int) -> float:
        return self.grid_top + row * self.cell_height

    def _start_group(self, plan, cursor, group_index, group):
        # A group never starts mid-row
        if cursor.col != 0:
            cursor.row += 1
            cursor.col = 0
        if cursor.row >= self.rows:
            cursor.allocate_page(plan, self.usable.y)

        if not group.has_header:
            return

        if self._header_fits(cursor):
            self._place_header(cursor, group_index, group)
            return

        cursor.allocate_page(plan, self.usable.y)
        if self._header_fits(cursor):
            self._place_header(cursor, group_index, group)
        else:
            logger.warning(f"[grid] No room for header '{group.scene}' even on a fresh page")
            self.issues.add_issue(
                stage="layout",
                operation="header_placement",
                message=f"header '{group.scene}' dropped: grid has no row to spare",
                severity="low",
            )

    def _band_available(self, cursor: PageCursor) -> bool:
        return self.header_height > 0 and cursor.row == 0 and not cursor.band_used

    def _header_fits(self, cursor: PageCursor) -> bool:
        if self._band_available(cursor):
            return True
        # Header row plus at least one row of cells
        return cursor.row + 1 < self.rows

    def _place_header(self, cursor: PageCursor, group_index: int, group: SceneGroup) -> None:
        if self._band_available(cursor):
            rect = self._header_rect(self.usable.y, self.header_height)
            cursor.band_used = True
        else:
            rect = self._header_rect(self._row_y(cursor.row), self.cell_height)
            cursor.row += 1
        cursor.place(HeaderPlacement(group_index=group_index, scene=group.scene, rect=rect))

    def _place_shots(self, plan, cursor, group_index, group, first_index):
        cell_w = self.cell_width
        cell_h = self.cell_height
        image_h = cell_h - self.caption_height

        for offset, shot in enumerate(group.shots):
            if cursor.row >= self.rows:
                cursor.allocate_page(plan, self.usable.y)

            x = self.usable.x + cursor.col * cell_w
            y = self._row_y(cursor.row)
            cursor.place(CellPlacement(
                group_index=group_index,
                shot_index=first_index + offset,
                shot=shot,
                rect=Rect(x, y, cell_w, cell_h),
                image_rect=Rect(x, y, cell_w, image_h),
                caption_rect=Rect(x, y + image_h, cell_w, self.caption_height),
            ))

            cursor.col += 1
            if cursor.col >= self.cols:
                cursor.col = 0
                cursor.row += 1


class FlowLayout(LayoutEngine):
    """
    Rows of ``cols`` shots stacked top to bottom.

    Row height is image_height + text_height + row_spacing. With a caption
    measure, each row's text block grows to its tallest caption, capped so a
    row (plus a header) always fits on an empty page.
    """

    mode = "flow"

    def __init__(
        self,
        geometry: PageGeometry,
        cols: int = 2,
        header_height: float = 30.0,
        image_height: float = 150.0,
        text_height: float = 60.0,
        row_spacing: float = 12.0,
        new_page_per_scene: bool = False,
        measure_caption: Optional[CaptionMeasure] = None,
        issues: Optional[IssueCollector] = None,
    ):
        super().__init__(geometry, cols, header_height, new_page_per_scene, issues)
        self.image_height = image_height
        self.text_height = text_height
        self.row_spacing = row_spacing
        self.measure_caption = measure_caption

    @property
    def base_row_height(self) -> float:
        return self.image_height + self.text_height + self.row_spacing

    @property
    def rows_per_page(self) -> int:
        if self.base_row_height <= 0:
            return 0
        return int(self.usable.height // self.base_row_height)

    @property
    def bottom(self) -> float:
        return self.usable.bottom

    def _check_geometry(self) -> None:
        super()._check_geometry()
        if self.image_height <= 0 or self.text_height < 0:
            raise LayoutDegenerateError(
                f"row blocks image={self.image_height:.1f} text={self.text_height:.1f} are not positive"
            )
        if self.rows_per_page < 1:
            raise LayoutDegenerateError(
                f"row height {self.base_row_height:.1f} exceeds usable height {self.usable.height:.1f}"
            )
        if self.header_height + self.base_row_height > self.usable.height:
            raise LayoutDegenerateError(
                f"header {self.header_height:.1f} plus one row does not fit the page"
            )

    def _row_height(self, shots: Sequence[ShotRecord]) -> float:
        if self.measure_caption is None:
            return self.base_row_height
        needed = max(self.measure_caption(shot, self.cell_width) for shot in shots)
        text_h = max(self.text_height, needed)
        row_h = self.image_height + text_h + self.row_spacing
        return min(row_h, self.usable.height - self.header_height)

    def _fits(self, cursor: PageCursor, height: float) -> bool:
        return cursor.y + height <= self.bottom + 1e-6

    def _rows(self, group: SceneGroup) -> List[Sequence[ShotRecord]]:
        return [group.shots[i:i + self.cols] for i in range(0, len(group.shots), self.cols)]

    def _start_group(self, plan, cursor, group_index, group):
        if not group.has_header:
            return
        first_row_h = self._row_height(self._rows(group)[0])
        if not self._fits(cursor, self.header_height + first_row_h):
            cursor.allocate_page(plan, self.usable.y)
        cursor.place(HeaderPlacement(
            group_index=group_index,
            scene=group.scene,
            rect=self._header_rect(cursor.y, self.header_height),
        ))
        cursor.y += self.header_height

    def _place_shots(self, plan, cursor, group_index, group, first_index):
        cell_w = self.cell_width
        offset = 0
        for row_shots in self._rows(group):
            row_h = self._row_height(row_shots)
            if not self._fits(cursor, row_h):
                cursor.allocate_page(plan, self.usable.y)

            cell_h = row_h - self.row_spacing
            for col, shot in enumerate(row_shots):
                x = self.usable.x + col * cell_w
                cursor.place(CellPlacement(
                    group_index=group_index,
                    shot_index=first_index + offset,
                    shot=shot,
                    rect=Rect(x, cursor.y, cell_w, cell_h),
                    image_rect=Rect(x, cursor.y, cell_w, self.image_height),
                    caption_rect=Rect(
                        x, cursor.y + self.image_height, cell_w, cell_h - self.image_height
                    ),
                ))
                offset += 1
            cursor.y += row_h


def build_engine(
    settings,
    measure_caption: Optional[CaptionMeasure] = None,
    issues: Optional[IssueCollector] = None,
) -> LayoutEngine:
    """Create the layout engine selected by ``settings.layout_mode``."""
    geometry = PageGeometry.for_page_size(settings.page_size, settings.page_margin)
    if settings.layout_mode == "flow":
        return FlowLayout(
            geometry,
            cols=settings.grid_cols,
            header_height=settings.header_height,
            image_height=settings.image_height,
            text_height=settings.text_height,
            row_spacing=settings.row_spacing,
            new_page_per_scene=settings.new_page_per_scene,
            measure_caption=measure_caption if settings.overflow_policy == "grow" else None,
            issues=issues,
        )
    return GridLayout(
        geometry,
        rows=settings.grid_rows,
        cols=settings.grid_cols,
        header_height=settings.header_height,
        caption_height=settings.caption_height,
        new_page_per_scene=settings.new_page_per_scene,
        issues=issues,
    )


def plan_layout(
    groups: Sequence[SceneGroup],
    settings,
    measure_caption: Optional[CaptionMeasure] = None,
    issues: Optional[IssueCollector] = None,
) -> LayoutPlan:
    """Plan the pages for ``groups`` with the configured layout mode."""
    return build_engine(settings, measure_caption, issues).plan(groups)

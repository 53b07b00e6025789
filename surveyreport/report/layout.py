"""Pagination for the survey report.

The engine only tracks a cursor (page index + y offset from the page top) and
decides page breaks per block kind; it never draws. ``plan_survey_layout`` walks a
survey in document order and returns the full placement list, which both the PDF
renderer and the preview endpoint consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from reportlab.lib.utils import simpleSplit

from surveyreport.report.styles import FONT_BOLD, FONT_REGULAR
from surveyreport.types import Survey


PAGE_WIDTH = 595
PAGE_HEIGHT = 842
PAGE_MARGIN = 50
CONTENT_WIDTH = PAGE_WIDTH - PAGE_MARGIN * 2

LINE_LEADING_FACTOR = 1.2

COVER_HEIGHT = 130
DETAILS_HEIGHT = 114
STATUS_BADGE_HEIGHT = 35
LEGEND_HEIGHT = 20

SECTION_LEAD = 10
SECTION_HEADER_HEIGHT = 30
COLUMN_HEADERS_HEIGHT = 14
SECTION_DIVIDER_HEIGHT = 6
SECTION_GAP_HEIGHT = 6

ITEM_ROW_HEIGHT = 18
ITEM_LABEL_WIDTH = 220
ITEM_LABEL_FONT_SIZE = 9
ITEM_COMMENT_WIDTH = 175
ITEM_COMMENT_FONT_SIZE = 8
ITEM_DIVIDER_HEIGHT = 6

THUMB_WIDTH = 115
THUMB_HEIGHT = 80
THUMB_GUTTER = 8
PHOTO_COLUMNS = 3
PHOTO_ROW_HEIGHT = THUMB_HEIGHT + 6
PHOTO_GRID_GAP = 4

FOOTER_TOP = 820
FOOTER_HEIGHT = 22

GLOBAL_PHOTOS_TITLE = 'GENERAL PHOTOS'
EMPTY_VALUE = '—'


class BlockKind(str, Enum):
    cover = 'cover'
    details = 'details'
    status_badge = 'status_badge'
    legend = 'legend'
    section_header = 'section_header'
    column_headers = 'column_headers'
    section_divider = 'section_divider'
    item_row = 'item_row'
    photo_row = 'photo_row'
    photo_gap = 'photo_gap'
    item_divider = 'item_divider'
    section_gap = 'section_gap'


@dataclass(frozen=True)
class BreakRule:
    """Break before a block when ``cursor + probe`` passes ``threshold``.

    With ``bottom`` set, the block also breaks when its own height would carry
    it past ``bottom``.
    """

    threshold: float
    probe: float = 0.0
    bottom: float | None = None

    def breaks(self, cursor_y: float, height: float = 0.0) -> bool:
        if cursor_y + self.probe > self.threshold:
            return True
        return self.bottom is not None and cursor_y + height > self.bottom


# Thresholds stay per kind; the footer band starts at 820 so the unsafe zone differs.
BREAK_RULES: dict[BlockKind, BreakRule] = {
    BlockKind.section_header: BreakRule(700),
    BlockKind.item_row: BreakRule(720, bottom=FOOTER_TOP),
    BlockKind.photo_row: BreakRule(760, probe=THUMB_HEIGHT + 10),
}


@dataclass
class LayoutCursor:
    page: int = 0
    y: float = PAGE_MARGIN


@dataclass(frozen=True)
class Placement:
    kind: BlockKind
    page: int
    y: float
    height: float
    broke: bool = False


class LayoutEngine:
    def __init__(self, cursor: LayoutCursor | None = None):
        self.cursor = cursor if cursor is not None else LayoutCursor()

    @property
    def page_count(self) -> int:
        return self.cursor.page + 1

    def place_at(self, kind: BlockKind, y: float, height: float) -> Placement:
        """Pin a block at an absolute offset on the current page; no break check."""
        self.cursor.y = y + height
        return Placement(kind=kind, page=self.cursor.page, y=y, height=height)

    def place(self, kind: BlockKind, height: float, *, lead: float = 0.0) -> Placement:
        # The lead gap is spent before the break check and dropped when a break happens.
        self.cursor.y += lead
        broke = False
        rule = BREAK_RULES.get(kind)
        # A block already at the top of a page has nowhere better to go.
        at_page_top = self.cursor.y <= PAGE_MARGIN
        if rule is not None and not at_page_top and rule.breaks(self.cursor.y, height):
            self.cursor.page += 1
            self.cursor.y = PAGE_MARGIN
            broke = True
        placement = Placement(kind=kind, page=self.cursor.page, y=self.cursor.y, height=height, broke=broke)
        self.cursor.y += height
        return placement


def _line_count(text: str, font_name: str, font_size: float, width: float) -> int:
    lines = simpleSplit(str(text or ''), font_name, font_size, width)
    return max(1, len(lines))


def item_row_height(label: str, comments: str) -> float:
    label_extra = (_line_count(label, FONT_BOLD, ITEM_LABEL_FONT_SIZE, ITEM_LABEL_WIDTH) - 1) * (
        ITEM_LABEL_FONT_SIZE * LINE_LEADING_FACTOR
    )
    comment_extra = (
        _line_count(comments or EMPTY_VALUE, FONT_REGULAR, ITEM_COMMENT_FONT_SIZE, ITEM_COMMENT_WIDTH) - 1
    ) * (ITEM_COMMENT_FONT_SIZE * LINE_LEADING_FACTOR)
    return ITEM_ROW_HEIGHT + max(label_extra, comment_extra)


def thumb_x(column: int) -> float:
    return PAGE_MARGIN + column * (THUMB_WIDTH + THUMB_GUTTER)


@dataclass(frozen=True)
class PhotoSlot:
    url: str
    number: int
    column: int

    @property
    def x(self) -> float:
        return thumb_x(self.column)


@dataclass(frozen=True)
class PlacedBlock:
    kind: BlockKind
    page: int
    y: float
    height: float
    broke: bool = False
    section_index: int | None = None
    item_index: int | None = None
    title: str = ''
    photos: tuple[PhotoSlot, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            'kind': self.kind.value,
            'page': self.page,
            'y': self.y,
            'height': self.height,
            'pageBreak': self.broke,
        }
        if self.section_index is not None:
            payload['sectionIndex'] = self.section_index
        if self.item_index is not None:
            payload['itemIndex'] = self.item_index
        if self.title:
            payload['title'] = self.title
        if self.photos:
            payload['photos'] = [
                {'url': slot.url, 'number': slot.number, 'column': slot.column, 'x': slot.x}
                for slot in self.photos
            ]
        return payload


@dataclass
class LayoutPlan:
    blocks: list[PlacedBlock] = field(default_factory=list)
    page_count: int = 1

    @property
    def photo_urls(self) -> list[str]:
        """Every photo in caption order, so ``photo_urls[n - 1]`` is "Photo n"."""
        return [slot.url for block in self.blocks for slot in block.photos]

    def pages(self) -> list[list[PlacedBlock]]:
        grouped: list[list[PlacedBlock]] = [[] for _ in range(self.page_count)]
        for block in self.blocks:
            grouped[block.page].append(block)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            'pageWidth': PAGE_WIDTH,
            'pageHeight': PAGE_HEIGHT,
            'margin': PAGE_MARGIN,
            'pageCount': self.page_count,
            'blocks': [block.to_dict() for block in self.blocks],
        }


class _Planner:
    def __init__(self) -> None:
        self.engine = LayoutEngine()
        self.blocks: list[PlacedBlock] = []
        self.photo_counter = 0

    def add(self, placement: Placement, **extra: Any) -> PlacedBlock:
        block = PlacedBlock(
            kind=placement.kind,
            page=placement.page,
            y=placement.y,
            height=placement.height,
            broke=placement.broke,
            **extra,
        )
        self.blocks.append(block)
        return block

    def photo_grid(self, urls: list[str], **extra: Any) -> None:
        for start in range(0, len(urls), PHOTO_COLUMNS):
            row: list[PhotoSlot] = []
            for column, url in enumerate(urls[start:start + PHOTO_COLUMNS]):
                self.photo_counter += 1
                row.append(PhotoSlot(url=url, number=self.photo_counter, column=column))
            placement = self.engine.place(BlockKind.photo_row, PHOTO_ROW_HEIGHT)
            self.add(placement, photos=tuple(row), **extra)
        self.add(self.engine.place(BlockKind.photo_gap, PHOTO_GRID_GAP), **extra)


def plan_survey_layout(survey: Survey) -> LayoutPlan:
    planner = _Planner()
    engine = planner.engine

    planner.add(engine.place_at(BlockKind.cover, 0, COVER_HEIGHT))
    planner.add(engine.place(BlockKind.details, DETAILS_HEIGHT))
    planner.add(engine.place(BlockKind.status_badge, STATUS_BADGE_HEIGHT))
    planner.add(engine.place(BlockKind.legend, LEGEND_HEIGHT))

    for s_idx, section in enumerate(survey.sections):
        planner.add(
            engine.place(BlockKind.section_header, SECTION_HEADER_HEIGHT, lead=SECTION_LEAD),
            section_index=s_idx,
            title=section.room_name.upper(),
        )
        planner.add(engine.place(BlockKind.column_headers, COLUMN_HEADERS_HEIGHT), section_index=s_idx)
        planner.add(engine.place(BlockKind.section_divider, SECTION_DIVIDER_HEIGHT), section_index=s_idx)

        for i_idx, item in enumerate(section.items):
            where = {'section_index': s_idx, 'item_index': i_idx}
            planner.add(engine.place(BlockKind.item_row, item_row_height(item.label, item.comments)), **where)
            if item.photos:
                planner.photo_grid(list(item.photos), **where)
            planner.add(engine.place(BlockKind.item_divider, ITEM_DIVIDER_HEIGHT), **where)

        planner.add(engine.place(BlockKind.section_gap, SECTION_GAP_HEIGHT), section_index=s_idx)

    if survey.global_photos:
        planner.add(
            engine.place(BlockKind.section_header, SECTION_HEADER_HEIGHT, lead=SECTION_LEAD),
            title=GLOBAL_PHOTOS_TITLE,
        )
        planner.photo_grid(list(survey.global_photos))

    return LayoutPlan(blocks=planner.blocks, page_count=engine.page_count)

from __future__ import annotations

import logging
import re
import traceback
from datetime import date
from typing import Iterator, Protocol, Sequence

from surveyreport.adapters.image_fetch import FetchResult, build_image_fetcher
from surveyreport.config import get_settings
from surveyreport.errors import RenderError
from surveyreport.report.layout import (
    CONTENT_WIDTH,
    EMPTY_VALUE,
    FOOTER_HEIGHT,
    FOOTER_TOP,
    ITEM_COMMENT_FONT_SIZE,
    ITEM_COMMENT_WIDTH,
    ITEM_LABEL_FONT_SIZE,
    ITEM_LABEL_WIDTH,
    PAGE_HEIGHT,
    PAGE_MARGIN,
    PAGE_WIDTH,
    THUMB_HEIGHT,
    THUMB_WIDTH,
    BlockKind,
    LayoutPlan,
    PlacedBlock,
    plan_survey_layout,
)
from surveyreport.report.styles import (
    ACCENT,
    BORDER,
    BOX_FILL,
    COMMENT_TEXT,
    FONT_BOLD,
    FONT_REGULAR,
    INK_DARK,
    LABEL,
    LEGEND_STATUSES,
    LEGEND_TEXT,
    MUTED,
    PLACEHOLDER_FILL,
    VALUE,
    WHITE,
    status_style,
    survey_badge_color,
)
from surveyreport.report.surface import PageSurface, load_image
from surveyreport.types import Survey


logger = logging.getLogger(__name__)

REPORT_TITLE = 'PROPERTY CONDITION SURVEY'
REPORT_SUBTITLE = 'Professional Property Inspection Report'
FOOTER_LABEL = 'Property Condition Survey'
PLACEHOLDER_TEXT = 'Image unavailable'
CONTENT_TYPE = 'application/pdf'


class PhotoFetcher(Protocol):
    def fetch_all_blocking(self, urls: Sequence[str]) -> list[FetchResult]: ...


def report_filename(survey: Survey) -> str:
    token = str(survey.property_details.unit_number or '').strip() or str(survey.id)
    token = re.sub(r'[^A-Za-z0-9._-]+', '-', token).strip('-.') or str(survey.id)
    return f'survey-{token}.pdf'


def format_survey_date(value: date | None) -> str:
    if value is None:
        return EMPTY_VALUE
    return value.strftime('%d %B %Y')


def footer_text(survey: Survey, page_number: int, page_count: int) -> str:
    building = survey.property_details.building_name or ''
    return f'{FOOTER_LABEL}  •  {building}  •  Page {page_number} of {page_count}'


class _SurveyRenderer:
    def __init__(self, survey: Survey, surface: PageSurface, photos: Sequence[FetchResult]):
        self.survey = survey
        self.surface = surface
        self.photos = photos
        self.placeholders = 0

    def _page(self, block: PlacedBlock) -> int:
        while self.surface.page_count <= block.page:
            self.surface.add_page()
        return block.page

    def draw(self, block: PlacedBlock) -> None:
        page = self._page(block)
        handler = {
            BlockKind.cover: self._cover,
            BlockKind.details: self._details,
            BlockKind.status_badge: self._status_badge,
            BlockKind.legend: self._legend,
            BlockKind.section_header: self._section_header,
            BlockKind.column_headers: self._column_headers,
            BlockKind.section_divider: self._section_divider,
            BlockKind.item_row: self._item_row,
            BlockKind.photo_row: self._photo_row,
            BlockKind.item_divider: self._item_divider,
        }.get(block.kind)
        if handler is not None:
            handler(page, block)

    def _cover(self, page: int, block: PlacedBlock) -> None:
        s = self.surface
        s.draw_rect(page, 0, 0, PAGE_WIDTH, 110, fill=INK_DARK)
        s.draw_text(page, PAGE_MARGIN, 28, REPORT_TITLE, font=FONT_BOLD, size=22, color=ACCENT)
        s.draw_text(page, PAGE_MARGIN, 56, REPORT_SUBTITLE, font=FONT_REGULAR, size=10, color=MUTED)
        s.draw_rect(page, 0, 110, PAGE_WIDTH, 4, fill=ACCENT)

    def _details(self, page: int, block: PlacedBlock) -> None:
        s = self.surface
        pd = self.survey.property_details
        y = block.y
        s.draw_rect(page, PAGE_MARGIN, y, CONTENT_WIDTH, 120, fill=BOX_FILL, stroke=BORDER)
        s.draw_text(page, PAGE_MARGIN + 10, y + 10, 'PROPERTY DETAILS', font=FONT_BOLD, size=11, color=INK_DARK)

        rows_top = y + 28
        half_width = CONTENT_WIDTH / 2 - 10
        columns = (
            (
                PAGE_MARGIN + 10,
                [
                    ('Unit / Property No.', pd.unit_number),
                    ('Building / Complex', pd.building_name),
                    ('Address', pd.address),
                ],
            ),
            (
                PAGE_MARGIN + half_width + 20,
                [
                    ('Property Type', pd.property_type),
                    ('Inspector', pd.inspector),
                    ('Date', format_survey_date(pd.date)),
                ],
            ),
        )
        for col_x, rows in columns:
            for n, (label, value) in enumerate(rows):
                row_y = rows_top + n * 22
                s.draw_text(page, col_x, row_y, label, font=FONT_REGULAR, size=8, color=LABEL)
                s.draw_text(page, col_x, row_y + 9, value or EMPTY_VALUE, font=FONT_BOLD, size=10, color=VALUE)

    def _status_badge(self, page: int, block: PlacedBlock) -> None:
        status = self.survey.status
        self.surface.draw_rounded_rect(page, PAGE_MARGIN, block.y, 100, 22, 4, fill=survey_badge_color(status))
        self.surface.draw_text(
            page,
            PAGE_MARGIN,
            block.y + 7,
            status.value.upper(),
            font=FONT_BOLD,
            size=9,
            color=WHITE,
            width=100,
            align='center',
        )

    def _legend(self, page: int, block: PlacedBlock) -> None:
        s = self.surface
        y = block.y
        s.draw_text(page, PAGE_MARGIN, y, 'LEGEND:', font=FONT_REGULAR, size=8, color=LABEL)
        x = PAGE_MARGIN + 45
        for status in LEGEND_STATUSES:
            style = status_style(status)
            s.draw_rounded_rect(page, x, y - 1, 8, 8, 2, fill=style.color)
            s.draw_text(page, x + 11, y, style.label, font=FONT_REGULAR, size=8, color=LEGEND_TEXT)
            x += len(style.label) * 6 + 22

    def _section_header(self, page: int, block: PlacedBlock) -> None:
        self.surface.draw_rect(page, PAGE_MARGIN, block.y, CONTENT_WIDTH, 24, fill=INK_DARK)
        self.surface.draw_text(page, PAGE_MARGIN + 10, block.y + 7, block.title, font=FONT_BOLD, size=12, color=ACCENT)

    def _column_headers(self, page: int, block: PlacedBlock) -> None:
        for offset, label in ((0, 'ITEM'), (230, 'STATUS'), (310, 'COMMENTS')):
            self.surface.draw_text(page, PAGE_MARGIN + offset, block.y, label, font=FONT_REGULAR, size=8, color=LABEL)

    def _section_divider(self, page: int, block: PlacedBlock) -> None:
        self.surface.draw_rect(page, PAGE_MARGIN, block.y, CONTENT_WIDTH, 1, fill=BORDER)

    def _item_row(self, page: int, block: PlacedBlock) -> None:
        s = self.surface
        item = self.survey.sections[block.section_index].items[block.item_index]
        style = status_style(item.status)
        y = block.y

        s.draw_text(
            page,
            PAGE_MARGIN,
            y,
            item.label,
            font=FONT_BOLD,
            size=ITEM_LABEL_FONT_SIZE,
            color=VALUE,
            width=ITEM_LABEL_WIDTH,
        )
        s.draw_rounded_rect(page, PAGE_MARGIN + 228, y - 2, 70, 14, 3, fill=style.color)
        s.draw_text(
            page,
            PAGE_MARGIN + 228,
            y + 2,
            style.label,
            font=FONT_BOLD,
            size=7.5,
            color=WHITE,
            width=70,
            align='center',
        )
        s.draw_text(
            page,
            PAGE_MARGIN + 308,
            y,
            item.comments or EMPTY_VALUE,
            font=FONT_REGULAR,
            size=ITEM_COMMENT_FONT_SIZE,
            color=COMMENT_TEXT,
            width=ITEM_COMMENT_WIDTH,
        )

    def _drawable(self, result: FetchResult) -> bool:
        if not result.ok:
            return False
        try:
            load_image(result.data)
        except Exception as exc:
            logger.warning('Photo %s cannot be decoded, using placeholder: %s', result.url, exc)
            return False
        return True

    def _photo_row(self, page: int, block: PlacedBlock) -> None:
        s = self.surface
        y = block.y
        for slot in block.photos:
            x = slot.x
            result = self.photos[slot.number - 1]
            if self._drawable(result):
                s.draw_image(page, x, y, THUMB_WIDTH, THUMB_HEIGHT, result.data)
                s.draw_rect(page, x, y, THUMB_WIDTH, THUMB_HEIGHT, stroke=BORDER)
            else:
                self.placeholders += 1
                s.draw_rect(page, x, y, THUMB_WIDTH, THUMB_HEIGHT, fill=PLACEHOLDER_FILL, stroke=BORDER)
                s.draw_text(
                    page,
                    x,
                    y + THUMB_HEIGHT / 2 - 5,
                    PLACEHOLDER_TEXT,
                    font=FONT_REGULAR,
                    size=7,
                    color=MUTED,
                    width=THUMB_WIDTH,
                    align='center',
                )
            # Caption sits inside the thumbnail box so numbering never moves the layout.
            s.draw_rect(page, x, y + THUMB_HEIGHT - 11, THUMB_WIDTH, 11, fill=INK_DARK)
            s.draw_text(
                page,
                x + 4,
                y + THUMB_HEIGHT - 9,
                f'Photo {slot.number}',
                font=FONT_BOLD,
                size=6.5,
                color=WHITE,
            )

    def _item_divider(self, page: int, block: PlacedBlock) -> None:
        self.surface.draw_rect(page, PAGE_MARGIN, block.y, CONTENT_WIDTH, 0.5, fill=PLACEHOLDER_FILL)

    def stamp_footers(self) -> None:
        total = self.surface.page_count
        for index in range(total):
            self.surface.draw_rect(index, 0, FOOTER_TOP, PAGE_WIDTH, FOOTER_HEIGHT, fill=INK_DARK)
            self.surface.draw_text(
                index,
                PAGE_MARGIN,
                FOOTER_TOP + 6,
                footer_text(self.survey, index + 1, total),
                font=FONT_REGULAR,
                size=7,
                color=LABEL,
                width=CONTENT_WIDTH,
                align='center',
            )


def render_survey_surface(
    survey: Survey,
    *,
    fetcher: PhotoFetcher | None = None,
    plan: LayoutPlan | None = None,
) -> PageSurface:
    """Lay out and draw every page, footers included, without serializing."""
    plan = plan if plan is not None else plan_survey_layout(survey)
    urls = plan.photo_urls
    photos: list[FetchResult] = []
    if urls:
        photos = (fetcher if fetcher is not None else build_image_fetcher()).fetch_all_blocking(urls)
        if len(photos) != len(urls):
            raise RenderError(f'photo fetch returned {len(photos)} results for {len(urls)} urls')

    pd = survey.property_details
    surface = PageSurface(
        PAGE_WIDTH,
        PAGE_HEIGHT,
        title=f'Property Condition Survey {pd.unit_number}'.strip(),
        author=pd.inspector,
        producer=get_settings().report_producer,
    )
    renderer = _SurveyRenderer(survey, surface, photos)
    for block in plan.blocks:
        renderer.draw(block)
    renderer.stamp_footers()

    if renderer.placeholders:
        logger.info('Survey %s rendered with %s photo placeholder(s)', survey.id, renderer.placeholders)
    return surface


def build_survey_report_pdf(survey: Survey, *, fetcher: PhotoFetcher | None = None) -> bytes:
    try:
        surface = render_survey_surface(survey, fetcher=fetcher)
        pdf_bytes = surface.finalize()
    except RenderError:
        raise
    except Exception as exc:
        logger.error('Failed to render survey report %s: %s', survey.id, exc)
        logger.error(traceback.format_exc())
        raise RenderError(f'failed to render survey report: {exc}') from exc
    logger.info('Rendered survey report %s: %s pages, %s bytes', survey.id, surface.page_count, len(pdf_bytes))
    return pdf_bytes


def _chunks(data: bytes, chunk_size: int) -> Iterator[bytes]:
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


def stream_survey_report(
    survey: Survey,
    *,
    fetcher: PhotoFetcher | None = None,
    chunk_size: int = 64 * 1024,
) -> Iterator[bytes]:
    # Built in full before the first chunk leaves, so callers never see a truncated document.
    data = build_survey_report_pdf(survey, fetcher=fetcher)
    return _chunks(data, max(1, int(chunk_size)))

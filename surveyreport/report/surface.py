from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Union

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen.canvas import Canvas

from surveyreport.report.layout import LINE_LEADING_FACTOR


# Baseline of the first text line, as a fraction of font size below the text top.
_BASELINE_FACTOR = 0.8


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: str | None = None
    stroke: str | None = None
    line_width: float = 1.0


@dataclass(frozen=True)
class RoundedRectOp:
    x: float
    y: float
    width: float
    height: float
    radius: float
    fill: str


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    font: str
    size: float
    color: str
    width: float | None = None
    align: str = 'left'


@dataclass(frozen=True)
class ImageOp:
    x: float
    y: float
    width: float
    height: float
    data: bytes = field(repr=False)


DrawOp = Union[RectOp, RoundedRectOp, TextOp, ImageOp]


def load_image(data: bytes) -> ImageReader:
    """Fully decode image bytes; raises on truncated or corrupt data."""
    image = ImageReader(io.BytesIO(data))
    image.getRGBData()
    return image


@dataclass
class Page:
    index: int
    ops: list[DrawOp] = field(default_factory=list)


class PageSurface:
    """Multi-page canvas with top-left coordinates.

    Pages stay addressable and mutable until ``finalize``; nothing is serialized
    before then, so a later pass can still draw onto page 0.
    """

    def __init__(
        self,
        width: float,
        height: float,
        *,
        title: str = '',
        author: str = '',
        producer: str = '',
    ):
        self.width = width
        self.height = height
        self.title = title
        self.author = author
        self.producer = producer
        self.pages: list[Page] = [Page(index=0)]
        self.current = 0
        self._finalized = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def add_page(self) -> int:
        self._check_open()
        self.pages.append(Page(index=len(self.pages)))
        self.current = len(self.pages) - 1
        return self.current

    def page(self, index: int) -> Page:
        if index < 0 or index >= len(self.pages):
            raise IndexError(f'page {index} does not exist (page count {len(self.pages)})')
        return self.pages[index]

    def _record(self, page: int, op: DrawOp) -> None:
        self._check_open()
        self.page(page).ops.append(op)

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError('surface already finalized')

    def draw_rect(
        self,
        page: int,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        fill: str | None = None,
        stroke: str | None = None,
        line_width: float = 1.0,
    ) -> None:
        self._record(page, RectOp(x, y, width, height, fill=fill, stroke=stroke, line_width=line_width))

    def draw_rounded_rect(
        self,
        page: int,
        x: float,
        y: float,
        width: float,
        height: float,
        radius: float,
        *,
        fill: str,
    ) -> None:
        self._record(page, RoundedRectOp(x, y, width, height, radius, fill))

    def draw_text(
        self,
        page: int,
        x: float,
        y: float,
        text: str,
        *,
        font: str,
        size: float,
        color: str,
        width: float | None = None,
        align: str = 'left',
    ) -> None:
        self._record(page, TextOp(x, y, str(text), font, size, color, width=width, align=align))

    def draw_image(self, page: int, x: float, y: float, width: float, height: float, data: bytes) -> None:
        self._record(page, ImageOp(x, y, width, height, data))

    def finalize(self) -> bytes:
        self._check_open()
        buffer = io.BytesIO()
        canvas = Canvas(buffer, pagesize=(self.width, self.height))
        if self.title:
            canvas.setTitle(self.title)
        if self.author:
            canvas.setAuthor(self.author)
        if self.producer:
            canvas.setProducer(self.producer)

        for page in self.pages:
            for op in page.ops:
                self._replay(canvas, op)
            canvas.showPage()
        canvas.save()
        self._finalized = True
        return buffer.getvalue()

    def _pdf_y(self, top: float, height: float = 0.0) -> float:
        return self.height - top - height

    def _replay(self, canvas: Canvas, op: DrawOp) -> None:
        canvas.saveState()
        try:
            if isinstance(op, RectOp):
                if op.fill:
                    canvas.setFillColor(colors.HexColor(op.fill))
                if op.stroke:
                    canvas.setStrokeColor(colors.HexColor(op.stroke))
                    canvas.setLineWidth(op.line_width)
                canvas.rect(
                    op.x,
                    self._pdf_y(op.y, op.height),
                    op.width,
                    op.height,
                    stroke=1 if op.stroke else 0,
                    fill=1 if op.fill else 0,
                )
            elif isinstance(op, RoundedRectOp):
                canvas.setFillColor(colors.HexColor(op.fill))
                canvas.roundRect(op.x, self._pdf_y(op.y, op.height), op.width, op.height, op.radius, stroke=0, fill=1)
            elif isinstance(op, TextOp):
                self._replay_text(canvas, op)
            elif isinstance(op, ImageOp):
                self._replay_image(canvas, op)
            else:
                raise TypeError(f'unknown draw op: {op!r}')
        finally:
            canvas.restoreState()

    def _replay_text(self, canvas: Canvas, op: TextOp) -> None:
        canvas.setFillColor(colors.HexColor(op.color))
        canvas.setFont(op.font, op.size)
        if op.width:
            lines = simpleSplit(op.text, op.font, op.size, op.width) or ['']
        else:
            lines = op.text.splitlines() or ['']
        leading = op.size * LINE_LEADING_FACTOR
        for n, line in enumerate(lines):
            baseline = self._pdf_y(op.y + op.size * _BASELINE_FACTOR + n * leading)
            if op.align == 'center' and op.width:
                canvas.drawCentredString(op.x + op.width / 2, baseline, line)
            else:
                canvas.drawString(op.x, baseline, line)

    def _replay_image(self, canvas: Canvas, op: ImageOp) -> None:
        image = load_image(op.data)
        img_w, img_h = image.getSize()
        # Fill the box and crop the overflow, keeping the image centred.
        scale = max(op.width / img_w, op.height / img_h)
        draw_w = img_w * scale
        draw_h = img_h * scale
        left = op.x + (op.width - draw_w) / 2
        top = op.y + (op.height - draw_h) / 2

        clip = canvas.beginPath()
        clip.rect(op.x, self._pdf_y(op.y, op.height), op.width, op.height)
        canvas.clipPath(clip, stroke=0, fill=0)
        canvas.drawImage(image, left, self._pdf_y(top, draw_h), width=draw_w, height=draw_h, mask='auto')

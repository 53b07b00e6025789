import io

import pytest
from pypdf import PdfReader

from conftest import png_bytes
from surveyreport.report.surface import ImageOp, PageSurface, RectOp, TextOp


def _surface():
    return PageSurface(595, 842, title='Test', author='Inspector', producer='tests')


def test_starts_with_one_page():
    surface = _surface()
    assert surface.page_count == 1
    assert surface.current == 0


def test_add_page_appends_and_becomes_current():
    surface = _surface()
    assert surface.add_page() == 1
    assert surface.add_page() == 2
    assert surface.page_count == 3
    assert surface.current == 2


def test_earlier_pages_stay_drawable():
    surface = _surface()
    surface.add_page()
    surface.add_page()
    surface.draw_text(0, 50, 826, 'late footer', font='Helvetica', size=7, color='#64748b')
    assert surface.page(0).ops == [TextOp(50, 826, 'late footer', 'Helvetica', 7, '#64748b')]
    assert surface.page(2).ops == []


def test_unknown_page_raises():
    surface = _surface()
    with pytest.raises(IndexError):
        surface.draw_rect(3, 0, 0, 10, 10, fill='#000000')


def test_finalize_serializes_every_page_in_order():
    surface = _surface()
    surface.add_page()
    surface.add_page()
    for index in range(surface.page_count):
        surface.draw_text(index, 50, 100, f'marker {index}', font='Helvetica', size=12, color='#000000')
    surface.draw_rect(1, 50, 200, 100, 40, fill='#f8fafc', stroke='#e2e8f0')
    surface.draw_rounded_rect(1, 50, 300, 70, 14, 3, fill='#22c55e')
    surface.draw_image(2, 50, 400, 115, 80, png_bytes())

    reader = PdfReader(io.BytesIO(surface.finalize()))
    assert len(reader.pages) == 3
    for index, page in enumerate(reader.pages):
        assert f'marker {index}' in page.extract_text()


def test_wrapped_text_is_recorded_once_and_rendered():
    surface = _surface()
    surface.draw_text(
        0, 358, 400, 'word ' * 80, font='Helvetica', size=8, color='#475569', width=175,
    )
    assert len(surface.page(0).ops) == 1
    assert surface.finalize().startswith(b'%PDF')


def test_drawing_after_finalize_is_rejected():
    surface = _surface()
    surface.finalize()
    with pytest.raises(RuntimeError):
        surface.add_page()
    with pytest.raises(RuntimeError):
        surface.draw_rect(0, 0, 0, 1, 1, fill='#000000')


def test_ops_are_recorded_with_top_left_coordinates():
    surface = _surface()
    surface.draw_rect(0, 0, 820, 595, 22, fill='#0f172a')
    surface.draw_image(0, 50, 100, 115, 80, b'raw')
    rect, image = surface.page(0).ops
    assert rect == RectOp(0, 820, 595, 22, fill='#0f172a')
    assert isinstance(image, ImageOp) and (image.x, image.y) == (50, 100)

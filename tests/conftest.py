import io
import random

import pytest
from PIL import Image

from surveyreport.adapters.image_fetch import FetchResult
from surveyreport.config import get_settings
from surveyreport.errors import ImageFetchError
from surveyreport.types import Survey


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
    get_settings.cache_clear()
    yield tmp_path / 'data'
    get_settings.cache_clear()


def png_bytes(width=40, height=30, color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, format='PNG')
    return buffer.getvalue()


def truncated_png_bytes(width=200, height=200):
    """A PNG whose header is intact but whose pixel data stops halfway."""
    noise = random.Random(7).randbytes(width * height * 3)
    buffer = io.BytesIO()
    Image.frombytes('RGB', (width, height), noise).save(buffer, format='PNG')
    whole = buffer.getvalue()
    return whole[: len(whole) // 2]


class StubFetcher:
    """Serves images from a url -> bytes map; anything else fails."""

    def __init__(self, images=None):
        self.images = images or {}
        self.calls = []

    def fetch_all_blocking(self, urls):
        self.calls.append(list(urls))
        results = []
        for url in urls:
            data = self.images.get(url)
            if data is None:
                results.append(FetchResult(url=url, error=ImageFetchError(url, 'HTTP 404')))
            else:
                results.append(FetchResult(url=url, data=data, width=40, height=30))
        return results


@pytest.fixture
def stub_fetcher():
    return StubFetcher()


def make_survey(sections=None, global_photos=None, **details):
    payload = {
        'propertyDetails': {
            'unitNumber': details.get('unit', 'A-101'),
            'buildingName': details.get('building', 'Harbour View'),
            'address': '1 Quay Street',
            'propertyType': 'Apartment',
            'inspector': 'J. Doe',
            'date': '2024-03-05T09:30:00.000Z',
        },
        'sections': sections or [],
        'globalPhotos': global_photos or [],
        'status': details.get('status', 'Draft'),
    }
    return Survey.model_validate(payload)


def make_item(label, status='', photos=0, comments='', prefix=None):
    tag = prefix or label.lower().replace(' ', '-')
    return {
        'label': label,
        'status': status,
        'photos': [f'https://img.example/{tag}/{n}.jpg' for n in range(photos)],
        'comments': comments,
    }


@pytest.fixture
def kitchen_bathroom_survey():
    return make_survey(
        sections=[
            {
                'roomName': 'Kitchen',
                'items': [
                    make_item('Sink', 'Good'),
                    make_item('Oven', 'Need Action', photos=4, comments='Door seal is torn'),
                    make_item('Extractor fan', 'N/A'),
                ],
            },
            {'roomName': 'Bathroom', 'items': [make_item('Shower', 'Good')]},
        ]
    )

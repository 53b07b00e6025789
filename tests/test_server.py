import io

import pytest
from pypdf import PdfReader

from conftest import StubFetcher, png_bytes
from surveyreport.server import create_app


SURVEY = {
    'propertyDetails': {'unitNumber': 'C-7', 'buildingName': 'Riverside', 'inspector': 'A. Smith'},
    'sections': [
        {
            'roomName': 'Living Room',
            'items': [
                {'label': 'Windows', 'status': 'Good', 'photos': ['https://img.example/ok.png']},
                {'label': 'Carpet', 'status': 'Need Action', 'photos': ['https://img.example/broken.png']},
            ],
        },
        {'roomName': 'Bedroom', 'items': []},
    ],
    'globalPhotos': ['https://img.example/facade.png'],
}


@pytest.fixture
def fetcher():
    return StubFetcher({'https://img.example/ok.png': png_bytes()})


@pytest.fixture
def client(fetcher):
    app = create_app(fetcher=fetcher)
    app.config['TESTING'] = True
    return app.test_client()


def _create(client, payload=SURVEY):
    response = client.post('/api/surveys', json=payload)
    assert response.status_code == 201
    return response.get_json()


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_crud_flow(client):
    created = _create(client)
    survey_id = created['id']
    assert created['propertyDetails']['unitNumber'] == 'C-7'

    listing = client.get('/api/surveys').get_json()
    assert [row['id'] for row in listing] == [survey_id]
    assert 'sections' not in listing[0]

    updated = client.put(f'/api/surveys/{survey_id}', json={'status': 'Completed'}).get_json()
    assert updated['status'] == 'Completed'
    assert client.get(f'/api/surveys/{survey_id}').get_json()['status'] == 'Completed'

    assert client.delete(f'/api/surveys/{survey_id}').status_code == 200
    assert client.get(f'/api/surveys/{survey_id}').status_code == 404


def test_invalid_payloads_are_rejected(client):
    assert client.post('/api/surveys', data='nope', content_type='application/json').status_code == 400
    response = client.post('/api/surveys', json={'sections': [{'items': []}]})
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_unknown_survey_is_404_everywhere(client):
    for path in ('/api/surveys/{}', '/api/surveys/{}/report', '/api/surveys/{}/layout'):
        response = client.get(path.format('3f1f0c8e-2b7a-4f6e-9d1c-5a4b3c2d1e0f'))
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Survey not found'}
    assert client.get('/api/surveys/garbage/report').status_code == 404


def test_report_download(client, fetcher):
    survey_id = _create(client)['id']

    response = client.get(f'/api/surveys/{survey_id}/report')
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert 'survey-C-7.pdf' in response.headers['Content-Disposition']

    reader = PdfReader(io.BytesIO(response.data))
    text = reader.pages[0].extract_text()
    assert 'LIVING ROOM' in text
    assert f'Page 1 of {len(reader.pages)}' in text
    assert fetcher.calls == [
        ['https://img.example/ok.png', 'https://img.example/broken.png', 'https://img.example/facade.png']
    ]


def test_report_failure_is_generic_500():
    class BrokenFetcher:
        def fetch_all_blocking(self, urls):
            raise RuntimeError('boom')

    client = create_app(fetcher=BrokenFetcher()).test_client()
    survey_id = _create(client)['id']
    response = client.get(f'/api/surveys/{survey_id}/report')
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Failed to generate report'}


def test_layout_preview(client):
    survey_id = _create(client)['id']
    payload = client.get(f'/api/surveys/{survey_id}/layout').get_json()
    assert payload['pageCount'] == 2
    titles = [b['title'] for b in payload['blocks'] if b['kind'] == 'section_header']
    assert titles == ['LIVING ROOM', 'BEDROOM', 'GENERAL PHOTOS']
    facade_row = [b for b in payload['blocks'] if b['kind'] == 'photo_row'][-1]
    assert facade_row['page'] == 1 and facade_row['pageBreak']
    assert facade_row['photos'][0]['number'] == 3

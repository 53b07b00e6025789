import json

import pytest

from main import main


@pytest.mark.parametrize('command', ['layout', 'render'])
def test_malformed_json_file_is_a_json_error(tmp_path, capsys, command):
    path = tmp_path / 'broken.json'
    path.write_text('{"sections": [', encoding='utf-8')

    assert main([command, '--json', str(path)]) == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload['status'] == 'error'


def test_unknown_survey_id_is_a_json_error(capsys):
    assert main(['layout', '--survey-id', '3f1f0c8e-2b7a-4f6e-9d1c-5a4b3c2d1e0f']) == 2
    assert 'Survey not found' in json.loads(capsys.readouterr().out)['message']


def test_import_then_layout(tmp_path, capsys):
    path = tmp_path / 'survey.json'
    path.write_text(json.dumps({'sections': [{'roomName': 'Hall', 'items': [{'label': 'Door'}]}]}), encoding='utf-8')

    assert main(['import', '--json', str(path)]) == 0
    survey_id = json.loads(capsys.readouterr().out)['survey_id']

    assert main(['layout', '--survey-id', survey_id]) == 0
    plan = json.loads(capsys.readouterr().out)
    assert plan['pageCount'] == 1
    assert [b['title'] for b in plan['blocks'] if b['kind'] == 'section_header'] == ['HALL']

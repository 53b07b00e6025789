import json
import time

import pytest
from pydantic import ValidationError

from surveyreport.errors import NotFoundError
from surveyreport.state import create_survey, delete_survey, get_survey_or_raise, list_surveys, load_survey, replace_survey
from surveyreport.storage import read_events, survey_path
from surveyreport.types import ItemStatus, SurveyStatus


PAYLOAD = {
    'propertyDetails': {'unitNumber': '12B', 'buildingName': 'Elm Court', 'date': '2024-11-02'},
    'sections': [
        {
            'roomName': 'Kitchen',
            'items': [
                {'label': 'Sink', 'status': 'Good'},
                {'label': 'Hob', 'status': 'Need Action', 'photos': ['https://img.example/hob.jpg']},
                {'label': 'Blind'},
            ],
        }
    ],
}


def test_create_persists_wire_format():
    survey = create_survey(PAYLOAD)
    stored = json.loads(survey_path(survey.id).read_text(encoding='utf-8'))
    assert stored['propertyDetails']['unitNumber'] == '12B'
    assert stored['sections'][0]['roomName'] == 'Kitchen'
    assert stored['status'] == 'Draft'
    [event] = read_events(survey.id)
    assert event['event'] == 'created'
    assert event['surveyId'] == str(survey.id)
    assert event['details'] == {'sections': 1}


def test_create_ignores_client_supplied_id():
    first = create_survey(PAYLOAD)
    second = create_survey({**PAYLOAD, 'id': str(first.id)})
    assert second.id != first.id


def test_load_round_trips_order_and_defaults():
    survey = create_survey(PAYLOAD)
    loaded = load_survey(str(survey.id))
    assert [item.label for item in loaded.sections[0].items] == ['Sink', 'Hob', 'Blind']
    assert loaded.sections[0].items[2].status is ItemStatus.unset
    assert loaded.status is SurveyStatus.draft


def test_unknown_or_malformed_ids_are_not_found():
    assert load_survey('not-a-uuid') is None
    assert load_survey('0b7c8a5e-1111-4c1e-9a7e-8d6f4f1d2c3b') is None
    with pytest.raises(NotFoundError):
        get_survey_or_raise('not-a-uuid')


def test_replace_keeps_identity_and_created_at():
    survey = create_survey(PAYLOAD)
    updated = replace_survey(survey.id, {'status': 'Completed', 'sections': []})
    assert updated.id == survey.id
    assert updated.created_at == survey.created_at
    assert updated.status is SurveyStatus.completed
    assert updated.sections == []
    assert updated.property_details.unit_number == '12B'


def test_replace_appends_updated_event():
    survey = create_survey(PAYLOAD)
    replace_survey(survey.id, {'status': 'Completed'})
    events = read_events(survey.id)
    assert [row['event'] for row in events] == ['created', 'updated']
    assert events[-1]['details'] == {'sections': 1, 'status': 'Completed'}


def test_replace_rejects_invalid_payload():
    survey = create_survey(PAYLOAD)
    with pytest.raises(ValidationError):
        replace_survey(survey.id, {'sections': [{'roomName': 'Hall', 'items': [{'status': 'Good'}]}]})
    assert load_survey(survey.id).sections[0].room_name == 'Kitchen'


def test_delete_removes_survey():
    survey = create_survey(PAYLOAD)
    delete_survey(survey.id)
    assert load_survey(survey.id) is None
    with pytest.raises(NotFoundError):
        delete_survey(survey.id)


def test_list_is_newest_first():
    older = create_survey(PAYLOAD)
    time.sleep(0.01)
    newer = create_survey(PAYLOAD)
    assert [row.id for row in list_surveys()] == [newer.id, older.id]


def test_invalid_status_is_rejected():
    with pytest.raises(ValidationError):
        create_survey({'sections': [{'roomName': 'Hall', 'items': [{'label': 'Door', 'status': 'Broken'}]}]})

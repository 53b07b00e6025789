from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import UUID

from .config import get_settings


def surveys_root() -> Path:
    root = get_settings().data_dir / 'surveys'
    root.mkdir(parents=True, exist_ok=True)
    return root


def safe_survey_id(survey_id: UUID | str) -> str:
    if isinstance(survey_id, UUID):
        return str(survey_id)
    token = str(survey_id or '').strip()
    if not token:
        raise ValueError('survey_id is required')
    try:
        return str(UUID(token))
    except Exception as exc:
        raise ValueError(f'invalid survey_id: {survey_id}') from exc


def survey_dir(survey_id: UUID | str, *, create: bool = True) -> Path:
    path = surveys_root() / safe_survey_id(survey_id)
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def survey_path(survey_id: UUID | str) -> Path:
    return survey_dir(survey_id, create=False) / 'survey.json'


def events_path(survey_id: UUID | str) -> Path:
    return survey_dir(survey_id, create=False) / 'events.jsonl'


def iter_survey_paths() -> list[Path]:
    return sorted(p for p in surveys_root().glob('*/survey.json') if p.is_file())


def remove_survey_dir(survey_id: UUID | str) -> None:
    shutil.rmtree(survey_dir(survey_id, create=False), ignore_errors=True)


def write_survey_document(survey_id: UUID | str, document: dict[str, Any]) -> Path:
    """Replace ``survey.json`` in one rename so readers never see half a survey."""
    target = survey_path(survey_id)
    target.parent.mkdir(parents=True, exist_ok=True)
    staging = target.with_name('.survey.json.partial')
    staging.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding='utf-8')
    staging.replace(target)
    return target


def read_survey_document(path: Path) -> dict[str, Any]:
    document = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(document, dict):
        raise ValueError(f'survey file is not a JSON object: {path}')
    return document


def append_event(survey_id: UUID | str, event: str, **details: Any) -> None:
    sid = safe_survey_id(survey_id)
    row = {
        'at': datetime.now(timezone.utc).isoformat(),
        'surveyId': sid,
        'event': event,
        'details': details,
    }
    events_file = events_path(sid)
    events_file.parent.mkdir(parents=True, exist_ok=True)
    with events_file.open('a', encoding='utf-8') as log:
        log.write(json.dumps(row, ensure_ascii=False) + '\n')


def read_events(survey_id: UUID | str) -> list[dict[str, Any]]:
    path = events_path(survey_id)
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding='utf-8').splitlines() if line.strip()]

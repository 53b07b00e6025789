from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from .errors import NotFoundError
from .storage import (
    append_event,
    iter_survey_paths,
    read_survey_document,
    remove_survey_dir,
    survey_path,
    write_survey_document,
)
from .types import Survey, SurveySummary


logger = logging.getLogger(__name__)

_STATE_LOCK = threading.RLock()


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def save_survey(survey: Survey) -> Survey:
    with _STATE_LOCK:
        survey.updated_at = now_utc()
        write_survey_document(survey.id, survey.wire())
    return survey


def create_survey(payload: dict[str, Any]) -> Survey:
    """Validate an incoming payload and persist it as a new survey.

    Client-supplied ``id``/timestamps are ignored so a create can never overwrite
    an existing record.
    """
    fields = {k: v for k, v in (payload or {}).items() if k not in {'id', '_id', 'createdAt', 'updatedAt'}}
    survey = Survey.model_validate(fields)
    save_survey(survey)
    append_event(survey.id, 'created', sections=len(survey.sections))
    return survey


def load_survey(survey_id: UUID | str) -> Survey | None:
    try:
        path = survey_path(survey_id)
    except ValueError:
        return None
    if not path.exists():
        return None
    with _STATE_LOCK:
        payload = read_survey_document(path)
    return Survey.model_validate(payload)


def get_survey_or_raise(survey_id: UUID | str) -> Survey:
    survey = load_survey(survey_id)
    if survey is None:
        raise NotFoundError(survey_id)
    return survey


def replace_survey(survey_id: UUID | str, payload: dict[str, Any]) -> Survey:
    """Full update: the stored document takes every field from ``payload``."""
    with _STATE_LOCK:
        existing = get_survey_or_raise(survey_id)
        merged = existing.wire()
        merged.update({k: v for k, v in (payload or {}).items() if k not in {'id', '_id', 'createdAt'}})
        merged['id'] = str(existing.id)
        merged['createdAt'] = existing.created_at.isoformat()
        updated = Survey.model_validate(merged)
        save_survey(updated)
    append_event(survey_id, 'updated', sections=len(updated.sections), status=updated.status.value)
    return updated


def delete_survey(survey_id: UUID | str) -> None:
    with _STATE_LOCK:
        get_survey_or_raise(survey_id)
        remove_survey_dir(survey_id)
    logger.info('Deleted survey %s', survey_id)


def list_surveys() -> list[SurveySummary]:
    summaries: list[SurveySummary] = []
    with _STATE_LOCK:
        for path in iter_survey_paths():
            try:
                survey = Survey.model_validate(read_survey_document(path))
            except Exception as exc:
                logger.warning('Skipping unreadable survey file %s: %s', path, exc)
                continue
            summaries.append(SurveySummary.of(survey))
    summaries.sort(key=lambda row: row.created_at, reverse=True)
    return summaries

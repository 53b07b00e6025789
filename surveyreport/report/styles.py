from __future__ import annotations

from dataclasses import dataclass

from surveyreport.types import ItemStatus, SurveyStatus


FONT_REGULAR = 'Helvetica'
FONT_BOLD = 'Helvetica-Bold'

INK_DARK = '#0f172a'
ACCENT = '#38bdf8'
MUTED = '#94a3b8'
LABEL = '#64748b'
VALUE = '#1e293b'
LEGEND_TEXT = '#334155'
COMMENT_TEXT = '#475569'
BOX_FILL = '#f8fafc'
BORDER = '#e2e8f0'
PLACEHOLDER_FILL = '#f1f5f9'
WHITE = '#ffffff'

GREEN = '#22c55e'
AMBER = '#f59e0b'
SLATE = '#94a3b8'


@dataclass(frozen=True)
class StatusStyle:
    label: str
    color: str


def status_style(status: ItemStatus) -> StatusStyle:
    # Unset shares the N/A look on purpose; every member must be handled here.
    if status is ItemStatus.good:
        return StatusStyle('Good', GREEN)
    if status is ItemStatus.need_action:
        return StatusStyle('Need Action', AMBER)
    if status is ItemStatus.not_applicable or status is ItemStatus.unset:
        return StatusStyle('N/A', SLATE)
    raise ValueError(f'unhandled item status: {status!r}')


LEGEND_STATUSES = (ItemStatus.good, ItemStatus.need_action, ItemStatus.not_applicable)


def survey_badge_color(status: SurveyStatus) -> str:
    if status is SurveyStatus.completed:
        return GREEN
    if status is SurveyStatus.draft:
        return AMBER
    raise ValueError(f'unhandled survey status: {status!r}')

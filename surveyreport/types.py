from __future__ import annotations

from datetime import date as calendar_date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ItemStatus(str, Enum):
    good = 'Good'
    need_action = 'Need Action'
    not_applicable = 'N/A'
    unset = ''


class SurveyStatus(str, Enum):
    draft = 'Draft'
    completed = 'Completed'


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PropertyDetails(_WireModel):
    unit_number: str = ''
    building_name: str = ''
    address: str = ''
    property_type: str = ''
    inspector: str = ''
    date: calendar_date | None = Field(default_factory=lambda: utcnow().date())

    @field_validator('date', mode='before')
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            token = value.strip()
            if not token:
                return None
            if 'T' in token:
                return token.split('T', 1)[0]
            return token
        return value


class Item(_WireModel):
    label: str = Field(min_length=1)
    status: ItemStatus = ItemStatus.unset
    photos: list[str] = Field(default_factory=list)
    comments: str = ''

    @field_validator('status', mode='before')
    @classmethod
    def _none_is_unset(cls, value: Any) -> Any:
        return '' if value is None else value


class Section(_WireModel):
    room_name: str = Field(min_length=1)
    items: list[Item] = Field(default_factory=list)


class Survey(_WireModel):
    id: UUID = Field(default_factory=uuid4)
    property_details: PropertyDetails = Field(default_factory=PropertyDetails)
    sections: list[Section] = Field(default_factory=list)
    global_photos: list[str] = Field(default_factory=list)
    status: SurveyStatus = SurveyStatus.draft

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def wire(self) -> dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


class SurveySummary(_WireModel):
    id: UUID
    property_details: PropertyDetails
    status: SurveyStatus
    created_at: datetime

    @classmethod
    def of(cls, survey: Survey) -> 'SurveySummary':
        return cls(
            id=survey.id,
            property_details=survey.property_details,
            status=survey.status,
            created_at=survey.created_at,
        )

"""Appointment Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BeforeValidator, Field, field_validator, model_validator

from src.core.wall_clock import as_wall_clock
from src.models.appointment import (
    APPOINTMENT_COLORS,
    DEFAULT_APPOINTMENT_COLOR,
    MAX_TEXT_LENGTH,
    AppointmentStatus,
    AppointmentType,
    AppointmentVisibility,
)
from src.schemas.common import CamelModel


def _to_wall_clock(value: Any) -> Any:
    if isinstance(value, (str, datetime)):
        return as_wall_clock(value)
    return value


WallClockDatetime = Annotated[datetime, BeforeValidator(_to_wall_clock)]


def _unique_ids(ids: list[UUID] | None) -> list[UUID] | None:
    """Drop repeated IDs, keeping first-seen order."""
    if ids is None:
        return None
    return list(dict.fromkeys(ids))


def _clean_title(title: str | None) -> str | None:
    if title is None:
        return None
    stripped = title.strip()
    if not stripped:
        raise ValueError("Title is required")
    return stripped


def _check_color(color: str | None) -> str | None:
    if color is None:
        return None
    normalized = color.upper()
    if normalized not in APPOINTMENT_COLORS:
        raise ValueError(f"Color must be one of {', '.join(APPOINTMENT_COLORS)}")
    return normalized


class AppointmentCreate(CamelModel):
    """Schema for creating a new appointment."""

    title: str = Field(..., max_length=255, description="Appointment title")
    description: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH, description="Summary shown to participants")
    location: str | None = Field(default=None, max_length=255, description="Where the appointment happens")
    notes: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH, description="Additional notes for participants")
    type: AppointmentType = Field(default=AppointmentType.VISIT, description="Appointment kind")
    visibility: AppointmentVisibility = Field(default=AppointmentVisibility.PRIVATE, description="Who can see it")
    start_at: WallClockDatetime = Field(..., description="Start, in business wall-clock time")
    end_at: WallClockDatetime = Field(..., description="End, in business wall-clock time")
    color: str = Field(default=DEFAULT_APPOINTMENT_COLOR, description="Calendar swatch")
    participant_ids: list[UUID] = Field(default_factory=list, description="Member IDs taking part")

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        return _clean_title(value)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        return _check_color(value)

    @field_validator("participant_ids")
    @classmethod
    def validate_participants(cls, value: list[UUID] | None) -> list[UUID] | None:
        return _unique_ids(value)


class AppointmentUpdate(CamelModel):
    """Schema for a partial appointment update.

    Only fields explicitly sent are applied; read them with
    ``model_dump(exclude_unset=True)``.
    """

    title: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH)
    location: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH)
    type: AppointmentType | None = None
    status: AppointmentStatus | None = None
    visibility: AppointmentVisibility | None = None
    start_at: WallClockDatetime | None = None
    end_at: WallClockDatetime | None = None
    color: str | None = None
    participant_ids: list[UUID] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        return _clean_title(value)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        return _check_color(value)

    @field_validator("participant_ids")
    @classmethod
    def validate_participants(cls, value: list[UUID] | None) -> list[UUID] | None:
        return _unique_ids(value)


class AppointmentResponse(CamelModel):
    """Schema for appointment API responses.

    Optional columns that come back null are replaced by their defaults so
    callers never need presence checks.
    """

    id: UUID = Field(description="Appointment unique identifier")
    company_id: UUID = Field(description="Owning company")
    owner_user_id: UUID = Field(description="Member who created the appointment")
    title: str = Field(description="Appointment title")
    description: str | None = None
    location: str | None = None
    notes: str | None = None
    type: AppointmentType = AppointmentType.VISIT
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    visibility: AppointmentVisibility = AppointmentVisibility.PRIVATE
    start_at: WallClockDatetime = Field(description="Start, in business wall-clock time")
    end_at: WallClockDatetime = Field(description="End, in business wall-clock time")
    color: str = DEFAULT_APPOINTMENT_COLOR
    participant_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def drop_null_defaults(cls, data: Any) -> Any:
        """Let defaults apply where the backend sent explicit nulls."""
        if isinstance(data, dict):
            defaulted = {"type", "status", "visibility", "color", "participant_ids", "participantIds"}
            return {k: v for k, v in data.items() if not (v is None and k in defaulted)}
        return data


class AppointmentSummary(CamelModel):
    """Appointment fields embedded in invite payloads."""

    id: UUID
    title: str
    start_at: WallClockDatetime
    end_at: WallClockDatetime
    location: str | None = None
    color: str | None = None
    owner_user_id: UUID | None = None

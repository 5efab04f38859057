"""Calendar rendering schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import ConfigDict, Field

from src.models.appointment import AppointmentStatus, AppointmentType, AppointmentVisibility
from src.schemas.common import CamelModel


class OccurrenceProps(CamelModel):
    """Read-only appointment fields carried by every occurrence."""

    model_config = ConfigDict(frozen=True)

    type: AppointmentType
    status: AppointmentStatus
    visibility: AppointmentVisibility
    location: str | None = None
    description: str | None = None
    notes: str | None = None
    owner_user_id: UUID
    participant_ids: tuple[UUID, ...] = ()
    original_appointment_id: UUID


class Occurrence(CamelModel):
    """One renderable calendar block for an appointment.

    Occurrences are derived on every render and never persisted. All
    occurrences of the same appointment share ``group_id``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Appointment ID, suffixed with the day for multi-day spans")
    group_id: str = Field(description="ID of the underlying appointment")
    title: str
    start: datetime = Field(description="Wall-clock start of this block")
    end: datetime = Field(description="Wall-clock end of this block")
    all_day: bool
    color: str
    extended_props: OccurrenceProps

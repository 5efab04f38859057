"""Appointment and invite model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class AppointmentType(str, Enum):
    """Kinds of appointment a member can schedule."""

    VISIT = "visit"
    MEETING = "meeting"
    INSPECTION = "inspection"
    DOCUMENTATION = "documentation"
    MAINTENANCE = "maintenance"
    MARKETING = "marketing"
    TRAINING = "training"
    OTHER = "other"


class AppointmentStatus(str, Enum):
    """Appointment status values matching database enum."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentVisibility(str, Enum):
    """Who can see an appointment inside the company."""

    PUBLIC = "public"
    PRIVATE = "private"
    TEAM = "team"


class InviteStatus(str, Enum):
    """Appointment invite status values matching database enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Terminal states accept no further transitions."""
        return self is not InviteStatus.PENDING


class InviteDecision(str, Enum):
    """Answers an invitee can give to a pending invite."""

    ACCEPTED = "accepted"
    DECLINED = "declined"


# Calendar swatches offered by the appointment form; the first one is the default.
APPOINTMENT_COLORS: tuple[str, ...] = (
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#06B6D4",
    "#84CC16",
    "#F97316",
    "#EC4899",
    "#6366F1",
)

DEFAULT_APPOINTMENT_COLOR = APPOINTMENT_COLORS[0]

# Free-text fields shown to participants are capped at this length.
MAX_TEXT_LENGTH = 300


class Appointment(TypedDict):
    """Appointment table row representation."""

    id: UUID
    company_id: UUID
    owner_user_id: UUID
    title: str
    description: str | None
    location: str | None
    notes: str | None
    type: AppointmentType
    status: AppointmentStatus
    visibility: AppointmentVisibility
    start_at: datetime
    end_at: datetime
    color: str
    participant_ids: list[UUID]
    created_at: datetime
    updated_at: datetime


class AppointmentInvite(TypedDict):
    """Appointment invite table row representation.

    One row per (appointment, invited member); at most one of them may be
    active (not cancelled) at a time.
    """

    id: UUID
    appointment_id: UUID
    company_id: UUID
    inviter_user_id: UUID
    invited_user_id: UUID
    status: InviteStatus
    message: str | None
    response_message: str | None
    responded_at: datetime | None
    created_at: datetime
    updated_at: datetime

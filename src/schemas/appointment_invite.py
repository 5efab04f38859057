"""Appointment invite Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field, model_validator

from src.models.appointment import MAX_TEXT_LENGTH, InviteDecision, InviteStatus
from src.schemas.appointment import AppointmentSummary
from src.schemas.common import CamelModel


class InviteCreate(CamelModel):
    """Schema for inviting a member to an appointment."""

    appointment_id: UUID = Field(..., description="Appointment the member is invited to")
    invited_user_id: UUID = Field(..., description="Member being invited")
    message: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH, description="Note shown to the invitee")


class InviteRespond(CamelModel):
    """Schema for an invitee's answer."""

    status: InviteDecision = Field(..., description="accepted or declined")
    response_message: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH, description="Optional reply")


class InviteResponse(CamelModel):
    """Schema for invite API responses."""

    id: UUID = Field(description="Invite unique identifier")
    appointment_id: UUID = Field(description="Appointment the invite belongs to")
    company_id: UUID = Field(description="Company of the appointment")
    inviter_user_id: UUID = Field(description="Member who sent the invite")
    invited_user_id: UUID = Field(description="Member who received the invite")
    status: InviteStatus = Field(default=InviteStatus.PENDING, description="Current invite status")
    message: str | None = Field(default=None, description="Note from the inviter")
    response_message: str | None = Field(default=None, description="Note from the invitee")
    responded_at: datetime | None = Field(default=None, description="When the invitee answered")
    created_at: datetime | None = None
    updated_at: datetime | None = None
    appointment: AppointmentSummary | None = Field(default=None, description="Joined appointment, when loaded")

    @model_validator(mode="before")
    @classmethod
    def unwrap_joined_appointment(cls, data: Any) -> Any:
        """Accept the PostgREST ``appointments`` join key as ``appointment``."""
        if isinstance(data, dict) and "appointments" in data:
            data = dict(data)
            joined = data.pop("appointments")
            if isinstance(joined, list):
                joined = joined[0] if joined else None
            data.setdefault("appointment", joined)
        return data

    @property
    def is_pending(self) -> bool:
        """Whether the invite still awaits an answer."""
        return self.status == InviteStatus.PENDING

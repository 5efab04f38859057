"""Database model type definitions."""

from src.models.appointment import (
    APPOINTMENT_COLORS,
    DEFAULT_APPOINTMENT_COLOR,
    MAX_TEXT_LENGTH,
    Appointment,
    AppointmentInvite,
    AppointmentStatus,
    AppointmentType,
    AppointmentVisibility,
    InviteDecision,
    InviteStatus,
)
from src.models.member import CompanyMember, MemberRole

__all__ = [
    "APPOINTMENT_COLORS",
    "DEFAULT_APPOINTMENT_COLOR",
    "MAX_TEXT_LENGTH",
    "Appointment",
    "AppointmentInvite",
    "AppointmentStatus",
    "AppointmentType",
    "AppointmentVisibility",
    "CompanyMember",
    "InviteDecision",
    "InviteStatus",
    "MemberRole",
]

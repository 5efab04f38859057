"""Appointment invite lifecycle rules.

An invite starts ``pending`` and leaves it exactly once: the invitee accepts
or declines it, or the inviter cancels it. Accepted, declined and cancelled
are terminal.
"""

from datetime import datetime
from uuid import UUID

from src.api.middleware.error_handler import StateError
from src.core.wall_clock import as_wall_clock
from src.models.appointment import InviteDecision, InviteStatus
from src.schemas.appointment import AppointmentResponse, AppointmentSummary
from src.schemas.appointment_invite import InviteResponse

APPOINTMENT_ENDED = "This appointment has already ended"
ONLY_INVITER_CAN_CANCEL = "Only the member who sent this invite can cancel it"


def _ensure_pending(invite: InviteResponse) -> None:
    if invite.status != InviteStatus.PENDING:
        raise StateError(f"Invite has already been {invite.status.value}")


def respond(
    invite: InviteResponse,
    decision: InviteDecision,
    now: datetime,
    response_message: str | None = None,
) -> InviteResponse:
    """Apply the invitee's answer.

    Args:
        invite: The invite being answered.
        decision: accepted or declined.
        now: Timestamp recorded as ``responded_at``.
        response_message: Optional reply from the invitee.

    Returns:
        InviteResponse: A copy in the new state.

    Raises:
        StateError: If the invite is no longer pending.
    """
    _ensure_pending(invite)
    return invite.model_copy(
        update={
            "status": InviteStatus(decision.value),
            "responded_at": now,
            "response_message": response_message,
            "updated_at": now,
        }
    )


def cancel(invite: InviteResponse, actor_id: UUID, now: datetime | None = None) -> InviteResponse:
    """Withdraw a pending invite.

    ``responded_at`` stays unset; it is reserved for the invitee's answer.

    Raises:
        StateError: If the invite is no longer pending or the actor did not
            send it.
    """
    _ensure_pending(invite)
    if invite.inviter_user_id != actor_id:
        raise StateError(ONLY_INVITER_CAN_CANCEL)

    update: dict = {"status": InviteStatus.CANCELLED}
    if now is not None:
        update["updated_at"] = now
    return invite.model_copy(update=update)


def is_expired(appointment: AppointmentResponse | AppointmentSummary, now: datetime) -> bool:
    """Whether the appointment the invite points to has already ended."""
    return as_wall_clock(appointment.end_at) < as_wall_clock(now)


def ensure_respondable(
    invite: InviteResponse,
    decision: InviteDecision,
    appointment: AppointmentResponse | AppointmentSummary | None,
    now: datetime,
) -> None:
    """Check an answer before it is sent or stored.

    Declining an ended appointment is allowed; accepting it is not.

    Raises:
        StateError: If the invite is not pending, or an ended appointment is
            being accepted.
    """
    _ensure_pending(invite)
    if (
        decision == InviteDecision.ACCEPTED
        and appointment is not None
        and is_expired(appointment, now)
    ):
        raise StateError(APPOINTMENT_ENDED)

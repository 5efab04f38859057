"""Unit tests for invite lifecycle rules."""

from datetime import datetime
from uuid import UUID

import pytest

from src.api.middleware.error_handler import StateError
from src.models.appointment import InviteDecision, InviteStatus
from src.schemas.appointment import AppointmentSummary
from src.schemas.appointment_invite import InviteResponse
from src.services import invite_state

INVITER_ID = UUID("660e8400-e29b-41d4-a716-446655440001")
INVITEE_ID = UUID("660e8400-e29b-41d4-a716-446655440002")
APPOINTMENT_ID = UUID("880e8400-e29b-41d4-a716-446655440000")
NOW = datetime(2026, 10, 20, 12, 0)


def make_invite(status: InviteStatus = InviteStatus.PENDING) -> InviteResponse:
    return InviteResponse(
        id=UUID("990e8400-e29b-41d4-a716-446655440000"),
        appointment_id=APPOINTMENT_ID,
        company_id=UUID("770e8400-e29b-41d4-a716-446655440000"),
        inviter_user_id=INVITER_ID,
        invited_user_id=INVITEE_ID,
        status=status,
    )


def make_appointment(end_at: datetime) -> AppointmentSummary:
    return AppointmentSummary(
        id=APPOINTMENT_ID,
        title="Site visit",
        start_at=datetime(2026, 10, 19, 9, 0),
        end_at=end_at,
    )


class TestRespond:
    """Tests for respond."""

    @pytest.mark.parametrize("decision", list(InviteDecision))
    def test_pending_invite_takes_decision(self, decision: InviteDecision) -> None:
        result = invite_state.respond(make_invite(), decision, NOW, "See you there")

        assert result.status.value == decision.value
        assert result.responded_at == NOW
        assert result.response_message == "See you there"

    def test_does_not_mutate_original(self) -> None:
        invite = make_invite()

        invite_state.respond(invite, InviteDecision.ACCEPTED, NOW)

        assert invite.status == InviteStatus.PENDING
        assert invite.responded_at is None

    @pytest.mark.parametrize(
        "status",
        [InviteStatus.ACCEPTED, InviteStatus.DECLINED, InviteStatus.CANCELLED],
    )
    def test_terminal_invite_is_refused(self, status: InviteStatus) -> None:
        with pytest.raises(StateError) as exc_info:
            invite_state.respond(make_invite(status), InviteDecision.ACCEPTED, NOW)

        assert status.value in exc_info.value.message


class TestCancel:
    """Tests for cancel."""

    def test_inviter_can_cancel_pending(self) -> None:
        result = invite_state.cancel(make_invite(), INVITER_ID, NOW)

        assert result.status == InviteStatus.CANCELLED
        assert result.responded_at is None

    def test_invitee_cannot_cancel(self) -> None:
        with pytest.raises(StateError) as exc_info:
            invite_state.cancel(make_invite(), INVITEE_ID)

        assert exc_info.value.message == invite_state.ONLY_INVITER_CAN_CANCEL

    def test_answered_invite_cannot_be_cancelled(self) -> None:
        with pytest.raises(StateError):
            invite_state.cancel(make_invite(InviteStatus.ACCEPTED), INVITER_ID)


class TestEnsureRespondable:
    """Tests for ensure_respondable."""

    def test_accepting_ended_appointment_is_refused(self) -> None:
        appointment = make_appointment(end_at=datetime(2026, 10, 19, 10, 0))

        with pytest.raises(StateError) as exc_info:
            invite_state.ensure_respondable(make_invite(), InviteDecision.ACCEPTED, appointment, NOW)

        assert exc_info.value.message == invite_state.APPOINTMENT_ENDED

    def test_declining_ended_appointment_is_allowed(self) -> None:
        appointment = make_appointment(end_at=datetime(2026, 10, 19, 10, 0))

        invite_state.ensure_respondable(make_invite(), InviteDecision.DECLINED, appointment, NOW)

    def test_accepting_upcoming_appointment_is_allowed(self) -> None:
        appointment = make_appointment(end_at=datetime(2026, 10, 21, 10, 0))

        invite_state.ensure_respondable(make_invite(), InviteDecision.ACCEPTED, appointment, NOW)

    def test_unknown_appointment_only_checks_status(self) -> None:
        invite_state.ensure_respondable(make_invite(), InviteDecision.ACCEPTED, None, NOW)

        with pytest.raises(StateError):
            invite_state.ensure_respondable(
                make_invite(InviteStatus.DECLINED), InviteDecision.ACCEPTED, None, NOW
            )

    def test_is_expired_ignores_offsets(self) -> None:
        appointment = make_appointment(end_at="2026-10-20T11:59:00Z")

        assert invite_state.is_expired(appointment, NOW)

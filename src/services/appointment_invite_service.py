"""Appointment invite business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from src.api.middleware.error_handler import (
    NotFoundError,
    StateError,
    ValidationError,
    permission_denied,
)
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.core.wall_clock import business_now
from src.models.appointment import InviteDecision, InviteStatus
from src.schemas.appointment_invite import InviteCreate, InviteRespond, InviteResponse
from src.schemas.auth import MemberContext
from src.services import invite_state
from src.services.appointment_service import AppointmentService
from src.services.member_service import MemberService

logger = logging.getLogger(__name__)

INVITE_WITH_APPOINTMENT = "*, appointments(id, title, start_at, end_at, location, color, owner_user_id)"

# Compare-and-set attempts when adding an accepting invitee to participants
JOIN_ATTEMPTS = 5


class ParticipantsChangedError(Exception):
    """The appointment changed between reading and writing its participants."""


class AppointmentInviteService:
    """Service for inviting members to appointments and answering invites."""

    def __init__(self) -> None:
        """Initialize invite service with Supabase client."""
        self.client = get_supabase_client()
        self.appointments = AppointmentService()
        self.members = MemberService()

    async def _get_invite(self, invite_id: UUID, actor: MemberContext) -> dict[str, Any]:
        response = (
            self.client.table("appointment_invites")
            .select(INVITE_WITH_APPOINTMENT)
            .eq("id", str(invite_id))
            .eq("company_id", str(actor.company_id))
            .execute()
        )
        if not response.data:
            raise NotFoundError("Invite not found")
        return response.data[0]

    async def create_invite(self, data: InviteCreate, actor: MemberContext) -> dict[str, Any]:
        """Invite a member to an appointment the caller owns.

        Args:
            data: Appointment, invitee and optional message.
            actor: The calling member (the inviter).

        Returns:
            dict: The created invite row.

        Raises:
            NotFoundError: If the appointment is not visible to the caller.
            AuthorizationError: If the caller does not own the appointment.
            ValidationError: If the invitee is the caller, not a member, or
                already holds an active invite for this appointment.
        """
        appointment = await self.appointments.get_appointment(data.appointment_id, actor)
        if str(appointment["owner_user_id"]) != str(actor.member_id):
            raise permission_denied("calendar:invite")

        if data.invited_user_id == actor.member_id:
            raise ValidationError("You cannot invite yourself")

        if not await self.members.is_member(actor.company_id, data.invited_user_id):
            raise ValidationError("Invited user is not a member of this company")

        existing = (
            self.client.table("appointment_invites")
            .select("id, status")
            .eq("appointment_id", str(data.appointment_id))
            .eq("invited_user_id", str(data.invited_user_id))
            .neq("status", InviteStatus.CANCELLED.value)
            .execute()
        )
        if existing.data:
            raise ValidationError("This member has already been invited to this appointment")

        invite_data = {
            "appointment_id": str(data.appointment_id),
            "company_id": str(actor.company_id),
            "inviter_user_id": str(actor.member_id),
            "invited_user_id": str(data.invited_user_id),
            "status": InviteStatus.PENDING.value,
            "message": data.message,
        }

        response = self.client.table("appointment_invites").insert(invite_data).execute()
        invite = response.data[0]
        logger.info(
            "Invite %s sent for appointment %s to %s",
            invite["id"],
            data.appointment_id,
            data.invited_user_id,
        )
        return invite

    async def list_my_invites(self, actor: MemberContext) -> list[dict[str, Any]]:
        """List every invite the caller received, newest first."""
        response = (
            self.client.table("appointment_invites")
            .select(INVITE_WITH_APPOINTMENT)
            .eq("company_id", str(actor.company_id))
            .eq("invited_user_id", str(actor.member_id))
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    async def list_pending_invites(self, actor: MemberContext) -> list[dict[str, Any]]:
        """List the invites still awaiting the caller's answer."""
        response = (
            self.client.table("appointment_invites")
            .select(INVITE_WITH_APPOINTMENT)
            .eq("company_id", str(actor.company_id))
            .eq("invited_user_id", str(actor.member_id))
            .eq("status", InviteStatus.PENDING.value)
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    async def respond_to_invite(
        self,
        invite_id: UUID,
        data: InviteRespond,
        actor: MemberContext,
    ) -> dict[str, Any]:
        """Accept or decline an invite addressed to the caller.

        Accepting also adds the caller to the appointment's participants.

        Raises:
            NotFoundError: If the invite does not exist in the caller's company.
            AuthorizationError: If the invite is addressed to someone else.
            StateError: If the invite was already answered or cancelled, or an
                ended appointment is being accepted.
        """
        row = await self._get_invite(invite_id, actor)
        invite = InviteResponse(**row)
        if invite.invited_user_id != actor.member_id:
            raise permission_denied("calendar:respond_invite")

        invite_state.ensure_respondable(
            invite,
            data.status,
            invite.appointment,
            business_now(get_settings().business_timezone),
        )
        answered = invite_state.respond(
            invite,
            data.status,
            datetime.now(timezone.utc),
            data.response_message,
        )

        response = (
            self.client.table("appointment_invites")
            .update(
                {
                    "status": answered.status.value,
                    "responded_at": answered.responded_at.isoformat(),
                    "response_message": answered.response_message,
                    "updated_at": answered.updated_at.isoformat(),
                }
            )
            .eq("id", str(invite_id))
            .eq("status", InviteStatus.PENDING.value)
            .execute()
        )
        if not response.data:
            # Answered or cancelled concurrently between the read and the write
            raise StateError("Invite is no longer pending")

        if data.status == InviteDecision.ACCEPTED:
            await self._join_appointment(invite.appointment_id, actor.member_id)

        logger.info("Invite %s %s by %s", invite_id, answered.status.value, actor.member_id)
        return {**response.data[0], "appointments": row.get("appointments")}

    async def cancel_invite(self, invite_id: UUID, actor: MemberContext) -> None:
        """Withdraw a pending invite the caller sent.

        Raises:
            NotFoundError: If the invite does not exist in the caller's company.
            StateError: If it is no longer pending or the caller did not send it.
        """
        row = await self._get_invite(invite_id, actor)
        now = datetime.now(timezone.utc)
        cancelled = invite_state.cancel(InviteResponse(**row), actor.member_id, now)

        response = (
            self.client.table("appointment_invites")
            .update({"status": cancelled.status.value, "updated_at": now.isoformat()})
            .eq("id", str(invite_id))
            .eq("status", InviteStatus.PENDING.value)
            .execute()
        )
        if not response.data:
            raise StateError("Invite is no longer pending")
        logger.info("Invite %s cancelled by %s", invite_id, actor.member_id)

    async def _join_appointment(self, appointment_id: UUID, member_id: UUID) -> None:
        """Add the member to the appointment's participants.

        The write only lands if ``updated_at`` still matches what was read, so
        two invitees accepting at once cannot drop each other. A lost race is
        retried against a fresh read.

        Raises:
            StateError: If the appointment kept changing on every attempt.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(JOIN_ATTEMPTS),
                retry=retry_if_exception_type(ParticipantsChangedError),
                reraise=True,
            ):
                with attempt:
                    self._append_participant(appointment_id, member_id)
        except ParticipantsChangedError as e:
            logger.error(
                "Could not add %s to appointment %s after %d attempts",
                member_id,
                appointment_id,
                JOIN_ATTEMPTS,
            )
            raise StateError("The appointment is being changed by someone else, try again") from e

    def _append_participant(self, appointment_id: UUID, member_id: UUID) -> None:
        response = (
            self.client.table("appointments")
            .select("participant_ids, updated_at")
            .eq("id", str(appointment_id))
            .execute()
        )
        if not response.data:
            return

        current = response.data[0]
        participant_ids = [str(pid) for pid in current.get("participant_ids") or []]
        if str(member_id) in participant_ids:
            return

        written = (
            self.client.table("appointments")
            .update(
                {
                    "participant_ids": participant_ids + [str(member_id)],
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .eq("id", str(appointment_id))
            .eq("updated_at", current["updated_at"])
            .execute()
        )
        if not written.data:
            raise ParticipantsChangedError(str(appointment_id))

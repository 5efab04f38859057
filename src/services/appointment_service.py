"""Appointment business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import NotFoundError, ValidationError, permission_denied
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.core.wall_clock import business_now
from src.models.appointment import AppointmentStatus, AppointmentVisibility, InviteStatus
from src.schemas.appointment import AppointmentCreate, AppointmentUpdate
from src.schemas.auth import MemberContext
from src.services.date_window import WindowMode, validate_date_window
from src.services.member_service import MemberService

logger = logging.getLogger(__name__)

# Columns that may be cleared by sending null in a patch
NULLABLE_COLUMNS = {"description", "location", "notes"}


class AppointmentService:
    """Service for company calendar appointments.

    Every query is scoped to the caller's company. Only the owner of an
    appointment may change or delete it.
    """

    def __init__(self) -> None:
        """Initialize appointment service with Supabase client."""
        self.client = get_supabase_client()
        self.members = MemberService()

    def _now(self) -> datetime:
        return business_now(get_settings().business_timezone)

    @staticmethod
    def _can_view(appointment: dict[str, Any], actor: MemberContext) -> bool:
        if appointment.get("visibility") != AppointmentVisibility.PRIVATE.value:
            return True
        member_id = str(actor.member_id)
        participant_ids = [str(pid) for pid in appointment.get("participant_ids") or []]
        return str(appointment["owner_user_id"]) == member_id or member_id in participant_ids

    @staticmethod
    def _ensure_owner(appointment: dict[str, Any], actor: MemberContext, scope: str) -> None:
        if str(appointment["owner_user_id"]) != str(actor.member_id):
            raise permission_denied(scope)

    async def _ensure_participants_are_members(self, company_id: UUID, participant_ids: list[UUID]) -> None:
        for participant_id in participant_ids:
            if not await self.members.is_member(company_id, participant_id):
                raise ValidationError(f"Member {participant_id} does not belong to this company")

    async def create_appointment(self, data: AppointmentCreate, actor: MemberContext) -> dict[str, Any]:
        """Create an appointment owned by the caller.

        Args:
            data: Appointment creation data.
            actor: The calling member.

        Returns:
            dict: The created appointment row.

        Raises:
            ValidationError: If the dates are in the past or out of order, or a
                participant is not a company member.
        """
        errors = validate_date_window(data.start_at, data.end_at, self._now(), WindowMode.CREATE)
        if not errors.is_valid:
            raise ValidationError(
                errors.first_error or "Invalid dates",
                details=[{"loc": [field], "msg": msg, "type": "date_window"} for field, msg in errors.as_field_errors().items()],
            )

        await self._ensure_participants_are_members(actor.company_id, data.participant_ids)

        row = data.model_dump(mode="json")
        row.update(
            {
                "company_id": str(actor.company_id),
                "owner_user_id": str(actor.member_id),
                "status": AppointmentStatus.SCHEDULED.value,
            }
        )

        response = self.client.table("appointments").insert(row).execute()
        appointment = response.data[0]
        logger.info("Appointment %s created by %s", appointment["id"], actor.member_id)
        return appointment

    async def get_appointment(self, appointment_id: UUID, actor: MemberContext) -> dict[str, Any]:
        """Get an appointment visible to the caller.

        Raises:
            NotFoundError: If it does not exist in the caller's company or is
                private to other members.
        """
        response = (
            self.client.table("appointments")
            .select("*")
            .eq("id", str(appointment_id))
            .eq("company_id", str(actor.company_id))
            .execute()
        )

        if not response.data or not self._can_view(response.data[0], actor):
            raise NotFoundError("Appointment not found")

        return response.data[0]

    async def list_appointments(self, actor: MemberContext) -> list[dict[str, Any]]:
        """List the company's appointments the caller can see.

        Private appointments are only listed for their owner and participants.

        Returns:
            list[dict]: Appointment rows ordered by start.
        """
        response = (
            self.client.table("appointments")
            .select("*")
            .eq("company_id", str(actor.company_id))
            .order("start_at")
            .execute()
        )

        return [row for row in response.data or [] if self._can_view(row, actor)]

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
        actor: MemberContext,
    ) -> dict[str, Any]:
        """Apply a partial update.

        Dates are re-checked for ordering only, so past appointments can still
        be edited (for example to mark them completed).

        Raises:
            NotFoundError: If the appointment is not visible to the caller.
            AuthorizationError: If the caller is not the owner.
            ValidationError: If the resulting window is empty or inverted.
        """
        appointment = await self.get_appointment(appointment_id, actor)
        self._ensure_owner(appointment, actor, "calendar:update")

        patch = {
            key: value
            for key, value in data.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key in NULLABLE_COLUMNS
        }
        if not patch:
            return appointment

        if "start_at" in patch or "end_at" in patch:
            errors = validate_date_window(
                patch.get("start_at", appointment["start_at"]),
                patch.get("end_at", appointment["end_at"]),
                self._now(),
                WindowMode.EDIT,
            )
            if not errors.is_valid:
                raise ValidationError(errors.first_error or "Invalid dates")

        if data.participant_ids:
            await self._ensure_participants_are_members(actor.company_id, data.participant_ids)

        patch["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = (
            self.client.table("appointments")
            .update(patch)
            .eq("id", str(appointment_id))
            .execute()
        )
        return response.data[0]

    async def delete_appointment(self, appointment_id: UUID, actor: MemberContext) -> None:
        """Delete an appointment and cancel its pending invites.

        Raises:
            NotFoundError: If the appointment is not visible to the caller.
            AuthorizationError: If the caller is not the owner.
        """
        appointment = await self.get_appointment(appointment_id, actor)
        self._ensure_owner(appointment, actor, "calendar:delete")

        now = datetime.now(timezone.utc).isoformat()
        self.client.table("appointment_invites").update(
            {"status": InviteStatus.CANCELLED.value, "updated_at": now}
        ).eq("appointment_id", str(appointment_id)).eq(
            "status", InviteStatus.PENDING.value
        ).execute()

        self.client.table("appointments").delete().eq("id", str(appointment_id)).execute()
        logger.info("Appointment %s deleted by %s", appointment_id, actor.member_id)

    async def add_participant(
        self,
        appointment_id: UUID,
        member_id: UUID,
        actor: MemberContext,
    ) -> dict[str, Any]:
        """Add a member to the participant set (no-op if already there)."""
        appointment = await self.get_appointment(appointment_id, actor)
        self._ensure_owner(appointment, actor, "calendar:update")

        participant_ids = [str(pid) for pid in appointment.get("participant_ids") or []]
        if str(member_id) in participant_ids:
            return appointment

        if not await self.members.is_member(actor.company_id, member_id):
            raise ValidationError(f"Member {member_id} does not belong to this company")

        return await self._save_participants(appointment_id, participant_ids + [str(member_id)])

    async def remove_participant(
        self,
        appointment_id: UUID,
        member_id: UUID,
        actor: MemberContext,
    ) -> dict[str, Any]:
        """Remove a member from the participant set (no-op if absent)."""
        appointment = await self.get_appointment(appointment_id, actor)
        self._ensure_owner(appointment, actor, "calendar:update")

        participant_ids = [str(pid) for pid in appointment.get("participant_ids") or []]
        if str(member_id) not in participant_ids:
            return appointment

        return await self._save_participants(
            appointment_id, [pid for pid in participant_ids if pid != str(member_id)]
        )

    async def _save_participants(self, appointment_id: UUID, participant_ids: list[str]) -> dict[str, Any]:
        response = (
            self.client.table("appointments")
            .update(
                {
                    "participant_ids": participant_ids,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .eq("id", str(appointment_id))
            .execute()
        )
        return response.data[0]

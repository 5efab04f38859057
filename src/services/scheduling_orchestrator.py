"""Caller-side facade for appointments and invites.

One ``SchedulingOrchestrator`` belongs to one signed-in member's session. It
owns the in-memory appointment, invite and roster lists for that session and
is the only thing that mutates them.

Error policy:
    * Validation and state problems (bad dates, already-answered invites,
      editing someone else's appointment) come back as a failed
      ``OperationResult``; they are never raised.
    * Network and backend failures raise ``TransportError``. Permission
      failures raise ``PermissionDeniedError`` with a fixed, user-safe message.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from fastapi import status
from pydantic import ValidationError as SchemaValidationError

from src.api.middleware.error_handler import StateError
from src.core.config import get_settings
from src.core.wall_clock import business_now
from src.models.appointment import InviteDecision, InviteStatus
from src.schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from src.schemas.appointment_invite import InviteCreate, InviteRespond, InviteResponse
from src.schemas.calendar import Occurrence
from src.schemas.member import Member, ParticipantDisplay
from src.services import invite_state
from src.services.calendar_materializer import filter_appointments, materialize_all, resolve_occurrence
from src.services.date_window import WindowMode, validate_date_window
from src.services.participant_reconciler import ParticipantEditSession, resolve
from src.services.scheduling_client import (
    BackendError,
    PermissionDeniedError,
    SchedulingClient,
    TransportError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ONLY_OWNER_CAN_EDIT = "Only the member who created this appointment can change it"


class Action(str, Enum):
    """What the caller was trying to do, worded for error messages."""

    LOAD_APPOINTMENTS = "view appointments"
    GET_APPOINTMENT = "view this appointment"
    CREATE_APPOINTMENT = "create appointments"
    UPDATE_APPOINTMENT = "edit this appointment"
    DELETE_APPOINTMENT = "delete this appointment"
    UPDATE_PARTICIPANTS = "change the participants of this appointment"
    CREATE_INVITE = "invite members to this appointment"
    LOAD_INVITES = "view invites"
    RESPOND_INVITE = "respond to this invite"
    CANCEL_INVITE = "cancel this invite"
    LOAD_MEMBERS = "view company members"


def translate_error(action: Action, error: TransportError) -> TransportError:
    """Make a backend error safe to show to the user.

    Backend messages that name permission scopes (``calendar:update``) are
    replaced with a fixed sentence for the action. Any message containing a
    colon is treated that way; messages without one are shown verbatim.
    Network failures pass through untouched.
    """
    if not isinstance(error, BackendError):
        return error

    if error.status_code == status.HTTP_403_FORBIDDEN or ":" in error.message:
        return PermissionDeniedError(
            f"You don't have permission to {action.value}.",
            status_code=error.status_code,
        )
    if not error.message.strip():
        return BackendError(f"Failed to {action.value}.", status_code=error.status_code)
    return error


class FailureKind(str, Enum):
    VALIDATION = "validation"
    STATE = "state"


@dataclass
class OperationFailure:
    """Why an operation was refused; ``field_errors`` maps field to message."""

    kind: FailureKind
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)


@dataclass
class OperationResult(Generic[T]):
    """Outcome of an orchestrator write."""

    value: T | None = None
    error: OperationFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: FailureKind,
        message: str,
        field_errors: dict[str, str] | None = None,
    ) -> "OperationResult[T]":
        return cls(error=OperationFailure(kind=kind, message=message, field_errors=field_errors or {}))


@dataclass
class InviteFailure:
    """An invite that could not be created; retry it on its own."""

    invitee_id: UUID
    message: str
    status_code: int | None = None


@dataclass
class InviteFanOut:
    invites: list[InviteResponse] = field(default_factory=list)
    failures: list[InviteFailure] = field(default_factory=list)


@dataclass
class AppointmentCreation:
    """A created appointment and the outcome of each invite sent for it.

    The appointment exists even when some invites failed.
    """

    appointment: AppointmentResponse
    invites: list[InviteResponse] = field(default_factory=list)
    failures: list[InviteFailure] = field(default_factory=list)

    @property
    def all_invited(self) -> bool:
        return not self.failures


@dataclass
class LoadGuard:
    """Client-side protection against redundant list reloads.

    A reload is skipped while one of the same kind is in flight, or when the
    last successful one finished less than ``min_interval_seconds`` ago.
    ``generation`` moves whenever the list is patched locally; a load that
    started before the patch has its result dropped.
    """

    min_interval_seconds: float
    loading: bool = False
    last_load_at: float | None = None
    generation: int = 0
    idle: asyncio.Event = field(default_factory=asyncio.Event)

    def __post_init__(self) -> None:
        self.idle.set()

    def should_skip(self, now: float, force: bool = False) -> bool:
        if self.loading:
            return True
        if force or self.last_load_at is None:
            return False
        return now - self.last_load_at < self.min_interval_seconds

    def invalidate(self) -> None:
        self.generation += 1


def _schema_failure(error: SchemaValidationError) -> OperationResult[Any]:
    field_errors = {}
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "__root__"
        field_errors.setdefault(location, item["msg"].removeprefix("Value error, "))
    message = next(iter(field_errors.values()), "Invalid data")
    return OperationResult.failure(FailureKind.VALIDATION, message, field_errors)


def _backend_failure(error: BackendError) -> OperationResult[Any] | None:
    """Server-side validation/state rejections, returned instead of raised."""
    if error.status_code == status.HTTP_409_CONFLICT:
        return OperationResult.failure(FailureKind.STATE, error.message)
    if error.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY and ":" not in error.message:
        return OperationResult.failure(FailureKind.VALIDATION, error.message)
    return None


class SchedulingOrchestrator:
    """Appointment and invite workflows for one member's session."""

    def __init__(
        self,
        client: SchedulingClient,
        current_user_id: UUID,
        min_load_interval_seconds: float | None = None,
        timezone_name: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Scheduling API client authenticated as the member.
            current_user_id: The member's ID (profile ID).
            min_load_interval_seconds: Reload interval guard; defaults to settings.
            timezone_name: Business timezone; defaults to settings.
            clock: Monotonic clock used by the reload guards.
            now: Wall-clock "now" in the business timezone.
        """
        if min_load_interval_seconds is None or (timezone_name is None and now is None):
            settings = get_settings()
            if min_load_interval_seconds is None:
                min_load_interval_seconds = settings.load_min_interval_seconds
            if timezone_name is None:
                timezone_name = settings.business_timezone

        self._client = client
        self.current_user_id = current_user_id
        self._clock = clock
        self._now = now or (lambda: business_now(timezone_name))

        self.appointments: list[AppointmentResponse] = []
        self.my_invites: list[InviteResponse] = []
        self.pending_invites: list[InviteResponse] = []
        self.members: list[Member] = []
        self.sent_invites: dict[UUID, InviteResponse] = {}

        self._guards = {
            name: LoadGuard(min_interval_seconds=min_load_interval_seconds)
            for name in ("appointments", "my_invites", "pending_invites", "members")
        }

    # Loading

    async def _load(
        self,
        name: str,
        fetch: Callable[[], Awaitable[list[Any]]],
        action: Action,
        force: bool = False,
    ) -> list[Any]:
        guard = self._guards[name]
        if force:
            # A forced reload must see state newer than the load in flight
            while guard.loading:
                await guard.idle.wait()

        if guard.should_skip(self._clock(), force):
            logger.debug("Skipping %s reload (loading=%s)", name, guard.loading)
            return getattr(self, name)

        generation = guard.generation
        guard.loading = True
        guard.idle.clear()
        try:
            items = await fetch()
        except TransportError as e:
            # Keep showing the last list we had
            raise translate_error(action, e) from e
        finally:
            guard.loading = False
            guard.idle.set()

        if generation != guard.generation:
            logger.debug("Dropping %s reload that started before a local change", name)
            return getattr(self, name)

        guard.last_load_at = self._clock()
        setattr(self, name, items)
        return items

    async def load_appointments(self, force: bool = False) -> list[AppointmentResponse]:
        """Fetch the company calendar, unless a reload just happened."""
        return await self._load("appointments", self._client.list_appointments, Action.LOAD_APPOINTMENTS, force)

    async def load_my_invites(self, force: bool = False) -> list[InviteResponse]:
        """Fetch every invite addressed to the member."""
        return await self._load("my_invites", self._client.list_my_invites, Action.LOAD_INVITES, force)

    async def load_pending_invites(self, force: bool = False) -> list[InviteResponse]:
        """Fetch the invites still waiting for the member's answer."""
        return await self._load("pending_invites", self._client.list_pending_invites, Action.LOAD_INVITES, force)

    async def load_members(self, force: bool = False) -> list[Member]:
        """Fetch the company roster used to display participants."""
        return await self._load("members", self._client.list_members, Action.LOAD_MEMBERS, force)

    # Lookups

    def find_appointment(self, appointment_id: UUID) -> AppointmentResponse | None:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    def find_invite(self, invite_id: UUID) -> InviteResponse | None:
        for invite in (*self.pending_invites, *self.my_invites, *self.sent_invites.values()):
            if invite.id == invite_id:
                return invite
        return None

    def _store_appointment(self, appointment: AppointmentResponse) -> None:
        others = [a for a in self.appointments if a.id != appointment.id]
        self.appointments = sorted([*others, appointment], key=lambda a: a.start_at)
        self._guards["appointments"].invalidate()

    def _store_invite(self, invite: InviteResponse) -> None:
        self.my_invites = [invite if i.id == invite.id else i for i in self.my_invites]
        if invite.status == InviteStatus.PENDING:
            self.pending_invites = [invite if i.id == invite.id else i for i in self.pending_invites]
        else:
            self.pending_invites = [i for i in self.pending_invites if i.id != invite.id]
        self._guards["my_invites"].invalidate()
        self._guards["pending_invites"].invalidate()

    def _owner_failure(self, appointment_id: UUID) -> OperationResult[Any] | None:
        appointment = self.find_appointment(appointment_id)
        if appointment is not None and appointment.owner_user_id != self.current_user_id:
            return OperationResult.failure(FailureKind.STATE, ONLY_OWNER_CAN_EDIT)
        return None

    # Appointments

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """Fetch one appointment and refresh it in the cached list."""
        try:
            appointment = await self._client.get_appointment(appointment_id)
        except TransportError as e:
            raise translate_error(Action.GET_APPOINTMENT, e) from e

        if self.find_appointment(appointment_id) is not None:
            self._store_appointment(appointment)
        return appointment

    async def create_appointment(
        self,
        fields: AppointmentCreate | dict[str, Any],
        invitee_ids: Iterable[UUID] = (),
        message: str | None = None,
    ) -> OperationResult[AppointmentCreation]:
        """Validate and create an appointment, then invite each invitee.

        Invites are created one call per invitee. A failed invite never undoes
        the appointment; it is reported in ``failures`` so the caller can
        retry that invitee alone.

        Args:
            fields: Appointment fields.
            invitee_ids: Members to invite.
            message: Optional note attached to every invite.

        Returns:
            OperationResult[AppointmentCreation]: The appointment with invite
            outcomes, or a validation failure (nothing was sent).

        Raises:
            TransportError: If the appointment itself could not be created.
        """
        try:
            data = fields if isinstance(fields, AppointmentCreate) else AppointmentCreate.model_validate(fields)
        except SchemaValidationError as e:
            return _schema_failure(e)

        window = validate_date_window(data.start_at, data.end_at, self._now(), WindowMode.CREATE)
        if not window.is_valid:
            return OperationResult.failure(
                FailureKind.VALIDATION,
                window.first_error or "Invalid dates",
                window.as_field_errors(),
            )

        try:
            appointment = await self._client.create_appointment(data)
        except BackendError as e:
            failure = _backend_failure(e)
            if failure is not None:
                return failure
            raise translate_error(Action.CREATE_APPOINTMENT, e) from e
        except TransportError as e:
            raise translate_error(Action.CREATE_APPOINTMENT, e) from e

        self._store_appointment(appointment)
        fan_out = await self._fan_out(appointment.id, invitee_ids, message)
        return OperationResult.success(
            AppointmentCreation(
                appointment=appointment,
                invites=fan_out.invites,
                failures=fan_out.failures,
            )
        )

    async def update_appointment(
        self,
        appointment_id: UUID,
        patch: AppointmentUpdate | dict[str, Any],
    ) -> OperationResult[AppointmentResponse]:
        """Apply a partial update to an appointment the member owns.

        Dates are only checked for ordering, and only when both are in the
        patch; past appointments remain editable.
        """
        try:
            data = patch if isinstance(patch, AppointmentUpdate) else AppointmentUpdate.model_validate(patch)
        except SchemaValidationError as e:
            return _schema_failure(e)

        refused = self._owner_failure(appointment_id)
        if refused is not None:
            return refused

        if data.start_at is not None and data.end_at is not None:
            window = validate_date_window(data.start_at, data.end_at, self._now(), WindowMode.EDIT)
            if not window.is_valid:
                return OperationResult.failure(
                    FailureKind.VALIDATION,
                    window.first_error or "Invalid dates",
                    window.as_field_errors(),
                )

        try:
            appointment = await self._client.update_appointment(appointment_id, data)
        except BackendError as e:
            failure = _backend_failure(e)
            if failure is not None:
                return failure
            raise translate_error(Action.UPDATE_APPOINTMENT, e) from e
        except TransportError as e:
            raise translate_error(Action.UPDATE_APPOINTMENT, e) from e

        self._store_appointment(appointment)
        return OperationResult.success(appointment)

    async def delete_appointment(self, appointment_id: UUID) -> OperationResult[None]:
        """Delete an appointment the member owns; its pending invites are cancelled server-side."""
        refused = self._owner_failure(appointment_id)
        if refused is not None:
            return refused

        try:
            await self._client.delete_appointment(appointment_id)
        except BackendError as e:
            failure = _backend_failure(e)
            if failure is not None:
                return failure
            raise translate_error(Action.DELETE_APPOINTMENT, e) from e
        except TransportError as e:
            raise translate_error(Action.DELETE_APPOINTMENT, e) from e

        self.appointments = [a for a in self.appointments if a.id != appointment_id]
        self._guards["appointments"].invalidate()
        return OperationResult.success()

    # Participants

    def participants(self, appointment: AppointmentResponse) -> list[ParticipantDisplay]:
        """Participants of an appointment as known to the loaded roster."""
        return resolve(appointment.participant_ids, self.members)

    async def begin_participant_edit(self, appointment_id: UUID) -> ParticipantEditSession:
        """Start staging participant changes for an appointment."""
        appointment = self.find_appointment(appointment_id) or await self.get_appointment(appointment_id)
        return ParticipantEditSession(appointment.participant_ids)

    async def commit_participant_edit(
        self,
        appointment_id: UUID,
        session: ParticipantEditSession,
    ) -> OperationResult[AppointmentResponse]:
        """Save a staged participant set. Nothing is sent when nothing changed."""
        if not session.is_dirty:
            appointment = self.find_appointment(appointment_id)
            if appointment is not None:
                return OperationResult.success(appointment)

        result = await self.update_appointment(
            appointment_id,
            AppointmentUpdate(participant_ids=session.staged_ids),
        )
        if result.ok:
            session.mark_saved()
        return result

    async def add_participant(self, appointment_id: UUID, member_id: UUID) -> OperationResult[AppointmentResponse]:
        """Add one participant immediately."""
        return await self._change_participant(appointment_id, member_id, add=True)

    async def remove_participant(self, appointment_id: UUID, member_id: UUID) -> OperationResult[AppointmentResponse]:
        """Remove one participant immediately."""
        return await self._change_participant(appointment_id, member_id, add=False)

    async def _change_participant(
        self,
        appointment_id: UUID,
        member_id: UUID,
        add: bool,
    ) -> OperationResult[AppointmentResponse]:
        refused = self._owner_failure(appointment_id)
        if refused is not None:
            return refused

        call = self._client.add_participant if add else self._client.remove_participant
        try:
            appointment = await call(appointment_id, member_id)
        except BackendError as e:
            failure = _backend_failure(e)
            if failure is not None:
                return failure
            raise translate_error(Action.UPDATE_PARTICIPANTS, e) from e
        except TransportError as e:
            raise translate_error(Action.UPDATE_PARTICIPANTS, e) from e

        self._store_appointment(appointment)
        return OperationResult.success(appointment)

    # Invites

    async def _fan_out(
        self,
        appointment_id: UUID,
        invitee_ids: Iterable[UUID],
        message: str | None,
    ) -> InviteFanOut:
        result = InviteFanOut()
        for invitee_id in dict.fromkeys(invitee_ids):
            try:
                invite = await self._client.create_invite(
                    InviteCreate(
                        appointment_id=appointment_id,
                        invited_user_id=invitee_id,
                        message=message,
                    )
                )
            except TransportError as e:
                translated = translate_error(Action.CREATE_INVITE, e)
                logger.warning(
                    "Invite for %s to appointment %s failed: %s",
                    invitee_id,
                    appointment_id,
                    translated.message,
                )
                result.failures.append(
                    InviteFailure(
                        invitee_id=invitee_id,
                        message=translated.message,
                        status_code=translated.status_code,
                    )
                )
                continue

            self.sent_invites[invite.id] = invite
            result.invites.append(invite)
        return result

    async def invite(
        self,
        appointment_id: UUID,
        invitee_ids: Iterable[UUID],
        message: str | None = None,
    ) -> OperationResult[InviteFanOut]:
        """Invite more members to an existing appointment the member owns."""
        refused = self._owner_failure(appointment_id)
        if refused is not None:
            return refused
        return OperationResult.success(await self._fan_out(appointment_id, invitee_ids, message))

    async def respond_to_invite(
        self,
        invite_id: UUID,
        decision: InviteDecision | str,
        response_message: str | None = None,
    ) -> OperationResult[InviteResponse]:
        """Accept or decline an invite, then refresh both invite lists.

        Accepting an invite whose appointment already ended is refused;
        declining it is allowed. The two lists are refreshed in order,
        my-invites first, then pending.
        """
        try:
            decision = InviteDecision(decision)
        except ValueError:
            return OperationResult.failure(FailureKind.VALIDATION, f"Unknown decision: {decision}")

        invite = self.find_invite(invite_id)
        if invite is not None:
            appointment = invite.appointment or self.find_appointment(invite.appointment_id)
            try:
                invite_state.ensure_respondable(invite, decision, appointment, self._now())
            except StateError as e:
                return OperationResult.failure(FailureKind.STATE, e.message)

        try:
            answered = await self._client.respond_to_invite(
                invite_id,
                InviteRespond(status=decision, response_message=response_message),
            )
        except BackendError as e:
            failure = _backend_failure(e)
            if failure is not None:
                return failure
            raise translate_error(Action.RESPOND_INVITE, e) from e
        except TransportError as e:
            raise translate_error(Action.RESPOND_INVITE, e) from e

        self._store_invite(answered)
        await self._refresh_invites()
        return OperationResult.success(answered)

    async def _refresh_invites(self) -> None:
        # The answer is already stored; a failed refresh only leaves the lists
        # as patched locally.
        for load in (self.load_my_invites, self.load_pending_invites):
            try:
                await load(force=True)
            except TransportError as e:
                logger.warning("Invite list refresh failed: %s", e.message)

    async def cancel_invite(self, invite_id: UUID) -> OperationResult[InviteResponse]:
        """Withdraw a pending invite the member sent."""
        invite = self.find_invite(invite_id)
        cancelled = None
        if invite is not None:
            try:
                cancelled = invite_state.cancel(invite, self.current_user_id)
            except StateError as e:
                return OperationResult.failure(FailureKind.STATE, e.message)

        try:
            await self._client.cancel_invite(invite_id)
        except BackendError as e:
            failure = _backend_failure(e)
            if failure is not None:
                return failure
            raise translate_error(Action.CANCEL_INVITE, e) from e
        except TransportError as e:
            raise translate_error(Action.CANCEL_INVITE, e) from e

        if cancelled is not None:
            self.sent_invites[invite_id] = cancelled
        return OperationResult.success(cancelled)

    # Calendar

    def calendar_occurrences(self, search: str | None = None) -> list[Occurrence]:
        """Occurrences for the loaded appointments matching ``search``."""
        return materialize_all(filter_appointments(self.appointments, search))

    def appointment_for(self, occurrence: Occurrence | str) -> AppointmentResponse | None:
        """The appointment behind a clicked occurrence."""
        return resolve_occurrence(occurrence, self.appointments)

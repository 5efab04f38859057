"""Expansion of stored appointments into calendar occurrences.

Appointment times are rendered exactly as written (see ``src.core.wall_clock``),
so an appointment entered for 10:00 shows at 10:00 in any viewer timezone.
Travelling viewers are not adjusted for.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, time, timedelta
from uuid import UUID

from src.core.wall_clock import as_wall_clock, day_range, start_of_day
from src.schemas.appointment import AppointmentResponse
from src.schemas.calendar import Occurrence, OccurrenceProps

logger = logging.getLogger(__name__)


class MaterializationError(Exception):
    """An appointment reached rendering with an empty or inverted range.

    Dates are validated before they are stored, so this points at an upstream
    bug. Only the offending appointment is dropped from the render.
    """

    def __init__(self, appointment_id: UUID, message: str) -> None:
        self.appointment_id = appointment_id
        self.message = message
        super().__init__(f"{message} (appointment {appointment_id})")


def _props(appointment: AppointmentResponse) -> OccurrenceProps:
    return OccurrenceProps(
        type=appointment.type,
        status=appointment.status,
        visibility=appointment.visibility,
        location=appointment.location,
        description=appointment.description,
        notes=appointment.notes,
        owner_user_id=appointment.owner_user_id,
        participant_ids=tuple(appointment.participant_ids),
        original_appointment_id=appointment.id,
    )


def materialize(appointment: AppointmentResponse) -> list[Occurrence]:
    """Turn one appointment into the blocks drawn on the calendar.

    A same-day appointment becomes a single timed block whose ID is the
    appointment ID. An appointment spanning several calendar days becomes one
    all-day block per day, from its start day to its end day inclusive, with
    IDs ``<appointment id>-<YYYY-MM-DD>``.

    Args:
        appointment: A stored appointment.

    Returns:
        list[Occurrence]: Occurrences in chronological order, all sharing
        ``group_id == str(appointment.id)``.

    Raises:
        MaterializationError: If the appointment does not end after it starts.
    """
    start_at = as_wall_clock(appointment.start_at)
    end_at = as_wall_clock(appointment.end_at)
    if end_at <= start_at:
        raise MaterializationError(appointment.id, "Appointment must end after it starts")

    group_id = str(appointment.id)
    props = _props(appointment)

    start_day = start_of_day(start_at)
    end_day = start_of_day(end_at)

    if start_day == end_day:
        return [
            Occurrence(
                id=group_id,
                group_id=group_id,
                title=appointment.title,
                start=start_at,
                end=end_at,
                all_day=False,
                color=appointment.color,
                extended_props=props,
            )
        ]

    occurrences = []
    for day in day_range(start_day.date(), end_day.date()):
        day_start = datetime.combine(day, time.min)
        occurrences.append(
            Occurrence(
                id=f"{group_id}-{day.isoformat()}",
                group_id=group_id,
                title=appointment.title,
                start=day_start,
                end=day_start + timedelta(days=1),
                all_day=True,
                color=appointment.color,
                extended_props=props,
            )
        )
    return occurrences


def materialize_all(appointments: Iterable[AppointmentResponse]) -> list[Occurrence]:
    """Materialize a list of appointments for one calendar view.

    An appointment with a broken range is logged and left out; the others
    still render.
    """
    occurrences: list[Occurrence] = []
    for appointment in appointments:
        try:
            occurrences.extend(materialize(appointment))
        except MaterializationError as e:
            logger.error("Skipping appointment in calendar render: %s", e)
    return occurrences


def resolve_occurrence(
    occurrence: Occurrence | str,
    appointments: Iterable[AppointmentResponse],
) -> AppointmentResponse | None:
    """Find the appointment behind a clicked occurrence (or its group ID)."""
    group_id = occurrence.group_id if isinstance(occurrence, Occurrence) else occurrence
    for appointment in appointments:
        if str(appointment.id) == group_id:
            return appointment
    return None


def filter_appointments(
    appointments: Iterable[AppointmentResponse],
    search: str | None,
) -> list[AppointmentResponse]:
    """Case-insensitive search over title, description and location."""
    items = list(appointments)
    if not search:
        return items

    needle = search.lower()
    return [
        a
        for a in items
        if needle in a.title.lower()
        or (a.description and needle in a.description.lower())
        or (a.location and needle in a.location.lower())
    ]

"""Start/end validation for appointment forms."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from src.core.wall_clock import as_wall_clock, truncate_to_minute

START_IN_PAST = "Start date/time cannot be in the past"
END_IN_PAST = "End date/time cannot be in the past"
END_NOT_AFTER_START = "End date/time must be after the start date/time"


class WindowMode(str, Enum):
    """Which rule set applies.

    Creation refuses anything in the past. Editing only checks ordering, so
    an appointment that already happened can still have its status changed.
    """

    CREATE = "create"
    EDIT = "edit"


@dataclass(frozen=True)
class DateWindowErrors:
    """Inline messages for the start and end fields; None means valid."""

    start_error: str | None = None
    end_error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.start_error is None and self.end_error is None

    @property
    def first_error(self) -> str | None:
        """The message to toast when the form is submitted anyway."""
        return self.start_error or self.end_error

    def as_field_errors(self) -> dict[str, str]:
        errors = {}
        if self.start_error:
            errors["start_at"] = self.start_error
        if self.end_error:
            errors["end_at"] = self.end_error
        return errors


def validate_date_window(
    start: datetime | str,
    end: datetime | str,
    now: datetime | str,
    mode: WindowMode = WindowMode.CREATE,
) -> DateWindowErrors:
    """Validate a start/end pair against each other and against now.

    Only the first failing rule produces a message. ``now`` is truncated to
    the minute so a start picked "this minute" is not rejected by a clock tick.

    Args:
        start: Appointment start (wall clock).
        end: Appointment end (wall clock).
        now: Current wall-clock time in the business timezone.
        mode: CREATE applies all rules, EDIT only the ordering rule.

    Returns:
        DateWindowErrors: The start and end messages, if any.
    """
    start_at = as_wall_clock(start)
    end_at = as_wall_clock(end)

    if mode == WindowMode.CREATE:
        cutoff = truncate_to_minute(as_wall_clock(now))
        if start_at < cutoff:
            return DateWindowErrors(start_error=START_IN_PAST)
        if end_at < cutoff:
            return DateWindowErrors(end_error=END_IN_PAST)

    if end_at <= start_at:
        return DateWindowErrors(end_error=END_NOT_AFTER_START)

    return DateWindowErrors()


def default_window(now: datetime) -> tuple[datetime, datetime]:
    """Default start/end offered by the create form.

    The start is the next full hour and the end one hour later, rolling over
    into the next day when needed.
    """
    next_hour = truncate_to_minute(as_wall_clock(now)).replace(minute=0) + timedelta(hours=1)
    return next_hour, next_hour + timedelta(hours=1)

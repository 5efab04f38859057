"""Joins appointment participant IDs with the member roster.

The roster is authoritative: a participant whose ID is not in it (for example
a member who left the company) is silently left out.
"""

from collections.abc import Iterable
from uuid import UUID

from src.schemas.member import Member, ParticipantDisplay


def resolve(participant_ids: Iterable[UUID], roster: Iterable[Member]) -> list[ParticipantDisplay]:
    """Build the participant list shown on an appointment.

    Args:
        participant_ids: IDs stored on the appointment (or staged in an edit).
        roster: Members of the company.

    Returns:
        list[ParticipantDisplay]: One entry per known participant, in
        participant-ID order, without repeats.
    """
    members_by_id = {member.id: member for member in roster}
    participants = []
    seen: set[UUID] = set()
    for participant_id in participant_ids:
        member = members_by_id.get(participant_id)
        if member is None or participant_id in seen:
            continue
        seen.add(participant_id)
        participants.append(ParticipantDisplay.from_member(member))
    return participants


class ParticipantEditSession:
    """Participant changes staged while an appointment is being edited.

    Nothing here is persisted. The orchestrator reads ``staged_ids`` when the
    user saves; discarding the session discards the changes.
    """

    def __init__(self, persisted_ids: Iterable[UUID]) -> None:
        self._persisted: list[UUID] = list(dict.fromkeys(persisted_ids))
        self._staged: list[UUID] = list(self._persisted)

    @property
    def staged_ids(self) -> list[UUID]:
        return list(self._staged)

    @property
    def persisted_ids(self) -> list[UUID]:
        return list(self._persisted)

    @property
    def added_ids(self) -> list[UUID]:
        return [pid for pid in self._staged if pid not in self._persisted]

    @property
    def removed_ids(self) -> list[UUID]:
        return [pid for pid in self._persisted if pid not in self._staged]

    @property
    def is_dirty(self) -> bool:
        return set(self._staged) != set(self._persisted)

    def add(self, participant_id: UUID) -> None:
        """Stage a participant; adding one already staged does nothing."""
        if participant_id not in self._staged:
            self._staged.append(participant_id)

    def remove(self, participant_id: UUID) -> None:
        """Unstage a participant if present."""
        self._staged = [pid for pid in self._staged if pid != participant_id]

    def reset(self) -> None:
        """Drop every staged change."""
        self._staged = list(self._persisted)

    def mark_saved(self) -> None:
        """Treat the staged set as the persisted one after a successful save."""
        self._persisted = list(self._staged)

    def display(self, roster: Iterable[Member]) -> list[ParticipantDisplay]:
        return resolve(self._staged, roster)

    def available(self, roster: Iterable[Member]) -> list[Member]:
        """Roster members that can still be added."""
        return [member for member in roster if member.id not in self._staged]

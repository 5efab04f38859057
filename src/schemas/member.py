"""Member directory schemas."""

from uuid import UUID

from pydantic import Field

from src.models.member import MemberRole
from src.schemas.common import CamelModel


class Member(CamelModel):
    """A company member as returned by the directory."""

    id: UUID = Field(description="Member (profile) identifier")
    name: str = Field(description="Display name")
    email: str | None = Field(default=None, description="Contact email")
    avatar: str | None = Field(default=None, description="Avatar URL")
    phone: str | None = Field(default=None, description="Contact phone")
    role: MemberRole = Field(default=MemberRole.MEMBER, description="Role inside the company")


class ParticipantDisplay(CamelModel):
    """Participant row rendered on an appointment, derived from the roster."""

    id: UUID
    name: str
    email: str | None = None
    avatar: str | None = None
    phone: str | None = None

    @classmethod
    def from_member(cls, member: Member) -> "ParticipantDisplay":
        """Project a roster entry into its display form."""
        return cls(
            id=member.id,
            name=member.name,
            email=member.email,
            avatar=member.avatar,
            phone=member.phone,
        )

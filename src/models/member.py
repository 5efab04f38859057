"""Company member model type definitions."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class MemberRole(str, Enum):
    """Roles a profile can hold inside a company."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class CompanyMember(TypedDict):
    """Company member table row representation.

    Members are identified on appointments by their profile ID.
    """

    id: UUID
    company_id: UUID
    profile_id: UUID
    role: MemberRole
    joined_at: datetime

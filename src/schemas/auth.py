"""Authentication schemas for JWT tokens and member context."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user extracted from the JWT."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'user', 'admin')")


class MemberContext(BaseModel):
    """Authenticated user resolved to their company membership.

    Appointments and invites refer to members by ``member_id`` (the profile
    ID), never by the auth user ID.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Auth user ID from the token")
    member_id: UUID = Field(description="Profile ID used on appointments and invites")
    company_id: UUID = Field(description="Company the member belongs to")
    email: str | None = None


class TokenPayload(BaseModel):
    """Supabase JWT claims used by the API."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext."""
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
        )

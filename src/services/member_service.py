"""Company member directory service."""

import logging
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.member import MemberRole
from src.schemas.auth import MemberContext, UserContext
from src.schemas.member import Member

logger = logging.getLogger(__name__)


class MemberService:
    """Read-only access to company members and their profiles."""

    def __init__(self) -> None:
        """Initialize member service with Supabase client."""
        self.client = get_supabase_client()

    async def get_member_context(self, user: UserContext) -> MemberContext | None:
        """Resolve an authenticated user to their profile and company.

        Args:
            user: The authenticated user from the JWT.

        Returns:
            MemberContext | None: The membership, or None if the user has no
            profile or belongs to no company.
        """
        profile_response = (
            self.client.table("profiles")
            .select("id, email")
            .eq("user_id", str(user.user_id))
            .execute()
        )
        if not profile_response.data:
            return None

        profile = profile_response.data[0]
        membership_response = (
            self.client.table("company_members")
            .select("company_id")
            .eq("profile_id", profile["id"])
            .order("joined_at")
            .limit(1)
            .execute()
        )
        if not membership_response.data:
            logger.info("Profile %s has no company membership", profile["id"])
            return None

        return MemberContext(
            user_id=user.user_id,
            member_id=profile["id"],
            company_id=membership_response.data[0]["company_id"],
            email=profile.get("email") or user.email,
        )

    async def get_roster(self, company_id: UUID) -> list[Member]:
        """List every member of a company with their profile details.

        Args:
            company_id: The company's UUID.

        Returns:
            list[Member]: Members ordered by display name.
        """
        response = (
            self.client.table("company_members")
            .select("profile_id, role, profiles(id, display_name, email, avatar_url, phone)")
            .eq("company_id", str(company_id))
            .execute()
        )

        members = []
        for row in response.data or []:
            profile = row.get("profiles") or {}
            members.append(
                Member(
                    id=row["profile_id"],
                    name=profile.get("display_name") or profile.get("email") or "Unknown",
                    email=profile.get("email"),
                    avatar=profile.get("avatar_url"),
                    phone=profile.get("phone"),
                    role=row.get("role") or MemberRole.MEMBER,
                )
            )

        return sorted(members, key=lambda m: m.name.lower())

    async def is_member(self, company_id: UUID, member_id: UUID) -> bool:
        """Check if a profile is a member of a company.

        Args:
            company_id: The company's UUID.
            member_id: The profile's UUID.

        Returns:
            bool: True if the profile is a member.
        """
        response = (
            self.client.table("company_members")
            .select("id")
            .eq("company_id", str(company_id))
            .eq("profile_id", str(member_id))
            .execute()
        )

        return len(response.data) > 0

"""Company member directory routes."""

from fastapi import APIRouter

from src.api.deps import CurrentMember
from src.schemas.member import Member
from src.services.member_service import MemberService

router = APIRouter(prefix="/members", tags=["members"])


@router.get(
    "",
    response_model=list[Member],
    summary="List company members",
    description="Returns the caller's company roster, used to pick participants and invitees.",
)
async def list_members(member: CurrentMember) -> list[Member]:
    service = MemberService()
    return await service.get_roster(member.company_id)

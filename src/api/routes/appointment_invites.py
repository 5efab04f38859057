"""Appointment invite API routes."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentMember
from src.schemas.appointment_invite import InviteCreate, InviteRespond, InviteResponse
from src.services.appointment_invite_service import AppointmentInviteService

router = APIRouter(prefix="/appointment-invites", tags=["appointment-invites"])


@router.post(
    "",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a member",
    description="Invites a company member to an appointment the caller owns.",
)
async def create_invite(data: InviteCreate, member: CurrentMember) -> InviteResponse:
    service = AppointmentInviteService()
    invite = await service.create_invite(data, member)
    return InviteResponse(**invite)


@router.get(
    "/my-invites",
    response_model=list[InviteResponse],
    summary="List my invites",
    description="Returns every invite addressed to the caller, in any status.",
)
async def list_my_invites(member: CurrentMember) -> list[InviteResponse]:
    service = AppointmentInviteService()
    invites = await service.list_my_invites(member)
    return [InviteResponse(**i) for i in invites]


@router.get(
    "/pending",
    response_model=list[InviteResponse],
    summary="List pending invites",
    description="Returns the invites still waiting for the caller's answer.",
)
async def list_pending_invites(member: CurrentMember) -> list[InviteResponse]:
    service = AppointmentInviteService()
    invites = await service.list_pending_invites(member)
    return [InviteResponse(**i) for i in invites]


@router.patch(
    "/{invite_id}/respond",
    response_model=InviteResponse,
    summary="Respond to an invite",
    responses={409: {"description": "Invite already answered, or the appointment has ended"}},
)
async def respond_to_invite(
    invite_id: UUID,
    data: InviteRespond,
    member: CurrentMember,
) -> InviteResponse:
    """Accept or decline an invite.

    Args:
        invite_id: The invite's UUID.
        data: The decision and an optional reply.
        member: The calling member (must be the invitee).

    Returns:
        InviteResponse: The answered invite.
    """
    service = AppointmentInviteService()
    invite = await service.respond_to_invite(invite_id, data, member)
    return InviteResponse(**invite)


@router.delete(
    "/{invite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel an invite",
    description="Withdraws a pending invite. Only the member who sent it may do this.",
)
async def cancel_invite(invite_id: UUID, member: CurrentMember) -> Response:
    service = AppointmentInviteService()
    await service.cancel_invite(invite_id, member)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Appointment API routes."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentMember
from src.schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from src.services.appointment_service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an appointment",
    description="Creates an appointment owned by the calling member.",
)
async def create_appointment(
    data: AppointmentCreate,
    member: CurrentMember,
) -> AppointmentResponse:
    """Create an appointment.

    Start and end are wall-clock times in the business timezone and must not
    be in the past.

    Args:
        data: Appointment creation data.
        member: The calling member.

    Returns:
        AppointmentResponse: The created appointment.
    """
    service = AppointmentService()
    appointment = await service.create_appointment(data, member)
    return AppointmentResponse(**appointment)


@router.get(
    "",
    response_model=list[AppointmentResponse],
    summary="List appointments",
    description="Returns the company's appointments visible to the calling member.",
)
async def list_appointments(member: CurrentMember) -> list[AppointmentResponse]:
    service = AppointmentService()
    appointments = await service.list_appointments(member)
    return [AppointmentResponse(**a) for a in appointments]


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get an appointment",
)
async def get_appointment(appointment_id: UUID, member: CurrentMember) -> AppointmentResponse:
    service = AppointmentService()
    appointment = await service.get_appointment(appointment_id, member)
    return AppointmentResponse(**appointment)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Update an appointment",
    description="Partially updates an appointment. Only the owner may do this.",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    member: CurrentMember,
) -> AppointmentResponse:
    """Update an appointment.

    Only fields present in the body change. Past appointments stay editable;
    the dates only have to stay in order.

    Args:
        appointment_id: The appointment's UUID.
        data: Fields to change.
        member: The calling member.

    Returns:
        AppointmentResponse: The updated appointment.
    """
    service = AppointmentService()
    appointment = await service.update_appointment(appointment_id, data, member)
    return AppointmentResponse(**appointment)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an appointment",
    description="Deletes an appointment and cancels its pending invites. Only the owner may do this.",
)
async def delete_appointment(appointment_id: UUID, member: CurrentMember) -> Response:
    service = AppointmentService()
    await service.delete_appointment(appointment_id, member)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{appointment_id}/participants/{member_id}",
    response_model=AppointmentResponse,
    summary="Add a participant",
)
async def add_participant(
    appointment_id: UUID,
    member_id: UUID,
    member: CurrentMember,
) -> AppointmentResponse:
    service = AppointmentService()
    appointment = await service.add_participant(appointment_id, member_id, member)
    return AppointmentResponse(**appointment)


@router.delete(
    "/{appointment_id}/participants/{member_id}",
    response_model=AppointmentResponse,
    summary="Remove a participant",
)
async def remove_participant(
    appointment_id: UUID,
    member_id: UUID,
    member: CurrentMember,
) -> AppointmentResponse:
    service = AppointmentService()
    appointment = await service.remove_participant(appointment_id, member_id, member)
    return AppointmentResponse(**appointment)

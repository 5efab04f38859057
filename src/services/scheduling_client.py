"""HTTP client for the scheduling REST API.

Used by the orchestrator on the caller side. Responses are parsed into the
same pydantic schemas the API serves; failures surface as ``TransportError``.
"""

import logging
from typing import Any, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings
from src.schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from src.schemas.appointment_invite import InviteCreate, InviteRespond, InviteResponse
from src.schemas.member import Member

logger = logging.getLogger(__name__)

# Retry configuration for idempotent reads
MIN_WAIT_SECONDS = 0.5
MAX_WAIT_SECONDS = 5


class TransportError(Exception):
    """A scheduling API call failed.

    ``status_code`` is None when the request never got an HTTP response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BackendError(TransportError):
    """The API answered with a non-2xx status."""


class PermissionDeniedError(TransportError):
    """The caller lacks the permission an operation needs."""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, str):
            return message
        if isinstance(message, list) and message:
            return str(message[0].get("msg", message[0]) if isinstance(message[0], dict) else message[0])
    return response.reason_phrase


ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error("Unexpected %s payload: %s", model.__name__, e)
        raise TransportError(f"Unexpected response from the scheduling service: {e.error_count()} invalid field(s)") from e


def _parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise TransportError(f"Unexpected response from the scheduling service: expected a list of {model.__name__}")
    return [_parse(model, item) for item in data]


class SchedulingClient:
    """Async client for the appointment and invite endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        retry_wait_seconds: float = MIN_WAIT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ValueError("token is required")

        self._max_retries = max(1, max_retries)
        self._retry_wait_seconds = retry_wait_seconds
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, token: str) -> "SchedulingClient":
        """Build a client for the configured API."""
        settings = get_settings()
        return cls(
            base_url=settings.scheduling_api_url,
            token=token,
            timeout_seconds=settings.scheduling_api_timeout_seconds,
            max_retries=settings.scheduling_api_max_retries,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SchedulingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _send(self, method: str, path: str, json: Any = None) -> httpx.Response:
        try:
            return await self._http.request(method, path, json=json)
        except httpx.TransportError:
            raise
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

    async def _request(self, method: str, path: str, json: Any = None, retry: bool = False) -> Any:
        """Send a request and return the decoded JSON body (None for 204).

        Reads pass ``retry=True`` and are retried on network errors. Writes
        are sent once.

        Raises:
            BackendError: On a non-2xx response.
            TransportError: If the API could not be reached or answered
                with a body that is not JSON.
        """
        attempts = self._max_retries if retry else 1
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_exponential(multiplier=self._retry_wait_seconds, max=MAX_WAIT_SECONDS),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._send(method, path, json)
        except httpx.TransportError as e:
            logger.error("%s %s unreachable after %d attempt(s): %s", method, path, attempts, e)
            raise TransportError(f"Could not reach the scheduling service: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s - %s - %s", method, path, response.status_code, message)
            raise BackendError(message, status_code=response.status_code)

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error("%s %s - %s - body is not JSON", method, path, response.status_code)
            raise TransportError(f"Unexpected response from the scheduling service: {e}") from e

    # Appointments

    async def list_appointments(self) -> list[AppointmentResponse]:
        data = await self._request("GET", "/appointments", retry=True)
        return _parse_list(AppointmentResponse, data)

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        data = await self._request("GET", f"/appointments/{appointment_id}", retry=True)
        return _parse(AppointmentResponse, data)

    async def create_appointment(self, data: AppointmentCreate) -> AppointmentResponse:
        body = data.model_dump(mode="json", by_alias=True)
        return _parse(AppointmentResponse, await self._request("POST", "/appointments", json=body))

    async def update_appointment(self, appointment_id: UUID, patch: AppointmentUpdate) -> AppointmentResponse:
        body = patch.model_dump(mode="json", by_alias=True, exclude_unset=True)
        data = await self._request("PATCH", f"/appointments/{appointment_id}", json=body)
        return _parse(AppointmentResponse, data)

    async def delete_appointment(self, appointment_id: UUID) -> None:
        await self._request("DELETE", f"/appointments/{appointment_id}")

    async def add_participant(self, appointment_id: UUID, member_id: UUID) -> AppointmentResponse:
        data = await self._request("POST", f"/appointments/{appointment_id}/participants/{member_id}")
        return _parse(AppointmentResponse, data)

    async def remove_participant(self, appointment_id: UUID, member_id: UUID) -> AppointmentResponse:
        data = await self._request("DELETE", f"/appointments/{appointment_id}/participants/{member_id}")
        return _parse(AppointmentResponse, data)

    # Invites

    async def create_invite(self, data: InviteCreate) -> InviteResponse:
        body = data.model_dump(mode="json", by_alias=True, exclude_none=True)
        return _parse(InviteResponse, await self._request("POST", "/appointment-invites", json=body))

    async def list_my_invites(self) -> list[InviteResponse]:
        data = await self._request("GET", "/appointment-invites/my-invites", retry=True)
        return _parse_list(InviteResponse, data)

    async def list_pending_invites(self) -> list[InviteResponse]:
        data = await self._request("GET", "/appointment-invites/pending", retry=True)
        return _parse_list(InviteResponse, data)

    async def respond_to_invite(self, invite_id: UUID, data: InviteRespond) -> InviteResponse:
        body = data.model_dump(mode="json", by_alias=True, exclude_none=True)
        result = await self._request("PATCH", f"/appointment-invites/{invite_id}/respond", json=body)
        return _parse(InviteResponse, result)

    async def cancel_invite(self, invite_id: UUID) -> None:
        await self._request("DELETE", f"/appointment-invites/{invite_id}")

    # Directory

    async def list_members(self) -> list[Member]:
        data = await self._request("GET", "/members", retry=True)
        return _parse_list(Member, data)

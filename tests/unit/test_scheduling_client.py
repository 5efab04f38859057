"""Unit tests for the scheduling API client."""

import json
from uuid import UUID

import httpx
import pytest

from src.schemas.appointment import AppointmentCreate, AppointmentUpdate
from src.services.scheduling_client import BackendError, SchedulingClient, TransportError

BASE_URL = "https://api.example.com/api/v1"
APPOINTMENT_ID = UUID("880e8400-e29b-41d4-a716-446655440000")

APPOINTMENT_BODY = {
    "id": str(APPOINTMENT_ID),
    "companyId": "770e8400-e29b-41d4-a716-446655440000",
    "ownerUserId": "660e8400-e29b-41d4-a716-446655440001",
    "title": "Site visit",
    "type": "meeting",
    "status": "scheduled",
    "visibility": "public",
    "startAt": "2026-10-21T10:00:00",
    "endAt": "2026-10-21T11:00:00",
    "color": "#10B981",
    "participantIds": [],
}


def make_client(handler, **kwargs) -> SchedulingClient:
    return SchedulingClient(
        base_url=BASE_URL,
        token="test-token",
        retry_wait_seconds=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestRequests:
    """Tests for request building and response parsing."""

    @pytest.mark.asyncio
    async def test_list_appointments_sends_bearer_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[APPOINTMENT_BODY])

        async with make_client(handler) as client:
            appointments = await client.list_appointments()

        assert seen[0].headers["Authorization"] == "Bearer test-token"
        assert seen[0].url.path == "/api/v1/appointments"
        assert appointments[0].id == APPOINTMENT_ID
        assert appointments[0].color == "#10B981"

    @pytest.mark.asyncio
    async def test_create_sends_camel_case_body(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json=APPOINTMENT_BODY)

        async with make_client(handler) as client:
            await client.create_appointment(
                AppointmentCreate(title="Site visit", start_at="2026-10-21T10:00", end_at="2026-10-21T11:00")
            )

        assert bodies[0]["startAt"] == "2026-10-21T10:00:00"
        assert "start_at" not in bodies[0]

    @pytest.mark.asyncio
    async def test_update_sends_only_changed_fields(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=APPOINTMENT_BODY)

        async with make_client(handler) as client:
            await client.update_appointment(APPOINTMENT_ID, AppointmentUpdate(title="Renamed"))

        assert bodies == [{"title": "Renamed"}]

    @pytest.mark.asyncio
    async def test_no_content_returns_none(self) -> None:
        async with make_client(lambda request: httpx.Response(204)) as client:
            assert await client.delete_appointment(APPOINTMENT_ID) is None


class TestErrors:
    """Tests for error handling and retries."""

    @pytest.mark.asyncio
    async def test_error_status_raises_backend_error_with_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": "authorization_error", "message": "Missing permission: calendar:update"})

        async with make_client(handler) as client:
            with pytest.raises(BackendError) as exc_info:
                await client.update_appointment(APPOINTMENT_ID, AppointmentUpdate(title="x"))

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Missing permission: calendar:update"

    @pytest.mark.asyncio
    async def test_reads_are_retried_on_network_errors(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[])

        async with make_client(handler, max_retries=3) as client:
            assert await client.list_my_invites() == []

        assert calls == 3

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=3) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.delete_appointment(APPOINTMENT_ID)

        assert calls == 1
        assert exc_info.value.status_code is None
        assert not isinstance(exc_info.value, BackendError)

    @pytest.mark.asyncio
    async def test_non_json_body_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        async with make_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.list_appointments()

        assert not isinstance(exc_info.value, BackendError)
        assert exc_info.value.message.startswith("Unexpected response")

    @pytest.mark.asyncio
    async def test_mismatched_body_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "not-a-uuid"})

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.get_appointment(APPOINTMENT_ID)

    @pytest.mark.asyncio
    async def test_object_where_list_expected_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": []})

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.list_pending_invites()

    def test_token_is_required(self) -> None:
        with pytest.raises(ValueError):
            SchedulingClient(base_url=BASE_URL, token="")

"""Integration tests for appointment invite API endpoints."""

from typing import Any
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from tests.conftest import COMPANY_ID, INVITEE_ID, OWNER_ID

APPOINTMENT_ID = "880e8400-e29b-41d4-a716-446655440000"
INVITE_ID = "990e8400-e29b-41d4-a716-446655440000"


def make_invite_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": INVITE_ID,
        "appointment_id": APPOINTMENT_ID,
        "company_id": str(COMPANY_ID),
        "inviter_user_id": str(INVITEE_ID),
        "invited_user_id": str(OWNER_ID),
        "status": "pending",
        "message": "Can you make it?",
        "response_message": None,
        "responded_at": None,
        "created_at": "2026-10-20T12:00:00+00:00",
        "updated_at": "2026-10-20T12:00:00+00:00",
        "appointments": {
            "id": APPOINTMENT_ID,
            "title": "Site visit",
            "start_at": "2026-10-21T10:00:00",
            "end_at": "2026-10-21T11:00:00",
            "location": None,
            "color": "#3B82F6",
            "owner_user_id": str(INVITEE_ID),
        },
    }
    row.update(overrides)
    return row


class TestCreateInvite:
    """Tests for POST /api/v1/appointment-invites endpoint."""

    def test_creates_invite(self, member_client: TestClient, mock_supabase_client: MagicMock) -> None:
        lookup = MagicMock()
        lookup.data = [{"id": APPOINTMENT_ID, "owner_user_id": str(OWNER_ID), "visibility": "public"}]
        mock_supabase_client.table.return_value.select.return_value.eq.return_value.eq.return_value.execute.return_value = (
            lookup
        )
        existing = MagicMock()
        existing.data = []
        (
            mock_supabase_client.table.return_value.select.return_value.eq.return_value.eq.return_value.neq.return_value.execute.return_value
        ) = existing
        created = MagicMock()
        created.data = [
            make_invite_row(inviter_user_id=str(OWNER_ID), invited_user_id=str(INVITEE_ID), appointments=None)
        ]
        mock_supabase_client.table.return_value.insert.return_value.execute.return_value = created

        response = member_client.post(
            "/api/v1/appointment-invites",
            json={"appointmentId": APPOINTMENT_ID, "invitedUserId": str(INVITEE_ID), "message": "Can you make it?"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["invitedUserId"] == str(INVITEE_ID)
        assert data["appointment"] is None

    def test_rejects_long_message(self, member_client: TestClient) -> None:
        response = member_client.post(
            "/api/v1/appointment-invites",
            json={"appointmentId": APPOINTMENT_ID, "invitedUserId": str(INVITEE_ID), "message": "x" * 301},
        )

        assert response.status_code == 422


class TestListInvites:
    """Tests for GET /api/v1/appointment-invites endpoints."""

    def test_pending_invites_include_appointment(
        self, member_client: TestClient, mock_supabase_client: MagicMock
    ) -> None:
        response_data = MagicMock()
        response_data.data = [make_invite_row()]
        (
            mock_supabase_client.table.return_value.select.return_value.eq.return_value.eq.return_value.eq.return_value.order.return_value.execute.return_value
        ) = response_data

        response = member_client.get("/api/v1/appointment-invites/pending")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["appointment"]["title"] == "Site visit"
        assert data[0]["appointment"]["startAt"] == "2026-10-21T10:00:00"

    def test_my_invites(self, member_client: TestClient, mock_supabase_client: MagicMock) -> None:
        response_data = MagicMock()
        response_data.data = [make_invite_row(status="declined")]
        mock_supabase_client.table.return_value.select.return_value.eq.return_value.eq.return_value.order.return_value.execute.return_value = (
            response_data
        )

        response = member_client.get("/api/v1/appointment-invites/my-invites")

        assert response.status_code == 200
        assert response.json()[0]["status"] == "declined"


class TestRespondToInvite:
    """Tests for PATCH /api/v1/appointment-invites/{id}/respond endpoint."""

    def test_answered_invite_returns_409(self, member_client: TestClient, mock_supabase_client: MagicMock) -> None:
        lookup = MagicMock()
        lookup.data = [make_invite_row(status="accepted")]
        mock_supabase_client.table.return_value.select.return_value.eq.return_value.eq.return_value.execute.return_value = (
            lookup
        )

        response = member_client.patch(
            f"/api/v1/appointment-invites/{INVITE_ID}/respond",
            json={"status": "declined"},
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Invite has already been accepted"

    def test_rejects_pending_as_decision(self, member_client: TestClient) -> None:
        response = member_client.patch(
            f"/api/v1/appointment-invites/{INVITE_ID}/respond",
            json={"status": "pending"},
        )

        assert response.status_code == 422


class TestCancelInvite:
    """Tests for DELETE /api/v1/appointment-invites/{id} endpoint."""

    def test_inviter_cancels(self, member_client: TestClient, mock_supabase_client: MagicMock) -> None:
        lookup = MagicMock()
        lookup.data = [make_invite_row(inviter_user_id=str(OWNER_ID), invited_user_id=str(INVITEE_ID))]
        mock_supabase_client.table.return_value.select.return_value.eq.return_value.eq.return_value.execute.return_value = (
            lookup
        )

        response = member_client.delete(f"/api/v1/appointment-invites/{INVITE_ID}")

        assert response.status_code == 204
        patch_sent = mock_supabase_client.table.return_value.update.call_args[0][0]
        assert patch_sent["status"] == "cancelled"

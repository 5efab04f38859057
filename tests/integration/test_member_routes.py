"""Integration tests for the member directory endpoint."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from tests.conftest import INVITEE_ID, OWNER_ID


class TestListMembers:
    """Tests for GET /api/v1/members endpoint."""

    def test_returns_roster(self, member_client: TestClient, mock_supabase_client: MagicMock) -> None:
        response_data = MagicMock()
        response_data.data = [
            {
                "profile_id": str(OWNER_ID),
                "role": "owner",
                "profiles": {"display_name": "Olivia", "email": "owner@example.com"},
            },
            {
                "profile_id": str(INVITEE_ID),
                "role": "member",
                "profiles": {"display_name": "Ana", "avatar_url": "https://cdn.example.com/ana.png"},
            },
        ]
        mock_supabase_client.table.return_value.select.return_value.eq.return_value.execute.return_value = (
            response_data
        )

        response = member_client.get("/api/v1/members")

        assert response.status_code == 200
        data = response.json()
        assert [m["name"] for m in data] == ["Ana", "Olivia"]
        assert data[0]["avatar"] == "https://cdn.example.com/ana.png"
        assert data[1]["role"] == "owner"

    def test_returns_401_without_auth(self, client: TestClient) -> None:
        response = client.get("/api/v1/members")

        assert response.status_code == 401
        assert response.json()["message"] == "Authorization header required"

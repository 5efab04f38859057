"""Unit tests for JWT verification and auth dependencies."""

import time
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi import HTTPException
from jwt.algorithms import ECAlgorithm

from src.api.deps import get_current_member, get_current_user
from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt, get_signing_key
from src.schemas.auth import MemberContext, UserContext

USER_ID = "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture(scope="module")
def private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def signing_jwk(private_key: ec.EllipticCurvePrivateKey) -> Generator[str, None, None]:
    """Point the verifier at the public half of ``private_key``."""
    jwk_json = ECAlgorithm.to_jwk(private_key.public_key())
    get_signing_key.cache_clear()
    with patch("src.api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.supabase_signing_key_jwk = jwk_json
        yield jwk_json
    get_signing_key.cache_clear()


def create_test_token(private_key: ec.EllipticCurvePrivateKey, exp_offset: int = 3600, **claims) -> str:
    """Create an ES256 test JWT token."""
    now = int(time.time())
    payload = {
        "sub": USER_ID,
        "email": "test@example.com",
        "role": "authenticated",
        "exp": now + exp_offset,
        "iat": now - 10,
    }
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="ES256")


class TestDecodeJwt:
    """Tests for decode_jwt."""

    def test_valid_token(self, private_key: ec.EllipticCurvePrivateKey, signing_jwk: str) -> None:
        payload = decode_jwt(create_test_token(private_key))

        assert payload.sub == USER_ID
        assert payload.email == "test@example.com"
        assert payload.to_user_context().user_id == UUID(USER_ID)

    def test_expired_token(self, private_key: ec.EllipticCurvePrivateKey, signing_jwk: str) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(private_key, exp_offset=-60))

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED

    def test_token_signed_by_another_key(self, signing_jwk: str) -> None:
        other_key = ec.generate_private_key(ec.SECP256R1())

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(other_key))

        assert exc_info.value.code == AuthErrorCode.INVALID_SIGNATURE

    def test_garbage_token(self, signing_jwk: str) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt("not-a-jwt")

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN


class TestGetCurrentUser:
    """Tests for get_current_user dependency."""

    @pytest.mark.asyncio
    async def test_extracts_user_context(self, private_key: ec.EllipticCurvePrivateKey, signing_jwk: str) -> None:
        user = await get_current_user(f"Bearer {create_test_token(private_key)}")

        assert isinstance(user, UserContext)
        assert str(user.user_id) == USER_ID

    @pytest.mark.asyncio
    async def test_raises_401_for_missing_header(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("")

        assert exc_info.value.status_code == 401
        assert "Authorization header required" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_raises_401_for_invalid_header_format(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Token abc")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_raises_401_for_expired_token(
        self, private_key: ec.EllipticCurvePrivateKey, signing_jwk: str
    ) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(f"Bearer {create_test_token(private_key, exp_offset=-60)}")

        assert exc_info.value.detail == "Token has expired"


class TestGetCurrentMember:
    """Tests for get_current_member dependency."""

    @pytest.mark.asyncio
    @patch("src.api.deps.MemberService")
    async def test_returns_membership(self, mock_service_cls: MagicMock) -> None:
        member = MemberContext(
            user_id=UUID(USER_ID),
            member_id=UUID("660e8400-e29b-41d4-a716-446655440001"),
            company_id=UUID("770e8400-e29b-41d4-a716-446655440000"),
        )
        mock_service_cls.return_value.get_member_context = AsyncMock(return_value=member)

        result = await get_current_member(UserContext(user_id=UUID(USER_ID)))

        assert result is member

    @pytest.mark.asyncio
    @patch("src.api.deps.MemberService")
    async def test_raises_403_without_company(self, mock_service_cls: MagicMock) -> None:
        mock_service_cls.return_value.get_member_context = AsyncMock(return_value=None)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_member(UserContext(user_id=UUID(USER_ID)))

        assert exc_info.value.status_code == 403

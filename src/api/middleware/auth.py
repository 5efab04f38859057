"""JWT verification for bearer tokens issued by Supabase Auth."""

import json
from enum import Enum
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWK

from src.core.config import get_settings
from src.schemas.auth import TokenPayload


class AuthErrorCode(str, Enum):
    """Authentication error codes."""

    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


class AuthError(Exception):
    """Raised when a bearer token cannot be trusted."""

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


@lru_cache
def get_signing_key() -> Any:
    """Load the public verification key from the configured JWK.

    Raises:
        AuthError: If no JWK is configured or it is not valid JSON.
    """
    jwk_json = get_settings().supabase_signing_key_jwk
    if not jwk_json:
        raise AuthError("Signing key not configured", AuthErrorCode.INVALID_TOKEN)

    try:
        jwk_data = json.loads(jwk_json)
    except json.JSONDecodeError as e:
        raise AuthError(f"Invalid signing key JWK format: {e}", AuthErrorCode.INVALID_TOKEN) from e

    return PyJWK.from_dict(jwk_data).key


def decode_jwt(token: str) -> TokenPayload:
    """Verify an ES256 token and return its claims.

    Args:
        token: The raw JWT.

    Returns:
        TokenPayload: The verified claims.

    Raises:
        AuthError: If the token is expired, malformed or badly signed.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            get_signing_key(),
            algorithms=["ES256"],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "verify_aud": False,
                "require": ["exp", "iat", "sub"],
            },
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED) from e
    except jwt.InvalidSignatureError as e:
        raise AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE) from e
    except jwt.MissingRequiredClaimError as e:
        raise AuthError(f"Token missing required claim: {e}", AuthErrorCode.INVALID_TOKEN) from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f"Invalid token: {e}", AuthErrorCode.INVALID_TOKEN) from e

    return TokenPayload(
        sub=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        exp=payload["exp"],
        iat=payload["iat"],
    )

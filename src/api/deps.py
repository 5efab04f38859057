"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.schemas.auth import MemberContext, UserContext
from src.services.member_service import MemberService


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_jwt(parts[1]).to_user_context()
    except AuthError as e:
        detail = "Token has expired" if e.code == AuthErrorCode.TOKEN_EXPIRED else e.message
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


async def get_current_member(user: CurrentUser) -> MemberContext:
    """Resolve the authenticated user to their company membership.

    Raises:
        HTTPException: 403 if the user has no profile or company.
    """
    member = await MemberService().get_member_context(user)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of any company",
        )
    return member


CurrentMember = Annotated[MemberContext, Depends(get_current_member)]

"""Bearer-token dependencies for the progress and video routes.

Progress routes require a caller (``CurrentUser``); the video detail route
serves anonymous viewers too (``OptionalUser``), who get no progress.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from src.auth.schemas import AuthenticatedUser
from src.auth.security import decode_access_token
from src.core.context import set_user_id


_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def get_token_from_header(request: Request) -> str | None:
    """Token from ``Authorization: Bearer <token>``, or None."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


def _user_from_token(token: str) -> AuthenticatedUser:
    """Verify the token and bind its user to the log context.

    Raises:
        JWTError: If the token is invalid or ``sub`` is not a UUID
    """
    payload = decode_access_token(token)
    try:
        user = AuthenticatedUser.from_payload(payload)
    except ValidationError as e:
        msg = "Token subject is not a valid user id"
        raise JWTError(msg) from e

    set_user_id(user.id)
    return user


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=_BEARER_CHALLENGE,
    )


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    """Caller identity; 401 when the token is missing or invalid."""
    if not token:
        raise _unauthorized("Access token not provided")
    try:
        return _user_from_token(token)
    except JWTError as e:
        raise _unauthorized("Invalid or expired token") from e


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser | None:
    """Caller identity, or None for anonymous or unverifiable callers."""
    if not token:
        return None
    try:
        return _user_from_token(token)
    except JWTError:
        return None


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_current_user_optional)]

"""Bearer token verification.

Tokens are minted by the platform's auth service and shared with this API
through ``auth_secret_key``. Only ``type == "access"`` tokens carrying a
``sub`` (the user id progress rows are keyed by) are accepted.
``create_access_token`` mints compatible tokens for tests and local tools.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from src.config.settings import get_settings


ACCESS_TOKEN_TYPE = "access"

# Claims python-jose must find before the payload is returned
_DECODE_OPTIONS = {"require_exp": True, "require_sub": True}


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Sign an access token for ``data`` (normally ``{"sub": user_id}``).

    Adds ``exp``, ``iat`` and ``type`` claims.
    """
    settings = get_settings()
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(
        minutes=settings.auth_access_token_expire_minutes
    )

    claims = {
        **data,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and token type.

    Raises:
        JWTError: If the token is invalid, expired, not an access token or
            has no subject
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        options=_DECODE_OPTIONS,
    )

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)
    if not payload.get("sub"):
        msg = "Token is missing the sub claim"
        raise JWTError(msg)
    return payload

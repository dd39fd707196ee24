"""Tests for auth security functions."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from src.auth.dependencies import _user_from_token, get_token_from_header
from src.auth.schemas import AuthenticatedUser
from src.auth.security import create_access_token, decode_access_token
from src.config.settings import get_settings


def _encode(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


class TestAccessToken:
    """Tests for access token creation and decoding."""

    def test_create_access_token(self) -> None:
        """Should create valid access token."""
        token = create_access_token({"sub": str(uuid4())})
        assert token is not None
        assert len(token) > 0

    def test_decode_access_token(self) -> None:
        """Should decode token and return payload."""
        user_id = uuid4()
        email = "viewer@example.com"

        token = create_access_token({"sub": str(user_id), "email": email})
        payload = decode_access_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["email"] == email
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_access_token_expired(self) -> None:
        """Should raise JWTError for expired token."""
        token = create_access_token(
            {"sub": str(uuid4())}, expires_delta=timedelta(seconds=-1)
        )

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_invalid(self) -> None:
        """Should raise JWTError for invalid token."""
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_type(self) -> None:
        """Should raise JWTError if token type is not 'access'."""
        token = _encode(
            {
                "sub": str(uuid4()),
                "type": "refresh",
                "exp": datetime.now(UTC) + timedelta(minutes=5),
            }
        )

        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token)

    def test_decode_access_token_missing_sub(self) -> None:
        token = create_access_token({"email": "viewer@example.com"})

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_wrong_secret(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access"},
            "not-the-secret",
            algorithm=settings.auth_algorithm,
        )

        with pytest.raises(JWTError):
            decode_access_token(token)


class TestCallerIdentity:
    """Bearer header parsing and identity extraction."""

    def test_user_from_token(self) -> None:
        user_id = uuid4()
        token = create_access_token({"sub": str(user_id), "email": "a@b.c"})

        user = _user_from_token(token)

        assert isinstance(user, AuthenticatedUser)
        assert user.id == user_id
        assert user.email == "a@b.c"

    def test_non_uuid_subject_is_rejected(self) -> None:
        token = create_access_token({"sub": "not-a-uuid"})

        with pytest.raises(JWTError, match="valid user id"):
            _user_from_token(token)

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            ("Bearer a b", None),
        ],
    )
    def test_token_from_header(self, header: str, expected: str | None) -> None:
        class _Request:
            headers = {"Authorization": header}

        assert get_token_from_header(_Request()) == expected  # type: ignore[arg-type]

    def test_missing_header(self) -> None:
        class _Request:
            headers: dict[str, str] = {}

        assert get_token_from_header(_Request()) is None  # type: ignore[arg-type]

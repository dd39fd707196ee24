"""Pydantic schemas for the authenticated caller."""

from uuid import UUID

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Identity extracted from a verified access token."""

    id: UUID
    email: str | None = None
    role: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "AuthenticatedUser":
        """Create user from a decoded token payload."""
        return cls(
            id=payload["sub"],
            email=payload.get("email"),
            role=payload.get("role"),
        )

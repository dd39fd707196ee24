"""Pydantic schemas for watched-interval progress.

Request and response models for:
- Progress updates (new intervals + last position)
- Progress queries and resets

Wire fields are camelCase (``lastPosition``, ``progressPercentage``);
snake_case names are accepted on input as well.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .intervals import Interval
from .models import WatchedState


# Upper bound for reported playback positions (one week of footage)
MAX_POSITION_SECONDS = 7 * 24 * 3600


class CamelModel(BaseModel):
    """Base model serialised with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ==============================================================================
# Interval Schemas
# ==============================================================================


class IntervalSchema(CamelModel):
    """Inclusive range of watched seconds."""

    start: int = Field(..., description="First watched second")
    end: int = Field(..., description="Last watched second (inclusive)")

    def to_interval(self) -> Interval:
        """Convert to domain interval."""
        return Interval(start=self.start, end=self.end)

    @classmethod
    def from_interval(cls, interval: Interval) -> "IntervalSchema":
        """Create schema from domain interval."""
        return cls(start=interval.start, end=interval.end)


# ==============================================================================
# Progress Schemas
# ==============================================================================


class UpdateProgressRequest(CamelModel):
    """Request to merge newly watched intervals (sent by the sync client)."""

    intervals: list[IntervalSchema] = Field(
        default_factory=list,
        description="Intervals watched since the last acknowledged sync",
    )
    last_position: float = Field(
        ...,
        ge=0,
        le=MAX_POSITION_SECONDS,
        allow_inf_nan=False,
        description="Current playback position in seconds",
    )
    reported_at: datetime | None = Field(
        default=None,
        description="Client clock when the position was observed",
    )

    @model_validator(mode="after")
    def _limit_batch(self) -> "UpdateProgressRequest":
        max_intervals = 1000
        if len(self.intervals) > max_intervals:
            msg = f"At most {max_intervals} intervals per update"
            raise ValueError(msg)
        return self


class WatchedStateResponse(CamelModel):
    """Canonical watched state."""

    video_id: UUID
    user_id: UUID
    intervals: list[IntervalSchema] = Field(default_factory=list)
    last_position: float = Field(description="Resume position in seconds")
    progress_percentage: float = Field(description="0-100 percentage")
    unique_seconds: int = Field(0, description="Seconds watched at least once")
    duration_seconds: int | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: WatchedState) -> "WatchedStateResponse":
        """Create response from entity."""
        return cls(
            video_id=entity.video_id,
            user_id=entity.user_id,
            intervals=[IntervalSchema.from_interval(i) for i in entity.intervals],
            last_position=entity.last_position,
            progress_percentage=entity.progress_percentage,
            unique_seconds=entity.unique_seconds,
            duration_seconds=entity.duration_seconds,
            updated_at=entity.updated_at,
        )


class ProgressEnvelope(CamelModel):
    """``{success, data}`` envelope used by every progress endpoint."""

    success: bool = True
    data: WatchedStateResponse


class UpdateProgressEnvelope(ProgressEnvelope):
    """Update response, also reporting how many intervals were rejected."""

    rejected_intervals: int = Field(
        0, description="Intervals skipped because they were invalid"
    )

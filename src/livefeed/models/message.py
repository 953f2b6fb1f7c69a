"""
Feed Message Schema
===================

This module defines the Pydantic model for messages carried by the feed.

Wire Contract:
    {
        "message": "Hello World",
        "timestamp": "2024-01-01T00:00:05.000Z"
    }

Guarantees (from the emitter):
    - timestamp is the wall-clock instant the message was built
    - timestamp is UTC, millisecond precision, "Z" suffix
    - messages are never modified after construction

Example:
    from livefeed.models.message import FeedMessage

    message = FeedMessage.model_validate_json(raw)
    print(message.timestamp)
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


def format_instant(instant: datetime) -> str:
    """
    Render an instant as an ISO-8601 UTC string with millisecond precision.

    Naive datetimes are treated as UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    instant = instant.astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant, accepting a trailing "Z"."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class FeedMessage(BaseModel):
    """
    One message of the live feed.

    Attributes:
        message: Payload text
        timestamp: ISO-8601 instant the message was built
    """

    message: str = Field(
        ...,
        description="Payload text",
    )

    timestamp: str = Field(
        ...,
        description="ISO-8601 instant the message was built",
    )

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        parse_instant(value)
        return value

    @classmethod
    def at(cls, message: str, instant: datetime) -> "FeedMessage":
        """Build a message stamped with the given instant."""
        return cls(message=message, timestamp=format_instant(instant))

    class Config:
        """Pydantic model configuration."""

        frozen = True
        json_schema_extra = {
            "example": {
                "message": "Hello World",
                "timestamp": "2024-01-01T00:00:05.000Z",
            }
        }

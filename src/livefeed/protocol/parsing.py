"""
Message Parsing
===============

Explicit success/failure result for decoding a feed message.

The client never sees an exception from a malformed payload; it gets
a ParseResult and decides what to report.
"""

import json
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from livefeed.models.message import FeedMessage


@dataclass(frozen=True, slots=True)
class ParseResult:
    """
    Outcome of parsing one data payload.

    Exactly one of message / reason is set.
    """

    message: Optional[FeedMessage] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.message is not None

    @classmethod
    def success(cls, message: FeedMessage) -> "ParseResult":
        return cls(message=message)

    @classmethod
    def failure(cls, reason: str) -> "ParseResult":
        return cls(reason=reason)


def parse_message(data: str) -> ParseResult:
    """
    Parse the data of an SSE event into a FeedMessage.

    Args:
        data: Raw event data (the JSON text after "data: ")

    Returns:
        ParseResult carrying the message, or the reason it was rejected
    """
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        return ParseResult.failure(f"invalid JSON: {e}")

    if not isinstance(payload, dict):
        return ParseResult.failure(
            f"expected a JSON object, got {type(payload).__name__}"
        )

    try:
        return ParseResult.success(FeedMessage.model_validate(payload))
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>"
            for err in e.errors()
        )
        return ParseResult.failure(f"invalid message fields: {fields}")

"""Instant helpers shared by the evaluation path and the storage layer."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import TypeAdapter

_INSTANT = TypeAdapter(datetime)


def utcnow() -> datetime:
    """Get current UTC time as naive datetime for database compatibility."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(instant: datetime) -> datetime:
    """Normalise an instant to naive UTC.

    Aware datetimes are converted; naive ones are taken to already be UTC.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return instant


def parse_instant(text: str) -> datetime:
    """Parse an ISO 8601 timestamp into naive UTC.

    Parsing is pydantic's, so the forms accepted here match the API.

    Raises:
        pydantic.ValidationError: If the text is not a timestamp
    """
    return to_utc(_INSTANT.validate_python(text))


def format_instant(instant: datetime) -> str:
    """Render a naive-UTC instant as ISO 8601 with a ``Z`` suffix."""
    return to_utc(instant).isoformat() + "Z"

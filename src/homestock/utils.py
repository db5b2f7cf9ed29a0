"""Utility functions for date handling between forms, documents and the store."""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional

from dateutil import parser


def parse_date_input(value: Any) -> Optional[date]:
    """
    Parse a submitted expiry date into a Python date object.

    Accepts ``date`` and ``datetime`` instances as-is and ISO-8601 strings
    ("2025-02-15", "2025-02-15T00:00:00Z"). Blank input means "no date".

    Args:
        value: Raw form value

    Returns:
        date object, or None when the value is blank

    Raises:
        ValueError: If the value is not a valid calendar date

    Examples:
        >>> parse_date_input("2025-02-15")
        date(2025, 2, 15)

        >>> parse_date_input("")
        None

        >>> parse_date_input("2025-02-30")
        Traceback (most recent call last):
        ValueError: ...
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    value = value.strip()
    if not value:
        return None
    try:
        return parser.isoparse(value).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid date: {value}") from e


def to_store_timestamp(value: Optional[date]) -> Optional[datetime]:
    """Convert a local expiry date into the store's timestamp (midnight UTC)."""
    if value is None:
        return None
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def from_store_timestamp(value: Optional[datetime]) -> Optional[date]:
    """Convert a stored timestamp back into a local date; NULL stays None."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def to_json_value(value: Any) -> Any:
    """Encode a document value for a JSON history snapshot."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value

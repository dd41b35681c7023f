"""
Date, time and number formatting shared by forms, models and wire payloads.

Forms carry datetimes as ``YYYY-MM-DDTHH:MM`` (the operator's input format);
the booking backend expects ``YYYY-MM-DD HH:MM:SS``.
"""

from datetime import date, datetime
from typing import Optional, Union

FORM_DATETIME_FORMAT = "%Y-%m-%dT%H:%M"
WIRE_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

_ACCEPTED_FORMATS = (
    FORM_DATETIME_FORMAT,
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    WIRE_DATETIME_FORMAT,
)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a datetime typed into a form or returned by the server.

    Args:
        value: Raw value; datetimes are returned unchanged

    Returns:
        Parsed datetime, or None for blank or unparseable input
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in _ACCEPTED_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    # Server timestamps may carry fractions or an offset
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` date, returning None when blank or invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        return None


def format_form_datetime(value: Optional[datetime]) -> str:
    """Render a datetime the way form inputs hold it."""
    return value.strftime(FORM_DATETIME_FORMAT) if value else ""


def format_wire_datetime(value: datetime) -> str:
    """Render a datetime in the fixed wire format."""
    return value.strftime(WIRE_DATETIME_FORMAT)


def format_number(value: Union[int, float, None]) -> str:
    """Render a number for a text field, dropping a trailing ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_positive_float(value: Union[str, int, float, None]) -> Optional[float]:
    """Parse a strictly positive number, None otherwise."""
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if number > 0 and number != float("inf") else None


def parse_positive_int(value: Union[str, int, None]) -> Optional[int]:
    """Parse a strictly positive integer, None otherwise."""
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None

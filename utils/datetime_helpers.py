from datetime import datetime, timezone
from typing import Optional


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes (as SQLite returns them) are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_utc_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a ledger timestamp as an ISO 8601 string with 'Z' suffix.

    Args:
        dt: A datetime object or None

    Returns:
        An ISO 8601 formatted string with 'Z' suffix, or None if the input is None.
    """
    if dt is None:
        return None

    iso_string = ensure_utc(dt).isoformat()
    if iso_string.endswith('+00:00'):
        return iso_string[:-len('+00:00')] + 'Z'
    return iso_string


def parse_utc_datetime(value: str) -> datetime:
    """Inverse of format_utc_datetime; always returns an aware UTC datetime."""
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return ensure_utc(datetime.fromisoformat(value))

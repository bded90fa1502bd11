"""
Time Utilities

Exchanges report quote times in different formats:
- Binance / OKX: milliseconds since epoch (e.g., 1704110400000, sometimes as a string)
- Coinbase: ISO-8601 strings (e.g., "2024-01-01T12:00:00.123456Z")
- Most DEX APIs: no timestamp at all (the quote is "now")

The utilities in this module normalize all of them into timezone-aware UTC
datetime objects for use in our Pydantic schemas.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def to_utc_datetime(timestamp: Union[int, float, str]) -> datetime:
    """
    Convert a timestamp (seconds, milliseconds or ISO-8601 string) to UTC datetime.

    Detection Logic:
        - Numeric strings are treated as numbers
        - If timestamp > 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds
        - Any other string is parsed as ISO-8601 ("Z" suffix accepted)

    Args:
        timestamp: Unix timestamp in seconds or milliseconds, or an ISO string

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or cannot be parsed

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

        >>> to_utc_datetime("2024-01-01T12:00:00Z")
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(timestamp, str):
        text = timestamp.strip()
        try:
            timestamp = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError as e:
                raise ValueError(f"Invalid timestamp: {text!r}. Error: {e}")
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)

    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    # 1e12 separates seconds (~1.7e9 today) from milliseconds (~1.7e12 today)
    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def parse_optional_timestamp(value: Optional[Union[int, float, str]]) -> datetime:
    """
    Like to_utc_datetime(), but falls back to "now" for missing or malformed values.

    Venue timestamps are informational; a bad one should not fail a quote.
    """
    if value in (None, ""):
        return current_utc_datetime()
    try:
        return to_utc_datetime(value)
    except (TypeError, ValueError):
        return current_utc_datetime()


def current_utc_datetime() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        datetime: Current time as timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def iso_timestamp_ms() -> str:
    """
    Current UTC time as ISO-8601 with millisecond precision and a "Z" suffix.

    This is the format OKX expects in the OK-ACCESS-TIMESTAMP header.

    Example:
        >>> iso_timestamp_ms()
        '2024-01-01T12:00:00.000Z'
    """
    now = current_utc_datetime()
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"

"""UTC timestamp helpers.

Alpaca returns timestamps as ``YYYY-MM-DDTHH:MM:SSZ``, sometimes with up to
nine fractional digits (order and trade timestamps). Parsed values are
always timezone-aware UTC.

Query parameters go the other way: naive datetimes are sent with the fixed
reference offset below appended, matching what the API has historically
been given by this client.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

REF_TIME_ZONE_STR = "-05:00"

WIRE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Return the current UTC datetime, timezone-aware."""
    return datetime.now(UTC)


def parse_timestamp(s: str) -> datetime:
    """Parse an ISO 8601 timestamp with Z suffix to a UTC datetime.

    Naive results are assumed to be UTC.
    """
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_date(s: str) -> date:
    """Parse ``YYYY-MM-DD`` (a full timestamp is truncated to its date)."""
    if "T" in s:
        return parse_timestamp(s).date()
    return date.fromisoformat(s)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime in Alpaca's wire format.

    Output format: YYYY-MM-DDTHH:MM:SSZ, or YYYY-MM-DDTHH:MM:SS.ffffffZ
    when the value carries microseconds.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    utc_dt = dt.astimezone(UTC)
    if utc_dt.microsecond:
        return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return utc_dt.strftime(WIRE_TIMESTAMP_FORMAT)


def format_query_time(value: datetime | date) -> str:
    """Serialize a time-range bound for a query string or request body."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.isoformat() + REF_TIME_ZONE_STR
        return value.isoformat()
    return value.isoformat()

"""UTC helpers shared by the models, the session engine and storage."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive values as already UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def one_year_before(value: datetime) -> datetime:
    """Return the same wall-clock instant one calendar year earlier.

    Matches PostgreSQL's ``value - INTERVAL '1 year'``: Feb 29 maps to Feb 28.
    """
    try:
        return value.replace(year=value.year - 1)
    except ValueError:
        return value.replace(year=value.year - 1, day=28)

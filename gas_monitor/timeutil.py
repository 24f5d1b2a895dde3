from datetime import UTC, date, datetime


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def iso_timestamp(dt: datetime) -> str:
    """Format as ISO-8601 in UTC with millisecond precision and a Z suffix."""
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def day_key(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def month_key(d: date) -> str:
    return d.strftime("%Y-%m")


def day_of_timestamp(ts: str) -> str | None:
    """Return the UTC calendar day (YYYY-MM-DD) of an ISO timestamp, or None if unparseable."""
    try:
        dt = datetime.fromisoformat(ts.strip())
    except (AttributeError, ValueError):
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return day_key(dt.date())


def normalize_day(value: str) -> str | None:
    """Accept a date or datetime string and return its day as YYYY-MM-DD."""
    text = value.strip()
    try:
        return day_key(date.fromisoformat(text))
    except ValueError:
        return day_of_timestamp(text)


def month_of_day(day: str) -> str:
    return day[:7]

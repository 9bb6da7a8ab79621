from datetime import datetime, timezone


def to_utc_naive(value: datetime) -> datetime:
    """Normalise a datetime to naive UTC, the form every timestamp is stored in."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

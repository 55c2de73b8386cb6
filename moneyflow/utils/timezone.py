from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def to_utc_naive(d: datetime) -> datetime:
    # columns are naive UTC
    if d.tzinfo is None:
        return d
    return d.astimezone(timezone.utc).replace(tzinfo=None)

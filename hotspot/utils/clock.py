from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Some drivers (sqlite) hand back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str:
    """Second-precision UTC timestamp, e.g. 2026-10-18T12:00:00Z."""
    value = as_utc(value)
    if value is None:
        return ""
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")

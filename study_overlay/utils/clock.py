from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# SQLite hands timestamps back without tzinfo; everything is stored as UTC.
def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

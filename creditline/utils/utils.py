from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()


def days_from_today(days: int) -> date:
    return today() + timedelta(days=days)

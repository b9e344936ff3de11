from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now; matches how timestamps are stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

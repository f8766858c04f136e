"""
Time helpers. Timestamps are stored and compared as timezone-aware UTC.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time in UTC, timezone-aware"""
    return datetime.now(timezone.utc)

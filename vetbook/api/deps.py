from datetime import UTC, datetime

from vetbook.core.db import get_session

__all__ = ["get_session", "get_now"]


def get_now() -> datetime:
    """Reference instant for "is this in the past" checks; overridden in tests."""
    return datetime.now(UTC)

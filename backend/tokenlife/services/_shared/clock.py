"""Injectable time source."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current instant, timezone-aware UTC."""
    return datetime.now(UTC)

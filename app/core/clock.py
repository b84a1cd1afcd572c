"""
Injectable time source.

Services take a ``clock`` callable instead of reading wall-clock time
directly so tests can move time forward deterministically.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

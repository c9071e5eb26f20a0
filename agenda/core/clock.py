from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Local wall-clock time, timezone-naive like every stored timestamp."""

    def now(self) -> datetime:
        return datetime.now()

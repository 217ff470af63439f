"""Injectable wall-clock sources."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Naive local wall-clock time, matching how bookings are stored."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


@dataclass
class FixedClock:
    """Clock frozen at a given instant; used by tests and what-if checks."""

    instant: datetime

    def now(self) -> datetime:
        return self.instant

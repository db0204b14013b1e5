"""Sliding time windows for query views."""

from __future__ import annotations

from enum import StrEnum

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS


class TimeWindow(StrEnum):
    """A look-back interval ending at query time."""

    FIVE_MINUTES = "5m"
    ONE_HOUR = "1h"
    ONE_DAY = "24h"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"

    @property
    def millis(self) -> int:
        return _WINDOW_MS[self]

    def cutoff(self, now_ms: int) -> int:
        """Earliest timestamp (inclusive) that falls inside the window."""
        return now_ms - self.millis

    @classmethod
    def parse(cls, value: TimeWindow | str) -> TimeWindow:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            available = [w.value for w in cls]
            raise ValueError(f"Unknown time window: {value!r}. Available: {available}") from None


_WINDOW_MS = {
    TimeWindow.FIVE_MINUTES: 5 * _MINUTE_MS,
    TimeWindow.ONE_HOUR: _HOUR_MS,
    TimeWindow.ONE_DAY: _DAY_MS,
    TimeWindow.SEVEN_DAYS: 7 * _DAY_MS,
    TimeWindow.THIRTY_DAYS: 30 * _DAY_MS,
}

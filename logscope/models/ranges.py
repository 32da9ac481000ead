"""Visible time range model."""

import math
from dataclasses import dataclass

# Bounds closer than this are the same range
RANGE_TOLERANCE_MS = 1


@dataclass(frozen=True)
class VisibleRange:
    """A selected time window in milliseconds. ``None`` stands for the full domain."""

    start: float
    end: float

    def normalized(self) -> "VisibleRange | None":
        """Integer bounds (floor start, ceil end); None if the window is empty."""
        start = math.floor(self.start)
        end = math.ceil(self.end)
        if end <= start:
            return None
        return VisibleRange(start=start, end=end)

    def approx_equals(
        self, other: "VisibleRange | None", tolerance: float = RANGE_TOLERANCE_MS
    ) -> bool:
        if other is None:
            return False
        return (
            abs(self.start - other.start) < tolerance
            and abs(self.end - other.end) < tolerance
        )

    def covers_domain(self, domain_start: float, domain_end: float, slack: float) -> bool:
        """True when both bounds lie within ``slack`` of the domain bounds."""
        slack = max(slack, 1)
        return (
            abs(self.start - domain_start) <= slack
            and abs(self.end - domain_end) <= slack
        )

    def contains(self, ts_ms: int) -> bool:
        return self.start <= ts_ms <= self.end

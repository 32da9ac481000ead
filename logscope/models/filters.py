"""Active filter of a log view."""

from dataclasses import dataclass, replace
from typing import Any

from .events import EventRow
from .ranges import VisibleRange


class _Unset:
    """Marker for "field not passed", as opposed to an explicit None."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class LogFilter:
    """Server / method / success / time-range filter."""

    server: str | None = None
    method: str | None = None
    ok: bool | None = None
    time_range: VisibleRange | None = None

    def patched(
        self,
        server: Any = UNSET,
        method: Any = UNSET,
        ok: Any = UNSET,
        time_range: Any = UNSET,
    ) -> "LogFilter":
        """Return a copy with only the explicitly passed fields replaced."""
        changes: dict[str, Any] = {}
        if server is not UNSET:
            changes["server"] = server
        if method is not UNSET:
            changes["method"] = method
        if ok is not UNSET:
            changes["ok"] = ok
        if time_range is not UNSET:
            changes["time_range"] = time_range.normalized() if time_range else None
        return replace(self, **changes)

    def matches(self, row: EventRow) -> bool:
        """Evaluate the filter against a single row, same predicates as the query."""
        if self.server is not None and row.server_name != self.server:
            return False
        if self.method is not None and row.method != self.method:
            return False
        if self.ok is not None and row.ok != self.ok:
            return False
        if self.time_range is not None and not self.time_range.contains(row.ts_ms):
            return False
        return True

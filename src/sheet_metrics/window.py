"""Inclusive date windows over canonical ``YYYY-MM-DD`` dates."""

from __future__ import annotations

from dataclasses import dataclass

from sheet_metrics import DEFAULT_TIMEZONE
from sheet_metrics.normalize import normalize_date

DEFAULT_START = "1970-01-01"
DEFAULT_END = "2999-12-31"


@dataclass(frozen=True)
class DateWindow:
    """Closed interval ``[start, end]`` of calendar dates."""

    start: str = DEFAULT_START
    end: str = DEFAULT_END

    @classmethod
    def default(cls) -> DateWindow:
        return cls()

    @classmethod
    def from_bounds(
        cls,
        start: object = None,
        end: object = None,
        *,
        tz: str = DEFAULT_TIMEZONE,
        dayfirst: bool = False,
    ) -> DateWindow:
        """Build a window from caller-supplied bounds.

        A missing or unparseable bound falls back to the open default for that
        side; this never raises for malformed bounds.
        """
        start_date = normalize_date(start, tz=tz, dayfirst=dayfirst) if start else None
        end_date = normalize_date(end, tz=tz, dayfirst=dayfirst) if end else None
        return cls(start=start_date or DEFAULT_START, end=end_date or DEFAULT_END)

    def contains(self, day: str) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end}


def is_within_window(day: str, window: DateWindow) -> bool:
    """True iff ``window.start <= day <= window.end``."""
    return window.contains(day)

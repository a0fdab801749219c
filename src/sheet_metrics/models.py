"""Data models / result types used across the package."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from numbers import Integral, Real
from typing import Any, Union

Cell = Union[str, int, float, None]
RawTable = Sequence[Sequence[Cell]]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_float(value: Any, field_name: str) -> float:
    # Computed totals may be infinite when the fold overflows.
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{field_name} must be a number")
    return float(value)


class MissingColumnsError(ValueError):
    """Raised when required roles cannot be resolved from a header row."""

    def __init__(self, roles: Sequence[str]) -> None:
        self.roles: tuple[str, ...] = tuple(roles)
        super().__init__(f"Missing required columns: {', '.join(self.roles)}")


@dataclass(frozen=True)
class MetricsSummary:
    """Scalar KPIs over the accepted rows of one table.

    Contract invariant: ``average_order_value == total_amount / order_count``
    when ``order_count > 0``, else ``0``.
    """

    total_amount: float = 0.0
    order_count: int = 0
    average_order_value: float = 0.0
    window_start: str = ""
    window_end: str = ""
    source: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "total_amount", _to_float(self.total_amount, "total_amount")
        )
        object.__setattr__(
            self, "order_count", _to_non_negative_int(self.order_count, "order_count")
        )
        object.__setattr__(
            self,
            "average_order_value",
            _to_float(self.average_order_value, "average_order_value"),
        )

    @classmethod
    def from_totals(
        cls,
        total_amount: float,
        order_count: int,
        *,
        window_start: str = "",
        window_end: str = "",
        source: str = "",
    ) -> MetricsSummary:
        average = total_amount / order_count if order_count > 0 else 0.0
        return cls(
            total_amount=total_amount,
            order_count=order_count,
            average_order_value=average,
            window_start=window_start,
            window_end=window_end,
            source=source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAmount": self.total_amount,
            "orderCount": self.order_count,
            "averageOrderValue": self.average_order_value,
            "windowStart": self.window_start,
            "windowEnd": self.window_end,
            "source": self.source,
        }


@dataclass(frozen=True)
class TimeSeriesPoint:
    """Sum of accepted amounts for one calendar date."""

    date: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "value": self.value}


@dataclass(frozen=True)
class TimeSeries:
    """Daily points, strictly ascending by date."""

    points: tuple[TimeSeriesPoint, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        points = tuple(self.points)
        for prev, cur in zip(points, points[1:]):
            if cur.date <= prev.date:
                raise ValueError("points must be strictly ascending by date")
        object.__setattr__(self, "points", points)

    def __iter__(self) -> Iterator[TimeSeriesPoint]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def total(self) -> float:
        total = 0.0
        for point in self.points:
            total += point.value
        return total

    def to_list(self) -> list[dict[str, Any]]:
        return [point.to_dict() for point in self.points]

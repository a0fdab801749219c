"""Filtering + KPI pipeline — pure functions, no side effects."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import NamedTuple

from sheet_metrics import DEFAULT_TIMEZONE
from sheet_metrics.columns import DEFAULT_ROLES, PRICE, TIMESTAMP, RoleSpec, resolve_columns
from sheet_metrics.models import (
    Cell,
    MetricsSummary,
    MissingColumnsError,
    RawTable,
    TimeSeries,
    TimeSeriesPoint,
)
from sheet_metrics.normalize import normalize_amount, normalize_date, resolve_timezone
from sheet_metrics.window import DateWindow

logger = logging.getLogger(__name__)

REQUIRED_ROLES = (PRICE, TIMESTAMP)


class AcceptedRow(NamedTuple):
    date: str
    amount: float


def _cell(row: Sequence[Cell], index: int) -> Cell:
    # Short rows: missing trailing cells are empty.
    return row[index] if index < len(row) else None


# ── Row acceptance ──────────────────────────────────────────────


def iter_accepted_rows(
    body: Iterable[Sequence[Cell]],
    role_map: dict[str, int],
    window: DateWindow,
    *,
    tz: str = DEFAULT_TIMEZONE,
    dayfirst: bool = False,
) -> Iterator[AcceptedRow]:
    """Yield ``(date, amount)`` for body rows whose date parses and lies in *window*.

    Rows with an unparseable date are dropped; an unparseable amount reads as
    ``0`` and the row is still accepted.
    """
    price_idx = role_map[PRICE]
    timestamp_idx = role_map[TIMESTAMP]
    seen = accepted = 0
    for row in body:
        seen += 1
        row = row or ()
        day = normalize_date(_cell(row, timestamp_idx), tz=tz, dayfirst=dayfirst)
        if day is None or not window.contains(day):
            continue
        accepted += 1
        yield AcceptedRow(day, normalize_amount(_cell(row, price_idx)))
    logger.debug("Accepted %d of %d rows in %s..%s", accepted, seen, window.start, window.end)


def _prepare(
    table: RawTable,
    roles: Iterable[RoleSpec],
    window: DateWindow | None,
    tz: str,
) -> tuple[dict[str, int], Sequence[Sequence[Cell]], DateWindow]:
    resolve_timezone(tz)
    roles = tuple(roles)
    declared = {role.name for role in roles}
    undeclared = [name for name in REQUIRED_ROLES if name not in declared]
    if undeclared:
        raise MissingColumnsError(undeclared)
    header: Sequence[Cell] = table[0] if len(table) else ()
    role_map = resolve_columns(header or (), roles)
    return role_map, table[1:], window or DateWindow.default()


# ── Aggregates ──────────────────────────────────────────────────


def summarize(
    table: RawTable,
    roles: Iterable[RoleSpec] = DEFAULT_ROLES,
    window: DateWindow | None = None,
    *,
    tz: str = DEFAULT_TIMEZONE,
    dayfirst: bool = False,
    source: str = "",
) -> MetricsSummary:
    """Return total amount, order count and average order value for *table*.

    Raises
    ------
    MissingColumnsError
        If the header row lacks a column for any role.
    """
    role_map, body, window = _prepare(table, roles, window, tz)

    total = 0.0
    orders = 0
    for row in iter_accepted_rows(body, role_map, window, tz=tz, dayfirst=dayfirst):
        total += row.amount
        orders += 1

    return MetricsSummary.from_totals(
        total,
        orders,
        window_start=window.start,
        window_end=window.end,
        source=source,
    )


def build_time_series(
    table: RawTable,
    roles: Iterable[RoleSpec] = DEFAULT_ROLES,
    window: DateWindow | None = None,
    *,
    tz: str = DEFAULT_TIMEZONE,
    dayfirst: bool = False,
) -> TimeSeries:
    """Sum accepted amounts per calendar date, ascending by date.

    Only dates with at least one accepted row appear.

    Raises
    ------
    MissingColumnsError
        If the header row lacks a column for any role.
    """
    role_map, body, window = _prepare(table, roles, window, tz)

    by_date: dict[str, float] = {}
    for row in iter_accepted_rows(body, role_map, window, tz=tz, dayfirst=dayfirst):
        by_date[row.date] = by_date.get(row.date, 0.0) + row.amount

    return TimeSeries(
        tuple(TimeSeriesPoint(day, value) for day, value in sorted(by_date.items()))
    )

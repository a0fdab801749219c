"""Targeted tests for row acceptance, summaries and daily series."""

from __future__ import annotations

import pytest

from sheet_metrics.columns import DEFAULT_ROLES, RoleSpec, resolve_columns
from sheet_metrics.models import MissingColumnsError
from sheet_metrics.normalize import normalize_amount, normalize_date
from sheet_metrics.pipeline import (
    AcceptedRow,
    build_time_series,
    iter_accepted_rows,
    summarize,
)
from sheet_metrics.window import DateWindow

HEADER = ["Order", "Item Price", "Purchase Date Time"]


@pytest.fixture
def orders() -> list[list[object]]:
    return [
        HEADER,
        ["A", "1.234,56", "2024-01-02 10:00"],
        ["B", "10", "2024-01-01"],
        ["C", "bad", "2024-01-02"],
        ["D", "5", "not a date"],
        ["E", "7,5"],
        ["F", 20, "2024-02-10"],
    ]


def _expected_accepted(table: list[list[object]], window: DateWindow) -> list[float]:
    amounts = []
    for row in table[1:]:
        day = normalize_date(row[2] if len(row) > 2 else None)
        if day is not None and window.start <= day <= window.end:
            amounts.append(normalize_amount(row[1]))
    return amounts


def test_iter_accepted_rows_applies_the_acceptance_rules(orders: list[list[object]]) -> None:
    role_map = resolve_columns(orders[0], DEFAULT_ROLES)

    accepted = list(iter_accepted_rows(orders[1:], role_map, DateWindow.default()))

    assert accepted == [
        AcceptedRow("2024-01-02", 1234.56),
        AcceptedRow("2024-01-01", 10.0),
        AcceptedRow("2024-01-02", 0.0),
        AcceptedRow("2024-02-10", 20),
    ]


def test_summarize_counts_accepted_rows_only(orders: list[list[object]]) -> None:
    result = summarize(orders, source="orders.csv")

    assert result.order_count == 4
    assert result.total_amount == pytest.approx(1264.56)
    assert result.average_order_value == pytest.approx(1264.56 / 4)
    assert result.window_start == "1970-01-01"
    assert result.window_end == "2999-12-31"
    assert result.source == "orders.csv"


def test_summarize_matches_independent_row_set(orders: list[list[object]]) -> None:
    window = DateWindow("2024-01-02", "2024-12-31")
    amounts = _expected_accepted(orders, window)

    result = summarize(orders, window=window)

    assert result.order_count == len(amounts) == 3
    assert result.total_amount == pytest.approx(sum(amounts))


def test_unparseable_amount_still_counts_as_order() -> None:
    table = [HEADER, ["X", "n/a", "2024-01-01"]]

    result = summarize(table)

    assert result.order_count == 1
    assert result.total_amount == 0
    assert result.average_order_value == 0


def test_window_filters_rows(orders: list[list[object]]) -> None:
    january = DateWindow.from_bounds("2024-01-01", "2024-01-31")

    result = summarize(orders, window=january)
    daily = build_time_series(orders, window=january)

    assert result.order_count == 3
    assert result.total_amount == pytest.approx(1244.56)
    assert [p.date for p in daily] == ["2024-01-01", "2024-01-02"]


def test_build_time_series_groups_and_sorts(orders: list[list[object]]) -> None:
    daily = build_time_series(orders)

    assert daily.to_list() == [
        {"date": "2024-01-01", "value": 10.0},
        {"date": "2024-01-02", "value": pytest.approx(1234.56)},
        {"date": "2024-02-10", "value": 20.0},
    ]


def test_series_total_equals_summary_total(orders: list[list[object]]) -> None:
    window = DateWindow("2024-01-01", "2024-01-31")

    result = summarize(orders, window=window)
    daily = build_time_series(orders, window=window)

    dates = [p.date for p in daily]
    assert dates == sorted(set(dates))
    assert daily.total() == pytest.approx(result.total_amount)


def test_row_order_does_not_change_results(orders: list[list[object]]) -> None:
    shuffled = [orders[0], *reversed(orders[1:])]

    assert summarize(shuffled).order_count == summarize(orders).order_count
    assert summarize(shuffled).total_amount == pytest.approx(summarize(orders).total_amount)
    assert build_time_series(shuffled).to_list() == build_time_series(orders).to_list()


def test_unparseable_dates_are_excluded_everywhere() -> None:
    table = [HEADER, ["A", "99", "not a date"], ["B", "1", "2024-01-01"]]

    assert summarize(table).order_count == 1
    assert [p.date for p in build_time_series(table)] == ["2024-01-01"]


def test_missing_timestamp_column_fails_both_operations() -> None:
    table = [["Item Price", "Order Date"], ["10", "2024-01-01"]]

    with pytest.raises(MissingColumnsError) as summary_exc:
        summarize(table)
    with pytest.raises(MissingColumnsError) as series_exc:
        build_time_series(table)

    assert summary_exc.value.roles == ("timestamp",)
    assert series_exc.value.roles == ("timestamp",)


def test_empty_table_cannot_resolve_columns() -> None:
    with pytest.raises(MissingColumnsError) as excinfo:
        summarize([])
    assert excinfo.value.roles == ("price", "timestamp")


def test_header_only_table_yields_zero_contract_outputs() -> None:
    result = summarize([HEADER])
    daily = build_time_series([HEADER])

    assert result.to_dict() == {
        "totalAmount": 0.0,
        "orderCount": 0,
        "averageOrderValue": 0.0,
        "windowStart": "1970-01-01",
        "windowEnd": "2999-12-31",
        "source": "",
    }
    assert len(daily) == 0
    assert daily.to_list() == []


def test_empty_and_short_rows_are_dropped_without_error() -> None:
    table = [HEADER, [], None, ["A"], ["B", "3"], ["C", "4", "2024-03-01"]]

    result = summarize(table)  # type: ignore[arg-type]

    assert result.order_count == 1
    assert result.total_amount == 4.0


def test_timezone_moves_rows_across_dates() -> None:
    table = [HEADER, ["A", "5", "2024-01-31T20:00:00Z"]]

    assert [p.date for p in build_time_series(table)] == ["2024-01-31"]
    assert [p.date for p in build_time_series(table, tz="Asia/Tokyo")] == ["2024-02-01"]
    feb = DateWindow("2024-02-01", "2024-02-29")
    assert summarize(table, window=feb).order_count == 0
    assert summarize(table, window=feb, tz="Asia/Tokyo").order_count == 1


def test_unknown_timezone_is_a_configuration_error() -> None:
    with pytest.raises(ValueError, match="Unknown timezone"):
        summarize([HEADER], tz="Mars/Olympus")


def test_custom_role_labels() -> None:
    roles = (RoleSpec("price", ("Amount",)), RoleSpec("timestamp", ("Date",)))
    table = [["date", "amount"], ["2024-01-01", "2,5"], ["2024-01-01", "1"]]

    result = summarize(table, roles)
    daily = build_time_series(table, roles)

    assert result.order_count == 2
    assert result.total_amount == pytest.approx(3.5)
    assert daily.to_list() == [{"date": "2024-01-01", "value": pytest.approx(3.5)}]


def test_oversized_amount_text_counts_as_zero() -> None:
    table = [HEADER, ["A", "9" * 400, "2024-01-01"], ["B", "2", "2024-01-01"]]

    result = summarize(table)

    assert result.order_count == 2
    assert result.total_amount == 2.0


def test_overflowing_total_does_not_raise() -> None:
    table = [HEADER, ["A", 1e308, "2024-01-01"], ["B", 1e308, "2024-01-02"]]

    result = summarize(table)
    daily = build_time_series(table)

    assert result.order_count == 2
    assert result.total_amount == float("inf")
    assert daily.to_list() == [
        {"date": "2024-01-01", "value": 1e308},
        {"date": "2024-01-02", "value": 1e308},
    ]


def test_roles_without_timestamp_are_rejected_by_name() -> None:
    roles = (RoleSpec("price", ("Item Price",)),)

    with pytest.raises(MissingColumnsError) as excinfo:
        summarize([HEADER, ["A", "1", "2024-01-01"]], roles)

    assert excinfo.value.roles == ("timestamp",)


def test_empty_role_table_names_both_required_roles() -> None:
    with pytest.raises(MissingColumnsError) as excinfo:
        build_time_series([HEADER], ())

    assert excinfo.value.roles == ("price", "timestamp")

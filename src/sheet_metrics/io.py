"""I/O helpers — load raw rows from files, write JSON artifacts."""

from __future__ import annotations

import csv
import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd
from openpyxl.utils.cell import column_index_from_string, range_boundaries

from sheet_metrics.models import Cell

_EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")

# ── Loading ──────────────────────────────────────────────────────


def _keep_bad_line(fields: list[str]) -> list[str]:
    # Rows wider than the first row: pandas keeps the leading cells.
    return fields


def _trim(row: list[Cell]) -> list[Cell]:
    while row and (row[-1] is None or row[-1] == ""):
        row.pop()
    return row


def _frame_to_rows(df: pd.DataFrame) -> list[list[Cell]]:
    return [
        _trim([None if _is_missing(v) else v for v in values])
        for values in df.itertuples(index=False, name=None)
    ]


def _clip(rows: list[list[Cell]], cell_range: str) -> list[list[Cell]]:
    """Keep only the cells of *rows* inside the A1-style *cell_range*."""
    try:
        min_col, min_row, max_col, max_row = range_boundaries(cell_range.strip().upper())
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid cell range: {cell_range!r} (expected e.g. A1:Z50)") from exc
    first_col = (min_col or 1) - 1
    return [
        _trim(list(row[first_col:max_col]))
        for row in rows[(min_row or 1) - 1 : max_row]
    ]


def _is_missing(value: Any) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _excel_engine(suffix: str) -> str:
    if suffix in _EXCEL_SUFFIXES:
        return "openpyxl"
    if suffix == ".xls":
        return "xlrd"
    raise ValueError(f"Unsupported file type: {suffix!r}. Use .csv, .xlsx, or .xls")


def _read_csv_rows(path: Path, delimiter: str | None) -> list[list[Cell]]:
    last_exc: Exception | None = None
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            df = pd.read_csv(
                path,
                header=None,
                dtype="string",
                sep=delimiter if delimiter else None,
                engine="python",
                encoding=encoding,
                encoding_errors="strict",
                keep_default_na=False,
                skip_blank_lines=False,
                on_bad_lines=_keep_bad_line,
            )
        except pd.errors.EmptyDataError:
            return []
        except (UnicodeDecodeError, pd.errors.ParserError, csv.Error) as exc:
            last_exc = exc
            continue
        return _frame_to_rows(df)
    raise ValueError(f"Could not read CSV {path} (decode or parse failed)") from last_exc


def _read_excel(path: Path, sheet_name: str | int | None) -> Any:
    engine = _excel_engine(path.suffix.lower())
    read_excel = cast(Callable[..., Any], getattr(pd, "read_excel"))
    try:
        return read_excel(
            path,
            engine=engine,
            sheet_name=sheet_name,
            header=None,
            dtype=object,
        )
    except ImportError as exc:
        raise ValueError(
            "Unsupported .xls input unless 'xlrd' is installed. "
            "Either convert to .xlsx or add dependency: pip install xlrd"
        ) from exc
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Could not read sheet {sheet_name!r} from {path}: {exc}") from exc


def _existing(path: Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return path


def load_rows(
    path: Path,
    *,
    sheet: str | None = None,
    delimiter: str | None = None,
    cell_range: str | None = None,
) -> list[list[Cell]]:
    """Load a CSV or Excel file as raw rows; row 0 is the header.

    CSV cells are kept as text.  Excel cells keep their native types so
    numbers and datetimes are not re-parsed from their display strings.
    Empty cells are ``None`` and trailing empty cells are dropped.

    *cell_range* (``"A1:Z50"``, ``"B:D"``, ``"1:20"``) restricts the result to
    that block of the tab; its first row is then the header.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the extension is not supported, CSV decoding/parsing fails,
        *sheet* is not a tab of the workbook, or *cell_range* is malformed.
    """
    path = _existing(path)
    if path.suffix.lower() == ".csv":
        rows = _read_csv_rows(path, delimiter)
    else:
        rows = _frame_to_rows(_read_excel(path, sheet if sheet else 0))
    return _clip(rows, cell_range) if cell_range else rows


def load_all_rows(
    path: Path,
    *,
    rows: int = 50,
    cols: str = "Z",
    delimiter: str | None = None,
) -> dict[str, list[list[Cell]]]:
    """Return the ``A1:<cols><rows>`` block of every tab, keyed by tab title.

    Keys follow the workbook's tab order.  A CSV is one tab named by its
    stem.  *rows* below 1 is clamped to 1.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the extension is not supported, the file cannot be read, or *cols*
        is not a column letter.
    """
    path = _existing(path)
    last_col = str(cols).strip().upper()
    try:
        column_index_from_string(last_col)
    except ValueError as exc:
        raise ValueError(f"Invalid column: {cols!r} (expected letters like Z)") from exc
    cell_range = f"A1:{last_col}{max(int(rows), 1)}"

    if path.suffix.lower() == ".csv":
        return {path.stem: _clip(_read_csv_rows(path, delimiter), cell_range)}
    frames: dict[Any, pd.DataFrame] = _read_excel(path, None)
    return {
        str(title): _clip(_frame_to_rows(df), cell_range)
        for title, df in frames.items()
    }


def list_tabs(path: Path) -> list[str]:
    """Return the tab titles of a workbook (a CSV is a single tab named by its stem)."""
    path = _existing(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return [path.stem]
    try:
        with pd.ExcelFile(path, engine=_excel_engine(suffix)) as book:
            return [str(name) for name in book.sheet_names]
    except ImportError as exc:
        raise ValueError(f"Cannot open {path}: {exc}") from exc


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_text(path: Path, text: str) -> Path:
    """Write *text* to *path* atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)
    return path


def dumps_json(data: Any) -> str:
    """Pretty-print *data* as deterministic JSON (dates become ISO strings)."""
    return json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    )


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    return write_text(path, dumps_json(data) + "\n")

"""Flat text projection of raw rows.

The default output is display-oriented, not CSV: cells are joined with ``,``
and never quoted, so a cell containing a comma shifts the columns after it.
Pass ``strict=True`` for RFC 4180 quoting.
"""

from __future__ import annotations

import csv
import io
import math
import re
from collections.abc import Sequence

from sheet_metrics import DEFAULT_MAX_ROWS
from sheet_metrics.models import Cell, RawTable

_NEWLINE_RE = re.compile(r"\r?\n")


def _format_cell(value: Cell) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _NEWLINE_RE.sub(" ", value)
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _window(rows: RawTable | None, max_rows: int) -> Sequence[Sequence[Cell]]:
    return list((rows or [])[: max(int(max_rows), 1)])


def project(rows: RawTable | None, max_rows: int = DEFAULT_MAX_ROWS, *, strict: bool = False) -> str:
    """Render the first *max_rows* rows as newline-separated, comma-joined text."""
    cut = _window(rows, max_rows)
    if strict:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        for row in cut:
            writer.writerow([_format_cell(v) for v in (row or ())])
        return buf.getvalue().removesuffix("\n")
    return "\n".join(",".join(_format_cell(v) for v in (row or ())) for row in cut)

"""Cell normalisation — loosely typed spreadsheet values to floats and dates."""

from __future__ import annotations

import math
import re
from datetime import date, datetime, tzinfo
from numbers import Real
from zoneinfo import ZoneInfo

import pandas as pd

from sheet_metrics import DEFAULT_TIMEZONE

# ── Amounts ─────────────────────────────────────────────────────

# Everything except ASCII digits and the separators / sign we understand.
_NON_NUMERIC_RE = re.compile(r"[^0-9,.\-]")
# Grammar after separator normalisation: optional leading minus, digits,
# at most one decimal point.  Only the leading match is read.
_NUMBER_PREFIX_RE = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")


def normalize_amount_text(text: str) -> str:
    """Rewrite *text* into dot-decimal form using the European convention.

    ``.`` is a thousands separator and is removed; the first ``,`` becomes the
    decimal point.  ``"1.234,56"`` → ``"1234.56"``.
    """
    token = _NON_NUMERIC_RE.sub("", text)
    token = token.replace(".", "")
    return token.replace(",", ".", 1)


def normalize_amount(cell: object) -> float:
    """Return *cell* as a number; never raises, unparseable input is ``0``."""
    if isinstance(cell, bool):
        return 0.0
    if isinstance(cell, Real):
        if not math.isfinite(float(cell)):
            return 0.0
        return cell  # type: ignore[return-value]
    if not isinstance(cell, str):
        return 0.0

    match = _NUMBER_PREFIX_RE.match(normalize_amount_text(cell))
    if match is None:
        return 0.0
    value = float(match.group(0))
    return value if math.isfinite(value) else 0.0


# ── Dates ───────────────────────────────────────────────────────


def resolve_timezone(tz: str) -> tzinfo:
    """Return the tzinfo for the IANA name *tz*.

    Raises
    ------
    ValueError
        If *tz* is not a known timezone.
    """
    try:
        return ZoneInfo(tz)
    except (KeyError, ValueError, TypeError) as exc:
        raise ValueError(f"Unknown timezone: {tz!r}") from exc


def _format_date(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def _parse_timestamp(cell: object, *, dayfirst: bool) -> pd.Timestamp | None:
    try:
        if isinstance(cell, Real):
            if not math.isfinite(float(cell)):
                return None
            # Numeric cells are epoch milliseconds.
            parsed = pd.to_datetime(float(cell), unit="ms", errors="coerce", utc=True)
        else:
            text = str(cell).strip()
            if not text:
                return None
            parsed = pd.to_datetime(text, errors="coerce", dayfirst=dayfirst, format="mixed")
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed


def normalize_date(
    cell: object,
    *,
    tz: str = DEFAULT_TIMEZONE,
    dayfirst: bool = False,
) -> str | None:
    """Return the calendar date of *cell* as ``YYYY-MM-DD``, or ``None``.

    Timezone-aware values are converted to *tz* before the date is taken;
    naive values are wall-clock times already in *tz*.
    """
    zone = resolve_timezone(tz)
    if cell is None or cell is pd.NaT or isinstance(cell, bool):
        return None

    if isinstance(cell, datetime):
        if cell.tzinfo is not None:
            cell = cell.astimezone(zone)
        return _format_date(cell.year, cell.month, cell.day)
    if isinstance(cell, date):
        return _format_date(cell.year, cell.month, cell.day)
    if not isinstance(cell, (str, Real)):
        return None

    parsed = _parse_timestamp(cell, dayfirst=dayfirst)
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(zone)
    return _format_date(parsed.year, parsed.month, parsed.day)

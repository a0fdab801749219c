"""Excel report writer — produces Metrics_Report.xlsx."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from sheet_metrics.models import MetricsSummary, TimeSeries

REPORT_NAME = "Metrics_Report.xlsx"

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)

KPI_FILL = PatternFill(start_color="D6E4F0", end_color="D6E4F0", fill_type="solid")

CURRENCY_FMT = '#,##0.00'
INT_FMT = '#,##0'
DATE_FMT = 'yyyy-mm-dd'

_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _safe_text(val: str) -> str:
    """Keep user text from being evaluated as an Excel formula."""
    if val.startswith("'"):
        return val
    stripped = val.lstrip()
    if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
        return f"'{val}"
    return val


def _write_summary(wb: Workbook, summary: MetricsSummary) -> None:
    ws = wb.create_sheet(title="Summary")

    ws.cell(row=1, column=1, value="sheet-metrics — Summary").font = TITLE_FONT
    ws.merge_cells("A1:C1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:C2")

    row = 4
    ws.cell(row=row, column=1, value="Window").font = LABEL_FONT
    ws.cell(row=row, column=2, value=f"{summary.window_start} to {summary.window_end}")
    row += 1
    ws.cell(row=row, column=1, value="Source").font = LABEL_FONT
    ws.cell(row=row, column=2, value=_safe_text(summary.source or "N/A"))

    # ── KPI cards ────────────────────────────────────────────────
    row += 2
    ws.cell(row=row, column=1, value="Key Metrics").font = LABEL_FONT
    ws.merge_cells(f"A{row}:C{row}")
    for c in range(1, 4):
        ws.cell(row=row, column=c).fill = KPI_FILL
    row += 1

    kpis: list[tuple[str, Any, str]] = [
        ("Total Amount", summary.total_amount, CURRENCY_FMT),
        ("Order Count", summary.order_count, INT_FMT),
        ("Average Order Value", summary.average_order_value, CURRENCY_FMT),
    ]
    for label, value, fmt in kpis:
        lbl_cell = ws.cell(row=row, column=1, value=label)
        lbl_cell.font = LABEL_FONT
        lbl_cell.fill = KPI_FILL
        val_cell = ws.cell(row=row, column=2, value=value)
        val_cell.font = VALUE_FONT
        val_cell.fill = KPI_FILL
        val_cell.number_format = fmt
        val_cell.alignment = Alignment(horizontal="right")
        row += 1

    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 28
    ws.column_dimensions["C"].width = 18


def _write_daily(wb: Workbook, series: TimeSeries) -> None:
    ws = wb.create_sheet(title="Daily")
    headers = ("date", "value")
    for c_idx, name in enumerate(headers, 1):
        ws.cell(row=1, column=c_idx, value=name)
    _style_header(ws, len(headers))
    ws.freeze_panes = "A2"

    for r_idx, point in enumerate(series, 2):
        date_cell = ws.cell(row=r_idx, column=1, value=date.fromisoformat(point.date))
        date_cell.number_format = DATE_FMT
        value_cell = ws.cell(row=r_idx, column=2, value=point.value)
        value_cell.number_format = CURRENCY_FMT

    for c_idx in range(1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(c_idx)].width = 16

    if len(series):
        table = Table(displayName="Daily", ref=f"A1:B{len(series) + 1}")
        table.tableStyleInfo = TableStyleInfo(
            name="TableStyleMedium9", showFirstColumn=False,
            showLastColumn=False, showRowStripes=True, showColumnStripes=False,
        )
        ws.add_table(table)


# ── Public API ───────────────────────────────────────────────────


def write_report(out_dir: Path, summary: MetricsSummary, series: TimeSeries) -> Path:
    """Write ``Metrics_Report.xlsx`` and return the path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / REPORT_NAME

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    _write_summary(wb, summary)
    _write_daily(wb, series)

    tmp_path = out_dir / "Metrics_Report.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path

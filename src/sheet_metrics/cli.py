"""CLI entry point for sheet-metrics."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table as RichTable

from sheet_metrics import DEFAULT_MAX_ROWS, DEFAULT_TIMEZONE, __version__
from sheet_metrics.columns import DEFAULT_ROLES, RoleSpec, with_aliases
from sheet_metrics.io import (
    dumps_json,
    list_tabs,
    load_all_rows,
    load_rows,
    write_json,
    write_text,
)
from sheet_metrics.models import Cell, MissingColumnsError
from sheet_metrics.normalize import resolve_timezone
from sheet_metrics.pipeline import build_time_series, summarize
from sheet_metrics.projector import project as project_rows
from sheet_metrics.report import write_report
from sheet_metrics.window import DateWindow

app = typer.Typer(
    name="smetrics",
    help="sheet-metrics — KPI summaries and daily series from spreadsheet rows.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheet-metrics v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _parse_role_map(raw: list[str] | None) -> dict[str, list[str]]:
    """Parse ``role=Header Label`` pairs into ``{role: [labels]}``."""
    if not raw:
        return {}
    aliases: dict[str, list[str]] = {}
    for item in raw:
        if "=" not in item:
            raise ValueError(f"Invalid --map value: {item!r}  (expected role=Header)")
        role, header = item.split("=", 1)
        role = role.strip().lower()
        header = header.strip()
        if not role or not header:
            raise ValueError("--map entries must have non-empty role and header (role=Header)")
        aliases.setdefault(role, []).append(header)
    return aliases


def _load_profile_map(profile: Path | None) -> list[str]:
    """Return list of ``role=Header`` strings from a profile file."""
    if not profile:
        return []
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like price=Amount)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc

    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(stripped)
    return lines


def _build_roles(col_map: list[str] | None, profile: Path | None) -> tuple[RoleSpec, ...]:
    aliases = _parse_role_map(_load_profile_map(profile) + (col_map or []))
    return with_aliases(DEFAULT_ROLES, aliases)


def _source_name(input_file: Path, sheet: str | None) -> str:
    return f"{input_file.name}!{sheet}" if sheet else input_file.name


def _load_or_exit(
    input_file: Path,
    sheet: str | None,
    delimiter: str | None,
    cell_range: str | None = None,
) -> list[list[Cell]]:
    try:
        return load_rows(input_file, sheet=sheet, delimiter=delimiter, cell_range=cell_range)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _prepare_or_exit(
    *,
    col_map: list[str] | None,
    profile: Path | None,
    start: str | None,
    end: str | None,
    tz: str,
    dayfirst: bool,
) -> tuple[tuple[RoleSpec, ...], DateWindow]:
    try:
        resolve_timezone(tz)
        roles = _build_roles(col_map, profile)
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    return roles, DateWindow.from_bounds(start, end, tz=tz, dayfirst=dayfirst)


def _missing_columns_exit(exc: MissingColumnsError, roles: tuple[RoleSpec, ...]) -> typer.Exit:
    _err(str(exc))
    for role in roles:
        if role.name in exc.roles:
            console.print(f"  {role.name}: expected one of {', '.join(role.headers)}")
    console.print("  Hint: use --map role=Header to accept another header label")
    return typer.Exit(code=2)


def _unexpected_exit(exc: Exception) -> typer.Exit:
    _err(f"Unexpected internal error: {exc}")
    return typer.Exit(code=1)


# ── Shared options ───────────────────────────────────────────────

_INPUT = typer.Option(
    ..., "--input", "-i",
    help="Path to CSV or XLSX input file.",
    exists=True, readable=True,
)
_SHEET = typer.Option(None, "--sheet", "-s", help="Workbook tab to read (default: first).")
_DELIMITER = typer.Option(None, "--delimiter", help="CSV delimiter (default: sniffed).")
_RANGE = typer.Option(
    None, "--range", "-r",
    help="Cell block to read, e.g. A1:Z50 (default: the whole tab).",
)
_START = typer.Option(None, "--start", help="First date to include (inclusive).")
_END = typer.Option(None, "--end", help="Last date to include (inclusive).")
_TZ = typer.Option(
    DEFAULT_TIMEZONE, "--tz",
    help="Timezone used to take calendar dates from timestamps.",
)
_DAYFIRST = typer.Option(
    False,
    "--dayfirst/--monthfirst",
    help="Date parsing mode for ambiguous values like 01/02/2024.",
)
_MAP = typer.Option(
    None, "--map", "-m",
    help=(
        "Extra header label for a role: role=Header. "
        "E.g. --map price=Amount --map timestamp=OrderDate"
    ),
)
_PROFILE = typer.Option(
    None, "--profile",
    help="Profile file containing role mappings (role=Header lines).",
)
_QUIET = typer.Option(False, "--quiet", "-q", help="Suppress informational output.")
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Show debug logging.")


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sheet-metrics CLI."""


# ── summary command ──────────────────────────────────────────────


@app.command()
def summary(
    input_file: Path = _INPUT,
    sheet: str | None = _SHEET,
    delimiter: str | None = _DELIMITER,
    cell_range: str | None = _RANGE,
    start: str | None = _START,
    end: str | None = _END,
    tz: str = _TZ,
    dayfirst: bool = _DAYFIRST,
    col_map: list[str] | None = _MAP,
    profile: Path | None = _PROFILE,
    out: Path | None = typer.Option(None, "--out", "-o", help="Write the summary as JSON."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    quiet: bool = _QUIET,
    verbose: bool = _VERBOSE,
) -> None:
    """Total amount, order count and average order value."""
    _configure_logging(verbose)
    echo = _printer(quiet or as_json)
    roles, window = _prepare_or_exit(
        col_map=col_map, profile=profile, start=start, end=end, tz=tz, dayfirst=dayfirst,
    )
    rows = _load_or_exit(input_file, sheet, delimiter, cell_range)
    echo(f"  {max(len(rows) - 1, 0)} body rows from {_source_name(input_file, sheet)}")

    try:
        result = summarize(
            rows, roles, window, tz=tz, dayfirst=dayfirst,
            source=_source_name(input_file, sheet),
        )
    except MissingColumnsError as exc:
        raise _missing_columns_exit(exc, roles)
    except Exception as exc:
        raise _unexpected_exit(exc)

    payload = result.to_dict()
    if out:
        echo(f"  Summary -> {write_json(out, payload)}")
    if as_json:
        typer.echo(dumps_json(payload))
        return
    if quiet:
        return

    table = RichTable(title=f"Summary {result.window_start} to {result.window_end}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total Amount", f"{result.total_amount:,.2f}")
    table.add_row("Order Count", f"{result.order_count:,}")
    table.add_row("Average Order Value", f"{result.average_order_value:,.2f}")
    console.print(table)


# ── series command ───────────────────────────────────────────────


@app.command()
def series(
    input_file: Path = _INPUT,
    sheet: str | None = _SHEET,
    delimiter: str | None = _DELIMITER,
    cell_range: str | None = _RANGE,
    start: str | None = _START,
    end: str | None = _END,
    tz: str = _TZ,
    dayfirst: bool = _DAYFIRST,
    col_map: list[str] | None = _MAP,
    profile: Path | None = _PROFILE,
    out: Path | None = typer.Option(None, "--out", "-o", help="Write the series as JSON."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    quiet: bool = _QUIET,
    verbose: bool = _VERBOSE,
) -> None:
    """Daily sums of accepted amounts, ascending by date."""
    _configure_logging(verbose)
    echo = _printer(quiet or as_json)
    roles, window = _prepare_or_exit(
        col_map=col_map, profile=profile, start=start, end=end, tz=tz, dayfirst=dayfirst,
    )
    rows = _load_or_exit(input_file, sheet, delimiter, cell_range)

    try:
        daily = build_time_series(rows, roles, window, tz=tz, dayfirst=dayfirst)
    except MissingColumnsError as exc:
        raise _missing_columns_exit(exc, roles)
    except Exception as exc:
        raise _unexpected_exit(exc)

    payload = daily.to_list()
    if out:
        echo(f"  Series -> {write_json(out, payload)}")
    if as_json:
        typer.echo(dumps_json(payload))
        return
    if quiet:
        return

    table = RichTable(title=f"Daily {window.start} to {window.end}")
    table.add_column("Date")
    table.add_column("Value", justify="right")
    for point in daily:
        table.add_row(point.date, f"{point.value:,.2f}")
    console.print(table)
    console.print(f"  {len(daily)} days, total {daily.total():,.2f}")


# ── project command ──────────────────────────────────────────────


@app.command()
def project(
    input_file: Path = _INPUT,
    sheet: str | None = _SHEET,
    delimiter: str | None = _DELIMITER,
    cell_range: str | None = _RANGE,
    max_rows: int = typer.Option(
        DEFAULT_MAX_ROWS, "--max-rows", "-n",
        help="Number of rows to include, header counted.",
    ),
    strict: bool = typer.Option(
        False, "--strict",
        help="Quote cells (RFC 4180) instead of the plain comma join.",
    ),
    out: Path | None = typer.Option(None, "--out", "-o", help="Write the text to a file."),
) -> None:
    """Print the first rows as comma-joined text."""
    rows = _load_or_exit(input_file, sheet, delimiter, cell_range)
    text = project_rows(rows, max_rows, strict=strict)
    if out:
        write_text(out, text + "\n")
        return
    typer.echo(text)


# ── tabs command ─────────────────────────────────────────────────


@app.command()
def tabs(
    input_file: Path = _INPUT,
) -> None:
    """List the tabs of a workbook."""
    try:
        titles = list_tabs(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    for title in titles:
        typer.echo(title)


# ── sheets command ───────────────────────────────────────────────


@app.command()
def sheets(
    input_file: Path = _INPUT,
    delimiter: str | None = _DELIMITER,
    rows: int = typer.Option(50, "--rows", help="Rows to read from every tab, header counted."),
    cols: str = typer.Option("Z", "--cols", help="Last column to read from every tab."),
    out: Path | None = typer.Option(None, "--out", "-o", help="Write the JSON to a file."),
) -> None:
    """Print the top-left block of every tab as JSON keyed by tab title."""
    try:
        data = load_all_rows(input_file, rows=rows, cols=cols, delimiter=delimiter)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    payload = {
        "rows": max(rows, 1),
        "cols": cols.strip().upper(),
        "tabs": list(data),
        "data": data,
    }
    if out:
        write_json(out, payload)
        return
    typer.echo(dumps_json(payload))


# ── report command ───────────────────────────────────────────────


@app.command()
def report(
    input_file: Path = _INPUT,
    sheet: str | None = _SHEET,
    delimiter: str | None = _DELIMITER,
    cell_range: str | None = _RANGE,
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for Metrics_Report.xlsx + metrics.json.",
    ),
    start: str | None = _START,
    end: str | None = _END,
    tz: str = _TZ,
    dayfirst: bool = _DAYFIRST,
    col_map: list[str] | None = _MAP,
    profile: Path | None = _PROFILE,
    quiet: bool = _QUIET,
    verbose: bool = _VERBOSE,
) -> None:
    """Write an Excel report and a JSON file with summary + daily series."""
    _configure_logging(verbose)
    echo = _printer(quiet)
    roles, window = _prepare_or_exit(
        col_map=col_map, profile=profile, start=start, end=end, tz=tz, dayfirst=dayfirst,
    )
    source = _source_name(input_file, sheet)

    if not quiet:
        console.print(Panel(
            f"[bold]sheet-metrics[/bold] v{__version__}\n"
            f"Input:  {source}\nOutput: {out_dir}\n"
            f"Window: {window.start} to {window.end} ({tz})",
            title="Report Start", border_style="blue",
        ))

    echo("[blue]>[/blue] Loading input file …")
    rows = _load_or_exit(input_file, sheet, delimiter, cell_range)
    echo(f"  {max(len(rows) - 1, 0)} body rows")

    try:
        echo("[blue]>[/blue] Computing metrics …")
        result = summarize(rows, roles, window, tz=tz, dayfirst=dayfirst, source=source)
        daily = build_time_series(rows, roles, window, tz=tz, dayfirst=dayfirst)

        echo(f"[blue]>[/blue] Writing {out_dir / 'Metrics_Report.xlsx'} …")
        report_path = write_report(out_dir, result, daily)
        json_path = write_json(
            out_dir / "metrics.json",
            {"summary": result.to_dict(), "series": daily.to_list()},
        )
        echo(f"  Report  -> {report_path}")
        echo(f"  Metrics -> {json_path}")
    except MissingColumnsError as exc:
        raise _missing_columns_exit(exc, roles)
    except Exception as exc:
        raise _unexpected_exit(exc)

    if not quiet:
        console.print(Panel(
            f"[green]Done[/green] — {result.order_count} orders, "
            f"{len(daily)} days -> {report_path}",
            title="Report Complete", border_style="green",
        ))

"""CLI entry point for tabular-report."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table as RichTable

from tabular_report import __version__
from tabular_report.builder import ReportBuilder
from tabular_report.errors import ReportConfigError
from tabular_report.excel_report import ExcelRenderer
from tabular_report.html_report import HtmlRenderer
from tabular_report.io import (
    dumps_json,
    load_configuration,
    sha256_file,
    utcnow_iso,
    write_json,
    write_text,
)
from tabular_report.models import ReportModel, RunManifest

app = typer.Typer(
    name="tabreport",
    help="tabular-report: Normalize loose tabular data into HTML and Excel reports.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)

INPUT_HELP = "JSON report configuration, or a CSV/XLSX data file."
SORT_HELP = "Sort directive: column key, prefixed with '!' for descending. Repeatable."
COLUMN_HELP = "Column key to include, in display order. Repeatable."


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {escape(msg)}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tabular-report v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_model(
    input_file: Path,
    *,
    title: str | None,
    sort: list[str] | None,
    columns: list[str] | None,
    delimiter: str | None,
) -> ReportModel:
    """Build the report model; command-line options override the document."""
    raw = load_configuration(input_file, delimiter=delimiter)
    builder = ReportBuilder(raw)
    if columns:
        builder.set_columns(columns)
    if sort:
        builder.set_options(sort=sort)
    if title is not None:
        builder.set_options(title=title)
    model = builder.build()
    logger.debug("Model built: %d columns, %d rows", len(model.columns), len(model.rows))
    return model


def _load_or_exit(
    input_file: Path,
    *,
    title: str | None,
    sort: list[str] | None,
    columns: list[str] | None,
    delimiter: str | None,
) -> ReportModel:
    try:
        return _load_model(
            input_file, title=title, sort=sort, columns=columns, delimiter=delimiter
        )
    except ReportConfigError as exc:
        _err(f"Invalid report configuration: {exc}")
        raise typer.Exit(code=2)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _write_manifest(
    manifest_path: Path,
    input_file: Path,
    output: Path,
    model: ReportModel,
    renderer: str,
) -> Path:
    manifest = RunManifest(
        version=__version__,
        input_path=str(input_file.resolve()),
        output_path=str(output.resolve()),
        created_at_utc=utcnow_iso(),
        columns=len(model.columns),
        rows=len(model.rows),
        sha256=sha256_file(output),
        extra={"renderer": renderer},
    )
    return write_json(manifest_path, manifest.to_dict())


def _start_panel(quiet: bool, mode: str, input_file: Path, output: Path | None) -> None:
    if quiet:
        return
    body = f"[bold]tabular-report[/bold] v{__version__}  [dim]{mode}[/dim]\nInput:  {input_file}"
    if output is not None:
        body += f"\nOutput: {output}"
    console.print(Panel(body, title="Report", border_style="blue"))


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log pipeline steps at debug level.",
    ),
) -> None:
    """tabular-report CLI."""
    _configure_logging(verbose)


# ── html command ─────────────────────────────────────────────────


@app.command()
def html(
    input_file: Path = typer.Option(
        ..., "--input", "-i", help=INPUT_HELP, exists=True, readable=True,
    ),
    output: Path = typer.Option(
        Path("report.html"), "--output", "-o", help="Path of the HTML file to write.",
    ),
    page: bool = typer.Option(
        True, "--page/--fragment",
        help="Write a complete HTML page, or only the <table> fragment.",
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Report title."),
    sort: list[str] | None = typer.Option(None, "--sort", "-s", help=SORT_HELP),
    columns: list[str] | None = typer.Option(None, "--column", "-c", help=COLUMN_HELP),
    table_class: str | None = typer.Option(
        None, "--table-class", help="CSS class for the <table> element.",
    ),
    delimiter: str | None = typer.Option(
        None, "--delimiter", help="CSV delimiter (sniffed when omitted).",
    ),
    manifest: Path | None = typer.Option(
        None, "--manifest", help="Also write a JSON run manifest to this path.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress informational output.",
    ),
) -> None:
    """Render the report as HTML."""
    echo = _printer(quiet)
    _start_panel(quiet, "html", input_file, output)
    model = _load_or_exit(
        input_file, title=title, sort=sort, columns=columns, delimiter=delimiter
    )
    echo(f"  {len(model.rows)} rows x {len(model.columns)} columns")

    try:
        renderer = HtmlRenderer(table_class=table_class)
        markup = renderer.render_page(model) if page else renderer.render(model)
        write_text(output, markup)
        echo(f"  HTML -> {output}")
        if manifest is not None:
            manifest_path = _write_manifest(manifest, input_file, output, model, "html")
            echo(f"  Manifest -> {manifest_path}")
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)


# ── excel command ────────────────────────────────────────────────


@app.command()
def excel(
    input_file: Path = typer.Option(
        ..., "--input", "-i", help=INPUT_HELP, exists=True, readable=True,
    ),
    output: Path = typer.Option(
        Path("report.xlsx"), "--output", "-o", help="Path of the .xlsx file to write.",
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Report title."),
    sort: list[str] | None = typer.Option(None, "--sort", "-s", help=SORT_HELP),
    columns: list[str] | None = typer.Option(None, "--column", "-c", help=COLUMN_HELP),
    as_table: bool = typer.Option(
        False, "--table/--no-table", help="Format the data range as an Excel table.",
    ),
    delimiter: str | None = typer.Option(
        None, "--delimiter", help="CSV delimiter (sniffed when omitted).",
    ),
    manifest: Path | None = typer.Option(
        None, "--manifest", help="Also write a JSON run manifest to this path.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress informational output.",
    ),
) -> None:
    """Render the report as an Excel workbook."""
    echo = _printer(quiet)
    _start_panel(quiet, "excel", input_file, output)
    model = _load_or_exit(
        input_file, title=title, sort=sort, columns=columns, delimiter=delimiter
    )
    echo(f"  {len(model.rows)} rows x {len(model.columns)} columns")

    try:
        report_path = ExcelRenderer(as_table=as_table).write(model, output)
        echo(f"  Report -> {report_path}")
        if manifest is not None:
            manifest_path = _write_manifest(manifest, input_file, report_path, model, "xlsx")
            echo(f"  Manifest -> {manifest_path}")
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    input_file: Path = typer.Option(
        ..., "--input", "-i", help=INPUT_HELP, exists=True, readable=True,
    ),
    sort: list[str] | None = typer.Option(None, "--sort", "-s", help=SORT_HELP),
    columns: list[str] | None = typer.Option(None, "--column", "-c", help=COLUMN_HELP),
    delimiter: str | None = typer.Option(
        None, "--delimiter", help="CSV delimiter (sniffed when omitted).",
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the normalized model as JSON.",
    ),
    limit: int = typer.Option(
        20, "--limit", "-n", min=0, help="Maximum number of rows to show.",
    ),
) -> None:
    """Show the normalized columns and rows without rendering a file."""
    model = _load_or_exit(
        input_file, title=None, sort=sort, columns=columns, delimiter=delimiter
    )

    if as_json:
        typer.echo(dumps_json(model.to_dict()), nl=False)
        return

    cols = RichTable(title="Columns", show_lines=False)
    cols.add_column("Index", justify="right")
    cols.add_column("Key", style="bold")
    cols.add_column("Heading")
    cols.add_column("Class")
    cols.add_column("Format")
    for column in model.columns:
        fmt = column.format
        fmt_text = "" if fmt is None else fmt.type + (f" ({fmt.options})" if fmt.options else "")
        cols.add_row(
            str(column.index), escape(column.key), escape(column.heading),
            escape(column.css_class or ""), escape(fmt_text),
        )
    console.print(cols)

    renderer = HtmlRenderer()
    rows = RichTable(title=escape(model.title or "Rows"), show_lines=False)
    for column in model.columns:
        rows.add_column(escape(column.heading))
    for row in model.rows[:limit]:
        rows.add_row(
            *[
                escape(renderer.display_value(column, row[column.key])) if column.key in row else ""
                for column in model.columns
            ]
        )
    console.print(rows)

    if len(model.rows) > limit:
        console.print(f"  … {len(model.rows) - limit} more rows")
    if model.sort:
        directives = ", ".join(
            ("!" if directive.reverse else "") + directive.column for directive in model.sort
        )
        console.print(f"  Sorted by: {directives}")

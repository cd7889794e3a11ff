"""Excel report writer: renders a report model as an ``.xlsx`` workbook."""

from __future__ import annotations

import io
import os
import re
import tempfile
from collections.abc import Callable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from tabular_report.formats import php_date_to_excel, to_datetime, to_number
from tabular_report.models import Cell, Column, ColumnFormat, ReportModel

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

CURRENCY_FMT = '"$"#,##0.00_-'
DATE_FMT = "m/d/yyyy"
PCT_FMT = "0%"
SINGLE_DECIMAL_FMT = "0.0"

NumberFormatFunction = Callable[["str | None"], str]

# Format types whose values are written as numbers when they parse as such.
_NUMERIC_FORMAT_TYPES = {"currency", "percentage", "singleDecimal"}

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")
_SHEET_TITLE_INVALID_RE = re.compile(r"[\[\]:*?/\\]")


def _date_number_format(options: str | None) -> str:
    return php_date_to_excel(options) if options else DATE_FMT


def default_number_formats() -> dict[str, NumberFormatFunction]:
    """Return a fresh registry of format type -> Excel number-format code."""
    return {
        "currency": lambda _options: CURRENCY_FMT,
        "date": _date_number_format,
        "percentage": lambda _options: PCT_FMT,
        "singleDecimal": lambda _options: SINGLE_DECIMAL_FMT,
    }


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            cell = row[0]
            width = max(width, len(str(cell.value or "")))
        width += 4
        ws.column_dimensions[letter].width = min(width, 50)


def _sanitize_table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned:
        cleaned = "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def sanitize_sheet_title(title: str | None) -> str:
    """Excel sheet titles: max 31 chars, none of ``[]:*?/\\``."""
    cleaned = _SHEET_TITLE_INVALID_RE.sub("_", title or "").strip().strip("'")
    return cleaned[:31] or "Report"


def table_headings(columns: tuple[Column, ...]) -> list[str]:
    """Excel table headers must be non-empty and unique ignoring case."""
    seen: set[str] = set()
    headings: list[str] = []
    for column in columns:
        base = column.heading.strip() or f"Column{column.index + 1}"
        heading = base
        n = 2
        while heading.lower() in seen:
            heading = f"{base} {n}"
            n += 1
        seen.add(heading.lower())
        headings.append(heading)
    return headings


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    """Turn the data range into a proper Excel Table object."""
    if nrows < 1 or ncols < 1:
        return
    end_col = get_column_letter(ncols)
    ref = f"A1:{end_col}{nrows + 1}"  # +1 for header
    table = Table(displayName=_sanitize_table_name(name), ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(cell: Cell, fmt: ColumnFormat | None) -> Any:
    val = cell.value
    if fmt is not None and fmt.type == "date":
        parsed = to_datetime(val)
        if parsed is not None:
            return parsed
    if fmt is not None and fmt.type in _NUMERIC_FORMAT_TYPES and isinstance(val, str):
        number = to_number(val)
        if number is not None:
            return number

    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"
    elif isinstance(val, (datetime, date)):
        return to_datetime(val)
    elif val is not None and not isinstance(val, (int, float)):
        return str(val)

    return val


# ── Renderer ─────────────────────────────────────────────────────


class ExcelRenderer:
    """Write a :class:`ReportModel` to a single-sheet workbook.

    ``number_formats`` maps a column format type to a function of the format
    options returning an Excel number-format code.
    """

    def __init__(
        self,
        number_formats: Mapping[str, NumberFormatFunction] | None = None,
        *,
        as_table: bool = False,
    ) -> None:
        self.number_formats: dict[str, NumberFormatFunction] = (
            default_number_formats() if number_formats is None else dict(number_formats)
        )
        self.as_table = as_table

    def number_format(self, column: Column) -> str | None:
        if column.format is None:
            return None
        func = self.number_formats.get(column.format.type)
        return func(column.format.options) if func is not None else None

    def build_workbook(self, model: ReportModel) -> Workbook:
        wb = Workbook()
        ws = wb.active
        if ws is None:
            ws = wb.create_sheet()
        ws.title = sanitize_sheet_title(model.title)
        if model.title:
            wb.properties.title = model.title

        if not model.columns:
            return wb

        as_table = self.as_table and bool(model.rows)
        if as_table:
            headings = table_headings(model.columns)
        else:
            headings = [column.heading for column in model.columns]
        for column, heading in zip(model.columns, headings):
            ws.cell(row=1, column=column.index + 1, value=heading)
        _style_header(ws, len(model.columns))
        ws.freeze_panes = "A2"

        for r_idx, row in enumerate(model.rows, 2):
            for column in model.columns:
                cell = row.get(column.key)
                if cell is None or cell.value == "" or cell.value is None:
                    continue
                ws.cell(row=r_idx, column=column.index + 1, value=_excel_value(cell, column.format))

        if model.rows:
            for column in model.columns:
                fmt = self.number_format(column)
                if not fmt:
                    continue
                c_idx = column.index + 1
                for ws_row in ws.iter_rows(
                    min_row=2, max_row=len(model.rows) + 1, min_col=c_idx, max_col=c_idx
                ):
                    for ws_cell in ws_row:
                        ws_cell.number_format = fmt

        _auto_width(ws)
        if as_table:
            _add_excel_table(ws, ws.title, len(model.columns), len(model.rows))
        elif model.rows:
            ws.auto_filter.ref = ws.dimensions
        return wb

    # ── Output ───────────────────────────────────────────────────

    def write(self, model: ReportModel, path: Path) -> Path:
        """Save the workbook to *path* atomically and return the path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
        self.build_workbook(model).save(tmp_path)
        tmp_path.replace(path)
        return path

    def to_bytes(self, model: ReportModel) -> bytes:
        buffer = io.BytesIO()
        self.build_workbook(model).save(buffer)
        return buffer.getvalue()

    def write_temp_file(self, model: ReportModel, prefix: str = "xlsreport") -> Path:
        """Write the workbook to a new temp file; the caller removes it."""
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=".xlsx")
        os.close(fd)
        path = Path(name)
        try:
            self.build_workbook(model).save(path)
        except Exception:
            path.unlink(missing_ok=True)
            raise
        return path


def write_report(path: Path, model: ReportModel, *, as_table: bool = False) -> Path:
    """Write *model* as an ``.xlsx`` file at *path* and return the path."""
    return ExcelRenderer(as_table=as_table).write(model, path)

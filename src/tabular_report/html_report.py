"""HTML renderer: a ``<table>`` fragment or a complete page."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import replace
from html import escape
from typing import Any

from tabular_report.formats import FormatFunction, default_format_functions
from tabular_report.models import Cell, Column, ReportModel, Row

DEFAULT_PAGE_TITLE = "Report"
DEFAULT_PAGE_TABLE_CLASS = "report"

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html>
    <head>
        <title>{TITLE}</title>
        <meta charset="utf-8" />
    </head>
    <body>
        <h1>{TITLE}</h1>
        {REPORT}
    </body>
</html>
"""

_EMPTY_CELL = Cell(value="")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _css_class(column: Column) -> str:
    css = f"column-{column.index}"
    if column.css_class:
        css += f" {column.css_class}"
    return css


class HtmlRenderer:
    """Render a :class:`ReportModel` as HTML.

    ``format_functions`` maps a column format type to a function taking
    ``(value, options)``; it defaults to :func:`default_format_functions`.
    """

    def __init__(
        self,
        format_functions: Mapping[str, FormatFunction] | None = None,
        table_class: str | None = None,
    ) -> None:
        self.format_functions: dict[str, FormatFunction] = (
            default_format_functions() if format_functions is None else dict(format_functions)
        )
        self.table_class = table_class

    # ── Table ────────────────────────────────────────────────────

    def render(self, model: ReportModel) -> str:
        """Return the ``<table>`` markup, or ``""`` when there are no columns."""
        if not model.columns:
            return ""

        parts = ["<table"]
        if self.table_class:
            parts.append(f' class="{escape(self.table_class)}"')
        parts.append(">")
        if model.title is not None:
            parts.append(f"<caption>{escape(model.title)}</caption>")

        parts.append("<thead><tr>")
        parts.extend(self.render_heading(column) for column in model.columns)
        parts.append("</tr></thead>")

        parts.append("<tbody>")
        parts.extend(self.render_row(model.columns, row) for row in model.rows)
        parts.append("</tbody>")

        parts.append("</table>")
        return "".join(parts)

    def render_heading(self, column: Column) -> str:
        return (
            f'<th class="{escape(_css_class(column))}"'
            f' data-column-key="{escape(column.key)}">'
            f"{escape(column.heading)}</th>"
        )

    def render_row(self, columns: tuple[Column, ...] | list[Column], row: Row) -> str:
        cells = "".join(self.render_cell(column, row.get(column.key)) for column in columns)
        return f"<tr>{cells}</tr>"

    def render_cell(self, column: Column, cell: Cell | None = None) -> str:
        if cell is None:
            cell = _EMPTY_CELL
        sort_value = _text(cell.effective_sort_value)
        display = self.display_value(column, cell)
        return (
            f'<td class="{escape(_css_class(column))}"'
            f' data-column-key="{escape(column.key)}"'
            f' data-sort-value="{escape(sort_value)}">'
            f"{escape(display)}</td>"
        )

    def display_value(self, column: Column, cell: Cell) -> str:
        """Apply the column's format function, if one is registered."""
        fmt = column.format
        if fmt is not None and cell.value not in (None, ""):
            func = self.format_functions.get(fmt.type)
            if func is not None:
                return func(cell.value, fmt.options)
        return _text(cell.value)

    # ── Page ─────────────────────────────────────────────────────

    def render_page(
        self,
        model: ReportModel,
        template: str = DEFAULT_TEMPLATE,
        merge_fields: Mapping[str, str] | None = None,
    ) -> str:
        """Merge the table and title into *template*.

        ``{TITLE}`` and ``{REPORT}`` are always available; *merge_fields* may
        add or override placeholders.
        """
        if self.table_class is None:
            renderer = HtmlRenderer(self.format_functions, DEFAULT_PAGE_TABLE_CLASS)
        else:
            renderer = self
        if model.title is None:
            model = replace(model, title=DEFAULT_PAGE_TITLE)
        fields: dict[str, str] = {
            "{REPORT}": renderer.render(model),
            "{TITLE}": escape(model.title or ""),
        }
        fields.update(merge_fields or {})

        # Single pass so placeholder text inside the data is left alone.
        pattern = re.compile("|".join(re.escape(name) for name in fields))
        return pattern.sub(lambda match: fields[match.group(0)], template)


def render_html(model: ReportModel, **kwargs: Any) -> str:
    return HtmlRenderer(**kwargs).render(model)

"""Data models shared by the pipeline and the renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Integral
from typing import Any

Row = dict[str, "Cell"]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


@dataclass(frozen=True)
class Cell:
    """One row/column intersection.

    ``sort_value`` overrides ``value`` when rows are ordered and is exposed to
    HTML as ``data-sort-value``.
    """

    value: Any = None
    sort_value: Any = None

    @property
    def effective_sort_value(self) -> Any:
        return self.value if self.sort_value is None else self.sort_value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"value": self.value}
        if self.sort_value is not None:
            payload["sortValue"] = self.sort_value
        return payload


@dataclass(frozen=True)
class ColumnFormat:
    type: str
    options: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.options is not None:
            payload["options"] = self.options
        return payload


@dataclass(frozen=True)
class Column:
    """Canonical column description.

    Invariant: after the column set is built, ``index`` values are the dense
    sequence ``0..n-1`` in display order.
    """

    index: int
    key: str
    heading: str
    css_class: str | None = None
    format: ColumnFormat | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "index": self.index,
            "key": self.key,
            "heading": self.heading,
        }
        if self.css_class is not None:
            payload["class"] = self.css_class
        if self.format is not None:
            payload["format"] = self.format.to_dict()
        return payload


@dataclass(frozen=True)
class SortDirective:
    column: str
    reverse: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.column, "reverse": self.reverse}


@dataclass(frozen=True)
class ReportModel:
    """Finished ``{title, columns, rows}`` aggregate handed to renderers."""

    title: str | None = None
    columns: tuple[Column, ...] = ()
    rows: tuple[Row, ...] = ()
    sort: tuple[SortDirective, ...] = ()

    @property
    def keys(self) -> list[str]:
        return [column.key for column in self.columns]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "columns": [column.to_dict() for column in self.columns],
            "rows": [
                {key: cell.to_dict() for key, cell in row.items()} for row in self.rows
            ],
            "sort": [directive.to_dict() for directive in self.sort],
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single render."""

    tool: str = "tabular-report"
    version: str = ""
    input_path: str = ""
    output_path: str = ""
    created_at_utc: str = ""
    columns: int = 0
    rows: int = 0
    sha256: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.columns = _to_non_negative_int(self.columns, "columns")
        self.rows = _to_non_negative_int(self.rows, "rows")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "input_path": self.input_path,
            "output_path": self.output_path,
            "created_at_utc": self.created_at_utc,
            "columns": self.columns,
            "rows": self.rows,
            "sha256": self.sha256,
            **self.extra,
        }

"""Normalization pipeline: pure functions, no side effects.

Every function here returns new objects; callers' input collections are never
modified. Feeding canonical output back in yields an identical result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from numbers import Integral
from typing import Any

from tabular_report.errors import (
    InvalidColumnDescriptorError,
    InvalidDataShapeError,
    MissingColumnIdentifierError,
    MissingValueError,
)
from tabular_report.models import Cell, Column, ColumnFormat, Row

logger = logging.getLogger(__name__)

_COLUMN_FIELDS = ("index", "key", "heading", "class", "format")


# ── Cells ────────────────────────────────────────────────────────


def normalize_cell(raw: Any) -> Cell:
    """Coerce *raw* into a :class:`Cell`.

    Mappings must carry a ``value`` key; everything that is not a mapping is
    wrapped as the cell's value.
    """
    if isinstance(raw, Cell):
        return raw
    if isinstance(raw, Mapping):
        if "value" not in raw:
            raise MissingValueError(
                f"Cell mapping is missing a 'value' field (keys: {sorted(map(str, raw))})"
            )
        return Cell(value=raw["value"], sort_value=raw.get("sortValue"))
    return Cell(value=raw)


# ── Columns ──────────────────────────────────────────────────────


def _optional_str(descriptor: Mapping[str, Any], name: str) -> str | None:
    value = descriptor.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidColumnDescriptorError(
            f"Column {name!r} must be a string, got {type(value).__name__}"
        )
    return value


def normalize_format(raw: Any) -> ColumnFormat | None:
    """Expand ``"currency"`` shorthand into ``ColumnFormat(type="currency")``."""
    if raw is None or isinstance(raw, ColumnFormat):
        return raw
    if isinstance(raw, str):
        return ColumnFormat(type=raw)
    if isinstance(raw, Mapping):
        fmt_type = raw.get("type")
        if not isinstance(fmt_type, str) or not fmt_type:
            raise InvalidColumnDescriptorError("Column format must have a string 'type'")
        options = raw.get("options")
        if options is not None and not isinstance(options, str):
            raise InvalidColumnDescriptorError("Column format 'options' must be a string")
        return ColumnFormat(type=fmt_type, options=options)
    raise InvalidColumnDescriptorError(
        f"Column format must be a string or mapping, got {type(raw).__name__}"
    )


def normalize_column(raw: Any, index: int) -> Column:
    """Coerce one column descriptor into a :class:`Column`.

    *index* is the positional index; an explicit ``index`` on the descriptor
    wins over it.
    """
    if isinstance(raw, Column):
        return raw
    if isinstance(raw, str):
        return Column(index=index, key=raw, heading=raw)
    if not isinstance(raw, Mapping):
        raise InvalidColumnDescriptorError(
            f"Unexpected value in columns list: {raw!r} ({type(raw).__name__})"
        )

    unknown = sorted(str(name) for name in raw if name not in _COLUMN_FIELDS)
    if unknown:
        logger.debug("Ignoring unrecognized column fields: %s", ", ".join(unknown))

    key = _optional_str(raw, "key")
    heading = _optional_str(raw, "heading")
    if key is None and heading is None:
        raise MissingColumnIdentifierError("Column descriptor is missing both 'key' and 'heading'")
    if heading is None:
        heading = key
    if key is None:
        key = heading

    explicit_index = raw.get("index")
    if explicit_index is not None:
        if isinstance(explicit_index, bool) or not isinstance(explicit_index, Integral):
            raise InvalidColumnDescriptorError(
                f"Column 'index' must be an integer, got {explicit_index!r}"
            )
        index = int(explicit_index)

    return Column(
        index=index,
        key=key,
        heading=heading,
        css_class=_optional_str(raw, "class"),
        format=normalize_format(raw.get("format")),
    )


def build_columns(raw_columns: Sequence[Any]) -> list[Column]:
    """Normalize, stable-sort by index, and re-index densely from zero."""
    if isinstance(raw_columns, (str, bytes, Mapping)) or not isinstance(
        raw_columns, Sequence
    ):
        raise InvalidColumnDescriptorError(
            f"Columns must be a list of descriptors, got {type(raw_columns).__name__}"
        )

    normalized = [normalize_column(raw, position) for position, raw in enumerate(raw_columns)]
    # sorted() is stable: equal or colliding indices keep declaration order.
    ordered = sorted(normalized, key=lambda column: column.index)
    columns = [
        column if column.index == position else replace(column, index=position)
        for position, column in enumerate(ordered)
    ]
    logger.debug("Built %d columns: %s", len(columns), [c.key for c in columns])
    return columns


def infer_column_keys(rows: Iterable[Mapping[str, Any]]) -> list[str]:
    """Return the union of row keys in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


# ── Rows ─────────────────────────────────────────────────────────


def require_row_sequence(data: Any) -> Sequence[Mapping[str, Any]]:
    """Check that *data* is a positional sequence of string-keyed mappings."""
    if isinstance(data, (str, bytes, Mapping)) or not isinstance(data, Sequence):
        raise InvalidDataShapeError(
            "Data must be a list of row mappings, "
            f"got {type(data).__name__}"
        )
    for position, row in enumerate(data):
        if not isinstance(row, Mapping):
            raise InvalidDataShapeError(
                f"Row {position} must be a mapping of column key to cell, "
                f"got {type(row).__name__}"
            )
        for key in row:
            if not isinstance(key, str):
                raise InvalidDataShapeError(
                    f"Row {position} has a non-string key: {key!r}"
                )
    return data


def normalize_row(raw: Mapping[str, Any]) -> Row:
    return {key: normalize_cell(value) for key, value in raw.items()}


def normalize_rows(data: Any) -> list[Row]:
    """Normalize every cell of every row, preserving row order."""
    rows = [normalize_row(raw) for raw in require_row_sequence(data)]
    logger.debug("Normalized %d rows", len(rows))
    return rows

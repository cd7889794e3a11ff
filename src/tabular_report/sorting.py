"""Compile declarative sort directives into one chained row comparator."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from functools import cmp_to_key
from typing import Any

from tabular_report.errors import InvalidSortDirectiveError
from tabular_report.models import Row, SortDirective

Comparator = Callable[[Row, Row], int]

DESCENDING_MARKER = "!"

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


# ── Directives ───────────────────────────────────────────────────


def parse_sort_directive(raw: Any) -> SortDirective:
    """Turn ``"Key"``, ``"!Key"`` or ``{"column": ..., "reverse": ...}`` into a directive."""
    if isinstance(raw, SortDirective):
        return raw

    if isinstance(raw, str):
        reverse = raw.startswith(DESCENDING_MARKER)
        column = raw[len(DESCENDING_MARKER):] if reverse else raw
        if not column:
            raise InvalidSortDirectiveError(f"Sort directive {raw!r} names no column")
        return SortDirective(column=column, reverse=reverse)

    if isinstance(raw, Mapping):
        column = raw.get("column")
        if not isinstance(column, str) or not column:
            raise InvalidSortDirectiveError(
                f"Sort directive {dict(raw)!r} needs a non-empty string 'column'"
            )
        reverse = raw.get("reverse", False)
        if reverse is None:
            reverse = False
        if not isinstance(reverse, bool):
            raise InvalidSortDirectiveError(
                f"Sort directive 'reverse' must be true or false, got {reverse!r}"
            )
        return SortDirective(column=column, reverse=reverse)

    raise InvalidSortDirectiveError(
        f"Sort directive must be a string or mapping, got {type(raw).__name__}"
    )


def parse_sort_directives(raw: Any) -> list[SortDirective]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Sequence):
        raise InvalidSortDirectiveError(
            f"Sort option must be a list of directives, got {type(raw).__name__}"
        )
    return [parse_sort_directive(item) for item in raw]


# ── Value comparison ─────────────────────────────────────────────


def _as_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str) and _NUMERIC_RE.match(value.strip()):
        return float(value)
    return None


def _sign(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def compare_values(a: Any, b: Any) -> int:
    """Generic three-way comparison used by every directive.

    Values are ranked ``None`` < numbers (including numeric strings) < the
    rest, which keeps the order total for mixed columns. Numbers compare
    numerically. Other values of one type use their natural order; values of
    different types group by type name. NaN is not a number here and sorts
    after every real number.
    """
    if a is None or b is None:
        return (a is not None) - (b is not None)

    num_a = _as_number(a)
    num_b = _as_number(b)
    if num_a is not None and num_b is not None:
        return _sign(num_a, num_b)
    if num_a is not None or num_b is not None:
        return -1 if num_a is not None else 1

    if type(a) is type(b):
        if isinstance(a, float):
            # both NaN
            return 0
        try:
            return _sign(a, b)
        except TypeError:
            return _sign(str(a), str(b))
    return _sign(type(a).__name__, type(b).__name__) or _sign(str(a), str(b))


# ── Comparator compilation ───────────────────────────────────────


def _directive_comparator(directive: SortDirective) -> Comparator:
    key = directive.column
    direction = -1 if directive.reverse else 1

    def _compare(row_a: Row, row_b: Row) -> int:
        cell_a = row_a.get(key)
        cell_b = row_b.get(key)
        value_a = None if cell_a is None else cell_a.effective_sort_value
        value_b = None if cell_b is None else cell_b.effective_sort_value
        return direction * compare_values(value_a, value_b)

    return _compare


def _chain(primary: Comparator, tie_break: Comparator) -> Comparator:
    def _compare(row_a: Row, row_b: Row) -> int:
        return primary(row_a, row_b) or tie_break(row_a, row_b)

    return _compare


def compile_sort(directives: Iterable[Any]) -> Comparator | None:
    """Fold *directives* right-to-left into a single comparator.

    Returns ``None`` when there is nothing to sort by.
    """
    parsed = [parse_sort_directive(raw) for raw in directives]
    if not parsed:
        return None

    comparator = _directive_comparator(parsed[-1])
    for directive in reversed(parsed[:-1]):
        comparator = _chain(_directive_comparator(directive), comparator)
    return comparator


def sort_rows(rows: Iterable[Row], directives: Iterable[Any]) -> list[Row]:
    """Return *rows* ordered by *directives* (stable; empty directives keep order)."""
    comparator = compile_sort(directives)
    if comparator is None:
        return list(rows)
    return sorted(rows, key=cmp_to_key(comparator))

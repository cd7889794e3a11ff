"""Tests for cell, column and row normalization."""

from __future__ import annotations

import pytest

from tabular_report.errors import (
    InvalidColumnDescriptorError,
    InvalidDataShapeError,
    MissingColumnIdentifierError,
    MissingValueError,
    ReportConfigError,
)
from tabular_report.models import Cell, Column, ColumnFormat
from tabular_report.pipeline import (
    build_columns,
    infer_column_keys,
    normalize_cell,
    normalize_column,
    normalize_format,
    normalize_rows,
)

# ── Cells ────────────────────────────────────────────────────────


@pytest.mark.parametrize("raw", ["Fry", 42, 3.5, None, True, ["a", "b"]])
def test_normalize_cell_wraps_non_mappings(raw: object) -> None:
    assert normalize_cell(raw) == Cell(value=raw)


def test_normalize_cell_keeps_value_and_sort_value() -> None:
    cell = normalize_cell({"value": "Jan 2", "sortValue": "2024-01-02"})

    assert cell == Cell(value="Jan 2", sort_value="2024-01-02")


def test_normalize_cell_accepts_null_value_field() -> None:
    assert normalize_cell({"value": None}) == Cell(value=None)


def test_normalize_cell_passes_cells_through() -> None:
    cell = Cell(value=1, sort_value=2)

    assert normalize_cell(cell) is cell


def test_normalize_cell_mapping_without_value_raises() -> None:
    with pytest.raises(MissingValueError, match="value"):
        normalize_cell({"sortValue": 1})


def test_errors_share_a_value_error_base() -> None:
    with pytest.raises(ReportConfigError):
        normalize_cell({})
    with pytest.raises(ValueError):
        normalize_cell({})


# ── Columns ──────────────────────────────────────────────────────


def test_normalize_column_from_string() -> None:
    assert normalize_column("Last", 2) == Column(index=2, key="Last", heading="Last")


def test_normalize_column_derives_heading_from_key_and_key_from_heading() -> None:
    assert normalize_column({"key": "first_name"}, 0) == Column(
        index=0, key="first_name", heading="first_name"
    )
    assert normalize_column({"heading": "First Name"}, 1) == Column(
        index=1, key="First Name", heading="First Name"
    )


def test_normalize_column_explicit_index_overrides_position() -> None:
    column = normalize_column({"key": "C", "index": 7}, 0)

    assert column.index == 7


def test_normalize_column_copies_class_and_expands_format_shorthand() -> None:
    column = normalize_column(
        {"key": "price", "heading": "Price", "class": "money", "format": "currency"}, 0
    )

    assert column.css_class == "money"
    assert column.format == ColumnFormat(type="currency")


def test_normalize_column_format_object_keeps_options() -> None:
    column = normalize_column({"key": "d", "format": {"type": "date", "options": "j/n/Y"}}, 0)

    assert column.format == ColumnFormat(type="date", options="j/n/Y")


def test_normalize_column_without_key_or_heading_raises() -> None:
    with pytest.raises(MissingColumnIdentifierError):
        normalize_column({}, 0)

    with pytest.raises(MissingColumnIdentifierError):
        normalize_column({"class": "x"}, 0)


@pytest.mark.parametrize("raw", [3, None, 1.5, ["a"]])
def test_normalize_column_rejects_other_shapes(raw: object) -> None:
    with pytest.raises(InvalidColumnDescriptorError):
        normalize_column(raw, 0)


@pytest.mark.parametrize(
    "raw",
    [
        {"key": 5},
        {"key": "a", "index": "1"},
        {"key": "a", "index": True},
        {"key": "a", "format": 3},
        {"key": "a", "format": {"options": "x"}},
        {"key": "a", "class": ["x"]},
    ],
)
def test_normalize_column_rejects_bad_field_types(raw: dict) -> None:
    with pytest.raises(InvalidColumnDescriptorError):
        normalize_column(raw, 0)


def test_normalize_format_passes_none_and_instances_through() -> None:
    fmt = ColumnFormat(type="percentage")

    assert normalize_format(None) is None
    assert normalize_format(fmt) is fmt


def test_build_columns_orders_by_explicit_index_and_reindexes() -> None:
    columns = build_columns(
        [
            {"key": "C", "index": 2},
            {"key": "A", "index": 0},
            {"key": "B", "index": 1},
        ]
    )

    assert [(c.index, c.key) for c in columns] == [(0, "A"), (1, "B"), (2, "C")]


def test_build_columns_breaks_index_ties_by_declaration_order() -> None:
    # "X" pins index 1, colliding with "B" at position 1.
    columns = build_columns(["A", "B", {"key": "X", "index": 1}, "D"])

    assert [c.key for c in columns] == ["A", "B", "X", "D"]
    assert [c.index for c in columns] == [0, 1, 2, 3]


def test_build_columns_densifies_sparse_indices() -> None:
    columns = build_columns([{"key": "late", "index": 40}, {"key": "early", "index": -5}])

    assert [(c.index, c.key) for c in columns] == [(0, "early"), (1, "late")]


def test_build_columns_is_idempotent() -> None:
    first = build_columns(
        ["Prefix", {"heading": "First", "format": "date"}, {"key": "Last", "index": 0}]
    )
    second = build_columns(first)
    third = build_columns([column.to_dict() for column in first])

    assert second == first
    assert third == first


def test_build_columns_does_not_mutate_input() -> None:
    raw = [{"key": "B", "index": 1}, {"key": "A", "index": 0}]
    snapshot = [dict(item) for item in raw]

    build_columns(raw)

    assert raw == snapshot


@pytest.mark.parametrize("raw", ["First", {"key": "First"}, 3])
def test_build_columns_requires_a_list(raw: object) -> None:
    with pytest.raises(InvalidColumnDescriptorError):
        build_columns(raw)  # type: ignore[arg-type]


def test_infer_column_keys_uses_first_seen_order() -> None:
    rows = [{"First": "Philip", "Last": "Fry"}, {"First": "Leela"}]

    assert infer_column_keys(rows) == ["First", "Last"]


def test_infer_column_keys_unions_keys_across_rows() -> None:
    rows = [{"b": 1}, {"a": 2, "b": 3}, {"c": 4, "a": 5}]

    assert infer_column_keys(rows) == ["b", "a", "c"]


# ── Rows ─────────────────────────────────────────────────────────


def test_normalize_rows_wraps_every_field_and_keeps_order() -> None:
    rows = normalize_rows(
        [
            {"First": "Philip", "Last": "Fry"},
            {"Prefix": "Dr.", "First": "Amy", "Last": {"value": "Wong", "sortValue": "w"}},
        ]
    )

    assert rows == [
        {"First": Cell("Philip"), "Last": Cell("Fry")},
        {"Prefix": Cell("Dr."), "First": Cell("Amy"), "Last": Cell("Wong", "w")},
    ]


def test_normalize_rows_tolerates_missing_fields() -> None:
    rows = normalize_rows([{"First": "Leela"}, {}])

    assert rows == [{"First": Cell("Leela")}, {}]


def test_normalize_rows_is_idempotent() -> None:
    once = normalize_rows([{"a": 1, "b": {"value": 2, "sortValue": 0}}])

    assert normalize_rows(once) == once


def test_normalize_rows_accepts_tuples() -> None:
    assert normalize_rows(({"a": 1},)) == [{"a": Cell(1)}]


@pytest.mark.parametrize("data", [{"0": {"a": 1}}, "rows", 5, None, b"[]"])
def test_normalize_rows_requires_a_positional_sequence(data: object) -> None:
    with pytest.raises(InvalidDataShapeError):
        normalize_rows(data)


def test_normalize_rows_rejects_non_mapping_rows() -> None:
    with pytest.raises(InvalidDataShapeError, match="Row 1"):
        normalize_rows([{"a": 1}, ["a", 1]])


def test_normalize_rows_rejects_non_string_keys() -> None:
    with pytest.raises(InvalidDataShapeError, match="non-string key"):
        normalize_rows([{1: "a"}])


def test_normalize_rows_propagates_missing_value() -> None:
    with pytest.raises(MissingValueError):
        normalize_rows([{"a": {"sortValue": 2}}])

"""Report model orchestration: configuration -> columns -> options -> data."""

from __future__ import annotations

import copy
import logging
from typing import Any

from tabular_report.config import RowListConfig, decode_configuration
from tabular_report.errors import EmptyColumnSetError, InvalidConfigurationError
from tabular_report.models import Column, ReportModel, Row, SortDirective
from tabular_report.pipeline import (
    build_columns,
    infer_column_keys,
    normalize_rows,
    require_row_sequence,
)
from tabular_report.sorting import parse_sort_directives, sort_rows

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _check_columns_for_rows(columns: list[Column] | None, rows: list[Row] | None) -> None:
    if rows and columns is not None and not columns:
        raise EmptyColumnSetError(f"No columns available to render {len(rows)} rows")


class ReportBuilder:
    """Stateful front end over the pure normalization pipeline.

    Each setter computes its full result before assigning it, so an invalid
    call leaves the builder as it was. Instances are not meant to be shared
    between concurrent builds.
    """

    def __init__(self, configuration: Any = None) -> None:
        self.title: str | None = None
        self._columns: list[Column] | None = None
        self._columns_inferred = False
        # Normalized rows in input order; ``_rows`` is their sorted view.
        self._source_rows: list[Row] | None = None
        self._rows: list[Row] | None = None
        self._sort: list[SortDirective] = []
        if configuration is not None:
            self.configure(configuration)

    # ── Configuration ────────────────────────────────────────────

    def configure(self, configuration: Any) -> ReportBuilder:
        """Apply a JSON string, row list or structured mapping.

        The stages run on a copy that replaces this builder's state only when
        all of them succeed.
        """
        config = decode_configuration(configuration)
        staged = copy.copy(self)

        if isinstance(config, RowListConfig):
            staged.set_data(config.rows)
        else:
            # Columns first: setting data infers columns only when none are known.
            if config.columns is not None:
                staged.set_columns(config.columns)
            staged.set_options(title=config.title, sort=config.sort)
            if config.data is not None:
                staged.set_data(config.data)

        self.__dict__.update(staged.__dict__)
        return self

    def set_columns(self, columns: Any) -> ReportBuilder:
        if columns is None:
            raise InvalidConfigurationError("Columns must be a list, not null")
        built = build_columns(columns)
        _check_columns_for_rows(built, self._rows)
        self._columns = built
        self._columns_inferred = False
        return self

    def set_options(self, *, title: Any = _UNSET, sort: Any = _UNSET) -> ReportBuilder:
        """Set the title and/or sort directives; omitted options stay as they are."""
        new_title = self.title if title is _UNSET else title
        if new_title is not None and not isinstance(new_title, str):
            raise InvalidConfigurationError(
                f"Title must be a string, got {type(new_title).__name__}"
            )
        new_sort = self._sort if sort is _UNSET else parse_sort_directives(sort)
        rows = self._rows
        if self._source_rows is not None and sort is not _UNSET:
            rows = sort_rows(self._source_rows, new_sort)

        self.title = new_title
        self._sort = list(new_sort)
        self._rows = rows
        return self

    def set_data(self, data: Any) -> ReportBuilder:
        """Replace the rows: infer columns if needed, normalize, then sort."""
        raw_rows = require_row_sequence(data)

        columns = self._columns
        inferred = self._columns_inferred
        if columns is None or inferred:
            keys = infer_column_keys(raw_rows)
            logger.debug("Inferred columns from data: %s", keys)
            columns = build_columns(keys)
            inferred = True

        rows = normalize_rows(raw_rows)
        if inferred and rows and not columns:
            raise EmptyColumnSetError("Rows were supplied but none of them has any fields")
        _check_columns_for_rows(columns, rows)
        ordered = sort_rows(rows, self._sort)

        self._columns = columns
        self._columns_inferred = inferred
        self._source_rows = rows
        self._rows = ordered
        return self

    # ── Output ───────────────────────────────────────────────────

    @property
    def columns(self) -> list[Column]:
        return list(self._columns or [])

    @property
    def rows(self) -> list[Row]:
        return list(self._rows or [])

    @property
    def sort(self) -> list[SortDirective]:
        return list(self._sort)

    @property
    def has_data(self) -> bool:
        return self._rows is not None

    def build(self) -> ReportModel:
        return ReportModel(
            title=self.title,
            columns=tuple(self._columns or ()),
            rows=tuple(dict(row) for row in self._rows or ()),
            sort=tuple(self._sort),
        )

    @property
    def model(self) -> ReportModel:
        return self.build()


def build_report(configuration: Any) -> ReportModel:
    """Build a :class:`ReportModel` from any accepted configuration shape."""
    return ReportBuilder(configuration).build()

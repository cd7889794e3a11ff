"""Configuration errors raised while building a report model."""

from __future__ import annotations


class ReportConfigError(ValueError):
    """Base class for every input/configuration error in the pipeline."""


class InvalidConfigurationError(ReportConfigError):
    """The configuration is not JSON text, a row list, or a mapping."""


class MissingValueError(ReportConfigError):
    """A cell-like mapping lacks a ``value`` field."""


class MissingColumnIdentifierError(ReportConfigError):
    """A column descriptor has neither ``key`` nor ``heading``."""


class InvalidColumnDescriptorError(ReportConfigError):
    """A column descriptor (or one of its fields) has an unusable shape."""


class InvalidDataShapeError(ReportConfigError):
    """The data collection is not a positional sequence of row mappings."""


class InvalidSortDirectiveError(ReportConfigError):
    """A sort directive is neither ``"Key"``/``"!Key"`` nor ``{column, reverse?}``."""


class EmptyColumnSetError(ReportConfigError):
    """Rows were supplied but no columns could be determined."""

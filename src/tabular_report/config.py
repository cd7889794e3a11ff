"""Decode report configurations into one explicit shape.

A configuration is one of:

* JSON text (``str`` or ``bytes``), decoded and then treated as below;
* a positional list of rows, with columns inferred from the rows;
* a mapping with optional ``columns``, ``data`` and ``options``
  (``options.title``, ``options.sort``).

Anything else is rejected with :class:`InvalidConfigurationError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from tabular_report.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

_STRUCTURED_FIELDS = ("columns", "data", "options")
_OPTION_FIELDS = ("title", "sort")


@dataclass(frozen=True)
class RowListConfig:
    rows: Sequence[Any]


@dataclass(frozen=True)
class StructuredConfig:
    columns: Any = None
    data: Any = None
    title: str | None = None
    sort: Any = None


ReportConfig = Union[RowListConfig, StructuredConfig]


def _decode_json(text: str | bytes) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidConfigurationError(f"Configuration is not valid JSON: {exc}") from exc


def _decode_options(options: Any) -> tuple[str | None, Any]:
    if options is None:
        return None, None
    if not isinstance(options, Mapping):
        raise InvalidConfigurationError(
            f"'options' must be a mapping, got {type(options).__name__}"
        )
    unknown = sorted(str(name) for name in options if name not in _OPTION_FIELDS)
    if unknown:
        logger.debug("Ignoring unrecognized options: %s", ", ".join(unknown))

    title = options.get("title")
    if title is not None and not isinstance(title, str):
        raise InvalidConfigurationError(
            f"'options.title' must be a string, got {type(title).__name__}"
        )
    return title, options.get("sort")


def decode_configuration(configuration: Any) -> ReportConfig:
    """Resolve *configuration* into a :data:`ReportConfig` variant."""
    if isinstance(configuration, (RowListConfig, StructuredConfig)):
        return configuration

    if isinstance(configuration, (str, bytes, bytearray)):
        decoded = _decode_json(configuration)
        if isinstance(decoded, (str, bytes)):
            raise InvalidConfigurationError("JSON configuration must be an array or an object")
        return decode_configuration(decoded)

    if isinstance(configuration, Mapping):
        unknown = sorted(str(name) for name in configuration if name not in _STRUCTURED_FIELDS)
        if unknown:
            logger.debug("Ignoring unrecognized configuration fields: %s", ", ".join(unknown))
        title, sort = _decode_options(configuration.get("options"))
        return StructuredConfig(
            columns=configuration.get("columns"),
            data=configuration.get("data"),
            title=title,
            sort=sort,
        )

    if isinstance(configuration, Sequence):
        return RowListConfig(rows=configuration)

    raise InvalidConfigurationError(
        "Configuration must be JSON text, a list of rows, or a mapping; "
        f"got {type(configuration).__name__}"
    )

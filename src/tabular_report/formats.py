"""Format functions and date-pattern translation for the renderers.

Column formats name a type (``"currency"``, ``"date"`` ...) and optional
options. Renderers receive their registry explicitly, so two renderers with
different registries can live side by side.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import Any

import pandas as pd

FormatFunction = Callable[[Any, "str | None"], str]

DEFAULT_DATE_PATTERN = "Y-m-d"

# PHP date() tokens -> strftime directives
_PHP_TO_STRFTIME: dict[str, str] = {
    "d": "%d",
    "j": "%-d",
    "D": "%a",
    "l": "%A",
    "m": "%m",
    "n": "%-m",
    "M": "%b",
    "F": "%B",
    "y": "%y",
    "Y": "%Y",
    "H": "%H",
    "G": "%-H",
    "h": "%I",
    "g": "%-I",
    "i": "%M",
    "s": "%S",
    "A": "%p",
}

# PHP date() tokens -> Excel number-format codes
_PHP_TO_EXCEL: dict[str, str] = {
    "j": "d",
    "d": "dd",
    "n": "m",
    "m": "mm",
    "y": "yy",
    "Y": "yyyy",
}


def _translate(pattern: str, table: dict[str, str], escape: Callable[[str], str]) -> str:
    out: list[str] = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            out.append(escape(next(chars, "")))
        elif ch in table:
            out.append(table[ch])
        else:
            out.append(escape(ch))
    return "".join(out)


def php_date_to_strftime(pattern: str) -> str:
    """Translate a PHP ``date()`` pattern such as ``"j/n/Y"`` to strftime."""
    return _translate(pattern, _PHP_TO_STRFTIME, lambda ch: "%%" if ch == "%" else ch)


def php_date_to_excel(pattern: str) -> str:
    """Translate a PHP ``date()`` pattern such as ``"j/n/Y"`` to an Excel format."""
    return _translate(pattern, _PHP_TO_EXCEL, lambda ch: ch if ch in "/-.:, " else f"\\{ch}")


def _format_with_strftime(value: datetime, directive: str) -> str:
    # "%-d" style directives are glibc-only; expand them by hand.
    out: list[str] = []
    i = 0
    while i < len(directive):
        if directive.startswith("%-", i) and i + 2 < len(directive):
            out.append(str(int(value.strftime("%" + directive[i + 2]))))
            i += 3
        elif directive.startswith("%%", i):
            out.append("%")
            i += 2
        elif directive[i] == "%" and i + 1 < len(directive):
            out.append(value.strftime(directive[i : i + 2]))
            i += 2
        else:
            out.append(directive[i])
            i += 1
    return "".join(out)


def to_datetime(value: Any) -> datetime | None:
    """Parse *value* into a naive ``datetime``; ``None`` when it is not a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if parsed is pd.NaT or pd.isna(parsed):
        return None
    dt = parsed.to_pydatetime()
    return dt.replace(tzinfo=None) if dt.tzinfo else dt


def to_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return None
    return None


def _plain_number(value: float) -> str:
    text = f"{round(value, 10):f}".rstrip("0").rstrip(".")
    return text or "0"


# ── Built-in formats ─────────────────────────────────────────────


def format_currency(value: Any, options: str | None = None) -> str:
    number = to_number(value)
    if number is None:
        return "" if value is None else str(value)
    sign = "-" if number < 0 else ""
    return f"{sign}${abs(number):,.2f}"


def format_date(value: Any, options: str | None = None) -> str:
    parsed = to_datetime(value)
    if parsed is None:
        return "" if value is None else str(value)
    return _format_with_strftime(parsed, php_date_to_strftime(options or DEFAULT_DATE_PATTERN))


def format_percentage(value: Any, options: str | None = None) -> str:
    number = to_number(value)
    if number is None:
        return "" if value is None else str(value)
    return f"{_plain_number(number * 100)}%"


def format_single_decimal(value: Any, options: str | None = None) -> str:
    number = to_number(value)
    if number is None:
        return "" if value is None else str(value)
    return f"{number:.1f}"


def default_format_functions() -> dict[str, FormatFunction]:
    """Return a fresh registry of the built-in format functions."""
    return {
        "currency": format_currency,
        "date": format_date,
        "percentage": format_percentage,
        "singleDecimal": format_single_decimal,
    }

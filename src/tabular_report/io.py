"""I/O helpers: load configuration/data files, write artifacts atomically."""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Literal, cast

import pandas as pd

from tabular_report.errors import InvalidConfigurationError

_EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")

# ── Loading ──────────────────────────────────────────────────────


def load_table(path: Path, delimiter: str | None = None) -> pd.DataFrame:
    """Load a CSV or Excel file and return a raw DataFrame of strings.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the extension is not supported, or CSV decoding/parsing fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        last_exc: Exception | None = None
        sep = delimiter if delimiter else None
        engine: Literal["c", "python"] = "c" if delimiter else "python"
        for encoding in ("utf-8-sig", "utf-8", "latin-1"):
            try:
                return pd.read_csv(
                    path,
                    dtype="string",
                    sep=sep,
                    engine=engine,
                    encoding=encoding,
                    encoding_errors="strict",
                    na_filter=True,
                    keep_default_na=True,
                )
            except (UnicodeDecodeError, pd.errors.ParserError) as exc:
                last_exc = exc
        raise ValueError(f"Could not read CSV {path} (decode or parse failed)") from last_exc

    if suffix in _EXCEL_SUFFIXES:
        read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
        return read_excel(path, engine="openpyxl", dtype="string")

    raise ValueError(f"Unsupported file type: {suffix!r}. Use .json, .csv, or .xlsx")


def frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert *df* into row mappings; missing cells are left out of the row."""
    columns = [str(name) for name in df.columns]
    rows: list[dict[str, Any]] = []
    for values in df.itertuples(index=False, name=None):
        row: dict[str, Any] = {}
        for name, val in zip(columns, values):
            if pd.isna(val):
                continue
            row[name] = val
        rows.append(row)
    return rows


def load_configuration(path: Path, delimiter: str | None = None) -> Any:
    """Load a report configuration.

    ``.json`` files hold a full configuration (row list or structured object);
    CSV and Excel files become a row list whose columns are their headers.
    """
    path = Path(path)
    if path.suffix.lower() == ".json":
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        text = path.read_text(encoding="utf-8-sig")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    return frame_to_rows(load_table(path, delimiter=delimiter))


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    # Cell values built through the library may be dates.
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps_json(data: Any) -> str:
    return json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    return write_text(path, dumps_json(data))


def write_text(path: Path, text: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)
    return path


# ── Manifest helpers ─────────────────────────────────────────────


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

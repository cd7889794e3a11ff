from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook

from tabular_report.builder import build_report
from tabular_report.errors import InvalidConfigurationError
from tabular_report.io import (
    dumps_json,
    frame_to_rows,
    load_configuration,
    load_table,
    sha256_file,
    utcnow_iso,
    write_json,
    write_text,
)


def test_load_table_csv_uses_sniffing_and_string_dtype(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("a;b\n1;2\n", encoding="utf-8")
    expected = pd.DataFrame({"a": ["1"], "b": ["2"]})

    calls: list[dict[str, object]] = []

    def _fake_read_csv(path: Path, **kwargs: object) -> pd.DataFrame:
        calls.append({"path": path, **kwargs})
        return expected

    monkeypatch.setattr(pd, "read_csv", _fake_read_csv)

    result = load_table(csv_path)

    assert result.equals(expected)
    assert len(calls) == 1
    assert calls[0]["dtype"] == "string"
    assert calls[0]["sep"] is None
    assert calls[0]["engine"] == "python"
    assert calls[0]["encoding"] == "utf-8-sig"


def test_load_table_csv_with_delimiter_uses_c_engine(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("a|b\n1|2\n", encoding="utf-8")
    calls: list[dict[str, object]] = []

    def _fake_read_csv(path: Path, **kwargs: object) -> pd.DataFrame:
        calls.append(dict(kwargs))
        return pd.DataFrame({"a": ["1"]})

    monkeypatch.setattr(pd, "read_csv", _fake_read_csv)

    load_table(csv_path, delimiter="|")

    assert calls[0]["sep"] == "|"
    assert calls[0]["engine"] == "c"


def test_load_table_csv_retries_encoding_on_unicode_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_bytes(b"x")
    expected = pd.DataFrame({"a": ["1"]})
    encodings: list[str] = []

    def _fake_read_csv(path: Path, **kwargs: object) -> pd.DataFrame:
        encoding = kwargs.get("encoding")
        assert isinstance(encoding, str)
        encodings.append(encoding)
        if encoding in {"utf-8-sig", "utf-8"}:
            raise UnicodeDecodeError("utf-8", b"x", 0, 1, "bad")
        return expected

    monkeypatch.setattr(pd, "read_csv", _fake_read_csv)

    assert load_table(csv_path).equals(expected)
    assert encodings == ["utf-8-sig", "utf-8", "latin-1"]


def test_load_table_csv_raises_value_error_when_every_attempt_fails(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("broken", encoding="utf-8")

    def _fake_read_csv(path: Path, **kwargs: object) -> pd.DataFrame:
        raise pd.errors.ParserError("bad")

    monkeypatch.setattr(pd, "read_csv", _fake_read_csv)

    with pytest.raises(ValueError, match="Could not read CSV"):
        load_table(csv_path)


def test_load_table_rejects_missing_and_unsupported_files(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_table(tmp_path / "nope.csv")

    txt = tmp_path / "data.txt"
    txt.write_text("a\n1\n")
    with pytest.raises(ValueError, match="Unsupported file type"):
        load_table(txt)


def test_frame_to_rows_drops_missing_cells() -> None:
    df = pd.DataFrame({"a": ["1", None], "b": [pd.NA, "2"]}, dtype="string")

    assert frame_to_rows(df) == [{"a": "1"}, {"b": "2"}]


def test_load_configuration_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "report.json"
    payload = {"columns": ["a"], "data": [{"a": 1}], "options": {"title": "T"}}
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert load_configuration(path) == payload


def test_load_configuration_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(InvalidConfigurationError, match="Invalid JSON"):
        load_configuration(path)


def test_load_configuration_csv_becomes_row_list(tmp_path: Path) -> None:
    path = tmp_path / "crew.csv"
    path.write_text("First,Last,Prefix\nPhilip,Fry,\nAmy,Wong,Dr.\n", encoding="utf-8")

    rows = load_configuration(path)

    assert rows == [
        {"First": "Philip", "Last": "Fry"},
        {"First": "Amy", "Last": "Wong", "Prefix": "Dr."},
    ]


def test_load_configuration_xlsx_becomes_row_list(tmp_path: Path) -> None:
    path = tmp_path / "crew.xlsx"
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    ws.append(["First", "Last"])
    ws.append(["Philip", "Fry"])
    ws.append(["Amy", None])
    wb.save(path)

    assert load_configuration(path) == [{"First": "Philip", "Last": "Fry"}, {"First": "Amy"}]


def test_write_json_is_sorted_and_atomic(tmp_path: Path) -> None:
    out = write_json(tmp_path / "nested" / "out.json", {"b": 1, "a": "x"})

    text = out.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert list(json.loads(text)) == ["a", "b"]
    assert not (tmp_path / "nested" / "out.json.tmp").exists()


def test_dumps_json_writes_date_cells_as_iso_text() -> None:
    model = build_report([{"when": datetime(2024, 1, 2, 3, 4, 5), "day": date(2024, 1, 2)}])

    payload = json.loads(dumps_json(model.to_dict()))

    assert payload["rows"][0]["when"] == {"value": "2024-01-02T03:04:05"}
    assert payload["rows"][0]["day"] == {"value": "2024-01-02"}


def test_write_json_rejects_unknown_objects(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        write_json(tmp_path / "bad.json", {"x": Path("x")})


def test_write_text_and_sha256(tmp_path: Path) -> None:
    path = write_text(tmp_path / "abc.txt", "abc")

    assert sha256_file(path) == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_utcnow_iso_has_no_microseconds() -> None:
    stamp = utcnow_iso()

    assert stamp.endswith("+00:00")
    assert "." not in stamp

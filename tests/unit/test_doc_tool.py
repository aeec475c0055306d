"""Tests for source file excerpts."""

import pytest
from openpyxl import Workbook

from src.services.doc_tool import (
    CSV_PREVIEW_LINES,
    UNKNOWN_SOURCE,
    get_source_excerpt,
    resolve_source_file,
    source_files_from_tables,
)


@pytest.fixture
def workbook_path(tmp_path):
    path = tmp_path / "code_reader_2025_06.xlsx"
    workbook = Workbook()
    summary = workbook.active
    summary.title = "Summary"
    summary.append(["metric", "value"])
    summary.append(["revenue", 1650000])
    brands = workbook.create_sheet("Brands")
    brands.append(["brand", "revenue"])
    brands.append([None, None])
    brands.append(["Innova", 500000])
    workbook.save(path)
    return path


def test_source_files_from_tables(tables):
    files = source_files_from_tables(tables)

    assert sorted(files) == [
        "code_reader_2024_06.xlsx",
        "code_reader_2025_05.xlsx",
        "code_reader_2025_06.xlsx",
    ]


def test_resolve_source_file():
    known = ["data/Code_Reader.xlsx", "data/brands.csv"]

    assert resolve_source_file(known, "data\\code_reader.xlsx") == "data/Code_Reader.xlsx"
    assert resolve_source_file(known, "elsewhere/BRANDS.CSV") == "data/brands.csv"
    assert resolve_source_file(known, "missing.csv") is None
    assert resolve_source_file(known, "") is None


def test_unknown_source_is_rejected(tmp_path):
    assert get_source_excerpt([], "secrets.txt", source_root=tmp_path) == {"ok": False, "error": UNKNOWN_SOURCE}


def test_csv_excerpt_is_capped(tmp_path):
    path = tmp_path / "brands.csv"
    lines = ["brand,revenue"] + [f"Brand{i},{i * 1000}" for i in range(30)]
    path.write_text("\n\n".join(lines), encoding="utf-8")

    result = get_source_excerpt(["brands.csv"], "brands.csv", source_root=tmp_path)

    assert result["ok"] is True
    assert result["sourceFile"] == "brands.csv"
    excerpt = result["excerpt"].splitlines()
    assert len(excerpt) == CSV_PREVIEW_LINES
    assert excerpt[0] == "brand,revenue"


def test_workbook_excerpt_by_section(workbook_path):
    result = get_source_excerpt([str(workbook_path)], workbook_path.name, section="Brands")

    assert result["ok"] is True
    assert result["excerpt"] == "Sheet: Brands\nbrand | revenue\nInnova | 500000"


def test_workbook_defaults_to_first_sheet(workbook_path):
    result = get_source_excerpt([str(workbook_path)], str(workbook_path), section="Nope")

    assert result["excerpt"].startswith("Sheet: Summary\nmetric | value")


def test_text_excerpt(tmp_path):
    (tmp_path / "notes.md").write_text("x" * 7000, encoding="utf-8")

    result = get_source_excerpt(["notes.md"], "notes.md", source_root=tmp_path)

    assert len(result["excerpt"]) == 6000


def test_missing_file_is_reported(tmp_path):
    result = get_source_excerpt(["gone.csv"], "gone.csv", source_root=tmp_path)

    assert result["ok"] is False
    assert result["error"]

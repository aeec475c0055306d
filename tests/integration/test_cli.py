"""Tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from src.config.settings import Settings
from src.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("src.main.setup_logger") as mock_setup:
        yield mock_setup


@pytest.fixture
def data_file(tmp_path, tables):
    path = tmp_path / "tables.json"
    path.write_text(json.dumps(tables), encoding="utf-8")
    return path


def _json_block(output):
    """The indented ChatResponse document; log lines never start with a bare brace."""
    lines = output.splitlines()
    start = lines.index("{")
    end = lines.index("}", start)
    return json.loads("\n".join(lines[start:end + 1]))


def test_ask_json(runner, data_file):
    result = runner.invoke(cli, [
        "ask", "How did Innova perform last month?",
        "--category", "code_reader_scanner",
        "--snapshot", "2025-06-01",
        "--data-file", str(data_file),
        "--json",
    ])

    assert result.exit_code == 0, result.output
    payload = _json_block(result.output)
    assert payload["intent"] == "brand_health"
    assert payload["answer"].startswith("INNOVA delivered $500K monthly revenue")
    assert payload["analysisTrace"][0]["step"] == "Build product index"
    assert "suggestedQuestions" in payload


def test_ask_renders_panel(runner, data_file):
    result = runner.invoke(cli, [
        "ask", "What is the top product by units?",
        "--category", "code_reader_scanner",
        "--snapshot", "2025-06-01",
        "--data-file", str(data_file),
    ])

    assert result.exit_code == 0, result.output
    assert "top_products" in result.output
    assert "Top MARKET SKU" in result.output


def test_ask_reports_unknown_snapshot(runner, data_file):
    result = runner.invoke(cli, [
        "ask", "How did we do?",
        "--category", "code_reader_scanner",
        "--snapshot", "2023-01-01",
        "--data-file", str(data_file),
        "--json",
    ])

    assert result.exit_code == 0
    assert _json_block(result.output)["warnings"] == [
        "Unknown snapshot date for category code_reader_scanner: 2023-01-01"
    ]


def test_ask_requires_data_file(runner):
    result = runner.invoke(cli, [
        "ask", "How did we do?", "--category", "code_reader_scanner", "--snapshot", "2025-06-01",
    ])

    assert result.exit_code == 2
    assert "No data file given" in result.output


def test_sql(runner, data_file):
    result = runner.invoke(cli, [
        "sql",
        "SELECT brand, revenue FROM brands_monthly WHERE snapshot_date = '2025-06-01' ORDER BY revenue DESC",
        "--limit", "2",
        "--data-file", str(data_file),
    ])

    assert result.exit_code == 0, result.output
    assert "2 of 4 rows" in result.output
    assert "Autel" in result.output
    assert "Topdon" not in result.output


def test_sql_rejects_mutations(runner, data_file):
    result = runner.invoke(cli, ["sql", "DELETE FROM brands_monthly", "--data-file", str(data_file)])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_sql_missing_data_file(runner, tmp_path):
    result = runner.invoke(cli, ["sql", "SELECT * FROM brands_monthly", "--data-file", str(tmp_path / "nope.json")])

    assert result.exit_code == 1
    assert "Data file not found" in result.output


def test_tables(runner, data_file):
    result = runner.invoke(cli, ["tables", "--data-file", str(data_file)])

    assert result.exit_code == 0, result.output
    assert "products_monthly" in result.output
    assert "brands_monthly" in result.output


def test_describe(runner):
    result = runner.invoke(cli, ["describe", "products_monthly"])

    assert result.exit_code == 0
    assert "snapshot_date" in result.output


def test_describe_unknown_table(runner):
    result = runner.invoke(cli, ["describe", "users"])

    assert result.exit_code == 1
    assert "Unknown table: users" in result.output


def test_validate_setup_without_data(runner):
    result = runner.invoke(cli, ["validate-setup"])

    assert result.exit_code == 1
    assert "DATA_FILE not set" in result.output


def test_validate_setup_with_data(runner, data_file):
    configured = Settings(_env_file=None, DATA_FILE=str(data_file))

    with patch("src.main.get_settings", return_value=configured):
        result = runner.invoke(cli, ["validate-setup"])

    assert result.exit_code == 0, result.output
    assert "Pass" in result.output

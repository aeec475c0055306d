"""
Table providers consumed by the chat core.

Ingestion and normalization of workbooks and CSV exports happen elsewhere;
a provider only hands over the curated tables keyed by the schema registry.
Every call returns a fresh snapshot that callers may treat as immutable.
"""

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from src.query.catalog import TABLE_NAMES, Row, Tables, empty_tables
from src.utils.logger import get_logger
from src.utils.retry import DataUnavailableError

logger = get_logger(__name__)


@runtime_checkable
class TableProvider(Protocol):
    """Source of curated tables."""

    def load_tables(self) -> Tables:
        ...


def normalize_tables(raw: dict[str, Any]) -> Tables:
    """
    Copy raw table data into a registry-shaped mapping.

    Unknown table names are dropped; missing registered tables are empty;
    rows that are not objects are skipped.
    """
    tables = empty_tables()
    for name, rows in raw.items():
        if name not in TABLE_NAMES:
            logger.warning("Ignoring unregistered table", table=name)
            continue
        if not isinstance(rows, list):
            logger.warning("Ignoring malformed table", table=name)
            continue
        tables[name] = [dict(row) for row in rows if isinstance(row, dict)]
    return tables


class InMemoryTableProvider:
    """Provider over tables already held in memory (tests, embedding callers)."""

    def __init__(self, tables: dict[str, list[Row]]):
        self._tables = normalize_tables(tables)

    def load_tables(self) -> Tables:
        return {name: [dict(row) for row in rows] for name, rows in self._tables.items()}


class JsonFileTableProvider:
    """
    Provider reading a JSON document of the form ``{"table_name": [rows...]}``.

    The file is re-read on every call so a TTL cache in front of it picks up
    new exports without a restart.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load_tables(self) -> Tables:
        if not self.path.exists():
            raise DataUnavailableError(f"Data file not found: {self.path}")
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise DataUnavailableError(f"Data file is not valid JSON: {self.path}") from e
        if not isinstance(raw, dict):
            raise DataUnavailableError(f"Data file must contain an object of tables: {self.path}")
        tables = normalize_tables(raw)
        logger.info(
            "Loaded tables",
            path=str(self.path),
            row_counts={name: len(rows) for name, rows in tables.items() if rows},
        )
        return tables

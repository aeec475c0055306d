"""Restricted query layer: table registry and read-only SQL interpreter."""

from src.query.catalog import (
    TABLE_NAMES,
    TABLE_SCHEMAS,
    ColumnSpec,
    Row,
    TableSchema,
    Tables,
    empty_tables,
    get_table_schema,
    list_table_schemas,
)
from src.query.sql_interpreter import (
    Condition,
    OrderBy,
    Select,
    SelectItem,
    describe_table,
    execute,
    list_tables,
    parse_sql,
    run_sql,
    tokenize,
)

__all__ = [
    "TABLE_NAMES",
    "TABLE_SCHEMAS",
    "ColumnSpec",
    "Row",
    "TableSchema",
    "Tables",
    "empty_tables",
    "get_table_schema",
    "list_table_schemas",
    "Condition",
    "OrderBy",
    "Select",
    "SelectItem",
    "describe_table",
    "execute",
    "list_tables",
    "parse_sql",
    "run_sql",
    "tokenize",
]

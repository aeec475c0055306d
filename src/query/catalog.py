"""
Schema registry of the curated in-memory tables.

The registry is declared once at import time and never mutated; the query
interpreter, the tool loop and the data providers all validate against it.
"""

from dataclasses import dataclass
from typing import Any, Literal, Optional

ColumnType = Literal["string", "number", "boolean", "json"]

Row = dict[str, Any]
Tables = dict[str, list[Row]]


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    type: ColumnType

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type}


@dataclass(frozen=True)
class TableSchema:
    """Declared shape of one queryable table."""
    name: str
    description: str
    columns: tuple[ColumnSpec, ...]

    @property
    def column_names(self) -> frozenset[str]:
        return frozenset(column.name for column in self.columns)


def _cols(*specs: tuple[str, ColumnType]) -> tuple[ColumnSpec, ...]:
    return tuple(ColumnSpec(name, kind) for name, kind in specs)


TABLE_SCHEMAS: tuple[TableSchema, ...] = (
    TableSchema(
        name="categories",
        description="Dashboard category list.",
        columns=_cols(("category_id", "string"), ("label", "string")),
    ),
    TableSchema(
        name="snapshots",
        description="Snapshot metadata per category and month.",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("snapshot_label", "string"),
            ("source_type", "string"),
            ("source_file", "string"),
        ),
    ),
    TableSchema(
        name="products_monthly",
        description="Normalized product-level monthly metrics.",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("asin", "string"),
            ("title", "string"),
            ("brand", "string"),
            ("type", "string"),
            ("price", "number"),
            ("revenue", "number"),
            ("units", "number"),
            ("review_count", "number"),
            ("rating", "number"),
            ("rank_revenue", "number"),
            ("rank_units", "number"),
            ("source_type", "string"),
            ("source_file", "string"),
        ),
    ),
    TableSchema(
        name="brands_monthly",
        description="Brand-level monthly metrics and ranks.",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("brand", "string"),
            ("revenue", "number"),
            ("units", "number"),
            ("share", "number"),
            ("rank_revenue", "number"),
            ("rank_units", "number"),
            ("source_type", "string"),
            ("source_file", "string"),
        ),
    ),
    TableSchema(
        name="market_monthly",
        description="Category-level market totals and quality counters.",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("revenue", "number"),
            ("units", "number"),
            ("asin_count", "number"),
            ("avg_price", "number"),
            ("rating_avg", "number"),
            ("brand_count", "number"),
            ("source_type", "string"),
            ("source_file", "string"),
        ),
    ),
    TableSchema(
        name="type_breakdowns",
        description="Type/segment scope metrics per month.",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("scope_key", "string"),
            ("scope_label", "string"),
            ("metric_set", "string"),
            ("avg_price", "number"),
            ("units", "number"),
            ("units_share", "number"),
            ("revenue", "number"),
            ("revenue_share", "number"),
            ("source_type", "string"),
            ("source_file", "string"),
        ),
    ),
    TableSchema(
        name="raw_rows_csv",
        description="Raw CSV rows from raw_data folders (flattened).",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("source_file", "string"),
            ("asin", "string"),
            ("title", "string"),
            ("brand", "string"),
            ("price", "number"),
            ("asin_sales", "number"),
            ("asin_revenue", "number"),
            ("review_count", "number"),
            ("rating", "number"),
            ("fulfillment", "string"),
            ("subcategory", "string"),
            ("url", "string"),
        ),
    ),
    TableSchema(
        name="code_reader_workbook_rows",
        description="Code Reader workbook-derived rows from parsed snapshots.",
        columns=_cols(
            ("category_id", "string"),
            ("snapshot_date", "string"),
            ("sheet_type", "string"),
            ("brand", "string"),
            ("asin", "string"),
            ("title", "string"),
            ("metric_name", "string"),
            ("metric_value", "number"),
            ("source_file", "string"),
        ),
    ),
)

_SCHEMAS_BY_NAME: dict[str, TableSchema] = {schema.name: schema for schema in TABLE_SCHEMAS}

TABLE_NAMES: tuple[str, ...] = tuple(schema.name for schema in TABLE_SCHEMAS)


def get_table_schema(name: str) -> Optional[TableSchema]:
    return _SCHEMAS_BY_NAME.get(name.strip().lower()) if name else None


def list_table_schemas() -> tuple[TableSchema, ...]:
    return TABLE_SCHEMAS


def empty_tables() -> Tables:
    """A table mapping with every registered table present and empty."""
    return {name: [] for name in TABLE_NAMES}

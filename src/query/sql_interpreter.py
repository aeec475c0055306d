"""
Restricted, read-only SQL interpreter over the curated in-memory tables.

Supported dialect (case-insensitive, single statement, no joins, no
subqueries)::

    SELECT <col [AS alias], ...|*> FROM <table>
        [WHERE <cond> (AND <cond>)*]
        [ORDER BY <col> [ASC|DESC]]
        [LIMIT <n>]

Conditions: ``IS NULL``, ``IS NOT NULL``, ``IN (...)``, ``LIKE '%text%'``
and ``= != <> > < >= <=``.

Key Features:
    - Allow-list enforcement as a token scan before any parsing
    - Tokenizer + recursive-descent parser producing a ``Select`` AST
    - Execution strictly WHERE -> ORDER BY -> projection -> LIMIT
    - Failures are returned as ``SqlResult(ok=False)``, never raised

Example:
    >>> result = run_sql(tables, "SELECT brand, revenue FROM brands_monthly LIMIT 3")
    >>> result.ok, result.row_count
    (True, 4)
"""

import math
import re
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Optional

from src.models.schemas import SqlResult
from src.query.catalog import Row, Tables, get_table_schema, list_table_schemas
from src.utils.logger import get_logger
from src.utils.retry import QueryRejectedError

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_LIMIT = 500
DEFAULT_LIMIT = 50

DISALLOWED_KEYWORDS = frozenset(
    {"insert", "update", "delete", "drop", "alter", "create", "truncate", "attach", "pragma"}
)
_DISALLOWED_WORD = re.compile(r"\b(" + "|".join(sorted(DISALLOWED_KEYWORDS)) + r")\b", re.IGNORECASE)

ERR_ONLY_SELECT = "Only SELECT queries are allowed."
ERR_MUTATION = "Mutation SQL is not allowed."
ERR_SYNTAX = "Unsupported SQL syntax. Use SELECT ... FROM ... WHERE ... ORDER BY ... LIMIT ..."

COMPARISON_OPERATORS = frozenset({"=", "!=", "<>", ">", "<", ">=", "<="})


# =============================================================================
# Tokenizer
# =============================================================================

@dataclass(frozen=True)
class Token:
    kind: str  # WORD, NUMBER, STRING, OP, PUNCT, OTHER
    value: str
    start: int
    end: int

    def is_word(self, *words: str) -> bool:
        return self.kind == "WORD" and self.value.lower() in words


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<number>\d+(?:\.\d+)?|\.\d+)
    |(?P<word>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>!=|<>|>=|<=|=|<|>)
    |(?P<punct>[(),*;.])
    |(?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)


def tokenize(text: str) -> list[Token]:
    """
    Split query text into tokens.

    Never fails: characters outside the dialect become ``OTHER`` tokens,
    which the parser only tolerates inside select expressions. An unterminated quote is a single ``OTHER``
    token spanning the rest of the text.
    """
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        if text[pos] in "'\"" and text.find(text[pos], pos + 1) == -1:
            tokens.append(Token("OTHER", text[pos:], pos, len(text)))
            break
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None:  # pragma: no cover - the pattern matches any char
            break
        kind = match.lastgroup or "other"
        if kind != "ws":
            raw = match.group()
            value = raw
            if kind == "string":
                quote = raw[0]
                value = raw[1:-1].replace(quote * 2, quote)
            tokens.append(Token(kind.upper(), value, match.start(), match.end()))
        pos = match.end()
    return tokens


def contains_disallowed_keyword(tokens: list[Token]) -> bool:
    """Allow-list scan over identifiers and string contents."""
    for token in tokens:
        if token.kind == "WORD" and token.value.lower() in DISALLOWED_KEYWORDS:
            return True
        if token.kind in ("STRING", "OTHER") and _DISALLOWED_WORD.search(token.value):
            return True
    return False


# =============================================================================
# AST
# =============================================================================

@dataclass(frozen=True)
class SelectItem:
    """A projected column; ``column`` is None for unsupported expressions."""
    alias: str
    column: Optional[str] = None


@dataclass(frozen=True)
class Condition:
    column: str
    operator: str  # IS NULL, IS NOT NULL, IN, LIKE, or a comparison operator
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = True


@dataclass(frozen=True)
class Select:
    """Parsed restricted SELECT statement."""
    table: str
    columns: Optional[tuple[SelectItem, ...]]  # None means *
    where: tuple[Condition, ...] = field(default_factory=tuple)
    order_by: Optional[OrderBy] = None
    limit: Optional[int] = None


# =============================================================================
# Parser
# =============================================================================

class _SyntaxError(Exception):
    pass


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise _SyntaxError("unexpected end of query")
        self.pos += 1
        return token

    def expect_word(self, *words: str) -> Token:
        token = self.advance()
        if not token.is_word(*words):
            raise _SyntaxError(f"expected {'/'.join(words)}")
        return token

    def expect_identifier(self) -> str:
        token = self.advance()
        if token.kind != "WORD":
            raise _SyntaxError("expected identifier")
        return token.value.lower()

    def parse(self) -> Select:
        self.expect_word("select")
        columns = self.parse_select_list()
        self.expect_word("from")
        table = self.expect_identifier()

        where: list[Condition] = []
        order_by: Optional[OrderBy] = None
        limit: Optional[int] = None

        token = self.peek()
        if token is not None and token.is_word("where"):
            self.advance()
            where.append(self.parse_condition())
            while (token := self.peek()) is not None and token.is_word("and"):
                self.advance()
                where.append(self.parse_condition())

        token = self.peek()
        if token is not None and token.is_word("order"):
            self.advance()
            self.expect_word("by")
            column = self.expect_identifier()
            descending = True
            token = self.peek()
            if token is not None and token.is_word("asc", "desc"):
                descending = self.advance().value.lower() == "desc"
            order_by = OrderBy(column=column, descending=descending)

        token = self.peek()
        if token is not None and token.is_word("limit"):
            self.advance()
            number = self.advance()
            if number.kind != "NUMBER" or "." in number.value:
                raise _SyntaxError("LIMIT expects an integer")
            limit = int(number.value)

        while (token := self.peek()) is not None and token.kind == "PUNCT" and token.value == ";":
            self.advance()
        if self.peek() is not None:
            raise _SyntaxError("unexpected trailing tokens")

        return Select(
            table=table,
            columns=columns,
            where=tuple(where),
            order_by=order_by,
            limit=limit,
        )

    def parse_select_list(self) -> Optional[tuple[SelectItem, ...]]:
        token = self.peek()
        if token is not None and token.kind == "PUNCT" and token.value == "*":
            self.advance()
            return None

        items: list[SelectItem] = []
        while True:
            items.append(self.parse_select_item())
            token = self.peek()
            if token is not None and token.kind == "PUNCT" and token.value == ",":
                self.advance()
                continue
            return tuple(items)

    def parse_select_item(self) -> SelectItem:
        start = self.pos
        depth = 0
        while True:
            token = self.peek()
            if token is None:
                raise _SyntaxError("missing FROM")
            if depth == 0 and (token.is_word("from") or (token.kind == "PUNCT" and token.value == ",")):
                break
            if token.kind == "OTHER" and token.value[0] in "'\"":
                raise _SyntaxError("unterminated string")
            if token.kind == "PUNCT" and token.value == "(":
                depth += 1
            elif token.kind == "PUNCT" and token.value == ")":
                depth -= 1
                if depth < 0:
                    raise _SyntaxError("unbalanced parentheses")
            self.advance()

        item_tokens = self.tokens[start:self.pos]
        if not item_tokens or depth != 0:
            raise _SyntaxError("empty select item")

        alias: Optional[str] = None
        if len(item_tokens) >= 3 and item_tokens[-2].is_word("as") and item_tokens[-1].kind == "WORD":
            alias = item_tokens[-1].value
            item_tokens = item_tokens[:-2]

        if len(item_tokens) == 1 and item_tokens[0].kind == "WORD":
            column = item_tokens[0].value.lower()
            return SelectItem(alias=alias or item_tokens[0].value, column=column)

        expression = self.text[item_tokens[0].start:item_tokens[-1].end]
        return SelectItem(alias=alias or expression, column=None)

    def parse_condition(self) -> Condition:
        column = self.expect_identifier()
        token = self.advance()

        if token.is_word("is"):
            nxt = self.advance()
            if nxt.is_word("null"):
                return Condition(column, "IS NULL")
            if nxt.is_word("not"):
                self.expect_word("null")
                return Condition(column, "IS NOT NULL")
            raise _SyntaxError("expected NULL")

        if token.is_word("in"):
            opener = self.advance()
            if opener.kind != "PUNCT" or opener.value != "(":
                raise _SyntaxError("expected (")
            values = [self.parse_literal()]
            while True:
                nxt = self.advance()
                if nxt.kind == "PUNCT" and nxt.value == ",":
                    values.append(self.parse_literal())
                    continue
                if nxt.kind == "PUNCT" and nxt.value == ")":
                    break
                raise _SyntaxError("expected , or )")
            return Condition(column, "IN", tuple(values))

        if token.is_word("like"):
            return Condition(column, "LIKE", (self.parse_literal(),))

        if token.kind == "OP" and token.value in COMPARISON_OPERATORS:
            operator = "!=" if token.value == "<>" else token.value
            return Condition(column, operator, (self.parse_literal(),))

        raise _SyntaxError("unsupported condition")

    def parse_literal(self) -> str:
        token = self.advance()
        if token.kind in ("STRING", "NUMBER"):
            return token.value
        if token.kind == "WORD" and not token.is_word("and", "or", "select", "from"):
            return token.value
        if token.kind == "OTHER" and token.value == "-":
            number = self.advance()
            if number.kind != "NUMBER":
                raise _SyntaxError("expected number")
            return "-" + number.value
        raise _SyntaxError("expected literal")


def parse_sql(query: str) -> Select:
    """
    Parse a restricted SELECT.

    Raises:
        QueryRejectedError: For disallowed statements, bad grammar, unknown
            tables or unknown columns.
    """
    text = query.strip()
    if not re.match(r"select\s", text, re.IGNORECASE):
        raise QueryRejectedError(ERR_ONLY_SELECT)

    tokens = tokenize(text)
    if contains_disallowed_keyword(tokens):
        raise QueryRejectedError(ERR_MUTATION)

    try:
        statement = _Parser(text, tokens).parse()
    except _SyntaxError as e:
        raise QueryRejectedError(ERR_SYNTAX, details={"reason": str(e)}) from e

    schema = get_table_schema(statement.table)
    if schema is None:
        raise QueryRejectedError(f"Unknown table: {statement.table}")

    referenced = [condition.column for condition in statement.where]
    if statement.order_by is not None:
        referenced.append(statement.order_by.column)
    if statement.columns is not None:
        referenced.extend(item.column for item in statement.columns if item.column is not None)
    for column in referenced:
        if column not in schema.column_names:
            raise QueryRejectedError(f"Unknown column: {column}")

    return statement


# =============================================================================
# Execution
# =============================================================================

def as_number(value: Any) -> Optional[float]:
    """Numeric view of a cell or literal; None and empty strings are not numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def cell_text(value: Any) -> str:
    """String projection of a cell used by IN, LIKE and string comparison."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _compare(left: Any, right: Any) -> int:
    left_number, right_number = as_number(left), as_number(right)
    if left_number is not None and right_number is not None:
        return (left_number > right_number) - (left_number < right_number)
    left_text, right_text = cell_text(left).lower(), cell_text(right).lower()
    return (left_text > right_text) - (left_text < right_text)


def _is_null(value: Any) -> bool:
    return value is None or value == ""


def evaluate_condition(row: Row, condition: Condition) -> bool:
    value = row.get(condition.column)
    op = condition.operator

    if op == "IS NULL":
        return _is_null(value)
    if op == "IS NOT NULL":
        return not _is_null(value)
    if op == "IN":
        return cell_text(value).lower() in {item.lower() for item in condition.values}
    if op == "LIKE":
        pattern = condition.values[0].lower().replace("%", "")
        return pattern in cell_text(value).lower()

    result = _compare(value, condition.values[0])
    return {
        "=": result == 0,
        "!=": result != 0,
        ">": result > 0,
        "<": result < 0,
        ">=": result >= 0,
        "<=": result <= 0,
    }[op]


def _order_rows(rows: list[Row], order_by: OrderBy) -> list[Row]:
    # Null cells always sort last, in either direction.
    present = [row for row in rows if not _is_null(row.get(order_by.column))]
    missing = [row for row in rows if _is_null(row.get(order_by.column))]
    present.sort(
        key=cmp_to_key(lambda a, b: _compare(a.get(order_by.column), b.get(order_by.column))),
        reverse=order_by.descending,
    )
    return present + missing


def _project(rows: list[Row], columns: Optional[tuple[SelectItem, ...]]) -> list[Row]:
    if columns is None:
        return [dict(row) for row in rows]
    return [
        {item.alias: (row.get(item.column) if item.column is not None else None) for item in columns}
        for row in rows
    ]


def effective_limit(requested: Optional[int], parsed: Optional[int]) -> int:
    """Caller limit wins over the query's LIMIT; result clamped to [1, 500]."""
    chosen = requested if requested is not None else parsed
    if chosen is None:
        chosen = DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(chosen)))


def execute(tables: Tables, statement: Select, limit: Optional[int] = None) -> SqlResult:
    """Run a parsed statement: WHERE, ORDER BY, projection, then LIMIT."""
    rows = list(tables.get(statement.table, []))
    if statement.where:
        rows = [row for row in rows if all(evaluate_condition(row, c) for c in statement.where)]
    if statement.order_by is not None:
        rows = _order_rows(rows, statement.order_by)
    projected = _project(rows, statement.columns)
    cap = effective_limit(limit, statement.limit)
    return SqlResult(ok=True, rows=projected[:cap], row_count=len(projected))


# =============================================================================
# Tool Surface
# =============================================================================

def run_sql(tables: Tables, query: str, limit: Optional[int] = None) -> SqlResult:
    """Parse and execute a restricted query; failures come back as data."""
    try:
        statement = parse_sql(query or "")
    except QueryRejectedError as e:
        logger.info("SQL rejected", error=e.message, **e.details)
        return SqlResult(ok=False, rows=[], row_count=0, error=e.message)
    result = execute(tables, statement, limit)
    logger.debug("SQL executed", table=statement.table, row_count=result.row_count)
    return result


def list_tables(tables: Tables) -> list[dict[str, Any]]:
    return [
        {
            "table": schema.name,
            "description": schema.description,
            "row_count": len(tables.get(schema.name, [])),
        }
        for schema in list_table_schemas()
    ]


def describe_table(table: str) -> dict[str, Any]:
    schema = get_table_schema(table or "")
    if schema is None:
        return {"ok": False, "error": f"Unknown table: {table}"}
    return {
        "ok": True,
        "table": schema.name,
        "description": schema.description,
        "columns": [column.to_dict() for column in schema.columns],
    }

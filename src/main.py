"""
Competitive Intelligence Chat - CLI Entry Point.
Production-grade CLI using Click and Rich.
"""

import sys
import asyncio
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.config.settings import get_settings
from src.data.providers import JsonFileTableProvider
from src.models.schemas import ChatResponse
from src.pipeline.orchestrator import ChatOrchestrator
from src.query.sql_interpreter import describe_table, list_tables, run_sql
from src.utils.logger import setup_logging
from src.utils.retry import DataUnavailableError

# Initialize Rich Console
console = Console()

SEVERITY_STYLES = {"risk": "red", "watch": "yellow", "info": "cyan"}

# =============================================================================
# Helper Functions
# =============================================================================

def async_command(f):
    """Decorator to run async click commands."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def setup_logger(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    settings = get_settings()
    setup_logging(level="DEBUG" if verbose else "WARNING", json_format=settings.log_json)


def make_provider(data_file: Optional[str]) -> JsonFileTableProvider:
    """Table provider from --data-file or DATA_FILE."""
    path = data_file or get_settings().data_file
    if not path:
        raise click.UsageError("No data file given. Pass --data-file or set DATA_FILE.")
    return JsonFileTableProvider(Path(path))


def fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(1)


def render_response(response: ChatResponse) -> None:
    """Print a ChatResponse as panels and tables."""
    title = f"[bold blue]{response.intent}[/bold blue]"
    if response.confidence is not None:
        title += f"  confidence {response.confidence:.2f}"
    console.print(Panel(response.answer, title=title))

    for bullet in response.bullets:
        console.print(f"  • {bullet}")

    if response.evidence:
        table = Table(title="Evidence", show_header=False)
        for item in response.evidence:
            table.add_row(item.label, item.value)
        console.print(table)

    for card in response.proactive:
        style = SEVERITY_STYLES.get(str(card.severity), "cyan")
        console.print(f"[{style}]▲ {card.title}[/{style}]: {card.summary}")

    for warning in response.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if response.suggested_questions:
        console.print("\n[bold]Try next:[/bold]")
        for question in response.suggested_questions:
            console.print(f"  - {question}")


# =============================================================================
# CLI Group
# =============================================================================

@click.group()
@click.version_option(version="1.0.0")
def cli():
    """Competitive Intelligence Chat"""
    pass

# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.argument('message')
@click.option('--category', 'category_id', required=True, help='Category id (e.g. code_reader_scanner)')
@click.option('--snapshot', 'snapshot_date', required=True, help='Snapshot date (YYYY-MM-DD)')
@click.option('--brand', 'target_brand', default=None, help='Target brand context')
@click.option('--data-file', default=None, help='JSON table dump (defaults to DATA_FILE)')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw ChatResponse JSON')
@click.option('--verbose', is_flag=True, help='Detailed logging')
@async_command
async def ask(
    message: str,
    category_id: str,
    snapshot_date: str,
    target_brand: Optional[str],
    data_file: Optional[str],
    as_json: bool,
    verbose: bool,
):
    """
    Ask an analytics question about one category snapshot.

    MESSAGE: The question (e.g. "How did we do this month?")
    """
    setup_logger(verbose)
    provider = make_provider(data_file)

    async with ChatOrchestrator(provider=provider, settings=get_settings()) as orchestrator:
        response = await orchestrator.answer(message, category_id, snapshot_date, target_brand)

    if as_json:
        click.echo(response.to_json(by_alias=True))
    else:
        render_response(response)


@cli.command()
@click.argument('query')
@click.option('--limit', type=int, default=None, help='Row cap (max 500)')
@click.option('--data-file', default=None, help='JSON table dump (defaults to DATA_FILE)')
def sql(query: str, limit: Optional[int], data_file: Optional[str]):
    """
    Run a restricted read-only SELECT against the tables.

    QUERY: e.g. "SELECT brand, revenue FROM brands_monthly ORDER BY revenue DESC LIMIT 5"
    """
    setup_logger(False)
    try:
        tables = make_provider(data_file).load_tables()
    except DataUnavailableError as e:
        fail(e.message)

    result = run_sql(tables, query, limit)
    if not result.ok:
        fail(result.error or "Query failed.")

    table = Table(title=f"{len(result.rows)} of {result.row_count} rows", show_header=True, header_style="bold magenta")
    columns = list(result.rows[0].keys()) if result.rows else []
    for column in columns:
        table.add_column(column)
    for row in result.rows:
        table.add_row(*("" if row.get(column) is None else str(row.get(column)) for column in columns))
    console.print(table)


@cli.command()
@click.option('--data-file', default=None, help='JSON table dump (defaults to DATA_FILE)')
def tables(data_file: Optional[str]):
    """List queryable tables with row counts."""
    setup_logger(False)
    try:
        loaded = make_provider(data_file).load_tables()
    except DataUnavailableError as e:
        fail(e.message)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    table.add_column("Description")
    for row in list_tables(loaded):
        table.add_row(row["table"], str(row["row_count"]), row["description"])
    console.print(table)


@cli.command()
@click.argument('table_name')
def describe(table_name: str):
    """
    Show the columns of one table.

    TABLE_NAME: e.g. products_monthly
    """
    schema = describe_table(table_name)
    if not schema.get("ok"):
        fail(schema.get("error", f"Unknown table: {table_name}"))

    table = Table(title=schema["table"], caption=schema["description"], show_header=True, header_style="bold magenta")
    table.add_column("Column")
    table.add_column("Type")
    for column in schema["columns"]:
        table.add_row(column["name"], column["type"])
    console.print(table)


@cli.command()
def validate_setup():
    """Check API key, data file and configuration."""
    console.print("[bold]Validating Setup...[/bold]")

    try:
        settings = get_settings()

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Check")
        table.add_column("Status")
        table.add_column("Details")

        # Check Anthropic
        if settings.has_llm():
            key = settings.anthropic_api_key.get_secret_value()
            status = "[green]Pass[/green]" if key.startswith("sk-") else "[red]Fail[/red]"
            table.add_row("Anthropic API Key", status, f"configured ({len(key)} chars)")
        else:
            table.add_row("Anthropic API Key", "[blue]Info[/blue]", "not set, deterministic answers only")

        # Check data
        data_file = settings.data_file
        has_data = data_file is not None and Path(data_file).exists()
        status = "[green]Pass[/green]" if has_data else "[red]Fail[/red]"
        table.add_row("Data File", status, str(data_file) if data_file else "DATA_FILE not set")

        # Configuration
        table.add_row("Source Root", "[blue]Info[/blue]", str(settings.source_root))
        table.add_row("Own Brands", "[blue]Info[/blue]", ", ".join(settings.own_brand_keys()))
        table.add_row("LLM Only Mode", "[blue]Info[/blue]", str(settings.llm_only_mode))
        table.add_row("Environment", "[blue]Info[/blue]", settings.app_env)

        console.print(table)

        if not has_data:
            console.print("\n[yellow]Warning: No readable data file configured. Set DATA_FILE.[/yellow]")
            sys.exit(1)

    except (ValueError, OSError) as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(1)

if __name__ == "__main__":
    cli()

"""
Command Line Interface for clinsql.
"""

import click
import json
import logging
from rich.console import Console
from rich.table import Table
from rich.syntax import Syntax

from .text2sql import Text2SQL
from .config import settings
from .models import PipelineOutcome


logger = logging.getLogger(__name__)

# Rich console
console = Console()


def render_outcome(outcome: PipelineOutcome, row_limit: int = None) -> None:
    """Print SQL, error and rows for one answered question."""
    if row_limit is None:
        row_limit = settings.display_row_limit

    if outcome.final_sql:
        title = "Generated SQL (after fix):" if outcome.repaired else "Generated SQL:"
        console.print(f"\n[bold green]{title}[/bold green]")
        console.print(Syntax(outcome.final_sql, "sql", theme="monokai", line_numbers=True))

    if outcome.error_message:
        console.print(f"\n[bold red]Error:[/bold red] {outcome.error_message}")
        return

    if not outcome.rows:
        console.print("\nNo rows.")
        return

    columns = list(outcome.rows[0].keys())
    table = Table(show_header=True, header_style="bold magenta")
    for col in columns:
        table.add_column(col)
    for row in outcome.rows[:row_limit]:
        table.add_row(*[str(row.get(col)) for col in columns])

    console.print(table)
    console.print(f"[dim]Showing {min(len(outcome.rows), row_limit)} row(s).[/dim]")


@click.group()
@click.option('--db-url', envvar='DATABASE_URL', help='Database connection URL')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, db_url, verbose):
    """clinsql: ask questions about the clinical schema in plain language."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    ctx.ensure_object(dict)
    ctx.obj['db_url'] = db_url

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.argument('question')
@click.option('--json', 'as_json', is_flag=True, help='Print the outcome as JSON')
@click.pass_context
def ask(ctx, question, as_json):
    """Answer a natural language question."""
    text2sql = Text2SQL(database_url=ctx.obj['db_url'])
    outcome = text2sql.answer(question)

    if as_json:
        click.echo(outcome.model_dump_json(indent=2))
    else:
        console.print(f"[bold blue]Question:[/bold blue] {question}")
        render_outcome(outcome)

    if outcome.error_message:
        ctx.exit(1)


@cli.command()
@click.pass_context
def schema(ctx):
    """Show the live table/column whitelist."""
    text2sql = Text2SQL(database_url=ctx.obj['db_url'])

    try:
        whitelist = text2sql.get_schema_info()
    except Exception as e:
        console.print(f"[bold red]✗[/bold red] Error getting schema: {e}")
        raise click.ClickException(str(e))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table Name")
    table.add_column("Columns")
    for t in whitelist:
        table.add_row(t.table, ", ".join(t.columns))

    console.print(table)


@cli.command()
@click.option('--force', is_flag=True, help='Force rebuild even if exists')
@click.option('--business-rules', type=click.Path(exists=True), help='JSON file with business rules')
@click.pass_context
def build(ctx, force, business_rules):
    """Build the schema documentation used for retrieval."""
    console.print("[bold green]Building knowledge base...[/bold green]")

    rules = None
    if business_rules:
        with open(business_rules, 'r', encoding='utf-8') as f:
            rules = json.load(f)

    text2sql = Text2SQL(database_url=ctx.obj['db_url'])

    try:
        stored = text2sql.build_knowledge_base(business_rules=rules, force_rebuild=force)
    except Exception as e:
        console.print(f"[bold red]✗[/bold red] Error building knowledge base: {e}")
        raise click.ClickException(str(e))

    if stored:
        console.print(f"[bold green]✓[/bold green] Stored {stored} documentation snippets")
    else:
        console.print("[yellow]Knowledge base already exists; use --force to rebuild[/yellow]")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show pipeline configuration."""
    text2sql = Text2SQL(database_url=ctx.obj['db_url'])

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in text2sql.get_stats().items():
        table.add_row(key, str(value))

    console.print(table)


@cli.command()
@click.pass_context
def interactive(ctx):
    """Start interactive mode."""
    console.print("[bold green]Welcome to clinsql interactive mode![/bold green]")
    console.print("Type 'exit' or 'quit' to exit\n")

    text2sql = Text2SQL(database_url=ctx.obj['db_url'])

    while True:
        try:
            question = click.prompt("\nAsk", type=str)
        except (KeyboardInterrupt, click.Abort):
            console.print("\n[bold green]Goodbye![/bold green]")
            break

        if question.lower() in ['exit', 'quit']:
            console.print("[bold green]Goodbye![/bold green]")
            break

        render_outcome(text2sql.answer(question))


def main():
    """Entry point for the CLI."""
    cli()

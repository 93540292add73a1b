"""Quote commands: show, add, remove, categories, filter, import, export."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from ._common import HOME, console, load_app, logger, quote_markup
from ..browse import EMPTY_MESSAGE
from ..errors import MalformedImport, PersistenceError
from ..store import ALL_CATEGORIES


def register_quote_commands(main: click.Group) -> None:
    """Register the quote browsing and editing commands."""

    @main.command("show")
    @click.option("--home", default=HOME, type=click.Path())
    @click.option("--count", "-n", type=click.IntRange(min=1), default=1, show_default=True, help="How many quotes to show.")
    def show(home, count):
        """Show a random quote from the current category filter."""
        app = load_app(home)
        quote = app.browser.current()
        if quote is None:
            console.print(f"[yellow]{EMPTY_MESSAGE}[/]")
            return

        console.print(f"\n  {quote_markup(quote)}")
        for _ in range(count - 1):
            quote = app.browser.next()
            console.print(f"  {quote_markup(quote)}")
        console.print()

    @main.command("add")
    @click.argument("text")
    @click.option("--home", default=HOME, type=click.Path())
    @click.option("--category", "-c", default=None, help="Category (defaults to config).")
    @click.option("--no-push", is_flag=True, help="Do not post the quote to the server.")
    def add(text, home, category, no_push):
        """Add a quote locally and post it to the server."""
        app = load_app(home)
        try:
            outcome = asyncio.run(
                app.engine.add_quote(text, category=category, push=not no_push)
            )
        except ValueError:
            console.print("[bold red]Please enter a valid quote![/]")
            sys.exit(1)
        except PersistenceError as exc:
            console.print(f"[bold red]Quote added but not saved:[/] {escape(str(exc))}")
            sys.exit(1)

        console.print(f"[green]New quote added successfully![/] {quote_markup(outcome.quote)}")
        if outcome.error:
            console.print(f"  [yellow]Not posted to server:[/] [dim]{escape(outcome.error)}[/]")
        elif outcome.submitted:
            console.print("  [dim]Posted to server.[/]")

    @main.command("remove")
    @click.argument("text")
    @click.option("--home", default=HOME, type=click.Path())
    def remove(text, home):
        """Delete a quote by its text (case-insensitive)."""
        app = load_app(home)
        try:
            removed = app.store.remove(text)
        except PersistenceError as exc:
            console.print(f"[bold red]Removed but not saved:[/] {escape(str(exc))}")
            sys.exit(1)
        if not removed:
            console.print(f"[yellow]No quote matching[/] {escape(text)!r}")
            sys.exit(1)
        console.print("[green]Quote removed.[/]")

    @main.command("categories")
    @click.option("--home", default=HOME, type=click.Path())
    def categories(home):
        """List categories with their quote counts."""
        app = load_app(home)
        active = app.browser.category_filter

        table = Table(title="Categories")
        table.add_column("Category", style="cyan")
        table.add_column("Quotes", justify="right")
        table.add_column("Filter", justify="center")
        for name in app.store.categories():
            marker = "[green]*[/]" if name == active else ""
            table.add_row(escape(name), str(len(app.store.filter(name))), marker)
        console.print(table)
        if active == ALL_CATEGORIES:
            console.print("  [dim]Showing all categories.[/]")

    @main.command("filter")
    @click.argument("category", required=False)
    @click.option("--home", default=HOME, type=click.Path())
    def filter_cmd(category, home):
        """Show or set the category filter ('all' clears it)."""
        app = load_app(home)
        if category is None:
            console.print(f"Filter: [cyan]{escape(app.browser.category_filter)}[/]")
            return

        if category != ALL_CATEGORIES and category not in app.store.categories():
            console.print(f"[yellow]Unknown category[/] {escape(category)!r}")
            sys.exit(1)
        value = app.browser.set_filter(category)
        console.print(f"Filter set to [cyan]{escape(value)}[/]")

    @main.command("import")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--home", default=HOME, type=click.Path())
    def import_cmd(path, home):
        """Import quotes from a JSON file (all or nothing)."""
        app = load_app(home)
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            console.print(f"[bold red]Invalid JSON file:[/] {escape(str(exc))}")
            sys.exit(1)

        try:
            report = app.store.import_records(payload)
        except MalformedImport as exc:
            console.print(f"[bold red]Import rejected:[/] {escape(str(exc))}")
            sys.exit(1)
        except PersistenceError as exc:
            console.print(f"[bold red]Imported but not saved:[/] {escape(str(exc))}")
            sys.exit(1)

        logger.info("Imported %s", path)
        console.print(
            f"[green]Quotes imported successfully![/] "
            f"[dim]{report.added} added, {report.updated} updated, "
            f"{report.unchanged} unchanged[/]"
        )

    @main.command("export")
    @click.argument("path", type=click.Path(dir_okay=False), default="quotes.json")
    @click.option("--home", default=HOME, type=click.Path())
    def export_cmd(path, home):
        """Export every quote to a JSON file."""
        app = load_app(home)
        records = app.store.export_records()
        Path(path).write_text(
            json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        console.print(f"[green]Exported {len(records)} quote(s)[/] to {escape(path)}")

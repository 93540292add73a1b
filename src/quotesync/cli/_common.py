"""Shared utilities for all CLI command modules.

Provides the Rich console instance, app loading, and the console
notifier that turns sync outcomes into one line of feedback each.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .. import QUOTESYNC_HOME
from ..app import QuoteSyncApp, get_app, setup_logging
from ..engine import SyncListener
from ..models import Conflict, Quote, SyncResult

console = Console()
logger = logging.getLogger("quotesync.cli")

HOME = QUOTESYNC_HOME


def load_app(home: str) -> QuoteSyncApp:
    """Build the app for a --home value and attach file logging."""
    home_path = Path(home).expanduser()
    home_path.mkdir(parents=True, exist_ok=True)
    setup_logging(home_path)
    return get_app(home_path)


def quote_markup(quote: Quote) -> str:
    """Rich markup for a quote line."""
    return f"[italic]\"{escape(quote.text)}\"[/] [dim]—[/] [cyan]\\[{escape(quote.category)}][/]"


def conflict_markup(conflict: Conflict) -> str:
    """Rich markup for a conflict line."""
    return (
        f"[bold]{escape(conflict.key)}[/]: "
        f"local [cyan]{escape(conflict.local_category)}[/] -> "
        f"remote [magenta]{escape(conflict.remote_category)}[/]"
    )


class ConsoleNotifier(SyncListener):
    """Prints one notification per sync pass."""

    def on_sync_result(self, result: SyncResult) -> None:
        console.print(
            f"  [green]Quotes synced with server![/] [dim]({result.summary()})[/]"
        )
        for quote in result.added:
            console.print(f"    [green]+[/] {quote_markup(quote)}")
        for conflict in result.conflicts:
            console.print(f"    [yellow]![/] {conflict_markup(conflict)}")

    def on_sync_failed(self, message: str) -> None:
        console.print(
            f"  [bold red]Failed to sync with server![/] [dim]{escape(message)}[/]"
        )

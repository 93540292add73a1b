"""Sync commands: sync, watch, conflicts, resolve, undo, status."""

from __future__ import annotations

import asyncio
import sys

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ._common import HOME, ConsoleNotifier, conflict_markup, console, load_app
from ..app import QuoteSyncApp
from ..engine import SyncListener
from ..errors import NoBackupAvailable, PersistenceError, ReentrantSyncRejected
from ..models import PassStatus, Resolution, SyncResult

RESOLUTION_CHOICES = [r.value for r in Resolution]


class _StopAfter(SyncListener):
    """Stops the scheduler once a number of passes have been reported."""

    def __init__(self, app: QuoteSyncApp, passes: int):
        self.app = app
        self.remaining = passes

    def _tick(self) -> None:
        self.remaining -= 1
        if self.remaining <= 0:
            self.app.scheduler.stop()

    def on_sync_result(self, result: SyncResult) -> None:
        self._tick()

    def on_sync_failed(self, message: str) -> None:
        self._tick()


async def _watch(app: QuoteSyncApp, interval: float) -> None:
    app.scheduler.start(interval)
    try:
        await app.scheduler.wait_closed()
    finally:
        app.scheduler.stop()


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.command("sync")
    @click.option("--home", default=HOME, type=click.Path())
    @click.option("--interactive", "-i", is_flag=True, help="Decide each new conflict now.")
    def sync_once(home, interactive):
        """Run one sync pass against the server (server wins conflicts)."""
        app = load_app(home)
        app.engine.add_listener(ConsoleNotifier())

        console.print(f"\n  Syncing with [cyan]{escape(app.remote.name)}[/]...")
        outcome = asyncio.run(app.engine.run_pass())

        if outcome.status == PassStatus.FAILED:
            sys.exit(1)
        if not outcome.persisted:
            console.print("  [yellow]Changes applied but could not be saved.[/]")

        if interactive and outcome.result is not None:
            for conflict in outcome.result.conflicts:
                console.print(f"\n  {conflict_markup(conflict)}")
                choice = click.prompt(
                    "  Keep which value?",
                    type=click.Choice(RESOLUTION_CHOICES),
                    default=Resolution.USE_REMOTE.value,
                )
                try:
                    app.engine.resolve(conflict.key, choice)
                except PersistenceError as exc:
                    console.print(f"[bold red]Resolved but not saved:[/] {escape(str(exc))}")
                    sys.exit(1)
        console.print()

    @main.command("watch")
    @click.option("--home", default=HOME, type=click.Path())
    @click.option("--interval", type=float, default=None, help="Seconds between passes (default from config).")
    @click.option("--count", type=int, default=None, help="Stop after this many passes.")
    def watch(home, interval, count):
        """Sync now and then every interval until interrupted."""
        app = load_app(home)
        app.engine.add_listener(ConsoleNotifier())
        if count:
            app.engine.add_listener(_StopAfter(app, count))

        every = interval or app.config.sync_interval_seconds
        console.print(f"\n  Watching [cyan]{escape(app.remote.name)}[/] every {every}s. Ctrl-C to stop.")
        try:
            asyncio.run(_watch(app, every))
        except KeyboardInterrupt:
            pass
        console.print("  [dim]Stopped.[/]\n")

    @main.command("conflicts")
    @click.option("--home", default=HOME, type=click.Path())
    def conflicts(home):
        """List conflicts awaiting a decision."""
        app = load_app(home)
        pending = app.engine.conflicts
        if not pending:
            console.print("[green]No outstanding conflicts.[/]")
            return

        table = Table(title="Outstanding conflicts")
        table.add_column("Quote", style="bold")
        table.add_column("Local", style="cyan")
        table.add_column("Remote (applied)", style="magenta")
        for conflict in pending:
            table.add_row(
                escape(conflict.key),
                escape(conflict.local_category),
                escape(conflict.remote_category),
            )
        console.print(table)

    @main.command("resolve")
    @click.argument("text")
    @click.argument("choice", type=click.Choice(RESOLUTION_CHOICES))
    @click.option("--home", default=HOME, type=click.Path())
    def resolve(text, choice, home):
        """Settle one conflict: keep-local or use-remote."""
        app = load_app(home)
        try:
            conflict = app.engine.resolve(text, choice)
        except KeyError:
            console.print(f"[yellow]No outstanding conflict for[/] {escape(text)!r}")
            sys.exit(1)
        except PersistenceError as exc:
            console.print(f"[bold red]Resolved but not saved:[/] {escape(str(exc))}")
            sys.exit(1)

        kept = conflict.local_category if choice == Resolution.KEEP_LOCAL.value else conflict.remote_category
        console.print(f"[green]Resolved[/] {escape(conflict.key)} -> [cyan]{escape(kept)}[/]")

    @main.command("undo")
    @click.option("--home", default=HOME, type=click.Path())
    def undo(home):
        """Roll the collection back to before the last sync."""
        app = load_app(home)
        try:
            snapshot = app.engine.undo_last_sync()
        except (NoBackupAvailable, ReentrantSyncRejected) as exc:
            console.print(f"[yellow]{escape(str(exc))}[/]")
            sys.exit(1)
        except PersistenceError as exc:
            console.print(f"[bold red]Restored but not saved:[/] {escape(str(exc))}")
            sys.exit(1)

        console.print(
            f"[green]Last sync undone.[/] Restored {len(snapshot.quotes)} quote(s) "
            f"from {snapshot.taken_at:%Y-%m-%d %H:%M:%S} UTC."
        )

    @main.command("status")
    @click.option("--home", default=HOME, type=click.Path())
    def status(home):
        """Show collection and sync status."""
        app = load_app(home)
        info = app.engine.status()
        console.print()
        console.print(
            Panel(
                f"Home: [cyan]{escape(str(app.home))}[/]\n"
                f"Remote: [cyan]{escape(info['remote'])}[/]\n"
                f"Quotes: [bold]{info['quotes']}[/]\n"
                f"Categories: {len(app.store.categories())}\n"
                f"Filter: {escape(app.browser.category_filter)}\n"
                f"Pending conflicts: [bold]{info['pending_conflicts']}[/]\n"
                f"Last backup: {info['backup_taken_at'] or '[dim]never[/]'}\n"
                f"Sync interval: {app.config.sync_interval_seconds}s",
                title="quotesync",
                border_style="magenta",
            )
        )
        console.print()

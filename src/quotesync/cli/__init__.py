"""
quotesync CLI — browse, add and sync quotes from the command line.

The main Click group is defined here and the command modules register
their subcommands on it.

Entry point: quotesync.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="quotesync")
def main():
    """quotesync — a quote collection that keeps itself in sync."""


from .quotes import register_quote_commands
from .sync_cmd import register_sync_commands

register_quote_commands(main)
register_sync_commands(main)

"""
snipvault CLI.

Usage follows the item-first style of boom-like tools:

    snipvault NAME                    fuzzy-find NAME, copy its value
    snipvault GROUP NAME              find exactly NAME in GROUP
    snipvault GROUP NAME VALUE        store VALUE as NAME in GROUP
    snipvault edit GROUP NAME         edit NAME in $EDITOR
    snipvault all                     list everything
    snipvault rm-item GROUP NAME      remove one item
    snipvault rm-group GROUP          remove a group and its items
    snipvault reindex                 rebuild the index
    snipvault sync [init|merge URL]   sync with a git remote

Any first word that is not a command is treated as a lookup.
Entry point: snipvault.cli:main
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from .. import __version__
from ..config import load_config


class LookupGroup(click.Group):
    """Command group that routes unknown first words to ``lookup``."""

    def resolve_command(self, ctx, args):
        if args and self.get_command(ctx, args[0]) is None:
            return "lookup", self.get_command(ctx, "lookup"), args
        return super().resolve_command(ctx, args)


@click.group(cls=LookupGroup)
@click.version_option(version=__version__, prog_name="snipvault")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/snipvault/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log what the store and sync are doing.")
@click.pass_context
def main(ctx, config_path, verbose):
    """snipvault — a tiny key-value store for secrets and snippets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    ctx.obj = load_config(config_path)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .items import register_item_commands
from .sync_cmd import register_sync_commands

register_item_commands(main)
register_sync_commands(main)

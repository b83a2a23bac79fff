"""Item commands: lookup/create, edit, all, rm-item, rm-group, reindex, help."""

from __future__ import annotations

import sys

import click

from ..clipboard import copy_to_clipboard
from ..config import VaultConfig
from ..errors import VaultError
from ..fuzzy import find_by_name
from ..index import group_items
from ..models import Item
from ..store import ItemStore
from ._common import (
    console,
    escape,
    fail,
    get_store,
    is_valid_name,
    say,
    trim_newline,
    truncate_output,
)


def _load_value(store: ItemStore, item: Item) -> Item:
    try:
        return store.fill_value(item)
    except VaultError as exc:
        fail(
            f"Error loading item {item.filename}: {escape(str(exc))}",
            hint="Try running [yellow]snipvault reindex[/].",
        )


def _copy_or_echo(config: VaultConfig, store: ItemStore, item: Item) -> None:
    """Clipboard when attached to a terminal, plain stdout otherwise."""
    _load_value(store, item)
    if config.clipboard and sys.stdout.isatty() and copy_to_clipboard(item.value):
        say(
            f"[magenta]{escape(item.value)}[/] (from [blue]{escape(item.group)}[/]"
            f"->[blue]{escape(item.name)}[/]) is now in your clipboard!"
        )
    else:
        click.echo(item.value)


def _check_names(ctx: click.Context, group: str, name: str) -> None:
    if not is_valid_name(ctx, group):
        fail(f"Invalid group name [yellow]{escape(group)}[/]")
    if not is_valid_name(ctx, name):
        fail(f"Invalid item name [blue]{escape(name)}[/]")


def register_item_commands(main: click.Group) -> None:
    """Register the item commands on the main group."""

    @main.command(
        "lookup",
        hidden=True,
        context_settings={"ignore_unknown_options": True},
    )
    @click.argument("words", nargs=-1, type=click.UNPROCESSED)
    @click.pass_context
    def lookup(ctx, words):
        """NAME | GROUP NAME | GROUP NAME VALUE."""
        config = ctx.obj
        store = get_store(config)

        if len(words) == 1:
            name = words[0].lower()
            try:
                item = find_by_name(store.index, name)
            except VaultError as exc:
                fail(f"Error searching items: {escape(str(exc))}")
            if item is None:
                fail(f"No item named [blue]{escape(name)}[/] was found")
            _copy_or_echo(config, store, item)

        elif len(words) == 2:
            group, name = words[0], words[1].lower()
            try:
                item = store.index.find_by_group_and_name(group, name)
            except VaultError as exc:
                fail(f"Error searching items: {escape(str(exc))}")
            if item is None:
                fail(
                    f"Could not find an item named [blue]{escape(name)}[/] "
                    f"on group [yellow]{escape(group)}[/]"
                )
            _copy_or_echo(config, store, item)

        elif len(words) == 3:
            group, name, value = words[0], words[1].lower(), words[2]
            _check_names(ctx, group, name)
            try:
                store.create(group, name, value)
            except VaultError as exc:
                fail(f"Error creating item: {escape(str(exc))}")
            say(
                f"Ok, [blue]{escape(name)}[/] (in [yellow]{escape(group)}[/]) "
                f"is [magenta]{escape(value)}[/]"
            )

        else:
            click.echo(ctx.find_root().get_help())
            sys.exit(1)

    @main.command("edit")
    @click.argument("group")
    @click.argument("name")
    @click.pass_context
    def edit(ctx, group, name):
        """Edit or create NAME in GROUP with $EDITOR."""
        config = ctx.obj
        name = name.lower()
        _check_names(ctx, group, name)
        store = get_store(config)

        try:
            existing = store.index.find_by_group_and_name(group, name)
        except VaultError as exc:
            fail(f"Error searching index: {escape(str(exc))}")

        current = _load_value(store, existing).value if existing else ""
        edited = click.edit(current)
        if edited is None:
            say("Nothing saved.")
            return
        edited = trim_newline(edited)

        try:
            store.create(group, name, edited)
        except VaultError as exc:
            fail(f"Error writing item: {escape(str(exc))}")
        say(
            f"Ok, [blue]{escape(name)}[/] (in [yellow]{escape(group)}[/]) "
            f"is [magenta]{escape(truncate_output(edited))}[/]"
        )

    @main.command("all")
    @click.pass_obj
    def list_all(config):
        """List every item, grouped."""
        store = get_store(config)
        try:
            items = store.index.load_all()
        except VaultError as exc:
            fail(f"Error reading items: {escape(str(exc))}")

        if not items:
            say("Your store is empty. Use [yellow]snipvault GROUP ITEM VALUE[/] to create a new item")
            return

        for group, members in group_items(items):
            console.print(f"[yellow]{escape(group)}[/]:", soft_wrap=True)
            width = max(len(item.name) for item in members)
            for item in members:
                _load_value(store, item)
                pad = " " * (width - len(item.name))
                console.print(
                    f"  {pad}[blue]{escape(item.name)}[/]: "
                    f"[magenta]{escape(truncate_output(item.value))}[/]",
                    soft_wrap=True,
                )
            console.print()

    @main.command("rm-item")
    @click.argument("group")
    @click.argument("name")
    @click.pass_obj
    def rm_item(config, group, name):
        """Remove NAME from GROUP."""
        name = name.lower()
        store = get_store(config)
        try:
            removed = store.index.remove_item(group, name)
        except VaultError as exc:
            fail(f"Error removing [blue]{escape(name)}[/]: {escape(str(exc))}")
        if removed is None:
            fail(f"Could not find [blue]{escape(name)}[/] in [yellow]{escape(group)}[/]")
        say(f"Removed [blue]{escape(name)}[/] from [yellow]{escape(group)}[/]")

    @main.command("rm-group")
    @click.argument("group")
    @click.pass_obj
    def rm_group(config, group):
        """Remove GROUP and all its items."""
        store = get_store(config)
        try:
            count = store.index.remove_group(group)
        except VaultError as exc:
            fail(f"Error removing group [yellow]{escape(group)}[/]: {escape(str(exc))}")
        if not count:
            fail(f"No group named [yellow]{escape(group)}[/] found.")
        say(f"Removed group [yellow]{escape(group)}[/] ({count} item(s))")

    @main.command("reindex")
    @click.pass_obj
    def reindex(config):
        """Rebuild the index from the item files."""
        try:
            count = get_store(config).index.rebuild()
        except VaultError as exc:
            fail(f"Error reindexing: {escape(str(exc))}")
        say(f"Reindex completed. [magenta]{count}[/] item(s)")

    @main.command("help")
    @click.pass_context
    def show_help(ctx):
        """Show this message."""
        click.echo(ctx.find_root().get_help())

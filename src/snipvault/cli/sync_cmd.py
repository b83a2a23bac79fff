"""Sync commands: sync, sync init, sync merge."""

from __future__ import annotations

import click

from ..errors import VaultError
from ..models import SyncReadiness
from ._common import escape, fail, get_engine, say


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group(invoke_without_command=True)
    @click.pass_context
    def sync(ctx):
        """Sync items with the git remote and rebuild the index.

        Run without a subcommand to commit, rebase onto the remote and
        push. Use `sync init URL` or `sync merge URL` to set up.
        """
        if ctx.invoked_subcommand is not None:
            return

        engine = get_engine(ctx.obj)
        try:
            check = engine.classify()
        except VaultError as exc:
            fail(f"Error determining repository status: {escape(str(exc))}")

        if check.readiness == SyncReadiness.NOT_CONFIGURED:
            fail(f"Cannot perform sync: {escape(check.reason or 'not a git repository')}")
        if check.readiness == SyncReadiness.NO_REMOTES:
            fail(
                "Cannot perform sync: the store already contains a repository, "
                "but it does not contain a remote."
            )
        if check.readiness == SyncReadiness.NO_LOCAL_STORE:
            fail(
                "Cannot perform sync: you don't have a local store. Either create "
                "one by adding items, or use [yellow]snipvault sync init URL[/] "
                "to download a repository."
            )

        say("Performing sync...")
        try:
            report, count = engine.sync()
        except VaultError as exc:
            fail(f"Error performing sync: {escape(str(exc))}")

        if report.pushed:
            say(f"Pushed [yellow]{escape(report.branch)}[/] to [yellow]{escape(report.remote)}[/].")
        say(f"Sync completed. [magenta]{count}[/] item(s) on local store.")

    @sync.command("init")
    @click.argument("url")
    @click.pass_obj
    def sync_init(config, url):
        """Initialize the local store from the git repository at URL."""
        say(f"Cloning {escape(url)} into {escape(str(config.store_root))}")
        try:
            count = get_engine(config).init_empty(url)
        except VaultError as exc:
            fail(f"Error executing: {escape(str(exc))}")
        _done(count)

    @sync.command("merge")
    @click.argument("url")
    @click.pass_obj
    def sync_merge(config, url):
        """Merge the existing local store into the git repository at URL."""
        say(f"Merging {escape(str(config.store_root))} with {escape(url)}")
        try:
            count = get_engine(config).init_existing(url)
        except VaultError as exc:
            fail(f"Error executing: {escape(str(exc))}")
        _done(count)


def _done(count: int) -> None:
    say(
        f"Done! [magenta]{count}[/] item(s) in the local repository. "
        "Use [yellow]snipvault sync[/] to sync changes."
    )

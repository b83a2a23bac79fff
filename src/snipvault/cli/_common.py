"""Shared utilities for all CLI command modules.

Provides the Rich console instances, the error exit helper, and the
small text helpers used by more than one command group.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape

from ..config import VaultConfig
from ..store import ItemStore
from ..sync import SyncEngine

console = Console()
err_console = Console(stderr=True)

PROG = "[cyan]snipvault[/]"
TRUNCATE_AT = 60


def say(message: str) -> None:
    """Print a status line prefixed with the program name."""
    console.print(f"{PROG}: {message}", soft_wrap=True)


def fail(message: str, hint: str | None = None) -> NoReturn:
    """Print an error (and optional hint) to stderr and exit with status 1."""
    err_console.print(f"[red]snipvault[/]: {message}", soft_wrap=True)
    if hint:
        err_console.print(f"[red]snipvault[/]: {hint}", soft_wrap=True)
    sys.exit(1)


def get_store(config: VaultConfig) -> ItemStore:
    return ItemStore(config)


def get_engine(config: VaultConfig) -> SyncEngine:
    return SyncEngine(config)


def is_valid_name(ctx: click.Context, name: str) -> bool:
    """Group and item names may not shadow a command word."""
    root = ctx.find_root()
    return name not in root.command.list_commands(root)


def truncate_output(value: str) -> str:
    """Flatten and shorten long multi-line values for one-line display."""
    if "\n" not in value or len(value) <= TRUNCATE_AT:
        return value
    return value.replace("\n", " ")[:TRUNCATE_AT] + "..."


def trim_newline(value: str) -> str:
    """Drop one trailing newline (\\n or \\r\\n), as editors append it."""
    if value.endswith("\n"):
        value = value[:-1]
        if value.endswith("\r"):
            value = value[:-1]
    return value


__all__ = [
    "console",
    "err_console",
    "escape",
    "fail",
    "get_engine",
    "get_store",
    "is_valid_name",
    "say",
    "trim_newline",
    "truncate_output",
]

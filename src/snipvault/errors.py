"""
Error taxonomy for the store and the sync engine.

Every failure raised by snipvault is a VaultError carrying an ErrorKind,
so callers branch on ``exc.kind`` instead of parsing messages. Lookups
that find nothing are not errors: they return None or an empty list.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    IO = "io"
    CORRUPT_ENTRY = "corrupt_entry"
    INVALID_FIELD = "invalid_field"
    ALREADY_EXISTS = "already_exists"
    ALREADY_INITIALIZED = "already_initialized"
    AUTH_FAILURE = "auth_failure"
    REMOTE = "remote"
    REBASE_CONFLICT = "rebase_conflict"
    CONFIG = "config"
    GIT = "git"


class VaultError(Exception):
    """Base class for every snipvault failure.

    Attributes:
        kind: Category of the failure.
        message: Human-readable description.
        path: File or directory involved, when there is one.
        context: Structured details (field counts, git command, stderr...).
    """

    kind: ErrorKind = ErrorKind.IO

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Path | str] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.context = context

    def __str__(self) -> str:
        return self.message


class StoreIOError(VaultError):
    """Filesystem failure while reading or writing the store."""

    kind = ErrorKind.IO


class CorruptEntry(VaultError):
    """An item file or the index is malformed. Reindexing usually recovers."""

    kind = ErrorKind.CORRUPT_ENTRY


class InvalidField(VaultError):
    """A value cannot be encoded (embedded NUL byte, empty key)."""

    kind = ErrorKind.INVALID_FIELD


class AlreadyExists(VaultError):
    """The store root exists where a fresh clone was requested."""

    kind = ErrorKind.ALREADY_EXISTS


class AlreadyInitialized(VaultError):
    """The store root is already a git working tree."""

    kind = ErrorKind.ALREADY_INITIALIZED


class AuthFailure(VaultError):
    """No usable credentials for the remote."""

    kind = ErrorKind.AUTH_FAILURE


class RemoteError(VaultError):
    """Clone, fetch or push failed for a reason other than auth."""

    kind = ErrorKind.REMOTE


class RebaseConflict(VaultError):
    """Local commits could not be replayed on top of the remote branch."""

    kind = ErrorKind.REBASE_CONFLICT


class ConfigError(VaultError):
    """Git identity or repository state does not allow committing."""

    kind = ErrorKind.CONFIG


class GitError(VaultError):
    """A local git command failed."""

    kind = ErrorKind.GIT

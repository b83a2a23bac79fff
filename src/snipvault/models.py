"""
Pydantic models shared by the store, the index and the sync engine.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Item(BaseModel):
    """A single stored secret.

    Entries produced by the index carry an empty ``value``; call
    ``ItemStore.fill_value`` to load it from the item file.
    """

    group: str
    name: str
    value: str = ""
    filename: str = ""


class SyncReadiness(str, Enum):
    """What the store root looks like from the sync engine's point of view."""

    NO_LOCAL_STORE = "no_local_store"
    NOT_CONFIGURED = "not_configured"
    NO_REMOTES = "no_remotes"
    READY = "ready"


class SyncCheck(BaseModel):
    """Result of classifying the store root."""

    readiness: SyncReadiness
    reason: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.readiness == SyncReadiness.READY


class SyncReport(BaseModel):
    """Outcome of a single perform_sync run."""

    branch: str
    remote: str
    committed: bool = False
    pushed: bool = False

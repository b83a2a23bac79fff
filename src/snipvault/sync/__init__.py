"""
Git-backed synchronization of the store root.

The store directory is a plain git working tree; the remote is the
source of truth shared between machines. The index is a local cache
and is kept out of version control.
"""

from .engine import SyncEngine
from .git import GitRepository

__all__ = ["GitRepository", "SyncEngine"]

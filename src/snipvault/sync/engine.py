"""
Sync Engine — keeps the store root in step with a git remote.

The store root doubles as a git working tree. Syncing commits local
item changes, fetches the remote branch, replays local commits on top
of it and pushes the result, giving a linear history without merge
commits:

    snipvault sync             ->  commit -> fetch -> rebase -> push
    snipvault sync init URL    ->  clone into an empty store root
    snipvault sync merge URL   ->  migrate an unmanaged store into a clone

There is no locking: one process at a time owns the store root. A push
that loses a race with another writer fails, and running sync again
picks it up.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from ..config import VaultConfig
from ..errors import AlreadyExists, AlreadyInitialized, GitError, RemoteError, StoreIOError
from ..index import IGNORE_FILENAME, INDEX_FILENAME
from ..models import SyncCheck, SyncReadiness, SyncReport
from ..store import ItemStore
from .git import GitRepository, clone, work_tree_status

logger = logging.getLogger("snipvault.sync.engine")

SYNC_COMMIT_MESSAGE = "Update items"


class SyncEngine:
    """Reconciles a local store with its git remote.

    Args:
        config: Store location, SSH key and default branch.
        store: Store to reindex after sync. Built from ``config`` if omitted.
    """

    def __init__(self, config: VaultConfig, store: Optional[ItemStore] = None):
        self.config = config
        self.root = config.store_root
        self.store = store or ItemStore(config)

    def classify(self) -> SyncCheck:
        """Work out whether the store root can be synced."""
        if not self.root.exists():
            return SyncCheck(readiness=SyncReadiness.NO_LOCAL_STORE)
        if not self.root.is_dir():
            return SyncCheck(
                readiness=SyncReadiness.NOT_CONFIGURED,
                reason=f"{self.root} is not a directory",
            )

        reason = work_tree_status(self.root)
        if reason is not None:
            return SyncCheck(readiness=SyncReadiness.NOT_CONFIGURED, reason=reason)

        if not self._repository(self.root).remotes():
            return SyncCheck(readiness=SyncReadiness.NO_REMOTES)
        return SyncCheck(readiness=SyncReadiness.READY)

    def open_repository(self) -> GitRepository:
        """The store root as a git repository.

        Raises:
            GitError: If the store root is not a working tree of its own.
        """
        if not self.root.is_dir():
            raise GitError(f"{self.root} does not exist", path=self.root)
        reason = work_tree_status(self.root)
        if reason is not None:
            raise GitError(reason, path=self.root)
        return self._repository(self.root)

    def _repository(self, path: Path) -> GitRepository:
        return GitRepository(path, self.config.ssh_key)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def init_empty(self, remote_url: str) -> int:
        """Clone ``remote_url`` as a brand new store.

        Returns:
            Number of items in the cloned store.

        Raises:
            AlreadyExists: If the store root already exists.
        """
        if self.root.exists():
            raise AlreadyExists("Store already exists.", path=self.root)

        repo = clone(remote_url, self.root, self.config.ssh_key)
        self.prepare(repo)
        count = self.store.index.rebuild()
        logger.info("Initialized %s from %s with %d item(s)", self.root, remote_url, count)
        return count

    def prepare(self, repo: GitRepository) -> None:
        """Make a fresh clone ready for syncing.

        Points HEAD at the default branch when the repository has no
        commits, and makes sure .gitignore excludes the index. When the
        ignore file has to change, the change is committed and pushed.
        """
        if not repo.has_head():
            repo.set_head(self.config.default_branch)

        gitignore = repo.path / IGNORE_FILENAME
        existed = gitignore.exists()
        if existed:
            contents = gitignore.read_text(encoding="utf-8")
            if INDEX_FILENAME in (line.strip() for line in contents.splitlines()):
                return
            if contents and not contents.endswith("\n"):
                contents += "\n"
            gitignore.write_text(contents + INDEX_FILENAME + "\n", encoding="utf-8")
        else:
            gitignore.write_text(INDEX_FILENAME + "\n", encoding="utf-8")

        repo.add(IGNORE_FILENAME)
        repo.commit("Update .gitignore" if existed else "Add .gitignore")

        remotes = repo.remotes()
        if remotes:
            repo.push(remotes[0], repo.current_branch())

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def perform_sync(self, repo: Optional[GitRepository] = None) -> SyncReport:
        """Commit local changes, rebase onto the remote and push.

        Args:
            repo: Working tree to sync. Defaults to the store root.

        Returns:
            SyncReport describing what happened.

        Raises:
            ConfigError: Git identity missing or HEAD detached.
            RebaseConflict: Local commits do not apply on the remote branch.
            AuthFailure, RemoteError: Fetch or push failed.
        """
        repo = repo or self.open_repository()
        logger.info("Performing sync in %s", repo.path)
        repo.identity()

        committed = False
        if repo.status():
            repo.add_all()
            repo.commit(SYNC_COMMIT_MESSAGE)
            committed = True

        branch = repo.current_branch()
        remotes = repo.remotes()
        if not remotes:
            raise RemoteError("No remote configured for local store.", path=repo.path)
        remote = remotes[0]

        if repo.remote_has_branch(remote, branch):
            repo.fetch(remote, branch)
            if repo.has_head():
                logger.info("Rebasing %s onto %s/%s", branch, remote, branch)
                repo.rebase("FETCH_HEAD")
            else:
                repo.reset_hard("FETCH_HEAD")
            ahead = repo.commits_between("FETCH_HEAD")
        else:
            ahead = 1 if repo.has_head() else 0

        pushed = False
        if committed or ahead:
            repo.push(remote, branch)
            pushed = True

        logger.info("Sync complete (committed=%s, pushed=%s)", committed, pushed)
        return SyncReport(branch=branch, remote=remote, committed=committed, pushed=pushed)

    def sync(self) -> tuple[SyncReport, int]:
        """Sync the store root and rebuild its index.

        Returns:
            The sync report and the number of items after reindexing.
        """
        report = self.perform_sync()
        return report, self.store.index.rebuild()

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    def init_existing(self, remote_url: str) -> int:
        """Turn an unmanaged store into a clone of ``remote_url``.

        Existing items are copied into a fresh clone next to the store
        root, committed and pushed, and only then is the clone swapped in
        for the original directory. Anything failing before the swap
        leaves the original store untouched.

        Returns:
            Number of items in the migrated store.

        Raises:
            AlreadyInitialized: If the store root is already a git working tree.
        """
        if not self.root.exists():
            return self.init_empty(remote_url)

        if self.root.is_dir() and work_tree_status(self.root) is None:
            raise AlreadyInitialized("Repository already initialized", path=self.root)

        self.store.index.rebuild()
        items = self.store.index.load_all()
        if not items:
            logger.info("Store %s holds no items, replacing it with a clone", self.root)
            shutil.rmtree(self.root)
            return self.init_empty(remote_url)

        staging = Path(tempfile.mkdtemp(prefix=f"{self.root.name}.merge-", dir=self.root.parent))
        try:
            repo = clone(remote_url, staging, self.config.ssh_key)
            self.prepare(repo)
            self._copy_items(items, staging)
            self.perform_sync(repo)
            self._swap_in(staging)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        count = self.store.index.rebuild()
        logger.info("Merged %d local item(s) with %s, %d item(s) total", len(items), remote_url, count)
        return count

    def _copy_items(self, items, staging: Path) -> None:
        """Copy local item files into the clone, local values winning.

        A remote item with the same (group, name) as a local one but a
        different filename is removed so the key stays unique.
        """
        remote_store = ItemStore(self.config.model_copy(update={"store_root": staging}))
        remote_store.index.rebuild()
        local_files = {item.filename for item in items}
        local_keys = {(item.group, item.name) for item in items}
        for remote_item in remote_store.index.load_all():
            key = (remote_item.group, remote_item.name)
            if key in local_keys and remote_item.filename not in local_files:
                remote_store.delete(remote_item)

        logger.info("Copying %d item(s) into %s", len(items), staging)
        for item in items:
            shutil.copy2(self.store.path_for(item.filename), staging / item.filename)

    def _swap_in(self, staging: Path) -> None:
        """Replace the store root with ``staging``.

        The original is renamed aside first and only deleted once the
        clone is in place; if the second rename fails it is moved back.
        """
        backup = self.root.with_name(f"{self.root.name}.old-{uuid.uuid4().hex[:8]}")
        try:
            os.rename(self.root, backup)
        except OSError as exc:
            raise StoreIOError(f"Could not move {self.root} aside: {exc}", path=self.root) from exc

        try:
            os.rename(staging, self.root)
        except OSError as exc:
            os.rename(backup, self.root)
            raise StoreIOError(f"Could not move {staging} into place: {exc}", path=staging) from exc

        try:
            shutil.rmtree(backup)
        except OSError as exc:
            logger.warning("Could not remove previous store copy %s: %s", backup, exc)

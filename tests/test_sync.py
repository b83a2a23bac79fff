"""
Tests for the sync module -- git wrapper, engine, and migration.

These drive a real git executable against bare repositories in
tmp_path; the git_identity fixture isolates them from the user's
global git config and skips them when git is missing.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from snipvault.config import VaultConfig
from snipvault.errors import (
    AlreadyExists,
    AlreadyInitialized,
    AuthFailure,
    ConfigError,
    GitError,
    RebaseConflict,
    RemoteError,
)
from snipvault.models import SyncReadiness
from snipvault.store import ItemStore
from snipvault.sync import GitRepository, SyncEngine
from snipvault.sync.git import _transport_failure, is_ssh_url, transport_env

from conftest import git, machine_config


def _remote_log(remote: Path) -> list[str]:
    return git("log", "--format=%H", "main", cwd=remote).splitlines()


def _files(root: Path) -> dict[str, bytes]:
    return {
        p.name: p.read_bytes()
        for p in root.iterdir()
        if p.is_file() and p.name != ".index"
    }


class TestGitHelpers:
    """URL classification and transport environment."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("git@github.com:me/vault.git", True),
            ("ssh://git@example.com/vault.git", True),
            ("git+ssh://example.com/vault.git", True),
            ("https://github.com/me/vault.git", False),
            ("/srv/git/vault.git", False),
            ("file:///srv/git/vault.git", False),
        ],
    )
    def test_is_ssh_url(self, url, expected):
        assert is_ssh_url(url) is expected

    def test_missing_key_for_ssh_remote(self, tmp_path: Path):
        """An SSH remote without the configured key fails before git runs."""
        with pytest.raises(AuthFailure) as exc_info:
            transport_env("git@example.com:vault.git", tmp_path / "id_rsa")
        assert exc_info.value.path == tmp_path / "id_rsa"

    def test_key_pinned_for_ssh_remote(self, tmp_path: Path):
        key = tmp_path / "id_ed25519"
        key.write_text("dummy")
        env = transport_env("git@example.com:vault.git", key)
        assert str(key) in env["GIT_SSH_COMMAND"]
        assert "IdentitiesOnly=yes" in env["GIT_SSH_COMMAND"]
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_key_ignored_for_local_remote(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("GIT_SSH_COMMAND", raising=False)
        env = transport_env(str(tmp_path / "remote.git"), tmp_path / "missing")
        assert "GIT_SSH_COMMAND" not in env

    def test_transport_failure_classification(self):
        denied = subprocess.CompletedProcess(
            ["git", "push"], 128, "", "git@example.com: Permission denied (publickey)."
        )
        missing = subprocess.CompletedProcess(
            ["git", "fetch"], 128, "", "fatal: repository '/nope' does not exist"
        )
        assert isinstance(_transport_failure("push", "u", denied), AuthFailure)
        assert isinstance(_transport_failure("fetch", "u", missing), RemoteError)


class TestClassify:
    """Readiness states of the store root."""

    def test_no_local_store(self, config: VaultConfig, git_identity: Path):
        check = SyncEngine(config).classify()
        assert check.readiness == SyncReadiness.NO_LOCAL_STORE
        assert not check.ready

    def test_plain_directory_not_configured(self, store: ItemStore, git_identity: Path):
        store.create("work", "token", "t")
        check = SyncEngine(store.config).classify()
        assert check.readiness == SyncReadiness.NOT_CONFIGURED
        assert check.reason

    def test_repository_without_remote(self, config: VaultConfig, git_identity: Path):
        config.store_root.mkdir()
        git("init", "-q", cwd=config.store_root)
        assert SyncEngine(config).classify().readiness == SyncReadiness.NO_REMOTES

    def test_ready_after_init(self, config: VaultConfig, remote: Path):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        assert engine.classify().ready

    def test_open_repository_requires_work_tree(self, store: ItemStore, git_identity: Path):
        store.ensure_root()
        with pytest.raises(GitError):
            SyncEngine(store.config).open_repository()


class TestInitEmpty:
    """Cloning a remote as a brand new store."""

    def test_clone_empty_remote(self, config: VaultConfig, remote: Path):
        """A fresh remote gets a .gitignore commit that excludes the index."""
        count = SyncEngine(config).init_empty(str(remote))

        assert count == 0
        gitignore = config.store_root / ".gitignore"
        assert ".index" in gitignore.read_text().splitlines()
        assert git("show", "main:.gitignore", cwd=remote).splitlines() == [".index"]
        assert (config.store_root / ".index").exists()

    def test_existing_root_rejected(self, config: VaultConfig, remote: Path):
        config.store_root.mkdir()
        with pytest.raises(AlreadyExists):
            SyncEngine(config).init_empty(str(remote))

    def test_clone_populated_remote(self, tmp_path: Path, remote: Path):
        """A second machine sees the first machine's items after init."""
        a = SyncEngine(machine_config(tmp_path, "a"))
        a.init_empty(str(remote))
        a.store.create("work", "token", "t0k3n")
        a.sync()

        b = SyncEngine(machine_config(tmp_path, "b"))
        assert b.init_empty(str(remote)) == 1
        item = b.store.index.find_by_group_and_name("work", "token")
        assert b.store.fill_value(item).value == "t0k3n"

    def test_bad_url(self, config: VaultConfig, tmp_path: Path, git_identity: Path):
        with pytest.raises(RemoteError):
            SyncEngine(config).init_empty(str(tmp_path / "nope.git"))


class TestPrepare:
    """Making a clone ready for sync."""

    def test_idempotent(self, config: VaultConfig, remote: Path):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        before = _remote_log(remote)

        engine.prepare(engine.open_repository())

        assert _remote_log(remote) == before
        assert (config.store_root / ".gitignore").read_text() == ".index\n"

    def test_appends_to_existing_gitignore(self, tmp_path: Path, remote: Path):
        """An existing .gitignore keeps its lines and gains the index entry."""
        seed = tmp_path / "seed"
        git("clone", "-q", str(remote), str(seed))
        (seed / ".gitignore").write_text("*.swp")
        git("add", ".gitignore", cwd=seed)
        git("commit", "-q", "-m", "seed", cwd=seed)
        git("push", "-q", "origin", "HEAD:refs/heads/main", cwd=seed)

        config = machine_config(tmp_path, "a")
        SyncEngine(config).init_empty(str(remote))

        assert (config.store_root / ".gitignore").read_text() == "*.swp\n.index\n"
        assert git("log", "-1", "--format=%s", "main", cwd=remote) == "Update .gitignore"


class TestPerformSync:
    """commit -> fetch -> rebase -> push."""

    def test_nothing_to_do(self, config: VaultConfig, remote: Path):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))

        report, count = engine.sync()

        assert report.committed is False
        assert report.pushed is False
        assert report.branch == "main"
        assert report.remote == "origin"
        assert count == 0

    def test_local_change_pushed(self, config: VaultConfig, remote: Path):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        item = engine.store.create("work", "token", "t0k3n")

        report, count = engine.sync()

        assert report.committed and report.pushed
        assert count == 1
        assert git("log", "-1", "--format=%s", "main", cwd=remote) == "Update items"
        assert item.filename in git("ls-tree", "--name-only", "main", cwd=remote).splitlines()
        assert ".index" not in git("ls-tree", "--name-only", "main", cwd=remote).splitlines()

    def test_two_machines_converge(self, tmp_path: Path, remote: Path):
        """Concurrent edits on two machines end up linear on both."""
        a = SyncEngine(machine_config(tmp_path, "a"))
        b = SyncEngine(machine_config(tmp_path, "b"))
        a.init_empty(str(remote))
        b.init_empty(str(remote))

        a.store.create("work", "token", "from-a")
        a.sync()
        a_commit = _remote_log(remote)[0]

        b.store.create("home", "wifi", "from-b")
        report, count = b.sync()

        assert report.pushed
        assert count == 2
        b_repo = b.open_repository()
        assert b_repo.git("rev-parse", "HEAD~1").stdout.strip() == a_commit
        assert b_repo.git("rev-parse", "HEAD").stdout.strip() == _remote_log(remote)[0]
        merges = git("rev-list", "--merges", "main", cwd=remote)
        assert merges == ""

        _, a_count = a.sync()
        assert a_count == 2
        assert _files(a.root) == _files(b.root)

    def test_removal_propagates(self, tmp_path: Path, remote: Path):
        a = SyncEngine(machine_config(tmp_path, "a"))
        b = SyncEngine(machine_config(tmp_path, "b"))
        a.init_empty(str(remote))
        a.store.create("work", "token", "t")
        a.store.create("work", "aws", "k")
        a.sync()
        b.init_empty(str(remote))

        b.store.index.remove_item("work", "token")
        b.sync()
        _, count = a.sync()

        assert count == 1
        assert a.store.index.find_by_group_and_name("work", "token") is None

    def test_failed_push_retried(self, config: VaultConfig, remote: Path, tmp_path: Path):
        """Commits left unpushed by an earlier failure go out on the next sync."""
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        engine.store.create("work", "token", "t")
        repo = engine.open_repository()
        repo.add_all()
        repo.commit("offline change")

        report, _ = engine.sync()

        assert report.committed is False
        assert report.pushed is True
        assert git("log", "-1", "--format=%s", "main", cwd=remote) == "offline change"

    def test_missing_identity(self, config: VaultConfig, remote: Path, tmp_path: Path, monkeypatch):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        engine.store.create("work", "token", "t")

        empty = tmp_path / "empty-gitconfig"
        empty.write_text("")
        monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(empty))

        with pytest.raises(ConfigError):
            engine.sync()
        assert git("rev-list", "--count", "main", cwd=remote) == "1"

    def test_missing_remote(self, config: VaultConfig, git_identity: Path):
        config.store_root.mkdir()
        git("init", "-q", cwd=config.store_root)
        with pytest.raises(RemoteError):
            SyncEngine(config).perform_sync()

    def test_rebase_conflict_aborted(self, tmp_path: Path, remote: Path):
        """A conflicting local commit is left in place with the rebase aborted."""
        a = SyncEngine(machine_config(tmp_path, "a"))
        b = SyncEngine(machine_config(tmp_path, "b"))
        a.init_empty(str(remote))
        b.init_empty(str(remote))

        (a.root / ".gitignore").write_text(".index\n*.tmp\n")
        a.sync()
        (b.root / ".gitignore").write_text(".index\n*.bak\n")

        with pytest.raises(RebaseConflict):
            b.sync()

        repo = b.open_repository()
        assert repo.status() == []
        assert repo.current_branch() == "main"
        assert (b.root / ".gitignore").read_text() == ".index\n*.bak\n"


class TestInitExisting:
    """Migrating an unmanaged store into a clone."""

    def test_migrates_items(self, store: ItemStore, remote: Path):
        """Every local item survives, byte for byte, and reaches the remote."""
        store.create("work", "token", "t0k3n")
        store.create("work", "aws", "AKIA")
        store.create("home", "wifi", "multi\nline")
        before = _files(store.root)

        count = SyncEngine(store.config).init_existing(str(remote))

        assert count == 3
        after = _files(store.root)
        for filename, data in before.items():
            assert after[filename] == data
        assert len(store.index.load_all()) == 3
        pushed = git("ls-tree", "--name-only", "main", cwd=remote).splitlines()
        assert set(before) <= set(pushed)
        assert SyncEngine(store.config).classify().ready

    def test_merges_with_remote_items(self, tmp_path: Path, remote: Path):
        a = SyncEngine(machine_config(tmp_path, "a"))
        a.init_empty(str(remote))
        a.store.create("work", "token", "remote-value")
        a.store.create("home", "wifi", "remote-wifi")
        a.sync()

        b_store = ItemStore(machine_config(tmp_path, "b"))
        b_store.create("work", "token", "local-value")
        b_store.create("work", "aws", "AKIA")

        count = SyncEngine(b_store.config).init_existing(str(remote))

        assert count == 3
        item = b_store.index.find_by_group_and_name("work", "token")
        assert b_store.fill_value(item).value == "local-value"
        _, a_count = a.sync()
        assert a_count == 3

    def test_missing_root_behaves_like_init(self, config: VaultConfig, remote: Path):
        assert SyncEngine(config).init_existing(str(remote)) == 0
        assert SyncEngine(config).classify().ready

    def test_empty_store_replaced_by_clone(self, store: ItemStore, remote: Path):
        store.ensure_root()
        assert SyncEngine(store.config).init_existing(str(remote)) == 0
        assert (store.root / ".git").is_dir()

    def test_already_initialized(self, config: VaultConfig, remote: Path):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        with pytest.raises(AlreadyInitialized):
            engine.init_existing(str(remote))

    def test_failure_leaves_store_untouched(self, store: ItemStore, tmp_path: Path, git_identity: Path):
        """A clone failure keeps the original store and cleans up staging."""
        store.create("work", "token", "t0k3n")
        before = _files(store.root)

        with pytest.raises(RemoteError):
            SyncEngine(store.config).init_existing(str(tmp_path / "nope.git"))

        assert _files(store.root) == before
        assert not (store.root / ".git").exists()
        assert list(store.root.parent.glob("*.merge-*")) == []
        assert list(store.root.parent.glob("*.old-*")) == []


class TestGitRepository:
    """Direct checks on the repository wrapper."""

    def test_detached_head(self, config: VaultConfig, remote: Path):
        SyncEngine(config).init_empty(str(remote))
        repo = GitRepository(config.store_root, config.ssh_key)
        repo.git("checkout", "-q", "--detach")
        with pytest.raises(ConfigError):
            repo.current_branch()

    def test_commits_between(self, config: VaultConfig, remote: Path):
        engine = SyncEngine(config)
        engine.init_empty(str(remote))
        repo = engine.open_repository()
        (config.store_root / "x").write_bytes(b"g\x00n\x00v\x00")
        repo.add_all()
        repo.commit("one")
        assert repo.commits_between(_remote_log(remote)[0]) == 1

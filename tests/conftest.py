"""Shared test fixtures for snipvault."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from snipvault.config import VaultConfig
from snipvault.store import ItemStore


def git(*args: str, cwd: Path | None = None) -> str:
    """Run a git command for test setup and return its stdout."""
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout.strip()


@pytest.fixture
def config(tmp_path: Path) -> VaultConfig:
    """Configuration pointing at a store root inside tmp_path."""
    return VaultConfig(
        store_root=tmp_path / ".snipvault.cache",
        ssh_key=tmp_path / "id_rsa",
    )


@pytest.fixture
def store(config: VaultConfig) -> ItemStore:
    """An ItemStore over a not-yet-created store root."""
    return ItemStore(config)


@pytest.fixture
def git_identity(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate git from the user's config and give it a committer identity."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@snipvault.local\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[commit]\n"
        "\tgpgsign = false\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("GIT_DIR", "GIT_WORK_TREE", "GIT_AUTHOR_NAME", "GIT_AUTHOR_EMAIL",
                "GIT_COMMITTER_NAME", "GIT_COMMITTER_EMAIL"):
        monkeypatch.delenv(var, raising=False)
    return gitconfig


@pytest.fixture
def remote(tmp_path: Path, git_identity: Path) -> Path:
    """An empty bare repository acting as the shared remote."""
    path = tmp_path / "remote.git"
    git("init", "-q", "--bare", str(path))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=path)
    return path


def machine_config(tmp_path: Path, name: str) -> VaultConfig:
    """Config for a second (or third) machine sharing the same remote."""
    return VaultConfig(
        store_root=tmp_path / name / ".snipvault.cache",
        ssh_key=tmp_path / "id_rsa",
    )

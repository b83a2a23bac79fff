"""
Thin wrapper around the git executable.

All version-control work goes through ``git`` subprocesses with
captured output. Transport commands (clone, fetch, ls-remote, push)
get an SSH command pinned to the configured private key when the
remote is an SSH URL; failures are sorted into AuthFailure and
RemoteError by looking at git's stderr.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
from pathlib import Path
from typing import Optional

from ..errors import (
    AuthFailure,
    ConfigError,
    GitError,
    RebaseConflict,
    RemoteError,
    VaultError,
)

logger = logging.getLogger("snipvault.sync.git")

_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:")
_AUTH_MARKERS = (
    "permission denied",
    "authentication failed",
    "could not read username",
    "host key verification failed",
    "unable to get private key",
)


def is_ssh_url(url: str) -> bool:
    """True for ssh://, git+ssh:// and scp-like user@host:path remotes."""
    return url.startswith(("ssh://", "git+ssh://", "ssh+git://")) or bool(_SCP_LIKE.match(url))


def transport_env(url: str, ssh_key: Path) -> dict[str, str]:
    """Environment for a git command that talks to ``url``.

    Raises:
        AuthFailure: If the remote needs SSH and the key file is missing.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    if is_ssh_url(url):
        if not ssh_key.is_file():
            raise AuthFailure(
                f"unable to get private key: {ssh_key} does not exist",
                path=ssh_key,
                url=url,
            )
        env["GIT_SSH_COMMAND"] = (
            f"ssh -i {shlex.quote(str(ssh_key))} -o IdentitiesOnly=yes -o BatchMode=yes"
        )
    return env


def run_git(
    args: list[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run ``git <args>`` and capture its output.

    Raises:
        GitError: If ``check`` is set and git exits non-zero, or git is missing.
    """
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd else None,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found on PATH") from exc

    if check and proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        raise GitError(
            f"git {args[0]} failed: {stderr or proc.returncode}",
            path=cwd,
            command=args,
            returncode=proc.returncode,
            stderr=stderr,
        )
    return proc


def _transport_failure(
    action: str, url: str, proc: subprocess.CompletedProcess[str]
) -> VaultError:
    stderr = (proc.stderr or "").strip()
    lowered = stderr.lower()
    cls = AuthFailure if any(marker in lowered for marker in _AUTH_MARKERS) else RemoteError
    return cls(
        f"{action} {url} failed: {stderr or proc.returncode}",
        url=url,
        returncode=proc.returncode,
        stderr=stderr,
    )


def clone(url: str, into: Path, ssh_key: Path) -> "GitRepository":
    """Clone ``url`` into ``into`` (which must not exist or be empty)."""
    logger.info("Cloning %s into %s", url, into)
    env = transport_env(url, ssh_key)
    proc = run_git(["clone", url, str(into)], env=env, check=False)
    if proc.returncode != 0:
        raise _transport_failure("clone", url, proc)
    return GitRepository(into, ssh_key)


def work_tree_status(path: Path) -> Optional[str]:
    """Check whether ``path`` is the top of a git working tree.

    Returns:
        None if it is, otherwise the reason it is not.
    """
    proc = run_git(["rev-parse", "--show-toplevel"], cwd=path, check=False)
    if proc.returncode != 0:
        return (proc.stderr or "").strip() or f"{path} is not a git repository"

    top = Path(proc.stdout.strip()).resolve()
    if top != path.resolve():
        return f"{path} is inside the working tree of {top}, not a repository of its own"
    return None


class GitRepository:
    """A git working tree, usually the store root or a migration clone."""

    def __init__(self, path: Path, ssh_key: Path):
        self.path = Path(path)
        self.ssh_key = ssh_key

    def git(self, *args: str, check: bool = True, env: Optional[dict[str, str]] = None):
        return run_git(list(args), cwd=self.path, env=env, check=check)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def remotes(self) -> list[str]:
        return self.git("remote").stdout.split()

    def remote_url(self, remote: str) -> str:
        return self.git("remote", "get-url", remote).stdout.strip()

    def has_head(self) -> bool:
        return self.git("rev-parse", "--verify", "-q", "HEAD", check=False).returncode == 0

    def current_branch(self) -> str:
        proc = self.git("symbolic-ref", "-q", "--short", "HEAD", check=False)
        branch = proc.stdout.strip()
        if proc.returncode != 0 or not branch:
            raise ConfigError("HEAD is detached; check out a branch in the store first", path=self.path)
        return branch

    def status(self) -> list[str]:
        """Porcelain status lines, untracked files included, ignored excluded."""
        out = self.git("status", "--porcelain", "--untracked-files=all").stdout
        return [line for line in out.splitlines() if line.strip()]

    def identity(self) -> tuple[str, str]:
        """Committer name and email from git config.

        Raises:
            ConfigError: If either is unset.
        """
        name = self.git("config", "--get", "user.name", check=False).stdout.strip()
        email = self.git("config", "--get", "user.email", check=False).stdout.strip()
        if not name or not email:
            raise ConfigError(
                "Don't know who you are. Please configure git user.name and user.email.",
                path=self.path,
            )
        return name, email

    def commits_between(self, base: str, tip: str = "HEAD") -> int:
        out = self.git("rev-list", "--count", f"{base}..{tip}").stdout.strip()
        return int(out or 0)

    # ------------------------------------------------------------------
    # Local changes
    # ------------------------------------------------------------------

    def set_head(self, branch: str) -> None:
        self.git("symbolic-ref", "HEAD", f"refs/heads/{branch}")

    def add(self, *paths: str) -> None:
        self.git("add", "--", *paths)

    def add_all(self) -> None:
        self.git("add", "-A")

    def commit(self, message: str) -> None:
        self.identity()
        self.git("commit", "-q", "-m", message)
        logger.info("Committed '%s' in %s", message, self.path)

    def reset_hard(self, ref: str) -> None:
        self.git("reset", "-q", "--hard", ref)

    def rebase(self, upstream: str) -> None:
        """Replay local commits on top of ``upstream``.

        Raises:
            RebaseConflict: If a commit does not apply. The rebase is
                aborted first, so the branch is left where it was.
        """
        self.identity()
        proc = self.git("rebase", upstream, check=False)
        if proc.returncode == 0:
            return

        detail = ((proc.stdout or "") + (proc.stderr or "")).strip()
        if self._rebase_in_progress():
            self.git("rebase", "--abort", check=False)
            raise RebaseConflict(
                f"Could not rebase onto {upstream}: {detail}",
                path=self.path,
                upstream=upstream,
                output=detail,
            )
        raise GitError(f"git rebase failed: {detail}", path=self.path, output=detail)

    def _rebase_in_progress(self) -> bool:
        git_dir = Path(self.git("rev-parse", "--absolute-git-dir").stdout.strip())
        return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _transport(self, action: str, remote: str, *args: str):
        url = self.remote_url(remote)
        env = transport_env(url, self.ssh_key)
        proc = self.git(*args, check=False, env=env)
        if proc.returncode != 0:
            raise _transport_failure(action, url, proc)
        return proc

    def remote_has_branch(self, remote: str, branch: str) -> bool:
        proc = self._transport("ls-remote", remote, "ls-remote", "--heads", remote, branch)
        return bool(proc.stdout.strip())

    def fetch(self, remote: str, branch: str) -> None:
        """Fetch ``branch`` from ``remote``; the result lands in FETCH_HEAD."""
        logger.info("Fetching %s/%s", remote, branch)
        self._transport("fetch", remote, "fetch", "-q", remote, branch)

    def push(self, remote: str, branch: str) -> None:
        logger.info("Pushing %s to %s", branch, remote)
        self._transport("push", remote, "push", "-q", remote, f"refs/heads/{branch}:refs/heads/{branch}")

"""Shared test fixtures for git-housekeep."""

from __future__ import annotations

import io
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

import click
import pytest
from rich.console import Console

from githousekeep.models import BackupResult, CleanupResult, Decision
from githousekeep.prompts import Prompter, parse_response
from githousekeep.store import MemoryStore
from githousekeep.vcs import VcsAdapter


class FakeVcs(VcsAdapter):
    """In-memory VCS: branches are lists of paths, commits are recorded."""

    def __init__(
        self,
        untracked: Sequence[str] = (),
        branches: Optional[dict[str, list[str]]] = None,
    ) -> None:
        self.untracked = list(untracked)
        self.branches = {name: list(paths) for name, paths in (branches or {}).items()}
        self.commits: list[tuple[str, str, list[str]]] = []
        self.cleanups = 0
        self.queried: list[str] = []

    def list_branch_files(self, branch: str) -> list[str]:
        self.queried.append(branch)
        return list(self.branches.get(branch, []))

    def status_query(self) -> list[str]:
        return list(self.untracked)

    def squash_commit(self, branch: str, message: str, paths: Sequence[str]) -> BackupResult:
        before = self.branches.get(branch)
        self.commits.append((branch, message, list(paths)))
        self.branches[branch] = list(paths)
        return BackupResult(
            branch=branch,
            paths=sorted(paths),
            succeeded=True,
            changed=before is None or sorted(before) != sorted(paths),
            commit="c0ffee" * 6 + "abcd",
        )

    def cleanup(self) -> CleanupResult:
        self.cleanups += 1
        return CleanupResult(deleted=["feature/done"], output="Deleted branch feature/done")


class ScriptedPrompter(Prompter):
    """Answers prompts from a script and records what was asked."""

    def __init__(
        self,
        answers: Optional[dict[str, str]] = None,
        skip: bool = False,
        shell: bool = False,
        host: str = "testhost",
    ) -> None:
        self.answers = dict(answers or {})
        self.skip = skip
        self.shell = shell
        self.host = host
        self.asked: list[str] = []
        self.skip_asked: list[Path] = []
        self.shell_asked: list[Path] = []
        self.host_asked = 0

    def decide(self, path: str) -> Decision:
        self.asked.append(path)
        return parse_response(self.answers.get(path, ""))

    def skip_repo(self, repo: Path) -> bool:
        self.skip_asked.append(repo)
        if self.skip == "abort":
            raise click.Abort()
        return bool(self.skip)

    def offer_shell(self, repo: Path) -> bool:
        self.shell_asked.append(repo)
        return self.shell

    def host_label(self) -> str:
        self.host_asked += 1
        return self.host


@pytest.fixture
def store() -> MemoryStore:
    """An empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def prompter() -> ScriptedPrompter:
    """A prompter that answers nothing (every file stays unresolved)."""
    return ScriptedPrompter()


@pytest.fixture
def console_buffer() -> io.StringIO:
    """Text buffer capturing console output."""
    return io.StringIO()


@pytest.fixture
def console(console_buffer: io.StringIO) -> Console:
    """A plain, wide console writing into console_buffer."""
    return Console(file=console_buffer, width=200, color_system=None)


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """A plain directory standing in for a repository root."""
    repo = tmp_path / "proj"
    repo.mkdir()
    return repo


def git(repo: Path, *args: str) -> str:
    """Run git in repo and return stdout, failing the test on error."""
    return subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True,
    ).stdout


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A real git repository on branch main with one commit and a .gitignore."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    repo = tmp_path / "proj"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    git(repo, "config", "user.name", "Test Operator")
    git(repo, "config", "user.email", "operator@example.com")
    git(repo, "config", "commit.gpgsign", "false")
    (repo / ".gitignore").write_text("*.log\n")
    (repo / "README.md").write_text("hello\n")
    git(repo, "add", ".gitignore", "README.md")
    git(repo, "commit", "-q", "-m", "initial")
    return repo

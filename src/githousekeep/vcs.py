"""
Version-control adapter — the four git operations housekeeping needs.

The reconciler and orchestrator only ever talk to ``VcsAdapter``:

    list_branch_files   Paths recorded on a backup branch
    status_query        Untracked and ignored paths in the work tree
    squash_commit       Snapshot a set of paths onto a branch
    cleanup             Delete merged branches, prune worktrees

``GitAdapter`` implements them with the git binary. The backup
commit is built in a throwaway index, so the operator's staging
area and working tree are never touched.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .models import BackupResult, CleanupResult, CommandResult
from .shell import run_command

logger = logging.getLogger("githousekeep.vcs")

# ``git status --porcelain`` prefixes for untracked and ignored entries.
STATUS_PREFIXES = ("?? ", "!! ")
STATUS_PREFIX_WIDTH = 3

# Porcelain codes whose entry is followed by a second (source) path field.
RENAME_CODES = {"R", "C"}

DEFAULT_PROTECTED = ("main", "master", "develop")


def _nul_fields(output: str) -> list[str]:
    return [field for field in output.split("\0") if field]


def find_toplevel(path: Path, git: str = "git") -> Optional[Path]:
    """Root of the work tree containing path.

    Returns:
        The resolved top-level directory, or None when path is not
        inside a git work tree.
    """
    result = run_command([git, "rev-parse", "--show-toplevel"], cwd=path)
    output = result.output.strip()
    if not result.succeeded or not output:
        return None
    return Path(output.splitlines()[-1]).resolve()


class VcsAdapter(ABC):
    """Abstract version-control backend for one repository."""

    @abstractmethod
    def list_branch_files(self, branch: str) -> list[str]:
        """List every file path recorded on a branch.

        Returns:
            Relative paths, or an empty list if the branch does not
            exist or cannot be read.
        """

    @abstractmethod
    def status_query(self) -> list[str]:
        """List untracked and VCS-ignored files, one entry per file.

        Returns:
            Relative paths, or an empty list on failure.
        """

    @abstractmethod
    def squash_commit(self, branch: str, message: str, paths: Sequence[str]) -> BackupResult:
        """Record the current content of paths as one commit on branch."""

    @abstractmethod
    def cleanup(self) -> CleanupResult:
        """Prune merged branches and stale refs. Informational."""


class GitAdapter(VcsAdapter):
    """Git-binary backed adapter.

    Args:
        repo: Repository root. Every command runs with this cwd.
        git: Git executable.
        protected: Branch names cleanup must never delete.
        keep_prefixes: Branch name prefixes cleanup must never delete.
    """

    def __init__(
        self,
        repo: Path,
        git: str = "git",
        protected: Iterable[str] = DEFAULT_PROTECTED,
        keep_prefixes: Iterable[str] = (),
    ) -> None:
        self.repo = Path(repo)
        self.git = git
        self.protected = set(protected)
        self.keep_prefixes = tuple(keep_prefixes)

    def _git(self, *args: str, **kwargs) -> CommandResult:
        return run_command(
            [self.git, "-c", "core.quotePath=false", *args], cwd=self.repo, **kwargs
        )

    def _tree_files(self, treeish: str) -> Optional[list[str]]:
        result = self._git("ls-tree", "-r", "-z", "--full-tree", "--name-only", treeish)
        if not result.succeeded:
            logger.debug("Cannot list %s: %s", treeish, result.output.strip())
            return None
        return _nul_fields(result.output)

    def list_branch_files(self, branch: str) -> list[str]:
        return self._tree_files(f"refs/heads/{branch}") or []

    def status_query(self) -> list[str]:
        result = self._git("status", "--porcelain", "-z", "--untracked-files=all", "--ignored")
        if not result.succeeded:
            logger.warning("git status failed in %s: %s", self.repo, result.output.strip())
            return []

        paths: list[str] = []
        fields = iter(_nul_fields(result.output))
        for entry in fields:
            if entry.startswith(STATUS_PREFIXES):
                paths.append(entry[STATUS_PREFIX_WIDTH:])
            elif RENAME_CODES & set(entry[:2]):
                # The source path of a rename or copy is its own field.
                next(fields, None)
        return paths

    def _tip(self, branch: str) -> str:
        result = self._git("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}^{{commit}}")
        return result.output.strip() if result.succeeded else ""

    def squash_commit(self, branch: str, message: str, paths: Sequence[str]) -> BackupResult:
        """Snapshot paths onto branch without touching the real index.

        The tree is written from a temporary index holding only the
        given paths that still exist on disk. The commit is parented on
        the current branch tip. When the tree matches the tip's tree
        nothing is written, so repeating a backup with unchanged content
        is a no-op.

        ``BackupResult.paths`` lists what the written tree holds, never
        what was merely requested.
        """
        outcome = BackupResult(branch=branch)
        requested = sorted(set(paths))
        present = [p for p in requested if os.path.lexists(self.repo / p)]
        missing = sorted(set(requested) - set(present))
        if missing:
            logger.debug("Not on disk, left out of %s: %s", branch, ", ".join(missing))
        if not present:
            outcome.succeeded = True
            outcome.detail = "no files on disk"
            return outcome

        with tempfile.TemporaryDirectory(prefix="git-housekeep-") as tmp:
            env = {"GIT_INDEX_FILE": str(Path(tmp) / "index")}

            staged = self._git(
                "update-index", "--add", "-z", "--stdin",
                env=env, input_text="\0".join(present) + "\0",
            )
            if not staged.succeeded:
                outcome.detail = staged.output.strip()
                return outcome

            tree = self._git("write-tree", env=env)
            if not tree.succeeded:
                outcome.detail = tree.output.strip()
                return outcome
            tree_id = tree.output.strip()

        written = self._tree_files(tree_id)
        if written is None:
            outcome.detail = f"cannot read back tree {tree_id}"
            return outcome
        outcome.paths = sorted(written)
        lost = sorted(set(present) - set(written))
        if lost:
            outcome.detail = "not recorded: " + ", ".join(lost)
            return outcome

        parent = self._tip(branch)
        if parent:
            parent_tree = self._git("rev-parse", f"{parent}^{{tree}}")
            if parent_tree.succeeded and parent_tree.output.strip() == tree_id:
                outcome.succeeded = True
                outcome.commit = parent
                outcome.detail = "unchanged"
                return outcome

        commit_args = ["commit-tree", tree_id, "-m", message]
        if parent:
            commit_args += ["-p", parent]
        commit = self._git(*commit_args)
        if not commit.succeeded:
            outcome.detail = commit.output.strip()
            return outcome
        commit_id = commit.output.strip()

        update_args = ["update-ref", "-m", message, f"refs/heads/{branch}", commit_id]
        if parent:
            update_args.append(parent)
        updated = self._git(*update_args)
        if not updated.succeeded:
            outcome.detail = updated.output.strip()
            return outcome

        logger.info("Backed up %d file(s) to %s at %s", len(outcome.paths), branch, commit_id[:12])
        outcome.succeeded = True
        outcome.changed = True
        outcome.commit = commit_id
        return outcome

    def _deletable(self, branch: str, current: str) -> bool:
        if not branch or branch == current or branch in self.protected:
            return False
        return not any(branch.startswith(prefix) for prefix in self.keep_prefixes)

    def cleanup(self) -> CleanupResult:
        """Delete local branches already merged into HEAD, then prune worktrees."""
        outcome = CleanupResult()
        notes: list[str] = []

        current = self._git("rev-parse", "--abbrev-ref", "HEAD").output.strip()
        merged = self._git("branch", "--merged", "HEAD", "--format=%(refname:short)")
        if not merged.succeeded:
            outcome.succeeded = False
            notes.append(merged.output.strip())
        else:
            for branch in merged.lines:
                branch = branch.strip()
                if not self._deletable(branch, current):
                    continue
                deleted = self._git("branch", "-d", branch)
                if deleted.succeeded:
                    outcome.deleted.append(branch)
                else:
                    outcome.succeeded = False
                notes.append(deleted.output.strip())

        pruned = self._git("worktree", "prune", "--verbose")
        if not pruned.succeeded:
            outcome.succeeded = False
        notes.append(pruned.output.strip())

        outcome.output = "\n".join(n for n in notes if n)
        return outcome

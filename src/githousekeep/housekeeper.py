"""
Housekeeping orchestrator — one repository at a time, start to finish.

For every target repository:

    enter       resolve the root; a missing repo aborts the whole run
    confirm     offer to skip it (not in fast mode)
    reconcile   classify untracked files
    backup      snapshot the save set onto the backup branch
    ignores     persist files the operator chose to ignore
    cleanup     delete merged branches (informational)
    shell       offer a subshell in the repo (not in fast mode)
    done        print a separator

Nothing runs in parallel. Each repository is fully handled, prompts
included, before the next one begins.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from rich.console import Console
from rich.markup import escape

from . import SECTION, HousekeepError
from .backup import run_backup
from .config import HousekeepConfig
from .host import get_or_create_host
from .models import RepoReport
from .prompts import Prompter
from .reconcile import IGNORE_KEY, FileReconciler
from .shell import open_subshell
from .store import KeyValueStore, StoreError
from .vcs import GitAdapter, VcsAdapter, find_toplevel

logger = logging.getLogger("githousekeep.housekeeper")


class RepoAccessError(HousekeepError):
    """A target repository does not exist or cannot be entered."""


def enter_repo(path: str | Path, git: str = "git") -> Path:
    """Resolve a repository root and check it can be worked in.

    A path inside a work tree resolves to the top of that work tree, so
    running from a subdirectory housekeeps the whole clone.

    Raises:
        RepoAccessError: Missing, not a directory, or not accessible.
    """
    repo = Path(path).expanduser().resolve()
    if not repo.exists():
        raise RepoAccessError(f"Repository not found: {repo}")
    if not repo.is_dir():
        raise RepoAccessError(f"Not a directory: {repo}")
    if not os.access(repo, os.R_OK | os.X_OK):
        raise RepoAccessError(f"Permission denied: {repo}")

    root = find_toplevel(repo, git)
    if root is None:
        logger.debug("%s is not inside a git work tree", repo)
        return repo
    if root != repo:
        logger.debug("Using work tree root %s for %s", root, repo)
    return root


class Housekeeper:
    """Drives the housekeeping state machine over a list of repositories.

    Args:
        store: Store with the host identity and the ignore list.
        prompter: Operator prompts.
        fast: Skip every prompt; unknown files are skipped this run.
        config: Resolved settings.
        console: Progress output (stderr).
        vcs_factory: Builds the adapter for a repository root.
        now: Fixed moment for the run (defaults to local now).
    """

    def __init__(
        self,
        store: KeyValueStore,
        prompter: Prompter,
        fast: bool = False,
        config: Optional[HousekeepConfig] = None,
        console: Optional[Console] = None,
        vcs_factory: Optional[Callable[[Path], VcsAdapter]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.store = store
        self.prompter = prompter
        self.fast = fast
        self.config = config or HousekeepConfig()
        self.console = console or Console(stderr=True)
        self.vcs_factory = vcs_factory or self._git_adapter
        self.now = now
        self._host: Optional[str] = None

    def _git_adapter(self, repo: Path) -> VcsAdapter:
        return GitAdapter(
            repo,
            git=self.config.git,
            protected=self.config.protected_branches,
            keep_prefixes=[f"{self.config.branch_prefix}/"],
        )

    @property
    def host(self) -> str:
        """Host identity, asked for on first use and cached for the process."""
        if self._host is None:
            ask = None if self.fast else self.prompter.host_label
            self._host = get_or_create_host(self.store, ask)
        return self._host

    def run(self, repos: Iterable[str | Path]) -> list[RepoReport]:
        """Process repositories in order.

        Raises:
            HostIdentityError: No host identity could be established.
            RepoAccessError: A repository cannot be entered.
            click.Abort: The operator interrupted the skip prompt.
        """
        logger.debug("Host identity: %s", self.host)
        return [self.process(repo) for repo in repos]

    def process(self, path: str | Path) -> RepoReport:
        """Run every housekeeping step for one repository."""
        repo = enter_repo(path, self.config.git)
        report = RepoReport(path=repo)
        self.console.print(f"\n[bold cyan]{escape(str(repo))}[/]")

        if not self.fast and self.prompter.skip_repo(repo):
            self.console.print("  [dim]skipped[/]")
            report.skipped = True
            self._done()
            return report

        vcs = self.vcs_factory(repo)
        reconciler = FileReconciler(
            vcs,
            self.store,
            self.prompter,
            fast=self.fast,
            console=self.console,
            branch_prefix=self.config.branch_prefix,
        )
        result = reconciler.run(repo, self.now)
        report.reconcile = result

        report.backup = run_backup(vcs, result.branch, result.save_set, self.host, self.now)
        self._print_backup(report)

        report.ignores_added = self._persist_ignores(result.ignore_additions)

        report.cleanup = vcs.cleanup()
        if not self.fast:
            for branch in report.cleanup.deleted:
                self.console.print(f"  [dim]deleted merged branch[/] {escape(branch)}")
        if not report.cleanup.succeeded:
            logger.info("Cleanup in %s reported: %s", repo, report.cleanup.output)

        self._summary(report)

        if not self.fast and self.prompter.offer_shell(repo):
            open_subshell(repo, self.config.shell)

        self._done()
        return report

    def _persist_ignores(self, paths: list[str]) -> list[str]:
        added: list[str] = []
        for path in paths:
            try:
                changed = self.store.add(SECTION, IGNORE_KEY, path)
            except StoreError as exc:
                logger.error("Could not persist ignore for %s: %s", path, exc)
                self.console.print(f"  [red]could not remember ignore:[/] {escape(path)}")
                continue
            if changed:
                added.append(path)
                self.console.print(f"  [yellow]ignoring from now on:[/] {escape(path)}")
        return added

    def _print_backup(self, report: RepoReport) -> None:
        backup = report.backup
        if backup is None:
            return
        branch = escape(backup.branch)
        if not backup.succeeded:
            self.console.print(f"  [red]backup to {branch} failed:[/] {escape(backup.detail)}")
        elif self.fast:
            return
        elif backup.changed:
            self.console.print(
                f"  [green]backed up {len(backup.paths)} file(s)[/] to {branch}"
            )
        elif not backup.paths:
            self.console.print(f"  [dim]nothing on disk to back up to[/] {branch}")
        else:
            self.console.print(f"  [dim]{branch} already up to date[/]")

    def _summary(self, report: RepoReport) -> None:
        result = report.reconcile
        if result is None or self.fast:
            return
        self.console.print(
            f"  {len(result.save_set)} saved, {len(report.ignores_added)} newly ignored, "
            f"{len(result.unresolved)} unresolved",
            highlight=False,
        )

    def _done(self) -> None:
        self.console.rule(style="dim")

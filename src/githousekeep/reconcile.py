"""
File reconciliation — deciding what happens to every untracked file.

For one repository, each untracked or VCS-ignored file falls into
exactly one bucket:

    already-saved     present on this year's backup branch
    already-ignored   matches the persisted ignore list
    newly-saved       operator answered y this run
    newly-ignored     operator answered n this run
    unresolved        any other answer; asked again next run
    fast-ignored      fast mode; skipped this run, not persisted

``reconcile`` is the pure decision function. ``FileReconciler``
gathers its inputs from git and the store, feeds it the operator's
answers and prints what was decided.
"""

from __future__ import annotations

import logging
from datetime import datetime
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Iterable, Optional

from rich.console import Console
from rich.markup import escape

from . import SECTION
from .backup import BRANCH_PREFIX, backup_branch_name
from .models import Classification, Decision, FileOutcome, ReconcileResult
from .prompts import Prompter
from .store import KeyValueStore, StoreError
from .vcs import VcsAdapter

logger = logging.getLogger("githousekeep.reconcile")

IGNORE_KEY = "ignore"

_GLOB_CHARS = frozenset("*?[")


def is_ignored(path: str, patterns: Iterable[str]) -> bool:
    """Check a path against the ignore list.

    Entries match exactly. Entries containing glob characters also
    match as shell-style patterns against the whole relative path.
    """
    for pattern in patterns:
        if path == pattern:
            return True
        if _GLOB_CHARS.intersection(pattern) and fnmatchcase(path, pattern):
            return True
    return False


def reconcile(
    candidates: Iterable[str],
    saved: Iterable[str],
    ignore: Iterable[str],
    decide: Optional[Callable[[str], Decision]] = None,
    fast: bool = False,
    branch: str = "",
    observe: Optional[Callable[[FileOutcome], None]] = None,
) -> ReconcileResult:
    """Classify candidates against the saved set and the ignore list.

    Candidates are walked in lexicographic order so prompts come up
    in the same order on every run. ``decide`` is called only for
    files that are neither saved nor ignored, and never in fast mode.

    Args:
        candidates: Untracked and ignored files in the work tree.
        saved: Files already on the backup branch.
        ignore: Persisted ignore list entries.
        decide: Callback returning the operator's decision for a file.
        fast: Skip unknown files for this run without asking.
        branch: Backup branch name, recorded on the result.
        observe: Called with each outcome as soon as it is decided.

    Returns:
        ReconcileResult with a sorted save set (saved plus confirmed)
        and the sorted list of files to add to the ignore list.
    """
    saved_set = set(saved)
    ignore_list = list(dict.fromkeys(ignore))
    ordered = sorted(set(candidates))

    confirmed: list[str] = []
    ignored: list[str] = []
    outcomes: list[FileOutcome] = []

    for path in ordered:
        if path in saved_set:
            kind = Classification.ALREADY_SAVED
        elif is_ignored(path, ignore_list):
            kind = Classification.ALREADY_IGNORED
        elif fast or decide is None:
            kind = Classification.FAST_IGNORED
        else:
            decision = decide(path)
            if decision == Decision.SAVE:
                kind = Classification.NEWLY_SAVED
                confirmed.append(path)
            elif decision == Decision.IGNORE:
                kind = Classification.NEWLY_IGNORED
                ignored.append(path)
            else:
                kind = Classification.UNRESOLVED
        outcome = FileOutcome(path=path, classification=kind)
        outcomes.append(outcome)
        if observe is not None:
            observe(outcome)

    return ReconcileResult(
        branch=branch,
        saved=sorted(saved_set),
        candidates=ordered,
        save_set=sorted(saved_set.union(confirmed)),
        ignore_additions=sorted(ignored),
        outcomes=outcomes,
    )


class FileReconciler:
    """Runs reconciliation for one repository against live state.

    Args:
        vcs: Adapter for the repository.
        store: Store holding the global ignore list.
        prompter: Source of operator decisions.
        fast: Never prompt; skip unknown files for this run.
        console: Where decisions are printed (stderr).
        branch_prefix: Backup branch namespace.
    """

    def __init__(
        self,
        vcs: VcsAdapter,
        store: KeyValueStore,
        prompter: Prompter,
        fast: bool = False,
        console: Optional[Console] = None,
        branch_prefix: str = BRANCH_PREFIX,
    ) -> None:
        self.vcs = vcs
        self.store = store
        self.prompter = prompter
        self.fast = fast
        self.console = console or Console(stderr=True)
        self.branch_prefix = branch_prefix

    def load_ignore_list(self) -> list[str]:
        """Current persisted ignore list, or empty if the store is unreadable."""
        try:
            return self.store.get_all(SECTION, IGNORE_KEY)
        except StoreError as exc:
            logger.warning("Ignore list unavailable: %s", exc)
            return []

    def run(self, repo: Path, now: Optional[datetime] = None) -> ReconcileResult:
        """Reconcile the repository's current untracked files.

        Args:
            repo: Repository root.
            now: Moment of the run; picks the backup branch year.

        Returns:
            ReconcileResult for the repository.
        """
        branch = backup_branch_name(repo, now, prefix=self.branch_prefix)
        saved = self.vcs.list_branch_files(branch)
        ignore = self.load_ignore_list()
        candidates = self.vcs.status_query()
        logger.debug(
            "%s: %d saved on %s, %d ignore entries, %d candidates",
            repo, len(saved), branch, len(ignore), len(candidates),
        )

        result = reconcile(
            candidates,
            saved,
            ignore,
            decide=None if self.fast else self.prompter.decide,
            fast=self.fast,
            branch=branch,
            observe=self._report,
        )
        return result

    def _report(self, outcome: FileOutcome) -> None:
        kind = outcome.classification
        path = escape(outcome.path)
        if kind == Classification.FAST_IGNORED:
            self.console.print(f"(IGNORED) {path}", highlight=False)
        elif kind == Classification.ALREADY_SAVED:
            logger.debug("already saved: %s", outcome.path)
        elif kind == Classification.ALREADY_IGNORED:
            logger.debug("already ignored: %s", outcome.path)
        elif kind == Classification.NEWLY_SAVED:
            self.console.print(f"  [green]save[/]   {path}", highlight=False)
        elif kind == Classification.NEWLY_IGNORED:
            self.console.print(f"  [yellow]ignore[/] {path}", highlight=False)
        else:
            self.console.print(f"  [dim]later[/]  {path}", highlight=False)

"""
Pydantic models shared by the housekeeping components.

Everything here is plain data: what a command returned, what the
reconciler decided for each file, what happened to one repository.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class Decision(str, Enum):
    """The operator's answer for one unknown file."""

    SAVE = "save"
    IGNORE = "ignore"
    UNRESOLVED = "unresolved"


class Classification(str, Enum):
    """How a candidate file ended up after reconciliation."""

    ALREADY_SAVED = "already-saved"
    ALREADY_IGNORED = "already-ignored"
    NEWLY_SAVED = "newly-saved"
    NEWLY_IGNORED = "newly-ignored"
    UNRESOLVED = "unresolved"
    FAST_IGNORED = "fast-ignored"  # skipped for this run only, never persisted


class CommandResult(BaseModel):
    """Captured result of one external command.

    Attributes:
        command: The argv that was run.
        output: stdout and stderr, merged, as text.
        returncode: Process exit status.
    """

    command: list[str] = Field(default_factory=list)
    output: str = ""
    returncode: int = 0

    @property
    def succeeded(self) -> bool:
        """True when the command exited with status zero."""
        return self.returncode == 0

    @property
    def lines(self) -> list[str]:
        """Non-empty output lines."""
        return [line for line in self.output.splitlines() if line.strip()]


class FileOutcome(BaseModel):
    """One candidate file and its classification."""

    path: str
    classification: Classification


class ReconcileResult(BaseModel):
    """Outcome of reconciling one repository's untracked files.

    Attributes:
        branch: Backup branch the saved set was read from.
        saved: Files already present on the backup branch.
        candidates: Untracked and VCS-ignored files seen this run.
        save_set: Files to back up (saved plus newly confirmed).
        ignore_additions: Files the operator chose to ignore this run.
        outcomes: Per-candidate classification, in walk order.
    """

    branch: str = ""
    saved: list[str] = Field(default_factory=list)
    candidates: list[str] = Field(default_factory=list)
    save_set: list[str] = Field(default_factory=list)
    ignore_additions: list[str] = Field(default_factory=list)
    outcomes: list[FileOutcome] = Field(default_factory=list)

    def paths_with(self, classification: Classification) -> list[str]:
        """Return the candidate paths that got the given classification."""
        return [o.path for o in self.outcomes if o.classification == classification]

    @property
    def unresolved(self) -> list[str]:
        """Files left undecided, interactively or by fast mode."""
        return [
            o.path
            for o in self.outcomes
            if o.classification in (Classification.UNRESOLVED, Classification.FAST_IGNORED)
        ]


class BackupResult(BaseModel):
    """Result of squash-committing a file set onto a backup branch."""

    branch: str
    paths: list[str] = Field(default_factory=list)
    succeeded: bool = False
    changed: bool = False
    commit: str = ""
    detail: str = ""


class CleanupResult(BaseModel):
    """Result of the branch cleanup pass. Informational only."""

    deleted: list[str] = Field(default_factory=list)
    succeeded: bool = True
    output: str = ""


class RepoReport(BaseModel):
    """What happened to one repository during a housekeeping run."""

    path: Path
    skipped: bool = False
    reconcile: Optional[ReconcileResult] = None
    backup: Optional[BackupResult] = None
    ignores_added: list[str] = Field(default_factory=list)
    cleanup: Optional[CleanupResult] = None

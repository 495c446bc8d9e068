"""
Untracked-file backups — one branch per repository, per year.

Files the operator keeps are committed to a dedicated branch that
never gets checked out:

    untracked-files/<year>/<repo basename>

The year is the local calendar year at the time of the run. A new
year starts a fresh branch, so every kept file is offered again in
January and re-saved under the new name.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from .models import BackupResult
from .vcs import VcsAdapter

logger = logging.getLogger("githousekeep.backup")

BRANCH_PREFIX = "untracked-files"


def backup_branch_name(
    repo: Path,
    now: Optional[datetime] = None,
    prefix: str = BRANCH_PREFIX,
) -> str:
    """Build the backup branch name for a repository.

    Args:
        repo: Repository root. Only its basename is used.
        now: Moment of the run. Defaults to local now.
        prefix: Branch namespace.

    Returns:
        str: e.g. ``untracked-files/2024/proj``.
    """
    moment = now or datetime.now()
    return f"{prefix}/{moment.year:04d}/{Path(repo).name}"


def backup_message(host: str, now: Optional[datetime] = None) -> str:
    """Commit message for a backup, tagged with the host identity."""
    moment = now or datetime.now()
    return f"git-housekeep: untracked files from {host} ({moment:%Y-%m-%d %H:%M})"


def run_backup(
    vcs: VcsAdapter,
    branch: str,
    paths: Sequence[str],
    host: str,
    now: Optional[datetime] = None,
) -> Optional[BackupResult]:
    """Back up paths onto branch.

    An empty file set is not a backup: no command is issued and None
    is returned.

    Args:
        vcs: Adapter for the repository.
        branch: Target backup branch.
        paths: Files to snapshot.
        host: Host identity for the commit message.
        now: Moment of the run.

    Returns:
        BackupResult, or None when there was nothing to back up.
    """
    if not paths:
        logger.debug("Nothing to back up on %s", branch)
        return None

    result = vcs.squash_commit(branch, backup_message(host, now), sorted(set(paths)))
    if not result.succeeded:
        logger.warning("Backup to %s failed: %s", branch, result.detail)
    return result

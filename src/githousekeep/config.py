"""Settings for a housekeeping run, resolved from the home dir and the store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from . import HOUSEKEEP_HOME, SECTION
from .backup import BRANCH_PREFIX
from .shell import user_shell
from .store import STORE_FILENAME, KeyValueStore, StoreError, YamlStore
from .vcs import DEFAULT_PROTECTED

logger = logging.getLogger("githousekeep.config")

PROTECT_KEY = "protect"


class HousekeepConfig(BaseModel):
    """Resolved settings.

    Attributes:
        home: Directory holding the store file.
        store_file: The YAML store.
        branch_prefix: Namespace of backup branches.
        protected_branches: Branches cleanup never deletes.
        shell: Shell offered at the end of each repository.
        git: Git executable.
    """

    home: Path = Field(default_factory=lambda: Path(HOUSEKEEP_HOME).expanduser())
    store_file: Optional[Path] = None
    branch_prefix: str = BRANCH_PREFIX
    protected_branches: list[str] = Field(default_factory=lambda: list(DEFAULT_PROTECTED))
    shell: str = Field(default_factory=user_shell)
    git: str = "git"

    def model_post_init(self, __context: object) -> None:
        """Default the store file to <home>/housekeep.yaml."""
        if self.store_file is None:
            self.store_file = self.home / STORE_FILENAME

    def open_store(self) -> YamlStore:
        """The file-backed store these settings point at."""
        return YamlStore(self.store_file)


def load_config(
    home: Optional[Path] = None,
    store: Optional[KeyValueStore] = None,
) -> HousekeepConfig:
    """Build settings for a run.

    Extra protected branches come from the multi-valued
    ``git-housekeep.protect`` key in the store.

    Args:
        home: Override the home directory. Defaults to ~/.git-housekeep.
        store: Store to read extra settings from. Defaults to the file
            store under home.

    Returns:
        HousekeepConfig
    """
    config = HousekeepConfig(home=Path(home).expanduser()) if home else HousekeepConfig()
    source = store if store is not None else config.open_store()

    try:
        extra = source.get_all(SECTION, PROTECT_KEY)
    except StoreError as exc:
        logger.warning("Could not read protected branches: %s; using defaults", exc)
        extra = []

    for branch in extra:
        if branch not in config.protected_branches:
            config.protected_branches.append(branch)
    return config

"""Registered repositories — the set ``--checkall`` walks over."""

from __future__ import annotations

import logging
from pathlib import Path

from . import SECTION, HousekeepError
from .store import KeyValueStore

logger = logging.getLogger("githousekeep.registry")

REPO_KEY = "repo"


class RegistryError(HousekeepError):
    """A repository could not be registered."""


class AlreadyRegisteredError(RegistryError):
    """The canonical path is already in the registry."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Already registered: {path}")
        self.path = path


def canonical_path(path: str | Path) -> Path:
    """Absolute, symlink-free form of a repository path."""
    return Path(path).expanduser().resolve()


class RepoRegistry:
    """Ordered set of repository roots persisted in the store.

    Args:
        store: Backing key-value store.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def register(self, path: str | Path) -> Path:
        """Add a repository to the registry.

        Args:
            path: Repository root, relative or absolute.

        Returns:
            Path: The canonical path that was stored.

        Raises:
            AlreadyRegisteredError: The path is already registered.
            RegistryError: The path is not a directory or could not be stored.
        """
        repo = canonical_path(path)
        if not repo.is_dir():
            raise RegistryError(f"Not a directory: {repo}")
        if repo in self:
            raise AlreadyRegisteredError(repo)
        if not self.store.add(SECTION, REPO_KEY, str(repo)):
            raise RegistryError(f"Could not register {repo}")

        logger.info("Registered %s", repo)
        return repo

    def list_all(self) -> list[Path]:
        """Registered repositories, in registration order."""
        return [Path(p) for p in self.store.get_all(SECTION, REPO_KEY)]

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.store.exists(SECTION, REPO_KEY, str(canonical_path(path)))

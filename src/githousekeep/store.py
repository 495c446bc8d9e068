"""
Persistent key-value store — the only state git-housekeep keeps.

Values are opaque strings grouped by section and key. Every key is
multi-valued: single-value keys (like ``hostname``) simply hold one
entry. Order of values is the order they were added.

On disk (``~/.git-housekeep/housekeep.yaml``)::

    git-housekeep:
      hostname:
      - laptop
      repo:
      - /home/me/src/project
      ignore:
      - build.log
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import yaml

from . import HousekeepError

logger = logging.getLogger("githousekeep.store")

STORE_FILENAME = "housekeep.yaml"

_Data = dict[str, dict[str, list[str]]]


class StoreError(HousekeepError):
    """The store file could not be read or written."""


class KeyValueStore(ABC):
    """Section/key scoped, multi-valued string store.

    Membership is exact string equality, so values that look like
    regular expressions or globs are stored and matched literally.
    """

    @abstractmethod
    def _load(self) -> _Data:
        """Return the full store contents."""

    @abstractmethod
    def _save(self, data: _Data) -> None:
        """Replace the full store contents."""

    def get_all(self, section: str, key: str) -> list[str]:
        """Return every value stored under section/key, in stored order."""
        return list(self._load().get(section, {}).get(key, []))

    def get(self, section: str, key: str) -> Optional[str]:
        """Return the last value stored under section/key, or None."""
        values = self.get_all(section, key)
        return values[-1] if values else None

    def exists(self, section: str, key: str, value: Optional[str] = None) -> bool:
        """Check whether a key (or one specific value under it) is present."""
        values = self.get_all(section, key)
        if value is None:
            return bool(values)
        return value in values

    def add(self, section: str, key: str, value: str) -> bool:
        """Append a value to section/key.

        Returns:
            bool: False if the value was already present (nothing written).
        """
        data = self._load()
        values = data.setdefault(section, {}).setdefault(key, [])
        if value in values:
            return False
        values.append(value)
        self._save(data)
        logger.debug("Added %s.%s = %s", section, key, value)
        return True

    def delete(self, section: str, key: str, value: Optional[str] = None) -> bool:
        """Remove one value, or the whole key when value is None.

        Returns:
            bool: True if anything was removed.
        """
        data = self._load()
        entries = data.get(section, {})
        if key not in entries:
            return False
        if value is None:
            del entries[key]
        else:
            if value not in entries[key]:
                return False
            entries[key] = [v for v in entries[key] if v != value]
            if not entries[key]:
                del entries[key]
        if not entries:
            data.pop(section, None)
        self._save(data)
        logger.debug("Deleted %s.%s%s", section, key, f" = {value}" if value else "")
        return True


class MemoryStore(KeyValueStore):
    """In-memory store with the same semantics as the file-backed one."""

    def __init__(self, data: Optional[_Data] = None) -> None:
        self._data: _Data = {
            section: {key: list(values) for key, values in keys.items()}
            for section, keys in (data or {}).items()
        }

    def _load(self) -> _Data:
        return {
            section: {key: list(values) for key, values in keys.items()}
            for section, keys in self._data.items()
        }

    def _save(self, data: _Data) -> None:
        self._data = data


class YamlStore(KeyValueStore):
    """File-backed store in a single YAML document.

    The file is re-read on every operation so edits made by hand
    between prompts are picked up. Writes go to a temp file in the
    same directory and are moved into place.

    Args:
        path: Location of the YAML file. Created on first write.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> _Data:
        if not self.path.exists():
            return {}
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise StoreError(f"Cannot read store {self.path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise StoreError(f"Malformed store {self.path}: expected a mapping")

        data: _Data = {}
        for section, keys in raw.items():
            if not isinstance(keys, dict):
                raise StoreError(f"Malformed store {self.path}: section {section!r}")
            data[str(section)] = {}
            for key, values in keys.items():
                if values is None:
                    values = []
                elif not isinstance(values, list):
                    values = [values]
                data[str(section)][str(key)] = [str(v) for v in values]
        return data

    def _save(self, data: _Data) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreError(f"Cannot write store {self.path}: {exc}") from exc

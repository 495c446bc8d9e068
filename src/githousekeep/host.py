"""
Host identity — a short label naming the machine in backup commits.

Asked once, on the first run, and kept in the store under
``git-housekeep.hostname`` from then on. Edit the store file by hand
to change it.
"""

from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from . import SECTION, HousekeepError
from .store import KeyValueStore, StoreError

logger = logging.getLogger("githousekeep.host")

HOST_KEY = "hostname"


class HostIdentityError(HousekeepError):
    """No host identity is stored and none could be created."""


def default_host_label() -> str:
    """Short hostname, offered as the suggestion on first run."""
    return socket.gethostname().split(".")[0]


def get_or_create_host(
    store: KeyValueStore,
    ask: Optional[Callable[[], str]] = None,
) -> str:
    """Return the stored host identity, creating it if needed.

    Args:
        store: Backing key-value store.
        ask: Callback prompting the operator for a label. None means
            prompting is not allowed (fast mode).

    Returns:
        str: The host identity.

    Raises:
        HostIdentityError: Nothing stored and no usable answer, or the
            answer could not be persisted.
    """
    host = store.get(SECTION, HOST_KEY)
    if host:
        return host

    if ask is None:
        raise HostIdentityError(
            "No host identity stored. Run once without --fast to set it."
        )

    label = (ask() or "").strip()
    if not label:
        raise HostIdentityError("A host identity is required to tag backups.")

    try:
        stored = store.add(SECTION, HOST_KEY, label)
    except StoreError as exc:
        raise HostIdentityError(f"Could not save host identity: {exc}") from exc
    if not stored and store.get(SECTION, HOST_KEY) != label:
        raise HostIdentityError("Could not save host identity.")

    logger.info("Host identity set to %s", label)
    return label

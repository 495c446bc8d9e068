"""Shared CLI plumbing: the stderr console and logging setup."""

from __future__ import annotations

import logging

from rich.console import Console

# Progress and decisions go to stderr, line by line, as they happen.
console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for a CLI run.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

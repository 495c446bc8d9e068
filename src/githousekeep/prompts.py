"""
Operator prompts.

All questions housekeeping asks go through a ``Prompter`` so the
orchestrator can be driven by a script in tests. ``ClickPrompter``
asks on the terminal, writing prompts to stderr.

Interrupts are treated differently depending on the question:

- per-file ``[y/N]``: ctrl-C or EOF leaves the file unresolved and
  the loop moves on to the next file.
- "skip this repo?": ctrl-C or EOF raises ``click.Abort`` and ends
  the whole run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import click

from .host import default_host_label
from .models import Decision


def parse_response(text: str) -> Decision:
    """Map a raw ``[y/N]`` answer to a decision.

    Only an explicit yes or no decides anything. Empty input and
    anything else leaves the file unresolved.
    """
    answer = (text or "").strip().lower()
    if answer in ("y", "yes"):
        return Decision.SAVE
    if answer in ("n", "no"):
        return Decision.IGNORE
    return Decision.UNRESOLVED


def is_yes(text: str) -> bool:
    """True for an explicit yes."""
    return (text or "").strip().lower() in ("y", "yes")


class Prompter(ABC):
    """Questions the housekeeping run may ask the operator."""

    @abstractmethod
    def decide(self, path: str) -> Decision:
        """Ask whether an unknown file should be saved or ignored."""

    @abstractmethod
    def skip_repo(self, repo: Path) -> bool:
        """Ask whether to skip a repository. May raise click.Abort."""

    @abstractmethod
    def offer_shell(self, repo: Path) -> bool:
        """Ask whether to open a shell in the repository."""

    @abstractmethod
    def host_label(self) -> str:
        """Ask for the host identity on first run."""


class ClickPrompter(Prompter):
    """Terminal prompts via click, on stderr."""

    def _ask(self, text: str) -> str:
        return click.prompt(
            text, default="", show_default=False, prompt_suffix=": ", err=True
        )

    def decide(self, path: str) -> Decision:
        try:
            return parse_response(self._ask(f"{path} [y/N]"))
        except click.Abort:
            click.echo("  (no answer, left unresolved, will ask again next run)", err=True)
            return Decision.UNRESOLVED

    def skip_repo(self, repo: Path) -> bool:
        return is_yes(self._ask(f"Skip {repo}? [y/N]"))

    def offer_shell(self, repo: Path) -> bool:
        try:
            return is_yes(self._ask(f"Open a shell in {repo}? [y/N]"))
        except click.Abort:
            click.echo(err=True)
            return False

    def host_label(self) -> str:
        return click.prompt(
            "Label for this host (used to tag backups)",
            default=default_host_label(),
            err=True,
        )

"""
Shell-command adapter — every external program runs through here.

``run_command`` captures stdout and stderr merged into one text blob
and hands back the exit status. A nonzero exit is an answer, not an
error: "no such branch yet" is a normal thing for git to say.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from .models import CommandResult

logger = logging.getLogger("githousekeep.shell")

DEFAULT_SHELL = "/bin/sh"


def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
    input_text: Optional[str] = None,
) -> CommandResult:
    """Run a command and capture its combined output.

    Args:
        cmd: Command and arguments.
        cwd: Working directory for the command.
        env: Extra environment variables, layered over os.environ.
        input_text: Text fed to the command's stdin.

    Returns:
        CommandResult with merged output and the exit status. Never
        raises for a nonzero exit or a missing executable.
    """
    argv = [str(part) for part in cmd]
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
    try:
        result = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            input=input_text,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.debug("Could not start %s: %s", argv[0] if argv else "?", exc)
        return CommandResult(command=argv, output=str(exc), returncode=127)

    return CommandResult(
        command=argv,
        output=result.stdout or "",
        returncode=result.returncode,
    )


def user_shell() -> str:
    """The operator's login shell, or /bin/sh."""
    return os.environ.get("SHELL") or DEFAULT_SHELL


def open_subshell(cwd: Path, shell: Optional[str] = None) -> int:
    """Drop the operator into an interactive shell inside cwd.

    The shell inherits the terminal. Returns when the operator exits it.

    Args:
        cwd: Directory to start the shell in.
        shell: Shell executable. Defaults to $SHELL.

    Returns:
        int: The shell's exit status (127 if it could not start).
    """
    program = shell or user_shell()
    try:
        return subprocess.run([program], cwd=str(cwd), check=False).returncode
    except OSError as exc:
        logger.warning("Could not start shell %s: %s", program, exc)
        return 127

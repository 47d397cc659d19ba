""" All external processes (compilers, linkers, archivers, CMake) are spawned through a :class:`CommandRunner`.
Commands are always argument vectors; nothing is interpreted by a shell. """

from __future__ import annotations

import abc
import logging
import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path

from kiln.core.errors import ProcessFailureError

logger = logging.getLogger(__name__)


def format_command(command: Sequence[str]) -> str:
    return " ".join(map(shlex.quote, command))


class CommandRunner(abc.ABC):
    @abc.abstractmethod
    def run(self, command: Sequence[str], cwd: Path | None = None) -> int:
        """Run *command* to completion and return its exit code."""

    def check(self, command: Sequence[str], cwd: Path | None = None) -> None:
        """Run *command* and raise a :class:`ProcessFailureError` if it returns a non-zero exit code."""

        returncode = self.run(command, cwd)
        if returncode != 0:
            raise ProcessFailureError(command, returncode)


class SubprocessCommandRunner(CommandRunner):
    """Runs commands with :mod:`subprocess`, inheriting stdout and stderr."""

    def __init__(self, echo: bool = False) -> None:
        self.echo = echo

    def run(self, command: Sequence[str], cwd: Path | None = None) -> int:
        if self.echo:
            print("$", format_command(command), flush=True)
        logger.debug("$ %s", format_command(command))
        try:
            return subprocess.call(list(command), cwd=cwd, stdin=subprocess.DEVNULL)
        except FileNotFoundError:
            logger.error("command not found: %s", command[0])
            return 127

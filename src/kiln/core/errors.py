from __future__ import annotations

import shlex
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kiln.core.task import Task


class KilnError(Exception):
    """Base class for errors that Kiln knows how to report without a traceback."""


class ConfigurationError(KilnError):
    """Raised when the declared targets can not be built as described. This is always detected before any
    external process is spawned."""


class CyclicDependencyError(ConfigurationError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)

    def __str__(self) -> str:
        return f"cyclic link dependency: {' -> '.join(self.cycle)}"


class SourceNotFoundError(KilnError):
    def __init__(self, target: str, obj: Path) -> None:
        self.target = target
        self.obj = obj

    def __str__(self) -> str:
        return f"no source of target `{self.target}` produces the object {self.obj}"


class AssetNotFoundError(FileNotFoundError, KilnError):
    def __init__(self, source: Path) -> None:
        super().__init__(f"asset source does not exist: {source}")
        self.source = source


class ProcessFailureError(KilnError):
    def __init__(self, command: Sequence[str], returncode: int) -> None:
        self.command = list(command)
        self.returncode = returncode

    def __str__(self) -> str:
        return f'command "{" ".join(map(shlex.quote, self.command))}" returned exit code {self.returncode}'


class BuildError(KilnError):
    def __init__(self, failed_tasks: Iterable[Task], messages: dict[str, str | None] | None = None) -> None:
        assert not isinstance(failed_tasks, str), type(failed_tasks)  # type: ignore[unreachable]
        assert isinstance(failed_tasks, Iterable), type(failed_tasks)
        self.failed_tasks = set(failed_tasks)
        self.messages = messages or {}

    def __str__(self) -> str:
        names = sorted(task.name for task in self.failed_tasks)
        if len(names) == 1:
            result = f'task "{names[0]}" failed'
        else:
            result = "tasks " + ", ".join(f'"{name}"' for name in names) + " failed"
        details = [f"{name}: {self.messages[name]}" for name in names if self.messages.get(name)]
        if details:
            result += "\n  " + "\n  ".join(details)
        return result

""" Pytest fixtures and fakes for testing builds without a compiler. Enable them with
`pytest_plugins = ["kiln.testing"]`. """

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import threading
import time
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path

import pytest

from kiln.core.config import BuildConfig
from kiln.core.executor.default import NullExecutorObserver
from kiln.core.runner import CommandRunner, format_command
from kiln.native.cmake import NoEscalation
from kiln.native.session import BuildSession

__all__ = [
    "RecordingCommandRunner",
    "backdate",
    "chdir_context",
    "kiln_config",
    "kiln_runner",
    "kiln_session",
    "tempdir",
    "touch",
]

logger = logging.getLogger(__name__)


class RecordingCommandRunner(CommandRunner):
    """Records every command instead of running it and materializes the files a compiler, linker or archiver
    would produce: the `-o` output, the `-MF` dependency file (listing the source and the headers registered
    for it in :attr:`headers`) and the archive of `rcs` commands.

    Commands that mention one of the paths in :attr:`failing` produce no output and return exit code 1."""

    def __init__(
        self,
        headers: Mapping[str | Path, Sequence[str | Path]] | None = None,
        failing: Iterable[str | Path] = (),
    ) -> None:
        self.commands: list[list[str]] = []
        self.headers = {Path(k): [Path(h) for h in v] for k, v in (headers or {}).items()}
        self.failing = {Path(x) for x in failing}
        self._lock = threading.Lock()

    def run(self, command: Sequence[str], cwd: Path | None = None) -> int:
        command = list(command)
        logger.debug("$ %s", format_command(command))
        with self._lock:
            self.commands.append(command)
        if any(Path(arg) in self.failing for arg in command):
            return 1

        if "-o" in command:
            output = Path(command[command.index("-o") + 1])
            if "-MF" in command:
                source = Path(command[-1])
                prerequisites = " ".join(str(p) for p in [source, *self.headers.get(source, [])])
                dependency_file = Path(command[command.index("-MF") + 1])
                dependency_file.parent.mkdir(parents=True, exist_ok=True)
                dependency_file.write_text(f"{output}: {prerequisites}\n")
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(format_command(command) + "\n")
        elif command[1:2] == ["rcs"]:
            library = Path(command[2])
            library.parent.mkdir(parents=True, exist_ok=True)
            library.write_text(format_command(command) + "\n")
        return 0

    def compiled_sources(self) -> list[Path]:
        return [Path(c[-1]) for c in self.commands if "-c" in c]

    def linked_binaries(self) -> list[Path]:
        return [Path(c[c.index("-o") + 1]) for c in self.commands if "-o" in c and "-c" not in c]

    def archived_libraries(self) -> list[Path]:
        return [Path(c[2]) for c in self.commands if c[1:2] == ["rcs"]]

    def reset(self) -> None:
        with self._lock:
            self.commands.clear()


def backdate(root: Path, seconds: float = 100) -> None:
    """Move the modification time of every file below *root* into the past, so that a subsequent :func:`touch`
    is strictly newer regardless of the file system's timestamp resolution."""

    then = time.time() - seconds
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            os.utime(Path(dirpath) / filename, (then, then))


def touch(path: Path) -> None:
    """Set the modification time of *path* to now."""

    os.utime(path, None)


@contextlib.contextmanager
def chdir_context(path: Path) -> Iterator[None]:
    cwd = Path.cwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(cwd)


@pytest.fixture
def tempdir() -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as tempdir:
        yield Path(tempdir)


@pytest.fixture
def kiln_config(tempdir: Path) -> Iterator[BuildConfig]:
    """A configuration with the build directory `build/`. The working directory is the temporary directory for
    the duration of the test, so sources can be declared with relative paths."""

    with chdir_context(tempdir):
        yield BuildConfig(build_dir=Path("build"), jobs=4)


@pytest.fixture
def kiln_runner() -> RecordingCommandRunner:
    return RecordingCommandRunner()


@pytest.fixture
def kiln_session(kiln_config: BuildConfig, kiln_runner: RecordingCommandRunner) -> Iterator[BuildSession]:
    session = BuildSession(
        kiln_config,
        runner=kiln_runner,
        observer=NullExecutorObserver(),
        privilege=NoEscalation(),
    )
    with session.as_current():
        yield session

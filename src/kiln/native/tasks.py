""" The tasks that make up a native build graph. Each task checks its outputs against its inputs in
:meth:`~kiln.core.task.Task.prepare` and spawns at most one external process in
:meth:`~kiln.core.task.Task.execute`. """

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from pathlib import Path

from kiln.common import safe_rmpath
from kiln.core.closure import object_closure
from kiln.core.config import BuildConfig
from kiln.core.paths import Layout
from kiln.core.runner import CommandRunner
from kiln.core.staleness import ArtifactState, Staleness
from kiln.core.target import Target, TargetKind
from kiln.core.task import Task, TaskStatus
from kiln.native.assets import copy_asset
from kiln.native.toolchain import Toolchain


@dataclasses.dataclass(frozen=True)
class BuildContext:
    """Everything a native task needs to know about the build it is part of."""

    config: BuildConfig
    layout: Layout
    toolchain: Toolchain
    runner: CommandRunner
    staleness: Staleness = dataclasses.field(default_factory=Staleness)


def _status_from_state(state: ArtifactState) -> TaskStatus:
    if state == ArtifactState.FRESH:
        return TaskStatus.up_to_date()
    return TaskStatus.pending(state.name.lower())


class CompileTask(Task):
    """Compiles one source of a target into an object file."""

    def __init__(self, name: str, context: BuildContext, target: Target, source: Path) -> None:
        super().__init__(name)
        self.context = context
        self.target = target
        self.source = source
        self.obj = context.layout.object_path(target, source)
        self.dependency_file = context.layout.dependency_file_path(target, source)

    def get_command(self) -> list[str]:
        return self.context.toolchain.compile_command(
            self.context.config, self.target, self.source, self.obj, self.dependency_file
        )

    def prepare(self) -> TaskStatus | None:
        return _status_from_state(self.context.staleness.object_state(self.obj, self.source, self.dependency_file))

    def execute(self) -> TaskStatus | None:
        self.logger.info("%s | Compiling %s ...", self.target.name, self.source)
        self.obj.parent.mkdir(parents=True, exist_ok=True)
        self.dependency_file.parent.mkdir(parents=True, exist_ok=True)
        self.context.runner.check(self.get_command())
        return None


class LinkTask(Task):
    """Links the object closure of an executable target."""

    def __init__(
        self, name: str, context: BuildContext, target: Target, objects: Sequence[Path] | None = None
    ) -> None:
        """
        :param objects: The object closure of the target, if it is already known.
        """

        super().__init__(name)
        self.context = context
        self.target = target
        self.binary = context.layout.binary_path(target)
        self.objects = list(objects) if objects is not None else object_closure(target, context.layout)

    def get_command(self) -> list[str]:
        return self.context.toolchain.link_command(self.context.config, self.target, self.objects, self.binary)

    def prepare(self) -> TaskStatus | None:
        return _status_from_state(self.context.staleness.binary_state(self.binary, self.objects))

    def execute(self) -> TaskStatus | None:
        self.logger.info("%s | Linking %s ...", self.target.name, self.binary)
        self.binary.parent.mkdir(parents=True, exist_ok=True)
        self.context.runner.check(self.get_command())
        return None


class ArchiveTask(LinkTask):
    """Bundles the object closure of a static library target into an archive."""

    def get_command(self) -> list[str]:
        return self.context.toolchain.archive_command(self.objects, self.binary)

    def execute(self) -> TaskStatus | None:
        # `ar` only adds and replaces members, start from scratch to drop objects of removed sources.
        safe_rmpath(self.binary)
        return super().execute()


class CopyAssetTask(Task):
    def __init__(self, name: str, context: BuildContext, source: Path, destination: Path) -> None:
        super().__init__(name)
        self.context = context
        self.source = source
        self.destination = destination

    def prepare(self) -> TaskStatus | None:
        return _status_from_state(self.context.staleness.copy_state(self.source, self.destination))

    def execute(self) -> TaskStatus | None:
        copy_asset(self.source, self.destination)
        return None


class CleanTask(Task):
    """Removes a fixed set of files or directories."""

    def __init__(self, name: str, paths: Sequence[Path]) -> None:
        super().__init__(name)
        self.paths = list(paths)

    def execute(self) -> TaskStatus | None:
        removed = 0
        for path in self.paths:
            if path.exists():
                safe_rmpath(path)
                removed += 1
        self.logger.info("removed %d of %d path(s)", removed, len(self.paths))
        return TaskStatus.succeeded(f"removed {removed} file(s)")


class RunTask(Task):
    """Executes the binary of an executable target, or serves it with `emrun` when targeting the web."""

    def __init__(self, name: str, context: BuildContext, target: Target) -> None:
        assert target.kind == TargetKind.EXECUTABLE, target
        super().__init__(name)
        self.context = context
        self.target = target
        self.binary = context.layout.binary_path(target)

    def get_command(self) -> list[str]:
        config = self.context.config
        if config.is_web:
            return ["emrun", "--hostname", config.http_hostname, "--port", str(config.http_port), str(self.binary)]
        return [str(self.binary)]

    def execute(self) -> TaskStatus | None:
        command = self.get_command()
        return TaskStatus.from_exit_code(command, self.context.runner.run(command))

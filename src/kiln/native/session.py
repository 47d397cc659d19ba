""" The :class:`BuildSession` is the single instance where all components of a build come together. It holds the
declared targets, validates them before anything is executed, translates `<target>:<verb>` requests into a
:class:`TaskGraph` and executes it. """

from __future__ import annotations

import logging
import runpy
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from kiln.common import unique
from kiln.core.closure import check_acyclic, link_closure, object_closure, objects_of
from kiln.core.config import BuildConfig
from kiln.core.currentable import Currentable
from kiln.core.errors import BuildError, ConfigurationError
from kiln.core.executor import GraphExecutor, GraphExecutorObserver
from kiln.core.executor.default import DefaultGraphExecutor, DefaultPrintingExecutorObserver, DefaultTaskExecutor
from kiln.core.graph import TaskGraph
from kiln.core.paths import Layout
from kiln.core.runner import CommandRunner, SubprocessCommandRunner
from kiln.core.staleness import ArtifactState, Staleness
from kiln.core.target import ExternalTarget, Target, TargetKind
from kiln.core.task import GroupTask, Task
from kiln.native.cmake import (
    CMakeBuild,
    ExternalBuildTask,
    ExternalCleanTask,
    ExternalConfigureTask,
    ExternalInstallTask,
    PrivilegeEscalation,
)
from kiln.native.compile_commands import COMPILE_COMMANDS_FILENAME, get_compile_commands, write_compile_commands
from kiln.native.tasks import (
    ArchiveTask,
    BuildContext,
    CleanTask,
    CompileTask,
    CopyAssetTask,
    LinkTask,
    RunTask,
)
from kiln.native.toolchain import Toolchain

DEFAULT_VERB = "build"
TARGET_VERBS = ("build", "clean", "clean_all", "rebuild", "run")
EXTERNAL_VERBS = ("build", "clean", "rebuild", "install")
CLEANING_VERBS = ("clean", "clean_all", "rebuild")

T_Task = TypeVar("T_Task", bound=Task)
logger = logging.getLogger(__name__)


class BuildSession(Currentable["BuildSession"]):
    def __init__(
        self,
        config: BuildConfig | None = None,
        runner: CommandRunner | None = None,
        toolchain: Toolchain | None = None,
        executor: GraphExecutor | None = None,
        observer: GraphExecutorObserver | None = None,
        privilege: PrivilegeEscalation | None = None,
    ) -> None:
        """
        :param config: The build configuration. Read from the environment if not specified.
        :param runner: Spawns all external processes.
        :param toolchain: The compilers to use. Defaults to the toolchain of the configured platform.
        :param executor: The executor to use when the graph is executed.
        :param observer: The executor observer to use when the graph is executed.
        :param privilege: How to run install steps of external targets. Decided per install prefix if not set.
        """

        self.config = config or BuildConfig.from_env()
        self.layout = Layout(self.config)
        self.toolchain = toolchain or Toolchain.for_platform(self.config.platform)
        self.runner = runner or SubprocessCommandRunner(echo=self.config.verbose)
        self.executor = executor or DefaultGraphExecutor(DefaultTaskExecutor(), jobs=self.config.jobs)
        self.observer = observer or DefaultPrintingExecutorObserver()
        self.privilege = privilege
        self.context = BuildContext(self.config, self.layout, self.toolchain, self.runner, Staleness())
        self._targets: dict[str, Target | ExternalTarget] = {}

    # Declaration

    def add(self, target: Target | ExternalTarget) -> None:
        if target.name in self._targets:
            raise ConfigurationError(f"a target named `{target.name}` is already declared")
        self._targets[target.name] = target

    def target(self, name: str, kind: TargetKind, **kwargs: Any) -> Target:
        """Declare a new target. Keyword arguments are passed to the :class:`Target` constructor."""

        target = Target(name, kind, **kwargs)
        self.add(target)
        return target

    def external(self, name: str, source_dir: str | Path, **kwargs: Any) -> ExternalTarget:
        """Declare a new external (CMake) target."""

        target = ExternalTarget(name, Path(source_dir), **kwargs)
        self.add(target)
        return target

    def targets(self) -> list[Target | ExternalTarget]:
        """Returns all targets in declaration order."""

        return list(self._targets.values())

    def get_target(self, name: str) -> Target | ExternalTarget:
        try:
            return self._targets[name]
        except KeyError:
            raise ConfigurationError(f"no target named `{name}`")

    def get_native_target(self, name: str) -> Target:
        target = self.get_target(name)
        if not isinstance(target, Target):
            raise ConfigurationError(f"`{name}` is an external target")
        return target

    def load_script(self, path: Path) -> None:
        """Execute a build script that declares targets in this session. The script can access the session with
        :meth:`BuildSession.current`."""

        with self.as_current():
            runpy.run_path(str(path), run_name="__kiln__")

    # Validation

    def validate(self) -> None:
        """Check the declared targets for configuration errors. This is called before any graph is constructed.

        :raise ConfigurationError: If a target has duplicate sources, links with or depends on an undeclared
            target, the link libraries form a cycle, or two sources, assets or binaries map to the same output path.
        """

        native = [t for t in self._targets.values() if isinstance(t, Target)]
        for target in native:
            duplicates = {str(s) for s in target.sources if target.sources.count(s) > 1}
            if duplicates:
                names = ", ".join(sorted(duplicates))
                raise ConfigurationError(f"`{target.name}` lists sources more than once: {names}")
            for library in target.link_libraries:
                if not isinstance(library, Target):
                    raise ConfigurationError(  # type: ignore[unreachable]
                        f"`{target.name}` can only link with native targets, got {library!r} (external targets go "
                        "into `dependencies`)"
                    )
                self._check_declared(target, library)
            for dependency in target.dependencies:
                if not isinstance(dependency, ExternalTarget):
                    raise ConfigurationError(  # type: ignore[unreachable]
                        f"`{target.name}` can only depend on external targets, got {dependency!r} (native targets "
                        "go into `link_libraries`)"
                    )
                self._check_declared(target, dependency)

        check_acyclic(native)
        self.layout.validate(native)

        # Maps output paths to a description of what is written there.
        destinations: dict[Path, str] = {
            self.layout.binary_path(t): f"the binary of `{t.name}`" for t in native if t.is_linked
        }
        for target in native:
            for asset in target.assets:
                destination = self.layout.asset_destination(asset.source, asset.destination)
                writer = f"asset {asset.source}"
                if destinations.setdefault(destination, writer) != writer:
                    raise ConfigurationError(
                        f"{destinations[destination]} and {writer} are both written to {destination}"
                    )

    def _check_declared(self, target: Target, other: Target | ExternalTarget) -> None:
        if self._targets.get(other.name) is not other:
            raise ConfigurationError(
                f"`{target.name}` refers to `{other.name}` which is not declared in this session"
            )

    # Graph construction and execution

    def parse_request(self, request: str) -> tuple[Target | ExternalTarget, str]:
        """Parse a `<target>` or `<target>:<verb>` request."""

        name, sep, verb = request.rpartition(":")
        if not sep:
            name, verb = verb, DEFAULT_VERB
        target = self.get_target(name)
        allowed = TARGET_VERBS if isinstance(target, Target) else EXTERNAL_VERBS
        if verb not in allowed:
            raise ConfigurationError(
                f"unknown verb `{verb}` for target `{name}` (expected one of {', '.join(allowed)})"
            )
        if verb == "run" and isinstance(target, Target) and target.kind != TargetKind.EXECUTABLE:
            raise ConfigurationError(f"`{name}` is not an executable and can not be run")
        return target, verb

    def get_build_graph(self, requests: Iterable[str]) -> TaskGraph:
        """Validate the session and construct the graph for the given requests.

        :raise ConfigurationError: If the targets are misconfigured or a request is invalid.
        """

        self.validate()
        return _TaskFactory(self).create_graph([self.parse_request(r) for r in requests])

    def execute(self, requests: Iterable[str] | TaskGraph) -> TaskGraph:
        """Execute the requested verbs, or an already constructed graph.

        :raise ConfigurationError: Before anything is executed if the targets are misconfigured.
        :raise BuildError: If any task failed.
        """

        graph = requests if isinstance(requests, TaskGraph) else self.get_build_graph(requests)
        self.executor.execute_graph(graph, self.observer)
        if not graph.is_complete():
            failed = list(graph.tasks(failed=True))
            messages = {t.name: status.message for t in failed if (status := graph.get_status(t)) is not None}
            raise BuildError(failed, messages)
        return graph

    def build(self, *names: str) -> TaskGraph:
        return self.execute(f"{name}:build" for name in names)

    def clean(self, name: str) -> TaskGraph:
        return self.execute([f"{name}:clean"])

    def clean_all(self, name: str) -> TaskGraph:
        return self.execute([f"{name}:clean_all"])

    def rebuild(self, name: str) -> TaskGraph:
        return self.execute([f"{name}:rebuild"])

    def run(self, name: str) -> TaskGraph:
        return self.execute([f"{name}:run"])

    def install(self, name: str) -> TaskGraph:
        return self.execute([f"{name}:install"])

    # Diagnostics

    def compile_command(self, target_name: str, source: str | Path) -> list[str]:
        """Returns the command that would compile *source* with the flags of the target. The source does not need
        to be part of the target. Nothing is executed."""

        target = self.get_native_target(target_name)
        source = Path(source)
        return self.toolchain.compile_command(
            self.config,
            target,
            source,
            self.layout.object_path(target, source),
            self.layout.dependency_file_path(target, source),
        )

    def write_compile_commands(self, target_name: str, output: Path | None = None) -> Path:
        target = self.get_native_target(target_name)
        output = output or Path(COMPILE_COMMANDS_FILENAME)
        write_compile_commands(get_compile_commands(target, self.config, self.layout, self.toolchain), output)
        logger.info("wrote %s for `%s`", output, target.name)
        return output

    def status(self, target_name: str) -> dict[Path, ArtifactState]:
        """Returns the state of every object in the target's closure and of its binary, as the next build would
        see it."""

        target = self.get_native_target(target_name)
        staleness = self.context.staleness
        states: dict[Path, ArtifactState] = {}
        for member in link_closure(target):
            for source in member.sources:
                obj = self.layout.object_path(member, source)
                states[obj] = staleness.object_state(obj, source, self.layout.dependency_file_path(member, source))
        if target.is_linked:
            binary = self.layout.binary_path(target)
            states[binary] = staleness.binary_state(binary, object_closure(target, self.layout), states)
        return states


class _TaskFactory:
    """Creates the tasks for one graph. Tasks are cached by name, so every source is compiled at most once per
    graph no matter how many targets link its object."""

    def __init__(self, session: BuildSession) -> None:
        self.session = session
        self.context = session.context
        self.layout = session.layout
        self._tasks: dict[str, Task] = {}
        self._cmake: dict[str, CMakeBuild] = {}
        self._closures: dict[str, list[Target]] = {}

        # Clean tasks that must run before the object (or external build directory) they remove is produced.
        self._object_cleaners: dict[Path, list[Task]] = {}
        self._external_cleaners: dict[str, Task] = {}

    def _get(self, name: str, factory: Callable[[], T_Task]) -> T_Task:
        if name not in self._tasks:
            self._tasks[name] = factory()
        return self._tasks[name]  # type: ignore[return-value]

    def create_graph(self, requests: Sequence[tuple[Target | ExternalTarget, str]]) -> TaskGraph:
        # Cleaning tasks are created first so that compile and configure tasks created afterwards can be ordered
        # after them.
        for target, verb in requests:
            if verb in CLEANING_VERBS:
                self.cleaner(target, "clean" if verb == "rebuild" else verb)
        goals = unique(self.request(target, verb) for target, verb in requests)
        return TaskGraph(goals)

    def request(self, target: Target | ExternalTarget, verb: str) -> Task:
        if isinstance(target, ExternalTarget):
            return self.external(target, verb)
        if verb in ("clean", "clean_all"):
            return self.cleaner(target, verb)
        if verb == "build":
            return self.build(target)
        if verb == "rebuild":
            return self._get(
                f"{target.name}:rebuild",
                lambda: GroupTask(f"{target.name}:rebuild", [self.cleaner(target, "clean"), self.build(target)]),
            )
        if verb == "run":
            return self.run(target)
        raise AssertionError(verb)

    # Native targets

    def closure(self, target: Target) -> list[Target]:
        if target.name not in self._closures:
            self._closures[target.name] = link_closure(target)
        return self._closures[target.name]

    def prerequisites(self, targets: Iterable[Target]) -> list[Task]:
        """The install tasks of the external targets that the *targets* depend on."""

        return unique(self.external(dependency, "install") for t in targets for dependency in t.dependencies)

    def cleaner(self, target: Target | ExternalTarget, verb: str) -> Task:
        if isinstance(target, ExternalTarget):
            name = f"{target.name}:clean"
            external_clean = self._get(name, lambda: ExternalCleanTask(name, self.cmake(target)))
            self._external_cleaners[target.name] = external_clean
            return external_clean

        objects = objects_of([target] if verb == "clean" else self.closure(target), self.layout)
        name = f"{target.name}:{verb}"
        task = self._get(name, lambda: CleanTask(name, objects))
        for obj in objects:
            cleaners = self._object_cleaners.setdefault(obj, [])
            if task not in cleaners:
                cleaners.append(task)
        return task

    def compile(self, target: Target, source: Path) -> CompileTask:
        name = f"{target.name}:compile:{source.as_posix()}"

        def factory() -> CompileTask:
            task = CompileTask(name, self.context, target, source)
            task.depends_on(*self._object_cleaners.get(task.obj, ()), *self.prerequisites([target]))
            return task

        return self._get(name, factory)

    def artifact(self, target: Target) -> Task:
        """The task that produces the target's binary, or groups its compile tasks for `Objects` targets."""

        closure = self.closure(target)
        task: Task
        if target.kind == TargetKind.EXECUTABLE:
            name = f"{target.name}:link"
            task = self._get(name, lambda: LinkTask(name, self.context, target, objects_of(closure, self.layout)))
        elif target.kind == TargetKind.STATIC_LIBRARY:
            name = f"{target.name}:archive"
            task = self._get(name, lambda: ArchiveTask(name, self.context, target, objects_of(closure, self.layout)))
        else:
            name = f"{target.name}:objects"
            task = self._get(name, lambda: GroupTask(name))
        task.depends_on(*(self.compile(member, source) for member in closure for source in member.sources))
        task.depends_on(*self.prerequisites(closure))
        return task

    def assets(self, target: Target) -> list[Task]:
        tasks: list[Task] = []
        for asset in target.assets:
            destination = self.layout.asset_destination(asset.source, asset.destination)
            name = f"asset:{destination.as_posix()}"
            tasks.append(self._get(name, lambda: CopyAssetTask(name, self.context, asset.source, destination)))
        return tasks

    def build(self, target: Target) -> Task:
        name = f"{target.name}:build"
        return self._get(name, lambda: GroupTask(name, [self.artifact(target), *self.assets(target)]))

    def run(self, target: Target) -> Task:
        name = f"{target.name}:run"

        def factory() -> RunTask:
            task = RunTask(name, self.context, target)
            task.depends_on(self.build(target))
            return task

        return self._get(name, factory)

    # External targets

    def cmake(self, target: ExternalTarget) -> CMakeBuild:
        if target.name not in self._cmake:
            self._cmake[target.name] = CMakeBuild(
                target, self.session.config, self.session.runner, self.session.privilege
            )
        return self._cmake[target.name]

    def external(self, target: ExternalTarget, verb: str) -> Task:
        cmake = self.cmake(target)

        def configure() -> ExternalConfigureTask:
            task = ExternalConfigureTask(f"{target.name}:configure", cmake, install_only=True)
            if target.name in self._external_cleaners:
                task.depends_on(self._external_cleaners[target.name])
            return task

        def build() -> ExternalBuildTask:
            task = ExternalBuildTask(f"{target.name}:build", cmake, install_only=True)
            task.depends_on(self._get(f"{target.name}:configure", configure))
            return task

        def install() -> Task:
            task = ExternalInstallTask(f"{target.name}:install", cmake)
            task.depends_on(self._get(f"{target.name}:build", build))
            return task

        if verb in ("build", "rebuild"):
            # The build was asked for explicitly, an existing installation does not make it up to date.
            build_task = self._get(f"{target.name}:build", build)
            build_task.install_only = False
            self._get(f"{target.name}:configure", configure).install_only = False
        if verb == "clean":
            return self.cleaner(target, verb)
        if verb == "build":
            return self._get(f"{target.name}:build", build)
        if verb == "install":
            return self._get(f"{target.name}:install", install)
        if verb == "rebuild":
            return self._get(
                f"{target.name}:rebuild",
                lambda: GroupTask(
                    f"{target.name}:rebuild",
                    [self.cleaner(target, "clean"), self._get(f"{target.name}:build", build)],
                ),
            )
        raise AssertionError(verb)

""" Drives libraries that come with their own CMake build as opaque targets. The wrapper only knows the protocol
`configure -> build -> install` and whether the declared install artifact exists; it does not model the internal
incremental state of the foreign build. """

from __future__ import annotations

import abc
import enum
import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path

from kiln.common import safe_rmpath
from kiln.core.config import BuildConfig
from kiln.core.runner import CommandRunner
from kiln.core.target import ExternalTarget
from kiln.core.task import Task, TaskStatus

BUILT_STAMP = ".kiln-built"
logger = logging.getLogger(__name__)


class ExternalState(enum.Enum):
    UNCONFIGURED = enum.auto()
    CONFIGURED = enum.auto()
    BUILT = enum.auto()
    INSTALLED = enum.auto()


class PrivilegeEscalation(abc.ABC):
    """Decides how a command that writes into a protected location is run."""

    @abc.abstractmethod
    def wrap(self, command: Sequence[str]) -> list[str]:
        ...


class NoEscalation(PrivilegeEscalation):
    def wrap(self, command: Sequence[str]) -> list[str]:
        return list(command)


class SudoEscalation(PrivilegeEscalation):
    def __init__(self, program: Sequence[str] = ("sudo",)) -> None:
        self.program = list(program)

    def wrap(self, command: Sequence[str]) -> list[str]:
        return [*self.program, *command]


def escalation_for(prefix: Path) -> PrivilegeEscalation:
    """Returns :class:`SudoEscalation` if the closest existing directory of *prefix* is not writable by the
    current user, otherwise :class:`NoEscalation`."""

    existing = prefix.absolute()
    while not existing.exists() and existing != existing.parent:
        existing = existing.parent
    if os.access(existing, os.W_OK):
        return NoEscalation()
    if shutil.which("sudo") is None:
        logger.warning("%s is not writable and sudo is not available, installing without it", existing)
        return NoEscalation()
    return SudoEscalation()


class CMakeBuild:
    """Configure, build and install an :class:`ExternalTarget` with CMake. The build directory is
    `<build_dir>/cmake/<name>` and the install prefix is the build directory itself, so the installed `lib/` and
    `include/` folders end up next to the artifacts of native targets."""

    def __init__(
        self,
        target: ExternalTarget,
        config: BuildConfig,
        runner: CommandRunner,
        privilege: PrivilegeEscalation | None = None,
    ) -> None:
        self.target = target
        self.config = config
        self.runner = runner
        self.build_dir = config.cmake_dir / target.name
        self.install_prefix = config.root
        self.privilege = privilege or escalation_for(self.install_prefix)

    @property
    def cmake_config(self) -> str:
        return "Release" if self.config.is_release else "Debug"

    @property
    def install_artifact(self) -> Path | None:
        if self.target.install_artifact is None:
            return None
        return self.install_prefix / self.target.install_artifact

    def configure_command(self) -> list[str]:
        return ["cmake", "-S", str(self.target.source_dir), "-B", str(self.build_dir), *self.target.config_flags]

    def build_command(self) -> list[str]:
        return ["cmake", "--build", str(self.build_dir), "--config", self.cmake_config, *self.target.build_flags]

    def install_command(self) -> list[str]:
        return self.privilege.wrap(
            [
                "cmake",
                "--install",
                str(self.build_dir),
                "--config",
                self.cmake_config,
                "--prefix",
                str(self.install_prefix),
                *self.target.install_flags,
            ]
        )

    def is_configured(self) -> bool:
        return (self.build_dir / "CMakeCache.txt").is_file()

    def is_built(self) -> bool:
        return (self.build_dir / BUILT_STAMP).is_file()

    def is_installed(self) -> bool:
        artifact = self.install_artifact
        return artifact is not None and artifact.exists()

    def state(self) -> ExternalState:
        if self.is_installed():
            return ExternalState.INSTALLED
        if self.is_built():
            return ExternalState.BUILT
        if self.is_configured():
            return ExternalState.CONFIGURED
        return ExternalState.UNCONFIGURED

    def configure(self) -> None:
        """Configure into a clean build directory."""

        safe_rmpath(self.build_dir)
        self.build_dir.mkdir(parents=True)
        self.runner.check(self.configure_command())

    def build(self) -> None:
        self.runner.check(self.build_command())
        (self.build_dir / BUILT_STAMP).touch()

    def install(self) -> None:
        self.runner.check(self.install_command())
        artifact = self.install_artifact
        if artifact is not None and not artifact.exists():
            logger.warning("%s was installed but %s does not exist", self.target.name, artifact)

    def clean(self) -> None:
        safe_rmpath(self.build_dir)


class ExternalConfigureTask(Task):
    def __init__(self, name: str, cmake: CMakeBuild, install_only: bool = False) -> None:
        """
        :param install_only: The task only exists so that the target can be installed. It is up to date once the
            install artifact exists.
        """

        super().__init__(name)
        self.cmake = cmake
        self.install_only = install_only

    def prepare(self) -> TaskStatus | None:
        if self.install_only and self.cmake.is_installed():
            return TaskStatus.up_to_date(f"{self.cmake.install_artifact} exists")
        if self.cmake.is_configured():
            return TaskStatus.up_to_date()
        return TaskStatus.pending()

    def execute(self) -> TaskStatus | None:
        self.cmake.configure()
        return None


class ExternalBuildTask(Task):
    """Invokes the foreign build, which is responsible for its own incremental behaviour. Unless the task is
    :attr:`install_only`, the build is invoked every time."""

    def __init__(self, name: str, cmake: CMakeBuild, install_only: bool = False) -> None:
        super().__init__(name)
        self.cmake = cmake
        self.install_only = install_only

    def prepare(self) -> TaskStatus | None:
        if self.install_only and self.cmake.is_installed():
            return TaskStatus.up_to_date(f"{self.cmake.install_artifact} exists")
        return TaskStatus.pending()

    def execute(self) -> TaskStatus | None:
        self.cmake.build()
        return None


class ExternalInstallTask(Task):
    def __init__(self, name: str, cmake: CMakeBuild) -> None:
        super().__init__(name)
        self.cmake = cmake

    def prepare(self) -> TaskStatus | None:
        if self.cmake.is_installed():
            return TaskStatus.up_to_date(f"{self.cmake.install_artifact} exists")
        return TaskStatus.pending()

    def execute(self) -> TaskStatus | None:
        self.cmake.install()
        return None


class ExternalCleanTask(Task):
    def __init__(self, name: str, cmake: CMakeBuild) -> None:
        super().__init__(name)
        self.cmake = cmake

    def execute(self) -> TaskStatus | None:
        self.cmake.clean()
        return None

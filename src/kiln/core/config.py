""" The build configuration is read once from the environment when the process starts. It is immutable and passed
explicitly into every component that needs to know about the platform, build type or output directories. """

from __future__ import annotations

import dataclasses
import enum
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from kiln.core.errors import ConfigurationError

DEFAULT_HTTP_HOSTNAME = "0.0.0.0"
DEFAULT_HTTP_PORT = 8000


class Platform(enum.Enum):
    DESKTOP = "desktop"  #: Native binaries for the host.
    WEB = "web"  #: Binaries wrapped in HTML for a browser-hosted runtime (Emscripten).


class BuildType(enum.Enum):
    RELEASE = "release"
    DEBUG = "debug"


def _parse_enum(enum_type: type[enum.Enum], value: str, variable: str) -> Any:
    try:
        return enum_type(value.lower())
    except ValueError:
        choices = ", ".join(x.value for x in enum_type)
        raise ConfigurationError(f"unexpected value for {variable}: {value!r} (expected one of {choices})")


@dataclasses.dataclass(frozen=True)
class BuildConfig:
    platform: Platform = Platform.DESKTOP
    build_type: BuildType = BuildType.RELEASE

    #: The root of all generated files. Defaults to `build-<platform>-<build_type>`.
    build_dir: Path | None = None

    #: Print the commands that are executed.
    verbose: bool = False

    #: The maximum number of tasks that are executed in parallel.
    jobs: int = dataclasses.field(default_factory=lambda: os.cpu_count() or 1)

    #: The address of the web server used to host binaries built for the web platform.
    http_hostname: str = DEFAULT_HTTP_HOSTNAME
    http_port: int = DEFAULT_HTTP_PORT

    def __post_init__(self) -> None:
        if self.build_dir is None:
            object.__setattr__(self, "build_dir", Path(f"build-{self.platform.value}-{self.build_type.value}"))
        if self.jobs < 1:
            raise ConfigurationError(f"the number of jobs must be at least 1, got {self.jobs}")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> BuildConfig:
        """Read the configuration from the `PLATFORM`, `BUILD_TYPE`, `BUILD_DIR`, `VERBOSE` and `KILN_JOBS`
        environment variables."""

        if env is None:
            env = os.environ

        kwargs: dict[str, Any] = {
            "platform": _parse_enum(Platform, env.get("PLATFORM", "desktop"), "PLATFORM"),
            "build_type": _parse_enum(BuildType, env.get("BUILD_TYPE", "release"), "BUILD_TYPE"),
            "verbose": env.get("VERBOSE", "").lower() in ("1", "true", "yes"),
        }
        if env.get("BUILD_DIR"):
            kwargs["build_dir"] = Path(env["BUILD_DIR"])
        if env.get("KILN_JOBS"):
            try:
                kwargs["jobs"] = int(env["KILN_JOBS"])
            except ValueError:
                raise ConfigurationError(f"KILN_JOBS must be an integer, got {env['KILN_JOBS']!r}")
        return cls(**kwargs)

    def with_overrides(self, **kwargs: Any) -> BuildConfig:
        """Returns a copy of the configuration with all non-`None` values in *kwargs* replaced."""

        changes = {k: v for k, v in kwargs.items() if v is not None}
        if ("platform" in changes or "build_type" in changes) and "build_dir" not in changes:
            default_dir = Path(f"build-{self.platform.value}-{self.build_type.value}")
            if self.build_dir == default_dir:
                changes["build_dir"] = None
        return dataclasses.replace(self, **changes)

    @property
    def root(self) -> Path:
        assert self.build_dir is not None
        return self.build_dir

    @property
    def obj_dir(self) -> Path:
        return self.root / "obj"

    @property
    def dep_dir(self) -> Path:
        return self.root / "dep"

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    @property
    def lib_dir(self) -> Path:
        return self.root / "lib"

    @property
    def include_dir(self) -> Path:
        return self.root / "include"

    @property
    def cmake_dir(self) -> Path:
        return self.root / "cmake"

    @property
    def is_web(self) -> bool:
        return self.platform == Platform.WEB

    @property
    def is_release(self) -> bool:
        return self.build_type == BuildType.RELEASE

    def build_type_flags(self) -> list[str]:
        """Compiler flags implied by the build type."""

        if self.is_release:
            return ["-O2"]
        return ["-g", "-O0"]

""" The target model: plain data describing the build units of a session. Targets are declared once (usually by
a build script) and are only read by the rest of the engine. """

from __future__ import annotations

import dataclasses
import enum
import shlex
from pathlib import Path

CXX_SOURCE_SUFFIXES = frozenset({".cpp", ".cc", ".cxx", ".c++", ".C"})


class TargetKind(enum.Enum):
    OBJECTS = enum.auto()  #: Compiled but not linked, a reusable collection of objects.
    STATIC_LIBRARY = enum.auto()
    EXECUTABLE = enum.auto()


@dataclasses.dataclass(frozen=True)
class Asset:
    """A runtime resource that is copied into the output directory. If no :attr:`destination` is given, the
    file is copied to the same relative path under the binary directory."""

    source: Path
    destination: Path | None = None

    @staticmethod
    def parse(pattern: str) -> Asset:
        """Parse an asset from a `<source>[:<destination>]` pattern."""

        source, sep, destination = pattern.partition(":")
        if not source:
            raise ValueError(f"wrong asset pattern: {pattern!r}")
        return Asset(Path(source), Path(destination) if sep and destination else None)


@dataclasses.dataclass(eq=False)
class Target:
    """A named build unit. Targets compare by identity; two targets with the same name can not be part of the
    same session."""

    name: str
    kind: TargetKind
    sources: list[Path] = dataclasses.field(default_factory=list)
    includes: list[str] = dataclasses.field(default_factory=list)
    defines: list[str] = dataclasses.field(default_factory=list)
    compiler_flags: list[str] = dataclasses.field(default_factory=list)
    c_flags: list[str] = dataclasses.field(default_factory=list)
    cxx_flags: list[str] = dataclasses.field(default_factory=list)
    linker_flags: list[str] = dataclasses.field(default_factory=list)
    link_libraries: list[Target] = dataclasses.field(default_factory=list)
    #: External targets that must be installed before any source of this target is compiled.
    dependencies: list[ExternalTarget] = dataclasses.field(default_factory=list)
    assets: list[Asset] = dataclasses.field(default_factory=list)

    def __post_init__(self) -> None:
        self.sources = [Path(x) for x in self.sources]
        self.assets = [Asset.parse(x) if isinstance(x, str) else x for x in self.assets]

    def __repr__(self) -> str:
        return f"Target({self.name!r}, {self.kind.name})"

    @property
    def is_linked(self) -> bool:
        """Whether the target produces a binary (executable or static library)."""

        return self.kind != TargetKind.OBJECTS

    def add_sources(self, *sources: str | Path) -> None:
        """Append sources, ignoring those that are already present."""

        for source in map(Path, sources):
            if source not in self.sources:
                self.sources.append(source)

    def add_assets(self, *assets: str | Asset) -> None:
        for asset in assets:
            self.assets.append(Asset.parse(asset) if isinstance(asset, str) else asset)


def is_cxx_source(source: Path) -> bool:
    return source.suffix in CXX_SOURCE_SUFFIXES


def split_flags(flags: str) -> list[str]:
    """Split a shell-like string of flags into tokens, e.g. `"-lfreetype -lpng"` into `["-lfreetype", "-lpng"]`."""

    return shlex.split(flags)


@dataclasses.dataclass(eq=False)
class ExternalTarget:
    """A library that is built by a foreign (CMake) build system. Kiln only drives its configure, build and install
    steps and only tracks whether the declared :attr:`install_artifact` exists."""

    name: str
    source_dir: Path
    #: Path of a file relative to the install prefix that exists once the target is installed.
    install_artifact: Path | None = None
    config_flags: list[str] = dataclasses.field(default_factory=list)
    build_flags: list[str] = dataclasses.field(default_factory=list)
    install_flags: list[str] = dataclasses.field(default_factory=list)

    def __post_init__(self) -> None:
        self.source_dir = Path(self.source_dir)
        if self.install_artifact is not None:
            self.install_artifact = Path(self.install_artifact)

    def __repr__(self) -> str:
        return f"ExternalTarget({self.name!r})"

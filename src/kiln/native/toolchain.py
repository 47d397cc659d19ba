""" Assembles compiler, linker and archiver invocations as argument vectors. Flags declared on targets are opaque
tokens; each token becomes exactly one argument. """

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from pathlib import Path

from kiln.core.config import BuildConfig, Platform
from kiln.core.target import Target, is_cxx_source


@dataclasses.dataclass(frozen=True)
class Toolchain:
    c_compiler: str
    cxx_compiler: str
    linker: str
    archiver: str

    @staticmethod
    def for_platform(platform: Platform) -> Toolchain:
        if platform == Platform.DESKTOP:
            return Toolchain(c_compiler="clang-15", cxx_compiler="clang++-15", linker="clang++-15", archiver="ar")
        if platform == Platform.WEB:
            return Toolchain(c_compiler="emcc", cxx_compiler="emcc", linker="emcc", archiver="emar")
        raise ValueError(f"unexpected platform: {platform!r}")

    def compiler_for(self, source: Path) -> str:
        return self.cxx_compiler if is_cxx_source(source) else self.c_compiler

    def compile_command(
        self,
        config: BuildConfig,
        target: Target,
        source: Path,
        obj: Path,
        dependency_file: Path,
    ) -> list[str]:
        """The command to compile *source* into *obj*. The compiler is asked to write the headers that the
        translation unit included into *dependency_file*. The source is always the last argument."""

        language_flags = target.cxx_flags if is_cxx_source(source) else target.c_flags
        return [
            self.compiler_for(source),
            *config.build_type_flags(),
            *target.compiler_flags,
            *language_flags,
            "-c",
            *(f"-I{path}" for path in target.includes),
            *(f"-D{define}" for define in target.defines),
            "-MD",
            "-MF",
            str(dependency_file),
            "-o",
            str(obj),
            str(source),
        ]

    def link_command(self, config: BuildConfig, target: Target, objects: Sequence[Path], binary: Path) -> list[str]:
        return [
            self.linker,
            *config.build_type_flags(),
            *target.compiler_flags,
            *(f"-D{define}" for define in target.defines),
            "-o",
            str(binary),
            *map(str, objects),
            *target.linker_flags,
        ]

    def archive_command(self, objects: Sequence[Path], library: Path) -> list[str]:
        return [self.archiver, "rcs", str(library), *map(str, objects)]

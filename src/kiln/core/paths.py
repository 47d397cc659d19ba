""" Deterministic mapping from sources to the files derived from them (objects, dependency files and binaries).

Object and dependency files are namespaced by the name of the target that compiles them, so the same source can be
compiled by two targets with different flags. Paths that still coincide (for example `a.c` and `a.cpp` in the same
target) are rejected by :meth:`Layout.validate`. """

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from kiln.core.config import BuildConfig
from kiln.core.errors import ConfigurationError, SourceNotFoundError
from kiln.core.target import Target, TargetKind

OBJECT_SUFFIX = ".o"
DEPENDENCY_FILE_SUFFIX = ".d"
STATIC_LIBRARY_SUFFIX = ".a"
WEB_EXECUTABLE_SUFFIX = ".html"
logger = logging.getLogger(__name__)


def _relative_source(source: Path) -> Path:
    """Turn *source* into a relative path that stays inside the directory it is joined with."""

    parts = source.parts[1:] if source.is_absolute() else source.parts
    return Path(*("__" if part == ".." else part for part in parts if part != "."))


class Layout:
    """Derives output paths from a :class:`BuildConfig`."""

    def __init__(self, config: BuildConfig) -> None:
        self.config = config

    def object_path(self, target: Target, source: Path) -> Path:
        return self.config.obj_dir / target.name / _relative_source(source).with_suffix(OBJECT_SUFFIX)

    def dependency_file_path(self, target: Target, source: Path) -> Path:
        return self.config.dep_dir / target.name / _relative_source(source).with_suffix(DEPENDENCY_FILE_SUFFIX)

    def objects(self, target: Target) -> list[Path]:
        """Returns the object files of the target's own sources, in source order."""

        return [self.object_path(target, source) for source in target.sources]

    def source_for_object(self, obj: Path, target: Target) -> Path:
        """Find the source of *target* that compiles to *obj*.

        :raise SourceNotFoundError: If no source of the target produces that object.
        """

        for source in target.sources:
            if self.object_path(target, source) == obj:
                return source
        raise SourceNotFoundError(target.name, obj)

    def binary_path(self, target: Target) -> Path:
        if target.kind == TargetKind.EXECUTABLE:
            path = self.config.bin_dir / target.name
            if self.config.is_web:
                path = path.with_name(path.name + WEB_EXECUTABLE_SUFFIX)
            return path
        if target.kind == TargetKind.STATIC_LIBRARY:
            return self.config.lib_dir / f"lib{target.name}{STATIC_LIBRARY_SUFFIX}"
        raise ConfigurationError(f"target `{target.name}` is of kind {target.kind.name} and produces no binary")

    def asset_destination(self, source: Path, destination: Path | None) -> Path:
        return self.config.bin_dir / _relative_source(destination or source)

    def validate(self, targets: Iterable[Target]) -> None:
        """Ensure that no two sources in the session are mapped to the same object or dependency file.

        :raise ConfigurationError: On the first collision.
        """

        seen: dict[Path, tuple[Target, Path]] = {}
        for target in targets:
            for source in target.sources:
                for derived in (self.object_path(target, source), self.dependency_file_path(target, source)):
                    other = seen.setdefault(derived, (target, source))
                    if other != (target, source):
                        raise ConfigurationError(
                            f"{derived} would be produced by both `{other[0].name}` ({other[1]}) and "
                            f"`{target.name}` ({source})"
                        )
        logger.debug("validated %d derived path(s)", len(seen))

""" Decides whether a derived file must be regenerated. This is the classic make rule (compare modification times)
extended with the header dependencies the compiler recorded in the object's dependency file, so that editing a
header invalidates every translation unit that included it. """

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from kiln.common import mtime_ns
from kiln.core.depfile import read_dependency_file

logger = logging.getLogger(__name__)


class ArtifactState(enum.Enum):
    MISSING = enum.auto()
    STALE = enum.auto()
    FRESH = enum.auto()

    def needs_update(self) -> bool:
        return self != ArtifactState.FRESH


def _newer(path: Path, than: int) -> bool:
    mtime = mtime_ns(path)
    return mtime is None or mtime > than


class Staleness:
    """Computes :class:`ArtifactState`s from the file system. The checks are cheap and are repeated right before a
    task executes, so results are not cached."""

    def object_state(self, obj: Path, source: Path, dependency_file: Path) -> ArtifactState:
        obj_mtime = mtime_ns(obj)
        if obj_mtime is None:
            return ArtifactState.MISSING
        if _newer(source, obj_mtime):
            logger.debug("%s is stale: %s is newer", obj, source)
            return ArtifactState.STALE
        if not dependency_file.is_file():
            logger.debug("%s is stale: dependency file %s is missing", obj, dependency_file)
            return ArtifactState.STALE
        for header in read_dependency_file(dependency_file):
            if _newer(header, obj_mtime):
                logger.debug("%s is stale: %s is newer or was removed", obj, header)
                return ArtifactState.STALE
        return ArtifactState.FRESH

    def binary_state(
        self,
        binary: Path,
        objects: Iterable[Path],
        object_states: Mapping[Path, ArtifactState] | None = None,
    ) -> ArtifactState:
        """Determine the state of a binary linked from *objects*. If the states of the objects are known (for
        example when planning a build before any compiler ran), pass them in *object_states*."""

        binary_mtime = mtime_ns(binary)
        if binary_mtime is None:
            return ArtifactState.MISSING
        for obj in objects:
            if object_states is not None and object_states.get(obj, ArtifactState.FRESH).needs_update():
                logger.debug("%s is stale: %s needs to be recompiled", binary, obj)
                return ArtifactState.STALE
            if _newer(obj, binary_mtime):
                logger.debug("%s is stale: %s is newer or missing", binary, obj)
                return ArtifactState.STALE
        return ArtifactState.FRESH

    def copy_state(self, source: Path, destination: Path) -> ArtifactState:
        destination_mtime = mtime_ns(destination)
        if destination_mtime is None:
            return ArtifactState.MISSING
        if _newer(source, destination_mtime):
            return ArtifactState.STALE
        return ArtifactState.FRESH

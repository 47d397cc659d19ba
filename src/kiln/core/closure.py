""" Computes what goes into a link: the target's own objects followed by the objects of every library it links
with, recursively and in declaration order. Some linkers resolve symbols in command-line order, so the order is
preserved rather than sorted; the first occurrence of an object decides its position. """

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from kiln.common import unique
from kiln.core.errors import CyclicDependencyError
from kiln.core.paths import Layout
from kiln.core.target import Target


def _walk(target: Target, path: list[Target], done: set[Target]) -> Iterator[Target]:
    """Depth-first pre-order walk over the link libraries. Targets in *done* were already expanded and are not
    yielded again; *path* holds the targets that are currently being expanded."""

    if target in done:
        return
    if target in path:
        cycle = path[path.index(target) :] + [target]
        raise CyclicDependencyError([t.name for t in cycle])
    yield target
    path.append(target)
    for library in target.link_libraries:
        yield from _walk(library, path, done)
    path.pop()
    done.add(target)


def link_closure(target: Target) -> list[Target]:
    """Returns *target* and all targets it links with (transitively), duplicate-free and in declaration order.

    :raise CyclicDependencyError: If a target is reachable from itself.
    """

    return list(_walk(target, [], set()))


def object_closure(target: Target, layout: Layout) -> list[Path]:
    """Returns the ordered, duplicate-free list of objects that need to be linked to produce *target*.

    :raise CyclicDependencyError: If a target is reachable from itself.
    """

    return objects_of(link_closure(target), layout)


def objects_of(targets: Iterable[Target], layout: Layout) -> list[Path]:
    """Returns the objects of the *targets* in order, without duplicates."""

    return unique(obj for t in targets for obj in layout.objects(t))


def check_acyclic(targets: Iterable[Target]) -> None:
    """
    :raise CyclicDependencyError: If any of the *targets* is part of a link cycle.
    """

    done: set[Target] = set()
    for target in targets:
        for _ in _walk(target, [], done):
            pass

"""
Provides the :class:`Currentable` base class which outfits subclasses with an :meth:`~Currentable.as_current` method
that makes a single instance of a class available globally. Build scripts use it to find the session they declare
their targets in.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, ClassVar, Generic, TypeVar, cast, overload

from kiln.common import NotSet

T = TypeVar("T")
U = TypeVar("U")


class Currentable(Generic[T]):
    __current: ClassVar[Any | None] = None  # note: ClassVar cannot contain type variables

    @contextmanager
    def as_current(self) -> Iterator[T]:
        """
        A context manager that makes the instance *self* available globally to be retrieved with :meth:`current`.

        This method is not thread-safe, and the object will be available for all threads.
        """

        prev = Currentable.__current
        try:
            Currentable.__current = self
            yield cast(T, self)
        finally:
            Currentable.__current = prev

    @overload
    @classmethod
    def current(cls) -> T:
        """Returns the current object or raises a :class:`RuntimeError`."""

    @overload
    @classmethod
    def current(cls, fallback: U) -> T | U:
        """Returns the current object or *fallback*."""

    @classmethod
    def current(cls, fallback: U | NotSet = NotSet.Value) -> T | U:
        current = Currentable.__current
        if current is None or not isinstance(current, cls):
            if fallback is NotSet.Value:
                raise RuntimeError(f"No current object for type `{cls.__name__}`")
            return fallback
        return cast(T, current)

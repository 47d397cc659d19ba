from __future__ import annotations

import enum
from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

__all__ = [
    "not_none",
    "unique",
]

T = TypeVar("T")
H = TypeVar("H", bound=Hashable)


def not_none(v: T | None, message: str | Callable[[], str] = "expected not-None") -> T:
    """
    Raise a :class:`RuntimeError` if *v* is `None`, otherwise return *v*.
    """

    if v is None:
        if callable(message):
            message = message()
        raise RuntimeError(message)
    return v


def unique(it: Iterable[H]) -> list[H]:
    """
    Return the items of *it* without duplicates. The first occurrence of an item decides its position.
    """

    seen: set[H] = set()
    result: list[H] = []
    for item in it:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class NotSet(enum.Enum):
    Value = 1

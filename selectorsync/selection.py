"""Tagged results of a selector invocation.

A selector may return its selection directly or hand back an awaitable that
resolves to it later. The difference is decided once, here, so the memoizer
and tracker only ever see ``Immediate`` or ``Pending``.
"""

import inspect
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Immediate(Generic[T]):
    """A selection that was available as soon as the selector returned."""

    value: T


@dataclass(frozen=True)
class Pending(Generic[T]):
    """A selection that is still being computed.

    Attributes:
        awaitable: Coroutine, future or any other awaitable that settles
            to the selection.
    """

    awaitable: Awaitable[T]

    def discard(self) -> None:
        """Drop a pending result that will never be awaited.

        Coroutine objects are closed so they do not warn about never being
        awaited. Futures and tasks are left alone; whoever created them owns
        their lifetime.
        """
        if inspect.iscoroutine(self.awaitable):
            self.awaitable.close()


SelectorResult = Immediate[T] | Pending[T]


def classify(result: Any) -> SelectorResult[Any]:
    """Wrap a raw selector return value in its tagged variant.

    Args:
        result: Whatever the user selector returned.

    Returns:
        ``Pending`` when the value is awaitable, ``Immediate`` otherwise.
    """
    if inspect.isawaitable(result):
        return Pending(result)
    return Immediate(result)

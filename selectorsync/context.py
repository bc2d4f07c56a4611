"""Context describing the notification currently being fanned out."""

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Literal

from ulid import ULID

NotificationReason = Literal["store", "resolution"]


@dataclass(frozen=True)
class NotificationContext:
    """Immutable description of why subscribers are being notified.

    Listeners run synchronously inside ``SubscriberBus.notify_all``, so
    they can call ``get_notification_context()`` to correlate the
    notification with the instance and resolution that produced it.

    Attributes:
        instance_id: ID of the selector instance whose bus is notifying.
        resolution_id: ID of the asynchronous resolution that committed the
            new selection, or None when the upstream store drove the
            notification directly.
        reason: "store" for a synchronous store change, "resolution" for a
            settled asynchronous selection.

    Example:
        >>> def listener() -> None:
        ...     ctx = get_notification_context()
        ...     if ctx is not None and ctx.reason == "resolution":
        ...         print("async selection landed", ctx.resolution_id)
    """

    instance_id: ULID
    resolution_id: ULID | None = None
    reason: NotificationReason = "store"


_context: contextvars.ContextVar[NotificationContext | None] = contextvars.ContextVar(
    "notification_context", default=None
)


def get_notification_context() -> NotificationContext | None:
    """Get the context of the notification in progress.

    Returns:
        The active NotificationContext, or None outside of a fan-out.
    """
    return _context.get()


@contextmanager
def notification_scope(context: NotificationContext) -> Iterator[NotificationContext]:
    """Bind ``context`` for the duration of a fan-out.

    Scopes nest: the previous context is restored on exit, even when a
    listener raises.

    Args:
        context: The context to expose to listeners.
    """
    token = _context.set(context)
    try:
        yield context
    finally:
        _context.reset(token)

"""selectorsync - memoized selections over external stores.

This module provides the public API for projecting a mutable store into
derived selections that only notify when the selection actually changes,
with support for selectors that resolve asynchronously.
"""

from .binding import SelectorBinding
from .bus import SubscriberBus
from .config import SelectorSettings
from .context import NotificationContext, get_notification_context
from .equality import EqualityFn, is_same
from .exceptions import InstanceClosedError
from .instance import SelectorInstance
from .memo import MemoState, RenderedValueRecord, SelectorMemoizer
from .selection import Immediate, Pending, SelectorResult, classify
from .store import ExternalStore, InMemoryStore
from .tracker import AsyncResolutionTracker

__all__ = [
    # Binding and instances
    "SelectorBinding",
    "SelectorInstance",
    "SelectorSettings",
    # Engine
    "AsyncResolutionTracker",
    "MemoState",
    "RenderedValueRecord",
    "SelectorMemoizer",
    "SubscriberBus",
    # Selector results
    "Immediate",
    "Pending",
    "SelectorResult",
    "classify",
    # Equality
    "EqualityFn",
    "is_same",
    # Stores
    "ExternalStore",
    "InMemoryStore",
    # Context and errors
    "InstanceClosedError",
    "NotificationContext",
    "get_notification_context",
]

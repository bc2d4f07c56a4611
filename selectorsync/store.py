"""External store interface and an in-memory reference implementation."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class ExternalStore(Protocol):
    """What a selector instance needs from the store it projects.

    ``subscribe`` registers a zero-argument listener called whenever the
    snapshot may have changed (spurious calls are allowed) and returns a
    function removing it. ``get_snapshot`` must be cheap: it runs on every
    change notification and on every read.
    """

    def subscribe(self, listener: Listener) -> Unsubscribe:
        ...

    def get_snapshot(self) -> Any:
        ...


class InMemoryStore:
    """Simple in-memory store holding one snapshot.

    Every ``set`` replaces the snapshot and synchronously calls all
    listeners, even when the new snapshot is the same object.

    This is a minimal implementation for testing - it doesn't support:
    - Concurrent access (no thread safety)
    - Batching of updates
    - A server snapshot distinct from the initial one

    Args:
        initial: The initial snapshot. Also served as the server snapshot.

    Example:
        >>> store = InMemoryStore({"todos": []})
        >>> unsubscribe = store.subscribe(lambda: print("changed"))
        >>> store.update(lambda s: {**s, "todos": ["write docs"]})
        changed
    """

    def __init__(self, initial: Any = None):
        self.snapshot = initial
        self.server_snapshot = initial
        self._listeners: list[Listener] = []

    def get_snapshot(self) -> Any:
        return self.snapshot

    def get_server_snapshot(self) -> Any:
        return self.server_snapshot

    def set(self, snapshot: Any) -> None:
        """Replace the snapshot and notify listeners."""
        self.snapshot = snapshot
        self.emit()

    def update(self, fn: Callable[[Any], Any]) -> None:
        """Replace the snapshot with ``fn(snapshot)`` and notify listeners."""
        self.set(fn(self.snapshot))

    def emit(self) -> None:
        """Notify listeners without changing the snapshot."""
        for listener in list(self._listeners):
            listener()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a listener.

        Args:
            listener: Called after every ``set``, ``update`` and ``emit``.

        Returns:
            A function removing this registration; later calls are no-ops.
        """
        self._listeners.append(listener)
        active = True

        def unsubscribe() -> None:
            nonlocal active
            if active:
                active = False
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

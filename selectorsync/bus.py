"""Fan-out of change notifications to the listeners of one instance."""

import logging
from collections.abc import Callable

from .context import NotificationContext, notification_scope

LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class SubscriberBus:
    """Per-instance set of listeners coupled to one upstream subscription.

    Host bindings poll the current selection on demand and rely on a push
    to know when to poll again. The upstream store only pushes when its own
    state changes, while an asynchronous selection lands later, so the bus
    is the push channel for both.

    The bus is attached to the upstream store for as long as anyone may be
    listening: ``attach()`` subscribes upstream, and the disposer of the last
    listener detaches again. Each attachment is released exactly once.

    Args:
        subscribe_upstream: Registers a callback with the upstream store and
            returns the function that unregisters it.
        on_store_change: The callback registered upstream.

    Example:
        >>> bus = SubscriberBus(store.subscribe, on_change)
        >>> bus.attach()
        >>> dispose = bus.add(rerender)
        >>> bus.notify_all()  # rerender() is called
        >>> dispose()  # last listener gone, store.subscribe's unsubscribe runs
    """

    def __init__(
        self,
        subscribe_upstream: Callable[[Listener], Unsubscribe],
        on_store_change: Listener,
    ):
        self.subscribe_upstream = subscribe_upstream
        self.on_store_change = on_store_change
        # Keyed by id(): listeners are identity-keyed and need not be hashable.
        # dict keeps insertion order so listeners are notified in the order added.
        self._listeners: dict[int, Listener] = {}
        self._unsubscribe_upstream: Unsubscribe | None = None

    @property
    def attached(self) -> bool:
        """Whether the upstream subscription is currently held."""
        return self._unsubscribe_upstream is not None

    def attach(self) -> None:
        """Subscribe to the upstream store unless already subscribed."""
        if self._unsubscribe_upstream is None:
            self._unsubscribe_upstream = self.subscribe_upstream(self.on_store_change)

    def detach(self) -> None:
        """Release the upstream subscription, at most once per attach."""
        unsubscribe, self._unsubscribe_upstream = self._unsubscribe_upstream, None
        if unsubscribe is not None:
            LOGGER.debug("Detaching from upstream store")
            unsubscribe()

    def add(self, listener: Listener) -> Unsubscribe:
        """Register a listener.

        Adding the same object twice keeps a single registration. Distinct
        objects are kept apart even when they compare equal. If the
        bus was detached because its last listener left, it re-attaches.

        Args:
            listener: Zero-argument callable invoked on every notification.

        Returns:
            A disposer removing the listener. Calling it more than once is a
            no-op. When it removes the last listener, the upstream
            subscription is released.
        """
        self._listeners[id(listener)] = listener
        self.attach()
        disposed = False

        def dispose() -> None:
            nonlocal disposed
            if disposed:
                return
            disposed = True
            if self._listeners.get(id(listener)) is listener:
                del self._listeners[id(listener)]
            if not self._listeners:
                self.detach()

        return dispose

    def notify_all(self, context: NotificationContext | None = None) -> None:
        """Call every registered listener.

        Listeners are taken from a copy of the set, so one may remove itself
        or another listener while being notified. A listener that raises
        stops the fan-out and the error reaches the notifier.

        Args:
            context: Exposed to listeners through
                ``get_notification_context()`` while they run.
        """
        listeners = list(self._listeners.values())
        if context is None:
            for listener in listeners:
                listener()
            return
        with notification_scope(context):
            for listener in listeners:
                listener()

    def clear(self) -> None:
        """Drop every listener and release the upstream subscription."""
        self._listeners.clear()
        self.detach()

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return self._listeners.get(id(listener)) is listener

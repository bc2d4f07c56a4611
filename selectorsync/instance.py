"""A single memoized subscription of a selector to an external store."""

import logging
from collections.abc import Callable
from functools import partial
from typing import Any

from ulid import ULID

from .bus import Listener, SubscriberBus, Unsubscribe
from .config import SelectorSettings
from .context import NotificationContext
from .equality import EqualityFn
from .exceptions import InstanceClosedError
from .memo import MemoState, RenderedValueRecord, Selector, SelectorMemoizer
from .selection import Pending
from .tracker import AsyncResolutionTracker

LOGGER = logging.getLogger(__name__)

Subscribe = Callable[[Listener], Unsubscribe]
GetSnapshot = Callable[[], Any]


class SelectorInstance:
    """Wires a memoizer, a resolution tracker and a bus to one store.

    An instance is built for one combination of snapshot getter, server
    snapshot getter, selector and equality function, and owns all of its
    memoized state. It subscribes to the store on construction and exposes
    the three entry points a host binding needs:

    - ``subscribe_internal(listener)``: be told when to read again.
    - ``get_selection()``: read the current selection.
    - ``get_server_selection``: None without a server snapshot getter,
      otherwise a callable deriving the selection from the server snapshot.

    Store changes are routed through the memoizer. A synchronous selection
    notifies the listeners right away; a pending one is handed to the
    tracker, which notifies once it has committed.

    Args:
        subscribe: The store's subscribe function.
        get_snapshot: Returns the store's current snapshot.
        selector: Derives a selection, directly or as an awaitable.
        get_server_snapshot: Optional getter for a server-provided snapshot.
        is_equal: Optional semantic equality for selections.
        rendered: The binding's rendered value record. A private one is
            created when omitted.
        settings: Runtime settings. Defaults are read from the environment
            when omitted.

    Example:
        >>> store = InMemoryStore({"count": 0})
        >>> instance = SelectorInstance(
        ...     store.subscribe, store.get_snapshot, lambda s: s["count"]
        ... )
        >>> dispose = instance.subscribe_internal(lambda: print("changed"))
        >>> store.set({"count": 1})
        changed
        >>> instance.get_selection()
        1
    """

    def __init__(
        self,
        subscribe: Subscribe,
        get_snapshot: GetSnapshot,
        selector: Selector,
        *,
        get_server_snapshot: GetSnapshot | None = None,
        is_equal: EqualityFn | None = None,
        rendered: RenderedValueRecord | None = None,
        settings: SelectorSettings | None = None,
    ):
        self.id = ULID()
        self.settings = settings if settings is not None else SelectorSettings()
        self.get_snapshot = get_snapshot
        self.state = MemoState()
        self.rendered = rendered if rendered is not None else RenderedValueRecord()
        self.memoizer = SelectorMemoizer(self.state, selector, self.rendered, is_equal)
        self.bus = SubscriberBus(subscribe, self._on_store_change)
        self.tracker = AsyncResolutionTracker(self.memoizer, self.bus, self.id, self.settings)
        self.closed = False

        self.get_server_selection: Callable[[], Any] | None = None
        if get_server_snapshot is not None:
            self.get_server_selection = partial(self._select_server, get_server_snapshot)

        LOGGER.log(
            self.settings.level,
            "Selector instance created",
            extra={"instance_id": str(self.id)},
        )
        self.bus.attach()

    def subscribe_internal(self, listener: Listener) -> Unsubscribe:
        """Register a listener for selection changes.

        Args:
            listener: Called after every store change and after every
                committed asynchronous selection.

        Returns:
            Disposer removing the listener; removing the last one releases
            the store subscription.

        Raises:
            InstanceClosedError: If the instance has been closed.
        """
        if self.closed:
            raise InstanceClosedError(f"Selector instance {self.id} is closed")
        return self.bus.add(listener)

    def get_selection(self) -> Any:
        """Read the current selection.

        While a resolution is in flight the last committed selection is
        returned and the selector is not invoked. The first read that meets
        an asynchronous selector starts one background resolution; later
        pending results met by the getter are dropped, since starting new
        resolutions is left to store change notifications from then on.

        Returns:
            The committed selection, or None if nothing has been committed.
        """
        next_snapshot = self.get_snapshot()
        if self.tracker.busy:
            return self.state.memoized_selection

        result = self.memoizer.compute_selection(next_snapshot)
        if isinstance(result, Pending):
            if self.state.first_run:
                self.state.first_run = False
                self.tracker.spawn(next_snapshot, result)
            else:
                result.discard()
        return self.state.memoized_selection

    async def drain(self) -> None:
        """Wait for in-flight resolutions; see ``AsyncResolutionTracker.drain``."""
        await self.tracker.drain()

    def close(self) -> None:
        """Drop all listeners and release the store subscription.

        Resolutions already in flight still run to completion.
        """
        if self.closed:
            return
        self.closed = True
        self.bus.clear()
        LOGGER.log(
            self.settings.level,
            "Selector instance closed",
            extra={"instance_id": str(self.id)},
        )

    def _on_store_change(self) -> None:
        generation = self.tracker.begin()
        next_snapshot = self.get_snapshot()
        result = self.memoizer.compute_selection(next_snapshot)
        if isinstance(result, Pending):
            self.tracker.spawn(next_snapshot, result, generation=generation)
            return
        # A synchronous answer supersedes resolutions started before it.
        self.tracker.settled(generation)
        self.bus.notify_all(NotificationContext(instance_id=self.id))

    def _select_server(self, get_server_snapshot: GetSnapshot) -> Any:
        result = self.memoizer.select_once(get_server_snapshot())
        if isinstance(result, Pending):
            result.discard()
            return self.state.memoized_selection
        return result.value

"""Long-lived handle that rebuilds selector instances as inputs change."""

import logging
from types import TracebackType
from typing import Any

from .config import SelectorSettings
from .equality import EqualityFn
from .instance import GetSnapshot, SelectorInstance, Subscribe
from .memo import RenderedValueRecord, Selector

LOGGER = logging.getLogger(__name__)


class SelectorBinding:
    """The consumer-side half of a selector subscription.

    A binding plays the part of a UI hook: it lives as long as its
    consumer, is asked for a selection with a given set of inputs each
    time the consumer reads, and keeps a record of the value the consumer
    last committed.

    Memoized state belongs to a ``SelectorInstance``, not to the binding.
    Whenever the inputs ``(get_snapshot, get_server_snapshot, selector,
    is_equal)`` change, the current instance is closed and a fresh one is
    built, so stale memoized selections are never served for new inputs.
    Inputs are compared with ``==``, which treats two bound methods of the
    same object as the same input.

    Args:
        subscribe: The store's subscribe function.
        settings: Settings handed to every instance.

    Example:
        >>> binding = SelectorBinding(store.subscribe)
        >>> instance = binding.bind(store.get_snapshot, select_todos)
        >>> dispose = instance.subscribe_internal(schedule_render)
        >>> todos = binding.read()
    """

    def __init__(self, subscribe: Subscribe, settings: SelectorSettings | None = None):
        self.subscribe = subscribe
        self.settings = settings if settings is not None else SelectorSettings()
        self.rendered = RenderedValueRecord()
        self.instance: SelectorInstance | None = None
        self._inputs: tuple[Any, ...] | None = None
        # Closed instances that may still have resolutions or errors to report
        self.retired: list[SelectorInstance] = []

    def bind(
        self,
        get_snapshot: GetSnapshot,
        selector: Selector,
        *,
        get_server_snapshot: GetSnapshot | None = None,
        is_equal: EqualityFn | None = None,
    ) -> SelectorInstance:
        """Return the instance for these inputs, rebuilding it if they changed.

        Args:
            get_snapshot: Returns the store's current snapshot.
            selector: Derives a selection, directly or as an awaitable.
            get_server_snapshot: Optional getter for a server snapshot.
            is_equal: Optional semantic equality for selections.

        Returns:
            The current SelectorInstance.
        """
        inputs = (get_snapshot, get_server_snapshot, selector, is_equal)
        if self.instance is not None and self._inputs == inputs:
            return self.instance

        if self.instance is not None:
            LOGGER.log(
                self.settings.level,
                "Selector inputs changed, rebuilding instance",
                extra={"instance_id": str(self.instance.id)},
            )
            self.instance.close()
            self.retired = [
                instance
                for instance in self.retired
                if instance.tracker.busy or instance.tracker.failure is not None
            ]
            self.retired.append(self.instance)

        self.instance = SelectorInstance(
            self.subscribe,
            get_snapshot,
            selector,
            get_server_snapshot=get_server_snapshot,
            is_equal=is_equal,
            rendered=self.rendered,
            settings=self.settings,
        )
        self._inputs = inputs
        return self.instance

    def commit(self, value: Any) -> None:
        """Record ``value`` as what the consumer is now showing."""
        self.rendered.record(value)

    def read(self) -> Any:
        """Read the current selection and record it as committed.

        Returns:
            The selection of the bound instance.

        Raises:
            RuntimeError: If ``bind()`` has not been called yet.
        """
        if self.instance is None:
            raise RuntimeError("bind() must be called before read()")
        value = self.instance.get_selection()
        self.commit(value)
        return value

    def close(self) -> None:
        """Close the current instance, if any."""
        if self.instance is not None:
            self.instance.close()

    async def drain(self) -> None:
        """Wait for the resolutions of the current and retired instances.

        Every instance is drained before an error is raised.

        Raises:
            Exception: The first resolution error found, unchanged.
        """
        instances = [*self.retired, *([self.instance] if self.instance is not None else [])]
        self.retired = []
        first_error: Exception | None = None
        for instance in instances:
            try:
                await instance.drain()
            except Exception as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def __aenter__(self) -> "SelectorBinding":
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_value: BaseException | None,
        _traceback: TracebackType | None,
    ) -> None:
        self.close()
        await self.drain()

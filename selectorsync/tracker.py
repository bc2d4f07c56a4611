"""Tracking of asynchronous selector resolutions for one instance."""

import asyncio
import logging
from typing import Any

from ulid import ULID

from .bus import SubscriberBus
from .config import SelectorSettings
from .context import NotificationContext
from .memo import SelectorMemoizer
from .selection import Pending

LOGGER = logging.getLogger(__name__)


class AsyncResolutionTracker:
    """Awaits pending selections, commits them, and notifies the bus.

    While any resolution is awaited the instance's ``is_pending`` flag is
    set, which makes the pull-based getter serve the last committed
    selection instead of starting work of its own. Resolutions are never
    cancelled: each one runs to completion and then commits or discards.

    Two resolutions can overlap when the store changes twice before the
    first settles. How their results are committed is governed by
    ``SelectorSettings.overlap_policy``:

    - ``commit_all`` commits in settle order. An older resolution that
      settles after a newer one overwrites the newer result.
    - ``latest_wins`` numbers every trigger in the order it happened,
      whether its selection was synchronous or pending. A resolution is
      dropped when a later trigger has already settled, either by a
      synchronous commit or by a resolution that committed, was discarded
      as equal, or failed.

    Errors raised while awaiting or committing are logged. The first one
    since the last ``drain()`` is kept and re-raised there; the memoized
    selection stays at its last good value.

    Args:
        memoizer: The instance's memoizer, whose state is committed to.
        bus: The instance's bus, notified after every commit.
        instance_id: ID of the owning instance, used for logging, task names
            and notification context.
        settings: Runtime settings.
    """

    def __init__(
        self,
        memoizer: SelectorMemoizer,
        bus: SubscriberBus,
        instance_id: ULID,
        settings: SelectorSettings,
    ):
        self.memoizer = memoizer
        self.bus = bus
        self.instance_id = instance_id
        self.settings = settings
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failure: BaseException | None = None
        self._awaiting = 0
        self._started = 0
        self._settled = 0

    @property
    def busy(self) -> bool:
        """Whether a resolution has been started and not finished yet."""
        return self.memoizer.state.is_pending or bool(self._tasks)

    @property
    def in_flight(self) -> int:
        """Number of spawned resolutions that have not finished yet."""
        return len(self._tasks)

    @property
    def failure(self) -> BaseException | None:
        """The first resolution error since the last ``drain()``, if any."""
        return self._failure

    def begin(self) -> int:
        """Allocate the generation of a new trigger.

        Returns:
            A number greater than every generation handed out before.
        """
        self._started += 1
        return self._started

    def settled(self, generation: int) -> bool:
        """Record that the trigger ``generation`` has settled.

        Args:
            generation: The trigger that settled.

        Returns:
            True if a later trigger had already settled, meaning this one is
            superseded.
        """
        superseded = generation < self._settled
        self._settled = max(self._settled, generation)
        return superseded

    def spawn(
        self,
        next_snapshot: Any,
        pending: Pending[Any],
        *,
        generation: int | None = None,
    ) -> "asyncio.Task[Any]":
        """Start resolving ``pending`` in the background.

        Args:
            next_snapshot: Snapshot the pending selection was computed from.
            pending: The selector's pending result.
            generation: Trigger generation from ``begin()``. Allocated here
                when not given.

        Returns:
            The task running ``resolve_async``.

        Raises:
            RuntimeError: If no event loop is running. The pending result is
                discarded first.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            pending.discard()
            raise
        if generation is None:
            generation = self.begin()
        task = loop.create_task(
            self.resolve_async(next_snapshot, pending, generation=generation),
            name=f"{self.settings.task_name_prefix}-{self.instance_id}-{generation}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def resolve_async(
        self,
        next_snapshot: Any,
        pending: Pending[Any],
        *,
        generation: int | None = None,
    ) -> Any:
        """Await a pending selection and commit it.

        Args:
            next_snapshot: Snapshot the pending selection was computed from.
            pending: The selector's pending result.
            generation: Trigger generation of this resolution. Allocated on
                entry when not given.

        Returns:
            The selection readers see once this resolution has finished.
        """
        if generation is None:
            generation = self.begin()
        state = self.memoizer.state
        if self.memoizer.is_current(next_snapshot):
            pending.discard()
            self.settled(generation)
            return state.memoized_selection

        resolution_id = ULID()
        extra = {
            "instance_id": str(self.instance_id),
            "resolution_id": str(resolution_id),
            "generation": generation,
        }
        LOGGER.log(self.settings.level, "Selector resolution started", extra=extra)

        self._awaiting += 1
        state.is_pending = True
        try:
            selection = await pending.awaitable
        finally:
            self._awaiting -= 1
            state.is_pending = self._awaiting > 0
            superseded = self.settled(generation)

        if self.settings.overlap_policy == "latest_wins" and superseded:
            LOGGER.log(self.settings.level, "Discarded superseded selection", extra=extra)
            return state.memoized_selection

        if not self.memoizer.commit_resolved(next_snapshot, selection):
            LOGGER.log(self.settings.level, "Discarded equal selection", extra=extra)
            return state.memoized_selection

        LOGGER.log(self.settings.level, "Committed resolved selection", extra=extra)
        self.bus.notify_all(
            NotificationContext(
                instance_id=self.instance_id,
                resolution_id=resolution_id,
                reason="resolution",
            )
        )
        return state.memoized_selection

    async def drain(self) -> None:
        """Wait for every spawned resolution to finish.

        Raises:
            Exception: The first error raised by a resolution since the last
                drain, unchanged. Later errors are only logged.
        """
        while self._tasks:
            await asyncio.wait(set(self._tasks))
        failure, self._failure = self._failure, None
        if failure is not None:
            raise failure

    def _on_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error(
                "Selector resolution failed",
                exc_info=error,
                extra={"instance_id": str(self.instance_id)},
            )
            if self._failure is None:
                self._failure = error

"""Memoization of one selector against a stream of store snapshots."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .equality import EqualityFn, is_same
from .selection import Immediate, Pending, SelectorResult, classify

Selector = Callable[[Any], Any]


@dataclass
class MemoState:
    """Memoized state owned by exactly one selector instance.

    ``memoized_selection`` is only meaningful once ``has_memo`` is True.
    ``memoized_snapshot`` may be recorded earlier, when the very first
    selector call turned out to be asynchronous.

    Attributes:
        has_memo: Whether a selection has been committed yet.
        memoized_snapshot: Snapshot the committed selection was derived from.
        memoized_selection: The committed selection readers see.
        first_run: True until the getter has started its one resolution.
        is_pending: True while an asynchronous resolution is awaited.
    """

    has_memo: bool = False
    memoized_snapshot: Any = None
    memoized_selection: Any = None
    first_run: bool = True
    is_pending: bool = False


@dataclass
class RenderedValueRecord:
    """The value the host binding last committed to its consumer.

    Owned by the binding rather than the instance, so it outlives instance
    rebuilds and lets a fresh instance hand back the value already on screen.
    """

    has_value: bool = False
    value: Any = None

    def record(self, value: Any) -> None:
        self.has_value = True
        self.value = value


class SelectorMemoizer:
    """Decides between reusing the memoized selection and recomputing it.

    The snapshot and selection are always committed as a pair. A selector
    may answer synchronously on one call and asynchronously on the next;
    pending answers are handed back untouched and committed later through
    ``commit_resolved``.

    Args:
        state: The instance's MemoState.
        selector: User function deriving a selection from a snapshot.
        rendered: The binding's record of the value currently rendered.
        is_equal: Optional semantic equality for selections. When it judges
            a fresh selection equal to the one already held, the held
            reference is kept so downstream memoization survives.
        snapshot_equal: Snapshot comparison, identity by default.
    """

    def __init__(
        self,
        state: MemoState,
        selector: Selector,
        rendered: RenderedValueRecord,
        is_equal: EqualityFn | None = None,
        snapshot_equal: EqualityFn = is_same,
    ):
        self.state = state
        self.selector = selector
        self.rendered = rendered
        self.is_equal = is_equal
        self.snapshot_equal = snapshot_equal

    def compute_selection(self, next_snapshot: Any) -> SelectorResult[Any]:
        """Return the selection for ``next_snapshot``, recomputing if needed.

        Args:
            next_snapshot: The snapshot just read from the store.

        Returns:
            ``Immediate`` with the selection readers should see, or the
            selector's ``Pending`` result. A pending result leaves the
            memoized pair untouched.
        """
        state = self.state
        if not state.has_memo:
            state.memoized_snapshot = next_snapshot
            result = classify(self.selector(next_snapshot))
            if isinstance(result, Pending):
                return result
            state.has_memo = True
            state.memoized_selection = self._reuse_rendered(result.value)
            return Immediate(state.memoized_selection)

        if self.snapshot_equal(state.memoized_snapshot, next_snapshot):
            return Immediate(state.memoized_selection)

        result = classify(self.selector(next_snapshot))
        if isinstance(result, Pending):
            return result

        if self.is_equal is not None and self.is_equal(state.memoized_selection, result.value):
            return Immediate(state.memoized_selection)

        state.memoized_snapshot = next_snapshot
        state.memoized_selection = result.value
        return Immediate(result.value)

    def is_current(self, snapshot: Any) -> bool:
        """Whether ``snapshot`` is the one the committed selection came from."""
        return self.state.has_memo and self.snapshot_equal(self.state.memoized_snapshot, snapshot)

    def commit_resolved(self, next_snapshot: Any, selection: Any) -> bool:
        """Commit a selection that settled asynchronously.

        Applies the same reuse rules as the synchronous path against the
        state at the moment the selection settled.

        Args:
            next_snapshot: Snapshot the selection was computed from.
            selection: The settled selection.

        Returns:
            True if the memoized pair changed, False if the selection was
            discarded as equal to the one already held.
        """
        state = self.state
        if not state.has_memo:
            state.has_memo = True
            state.memoized_snapshot = next_snapshot
            state.memoized_selection = self._reuse_rendered(selection)
            return True

        if self.is_equal is not None and self.is_equal(state.memoized_selection, selection):
            return False

        state.memoized_snapshot = next_snapshot
        state.memoized_selection = selection
        return True

    def select_once(self, snapshot: Any) -> SelectorResult[Any]:
        """Run the selector without reading or writing memoized state."""
        return classify(self.selector(snapshot))

    def _reuse_rendered(self, selection: Any) -> Any:
        # A new instance may compute a value equal to what is already on
        # screen; hand back the rendered reference in that case.
        if self.is_equal is not None and self.rendered.has_value:
            if self.is_equal(self.rendered.value, selection):
                return self.rendered.value
        return selection

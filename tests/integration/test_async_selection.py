"""End-to-end scenarios for asynchronous selectors."""

import operator

import pytest

from selectorsync import InMemoryStore, SelectorInstance
from selectorsync.testing import DeferredSelector, NotificationRecorder, settle


@pytest.mark.asyncio
async def test_store_change_resolves_then_notifies_once():
    """Verify readers see the prior value until the selection lands."""
    store = InMemoryStore("initial")
    selector = DeferredSelector()
    instance = SelectorInstance(store.subscribe, store.get_snapshot, selector)
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    store.set("A")
    await settle()

    assert instance.get_selection() is None
    assert recorder.count == 0

    selector.resolve(0, {"count": 1})
    await instance.drain()

    assert recorder.count == 1
    assert recorder.last == {"count": 1}
    assert instance.get_selection() == {"count": 1}
    assert selector.calls == 1


@pytest.mark.asyncio
async def test_first_read_starts_exactly_one_resolution():
    """Verify repeated reads before settlement do not start more work."""
    store = InMemoryStore({"count": 4})
    selector = DeferredSelector(lambda s: s["count"])
    instance = SelectorInstance(store.subscribe, store.get_snapshot, selector)
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    assert instance.get_selection() is None
    assert instance.get_selection() is None
    await settle()
    assert instance.get_selection() is None

    assert selector.calls == 1
    assert instance.state.first_run is False

    selector.resolve_all()
    await instance.drain()

    assert recorder.seen == [4]
    assert instance.get_selection() == 4


@pytest.mark.asyncio
async def test_notification_context_identifies_resolution():
    """Verify listeners of an async commit see the resolution context."""
    store = InMemoryStore("initial")
    selector = DeferredSelector(str.upper)
    instance = SelectorInstance(store.subscribe, store.get_snapshot, selector)
    recorder = NotificationRecorder()
    instance.subscribe_internal(recorder)

    store.set("a")
    await settle()
    selector.resolve_all()
    await instance.drain()

    (context,) = recorder.contexts
    assert context.reason == "resolution"
    assert context.instance_id == instance.id
    assert context.resolution_id is not None


@pytest.mark.asyncio
async def test_getter_does_not_restart_resolution_after_first_run():
    """Verify only store changes start resolutions after the first read."""
    store = InMemoryStore("a")
    selector = DeferredSelector(str.upper)
    instance = SelectorInstance(store.subscribe, store.get_snapshot, selector)

    instance.get_selection()
    await settle()
    selector.resolve_all()
    await instance.drain()
    assert instance.get_selection() == "A"

    # Snapshot changes without a notification: the getter may call the
    # selector but must not start a resolution of its own.
    store.snapshot = "b"
    assert instance.get_selection() == "A"
    assert instance.tracker.in_flight == 0

    store.emit()
    assert instance.tracker.in_flight == 1
    await settle()
    selector.resolve_all()
    await instance.drain()
    assert instance.get_selection() == "B"


@pytest.mark.asyncio
async def test_rejected_selection_keeps_stale_value_visible():
    """Verify a failed resolution leaves the last good selection readable."""
    store = InMemoryStore("a")
    selector = DeferredSelector(str.upper)
    instance = SelectorInstance(store.subscribe, store.get_snapshot, selector)
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    instance.get_selection()
    await settle()
    selector.resolve(0)
    await instance.drain()

    store.set("b")
    await settle()
    selector.reject(1, ConnectionError("backend down"))

    with pytest.raises(ConnectionError):
        await instance.drain()

    assert instance.state.memoized_selection == "A"
    assert instance.state.is_pending is False
    assert recorder.seen == ["A"]

    store.set("c")
    await settle()
    selector.resolve(2)
    await instance.drain()
    assert recorder.last == "C"


@pytest.mark.asyncio
async def test_equal_async_selection_does_not_notify():
    """Verify an equal settled selection keeps the reference quietly."""
    store = InMemoryStore({"todos": ["a"], "count": 0})
    selector = DeferredSelector(lambda s: list(s["todos"]))
    instance = SelectorInstance(
        store.subscribe, store.get_snapshot, selector, is_equal=operator.eq
    )
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    instance.get_selection()
    await settle()
    selector.resolve_all()
    await instance.drain()
    held = instance.get_selection()

    store.update(lambda s: {**s, "count": 1})
    await settle()
    selector.resolve_all()
    await instance.drain()

    assert recorder.count == 1
    assert instance.state.memoized_selection is held


@pytest.mark.asyncio
async def test_selector_switching_between_sync_and_async():
    """Verify one selector may answer synchronously and asynchronously."""
    store = InMemoryStore(1)
    deferred = DeferredSelector(lambda s: s * 10)

    def selector(snapshot):
        if snapshot % 2:
            return snapshot * 10
        return deferred(snapshot)

    instance = SelectorInstance(store.subscribe, store.get_snapshot, selector)
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    assert instance.get_selection() == 10

    store.set(2)
    await settle()
    assert instance.get_selection() == 10
    deferred.resolve_all()
    await instance.drain()
    assert instance.get_selection() == 20

    store.set(3)
    assert recorder.seen == [20, 30]


@pytest.mark.asyncio
async def test_overlapping_resolutions_commit_in_settle_order(settings):
    """Verify the default policy lets a late stale result win.

    Two store changes start two resolutions. When the older one settles
    last, its selection overwrites the newer one.
    """
    store = InMemoryStore("s0")
    selector = DeferredSelector(str.upper)
    instance = SelectorInstance(
        store.subscribe, store.get_snapshot, selector, settings=settings
    )
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    store.set("a")
    store.set("b")
    await settle()
    assert instance.tracker.in_flight == 2

    selector.resolve(1)
    await settle()
    selector.resolve(0)
    await instance.drain()

    assert recorder.seen == ["B", "A"]
    assert instance.state.memoized_selection == "A"


@pytest.mark.asyncio
async def test_overlapping_resolutions_latest_wins(latest_wins_settings):
    """Verify latest_wins never commits a result out of trigger order."""
    store = InMemoryStore("s0")
    selector = DeferredSelector(str.upper)
    instance = SelectorInstance(
        store.subscribe, store.get_snapshot, selector, settings=latest_wins_settings
    )
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    store.set("a")
    store.set("b")
    await settle()

    selector.resolve(1)
    await settle()
    selector.resolve(0)
    await instance.drain()

    assert recorder.seen == ["B"]
    assert instance.state.memoized_selection == "B"
    assert instance.state.memoized_snapshot == "b"


@pytest.mark.asyncio
async def test_latest_wins_sync_answer_supersedes_pending_resolution(latest_wins_settings):
    """Verify a newer synchronous selection is not overwritten by an older async one."""
    store = InMemoryStore(1)
    deferred = DeferredSelector(lambda s: s * 10)

    def selector(snapshot):
        if snapshot % 2:
            return snapshot * 10
        return deferred(snapshot)

    instance = SelectorInstance(
        store.subscribe, store.get_snapshot, selector, settings=latest_wins_settings
    )
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)
    assert instance.get_selection() == 10

    store.set(2)
    store.set(3)
    await settle()
    deferred.resolve_all()
    await instance.drain()

    assert instance.state.memoized_selection == 30
    assert instance.state.memoized_snapshot == 3
    assert recorder.seen == [30]


@pytest.mark.asyncio
async def test_latest_wins_equal_result_supersedes_older_resolution(latest_wins_settings):
    """Verify a newer result discarded as equal still blocks an older one."""
    store = InMemoryStore("x1")
    selector = DeferredSelector(lambda s: s[0].upper())
    instance = SelectorInstance(
        store.subscribe,
        store.get_snapshot,
        selector,
        is_equal=operator.eq,
        settings=latest_wins_settings,
    )
    recorder = NotificationRecorder(instance.get_selection)
    instance.subscribe_internal(recorder)

    instance.get_selection()
    await settle()
    selector.resolve(0)
    await instance.drain()
    assert recorder.seen == ["X"]

    store.set("a")
    store.set("x2")
    await settle()
    selector.resolve(2)
    await settle()
    selector.resolve(1)
    await instance.drain()

    assert instance.state.memoized_selection == "X"
    assert recorder.seen == ["X"]

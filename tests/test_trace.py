import pytest

from memory.errors import InsufficientSpace, TraceError, UnknownAllocation
from memory.heap import AllocatedExtent, FreeExtent, HeapAllocator
from memory.trace import (DEMO_CAPACITY, DEMO_STRATEGY, DEMO_TRACE, ReplayStats,
                          apply_event, load_trace, split_init)
from policy.placement import Strategy


def replay(heap, events, check=False):
    handles, stats = {}, ReplayStats()
    for ev in events:
        try:
            apply_event(heap, ev, handles, stats)
        except (InsufficientSpace, UnknownAllocation):
            pass
        if check:
            heap.verify()
    return handles, stats


def test_load_trace_skips_blank_lines(tmp_path):
    path = tmp_path / "t.jsonl"
    path.write_text('{"event": "alloc", "size": 2}\n\n  \n{"event": "report"}\n', encoding="utf-8")
    assert list(load_trace(str(path))) == [{"event": "alloc", "size": 2}, {"event": "report"}]


@pytest.mark.parametrize("line", ["{not json", "[1, 2]"])
def test_load_trace_rejects_bad_lines(tmp_path, line):
    path = tmp_path / "bad.jsonl"
    path.write_text(line + "\n", encoding="utf-8")
    with pytest.raises(TraceError, match="bad.jsonl:1"):
        list(load_trace(str(path)))


def test_split_init():
    init, rest = split_init([{"event": "init", "capacity": 8}, {"event": "report"}])
    assert init == {"event": "init", "capacity": 8}
    assert list(rest) == [{"event": "report"}]

    init, rest = split_init([{"event": "report"}])
    assert init is None
    assert list(rest) == [{"event": "report"}]

    init, rest = split_init([])
    assert init is None
    assert list(rest) == []


def test_demo_file_matches_builtin_demo(traces_dir):
    init, events = split_init(load_trace(str(traces_dir / "demo.jsonl")))
    assert init["capacity"] == DEMO_CAPACITY
    assert Strategy.parse(init["strategy"]) is DEMO_STRATEGY
    assert list(events) == DEMO_TRACE


def test_demo_replay_final_state():
    heap = HeapAllocator(DEMO_CAPACITY, DEMO_STRATEGY)
    _, stats = replay(heap, DEMO_TRACE, check=True)
    assert heap.strategy is Strategy.NEXT
    assert [(b.start, b.end) for b in heap.allocated] == [(0, 4), (8, 15)]
    assert heap.extents_free() == [(16, 24), (5, 3)]
    assert heap.cursor == 1
    assert (stats.alloc_events, stats.free_events, stats.strategy_switches, stats.reports) == (3, 1, 1, 5)


def test_apply_event_results():
    heap = HeapAllocator(10)
    handles, stats = {}, ReplayStats()
    assert apply_event(heap, {"event": "alloc", "id": "a", "size": 3}, handles, stats) == AllocatedExtent(0, 2)
    assert handles == {"a": AllocatedExtent(0, 2)}
    assert apply_event(heap, {"event": "strategy", "name": "worst-fit"}, handles, stats) is Strategy.WORST
    assert apply_event(heap, {"event": "report"}, handles, stats) is None
    assert apply_event(heap, {"event": "free", "id": "a"}, handles, stats) == FreeExtent(0, 3)
    assert handles == {}


def test_free_by_start_with_and_without_length():
    heap = HeapAllocator(10)
    handles, stats = {}, ReplayStats()
    heap.allocate(2)
    heap.allocate(3)
    assert apply_event(heap, {"event": "free", "start": 2}, handles, stats) == FreeExtent(2, 3)
    assert apply_event(heap, {"event": "free", "start": "0", "length": "2"}, handles, stats) == FreeExtent(0, 2)


def test_failures_are_counted_and_raised():
    heap = HeapAllocator(4)
    handles, stats = {}, ReplayStats()
    with pytest.raises(InsufficientSpace):
        apply_event(heap, {"event": "alloc", "id": "big", "size": 5}, handles, stats)
    with pytest.raises(UnknownAllocation):
        apply_event(heap, {"event": "free", "id": "big"}, handles, stats)
    assert (stats.alloc_events, stats.alloc_fail, stats.free_events, stats.free_fail) == (1, 1, 1, 1)
    assert handles == {}


@pytest.mark.parametrize("ev", [
    {"event": "resize", "size": 3},
    {"event": "alloc"},
    {"event": "alloc", "size": "three"},
    {"event": "alloc", "size": 2.9},
    {"event": "alloc", "size": True},
    {"event": "free", "start": 1.5},
    {"event": "free", "start": 0, "length": False},
    {"event": "free"},
    {"event": "strategy"},
    {"event": "init", "capacity": 10},
    {},
])
def test_malformed_events(ev):
    with pytest.raises(TraceError):
        apply_event(HeapAllocator(10), ev, {}, ReplayStats())


@pytest.mark.parametrize("strategy", list(Strategy))
def test_stressor_keeps_partition_invariant(traces_dir, strategy):
    init, events = split_init(load_trace(str(traces_dir / "fragmentation_stressor.jsonl")))
    heap = HeapAllocator(init["capacity"], strategy)
    handles, stats = replay(heap, events, check=True)
    assert stats.alloc_events == 18
    assert stats.free_events == 8
    assert set(handles.values()) <= set(heap.allocated)
    assert heap.used() == sum(b.length for b in heap.allocated)


def test_alloc_rejects_live_id_without_allocating():
    heap = HeapAllocator(10)
    handles, stats = {}, ReplayStats()
    apply_event(heap, {"event": "alloc", "id": "a", "size": 2}, handles, stats)
    before = heap.snapshot()
    with pytest.raises(TraceError, match="'a'"):
        apply_event(heap, {"event": "alloc", "id": "a", "size": 3}, handles, stats)
    assert heap.snapshot() == before
    assert handles == {"a": AllocatedExtent(0, 1)}

    apply_event(heap, {"event": "free", "id": "a"}, handles, stats)
    assert heap.allocated == []
    assert apply_event(heap, {"event": "alloc", "id": "a", "size": 3}, handles, stats) == AllocatedExtent(0, 2)


def test_non_integer_size_allocates_nothing():
    heap = HeapAllocator(10)
    with pytest.raises(TraceError, match="size"):
        apply_event(heap, {"event": "alloc", "size": 2.9}, {}, ReplayStats())
    assert heap.allocated == []

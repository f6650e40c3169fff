from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from memory.errors import TraceError, UnknownAllocation
from memory.heap import AllocatedExtent, FreeExtent, HeapAllocator
from policy.placement import Strategy

DEMO_CAPACITY = 40
DEMO_STRATEGY = Strategy.BEST

# 40 cells, best-fit: alloc 5, alloc 3, free (5, 3), switch to next-fit, alloc 8
DEMO_TRACE = [
    {'event': 'report'},
    {'event': 'alloc', 'size': 5},
    {'event': 'report'},
    {'event': 'alloc', 'size': 3},
    {'event': 'report'},
    {'event': 'free', 'start': 5, 'length': 3},
    {'event': 'report'},
    {'event': 'strategy', 'name': 'next'},
    {'event': 'alloc', 'size': 8},
    {'event': 'report'},
]

MUTATING_EVENTS = ('alloc', 'free', 'strategy')

@dataclass
class ReplayStats:
    alloc_events: int = 0
    alloc_fail: int = 0
    free_events: int = 0
    free_fail: int = 0
    strategy_switches: int = 0
    reports: int = 0


def load_trace(path: str):
    """Yield JSON events from a JSONL file."""
    with open(path, 'r', encoding='utf-8') as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                ev = json.loads(line)
            except json.JSONDecodeError as e:
                raise TraceError(f"{path}:{lineno}: {e.msg}") from e
            if not isinstance(ev, dict):
                raise TraceError(f"{path}:{lineno}: expected a JSON object")
            yield ev

def split_init(events) -> Tuple[Optional[Dict[str, Any]], Iterator[Dict[str, Any]]]:
    """Peel off a leading init event, if any."""
    it = iter(events)
    first = next(it, None)
    if first is None:
        return None, iter(())
    if first.get('event') == 'init':
        return first, it
    def chained():
        yield first
        yield from it
    return None, chained()

def _int(value):
    # JSON floats and booleans are not cell counts
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"expected an integer, got {value!r}")
    return int(value)

def _field(ev: Dict[str, Any], key: str, cast=_int):
    if key not in ev:
        raise TraceError(f"{ev.get('event')!r} event missing {key!r}: {ev}")
    try:
        return cast(ev[key])
    except (TypeError, ValueError) as e:
        raise TraceError(f"bad {key!r} in {ev}") from e

def apply_event(heap: HeapAllocator, ev: Dict[str, Any],
                handles: Dict[str, AllocatedExtent], stats: ReplayStats):
    """Apply one trace event. Returns the AllocatedExtent, FreeExtent, Strategy or None (report).

    InsufficientSpace and UnknownAllocation propagate after the failure is counted.
    """
    et = ev.get('event')
    if et == 'alloc':
        stats.alloc_events += 1
        size = _field(ev, 'size')
        oid = str(ev['id']) if 'id' in ev else None
        if oid is not None and oid in handles:
            raise TraceError(f"alloc id {oid!r} is still live")
        try:
            block = heap.allocate(size)
        except Exception:
            stats.alloc_fail += 1
            raise
        if oid is not None:
            handles[oid] = block
        return block

    if et == 'free':
        stats.free_events += 1
        try:
            return _free(heap, ev, handles)
        except Exception:
            stats.free_fail += 1
            raise

    if et == 'strategy':
        heap.set_strategy(_field(ev, 'name', Strategy.parse))
        stats.strategy_switches += 1
        return heap.strategy

    if et == 'report':
        stats.reports += 1
        return None

    if et == 'init':
        raise TraceError("'init' is only allowed as the first event")
    raise TraceError(f"unknown event type {et!r}")

def _free(heap: HeapAllocator, ev: Dict[str, Any], handles: Dict[str, AllocatedExtent]) -> FreeExtent:
    if 'id' in ev:
        oid = str(ev['id'])
        block = handles.get(oid)
        if block is None:
            raise UnknownAllocation(oid)
        ext = heap.deallocate(block.start, block.length)
        del handles[oid]
        return ext
    start = _field(ev, 'start')
    length = _field(ev, 'length') if 'length' in ev else None
    return heap.deallocate(start, length)

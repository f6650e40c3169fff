from pathlib import Path

import pytest

from memory.heap import HeapAllocator

TRACES = Path(__file__).resolve().parents[1] / "traces"


@pytest.fixture
def traces_dir():
    return TRACES


@pytest.fixture
def demo_heap():
    """40 cells after best-fit alloc 5, alloc 3 and free (5, 3)."""
    heap = HeapAllocator(40, "best")
    heap.allocate(5)
    heap.allocate(3)
    heap.deallocate(5, 3)
    return heap


@pytest.fixture
def make_heap():
    def build(capacity, sizes, strategy="first", free_starts=()):
        """Allocate `sizes` first-fit from an empty heap, free `free_starts`, then switch strategy."""
        heap = HeapAllocator(capacity, "first")
        for size in sizes:
            heap.allocate(size)
        for start in free_starts:
            heap.deallocate(start)
        heap.set_strategy(strategy)
        return heap
    return build

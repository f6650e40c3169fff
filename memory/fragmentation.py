from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Sequence, Tuple
import math

if TYPE_CHECKING:
    from memory.heap import HeapAllocator

@dataclass
class FragMetrics:
    capacity: int
    used: int
    total_free: int
    lfe: int            # largest listed free extent = largest request that can still succeed
    largest_run: int    # largest run of free cells, ignoring free-list boundaries
    external_frag: float
    entropy: float
    hole_count: int

    @property
    def utilization(self) -> float:
        return self.used / self.capacity if self.capacity else 0.0

def _entropy(sizes: List[int]) -> float:
    total = sum(sizes)
    if total <= 0:
        return 0.0
    ps = [s/total for s in sizes if s > 0]
    return max(0.0, -sum(p*math.log2(p) for p in ps))

def free_runs(cells: Sequence[bool]) -> List[Tuple[int, int]]:
    """Contiguous (start, length) runs of free cells."""
    runs = []
    run_start = None
    for i, occupied in enumerate(cells):
        if not occupied and run_start is None:
            run_start = i
        elif occupied and run_start is not None:
            runs.append((run_start, i - run_start))
            run_start = None
    if run_start is not None:
        runs.append((run_start, len(cells) - run_start))
    return runs

def compute_metrics(heap: 'HeapAllocator') -> FragMetrics:
    sizes = [e.length for e in heap.free]
    total_free = sum(sizes)
    lfe = max(sizes, default=0)
    largest_run = max((n for _, n in free_runs(heap.cells)), default=0)
    external = 0.0 if total_free == 0 else max(0.0, 1.0 - lfe/total_free)
    return FragMetrics(
        capacity=heap.capacity,
        used=heap.used(),
        total_free=total_free,
        lfe=lfe,
        largest_run=largest_run,
        external_frag=external,
        entropy=_entropy(sizes),
        hole_count=len(sizes),
    )

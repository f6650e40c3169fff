from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from memory.errors import HeapInvariantError, InsufficientSpace, InvalidRequest, UnknownAllocation
from policy.placement import Strategy, select_free_extent
from viz.ascii_map import render_report

log = logging.getLogger(__name__)

@dataclass
class FreeExtent:
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length - 1

@dataclass(frozen=True)
class AllocatedExtent:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1

@dataclass(frozen=True)
class HeapSnapshot:
    cells: Tuple[bool, ...]
    free: Tuple[Tuple[int, int], ...]
    allocated: Tuple[Tuple[int, int], ...]
    cursor: int
    strategy: Strategy


class HeapAllocator:
    """Fixed-capacity arena served by first/best/worst/next-fit placement.

    The free list keeps creation order and is never sorted or coalesced;
    freed ranges are appended at the end. `cursor` is the next-fit resume
    position, an index into the free list.

    With strict=False, deallocate trusts the caller: cells are freed and a
    free extent is appended even when no allocated extent starts at `start`.
    """
    def __init__(self, capacity: int, strategy: Union[Strategy, str] = Strategy.FIRST, strict: bool = True):
        if capacity <= 0:
            raise InvalidRequest(f"capacity must be > 0 (got {capacity})")
        self.capacity = capacity
        self.strategy = Strategy.parse(strategy)
        self.strict = strict
        self.cells: List[bool] = [False] * capacity
        self.free: List[FreeExtent] = [FreeExtent(0, capacity)]
        self.allocated: List[AllocatedExtent] = []
        self.cursor = 0

    def set_strategy(self, strategy: Union[Strategy, str]):
        self.strategy = Strategy.parse(strategy)
        log.info("Strategy set to: %s", self.strategy)

    def select(self, size: int) -> Optional[int]:
        return select_free_extent([e.length for e in self.free], size, self.strategy, self.cursor)

    def allocate(self, size: int) -> AllocatedExtent:
        if size <= 0:
            raise InvalidRequest(f"allocation size must be > 0 (got {size})")
        idx = self.select(size)
        if idx is None:
            raise InsufficientSpace(size, self.strategy, self.largest_free_extent())

        ext = self.free[idx]
        block = AllocatedExtent(ext.start, ext.start + size - 1)
        for i in range(block.start, block.end + 1):
            self.cells[i] = True
        self.allocated.append(block)

        if self.strategy is Strategy.NEXT:
            self.cursor = idx + 1
        if ext.length == size:
            self._drop_free(idx)
        else:
            ext.start += size
            ext.length -= size
        self.cursor = self.cursor % len(self.free) if self.free else 0

        log.debug("alloc %d -> [%d, %d] (%s-fit, free extent #%d)", size, block.start, block.end, self.strategy, idx)
        return block

    def deallocate(self, start: int, length: Optional[int] = None) -> FreeExtent:
        if not 0 <= start < self.capacity:
            raise InvalidRequest(f"start {start} outside arena [0, {self.capacity})")
        pos = self._find_allocated(start)
        if length is None:
            if pos is None:
                raise UnknownAllocation(start)
            length = self.allocated[pos].length
        if length <= 0 or start + length > self.capacity:
            raise InvalidRequest(f"cannot free {length} cells at {start} in a {self.capacity}-cell arena")
        if self.strict and (pos is None or self.allocated[pos].length != length):
            raise UnknownAllocation(start, length)

        for i in range(start, start + length):
            self.cells[i] = False
        if pos is not None:
            del self.allocated[pos]
        else:
            log.warning("no allocated extent starts at %d; freeing %d cells anyway", start, length)
        ext = FreeExtent(start, length)
        self.free.append(ext)
        log.debug("free [%d, %d]", start, start + length - 1)
        return ext

    def report(self) -> str:
        return render_report(self)

    def _drop_free(self, idx: int):
        del self.free[idx]
        # keep the cursor on the same extent it pointed at
        if idx < self.cursor:
            self.cursor -= 1

    def _find_allocated(self, start: int) -> Optional[int]:
        for i, b in enumerate(self.allocated):
            if b.start == start:
                return i
        return None

    def used(self) -> int:
        return sum(self.cells)

    def free_cells(self) -> int:
        return self.capacity - self.used()

    def extents_free(self) -> List[Tuple[int, int]]:
        return [(e.start, e.length) for e in self.free]

    def largest_free_extent(self) -> int:
        return max((e.length for e in self.free), default=0)

    def snapshot(self) -> HeapSnapshot:
        return HeapSnapshot(
            cells=tuple(self.cells),
            free=tuple(self.extents_free()),
            allocated=tuple((b.start, b.end) for b in self.allocated),
            cursor=self.cursor,
            strategy=self.strategy,
        )

    def verify(self):
        """Raise HeapInvariantError unless free and allocated extents partition the arena."""
        owner: List[Optional[str]] = [None] * self.capacity
        spans = [('free', e.start, e.length) for e in self.free]
        spans += [('allocated', b.start, b.length) for b in self.allocated]
        for kind, start, length in spans:
            if length <= 0 or start < 0 or start + length > self.capacity:
                raise HeapInvariantError(f"{kind} extent ({start}, {length}) out of bounds")
            for i in range(start, start + length):
                if owner[i] is not None:
                    raise HeapInvariantError(f"cell {i} claimed by {owner[i]} and {kind} extents")
                owner[i] = kind
        for i, kind in enumerate(owner):
            if kind is None:
                raise HeapInvariantError(f"cell {i} belongs to no extent")
            if self.cells[i] != (kind == 'allocated'):
                raise HeapInvariantError(f"cell {i} marked {'occupied' if self.cells[i] else 'free'} inside a {kind} extent")
        if self.free and not 0 <= self.cursor < len(self.free):
            raise HeapInvariantError(f"cursor {self.cursor} outside free list of {len(self.free)}")

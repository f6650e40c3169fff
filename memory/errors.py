from __future__ import annotations
from typing import Optional


class HeapError(Exception):
    """Base class for all heap simulator errors."""


class InvalidRequest(HeapError, ValueError):
    """Raised for sizes, offsets or capacities outside the arena."""


class UnknownStrategy(InvalidRequest):
    """Raised when a placement strategy label is not recognised."""


class InsufficientSpace(HeapError):
    """Raised when no free extent can hold the requested size."""

    def __init__(self, size: int, strategy: str, largest: int = 0):
        self.size = size
        self.strategy = strategy
        self.largest = largest
        super().__init__(f"cannot allocate {size} cells with {strategy}-fit (largest free extent: {largest})")


class UnknownAllocation(HeapError, LookupError):
    """Raised when a free request does not match any allocated extent."""

    def __init__(self, start: object, length: Optional[int] = None):
        self.start = start
        self.length = length
        if length is None:
            msg = f"no allocated extent at {start}"
        else:
            msg = f"no allocated extent spans [{start}, {start}+{length})"
        super().__init__(msg)


class HeapInvariantError(HeapError, AssertionError):
    """Raised by HeapAllocator.verify when the bookkeeping is inconsistent."""


class TraceError(HeapError, ValueError):
    """Raised for malformed trace events."""

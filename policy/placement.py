from __future__ import annotations
from enum import Enum
from typing import Optional, Sequence, Union

from memory.errors import UnknownStrategy


class Strategy(str, Enum):
    FIRST = 'first'
    BEST = 'best'
    WORST = 'worst'
    NEXT = 'next'

    @classmethod
    def parse(cls, value: Union['Strategy', str]) -> 'Strategy':
        """Accept a Strategy or a label such as 'best', 'best-fit' or 'BEST_FIT'."""
        if isinstance(value, cls):
            return value
        label = str(value).strip().lower()
        for suffix in ('-fit', '_fit', ' fit'):
            if label.endswith(suffix):
                label = label[:-len(suffix)]
        try:
            return cls(label)
        except ValueError:
            choices = ', '.join(s.value for s in cls)
            raise UnknownStrategy(f"unknown placement strategy {value!r} (expected one of: {choices})") from None

    def __str__(self) -> str:
        return self.value


def first_fit(lengths: Sequence[int], size: int) -> Optional[int]:
    for i, n in enumerate(lengths):
        if n >= size:
            return i
    return None

def best_fit(lengths: Sequence[int], size: int) -> Optional[int]:
    chosen = None
    for i, n in enumerate(lengths):
        # strict '<' keeps the earliest of equal candidates
        if n >= size and (chosen is None or n < lengths[chosen]):
            chosen = i
    return chosen

def worst_fit(lengths: Sequence[int], size: int) -> Optional[int]:
    chosen = None
    for i, n in enumerate(lengths):
        if n >= size and (chosen is None or n > lengths[chosen]):
            chosen = i
    return chosen

def next_fit(lengths: Sequence[int], size: int, cursor: int) -> Optional[int]:
    count = len(lengths)
    for k in range(count):
        i = (cursor + k) % count
        if lengths[i] >= size:
            return i
    return None

_SCANS = {
    Strategy.FIRST: first_fit,
    Strategy.BEST: best_fit,
    Strategy.WORST: worst_fit,
}

def select_free_extent(lengths: Sequence[int], size: int,
                       strategy: Union[Strategy, str], cursor: int = 0) -> Optional[int]:
    """Index of the free extent `strategy` would consume for `size`, or None.

    `lengths` are the free-extent lengths in list order. `cursor` is only
    consulted by next-fit. Nothing is mutated; the caller advances the cursor.
    """
    strategy = Strategy.parse(strategy)
    if not lengths:
        return None
    if strategy is Strategy.NEXT:
        return next_fit(lengths, size, cursor)
    return _SCANS[strategy](lengths, size)

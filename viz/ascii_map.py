from __future__ import annotations
import string
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from memory.heap import AllocatedExtent, HeapAllocator

OCCUPIED = '[X]'
FREE = '[ ]'
LEGEND = f"Legend: {OCCUPIED} = occupied, {FREE} = free"
_BLOCK_CHARS = string.ascii_uppercase + string.digits

def render_cells(cells: Sequence[bool], per_line: int=0) -> str:
    marks = [OCCUPIED if c else FREE for c in cells]
    if per_line <= 0:
        return ''.join(marks)
    return '\n'.join(''.join(marks[i:i+per_line]) for i in range(0, len(marks), per_line))

def render_blocks(allocated: Sequence['AllocatedExtent']) -> str:
    if not allocated:
        return '(none)'
    return '\n'.join(f"Block {n}: start = {b.start}, end = {b.end}" for n, b in enumerate(allocated, 1))

def render_report(heap: 'HeapAllocator', per_line: int=0) -> str:
    return '\n'.join([
        f"Heap state ({heap.strategy}-fit, {heap.used()}/{heap.capacity} cells used):",
        LEGEND,
        '',
        render_cells(heap.cells, per_line),
        '',
        'Allocated blocks:',
        render_blocks(heap.allocated),
    ])

def render_map(heap: 'HeapAllocator', width: int=80) -> str:
    """One character per bin: '.' free, a letter per allocated block in allocation order."""
    cap = heap.capacity
    width = min(width, cap)
    buf = ['.']*width
    for n, b in enumerate(heap.allocated):
        s = int((b.start/cap)*width)
        e = int(((b.end+1)/cap)*width)
        ch = _BLOCK_CHARS[n % len(_BLOCK_CHARS)]
        for i in range(max(0, s), min(width, max(s+1, e))):
            buf[i] = ch
    return ''.join(buf)

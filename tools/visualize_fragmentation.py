"""
Heap Placement Simulator - Visualizer

Generates a Matplotlib heatmap of arena occupancy over time, one panel per
placement strategy. Strategy-switch events are marked as horizontal lines.

How to run (recommended, from repo root):
    python -m tools.visualize_fragmentation --trace traces/fragmentation_stressor.jsonl --out out_fragmentation.png

Notes:
- Without --trace the built-in demo sequence is replayed.
- Failed allocations and frees are skipped; the heatmap shows what the
  allocator actually holds after each event.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# direct `python tools/visualize_fragmentation.py` runs need the repo root importable
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from memory.errors import InsufficientSpace, UnknownAllocation
from memory.fragmentation import compute_metrics
from memory.heap import HeapAllocator
from memory.trace import DEMO_CAPACITY, DEMO_TRACE, ReplayStats, apply_event, load_trace, split_init
from policy.placement import Strategy


def render_state(heap: HeapAllocator, width: int) -> np.ndarray:
    """
    Return a 1D occupancy array over the arena, binned to 'width'.
    Each bin holds the fraction of its cells that are occupied.
    """
    cells = np.asarray(heap.cells, dtype=np.float32)
    width = max(1, min(width, heap.capacity))
    edges = np.linspace(0, heap.capacity, width + 1).astype(int)
    return np.array([cells[a:b].mean() if b > a else 0.0 for a, b in zip(edges[:-1], edges[1:])],
                    dtype=np.float32)


def replay_frames(events, capacity: int, strategy: Strategy, width: int, every: int = 1):
    """Replay `events` on a fresh heap; returns (frames, switch_marks, heap)."""
    heap = HeapAllocator(capacity, strategy)
    handles = {}
    stats = ReplayStats()
    frames: list[np.ndarray] = [render_state(heap, width)]
    switch_marks: list[int] = []

    for i, ev in enumerate(events, 1):
        try:
            apply_event(heap, ev, handles, stats)
        except (InsufficientSpace, UnknownAllocation):
            pass
        if ev.get("event") == "strategy":
            switch_marks.append(len(frames))
        if every <= 1 or (i % every == 0):
            frames.append(render_state(heap, width))

    return np.stack(frames, axis=0), switch_marks, heap


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--trace", help="Path to JSONL trace (default: built-in demo)")
    ap.add_argument("--out", default="out_fragmentation.png", help="Output image file")
    ap.add_argument("--capacity", type=int, default=None, help="Arena size in cells")
    ap.add_argument("--strategy", choices=[s.value for s in Strategy] + ["all"], default="all")
    ap.add_argument("--width", type=int, default=140, help="Heatmap width (bins)")
    ap.add_argument("--every", type=int, default=1, help="Record every N events")
    args = ap.parse_args(argv)

    if args.trace:
        trace_path = Path(args.trace)
        if not trace_path.exists():
            raise SystemExit(f"Trace not found: {trace_path}")
        init, events = split_init(load_trace(str(trace_path)))
    else:
        init, events = None, iter(DEMO_TRACE)
    init = init or {}
    events = list(events)
    capacity = args.capacity if args.capacity is not None else int(init.get("capacity", DEMO_CAPACITY))
    if args.strategy == "all":
        strategies = list(Strategy)
    else:
        strategies = [Strategy.parse(args.strategy)]

    fig, axes = plt.subplots(len(strategies), 1, figsize=(10.5, 2.4 * len(strategies) + 1.0), squeeze=False)
    for ax, strategy in zip(axes[:, 0], strategies):
        H, marks, heap = replay_frames(events, capacity, strategy, args.width, args.every)
        ax.imshow(H, aspect="auto", interpolation="nearest", vmin=0.0, vmax=1.0)
        m = compute_metrics(heap)
        ax.set_title(
            f"{strategy.value}-fit: LFE={m.lfe}, holes={m.hole_count}, "
            f"external_frag={m.external_frag:.3f}", fontsize=9
        )
        ax.set_xlabel("arena address (binned)")
        ax.set_ylabel("time (frames)")
        for t in marks:
            ax.axhline(t, linewidth=1)

    fig.suptitle(f"Heap Occupancy Heatmap (capacity={capacity})")
    fig.tight_layout()
    out_path = Path(args.out)
    fig.savefig(str(out_path), dpi=220)
    plt.close(fig)
    print(f"Wrote: {out_path.resolve()}")
    return out_path


if __name__ == "__main__":
    main()

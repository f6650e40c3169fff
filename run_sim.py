from __future__ import annotations
import argparse
import logging
from typing import Dict, List, Optional

from memory.errors import InsufficientSpace, UnknownAllocation
from memory.fragmentation import compute_metrics
from memory.heap import AllocatedExtent, HeapAllocator
from memory.trace import (DEMO_CAPACITY, DEMO_STRATEGY, DEMO_TRACE, MUTATING_EVENTS,
                          ReplayStats, apply_event, load_trace, split_init)
from policy.placement import Strategy
from viz.ascii_map import render_map, render_report

def build_parser() -> argparse.ArgumentParser:
    ap=argparse.ArgumentParser(description="Replay allocate/free requests against a simulated heap.")
    ap.add_argument('--trace', help="JSONL trace; the built-in demo runs when omitted")
    ap.add_argument('--capacity', type=int, default=None,
                    help=f"Arena size in cells (default: trace init event, else {DEMO_CAPACITY})")
    ap.add_argument('--strategy', choices=[s.value for s in Strategy], default=None,
                    help=f"Initial placement strategy (default: trace init event, else {DEMO_STRATEGY.value})")
    ap.add_argument('--lenient', action='store_true',
                    help="Trust free requests: free cells even when no allocated extent matches.")
    ap.add_argument('--report-every-op', action='store_true',
                    help="Print the heap report after every alloc/free/strategy event, not only on 'report' events.")
    ap.add_argument('--show-map', action='store_true')
    ap.add_argument('--map-width', type=int, default=80)
    ap.add_argument('--verify', action='store_true',
                    help="Check the partition invariant after every event.")
    ap.add_argument('--log-level', default='INFO', choices=['DEBUG','INFO','WARNING','ERROR'])
    return ap

def main(argv: Optional[List[str]] = None):
    args=build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format='%(levelname)s %(name)s: %(message)s')

    events = load_trace(args.trace) if args.trace else DEMO_TRACE
    init, events = split_init(events)
    init = init or {}
    capacity = args.capacity if args.capacity is not None else int(init.get('capacity', DEMO_CAPACITY))
    strategy = args.strategy if args.strategy is not None else init.get('strategy', DEMO_STRATEGY)

    heap=HeapAllocator(capacity, strategy, strict=not args.lenient)
    handles: Dict[str, AllocatedExtent] = {}
    stats=ReplayStats()

    for ev in events:
        et=ev.get('event')
        try:
            res=apply_event(heap, ev, handles, stats)
        except (InsufficientSpace, UnknownAllocation) as e:
            print(f"Error: {e}")
        else:
            if isinstance(res, AllocatedExtent):
                print(f"Allocated {res.length} cells: [{res.start}, {res.end}]")
            elif et=='free':
                print(f"Freed {res.length} cells: [{res.start}, {res.end}]")
        if args.verify:
            heap.verify()
        if et=='report' or (args.report_every_op and et in MUTATING_EVENTS):
            print()
            print(render_report(heap))
            print()

    m=compute_metrics(heap)
    print("="*72)
    print("Heap Placement Simulator - Summary")
    print("="*72)
    print(f"Strategy: {heap.strategy}   Strict frees: {heap.strict}   Next-fit cursor: {heap.cursor}")
    print(f"Capacity: {heap.capacity}  Used: {m.used}  Free: {m.total_free}  Utilization: {m.utilization:.3f}")
    print(f"Alloc events: {stats.alloc_events}  Alloc failures: {stats.alloc_fail}")
    print(f"Free events: {stats.free_events}  Free failures: {stats.free_fail}  Strategy switches: {stats.strategy_switches}")
    print("-"*72)
    print(f"Fragmentation: LFE={m.lfe} largest_run={m.largest_run} holes={m.hole_count} "
          f"external_frag={m.external_frag:.3f} entropy={m.entropy:.3f}")
    if args.show_map:
        print("-"*72)
        print("Memory map (ASCII):")
        print(render_map(heap, args.map_width))
    print("="*72)
    return stats

if __name__=='__main__':
    main()

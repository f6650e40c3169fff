from __future__ import annotations
import argparse
import subprocess
import sys
import re
from pathlib import Path

from policy.placement import Strategy

PY = sys.executable  # respects venv if activated, otherwise uses current python

TRACE = str(Path("traces") / "fragmentation_stressor.jsonl")

PATTERNS = {
    "alloc_fail": re.compile(r"Alloc failures:\s+(\d+)"),
    "free_fail": re.compile(r"Free failures:\s+(\d+)"),
    "used": re.compile(r"Used:\s+(\d+)"),
    "utilization": re.compile(r"Utilization:\s+([0-9\.]+)"),
    "lfe": re.compile(r"Fragmentation: LFE=(\d+)"),
    "largest_run": re.compile(r"largest_run=(\d+)"),
    "holes": re.compile(r"holes=(\d+)"),
    "external_frag": re.compile(r"external_frag=([0-9\.]+)"),
}

def run(trace: str, strategy: Strategy, lenient: bool=False) -> str:
    cmd = [PY, "run_sim.py", "--trace", trace, "--strategy", strategy.value, "--log-level", "WARNING"]
    if lenient:
        cmd.append("--lenient")
    return subprocess.check_output(cmd, stderr=subprocess.STDOUT, text=True)

def parse(out: str):
    def get(key, default=None):
        m = PATTERNS[key].search(out)
        return m.group(1) if m else default
    return {
        "alloc_fail": int(get("alloc_fail", 0)),
        "free_fail": int(get("free_fail", 0)),
        "used": int(get("used", 0)),
        "utilization": float(get("utilization", 0.0)),
        "lfe": int(get("lfe", 0)),
        "largest_run": int(get("largest_run", 0)),
        "holes": int(get("holes", 0)),
        "external_frag": float(get("external_frag", 0.0)),
    }

def main():
    ap = argparse.ArgumentParser(description="Compare placement strategies on one trace.")
    ap.add_argument("--trace", default=TRACE)
    ap.add_argument("--lenient", action="store_true")
    args = ap.parse_args()

    rows = [(s, parse(run(args.trace, s, args.lenient))) for s in Strategy]

    header = ["strategy","alloc_fail","free_fail","used","util","LFE","run","holes","ext_frag"]
    print("="*88)
    print(f"Heap Placement Simulator - Strategy Comparison ({args.trace})")
    print("="*88)
    print("{:<9} {:>10} {:>9} {:>6} {:>6} {:>6} {:>6} {:>6} {:>9}".format(*header))
    for strategy, m in rows:
        print("{:<9} {:>10} {:>9} {:>6} {:>6.3f} {:>6} {:>6} {:>6} {:>9.3f}".format(
            strategy.value, m["alloc_fail"], m["free_fail"], m["used"], m["utilization"],
            m["lfe"], m["largest_run"], m["holes"], m["external_frag"]
        ))
    print("="*88)
    print("Tip: replay one strategy with the final memory map:")
    print(f"  python run_sim.py --trace {args.trace} --strategy best --show-map")

if __name__ == "__main__":
    main()

import argparse, sys, time
from pathlib import Path
from typing import List, Optional, Tuple

from .autotuner import optimal_load, tune_file
from .config import DEFAULT_BATCH_SIZE
from .tuning_state import TuningState, normalize_kinds


def parse_kinds(text: str) -> list:
    # "insert,encode:0.5" -> [("insert", 1.0), ("encode", 0.5)]
    kinds = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, weight = part.partition(":")
        kinds.append((name, float(weight) if weight else 1.0))
    return normalize_kinds(kinds)


def run_tune(path: str, kinds, passes: int = 1, mode: str = "full", linear: bool = False,
             max_batch: Optional[int] = None, batch: int = DEFAULT_BATCH_SIZE) -> Tuple[float, TuningState, List[int]]:
    # Kya kar raha: file ko batch by batch padh raha aur har batch ke baad batch size tune kar raha
    # Return: (total_time, state, batch size history)
    t_start = time.perf_counter()
    path = Path(path)
    state = TuningState.for_path(path, mode=mode, max_batch_size=max_batch, batch_size=batch)
    print(f"Tuning {path.name} ({state.resource_size} bytes), start batch {state.batch_size}, "
          f"step {state.step_size}, max {state.max_batch_size}")

    history = tune_file(state, path, kinds, passes=passes, force_linear=linear)
    for i, size in enumerate(history):
        print(f"  [TUNE] batch {i}: {size} bytes")
    total_elapsed = time.perf_counter() - t_start
    print(f"Final batch size: {state.batch_size} bytes ({len(history)} batches in {total_elapsed:.4f}s)")
    print(f"Closest to {state.load_time:.2f}s per batch: {optimal_load(state, kinds)} bytes")
    return total_elapsed, state, history


def print_stats(state: TuningState):
    for kind, rows in state.stats()["tables"].items():
        print(f"  {kind}:")
        for row in rows:
            print(f"    {row['size']:>12} B  {row['bps'] / (1024 * 1024):10.2f} MB/s  x{row['count']}")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Batch size tuner")
    ap.add_argument("--file", required=True, help="File to read through while tuning")
    ap.add_argument("--kinds", default="insert", help="Comma separated kinds, optional :weight (insert,encode:0.5)")
    ap.add_argument("--passes", type=int, default=1)
    ap.add_argument("--mode", choices=["off", "stats", "full"], default="full")
    ap.add_argument("--linear", action="store_true", help="Exhaustive search instead of binary")
    ap.add_argument("--max-batch", type=int, default=None, help="Upper bound for the batch size in bytes")
    ap.add_argument("--batch", type=int, default=DEFAULT_BATCH_SIZE, help="Starting batch size in bytes")
    ap.add_argument("--stats", action="store_true", help="Print the measurement tables at the end")
    args = ap.parse_args(argv)

    try:
        kinds = parse_kinds(args.kinds)
        _, state, _ = run_tune(args.file, kinds, args.passes, args.mode, args.linear,
                               args.max_batch, args.batch)
    except (FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    if args.stats:
        print_stats(state)
    return 0


if __name__ == "__main__":
    sys.exit(main())

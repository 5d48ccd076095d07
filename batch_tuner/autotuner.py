# autotuner.py
# Search strategies that pick the batch size from the measurement tables.
import tempfile
from pathlib import Path
from typing import List, Optional

from .chunked_io import process_batch
from .tuning_state import Mode, TuningState

# Neighbour that is out of bounds (table edge or past half the resource)
CAPPED = True


def _commit(state: TuningState, index: int) -> int:
    # Bucket ka start resource ke aadhe se aage na jaaye, aur table ke andar rahe
    top = state.top_index
    if state.resource_size is not None:
        top = min(top, state.half_max // state.step_size)
    index = max(0, min(index, top))
    state.batch_size = state.size_for(index)
    return state.batch_size


def conservative(state: TuningState, kinds, index: Optional[int] = None) -> int:
    """
    Local hill-climb: move to whichever of the previous, current or next
    bucket scores best.  Missing data pushes the batch size into the
    unexplored bucket instead.
    """
    step = state.step_size
    half_max = state.half_max
    idx = state.index_for(state.batch_size) if index is None else index

    curr = CAPPED if idx * step >= half_max else state.score(kinds, idx)
    if curr is None:
        return _commit(state, idx + 1)

    if curr is CAPPED:
        # Stay on the first bucket past the cap, step down if the left one is past it too
        if idx == 0 or (idx - 1) * step >= half_max:
            return _commit(state, idx - 1)
        return state.batch_size

    prev = CAPPED if idx == 0 else state.score(kinds, idx - 1)
    if prev is None:
        return _commit(state, idx - 1)

    if (idx + 1) * step > half_max or idx + 1 > state.top_index:
        nxt = CAPPED
    else:
        nxt = state.score(kinds, idx + 1)
    if nxt is None:
        return _commit(state, idx + 2)

    best_idx, best = idx, curr
    if prev is not CAPPED and prev >= best:
        best_idx, best = idx - 1, prev
    if nxt is not CAPPED and nxt > best:
        best_idx, best = idx + 1, nxt
    return _commit(state, best_idx)


def binary(state: TuningState, kinds, min_index: int, max_index: int) -> int:
    """
    Narrow [min_index, max_index] by comparing scores at the quarter points.
    Assumes score over batch size is unimodal.
    """
    if max_index - min_index < 3:
        return conservative(state, kinds, (min_index + max_index) // 2)

    quarter = min_index + (max_index - min_index) // 4
    left = state.score(kinds, quarter)
    if left is None:
        return _commit(state, quarter)

    three_quarter = max_index - (max_index - min_index) // 4
    right = state.score(kinds, three_quarter)
    if right is None:
        return _commit(state, three_quarter)

    mid = (min_index + max_index) // 2
    if right > left:
        return binary(state, kinds, mid + 1, max_index)
    return binary(state, kinds, min_index, mid)


def linear(state: TuningState, kinds, max_index: int) -> int:
    """Score every bucket up to max_index, stop at the first one without data."""
    best_idx, best = None, None
    for idx in range(max_index + 1):
        score = state.score(kinds, idx)
        if score is None:
            return _commit(state, idx)
        if best is None or score > best:
            best_idx, best = idx, score
    if best_idx is None:
        return state.batch_size
    return _commit(state, best_idx)


def optimize(state: TuningState, kinds, force_linear: bool = False) -> int:
    """
    Run one tuning pass over kinds and return the (possibly new) batch size.
    Only acts in full mode.
    """
    if state.mode is not Mode.FULL:
        return state.batch_size
    max_index = state.index_for(min(state.max_batch_size, state.half_max)) - 1
    if force_linear:
        return linear(state, kinds, max_index)
    if state.remote:
        # Remote throughput is too noisy to trust a wide search
        return conservative(state, kinds)
    if max_index < 1:
        return state.batch_size
    if max_index < 3:
        return conservative(state, kinds, max_index // 2)
    return binary(state, kinds, 0, max_index)


def optimal_load(state: TuningState, kinds, min_index: Optional[int] = None,
                 max_index: Optional[int] = None) -> int:
    """
    Batch size whose estimated time over kinds is closest to state.load_time.

    Looks at buckets [min_index, max_index).  When every estimate is faster
    than the target the top of the range wins, when every one is slower the
    bottom does.  Leaves state.batch_size alone.
    """
    if state.mode is not Mode.FULL:
        return state.batch_size
    lo = max(0, min_index or 0)
    hi = state.top_index if max_index is None else min(max_index, state.top_index)
    target = state.load_time

    best_idx, best_diff = lo, target
    all_less = all_more = True
    for idx in range(lo, hi):
        if best_diff == 0:
            break
        score = state.score(kinds, idx)
        if score is None:
            all_less = False
            continue
        estimate = state.size_for(idx) / score
        if estimate > target:
            all_less = False
            diff = estimate - target
        else:
            all_more = False
            diff = target - estimate
        if diff < best_diff:
            best_idx, best_diff = idx, diff

    if best_diff == 0 or all_less == all_more:
        return state.size_for(best_idx)
    if all_less:
        return state.size_for(hi)
    return state.size_for(lo)


def tune_file(state: TuningState, path, kinds, passes: int = 1, force_linear: bool = False,
              encoding: str = "utf-8") -> List[int]:
    """
    Walk the file batch by batch doing the timed operations for kinds,
    retuning after every batch.  Returns the batch size used for each batch.
    """
    path = Path(path)
    size = path.stat().st_size
    history = []
    with tempfile.TemporaryDirectory() as tmp:
        scratch = Path(tmp) / "scratch.bin"
        for _ in range(passes):
            start = 0
            while start < size:
                history.append(state.batch_size)
                start = process_batch(state, path, start, kinds, scratch=scratch, encoding=encoding)
                optimize(state, kinds, force_linear)
    return history

# timing.py
import time
from typing import Any, Callable, Tuple


def timed(operation: Callable, *args, **kwargs) -> Tuple[float, Any]:
    """Run operation, return (elapsed_seconds, result)."""
    t0 = time.perf_counter()
    result = operation(*args, **kwargs)
    elapsed = time.perf_counter() - t0
    # Clock resolution can report 0 for tiny operations
    return max(elapsed, 1e-9), result


def payload_size(result) -> int:
    # Byte count of whatever the operation produced
    if isinstance(result, int) and not isinstance(result, bool):
        return result
    if isinstance(result, str):
        return len(result.encode("utf-8", "surrogateescape"))
    try:
        return len(result)
    except TypeError:
        raise ValueError(f"can't infer a byte size from {type(result).__name__}; pass size explicitly") from None

# config.py
# Defaults for the batch tuner and helpers that read overrides from env at runtime.
import os
from typing import Optional

# Number of statistics buckets between 0 and the max batch size
BUCKET_COUNT = 1000

# Lower bound for the default max batch size (10 MB)
LARGE_FILE_THRESHOLD = 10 * 1024 * 1024

# Starting batch size before any tuning (1 MB)
DEFAULT_BATCH_SIZE = 1024 * 1024

# How many seconds a batch should take to load
DEFAULT_LOAD_TIME = 1.0

DEFAULT_MODE = "full"

MODE_ENV = "BATCH_TUNER_MODE"
MAX_BATCH_ENV = "BATCH_TUNER_MAX"
LOAD_TIME_ENV = "BATCH_TUNER_LOAD_TIME"


def ram_size() -> Optional[int]:
    """
    Physical memory in bytes, or None when it can't be found out.
    """
    try:
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, ValueError, OSError):
        pass
    try:
        with open("/proc/meminfo") as f:
            for line in f:
                if line.startswith("MemTotal:"):
                    # "MemTotal:  16318076 kB" - kB ko bytes mein badlo
                    return int(line.split()[1]) * 1024
    except (OSError, ValueError, IndexError):
        pass
    return None


def default_max_batch_size() -> int:
    env = os.environ.get(MAX_BATCH_ENV)
    if env:
        value = int(env)
        if value <= 0:
            raise ValueError(f"{MAX_BATCH_ENV} must be positive, got {value}")
        return value
    ram = ram_size()
    return max(ram // 20 if ram else 0, LARGE_FILE_THRESHOLD)


def default_step_size(max_batch_size: int) -> int:
    return max(1, max_batch_size // BUCKET_COUNT)


def default_mode() -> str:
    return os.environ.get(MODE_ENV, DEFAULT_MODE).strip().lower()


def default_load_time() -> float:
    env = os.environ.get(LOAD_TIME_ENV)
    if not env:
        return DEFAULT_LOAD_TIME
    value = float(env)
    if value <= 0:
        raise ValueError(f"{LOAD_TIME_ENV} must be positive, got {value}")
    return value

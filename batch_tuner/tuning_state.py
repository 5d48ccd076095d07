# tuning_state.py
# Per-resource tuning state: config, measurement tables and the live batch size.
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from . import config
from .measurements import DIRECT_KINDS, MeasurementTable, OperationKind, bucket_index
from .timing import payload_size, timed


class Mode(Enum):
    OFF = "off"
    STATS = "stats"  # record measurements but never retune
    FULL = "full"

    @classmethod
    def parse(cls, value) -> "Mode":
        if isinstance(value, cls):
            return value
        if value is None or value is False:
            return cls.OFF
        if value is True:
            return cls.FULL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown tuning mode {value!r} (expected off, stats or full)") from None


def is_remote(path) -> bool:
    """True for URL-like paths (sftp://, http://...) that point off this machine."""
    text = str(path)
    scheme = urlparse(text).scheme
    # Windows drive letters parse as one-letter schemes
    return bool(scheme) and scheme != "file" and len(scheme) > 1


def normalize_kinds(kinds) -> List[Tuple[OperationKind, float]]:
    """
    Accepts kinds as OperationKind / name, or (kind, weight) pairs.
    Returns [(OperationKind, weight)] in the given order.
    """
    if isinstance(kinds, (str, OperationKind)):
        kinds = [kinds]
    out = []
    for item in kinds:
        if isinstance(item, (tuple, list)):
            kind, weight = item
            out.append((OperationKind.parse(kind), float(weight)))
        else:
            out.append((OperationKind.parse(item), 1.0))
    if not out:
        raise ValueError("at least one operation kind is required")
    return out


class TuningState:
    """
    Everything the tuner knows about one resource (usually a file).

    Search strategies in :mod:`batch_tuner.autotuner` only ever write
    ``batch_size``; everything else is configuration set by the host.
    """

    def __init__(self, resource_size: Optional[int] = None, batch_size: Optional[int] = None, mode=None,
                 max_batch_size: Optional[int] = None, step_size: Optional[int] = None,
                 remote: bool = False, load_time: Optional[float] = None):
        self._tables: Dict[OperationKind, MeasurementTable] = {}
        self._max_batch_size = 1
        self._step_size = 1
        self.max_batch_size = max_batch_size if max_batch_size is not None else config.default_max_batch_size()
        self.step_size = step_size if step_size is not None else config.default_step_size(self.max_batch_size)
        self.resource_size = resource_size
        self.mode = mode if mode is not None else config.default_mode()
        self.batch_size = batch_size if batch_size is not None else config.DEFAULT_BATCH_SIZE
        self.remote = remote
        self.load_time = load_time if load_time is not None else config.default_load_time()

    @classmethod
    def for_path(cls, path, **kwargs) -> "TuningState":
        if is_remote(path):
            kwargs.setdefault("remote", True)
            return cls(**kwargs)
        kwargs.setdefault("resource_size", Path(path).stat().st_size)
        return cls(**kwargs)

    # --- configuration ---

    @property
    def mode(self) -> Mode:
        return self._mode

    @mode.setter
    def mode(self, value):
        self._mode = Mode.parse(value)

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    @max_batch_size.setter
    def max_batch_size(self, value: int):
        if value <= 0:
            raise ValueError(f"max_batch_size must be positive, got {value}")
        if value != self._max_batch_size:
            # Bucket layout changed, old tables no longer line up
            self._tables.clear()
        self._max_batch_size = int(value)

    @property
    def step_size(self) -> int:
        return self._step_size

    @step_size.setter
    def step_size(self, value: int):
        if value <= 0:
            raise ValueError(f"step_size must be positive, got {value}")
        if value != self._step_size:
            self._tables.clear()
        self._step_size = int(value)

    @property
    def resource_size(self) -> Optional[int]:
        return self._resource_size

    @resource_size.setter
    def resource_size(self, value: Optional[int]):
        if value is not None and value < 0:
            raise ValueError(f"resource_size can't be negative, got {value}")
        self._resource_size = None if value is None else int(value)

    @property
    def half_max(self):
        # Never tune a batch larger than half the resource; unknown size means no cap
        if self.resource_size is None:
            return float("inf")
        return (self.resource_size + 1) // 2

    @property
    def top_index(self) -> int:
        return self.index_for(self.max_batch_size)

    def index_for(self, size: int) -> int:
        return bucket_index(size, self.step_size, self.max_batch_size)

    def size_for(self, index: int) -> int:
        return (index + 1) * self.step_size

    # --- measurements ---

    def table(self, kind) -> Optional[MeasurementTable]:
        return self._tables.get(OperationKind.parse(kind))

    def kinds(self) -> List[OperationKind]:
        return list(self._tables)

    def record(self, kind, size: int, elapsed: float):
        """Feed one timing sample: size bytes handled in elapsed seconds."""
        if self.mode is Mode.OFF or size == 0:
            return
        kind = OperationKind.parse(kind)
        table = self._tables.get(kind)
        if table is None:
            table = self._tables[kind] = MeasurementTable(self.step_size, self.max_batch_size)
        table.add(size, elapsed)

    def time_and_record(self, kind, operation: Callable, *args, size: Optional[int] = None, **kwargs):
        """
        Run operation(*args, **kwargs), record its throughput under kind and
        return its result unchanged.  Without size, the byte count is taken
        from the result (bytes, str or an int count).
        """
        elapsed, result = timed(operation, *args, **kwargs)
        if self.mode is not Mode.OFF:
            self.record(kind, payload_size(result) if size is None else size, elapsed)
        return result

    def approximate(self, kind, index: int) -> float:
        table = self.table(kind)
        if table is None:
            return 0.0
        return table.approximate(index)

    def throughput(self, kind: OperationKind, index: int) -> float:
        if kind in DIRECT_KINDS:
            table = self._tables.get(kind)
            return table.direct(index) if table is not None else 0.0
        return self.approximate(kind, index)

    def score(self, kinds, index: int) -> Optional[float]:
        """
        Combined bytes/s for batch size bucket index over weighted kinds.
        None when any kind has no usable throughput there.
        """
        size = self.size_for(index)
        total_time = 0.0
        for kind, weight in normalize_kinds(kinds):
            bps = self.throughput(kind, index) * weight
            if bps <= 0:
                return None
            total_time += size / bps
        return size / total_time

    def stats(self) -> dict:
        tables = {}
        for kind, table in self._tables.items():
            tables[kind.value] = [
                {"index": i, "size": self.size_for(i), "bps": slot.mean, "count": slot.count}
                for i, slot in table.measured()
            ]
        return {
            "mode": self.mode.value,
            "batch_size": self.batch_size,
            "resource_size": self.resource_size,
            "max_batch_size": self.max_batch_size,
            "step_size": self.step_size,
            "remote": self.remote,
            "load_time": self.load_time,
            "tables": tables,
        }

    def __repr__(self):
        return (f"TuningState(mode={self.mode.value}, batch_size={self.batch_size}, "
                f"resource_size={self.resource_size}, step={self.step_size}, max={self.max_batch_size})")

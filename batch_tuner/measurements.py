# measurements.py
# Bucketed throughput statistics, one table per operation kind.
from enum import Enum
from typing import List


class OperationKind(Enum):
    INSERT = "insert"
    RAW_INSERT = "raw-insert"
    ENCODE = "encode"
    WRITE = "write"
    HEXLIFY = "hexlify"
    DEHEXLIFY = "dehexlify"

    @classmethod
    def parse(cls, value) -> "OperationKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("_", "-"))
        except ValueError:
            names = ", ".join(k.value for k in cls)
            raise ValueError(f"unknown operation kind {value!r} (expected one of: {names})") from None


# These are either known or unknown for a whole file, never approximated
DIRECT_KINDS = frozenset({OperationKind.HEXLIFY, OperationKind.DEHEXLIFY})


class SlotState(Enum):
    UNMEASURED = 0
    TRIED_ONCE = 1
    MEASURED = 2


def bucket_index(size: int, step: int, max_size: int) -> int:
    """
    Table slot for a byte size: round(size/step) - 1, clamped to the table.
    Sizes at or above max_size land in the top bucket.
    """
    top = round(max_size / step) - 1
    return max(0, min(round(size / step) - 1, top))


class MeasurementSlot:
    __slots__ = ("state", "mean", "count")

    def __init__(self):
        self.state = SlotState.UNMEASURED
        self.mean = 0.0
        self.count = 0

    @property
    def measured(self) -> bool:
        return self.state is SlotState.MEASURED

    @property
    def value(self) -> float:
        # 0 never measured, -1 tried once, else running mean
        if self.state is SlotState.TRIED_ONCE:
            return -1.0
        return self.mean

    def add(self, throughput: float):
        # Tried-once slot ka purana mean 0 maan ke chalo
        old = self.mean if self.measured else 0.0
        self.mean = (old * self.count + throughput) / (self.count + 1)
        self.count += 1
        self.state = SlotState.MEASURED

    def __repr__(self):
        return f"MeasurementSlot({self.state.name}, mean={self.mean:.1f}, count={self.count})"


class MeasurementTable:
    """
    Running-mean throughput (bytes/s) per batch size bucket.
    Bucket i stands for batch sizes around (i+1) * step.
    """

    def __init__(self, step: int, max_size: int):
        self.step = step
        self.max_size = max_size
        self.slots: List[MeasurementSlot] = [MeasurementSlot() for _ in range(max(1, round(max_size / step)))]

    def __len__(self):
        return len(self.slots)

    def __getitem__(self, index: int) -> MeasurementSlot:
        return self.slots[index]

    def index_for(self, size: int) -> int:
        return bucket_index(size, self.step, self.max_size)

    def add(self, size: int, elapsed: float):
        self.slots[self.index_for(size)].add(size / elapsed)

    def direct(self, index: int) -> float:
        """Stored mean for a bucket, 0 when it has no real measurement."""
        slot = self.slots[index]
        return slot.mean if slot.measured else 0.0

    def approximate(self, index: int) -> float:
        """
        Throughput for a bucket, estimated from neighbours if needed.

        The first lookup of an unmeasured bucket only marks it and returns 0,
        giving that size a chance to get measured.  Later lookups interpolate.
        """
        slot = self.slots[index]
        if slot.state is SlotState.UNMEASURED:
            slot.state = SlotState.TRIED_ONCE
            return 0.0
        if slot.state is SlotState.TRIED_ONCE:
            return self.approximate_nearby(index)
        return slot.mean

    def approximate_nearby(self, index: int) -> float:
        # Walk outwards ring by ring, average the first values found on each side
        left, right = index - 1, index + 1
        last = len(self.slots)
        while left >= 0 or right < last:
            found = []
            if left >= 0 and self.slots[left].measured:
                found.append(self.slots[left].mean)
            if right < last and self.slots[right].measured:
                found.append(self.slots[right].mean)
            value = sum(found) / len(found) if found else 0.0
            if value:
                return value
            left -= 1
            right += 1
        return 0.0

    def measured(self):
        """Yields (index, slot) for buckets holding real measurements."""
        for i, slot in enumerate(self.slots):
            if slot.measured:
                yield i, slot

"""Adaptive batch size tuning from measured chunk I/O throughput."""

from .autotuner import binary, conservative, linear, optimal_load, optimize, tune_file
from .measurements import MeasurementSlot, MeasurementTable, OperationKind, SlotState, bucket_index
from .timing import timed
from .tuning_state import Mode, TuningState, is_remote, normalize_kinds

__all__ = [
    "Mode",
    "MeasurementSlot",
    "MeasurementTable",
    "OperationKind",
    "SlotState",
    "TuningState",
    "binary",
    "bucket_index",
    "conservative",
    "is_remote",
    "linear",
    "normalize_kinds",
    "optimal_load",
    "optimize",
    "timed",
    "tune_file",
]

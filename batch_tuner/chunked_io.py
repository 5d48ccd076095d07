# chunked_io.py
# Timed chunk operations: every call feeds its throughput into the tuning state.
import binascii
import os
from pathlib import Path
from typing import Optional

from .measurements import OperationKind
from .timing import timed
from .tuning_state import TuningState, normalize_kinds


def _read(path: Path, start: int, end: int) -> bytes:
    with open(path, "rb") as f:
        f.seek(start)
        return f.read(max(0, end - start))


def _write(path: Path, start: int, data: bytes) -> int:
    # File ke andar usi offset par overwrite karo, pehli baar file bana lo
    mode = "r+b" if path.exists() else "wb"
    with open(path, mode) as f:
        f.seek(start)
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    return len(data)


def read_chunk(state: TuningState, path, start: int, end: int) -> bytes:
    """Raw bytes [start, end) of path."""
    return state.time_and_record(OperationKind.RAW_INSERT, _read, Path(path), start, end)


def insert_chunk(state: TuningState, path, start: int, end: int,
                 encoding: str = "utf-8", errors: str = "surrogateescape") -> str:
    """Bytes [start, end) of path decoded to text; timed over the raw byte count."""
    path = Path(path)

    def op():
        raw = _read(path, start, end)
        return len(raw), raw.decode(encoding, errors)

    # Byte count is only known once the read is done
    elapsed, (nbytes, text) = timed(op)
    state.record(OperationKind.INSERT, nbytes, elapsed)
    return text


def encode_length(state: TuningState, text: str, encoding: str = "utf-8",
                  errors: str = "surrogateescape") -> int:
    """Encoded byte length of text."""
    return state.time_and_record(OperationKind.ENCODE, lambda: len(text.encode(encoding, errors)))


def write_chunk(state: TuningState, path, start: int, data: bytes) -> int:
    """Write data at offset start of path, returns bytes written."""
    return state.time_and_record(OperationKind.WRITE, _write, Path(path), start, data)


def hexlify(state: TuningState, data: bytes) -> str:
    """Hex dump view of data, timed over the raw byte count."""
    return state.time_and_record(OperationKind.HEXLIFY, lambda: binascii.hexlify(data).decode("ascii"),
                                 size=len(data))


def dehexlify(state: TuningState, text: str) -> bytes:
    """Back from the hex view to raw bytes."""
    return state.time_and_record(OperationKind.DEHEXLIFY, binascii.unhexlify, text.strip())


def process_batch(state: TuningState, path, start: int, kinds, scratch: Optional[Path] = None,
                  encoding: str = "utf-8") -> int:
    """
    Do the timed operations for kinds on one batch of path starting at start.
    Writes go to scratch, never to path.  Returns where the batch ended.
    """
    path = Path(path)
    wanted = {kind for kind, _ in normalize_kinds(kinds)}
    end = min(start + max(1, state.batch_size), path.stat().st_size)

    if OperationKind.INSERT in wanted:
        text = insert_chunk(state, path, start, end, encoding)
        data = text.encode(encoding, "surrogateescape")
    else:
        data = read_chunk(state, path, start, end)
        text = None

    if OperationKind.ENCODE in wanted:
        if text is None:
            text = data.decode(encoding, "surrogateescape")
        encode_length(state, text, encoding)

    if OperationKind.WRITE in wanted:
        if scratch is None:
            raise ValueError("a scratch path is needed to time writes")
        write_chunk(state, scratch, 0, data)

    if OperationKind.HEXLIFY in wanted or OperationKind.DEHEXLIFY in wanted:
        hexed = hexlify(state, data)
        if OperationKind.DEHEXLIFY in wanted:
            dehexlify(state, hexed)
    return end

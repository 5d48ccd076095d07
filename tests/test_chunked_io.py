"""Tests for the timed chunk operations feeding the tuning state."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from batch_tuner import chunked_io
from batch_tuner.measurements import OperationKind
from batch_tuner.tuning_state import TuningState


@pytest.fixture
def state() -> TuningState:
    return TuningState(max_batch_size=100, step_size=10, mode="full", batch_size=30)


@pytest.fixture
def sample(tmp_path) -> Path:
    f = tmp_path / "sample.txt"
    f.write_bytes(b"0123456789" * 10)
    return f


def test_read_chunk_records_raw_insert(state, sample):
    data = chunked_io.read_chunk(state, sample, 5, 35)
    assert data == (b"0123456789" * 4)[5:35]
    assert state.table(OperationKind.RAW_INSERT)[2].count == 1


def test_insert_chunk_decodes_and_records_byte_count(state, tmp_path):
    f = tmp_path / "utf8.txt"
    f.write_bytes("héllo wörld".encode("utf-8") * 3)
    text = chunked_io.insert_chunk(state, f, 0, 13)
    assert text == "héllo wörld"
    assert state.table(OperationKind.INSERT)[0].count == 1


def test_insert_chunk_survives_split_characters(state, tmp_path):
    f = tmp_path / "split.txt"
    raw = "é".encode("utf-8") * 10
    f.write_bytes(raw)
    text = chunked_io.insert_chunk(state, f, 1, 20)
    assert chunked_io.encode_length(state, text) == 19
    assert text.encode("utf-8", "surrogateescape") == raw[1:20]


def test_encode_length_records_encode(state):
    assert chunked_io.encode_length(state, "a" * 40) == 40
    assert state.table(OperationKind.ENCODE)[3].count == 1


def test_write_chunk_creates_and_overwrites(state, tmp_path):
    out = tmp_path / "out.bin"
    assert chunked_io.write_chunk(state, out, 0, b"abcdefghij") == 10
    chunked_io.write_chunk(state, out, 3, b"XYZ")
    assert out.read_bytes() == b"abcXYZghij"
    assert state.table(OperationKind.WRITE)[0].count == 2


def test_hexlify_round_trip(state):
    hexed = chunked_io.hexlify(state, b"\x00\x01\xfe\xff" * 5)
    assert hexed.startswith("0001feff")
    assert chunked_io.dehexlify(state, hexed + "\n") == b"\x00\x01\xfe\xff" * 5
    assert state.table(OperationKind.HEXLIFY)[1].count == 1
    assert state.table(OperationKind.DEHEXLIFY)[1].count == 1


def test_process_batch_runs_requested_kinds(state, sample, tmp_path):
    scratch = tmp_path / "scratch.bin"
    end = chunked_io.process_batch(
        state, sample, 0, ["insert", "encode", "write", "hexlify", "dehexlify"], scratch=scratch
    )
    assert end == 30
    assert scratch.read_bytes() == b"0123456789" * 3
    for kind in ("insert", "encode", "write", "hexlify", "dehexlify"):
        assert state.table(kind) is not None
    assert state.table("raw-insert") is None


def test_process_batch_stops_at_end_of_file(state, sample):
    assert chunked_io.process_batch(state, sample, 90, ["raw-insert"]) == 100
    assert state.table("raw-insert")[0].count == 1


def test_process_batch_write_needs_scratch(state, sample):
    with pytest.raises(ValueError):
        chunked_io.process_batch(state, sample, 0, ["write"])

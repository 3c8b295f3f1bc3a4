from __future__ import annotations

import numpy as np
import pytest

from mandelpool import AssemblyIncomplete, AssemblyState, DuplicateRow, ImageAssembler, RowOutOfRange, RowResult


def _row(index: int, width: int, value: int | None = None) -> RowResult:
    fill = index if value is None else value
    return RowResult(index, bytes([fill]) * (width * 4))


def test_rows_land_at_their_offset_regardless_of_order() -> None:
    assembler = ImageAssembler(3, 4)
    for index in (2, 0, 3, 1):
        assembler.on_row(_row(index, 3))
    image = assembler.take_buffer().reshape(4, 3, 4)
    for index in range(4):
        assert np.all(image[index] == index)


def test_completion_is_signalled_once_with_the_buffer() -> None:
    calls = []
    assembler = ImageAssembler(2, 2, on_complete=calls.append)
    assembler.on_row(_row(1, 2))
    assert calls == []
    assert not assembler.is_complete()
    assembler.on_row(_row(0, 2))
    assert len(calls) == 1
    assert calls[0].shape == (16,)
    assert assembler.is_complete()
    assert assembler.state is AssemblyState.COMPLETE


def test_duplicate_rows_are_rejected() -> None:
    assembler = ImageAssembler(2, 3)
    assembler.on_row(_row(1, 2))
    with pytest.raises(DuplicateRow) as excinfo:
        assembler.on_row(_row(1, 2, value=9))
    assert excinfo.value.row_index == 1
    assert assembler.rows_received == 1


def test_rows_after_completion_are_duplicates() -> None:
    assembler = ImageAssembler(1, 1)
    assembler.on_row(_row(0, 1))
    with pytest.raises(DuplicateRow):
        assembler.on_row(_row(0, 1))


def test_out_of_range_and_short_rows_are_rejected() -> None:
    assembler = ImageAssembler(2, 2)
    with pytest.raises(RowOutOfRange):
        assembler.on_row(_row(2, 2))
    with pytest.raises(RowOutOfRange):
        assembler.on_row(RowResult(-1, b"\x00" * 8))
    with pytest.raises(RowOutOfRange):
        assembler.on_row(RowResult(0, b"\x00" * 7))


def test_take_buffer_requires_completion_and_happens_once() -> None:
    assembler = ImageAssembler(2, 2)
    assembler.on_row(_row(0, 2))
    with pytest.raises(AssemblyIncomplete):
        assembler.take_buffer()
    assembler.on_row(_row(1, 2))
    buffer = assembler.take_buffer()
    assert not buffer.flags.writeable
    assert assembler.state is AssemblyState.HANDED_OFF
    with pytest.raises(AssemblyIncomplete):
        assembler.take_buffer()


def test_stalled_assembler_reports_missing_rows() -> None:
    assembler = ImageAssembler(2, 5)
    assembler.on_row(_row(0, 2))
    assembler.on_row(_row(3, 2))
    assert assembler.missing_rows() == [1, 2, 4]
    assembler.mark_stalled()
    assert assembler.state is AssemblyState.STALLED
    with pytest.raises(AssemblyIncomplete):
        assembler.on_row(_row(1, 2))
    with pytest.raises(AssemblyIncomplete):
        assembler.take_buffer()

from __future__ import annotations

import threading

import pytest

from mandelpool import CancelToken, RasterConfig, RowResult, UnitFailure, Viewport, WorkerFailure, WorkerPool, partition
from mandelpool import renderer


class _Collector:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.rows: list[RowResult] = []
        self.failures: list[UnitFailure] = []
        self.exited: list[int] = []

    def on_row(self, result: RowResult) -> None:
        with self.lock:
            self.rows.append(result)

    def on_failure(self, failure: UnitFailure) -> None:
        with self.lock:
            self.failures.append(failure)

    def on_exit(self, unit_id: int) -> None:
        with self.lock:
            self.exited.append(unit_id)


def test_every_row_is_emitted_once(default_viewport: Viewport, small_config: RasterConfig) -> None:
    pool = WorkerPool()
    collector = _Collector()
    ranges = partition(small_config.height, 4)
    unit_ids = pool.dispatch(
        ranges, default_viewport, small_config, collector.on_row, on_exit=collector.on_exit
    )
    assert pool.join(timeout=30)
    assert len(unit_ids) == len(ranges)
    assert sorted(collector.exited) == sorted(unit_ids)
    assert sorted(r.row_index for r in collector.rows) == list(range(small_config.height))


def test_rows_are_ordered_within_a_unit(default_viewport: Viewport, small_config: RasterConfig) -> None:
    pool = WorkerPool()
    collector = _Collector()
    ranges = partition(small_config.height, 3)
    pool.dispatch(ranges, default_viewport, small_config, collector.on_row)
    assert pool.join(timeout=30)
    for row_range in ranges:
        seen = [r.row_index for r in collector.rows if r.row_index in row_range]
        assert seen == list(row_range)


def test_failure_stops_only_the_failing_unit(
    monkeypatch: pytest.MonkeyPatch, default_viewport: Viewport, small_config: RasterConfig
) -> None:
    def broken(row_index, viewport, config):
        if row_index == 4:
            raise FloatingPointError("overflow")
        return renderer.numpy_row(row_index, viewport, config)

    monkeypatch.setitem(renderer.KERNELS, "broken", broken)
    pool = WorkerPool("broken")
    collector = _Collector()
    ranges = partition(small_config.height, 3)
    pool.dispatch(ranges, default_viewport, small_config, collector.on_row, on_failure=collector.on_failure)
    assert pool.join(timeout=30)

    assert len(collector.failures) == 1
    failure = collector.failures[0]
    assert failure.failed_row == 4
    assert failure.row_range == ranges[0]
    assert failure.remaining.start_row == 4
    assert isinstance(failure.error, FloatingPointError)
    error = failure.to_error()
    assert isinstance(error, WorkerFailure)
    assert error.__cause__ is failure.error

    delivered = sorted(r.row_index for r in collector.rows)
    assert delivered == [0, 1, 2, 3] + list(range(ranges[0].end_row + 1, small_config.height))


def test_cancelled_units_stop_at_row_boundary(default_viewport: Viewport, small_config: RasterConfig) -> None:
    token = CancelToken()
    token.cancel()
    pool = WorkerPool()
    collector = _Collector()
    pool.dispatch(partition(small_config.height, 2), default_viewport, small_config, collector.on_row, cancel=token)
    assert pool.join(timeout=30)
    assert collector.rows == []


def test_child_token_follows_parent() -> None:
    parent = CancelToken()
    child = CancelToken(parent=parent)
    assert not child.cancelled
    parent.cancel()
    assert child.cancelled


def test_pool_rejects_unknown_kernel() -> None:
    with pytest.raises(ValueError):
        WorkerPool("cuda")

"""Static division of image rows across worker units."""

from __future__ import annotations

import os
from typing import Sequence

from .errors import IncompletePartition, InvalidRasterConfig
from .renderer import RowRange

FALLBACK_WORKERS = 4


def default_worker_count() -> int:
    """Logical CPU count of the host, or ``FALLBACK_WORKERS`` when unknown."""

    count = os.cpu_count()
    if not count:
        return FALLBACK_WORKERS
    return max(1, count)


def partition(height: int, num_workers: int) -> list[RowRange]:
    """Split ``[0, height)`` into at most ``num_workers`` contiguous ranges.

    Every worker gets ``ceil(height / num_workers)`` rows except the last
    non-empty one, which gets the remainder. Workers whose first row would
    fall past the image receive no range, so fewer ranges than workers are
    returned when ``num_workers > height``.
    """

    if height <= 0:
        raise InvalidRasterConfig(f"height must be positive, got {height}")
    if num_workers <= 0:
        raise InvalidRasterConfig(f"num_workers must be positive, got {num_workers}")

    rows_per_worker = -(-height // num_workers)
    ranges = []
    for worker in range(num_workers):
        start_row = worker * rows_per_worker
        if start_row >= height:
            break
        end_row = min(start_row + rows_per_worker - 1, height - 1)
        ranges.append(RowRange(start_row, end_row))
    return ranges


def check_partition(ranges: Sequence[RowRange], height: int) -> None:
    """Raise :class:`IncompletePartition` unless ``ranges`` tile ``[0, height)``."""

    expected = 0
    for row_range in ranges:
        if row_range.start_row != expected or row_range.end_row < row_range.start_row:
            raise IncompletePartition(
                f"range {row_range.start_row}-{row_range.end_row} does not start at row {expected}"
            )
        expected = row_range.end_row + 1
    if expected != height:
        raise IncompletePartition(f"ranges cover {expected} rows, image has {height}")

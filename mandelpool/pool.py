"""Worker units that compute disjoint row ranges concurrently.

Each unit is a thread running :func:`compute_row` over its own
:class:`RowRange`. Units share nothing mutable: the viewport and raster
configuration are frozen, and every row is built into a fresh buffer that is
handed to the ``on_row`` callback as soon as it is finished. Rows arrive in
increasing order within a unit; across units the arrival order is whatever
the scheduler makes of it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .errors import WorkerFailure
from .renderer import DEFAULT_KERNEL, RasterConfig, RowRange, RowResult, Viewport, compute_row, get_kernel

logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation flag checked by units between rows.

    A token created with a ``parent`` also reports cancelled once the parent is.
    """

    def __init__(self, parent: Optional["CancelToken"] = None) -> None:
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled


@dataclass(frozen=True)
class UnitFailure:
    """Report of a unit that stopped before ``row_range.end_row``."""

    unit_id: int
    row_range: RowRange
    failed_row: int
    error: Exception

    @property
    def remaining(self) -> RowRange:
        return RowRange(self.failed_row, self.row_range.end_row)

    def to_error(self) -> WorkerFailure:
        error = WorkerFailure(self.unit_id, self.row_range, self.failed_row)
        error.__cause__ = self.error
        return error


RowCallback = Callable[[RowResult], None]
FailureCallback = Callable[[UnitFailure], None]
ExitCallback = Callable[[int], None]


class WorkerPool:
    """Spawn one homogeneous worker unit per row range."""

    def __init__(self, kernel: str = DEFAULT_KERNEL, *, name: str = "mandelpool") -> None:
        get_kernel(kernel)
        self.kernel = kernel
        self.name = name
        self._lock = threading.Lock()
        self._next_id = 0
        self._threads: dict[int, threading.Thread] = {}

    def dispatch(
        self,
        ranges: Sequence[RowRange],
        viewport: Viewport,
        config: RasterConfig,
        on_row: RowCallback,
        *,
        on_failure: Optional[FailureCallback] = None,
        on_exit: Optional[ExitCallback] = None,
        cancel: Optional[CancelToken] = None,
    ) -> list[int]:
        """Start a unit for every range and return their ids."""

        logger.debug("dispatching %d ranges with the %s kernel", len(ranges), self.kernel)
        return [
            self.spawn(row_range, viewport, config, on_row, on_failure=on_failure, on_exit=on_exit, cancel=cancel)
            for row_range in ranges
        ]

    def spawn(
        self,
        row_range: RowRange,
        viewport: Viewport,
        config: RasterConfig,
        on_row: RowCallback,
        *,
        on_failure: Optional[FailureCallback] = None,
        on_exit: Optional[ExitCallback] = None,
        cancel: Optional[CancelToken] = None,
    ) -> int:
        """Start a single unit on ``row_range``."""

        with self._lock:
            unit_id = self._next_id
            self._next_id += 1
            thread = threading.Thread(
                target=self._run_unit,
                args=(unit_id, row_range, viewport, config, on_row, on_failure, on_exit, cancel),
                name=f"{self.name}-unit-{unit_id}",
                daemon=True,
            )
            self._threads[unit_id] = thread
        thread.start()
        return unit_id

    def _run_unit(
        self,
        unit_id: int,
        row_range: RowRange,
        viewport: Viewport,
        config: RasterConfig,
        on_row: RowCallback,
        on_failure: Optional[FailureCallback],
        on_exit: Optional[ExitCallback],
        cancel: Optional[CancelToken],
    ) -> None:
        logger.debug("unit %d started on rows %d-%d", unit_id, row_range.start_row, row_range.end_row)
        row = row_range.start_row
        try:
            for row in row_range:
                if cancel is not None and cancel.cancelled:
                    logger.debug("unit %d cancelled before row %d", unit_id, row)
                    return
                on_row(compute_row(row, viewport, config, self.kernel))
            logger.debug("unit %d finished", unit_id)
        except Exception as exc:
            logger.warning("unit %d failed at row %d: %s", unit_id, row, exc)
            if on_failure is None:
                raise
            on_failure(UnitFailure(unit_id, row_range, row, exc))
        finally:
            if on_exit is not None:
                on_exit(unit_id)

    @property
    def active_units(self) -> int:
        with self._lock:
            return sum(1 for thread in self._threads.values() if thread.is_alive())

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for every unit spawned so far; ``True`` if all have exited."""

        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout)
        return not any(thread.is_alive() for thread in threads)

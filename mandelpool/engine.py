"""Orchestration of a full render: partition, dispatch, assemble."""

from __future__ import annotations

import logging
import queue
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import PIL.Image

from .assembler import ImageAssembler
from .errors import RenderCancelled, RenderFailed, RenderTimeout
from .partition import check_partition, default_worker_count, partition
from .pool import CancelToken, UnitFailure, WorkerPool
from .renderer import BYTES_PER_PIXEL, DEFAULT_KERNEL, RasterConfig, RowRange, Viewport, check_count, validate

logger = logging.getLogger(__name__)

_ROW = "row"
_FAILURE = "failure"
_EXIT = "exit"

# Upper bound on a single wait so cancellation is noticed promptly.
_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class RenderResult:
    """A finished image together with how it was produced."""

    pixels: np.ndarray
    viewport: Viewport
    config: RasterConfig
    ranges: tuple[RowRange, ...]
    num_workers: int
    kernel: str
    rows_received: int
    retries: int
    elapsed: float

    def as_array(self) -> np.ndarray:
        return self.pixels.reshape(self.config.height, self.config.width, BYTES_PER_PIXEL)

    def to_image(self) -> PIL.Image.Image:
        return PIL.Image.fromarray(self.as_array())


def render(
    viewport: Viewport,
    config: RasterConfig,
    *,
    num_workers: Optional[int] = None,
    kernel: str = DEFAULT_KERNEL,
    timeout: Optional[float] = None,
    retry: bool = True,
    cancel: Optional[CancelToken] = None,
    on_complete: Optional[Callable[[np.ndarray], None]] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> RenderResult:
    """Render ``viewport`` into a ``config.width x config.height`` RGBA buffer.

    Configuration errors are raised before any worker starts. A unit that
    fails has the rest of its range retried once on a fresh unit; a second
    failure raises :class:`RenderFailed`. ``timeout`` bounds the whole render
    in seconds and raises :class:`RenderTimeout` when it runs out.
    """

    validate(viewport, config)
    if num_workers is None:
        num_workers = default_worker_count()
    check_count("num_workers", num_workers)

    ranges = partition(config.height, num_workers)
    check_partition(ranges, config.height)

    started = time.perf_counter()
    deadline = None if timeout is None else time.monotonic() + timeout
    units_cancel = CancelToken(parent=cancel)
    channel: queue.Queue = queue.Queue()
    pool = WorkerPool(kernel)
    assembler = ImageAssembler(config.width, config.height, on_complete=on_complete)

    def submit(row_range: RowRange) -> int:
        return pool.spawn(
            row_range,
            viewport,
            config,
            lambda result: channel.put((_ROW, result)),
            on_failure=lambda failure: channel.put((_FAILURE, failure)),
            on_exit=lambda unit_id: channel.put((_EXIT, unit_id)),
            cancel=units_cancel,
        )

    logger.debug(
        "rendering %dx%d (max_iter=%d) on %d units",
        config.width,
        config.height,
        config.max_iter,
        len(ranges),
    )
    origin: dict[int, RowRange] = {submit(row_range): row_range for row_range in ranges}
    live = set(origin)
    retried: set[RowRange] = set()

    try:
        while not assembler.is_complete():
            if cancel is not None and cancel.cancelled:
                raise RenderCancelled("render cancelled", assembler.missing_rows())

            wait = _POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RenderTimeout(
                        f"render timed out after {timeout}s with {assembler.rows_received} of {config.height} rows",
                        assembler.missing_rows(),
                    )
                wait = min(wait, remaining)

            try:
                kind, payload = channel.get(timeout=wait)
            except queue.Empty:
                continue

            if kind == _ROW:
                assembler.on_row(payload)
                if progress is not None:
                    progress(assembler.rows_received, config.height)
            elif kind == _FAILURE:
                failure: UnitFailure = payload
                source = origin[failure.unit_id]
                if not retry or source in retried:
                    raise RenderFailed(
                        f"rows {failure.failed_row}-{failure.row_range.end_row} could not be computed",
                        assembler.missing_rows(),
                    ) from failure.to_error()
                retried.add(source)
                logger.warning(
                    "retrying rows %d-%d after unit %d failed",
                    failure.remaining.start_row,
                    failure.remaining.end_row,
                    failure.unit_id,
                )
                unit_id = submit(failure.remaining)
                origin[unit_id] = source
                live.add(unit_id)
            else:
                live.discard(payload)
                if not live and not assembler.is_complete():
                    if cancel is not None and cancel.cancelled:
                        raise RenderCancelled("render cancelled", assembler.missing_rows())
                    raise RenderFailed(
                        f"all units exited with {assembler.rows_received} of {config.height} rows",
                        assembler.missing_rows(),
                    )
    except BaseException:
        units_cancel.cancel()
        assembler.mark_stalled()
        raise

    pixels = assembler.take_buffer()
    elapsed = time.perf_counter() - started
    logger.debug("render finished in %.3fs with %d retries", elapsed, len(retried))
    return RenderResult(
        pixels=pixels,
        viewport=viewport,
        config=config,
        ranges=tuple(ranges),
        num_workers=num_workers,
        kernel=kernel,
        rows_received=assembler.rows_received,
        retries=len(retried),
        elapsed=elapsed,
    )


def render_request(request, **kwargs) -> RenderResult:
    """Render a :class:`~mandelpool.request.RenderRequest`."""

    kwargs.setdefault("num_workers", request.num_workers)
    return render(request.viewport(), request.raster_config(), **kwargs)

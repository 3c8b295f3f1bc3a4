"""Rendering primitives: the render data model and the per-row computation."""

from __future__ import annotations

import importlib
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .errors import InvalidRasterConfig, InvalidViewport
from .pixel import HORIZON_SQUARED, build_palette, colorize, escape_time

BYTES_PER_PIXEL = 4
UINT32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class Viewport:
    """Rectangle of the complex plane mapped onto the output raster."""

    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class RasterConfig:
    """Output dimensions and iteration cap shared read-only by all workers."""

    width: int
    height: int
    max_iter: int

    @property
    def row_bytes(self) -> int:
        return self.width * BYTES_PER_PIXEL

    @property
    def buffer_size(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL


@dataclass(frozen=True)
class RowRange:
    """Inclusive span of rows assigned to one worker unit."""

    start_row: int
    end_row: int

    def __len__(self) -> int:
        return self.end_row - self.start_row + 1

    def __iter__(self):
        return iter(range(self.start_row, self.end_row + 1))

    def __contains__(self, row: object) -> bool:
        return isinstance(row, int) and self.start_row <= row <= self.end_row


@dataclass(frozen=True)
class RowResult:
    """One finished scanline in RGBA8 order."""

    row_index: int
    pixels: bytes


def validate(viewport: Viewport, config: RasterConfig) -> None:
    """Reject configurations that must never reach a worker."""

    for name in ("x1", "y1", "x2", "y2"):
        if not math.isfinite(getattr(viewport, name)):
            raise InvalidViewport(f"{name} must be finite, got {getattr(viewport, name)!r}")
    if viewport.x1 >= viewport.x2:
        raise InvalidViewport(f"x1 ({viewport.x1}) must be less than x2 ({viewport.x2})")
    if viewport.y1 >= viewport.y2:
        raise InvalidViewport(f"y1 ({viewport.y1}) must be less than y2 ({viewport.y2})")
    for name in ("width", "height", "max_iter"):
        check_count(name, getattr(config, name))


def check_count(name: str, value: object) -> None:
    """Reject anything that is not an integer in ``[1, UINT32_MAX]``."""

    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidRasterConfig(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidRasterConfig(f"{name} must be positive, got {value}")
    if value > UINT32_MAX:
        raise InvalidRasterConfig(f"{name} must fit in 32 bits, got {value}")


def _row_coordinates(row_index: int, viewport: Viewport, config: RasterConfig) -> tuple[float, float, float]:
    dx = (viewport.x2 - viewport.x1) / config.width
    dy = (viewport.y2 - viewport.y1) / config.height
    cy = viewport.y1 + row_index * dy
    return viewport.x1, dx, cy


def python_row(row_index: int, viewport: Viewport, config: RasterConfig) -> bytes:
    """Compute a row one pixel at a time."""

    x1, dx, cy = _row_coordinates(row_index, viewport, config)
    out = bytearray(config.row_bytes)
    for col in range(config.width):
        n = escape_time(x1 + col * dx, cy, config.max_iter)
        offset = col * BYTES_PER_PIXEL
        out[offset:offset + BYTES_PER_PIXEL] = bytes(colorize(n, config.max_iter))
    return bytes(out)


def escape_counts(cr: np.ndarray, ci: np.ndarray, max_iter: int) -> np.ndarray:
    """Vectorized :func:`escape_time` over arrays of ``c`` coordinates."""

    zr = np.zeros_like(cr)
    zi = np.zeros_like(cr)
    counts = np.zeros(cr.shape, dtype=np.int64)
    active = np.ones(cr.shape, dtype=bool)

    for _ in range(max_iter):
        zr2 = zr * zr
        zi2 = zi * zi
        active &= (zr2 + zi2) < HORIZON_SQUARED
        if not active.any():
            break
        zi = np.where(active, 2.0 * zr * zi + ci, zi)
        zr = np.where(active, zr2 - zi2 + cr, zr)
        counts += active
    return counts


def numpy_row(row_index: int, viewport: Viewport, config: RasterConfig) -> bytes:
    """Compute a row with one vectorized escape-time loop."""

    x1, dx, cy = _row_coordinates(row_index, viewport, config)
    cr = x1 + np.arange(config.width, dtype=np.float64) * dx
    ci = np.full(config.width, cy, dtype=np.float64)
    counts = escape_counts(cr, ci, config.max_iter)
    return build_palette(config.max_iter)[counts].tobytes()


def tensorflow_row(row_index: int, viewport: Viewport, config: RasterConfig) -> bytes:
    """Compute a row with the TensorFlow kernel, imported on first use."""

    tf_kernel = importlib.import_module(".tf_kernel", __package__)
    x1, dx, cy = _row_coordinates(row_index, viewport, config)
    cr = x1 + np.arange(config.width, dtype=np.float64) * dx
    ci = np.full(config.width, cy, dtype=np.float64)
    counts = tf_kernel.escape_counts(cr, ci, config.max_iter)
    return build_palette(config.max_iter)[counts].tobytes()


RowKernel = Callable[[int, Viewport, RasterConfig], bytes]

KERNELS: dict[str, RowKernel] = {
    "python": python_row,
    "numpy": numpy_row,
    "tensorflow": tensorflow_row,
}

DEFAULT_KERNEL = "numpy"


def get_kernel(name: str) -> RowKernel:
    try:
        return KERNELS[name]
    except KeyError:
        raise ValueError(f"Unknown kernel '{name}'. Valid choices: {', '.join(sorted(KERNELS))}.") from None


def compute_row(row_index: int, viewport: Viewport, config: RasterConfig, kernel: str = DEFAULT_KERNEL) -> RowResult:
    """Compute one full scanline of ``config.width`` RGBA pixels."""

    pixels = get_kernel(kernel)(row_index, viewport, config)
    return RowResult(row_index=row_index, pixels=pixels)

"""Public API for parallel Mandelbrot rendering."""

from .assembler import AssemblyState, ImageAssembler
from .engine import RenderResult, render, render_request
from .errors import (
    AssemblyIncomplete,
    DuplicateRow,
    IncompletePartition,
    InvalidRasterConfig,
    InvalidRequest,
    InvalidViewport,
    MandelbrotError,
    RenderCancelled,
    RenderFailed,
    RenderTimeout,
    RowOutOfRange,
    WorkerFailure,
)
from .partition import check_partition, default_worker_count, partition
from .pixel import build_palette, colorize, escape_time, hsl_to_rgb
from .pool import CancelToken, UnitFailure, WorkerPool
from .renderer import KERNELS, RasterConfig, RowRange, RowResult, Viewport, compute_row, validate
from .request import DEFAULTS, RenderRequest

__all__ = [
    "AssemblyIncomplete",
    "AssemblyState",
    "CancelToken",
    "DEFAULTS",
    "DuplicateRow",
    "ImageAssembler",
    "IncompletePartition",
    "InvalidRasterConfig",
    "InvalidRequest",
    "InvalidViewport",
    "KERNELS",
    "MandelbrotError",
    "RasterConfig",
    "RenderCancelled",
    "RenderFailed",
    "RenderRequest",
    "RenderResult",
    "RenderTimeout",
    "RowOutOfRange",
    "RowRange",
    "RowResult",
    "UnitFailure",
    "Viewport",
    "WorkerFailure",
    "WorkerPool",
    "build_palette",
    "check_partition",
    "colorize",
    "compute_row",
    "default_worker_count",
    "escape_time",
    "hsl_to_rgb",
    "partition",
    "render",
    "render_request",
    "validate",
]

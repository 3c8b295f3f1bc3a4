"""Exception hierarchy for the parallel Mandelbrot renderer."""

from __future__ import annotations

from typing import Iterable, Optional


class MandelbrotError(Exception):
    """Base class for every error raised by :mod:`mandelpool`."""


class InvalidViewport(MandelbrotError, ValueError):
    """The complex-plane rectangle is empty or inverted."""


class InvalidRasterConfig(MandelbrotError, ValueError):
    """Output dimensions, iteration cap or worker count are unusable."""


class InvalidRequest(MandelbrotError, ValueError):
    """A render request could not be parsed."""


class IncompletePartition(MandelbrotError):
    """Row ranges do not cover ``[0, height)`` exactly once."""


class DuplicateRow(MandelbrotError):
    def __init__(self, row_index: int) -> None:
        super().__init__(f"row {row_index} was delivered more than once")
        self.row_index = row_index


class RowOutOfRange(MandelbrotError):
    """A row result does not fit the image being assembled."""


class AssemblyIncomplete(MandelbrotError):
    """The image buffer was requested before (or after) it could be handed off."""


class WorkerFailure(MandelbrotError):
    """A worker unit stopped before finishing its assigned rows."""

    def __init__(self, unit_id: int, row_range, failed_row: int, message: Optional[str] = None) -> None:
        if message is None:
            message = (
                f"worker {unit_id} failed at row {failed_row} "
                f"(range {row_range.start_row}-{row_range.end_row})"
            )
        super().__init__(message)
        self.unit_id = unit_id
        self.row_range = row_range
        self.failed_row = failed_row


class RenderFailed(MandelbrotError):
    """The render cannot complete; ``missing_rows`` were never delivered."""

    def __init__(self, message: str, missing_rows: Iterable[int] = ()) -> None:
        super().__init__(message)
        self.missing_rows = tuple(missing_rows)


class RenderTimeout(RenderFailed):
    """The image did not complete within the allotted time."""


class RenderCancelled(RenderFailed):
    """The render was cancelled through its cancel token."""

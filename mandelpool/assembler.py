"""Single-writer assembly of row results into the final RGBA buffer."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .errors import AssemblyIncomplete, DuplicateRow, RowOutOfRange
from .renderer import BYTES_PER_PIXEL, RowResult

logger = logging.getLogger(__name__)


class AssemblyState(Enum):
    ACCUMULATING = "accumulating"
    COMPLETE = "complete"
    HANDED_OFF = "handed-off"
    STALLED = "stalled"


class ImageAssembler:
    """Collect scanlines in any order and place them by row index.

    The buffer is flat, row-major, ``width * height * 4`` bytes. Each row's
    byte span is written exactly once; a repeated or out-of-range row is
    rejected. ``on_complete`` receives the finished (read-only) buffer once,
    when the last missing row arrives.
    """

    def __init__(self, width: int, height: int, on_complete: Optional[Callable[[np.ndarray], None]] = None) -> None:
        self.width = width
        self.height = height
        self.row_bytes = width * BYTES_PER_PIXEL
        self._buffer = np.zeros(width * height * BYTES_PER_PIXEL, dtype=np.uint8)
        self._received = np.zeros(height, dtype=bool)
        self._on_complete = on_complete
        self.rows_received = 0
        self.state = AssemblyState.ACCUMULATING

    def on_row(self, result: RowResult) -> None:
        index = result.row_index
        if self.state is AssemblyState.STALLED:
            raise AssemblyIncomplete(f"row {index} arrived after the render was marked stalled")
        if not 0 <= index < self.height:
            raise RowOutOfRange(f"row {index} is outside [0, {self.height})")
        if len(result.pixels) != self.row_bytes:
            raise RowOutOfRange(f"row {index} has {len(result.pixels)} bytes, expected {self.row_bytes}")
        if self._received[index]:
            raise DuplicateRow(index)

        offset = index * self.row_bytes
        self._buffer[offset:offset + self.row_bytes] = np.frombuffer(result.pixels, dtype=np.uint8)
        self._received[index] = True
        self.rows_received += 1

        if self.rows_received == self.height:
            self._buffer.setflags(write=False)
            self.state = AssemblyState.COMPLETE
            logger.debug("image %dx%d complete", self.width, self.height)
            if self._on_complete is not None:
                self._on_complete(self._buffer)

    def is_complete(self) -> bool:
        return self.state in (AssemblyState.COMPLETE, AssemblyState.HANDED_OFF)

    def missing_rows(self) -> list[int]:
        return np.flatnonzero(~self._received).tolist()

    def mark_stalled(self) -> None:
        if not self.is_complete():
            logger.warning("image stalled with %d of %d rows", self.rows_received, self.height)
            self.state = AssemblyState.STALLED

    def take_buffer(self) -> np.ndarray:
        """Hand the finished buffer to the caller; allowed once."""

        if self.state is AssemblyState.HANDED_OFF:
            raise AssemblyIncomplete("buffer was already handed off")
        if self.state is not AssemblyState.COMPLETE:
            raise AssemblyIncomplete(
                f"image is {self.state.value}: {self.rows_received} of {self.height} rows received"
            )
        self.state = AssemblyState.HANDED_OFF
        return self._buffer

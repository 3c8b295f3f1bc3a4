"""Escape-time evaluation and color mapping for single pixels."""

from __future__ import annotations

import math
from functools import lru_cache

import numpy as np

HORIZON_SQUARED = 4.0
INSIDE_COLOR = (0, 0, 0, 255)
SATURATION = 1.0
LIGHTNESS = 0.5


def escape_time(cx: float, cy: float, max_iter: int) -> int:
    """Return how many ``z <- z*z + c`` steps it takes for ``|z|**2`` to reach 4.

    A result equal to ``max_iter`` means the orbit never escaped.
    """

    x = 0.0
    y = 0.0
    n = 0
    while n < max_iter:
        x2 = x * x
        y2 = y * y
        if x2 + y2 >= HORIZON_SQUARED:
            break
        y = 2.0 * x * y + cy
        x = x2 - y2 + cx
        n += 1
    return n


def _hue_to_channel(p: float, q: float, t: float) -> float:
    if t < 0.0:
        t += 1.0
    if t > 1.0:
        t -= 1.0
    if t < 1.0 / 6.0:
        return p + (q - p) * 6.0 * t
    if t < 0.5:
        return q
    if t < 2.0 / 3.0:
        return p + (q - p) * (2.0 / 3.0 - t) * 6.0
    return p


def _to_byte(value: float) -> int:
    # round half up, clamped to a byte
    return min(255, max(0, int(math.floor(value * 255.0 + 0.5))))


def hsl_to_rgb(h: float, s: float, l: float) -> tuple[int, int, int]:
    """Convert HSL (all components in ``[0, 1]``) to 8-bit RGB."""

    if s == 0.0:
        v = _to_byte(l)
        return v, v, v
    q = l * (1.0 + s) if l < 0.5 else l + s - l * s
    p = 2.0 * l - q
    r = _hue_to_channel(p, q, h + 1.0 / 3.0)
    g = _hue_to_channel(p, q, h)
    b = _hue_to_channel(p, q, h - 1.0 / 3.0)
    return _to_byte(r), _to_byte(g), _to_byte(b)


def colorize(iter_count: int, max_iter: int) -> tuple[int, int, int, int]:
    """Map an escape count to an opaque RGBA color.

    Points that never escaped are black; the rest walk the hue circle,
    ``360 * iter_count / max_iter`` degrees, at full saturation and half
    lightness.
    """

    if iter_count >= max_iter:
        return INSIDE_COLOR
    r, g, b = hsl_to_rgb(iter_count / max_iter, SATURATION, LIGHTNESS)
    return r, g, b, 255


@lru_cache(maxsize=8)
def build_palette(max_iter: int) -> np.ndarray:
    """Return a read-only ``(max_iter + 1, 4)`` uint8 table of ``colorize`` values."""

    palette = np.array([colorize(n, max_iter) for n in range(max_iter + 1)], dtype=np.uint8)
    palette.setflags(write=False)
    return palette

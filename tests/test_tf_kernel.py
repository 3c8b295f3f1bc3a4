from __future__ import annotations

import importlib
import os

import numpy as np
import pytest

tf = pytest.importorskip("tensorflow")

from mandelpool import RasterConfig, Viewport, compute_row  # noqa: E402
from mandelpool import tf_kernel  # noqa: E402


def test_known_points() -> None:
    cr = np.array([-0.5, 2.0, 1.0, 0.0], dtype=np.float64)
    ci = np.array([0.0, 2.0, 0.0, 0.0], dtype=np.float64)
    counts = tf_kernel.escape_counts(cr, ci, 50, device="/CPU:0")
    assert counts.tolist() == [50, 1, 2, 50]


def test_tensorflow_row_shape() -> None:
    config = RasterConfig(width=16, height=8, max_iter=30)
    result = compute_row(4, Viewport(-2.5, -2.0, 1.0, 2.0), config, kernel="tensorflow")
    assert len(result.pixels) == 16 * 4
    assert all(result.pixels[offset + 3] == 255 for offset in range(0, 64, 4))


def test_import_leaves_tensorflow_log_level_alone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TF_CPP_MIN_LOG_LEVEL", raising=False)
    importlib.reload(tf_kernel)
    assert "TF_CPP_MIN_LOG_LEVEL" not in os.environ

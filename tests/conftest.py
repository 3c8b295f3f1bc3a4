"""Shared fixtures: small viewports and raster configurations."""

from __future__ import annotations

import pytest

from mandelpool import RasterConfig, Viewport


@pytest.fixture()
def default_viewport() -> Viewport:
    return Viewport(-2.5, -2.0, 1.0, 2.0)


@pytest.fixture()
def small_config() -> RasterConfig:
    return RasterConfig(width=40, height=30, max_iter=60)


@pytest.fixture()
def e2e_config() -> RasterConfig:
    return RasterConfig(width=100, height=100, max_iter=50)

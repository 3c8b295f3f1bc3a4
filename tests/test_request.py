from __future__ import annotations

import pytest

from mandelpool import DEFAULTS, InvalidRequest, RasterConfig, RenderRequest, Viewport


def test_defaults() -> None:
    request = RenderRequest()
    assert request.viewport() == Viewport(-2.5, -2.0, 1.0, 2.0)
    assert request.raster_config() == RasterConfig(width=1000, height=1000, max_iter=1000)
    assert request.num_workers is None
    assert request.resolved_workers() >= 1
    assert DEFAULTS["max_iter"] == 1000


def test_query_zero_coordinates_are_honored() -> None:
    request = RenderRequest.from_query("x1=0&y1=0&x2=0.5&y2=0.5")
    assert request.viewport() == Viewport(0.0, 0.0, 0.5, 0.5)


def test_query_overrides_only_present_keys() -> None:
    request = RenderRequest.from_query("?width=320&maxIter=200&workers=2&y2=")
    assert request.width == 320
    assert request.max_iter == 200
    assert request.num_workers == 2
    assert request.y2 == DEFAULTS["y2"]
    assert request.height == DEFAULTS["height"]


def test_query_from_mapping() -> None:
    request = RenderRequest.from_query({"x1": "-1", "height": 64})
    assert request.x1 == -1.0
    assert request.height == 64


@pytest.mark.parametrize("query", ["x1=left", "width=12.5", "maxIter=many", "y2=inf", "x2=nan"])
def test_bad_query_values(query: str) -> None:
    with pytest.raises(InvalidRequest):
        RenderRequest.from_query(query)


def test_to_query_is_readable_by_from_query() -> None:
    request = RenderRequest(x1=0.0, y1=-0.25, width=64, height=48, max_iter=80, num_workers=5)
    assert RenderRequest.from_query(request.to_query()) == request


def test_replace() -> None:
    request = RenderRequest().replace(width=10, x1=0.0)
    assert request.width == 10
    assert request.x1 == 0.0
    with pytest.raises(InvalidRequest):
        RenderRequest().replace(zoom=2)

"""Render requests as supplied by a presentation layer (CLI flags, URL query)."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode

from .errors import InvalidRequest
from .partition import default_worker_count
from .renderer import RasterConfig, Viewport

DEFAULTS = {
    "x1": -2.5,
    "y1": -2.0,
    "x2": 1.0,
    "y2": 2.0,
    "width": 1000,
    "height": 1000,
    "max_iter": 1000,
    "num_workers": None,
}

# URL parameter name -> field name
QUERY_KEYS = {
    "x1": "x1",
    "y1": "y1",
    "x2": "x2",
    "y2": "y2",
    "width": "width",
    "height": "height",
    "maxIter": "max_iter",
    "workers": "num_workers",
}

_FLOAT_FIELDS = {"x1", "y1", "x2", "y2"}


@dataclass(frozen=True)
class RenderRequest:
    x1: float = DEFAULTS["x1"]
    y1: float = DEFAULTS["y1"]
    x2: float = DEFAULTS["x2"]
    y2: float = DEFAULTS["y2"]
    width: int = DEFAULTS["width"]
    height: int = DEFAULTS["height"]
    max_iter: int = DEFAULTS["max_iter"]
    num_workers: Optional[int] = DEFAULTS["num_workers"]

    @classmethod
    def from_query(cls, query: Union[str, Mapping[str, object]]) -> "RenderRequest":
        """Build a request from URL parameters.

        A parameter that is present is always used, even when it is ``0``;
        only absent or empty parameters fall back to the defaults.
        """

        if isinstance(query, str):
            parsed = parse_qs(query.lstrip("?"), keep_blank_values=True)
            values: Mapping[str, object] = {key: items[-1] for key, items in parsed.items()}
        else:
            values = query

        kwargs = {}
        for key, field_name in QUERY_KEYS.items():
            if key not in values:
                continue
            raw = values[key]
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                continue
            kwargs[field_name] = _parse_value(key, field_name, raw)
        return cls(**kwargs)

    def to_query(self) -> str:
        data = asdict(self)
        pairs = [(key, data[field_name]) for key, field_name in QUERY_KEYS.items() if data[field_name] is not None]
        return urlencode([(key, repr(value) if isinstance(value, float) else str(value)) for key, value in pairs])

    def resolved_workers(self) -> int:
        return self.num_workers if self.num_workers is not None else default_worker_count()

    def viewport(self) -> Viewport:
        return Viewport(self.x1, self.y1, self.x2, self.y2)

    def raster_config(self) -> RasterConfig:
        return RasterConfig(width=self.width, height=self.height, max_iter=self.max_iter)

    def replace(self, **changes) -> "RenderRequest":
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise InvalidRequest(f"unknown request fields: {', '.join(sorted(unknown))}")
        data = asdict(self)
        data.update(changes)
        return RenderRequest(**data)


def _parse_value(key: str, field_name: str, raw: object) -> Union[int, float]:
    text = str(raw).strip()
    if field_name in _FLOAT_FIELDS:
        try:
            value = float(text)
        except ValueError as exc:
            raise InvalidRequest(f"{key} must be a number, got {text!r}") from exc
        if not math.isfinite(value):
            raise InvalidRequest(f"{key} must be finite, got {text!r}")
        return value
    try:
        return int(text)
    except ValueError as exc:
        raise InvalidRequest(f"{key} must be an integer, got {text!r}") from exc

"""Typed geometries and coordinate-by-coordinate reprojection.

Each geometry type fixes how deeply its coordinate pairs are nested:

    Point                          (x, y)
    MultiPoint, LineString         [(x, y), ...]
    Polygon, MultiLineString       [[(x, y), ...], ...]
    MultiPolygon                   [[[(x, y), ...], ...], ...]

Elevation (a third ordinate) is dropped when a geometry is built, so every
leaf is exactly an (x, y) pair.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Iterator

from .errors import UnsupportedGeometryType
from .models import (
    Coordinate,
    Geometry,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from .projection import Transform

GEOMETRY_MODELS: dict[str, type] = {
    "Point": Point,
    "MultiPoint": MultiPoint,
    "LineString": LineString,
    "MultiLineString": MultiLineString,
    "Polygon": Polygon,
    "MultiPolygon": MultiPolygon,
}

NESTING_DEPTH: dict[str, int] = {
    "Point": 0,
    "MultiPoint": 1,
    "LineString": 1,
    "MultiLineString": 2,
    "Polygon": 2,
    "MultiPolygon": 3,
}


def strip_elevation(coord: Any) -> Coordinate:
    """Truncate a coordinate to its (x, y) pair."""
    if not isinstance(coord, (list, tuple)) or len(coord) < 2:
        raise UnsupportedGeometryType(f"coordinate {coord!r}")
    return float(coord[0]), float(coord[1])


def _map_leaves(coords: Any, depth: int, fn: Callable[[Any], Coordinate], gtype: str) -> Any:
    if depth == 0:
        return fn(coords)
    if not isinstance(coords, (list, tuple)):
        raise UnsupportedGeometryType(gtype)
    return [_map_leaves(c, depth - 1, fn, gtype) for c in coords]


def _iter_leaves(coords: Any, depth: int) -> Iterator[Coordinate]:
    if depth == 0:
        yield coords
        return
    for c in coords:
        yield from _iter_leaves(c, depth - 1)


def geometry_from_geojson(obj: Mapping[str, Any]) -> Geometry:
    """Build a typed geometry from a GeoJSON-style mapping (e.g. ``shape.__geo_interface__``).

    Raises:
        UnsupportedGeometryType: for any type outside the six supported ones,
            or coordinates that do not match the type's nesting.
    """
    gtype = obj.get("type") if isinstance(obj, Mapping) else None
    model = GEOMETRY_MODELS.get(gtype)
    if model is None:
        raise UnsupportedGeometryType(gtype)
    coords = _map_leaves(obj.get("coordinates"), NESTING_DEPTH[gtype], strip_elevation, gtype)
    return model(coordinates=coords)


def reproject(geom: Geometry, transform: Transform) -> Geometry:
    """Return a new geometry with every (x, y) leaf passed through ``transform.forward``.

    Nesting and ordering are preserved exactly. The input geometry is not
    modified; callers should drop their reference to it.
    """
    gtype = getattr(geom, "type", None)
    model = GEOMETRY_MODELS.get(gtype)
    if model is None or not isinstance(geom, model):
        raise UnsupportedGeometryType(gtype if gtype is not None else type(geom).__name__)

    depth = NESTING_DEPTH[gtype]
    leaves = list(_iter_leaves(geom.coordinates, depth))
    if not leaves:
        return model(coordinates=geom.coordinates)

    xs, ys = transform.forward_many([x for x, _ in leaves], [y for _, y in leaves])
    projected = iter(zip(xs, ys))
    coords = _map_leaves(geom.coordinates, depth, lambda _: next(projected), gtype)
    return model(coordinates=coords)

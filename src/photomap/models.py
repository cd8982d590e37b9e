"""Pydantic data models for photos, geometries and shapefiles."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

Coordinate = tuple[float, float]
AttributeValue = Union[str, int, float, bool, date, None]
AttributeRow = dict[str, AttributeValue]


class Point(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: Coordinate


class MultiPoint(BaseModel):
    type: Literal["MultiPoint"] = "MultiPoint"
    coordinates: list[Coordinate]


class LineString(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: list[Coordinate]


class MultiLineString(BaseModel):
    type: Literal["MultiLineString"] = "MultiLineString"
    coordinates: list[list[Coordinate]]


class Polygon(BaseModel):
    """A polygon: the first ring is the exterior, the rest are holes."""

    type: Literal["Polygon"] = "Polygon"
    coordinates: list[list[Coordinate]]


class MultiPolygon(BaseModel):
    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: list[list[list[Coordinate]]]


Geometry = Annotated[
    Union[Point, MultiPoint, LineString, MultiLineString, Polygon, MultiPolygon],
    Field(discriminator="type"),
]


class Feature(BaseModel):
    """One geometry paired with the DBF row at the same position."""

    geometry: Geometry
    properties: AttributeRow = Field(default_factory=dict)


class Shapefile(BaseModel):
    """A fully ingested and reprojected shapefile."""

    name: str
    features: list[Feature]
    fields: list[str]
    source_crs: str
    dest_crs: str
    warnings: list[str] = Field(default_factory=list)


class ItemResult(BaseModel):
    """Per-item status of a batch operation."""

    name: str
    ok: bool
    error: str | None = None


class ShapefileBatch(BaseModel):
    """Result of ingesting several shapefiles from one folder."""

    shapefiles: list[Shapefile]
    fields: list[str]
    results: list[ItemResult]


class PhotoLocation(BaseModel):
    """A geotagged photo, as drawn on the map."""

    name: str
    lat: float
    lon: float


class PhotoBatch(BaseModel):
    """Result of loading every JPEG in a folder."""

    photos: list[PhotoLocation]
    missing: list[str]
    results: list[ItemResult]


class GpsReading(BaseModel):
    """GPS position read from a single uploaded photo, if it has one."""

    name: str
    lat: float | None = None
    lon: float | None = None

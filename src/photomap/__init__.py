"""Photo geotag editing and shapefile ingestion library."""

from .errors import (
    IngestFailure,
    InvalidImageFormat,
    MalformedCoordinate,
    PhotomapError,
    UnsupportedGeometryType,
)
from .exif import from_data_url, load_exif, read_gps, to_data_url, write_gps
from .geometry import geometry_from_geojson, reproject
from .models import Feature, PhotoLocation, Shapefile, ShapefileBatch
from .photos import load_photos, save_locations
from .projection import Transform, resolve
from .rational import from_rational, to_rational
from .reader import load_shapefiles, read_shapefile, read_shapefile_bytes

__all__ = [
    "Feature",
    "IngestFailure",
    "InvalidImageFormat",
    "MalformedCoordinate",
    "PhotoLocation",
    "PhotomapError",
    "Shapefile",
    "ShapefileBatch",
    "Transform",
    "UnsupportedGeometryType",
    "from_data_url",
    "from_rational",
    "geometry_from_geojson",
    "load_exif",
    "load_photos",
    "load_shapefiles",
    "read_gps",
    "read_shapefile",
    "read_shapefile_bytes",
    "reproject",
    "resolve",
    "save_locations",
    "to_data_url",
    "to_rational",
    "write_gps",
]

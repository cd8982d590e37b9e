"""Error taxonomy shared by the EXIF codec and the shapefile ingestor."""

from __future__ import annotations


class PhotomapError(Exception):
    """Base class for all photomap errors."""


class MalformedCoordinate(PhotomapError, ValueError):
    """A rational GPS value could not be turned into decimal degrees."""


class InvalidImageFormat(PhotomapError, ValueError):
    """The input is not a well-formed JPEG/EXIF container."""


class UnsupportedGeometryType(PhotomapError, ValueError):
    """A geometry carries a type tag the reprojector does not know."""

    def __init__(self, geometry_type: object):
        self.geometry_type = geometry_type
        super().__init__(f"Unsupported geometry type: {geometry_type!r}")


class IngestFailure(PhotomapError):
    """A shapefile could not be ingested; no partial result is produced."""

    def __init__(self, shapefile_name: str, cause: str | BaseException):
        self.shapefile_name = shapefile_name
        self.cause = cause
        super().__init__(f"Failed to ingest shapefile {shapefile_name!r}: {cause}")

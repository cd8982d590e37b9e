"""EXIF GPS codec: read and rewrite the GPS IFD of a JPEG.

Reading goes through ``piexif.load``. Writing touches only the four position
tags (latitude/longitude value and reference): the raw EXIF block is taken
from Pillow, patched in place by :mod:`photomap.tiff`, and spliced back with
``piexif.insert``, which leaves the image segments after APP1 as-is.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import struct
from typing import Any

import piexif
from PIL import Image

from .errors import InvalidImageFormat
from .rational import (
    from_rational,
    is_rational_triple,
    latitude_ref,
    longitude_ref,
    normalize_ref,
    to_rational,
)
from .tiff import TiffBlock

logger = logging.getLogger(__name__)

JPEG_SOI = b"\xff\xd8"
DATA_URL_PREFIX = "data:image/jpeg;base64,"
POSITION_TAGS = frozenset({
    piexif.GPSIFD.GPSLatitudeRef,
    piexif.GPSIFD.GPSLatitude,
    piexif.GPSIFD.GPSLongitudeRef,
    piexif.GPSIFD.GPSLongitude,
})

ExifBlock = dict[str, Any]


def load_exif(jpeg_bytes: bytes) -> ExifBlock:
    """Parse the EXIF block of a JPEG into piexif's IFD dictionary.

    A JPEG without an APP1 segment yields empty groups.

    Raises:
        InvalidImageFormat: if the bytes are not a parseable JPEG.
    """
    if not isinstance(jpeg_bytes, (bytes, bytearray)) or not jpeg_bytes.startswith(JPEG_SOI):
        raise InvalidImageFormat("Not a JPEG: missing start-of-image marker")
    try:
        return piexif.load(bytes(jpeg_bytes))
    except (piexif.InvalidImageDataError, ValueError, struct.error, IndexError, KeyError) as exc:
        raise InvalidImageFormat(f"Corrupt JPEG/EXIF data: {exc}") from exc


def read_gps(jpeg_bytes: bytes) -> tuple[float, float] | None:
    """Return ``(lat, lon)`` from a JPEG's GPS IFD, or None if it has no geotag.

    A missing GPS group, or a latitude/longitude entry that is absent or of the
    wrong shape, is the ordinary "no geotag" state and returns None. Input that
    is not a JPEG raises :class:`InvalidImageFormat`.
    """
    exif = load_exif(jpeg_bytes)
    return gps_from_exif(exif)


def gps_from_exif(exif: ExifBlock) -> tuple[float, float] | None:
    """Like :func:`read_gps` on a loaded block; a zero denominator raises :class:`MalformedCoordinate`, not None."""
    gps = exif.get("GPS") or {}

    lat_value = gps.get(piexif.GPSIFD.GPSLatitude)
    lat_ref = gps.get(piexif.GPSIFD.GPSLatitudeRef)
    lon_value = gps.get(piexif.GPSIFD.GPSLongitude)
    lon_ref = gps.get(piexif.GPSIFD.GPSLongitudeRef)

    if not (is_rational_triple(lat_value) and is_rational_triple(lon_value)):
        return None
    if not (_valid_ref(lat_ref, "NS") and _valid_ref(lon_ref, "EW")):
        return None

    return from_rational(lat_value, lat_ref), from_rational(lon_value, lon_ref)


def _valid_ref(ref: object, allowed: str) -> bool:
    if not isinstance(ref, (str, bytes)):
        return False
    value = normalize_ref(ref)
    return len(value) == 1 and value in allowed


def write_gps(jpeg_bytes: bytes, lat: float, lon: float) -> bytes:
    """Return a copy of ``jpeg_bytes`` whose GPS IFD holds ``(lat, lon)``.

    Only the GPS directory and IFD0 are rewritten, appended after the
    existing EXIF data, so every other tag survives byte for byte, including
    tags piexif cannot decode. The new IFD0 has no next-IFD link, which drops
    the embedded thumbnail so it cannot disagree with the new position. The
    input buffer is never modified.

    Raises:
        InvalidImageFormat: if the input is not a well-formed JPEG/EXIF container.
    """
    load_exif(jpeg_bytes)

    try:
        with Image.open(io.BytesIO(bytes(jpeg_bytes))) as image:
            raw = image.info.get("exif")
    except OSError as exc:
        raise InvalidImageFormat(f"Corrupt JPEG data: {exc}") from exc

    try:
        tiff = TiffBlock(raw or piexif.dump({}))
        _replace_position(tiff, lat, lon)
        out = io.BytesIO()
        piexif.insert(tiff.to_exif(), bytes(jpeg_bytes), out)
    except (piexif.InvalidImageDataError, ValueError, struct.error) as exc:
        raise InvalidImageFormat(f"Could not re-serialize EXIF: {exc}") from exc

    logger.debug("Wrote GPS %.6f, %.6f (%d -> %d bytes)", lat, lon, len(jpeg_bytes), out.getbuffer().nbytes)
    return out.getvalue()


def _replace_position(tiff: TiffBlock, lat: float, lon: float) -> None:
    zeroth, _ = tiff.read_ifd(tiff.first_ifd)
    kept_gps = []
    for entry in zeroth:
        if entry.tag == piexif.ImageIFD.GPSTag:
            old_gps, _ = tiff.read_ifd(tiff.pointer(entry))
            kept_gps = [e for e in old_gps if e.tag not in POSITION_TAGS]

    gps_offset = tiff.append_ifd(kept_gps + [
        tiff.ascii_entry(piexif.GPSIFD.GPSLatitudeRef, latitude_ref(lat)),
        tiff.rational_entry(piexif.GPSIFD.GPSLatitude, to_rational(abs(lat))),
        tiff.ascii_entry(piexif.GPSIFD.GPSLongitudeRef, longitude_ref(lon)),
        tiff.rational_entry(piexif.GPSIFD.GPSLongitude, to_rational(abs(lon))),
    ])
    zeroth = [e for e in zeroth if e.tag != piexif.ImageIFD.GPSTag]
    zeroth.append(tiff.long_entry(piexif.ImageIFD.GPSTag, gps_offset))
    tiff.first_ifd = tiff.append_ifd(zeroth)


def to_data_url(jpeg_bytes: bytes) -> str:
    """Encode JPEG bytes as a ``data:image/jpeg;base64,`` URL."""
    return DATA_URL_PREFIX + base64.b64encode(jpeg_bytes).decode("ascii")


def from_data_url(url: str) -> bytes:
    """Decode a ``data:image/jpeg;base64,`` URL back to JPEG bytes."""
    if not url.startswith(DATA_URL_PREFIX):
        raise InvalidImageFormat("Not a base64 JPEG data URL")
    try:
        return base64.b64decode(url[len(DATA_URL_PREFIX):], validate=True)
    except binascii.Error as exc:
        raise InvalidImageFormat(f"Invalid base64 payload: {exc}") from exc


def read_gps_data_url(url: str) -> tuple[float, float] | None:
    return read_gps(from_data_url(url))


def write_gps_data_url(url: str, lat: float, lon: float) -> str:
    return to_data_url(write_gps(from_data_url(url), lat, lon))

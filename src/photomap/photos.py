"""Batch photo operations: list geotagged JPEGs and save edited locations."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping

from .exif import read_gps, write_gps
from .files import FileHandle, files_with_extension
from .models import ItemResult, PhotoBatch, PhotoLocation

logger = logging.getLogger(__name__)

JPEG_EXTENSIONS = ("jpg", "jpeg")


async def read_location(handle: FileHandle) -> PhotoLocation | None:
    """Read a photo's GPS position; None if it carries no geotag."""
    data = await handle.read_bytes()
    position = await asyncio.to_thread(read_gps, data)
    if position is None:
        return None
    lat, lon = position
    return PhotoLocation(name=handle.name, lat=lat, lon=lon)


async def load_photos(folder: Iterable[FileHandle]) -> PhotoBatch:
    """Read the location of every JPEG in ``folder``, one task per file.

    Photos without a geotag are listed in ``missing``; unreadable files are
    reported as failed results without affecting the rest.
    """
    jpegs = files_with_extension(folder, *JPEG_EXTENSIONS)
    outcomes = await asyncio.gather(*(read_location(f) for f in jpegs), return_exceptions=True)

    photos: list[PhotoLocation] = []
    missing: list[str] = []
    results: list[ItemResult] = []
    for handle, outcome in zip(jpegs, outcomes):
        if isinstance(outcome, Exception):
            logger.error("Could not read %s: %s", handle.name, outcome)
            results.append(ItemResult(name=handle.name, ok=False, error=str(outcome)))
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            logger.warning("%s won't render because it is missing exif data", handle.name)
            missing.append(handle.name)
        else:
            photos.append(outcome)
        results.append(ItemResult(name=handle.name, ok=True))

    return PhotoBatch(photos=photos, missing=missing, results=results)


async def save_location(handle: FileHandle, lat: float, lon: float) -> None:
    """Rewrite one photo's GPS tags.

    The new file is fully built in memory before the handle's contents are
    replaced, so a failed encode leaves the original untouched.
    """
    data = await handle.read_bytes()
    new_data = await asyncio.to_thread(write_gps, data, lat, lon)
    await handle.write_bytes(new_data)
    logger.info("Saved %s at %.6f, %.6f", handle.name, lat, lon)


async def save_locations(modifications: Mapping[FileHandle, tuple[float, float]]) -> list[ItemResult]:
    """Save every pending ``handle -> (lat, lon)`` edit, one task per file."""
    items = list(modifications.items())
    outcomes = await asyncio.gather(
        *(save_location(handle, lat, lon) for handle, (lat, lon) in items),
        return_exceptions=True,
    )

    results: list[ItemResult] = []
    for (handle, _), outcome in zip(items, outcomes):
        if isinstance(outcome, Exception):
            logger.error("Could not save %s: %s", handle.name, outcome)
            results.append(ItemResult(name=handle.name, ok=False, error=str(outcome)))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(ItemResult(name=handle.name, ok=True))
    return results

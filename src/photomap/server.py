"""FastAPI server exposing shapefile ingestion and the photo GPS codec."""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from pathlib import PurePosixPath

from fastapi import FastAPI, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response

from .config import get_settings
from .errors import InvalidImageFormat, MalformedCoordinate
from .exif import read_gps, write_gps
from .files import MemoryFile
from .models import GpsReading, ShapefileBatch
from .projection import parse_crs
from .reader import load_shapefiles, shapefile_names

logger = logging.getLogger(__name__)

app = FastAPI(title="Photomap", version="0.1.0")


@app.post("/shapefiles", response_model=ShapefileBatch)
async def ingest_shapefiles(
    files: list[UploadFile],
    dest_crs: str | None = Query(None),
):
    """Ingest uploaded shapefile components and return reprojected features.

    Accepts:
    - A single .zip containing one or more shapefiles
    - Multiple files (.shp, and optionally .shx, .dbf, .prj, .cpg)
    """
    dest_crs = dest_crs or get_settings().dest_crs
    if parse_crs(dest_crs) is None:
        raise HTTPException(status_code=400, detail=f"Invalid dest_crs: {dest_crs}")

    filename = (files[0].filename or "").lower() if len(files) == 1 else ""
    if filename.endswith(".zip"):
        folder = await _handle_zip(files[0])
    else:
        folder = await _handle_multi_file(files)

    if not shapefile_names(folder):
        raise HTTPException(status_code=400, detail="Missing required .shp file")

    return await load_shapefiles(folder, dest_crs)


async def _handle_zip(upload: UploadFile) -> list[MemoryFile]:
    """Unpack every file in a zip archive into an in-memory folder."""
    content = await upload.read()
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            return [
                MemoryFile(PurePosixPath(info.filename).name, zf.read(info))
                for info in zf.infolist()
                if not info.is_dir()
            ]
    except zipfile.BadZipFile as exc:
        raise HTTPException(status_code=400, detail=f"Invalid zip archive: {exc}") from exc


async def _handle_multi_file(files: list[UploadFile]) -> list[MemoryFile]:
    return [MemoryFile(PurePosixPath(f.filename or "").name, await f.read()) for f in files]


@app.post("/photos/gps", response_model=GpsReading)
async def read_photo_gps(file: UploadFile):
    """Return the GPS position stored in an uploaded JPEG (null if it has none)."""
    content = await file.read()
    try:
        position = await asyncio.to_thread(read_gps, content)
    except (InvalidImageFormat, MalformedCoordinate) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    name = file.filename or "upload.jpg"
    if position is None:
        return GpsReading(name=name)
    return GpsReading(name=name, lat=position[0], lon=position[1])


@app.post("/photos/gps/write")
async def write_photo_gps(
    file: UploadFile,
    lat: float = Form(..., ge=-90, le=90),
    lon: float = Form(..., ge=-180, le=180),
):
    """Return the uploaded JPEG with its GPS tags set to ``lat``/``lon``."""
    content = await file.read()
    try:
        new_content = await asyncio.to_thread(write_gps, content, lat, lon)
    except InvalidImageFormat as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    name = PurePosixPath(file.filename or "photo.jpg").name
    logger.info("Rewrote GPS for %s", name)
    return Response(
        content=new_content,
        media_type="image/jpeg",
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )

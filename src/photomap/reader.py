"""Shapefile ingestion: parse .shp/.dbf with pyshp, join attributes, reproject geometry."""

from __future__ import annotations

import asyncio
import codecs
import io
import logging
import struct
from typing import Iterable, Sequence

import shapefile

from .config import get_settings
from .errors import IngestFailure, UnsupportedGeometryType
from .files import FileHandle, extension_of, find_file
from .geometry import geometry_from_geojson, reproject
from .models import AttributeRow, Feature, ItemResult, Shapefile, ShapefileBatch
from .projection import resolve

logger = logging.getLogger(__name__)

_PARSE_ERRORS = (shapefile.ShapefileException, struct.error, ValueError, EOFError)

DEFAULT_DBF_ENCODING = "utf-8"
FALLBACK_DBF_ENCODING = "cp1252"


def read_shapefile_bytes(
    name: str,
    *,
    shp: bytes,
    dbf: bytes | None = None,
    shx: bytes | None = None,
    prj: str | None = None,
    cpg: str | None = None,
    dest_crs: str | None = None,
) -> Shapefile:
    """Ingest one shapefile from in-memory component files.

    A missing ``prj`` defaults the source projection and a missing ``dbf``
    leaves every feature with an empty attribute mapping. Both add a warning
    to the result instead of failing.

    DBF text is decoded with the code page named by ``cpg``. Without one it is
    read as UTF-8, falling back to cp1252 (with a warning) when that fails.

    Raises:
        IngestFailure: if the .shp cannot be parsed, its geometry count does not
            match the DBF row count, or a feature has an unsupported geometry
            type (the :class:`UnsupportedGeometryType` is the failure's cause).
    """
    settings = get_settings()
    transform = resolve(
        prj,
        dest_crs or settings.dest_crs,
        label=f"{name}.prj",
        default_source=settings.default_source_crs,
    )
    warnings = list(transform.warnings)

    encodings = _candidate_encodings(name, cpg, warnings) if dbf is not None else [DEFAULT_DBF_ENCODING]
    for attempt, encoding in enumerate(encodings, start=1):
        last = attempt == len(encodings)
        try:
            shapes, fields, rows = _parse(
                shp, shx, dbf, encoding=encoding, errors="replace" if last else "strict"
            )
        except (UnicodeDecodeError, shapefile.ShapefileException) as exc:
            if last:
                raise IngestFailure(name, exc) from exc
            message = f"{name}.dbf is not valid {encoding}, decoding as {encodings[attempt]}"
            logger.warning(message)
            warnings.append(message)
        except _PARSE_ERRORS as exc:
            raise IngestFailure(name, exc) from exc
        else:
            break

    if dbf is None:
        message = f"{name}.dbf not found, attributes missing"
        logger.warning(message)
        warnings.append(message)

    if len(rows) != len(shapes):
        raise IngestFailure(
            name, f"{len(shapes)} shapes but {len(rows)} attribute rows in {name}.dbf"
        )

    features: list[Feature] = []
    try:
        for shape, row in zip(shapes, rows):
            geometry = reproject(_shape_geometry(shape), transform)
            features.append(Feature(geometry=geometry, properties=row))
    except UnsupportedGeometryType as exc:
        raise IngestFailure(name, exc) from exc

    logger.info(
        "Loaded %s: %d features, %d fields, %s -> %s",
        name, len(features), len(fields), transform.source_crs, transform.dest_crs,
    )
    return Shapefile(
        name=name,
        features=features,
        fields=fields,
        source_crs=transform.source_crs,
        dest_crs=transform.dest_crs,
        warnings=warnings,
    )


def _parse(shp: bytes, shx: bytes | None, dbf: bytes | None, *, encoding: str, errors: str):
    # optional components are omitted rather than passed as None
    streams = {"shp": io.BytesIO(shp)}
    if shx is not None:
        streams["shx"] = io.BytesIO(shx)
    if dbf is not None:
        streams["dbf"] = io.BytesIO(dbf)

    with shapefile.Reader(encoding=encoding, encodingErrors=errors, **streams) as sf:
        shapes = list(sf.iterShapes())
        if dbf is None:
            return shapes, [], [{} for _ in shapes]
        rows: list[AttributeRow] = [rec.as_dict() for rec in sf.iterRecords()]
        fields = [f[0] for f in sf.fields[1:]]  # skip DeletionFlag
    return shapes, fields, rows


def _candidate_encodings(name: str, cpg: str | None, warnings: list[str]) -> list[str]:
    if cpg is not None:
        encoding = dbf_encoding(cpg)
        if encoding is not None:
            return [encoding]
        message = f"{name}.cpg names unknown code page {cpg.strip()!r}, ignoring it"
        logger.warning(message)
        warnings.append(message)
    return [DEFAULT_DBF_ENCODING, FALLBACK_DBF_ENCODING]


def dbf_encoding(cpg: str) -> str | None:
    """Python codec for the code page named in a .cpg file, or None if unknown.

    Accepts codec names (``UTF-8``) and the bare Windows/ISO numbers ESRI
    tools write (``1252``, ``ANSI 1252``, ``88591``).
    """
    value = cpg.lstrip("\ufeff").strip().upper()
    if value.startswith("ANSI "):
        value = value[len("ANSI "):]
    if value.startswith("8859") and value[4:].isdigit():
        value = f"iso8859-{value[4:]}"
    elif value.isdigit():
        value = f"cp{value}"
    try:
        return codecs.lookup(value).name
    except LookupError:
        return None


def _shape_geometry(shape: shapefile.Shape):
    try:
        geo = shape.__geo_interface__
    except shapefile.GeoJSON_Error as exc:
        raise UnsupportedGeometryType(shape.shapeTypeName) from exc
    return geometry_from_geojson(geo)


async def read_shapefile(
    name: str,
    folder: Sequence[FileHandle],
    dest_crs: str | None = None,
) -> Shapefile:
    """Locate ``name``.shp and its companions in ``folder`` and ingest them.

    Companions are matched by exact file name; ``.prj``, ``.dbf``, ``.shx``
    and ``.cpg`` are optional.
    """
    name = _basename(name)
    shp_file = find_file(folder, f"{name}.shp")
    if shp_file is None:
        raise IngestFailure(name, f"{name}.shp not found")

    dbf_file = find_file(folder, f"{name}.dbf")
    shx_file = find_file(folder, f"{name}.shx")
    prj_file = find_file(folder, f"{name}.prj")
    cpg_file = find_file(folder, f"{name}.cpg")

    try:
        shp, dbf, shx, prj, cpg = await asyncio.gather(
            shp_file.read_bytes(),
            _read_optional(dbf_file),
            _read_optional(shx_file),
            _read_optional(prj_file),
            _read_optional(cpg_file),
        )
    except OSError as exc:
        raise IngestFailure(name, exc) from exc

    return await asyncio.to_thread(
        read_shapefile_bytes,
        name,
        shp=shp,
        dbf=dbf,
        shx=shx,
        prj=prj.decode("utf-8", errors="replace") if prj is not None else None,
        cpg=cpg.decode("ascii", errors="replace") if cpg is not None else None,
        dest_crs=dest_crs,
    )


async def _read_optional(handle: FileHandle | None) -> bytes | None:
    if handle is None:
        return None
    return await handle.read_bytes()


def _basename(name: str) -> str:
    return name[: -len(".shp")] if name.endswith(".shp") else name


def shapefile_names(folder: Iterable[FileHandle]) -> list[str]:
    """Basenames of every .shp file in ``folder``, in folder order."""
    return [_basename(f.name) for f in folder if extension_of(f) == "shp"]


def merge_fields(shapefiles: Iterable[Shapefile]) -> list[str]:
    """Deduplicated union of field names, in first-seen order."""
    seen: list[str] = []
    for sf in shapefiles:
        for field in sf.fields:
            if field not in seen:
                seen.append(field)
    return seen


async def load_shapefiles(
    folder: Sequence[FileHandle],
    dest_crs: str | None = None,
    names: Iterable[str] | None = None,
) -> ShapefileBatch:
    """Ingest several shapefiles from one folder concurrently.

    ``names`` defaults to every .shp in the folder. A failure is reported in
    that name's :class:`ItemResult` and never stops the other shapefiles.
    """
    to_load = [_basename(n) for n in names] if names is not None else shapefile_names(folder)

    outcomes = await asyncio.gather(
        *(read_shapefile(n, folder, dest_crs) for n in to_load),
        return_exceptions=True,
    )

    loaded: list[Shapefile] = []
    results: list[ItemResult] = []
    for name, outcome in zip(to_load, outcomes):
        if isinstance(outcome, Exception):
            logger.error("Could not load shapefile %s: %s", name, outcome)
            results.append(ItemResult(name=name, ok=False, error=str(outcome)))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            loaded.append(outcome)
            results.append(ItemResult(name=name, ok=True))

    return ShapefileBatch(shapefiles=loaded, fields=merge_fields(loaded), results=results)

"""Projection resolution: build a source -> destination transform with pyproj."""

from __future__ import annotations

import logging

from pyproj import CRS, Transformer
from pyproj.enums import TransformDirection
from pyproj.exceptions import CRSError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_CRS = "EPSG:3857"


class Transform:
    """A coordinate transform between two CRSs, in x/y (lon/lat) axis order."""

    def __init__(
        self,
        source: CRS,
        dest: CRS,
        *,
        assumed_default: bool = False,
        warnings: list[str] | None = None,
    ):
        self.source_crs = crs_label(source)
        self.dest_crs = crs_label(dest)
        self.assumed_default = assumed_default
        self.warnings = list(warnings or [])
        self._transformer = Transformer.from_crs(source, dest, always_xy=True)

    def forward(self, x: float, y: float) -> tuple[float, float]:
        return self._transformer.transform(x, y)

    def inverse(self, x: float, y: float) -> tuple[float, float]:
        return self._transformer.transform(x, y, direction=TransformDirection.INVERSE)

    def forward_many(self, xs: list[float], ys: list[float]) -> tuple[list[float], list[float]]:
        """Transform many points in one call; same result as ``forward`` per point."""
        out_x, out_y = self._transformer.transform(xs, ys)
        return list(out_x), list(out_y)

    def __repr__(self) -> str:
        return f"Transform({self.source_crs!r} -> {self.dest_crs!r})"


def crs_label(crs: CRS) -> str:
    """Short human-readable identifier: ``EPSG:nnnn`` when known, else the CRS name."""
    epsg = crs.to_epsg()
    if epsg is not None:
        return f"EPSG:{epsg}"
    return crs.name


def parse_crs(definition: str | None) -> CRS | None:
    """Parse a .prj WKT, PROJ string or authority code. Returns None on failure."""
    if definition is None:
        return None
    text = definition.lstrip("\ufeff").strip()
    if not text:
        return None
    try:
        return CRS.from_user_input(text)
    except CRSError:
        return None


def resolve(
    proj_definition: str | None,
    dest_crs: str,
    *,
    label: str | None = None,
    default_source: str = DEFAULT_SOURCE_CRS,
) -> Transform:
    """Build a transform from ``proj_definition`` to ``dest_crs``.

    A missing or unparsable definition never fails: the source falls back to
    ``default_source`` and a warning is logged and kept on the transform.
    ``label`` names the data being resolved in those warnings.

    Raises:
        CRSError: if ``dest_crs`` itself is not a valid CRS.
    """
    dest = CRS.from_user_input(dest_crs)
    subject = f"{label}: " if label else ""

    source = parse_crs(proj_definition)
    if source is not None:
        return Transform(source, dest)

    if proj_definition is None or not proj_definition.strip():
        message = f"{subject}projection definition not found, defaulting to {default_source}"
    else:
        message = f"{subject}could not parse projection definition, defaulting to {default_source}"
    logger.warning(message)
    return Transform(CRS.from_user_input(default_source), dest, assumed_default=True, warnings=[message])

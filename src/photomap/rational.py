"""Conversion between decimal degrees and EXIF degrees/minutes/seconds rationals.

EXIF stores each GPS axis as three unsigned rationals. The sign lives in a
separate reference tag (``N``/``S`` or ``E``/``W``). Seconds are written as
thousandths, which keeps millisecond-of-arc precision.
"""

from __future__ import annotations

import math
from typing import Sequence

from .errors import MalformedCoordinate

RationalGpsValue = tuple[tuple[int, int], tuple[int, int], tuple[int, int]]

SECONDS_DENOMINATOR = 1000
NEGATIVE_REFS = ("S", "W")


def to_rational(deg: float) -> RationalGpsValue:
    """Convert a non-negative decimal degree magnitude to a DMS rational triple.

    Callers pass ``abs(value)`` and encode the sign in the GPS reference tag.
    """
    degrees = math.floor(deg)
    min_float = (deg - degrees) * 60
    minutes = math.floor(min_float)
    seconds = round((min_float - minutes) * 60 * SECONDS_DENOMINATOR)

    # rounding can push the seconds term up to exactly 60"
    if seconds >= 60 * SECONDS_DENOMINATOR:
        seconds -= 60 * SECONDS_DENOMINATOR
        minutes += 1
    if minutes >= 60:
        minutes -= 60
        degrees += 1

    return ((int(degrees), 1), (int(minutes), 1), (int(seconds), SECONDS_DENOMINATOR))


def from_rational(value: Sequence[Sequence[int]], ref: str | bytes | None) -> float:
    """Convert a DMS rational triple and its reference tag to signed decimal degrees.

    Raises:
        MalformedCoordinate: if the triple is not three (num, den) pairs or a
            denominator is zero.
    """
    if not is_rational_triple(value):
        raise MalformedCoordinate(f"Expected three (numerator, denominator) pairs, got {value!r}")

    parts = []
    for num, den in value:
        if den == 0:
            raise MalformedCoordinate(f"Zero denominator in GPS value {value!r}")
        parts.append(num / den)

    magnitude = parts[0] + parts[1] / 60.0 + parts[2] / 3600.0
    return -magnitude if normalize_ref(ref) in NEGATIVE_REFS else magnitude


def is_rational_triple(value: object) -> bool:
    """True if ``value`` has the (deg, min, sec) rational shape piexif produces."""
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        return False
    return all(
        isinstance(term, (list, tuple))
        and len(term) == 2
        and all(isinstance(n, int) and not isinstance(n, bool) for n in term)
        for term in value
    )


def normalize_ref(ref: str | bytes | None) -> str:
    """Return a GPS reference tag as an upper-case string (piexif yields bytes)."""
    if ref is None:
        return ""
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="replace")
    return ref.strip("\x00 ").upper()


def latitude_ref(lat: float) -> str:
    return "N" if lat > 0 else "S"


def longitude_ref(lon: float) -> str:
    return "E" if lon > 0 else "W"

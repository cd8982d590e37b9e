"""Append-only editing of the TIFF structure inside an EXIF APP1 block.

Rewritten directories are appended after the existing data and the header
is repointed at them. Nothing already in the block moves, so the raw entries
of untouched directories, including tags no EXIF library knows about and
offsets inside maker notes, stay valid byte for byte.
"""

from __future__ import annotations

import struct
from typing import NamedTuple, Sequence

EXIF_HEADER = b"Exif\x00\x00"

ASCII = 2
LONG = 4
RATIONAL = 5


class Entry(NamedTuple):
    tag: int
    type: int
    count: int
    value: bytes  # the 4-byte value/offset field, in the block's byte order


class TiffBlock:
    """A mutable TIFF block in either byte order.

    Raises ``ValueError`` or ``struct.error`` when the header or a directory
    is truncated or malformed.
    """

    def __init__(self, data: bytes):
        if data.startswith(EXIF_HEADER):
            data = data[len(EXIF_HEADER):]
        if data[:2] == b"II":
            self._order = "<"
        elif data[:2] == b"MM":
            self._order = ">"
        else:
            raise ValueError("TIFF header has no byte-order mark")
        self._data = bytearray(data)
        self.first_ifd = self._unpack("I", 4)

    def _unpack(self, fmt: str, offset: int) -> int:
        return struct.unpack_from(self._order + fmt, self._data, offset)[0]

    def _pack(self, fmt: str, *values) -> bytes:
        return struct.pack(self._order + fmt, *values)

    def read_ifd(self, offset: int) -> tuple[list[Entry], int]:
        """Raw entries of the directory at ``offset`` and its next-IFD link."""
        count = self._unpack("H", offset)
        entries = []
        pos = offset + 2
        for _ in range(count):
            tag, type_, n = struct.unpack_from(self._order + "HHI", self._data, pos)
            entries.append(Entry(tag, type_, n, bytes(self._data[pos + 8:pos + 12])))
            pos += 12
        return entries, self._unpack("I", pos)

    def pointer(self, entry: Entry) -> int:
        return struct.unpack(self._order + "I", entry.value)[0]

    def append(self, blob: bytes) -> int:
        if len(self._data) % 2:
            self._data.append(0)  # offsets are word aligned
        offset = len(self._data)
        self._data += blob
        return offset

    def append_ifd(self, entries: Sequence[Entry], next_ifd: int = 0) -> int:
        """Write a directory with ``entries`` sorted by tag; return its offset."""
        ordered = sorted(entries, key=lambda e: e.tag)
        blob = self._pack("H", len(ordered))
        for entry in ordered:
            blob += self._pack("HHI", entry.tag, entry.type, entry.count) + entry.value
        blob += self._pack("I", next_ifd)
        return self.append(blob)

    def _entry(self, tag: int, type_: int, count: int, raw: bytes) -> Entry:
        if len(raw) <= 4:
            return Entry(tag, type_, count, raw.ljust(4, b"\x00"))
        return Entry(tag, type_, count, self._pack("I", self.append(raw)))

    def ascii_entry(self, tag: int, text: str) -> Entry:
        raw = text.encode("ascii") + b"\x00"
        return self._entry(tag, ASCII, len(raw), raw)

    def long_entry(self, tag: int, value: int) -> Entry:
        return Entry(tag, LONG, 1, self._pack("I", value))

    def rational_entry(self, tag: int, values: Sequence[tuple[int, int]]) -> Entry:
        raw = b"".join(self._pack("II", num, den) for num, den in values)
        return self._entry(tag, RATIONAL, len(values), raw)

    def to_exif(self) -> bytes:
        """The block as an APP1 payload, header repointed at ``first_ifd``."""
        data = bytearray(self._data)
        struct.pack_into(self._order + "I", data, 4, self.first_ifd)
        return EXIF_HEADER + bytes(data)

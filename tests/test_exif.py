"""Tests for the EXIF GPS codec."""

import io

import piexif
import pytest
from PIL import Image

from photomap.errors import InvalidImageFormat, MalformedCoordinate
from photomap.exif import (
    from_data_url,
    gps_from_exif,
    load_exif,
    read_gps,
    read_gps_data_url,
    to_data_url,
    write_gps,
    write_gps_data_url,
)

from sample_data import camera_exif, make_jpeg, vendor_jpeg

TOLERANCE = 1 / 3_600_000
POINTERS = (piexif.ImageIFD.ExifTag, piexif.ImageIFD.GPSTag)


def _scan_data(jpeg: bytes) -> bytes:
    """Everything from the start-of-scan marker to EOI: the compressed pixels."""
    return jpeg[jpeg.index(b"\xff\xda"):]


def _without_pointers(ifd: dict) -> dict:
    return {k: v for k, v in ifd.items() if k not in POINTERS}


class TestReadGps:
    def test_reads_geotag(self, geotagged_jpeg):
        lat, lon = read_gps(geotagged_jpeg)
        assert lat == pytest.approx(-(33 + 51 / 60 + 54 / 3600))
        assert lon == pytest.approx(151 + 12 / 60 + 36 / 3600)

    def test_no_exif_returns_none(self, plain_jpeg):
        assert read_gps(plain_jpeg) is None

    def test_exif_without_gps_returns_none(self, camera_jpeg):
        assert read_gps(camera_jpeg) is None

    def test_missing_longitude_returns_none(self):
        gps = {
            piexif.GPSIFD.GPSLatitudeRef: b"N",
            piexif.GPSIFD.GPSLatitude: ((45, 1), (0, 1), (0, 1000)),
        }
        assert read_gps(make_jpeg(camera_exif(gps=gps))) is None

    def test_missing_ref_returns_none(self):
        gps = {
            piexif.GPSIFD.GPSLatitude: ((45, 1), (0, 1), (0, 1000)),
            piexif.GPSIFD.GPSLongitudeRef: b"E",
            piexif.GPSIFD.GPSLongitude: ((93, 1), (0, 1), (0, 1000)),
        }
        assert read_gps(make_jpeg(camera_exif(gps=gps))) is None

    def test_zero_denominator_raises(self):
        exif = {
            "GPS": {
                piexif.GPSIFD.GPSLatitudeRef: b"N",
                piexif.GPSIFD.GPSLatitude: ((45, 1), (30, 0), (0, 1000)),
                piexif.GPSIFD.GPSLongitudeRef: b"W",
                piexif.GPSIFD.GPSLongitude: ((93, 1), (0, 1), (0, 1000)),
            }
        }
        with pytest.raises(MalformedCoordinate):
            gps_from_exif(exif)

    def test_not_a_jpeg(self):
        with pytest.raises(InvalidImageFormat):
            read_gps(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)

    def test_empty_input(self):
        with pytest.raises(InvalidImageFormat):
            read_gps(b"")

    def test_truncated_jpeg(self, camera_jpeg):
        with pytest.raises(InvalidImageFormat):
            read_gps(camera_jpeg[:9])


class TestWriteGps:
    def test_end_to_end_round_trip(self, plain_jpeg):
        updated = write_gps(plain_jpeg, 45.0, -93.0)
        lat, lon = read_gps(updated)
        assert lat == pytest.approx(45.0, abs=TOLERANCE)
        assert lon == pytest.approx(-93.0, abs=TOLERANCE)
        # the input buffer is untouched
        assert read_gps(plain_jpeg) is None

    def test_writes_refs_and_rationals(self, camera_jpeg):
        gps = load_exif(write_gps(camera_jpeg, -12.5, 130.25))["GPS"]
        assert gps[piexif.GPSIFD.GPSLatitudeRef] == b"S"
        assert gps[piexif.GPSIFD.GPSLatitude] == ((12, 1), (30, 1), (0, 1000))
        assert gps[piexif.GPSIFD.GPSLongitudeRef] == b"E"
        assert gps[piexif.GPSIFD.GPSLongitude] == ((130, 1), (15, 1), (0, 1000))

    def test_overwrites_existing_geotag(self, geotagged_jpeg):
        lat, lon = read_gps(write_gps(geotagged_jpeg, 51.5007, -0.1246))
        assert lat == pytest.approx(51.5007, abs=TOLERANCE)
        assert lon == pytest.approx(-0.1246, abs=TOLERANCE)

    def test_preserves_non_gps_tags(self, camera_jpeg):
        before = load_exif(camera_jpeg)
        after = load_exif(write_gps(camera_jpeg, 10.0, 20.0))
        assert _without_pointers(after["0th"]) == _without_pointers(before["0th"])
        assert after["Exif"] == before["Exif"]
        assert after["0th"][piexif.ImageIFD.Make] == b"Canon"
        assert after["0th"][piexif.ImageIFD.Orientation] == 6

    def test_preserves_tags_piexif_cannot_decode(self):
        source = vendor_jpeg({0xC7AB: "vendor-data"})
        assert 0xC7AB not in load_exif(source)["0th"]
        updated = write_gps(source, 45.0, -93.0)
        with Image.open(io.BytesIO(updated)) as image:
            exif = image.getexif()
            assert exif[0x010F] == "Canon"
            assert exif[0xC7AB] == "vendor-data"
            assert exif.get_ifd(0x8825)[piexif.GPSIFD.GPSLatitudeRef] == "N"
        lat, lon = read_gps(updated)
        assert lat == pytest.approx(45.0, abs=TOLERANCE)
        assert lon == pytest.approx(-93.0, abs=TOLERANCE)

    def test_rewrite_keeps_unknown_tags(self):
        twice = write_gps(write_gps(vendor_jpeg({0xC7AB: "vendor-data"}), 1.0, 2.0), 3.0, 4.0)
        with Image.open(io.BytesIO(twice)) as image:
            assert image.getexif()[0xC7AB] == "vendor-data"
        assert read_gps(twice) == (pytest.approx(3.0, abs=TOLERANCE), pytest.approx(4.0, abs=TOLERANCE))

    def test_preserves_other_gps_tags(self):
        gps = {piexif.GPSIFD.GPSAltitudeRef: 0, piexif.GPSIFD.GPSAltitude: (1234, 10)}
        after = load_exif(write_gps(make_jpeg(camera_exif(gps=gps)), 1.0, 2.0))
        assert after["GPS"][piexif.GPSIFD.GPSAltitude] == (1234, 10)
        assert after["GPS"][piexif.GPSIFD.GPSAltitudeRef] == 0

    def test_pixel_data_unchanged(self, camera_jpeg):
        updated = write_gps(camera_jpeg, 45.0, -93.0)
        assert _scan_data(updated) == _scan_data(camera_jpeg)

    def test_clears_thumbnail(self, thumbnail_jpeg):
        assert load_exif(thumbnail_jpeg)["thumbnail"] is not None
        after = load_exif(write_gps(thumbnail_jpeg, 45.0, -93.0))
        assert after["thumbnail"] is None
        assert after["1st"] == {}

    def test_rejects_non_jpeg(self):
        with pytest.raises(InvalidImageFormat):
            write_gps(b"GIF89a" + b"\x00" * 64, 1.0, 2.0)

    def test_result_readable_after_second_write(self, camera_jpeg):
        once = write_gps(camera_jpeg, 1.0, 1.0)
        twice = write_gps(once, -1.0, -1.0)
        assert read_gps(twice) == (pytest.approx(-1.0, abs=TOLERANCE), pytest.approx(-1.0, abs=TOLERANCE))
        assert _scan_data(twice) == _scan_data(camera_jpeg)


class TestDataUrl:
    def test_round_trip(self, camera_jpeg):
        url = to_data_url(camera_jpeg)
        assert url.startswith("data:image/jpeg;base64,")
        assert from_data_url(url) == camera_jpeg

    def test_gps_through_data_url(self, plain_jpeg):
        url = write_gps_data_url(to_data_url(plain_jpeg), 45.0, -93.0)
        lat, lon = read_gps_data_url(url)
        assert lat == pytest.approx(45.0, abs=TOLERANCE)
        assert lon == pytest.approx(-93.0, abs=TOLERANCE)

    def test_wrong_prefix(self):
        with pytest.raises(InvalidImageFormat):
            from_data_url("data:image/png;base64,AAAA")

    def test_bad_base64(self):
        with pytest.raises(InvalidImageFormat):
            from_data_url("data:image/jpeg;base64,@@@")

import piexif
import pytest

from photomap.config import get_settings
from sample_data import (
    camera_exif,
    make_jpeg,
    write_parcels,
    write_points,
    write_roads,
    write_wells,
)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for var in ("PHOTOMAP_DEST_CRS", "PHOTOMAP_DEFAULT_SOURCE_CRS"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def plain_jpeg():
    return make_jpeg()


@pytest.fixture
def camera_jpeg():
    return make_jpeg(camera_exif())


@pytest.fixture
def geotagged_jpeg():
    gps = {
        piexif.GPSIFD.GPSLatitudeRef: b"S",
        piexif.GPSIFD.GPSLatitude: ((33, 1), (51, 1), (54000, 1000)),
        piexif.GPSIFD.GPSLongitudeRef: b"E",
        piexif.GPSIFD.GPSLongitude: ((151, 1), (12, 1), (36000, 1000)),
    }
    return make_jpeg(camera_exif(gps=gps))


@pytest.fixture
def thumbnail_jpeg():
    return make_jpeg(camera_exif(thumbnail=make_jpeg(size=(4, 4))))


@pytest.fixture
def shape_folder(tmp_path):
    """A folder holding point, line, polygon and multipoint shapefiles."""
    write_points(tmp_path)
    write_roads(tmp_path)
    write_parcels(tmp_path)
    write_wells(tmp_path)
    return tmp_path

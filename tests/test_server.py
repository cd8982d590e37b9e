"""Tests for the FastAPI server endpoints."""

import io
import zipfile

import pytest
from httpx import ASGITransport, AsyncClient

from photomap.exif import read_gps
from photomap.server import app

from sample_data import write_multipatch, write_points, write_roads

TOLERANCE = 1 / 3_600_000


@pytest.fixture
def client():
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


def _components(base, exts=(".shp", ".shx", ".dbf", ".prj")):
    return [
        ("files", (base.with_suffix(ext).name, base.with_suffix(ext).read_bytes(), "application/octet-stream"))
        for ext in exts
    ]


@pytest.mark.asyncio
class TestShapefileUpload:
    async def test_multi_file(self, client, tmp_path):
        files = _components(write_points(tmp_path))
        resp = await client.post("/shapefiles", files=files)
        assert resp.status_code == 200
        data = resp.json()
        assert data["fields"] == ["NAME", "ELEV"]
        [sf] = data["shapefiles"]
        assert sf["name"] == "points"
        assert sf["dest_crs"] == "EPSG:3857"
        assert sf["features"][0]["geometry"]["type"] == "Point"
        assert sf["features"][1]["properties"] == {"NAME": "b", "ELEV": 7}

    async def test_dest_crs_query(self, client, tmp_path):
        files = _components(write_points(tmp_path))
        resp = await client.post("/shapefiles?dest_crs=EPSG:4326", files=files)
        assert resp.status_code == 200
        coords = resp.json()["shapefiles"][0]["features"][1]["geometry"]["coordinates"]
        assert coords == pytest.approx([-93.0, 45.0])

    async def test_invalid_dest_crs(self, client, tmp_path):
        files = _components(write_points(tmp_path))
        resp = await client.post("/shapefiles?dest_crs=nonsense", files=files)
        assert resp.status_code == 400

    async def test_zip_upload(self, client, tmp_path):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            for base in (write_points(tmp_path), write_roads(tmp_path)):
                for ext in (".shp", ".shx", ".dbf", ".prj"):
                    p = base.with_suffix(ext)
                    zf.writestr(f"data/{p.name}", p.read_bytes())
        files = [("files", ("archive.zip", buf.getvalue(), "application/zip"))]
        resp = await client.post("/shapefiles", files=files)
        assert resp.status_code == 200
        names = [sf["name"] for sf in resp.json()["shapefiles"]]
        assert sorted(names) == ["points", "roads"]

    async def test_missing_shp_returns_400(self, client, tmp_path):
        files = _components(write_points(tmp_path), exts=(".dbf",))
        resp = await client.post("/shapefiles", files=files)
        assert resp.status_code == 400

    async def test_unsupported_geometry_reported(self, client, tmp_path):
        files = _components(write_multipatch(tmp_path))
        resp = await client.post("/shapefiles", files=files)
        assert resp.status_code == 200
        data = resp.json()
        assert data["shapefiles"] == []
        assert data["results"][0]["ok"] is False


@pytest.mark.asyncio
class TestPhotoGps:
    async def test_read_geotag(self, client, geotagged_jpeg):
        files = {"file": ("tagged.jpg", geotagged_jpeg, "image/jpeg")}
        resp = await client.post("/photos/gps", files=files)
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "tagged.jpg"
        assert data["lat"] == pytest.approx(-(33 + 51 / 60 + 54 / 3600))

    async def test_read_untagged(self, client, plain_jpeg):
        files = {"file": ("plain.jpg", plain_jpeg, "image/jpeg")}
        resp = await client.post("/photos/gps", files=files)
        assert resp.status_code == 200
        assert resp.json() == {"name": "plain.jpg", "lat": None, "lon": None}

    async def test_read_not_jpeg(self, client):
        files = {"file": ("x.jpg", b"nope", "image/jpeg")}
        resp = await client.post("/photos/gps", files=files)
        assert resp.status_code == 422

    async def test_write(self, client, camera_jpeg):
        files = {"file": ("photo.jpg", camera_jpeg, "image/jpeg")}
        resp = await client.post("/photos/gps/write", files=files, data={"lat": "45.0", "lon": "-93.0"})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/jpeg"
        assert 'filename="photo.jpg"' in resp.headers["content-disposition"]
        lat, lon = read_gps(resp.content)
        assert lat == pytest.approx(45.0, abs=TOLERANCE)
        assert lon == pytest.approx(-93.0, abs=TOLERANCE)

    async def test_write_out_of_range(self, client, camera_jpeg):
        files = {"file": ("photo.jpg", camera_jpeg, "image/jpeg")}
        resp = await client.post("/photos/gps/write", files=files, data={"lat": "95", "lon": "0"})
        assert resp.status_code == 422

    async def test_write_not_jpeg(self, client):
        files = {"file": ("photo.jpg", b"plain text", "image/jpeg")}
        resp = await client.post("/photos/gps/write", files=files, data={"lat": "1", "lon": "2"})
        assert resp.status_code == 422

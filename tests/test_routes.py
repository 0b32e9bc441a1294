import base64
import io
import os
import random
import re
import shutil

from PIL import Image
import pytest

from conftest import b64, make_png
from imagestore.image import normalize_png
from imagestore.routes import create_app
from imagestore.validation import compute_sha256

HEX64 = re.compile(r"[0-9a-f]{64}")


def upload(client, data):
    return client.post("/upload", json={"data": data})


def test_upload_and_fetch_pixel(client, png_bytes):
    resp = upload(client, "data:image/png;base64," + b64(png_bytes))
    assert resp.status_code == 200
    digest = resp.get_json()["hash"]
    assert HEX64.fullmatch(digest)

    image = client.get(f"/{digest}.png")
    assert image.status_code == 200
    assert image.headers["Content-Type"] == "image/png"
    assert image.data

    again = upload(client, "data:image/png;base64," + b64(png_bytes))
    assert again.get_json()["hash"] == digest


def test_round_trip_returns_canonical_bytes(client, png_bytes):
    digest = upload(client, b64(png_bytes)).get_json()["hash"]
    canonical = normalize_png(png_bytes)

    assert digest == compute_sha256(canonical)
    assert client.get(f"/{digest}.png").data == canonical


def test_upload_dedup_across_wrappings(client, store, png_bytes):
    encoded = b64(png_bytes)
    hashes = {
        upload(client, encoded).get_json()["hash"],
        upload(client, "data:image/png;base64," + encoded).get_json()["hash"],
        upload(client, "\n".join(encoded[i : i + 16] for i in range(0, len(encoded), 16))).get_json()["hash"],
    }
    assert len(hashes) == 1
    assert os.listdir(store.root) == [f"{hashes.pop()}.png"]


def test_upload_distinct_images_get_distinct_hashes(client, store):
    red = upload(client, b64(make_png(color=(255, 0, 0, 255)))).get_json()["hash"]
    blue = upload(client, b64(make_png(color=(0, 0, 255, 255)))).get_json()["hash"]
    assert red != blue
    assert len(os.listdir(store.root)) == 2


def test_upload_accepts_json_without_content_type(client, png_bytes):
    body = '{"data": "%s"}' % b64(png_bytes)
    resp = client.post("/upload", data=body, content_type="text/plain")
    assert resp.status_code == 200


@pytest.mark.parametrize("body", [{}, {"data": ""}, {"data": None}, {"image": "aGk="}])
def test_upload_missing_data(client, body):
    resp = client.post("/upload", json=body)
    assert resp.status_code == 400
    assert resp.data == b"Missing image data"


@pytest.mark.parametrize("body", ["not json", "[1, 2]", '"aGk="'])
def test_upload_invalid_json(client, body):
    resp = client.post("/upload", data=body, content_type="application/json")
    assert resp.status_code == 400
    assert resp.mimetype == "text/plain"


def test_upload_invalid_base64(client, store):
    resp = upload(client, "data:image/png;base64,@@@not-base64@@@")
    assert resp.status_code == 400
    assert os.listdir(store.root) == []


def test_upload_not_an_image(client, store):
    resp = upload(client, b64(b"plain text, not pixels"))
    assert resp.status_code == 400
    assert resp.data == b"Invalid image data or conversion error"
    assert os.listdir(store.root) == []


def test_upload_size_boundary(make_config, png_bytes):
    exact = create_app(make_config(MAX_UPLOAD_SIZE=len(png_bytes))).test_client()
    assert upload(exact, b64(png_bytes)).status_code == 200

    under = create_app(make_config(MAX_UPLOAD_SIZE=len(png_bytes) - 1)).test_client()
    resp = upload(under, b64(png_bytes))
    assert resp.status_code == 400
    assert b"too large" in resp.data


def test_upload_too_large_rejected_before_conversion(make_config):
    client = create_app(make_config(MAX_UPLOAD_SIZE=1024)).test_client()
    resp = upload(client, b64(b"\x00" * 1025))
    assert resp.status_code == 400
    assert b"too large" in resp.data


def test_upload_oversized_body(make_config, store):
    client = create_app(make_config(MAX_UPLOAD_SIZE=16)).test_client()
    resp = upload(client, "A" * 200_000)
    assert resp.status_code == 400
    assert b"too large" in resp.data
    assert os.listdir(store.root) == []


def test_upload_line_wrapped_at_ceiling(make_config):
    # Incompressible pixels keep the PNG near 3MB, so MIME line breaks add >64KB
    noise = random.Random(0).randbytes(1024 * 1024 * 3)
    buf = io.BytesIO()
    Image.frombytes("RGB", (1024, 1024), noise).save(buf, format="PNG")
    raw = buf.getvalue()

    client = create_app(make_config(MAX_UPLOAD_SIZE=len(raw))).test_client()
    resp = upload(client, base64.encodebytes(raw).decode("ascii"))
    assert resp.status_code == 200
    assert resp.get_json()["hash"] == compute_sha256(normalize_png(raw))


def test_upload_storage_failure_is_server_error(client, store, png_bytes):
    shutil.rmtree(store.root)
    resp = upload(client, b64(png_bytes))
    assert resp.status_code == 500
    assert resp.data == b"Failed to store image"


def test_get_unknown_digest_is_not_found(client):
    resp = client.get(f"/{compute_sha256(b'never uploaded')}.png")
    assert resp.status_code == 404
    assert resp.data == b"Image not found"


@pytest.mark.parametrize(
    "path",
    [
        "/ABCDEF.png",
        "/abcdef.avif",
        "/abcdef",
        "/.png",
        "/abcdef.png.png",
        "/images/abcdef.png",
    ],
)
def test_get_rejects_malformed_filenames(client, path):
    resp = client.get(path)
    assert resp.status_code == 400
    assert resp.data == b"Invalid image URL"


def test_cors_headers(client, png_bytes):
    origin = {"Origin": "http://example.com"}
    resp = client.post("/upload", json={"data": b64(png_bytes)}, headers=origin)
    assert resp.headers["Access-Control-Allow-Origin"] == "*"

    missing = client.get(f"/{compute_sha256(b'x')}.png", headers=origin)
    assert missing.status_code == 404
    assert missing.headers["Access-Control-Allow-Origin"] == "*"


def test_cors_preflight(client):
    resp = client.options(
        "/upload",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]
    assert "content-type" in resp.headers["Access-Control-Allow-Headers"].lower()


def test_requests_are_logged(client, caplog):
    with caplog.at_level("INFO", logger="imagestore.routes"):
        client.get("/abcdef.png")
    assert "GET http://localhost/abcdef.png" in caplog.text


def test_avif_app_serves_avif_content_type(make_config, png_bytes):
    from PIL import features

    if not features.check("avif"):
        pytest.skip("Pillow built without AVIF support")

    client = create_app(make_config(IMAGE_FORMAT="avif")).test_client()
    digest = upload(client, b64(png_bytes)).get_json()["hash"]
    resp = client.get(f"/{digest}.avif")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "image/avif"
    assert client.get(f"/{digest}.png").status_code == 400

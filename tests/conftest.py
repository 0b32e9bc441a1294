"""Shared fixtures: a PNG-format app over a temporary store, and sample images."""

from __future__ import annotations

import base64
import io

from PIL import Image
import pytest

from imagestore.config import Config
from imagestore.routes import create_app


def make_png(size: tuple[int, int] = (1, 1), color=(0, 0, 0, 0), mode: str = "RGBA", **save_kwargs) -> bytes:
    """Encode a solid-color image as PNG bytes."""
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG", **save_kwargs)
    return buf.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def png_bytes() -> bytes:
    """A 1x1 transparent pixel."""
    return make_png()


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides) -> Config:
        cfg = Config()
        cfg.STORE_ROOT = str(tmp_path / "images")
        cfg.IMAGE_FORMAT = "png"
        for key, value in overrides.items():
            setattr(cfg, key, value)
        return cfg

    return _make


@pytest.fixture
def app(make_config):
    return create_app(make_config())


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["imagestore"]["store"]

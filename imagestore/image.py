"""
Image canonicalization module for the image store.

Decodes uploaded images with Pillow and re-encodes them into the store's single
target format, so that identical input always yields identical stored bytes.
"""

import io
import logging
from dataclasses import dataclass
from typing import Callable

from PIL import Image

from .errors import ConfigurationError, InvalidImage

logger = logging.getLogger(__name__)

# Modes the PNG encoder writes as-is
PNG_MODES = {"1", "L", "LA", "I;16", "P", "RGB", "RGBA"}


@dataclass(frozen=True)
class ImageFormat:
    """One stored image variant: its transform, file extension and content type."""

    name: str
    extension: str
    content_type: str
    normalize: Callable[[bytes], bytes]


def _load(raw: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded Pillow image (first frame only).

    Raises:
        PIL.UnidentifiedImageError: unknown or corrupt data
        Image.DecompressionBombError: oversized pixel dimensions
        OSError, SyntaxError: truncated or structurally broken files
    """
    with Image.open(io.BytesIO(raw)) as probe:
        probe.verify()

    # verify() leaves the image unusable, so decode again
    img = Image.open(io.BytesIO(raw))
    img.seek(0)
    img.load()
    return img


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.has_transparency_data:
        return img.convert("RGBA")
    return img.convert("RGB")


def normalize_avif(raw: bytes) -> bytes:
    """
    Re-encode any decodable image as AVIF at maximum quality with full chroma.

    Metadata from the input (EXIF, XMP, comments) is dropped.
    """
    img = _to_rgb(_load(raw))
    img.info.clear()

    out = io.BytesIO()
    img.save(out, format="AVIF", quality=100, subsampling="4:4:4", max_threads=1)
    return out.getvalue()


def normalize_png(raw: bytes) -> bytes:
    """
    Re-validate and re-serialize an image as PNG.

    Only palette transparency and the ICC profile survive from the input;
    text chunks, EXIF and timestamps are dropped.
    """
    img = _load(raw)
    if img.mode == "F":
        img = img.convert("I")
    if img.mode == "I":
        # 32-bit pixels are written as 16-bit grayscale
        img = img.convert("I;16")
    elif img.mode not in PNG_MODES:
        img = _to_rgb(img)

    kept = {key: img.info[key] for key in ("transparency", "icc_profile") if key in img.info}
    img.info.clear()

    out = io.BytesIO()
    img.save(out, format="PNG", **kept)
    return out.getvalue()


FORMATS = {
    "avif": ImageFormat(name="avif", extension="avif", content_type="image/avif", normalize=normalize_avif),
    "png": ImageFormat(name="png", extension="png", content_type="image/png", normalize=normalize_png),
}


def get_format(name: str) -> ImageFormat:
    """
    Look up a stored image variant by name.

    Raises:
        ConfigurationError: if the name is not one of FORMATS
    """
    try:
        return FORMATS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown image format {name!r}, expected one of: {', '.join(sorted(FORMATS))}"
        ) from None


def canonicalize(raw: bytes, image_format: ImageFormat) -> bytes:
    """
    Convert validated upload bytes into the canonical stored bytes.

    Args:
        raw: Size-checked image bytes
        image_format: Target variant whose normalize() is applied

    Returns:
        Canonical image bytes

    Raises:
        InvalidImage: if the transform fails or produces nothing. The underlying
            error is logged but never returned to the client.
    """
    try:
        canonical = image_format.normalize(raw)
    except Exception as e:
        logger.warning(f"Image conversion to {image_format.name} failed: {type(e).__name__}: {e}")
        raise InvalidImage() from e

    if not canonical:
        logger.warning(f"Image conversion to {image_format.name} produced no data")
        raise InvalidImage()

    logger.debug(f"Canonicalized {len(raw)} bytes to {len(canonical)} bytes of {image_format.name}")
    return canonical

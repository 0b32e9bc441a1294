"""
Content-addressed image store over HTTP.

Clients upload a base64 image; the service re-encodes it into one canonical
format, stores the bytes under their SHA256 digest and returns the digest.
Stored images are served back by digest.

Image Formats:
    - avif: re-encoded as AVIF at maximum quality (default)
    - png: re-validated and re-serialized as PNG

See README.md for full documentation.
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .errors import (
    ImageStoreError,
    MissingInput,
    InvalidPayload,
    PayloadTooLarge,
    InvalidImage,
    InvalidKey,
    NotFound,
    StorageError,
    ConfigurationError,
)
from .validation import compute_sha256, decode_payload, validate_size, parse_key
from .image import ImageFormat, FORMATS, get_format, canonicalize
from .store import BlobStore
from .routes import create_app

__all__ = [
    "Config",
    "ImageStoreError",
    "MissingInput",
    "InvalidPayload",
    "PayloadTooLarge",
    "InvalidImage",
    "InvalidKey",
    "NotFound",
    "StorageError",
    "ConfigurationError",
    "compute_sha256",
    "decode_payload",
    "validate_size",
    "parse_key",
    "ImageFormat",
    "FORMATS",
    "get_format",
    "canonicalize",
    "BlobStore",
    "create_app",
]

"""
Input validation module for the image store.

Provides payload decoding, size checks, content digests and retrieval key parsing.
"""

import base64
import binascii
import hashlib
import logging
import re

from .config import MAX_SIZE
from .errors import InvalidKey, InvalidPayload, PayloadTooLarge

logger = logging.getLogger(__name__)

# Optional "data:<mime>;base64," wrapper in front of the base64 body
DATA_URI_PREFIX = re.compile(r"^data:[^,;]*(;[^,;]*)*;base64,", re.IGNORECASE)
DIGEST_PATTERN = re.compile(r"[0-9a-f]+")


def compute_sha256(data: bytes) -> str:
    """
    Compute the SHA256 content digest used as storage key.

    Args:
        data: Canonical image bytes to hash

    Returns:
        64 lowercase hex characters

    Example:
        >>> compute_sha256(b"hello")
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def decode_payload(data) -> bytes:
    """
    Decode the base64 image data of an upload request.

    Args:
        data: Base64 string, optionally prefixed with "data:<mime>;base64,"

    Returns:
        Raw (not yet validated) image bytes

    Raises:
        InvalidPayload: if data is not a string or not valid base64

    Examples:
        >>> decode_payload("aGk=")
        b'hi'
        >>> decode_payload("data:image/png;base64,aGk=")
        b'hi'
    """
    if not isinstance(data, str):
        logger.warning(f"Invalid image data type: {type(data).__name__}")
        raise InvalidPayload()

    body = DATA_URI_PREFIX.sub("", data.strip(), count=1)
    # Line-wrapped base64 (MIME style) is accepted
    body = "".join(body.split())
    body += "=" * (-len(body) % 4)

    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Invalid base64 image data: {e}")
        raise InvalidPayload() from e


def validate_size(raw: bytes, max_size: int = MAX_SIZE) -> bytes:
    """
    Enforce the upload size ceiling before any processing.

    Args:
        raw: Decoded image bytes
        max_size: Largest accepted size in bytes (inclusive)

    Returns:
        The same bytes, unchanged

    Raises:
        PayloadTooLarge: if len(raw) > max_size
    """
    if len(raw) > max_size:
        logger.warning(f"Image too large: {len(raw)} bytes (max {max_size})")
        raise PayloadTooLarge(max_size)
    return raw


def parse_key(filename: str, extension: str) -> str:
    """
    Parse a retrieval filename into the digest it names.

    Args:
        filename: Requested path segment (e.g. "ab12...ef.avif")
        extension: The store's fixed extension (e.g. "avif")

    Returns:
        The hex digest portion, verbatim

    Raises:
        InvalidKey: if filename is not exactly <lowercase hex>.<extension>

    Security:
        This is the only check between the request path and the filesystem.
        Separators, "..", uppercase hex and foreign extensions never match.

    Examples:
        >>> parse_key("abc123.avif", "avif")
        'abc123'
        >>> parse_key("../etc/passwd", "avif")  # Raises InvalidKey
    """
    match = re.fullmatch(r"([0-9a-f]+)\." + re.escape(extension), filename)
    if not match:
        logger.warning(f"Invalid image filename: {filename!r}")
        raise InvalidKey()

    logger.debug(f"Image filename validated: {filename}")
    return match.group(1)


def validate_digest(digest: str) -> None:
    """
    Validate a digest before it becomes part of a storage path.

    Raises:
        InvalidKey: if digest is not a non-empty lowercase hex string
    """
    if not isinstance(digest, str) or not DIGEST_PATTERN.fullmatch(digest):
        logger.warning(f"Invalid digest format: {digest!r}")
        raise InvalidKey()

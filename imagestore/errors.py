"""Typed errors for the image store.

Each request-level error carries the HTTP status it maps to and a message that
is safe to show to the client.
"""


class ImageStoreError(Exception):
    """Base exception for all image store errors."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingInput(ImageStoreError):
    """Raised when an upload carries no image data."""

    status_code = 400
    message = "Missing image data"


class InvalidPayload(ImageStoreError):
    """Raised when the request body or its base64 data cannot be decoded."""

    status_code = 400
    message = "Invalid JSON payload or image data"


class PayloadTooLarge(ImageStoreError):
    """Raised when decoded image bytes exceed the upload ceiling."""

    status_code = 400

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        super().__init__(f"Image file too large, maximum allowed size is {_human_size(max_size)}")


class InvalidImage(ImageStoreError):
    """Raised when the image transform cannot decode or re-encode the upload."""

    status_code = 400
    message = "Invalid image data or conversion error"


class InvalidKey(ImageStoreError):
    """Raised when a retrieval filename does not match ``<hex>.<extension>``."""

    status_code = 400
    message = "Invalid image URL"


class NotFound(ImageStoreError):
    """Raised when no stored image exists for a well-formed key."""

    status_code = 404
    message = "Image not found"


class StorageError(ImageStoreError):
    """Raised when the store cannot persist an image."""

    status_code = 500
    message = "Failed to store image"


class ConfigurationError(ImageStoreError):
    """Raised at startup for invalid settings."""


def _human_size(size: int) -> str:
    if size >= 1024 * 1024 and size % (1024 * 1024) == 0:
        return f"{size // (1024 * 1024)}MB"
    if size >= 1024 and size % 1024 == 0:
        return f"{size // 1024}KB"
    return f"{size} bytes"

"""
Configuration module for the image store.

Loads all configuration from environment variables with sensible defaults.
"""

import os

from .errors import ConfigurationError

# Upload ceiling for decoded image bytes (10MB)
MAX_SIZE = 10 * 1024 * 1024


class Config:
    """
    Image store configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 0.0.0.0
            FLASK_PORT: Server bind port. Default: 3000
            STORE_ROOT: Directory holding stored images. Default: ./images
            IMAGE_FORMAT: Stored image format, "avif" or "png". Default: avif
            MAX_UPLOAD_SIZE: Maximum decoded upload size in bytes. Default: 10485760

        Raises:
            ConfigurationError: if a numeric setting is not an integer
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = _int_env("FLASK_PORT", 3000)

        # Storage
        self.STORE_ROOT = os.getenv("STORE_ROOT", os.path.join(os.getcwd(), "images"))
        self.IMAGE_FORMAT = os.getenv("IMAGE_FORMAT", "avif").lower()

        # Validation limits
        self.MAX_UPLOAD_SIZE = _int_env("MAX_UPLOAD_SIZE", MAX_SIZE)

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT}, "
            f"STORE_ROOT={self.STORE_ROOT}, "
            f"IMAGE_FORMAT={self.IMAGE_FORMAT}, "
            f"MAX_UPLOAD_SIZE={self.MAX_UPLOAD_SIZE})"
        )


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


# Global config instance
config = Config()

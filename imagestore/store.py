"""
Content-addressed blob store for canonical images.

Layout: a single flat directory of ``<sha256 hex>.<extension>`` files. The
existence of a file is the only index.
"""

import logging
import os
import tempfile
from pathlib import Path

from .errors import NotFound, StorageError
from .image import ImageFormat
from .validation import parse_key, validate_digest

logger = logging.getLogger(__name__)


class BlobStore:
    """
    Filesystem store holding one image format under one root directory.

    The store never creates its root on read or write; the composing entry
    point calls ensure_root() once at startup.
    """

    def __init__(self, root: str | Path, image_format: ImageFormat):
        self.root = Path(root)
        self.image_format = image_format

    @property
    def extension(self) -> str:
        return self.image_format.extension

    def ensure_root(self) -> None:
        """Create the root directory if it does not exist yet."""
        if not self.root.is_dir():
            logger.info(f"Creating image store directory: {self.root}")
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, digest: str) -> Path:
        """
        Return the storage path of a digest.

        Raises:
            InvalidKey: if digest is not lowercase hex
        """
        validate_digest(digest)
        return self.root / f"{digest}.{self.extension}"

    def exists(self, digest: str) -> bool:
        """Return True if an image is already stored under digest."""
        return self.path_for(digest).is_file()

    def put(self, digest: str, data: bytes) -> Path:
        """
        Durably write canonical bytes under their digest.

        The bytes go to a temporary file in the store root, are fsynced and then
        renamed onto the final path, so readers never see a partial image.
        A digest that is already stored is left untouched, since its bytes are
        identical by construction.

        Args:
            digest: SHA256 hex digest of data (server computed, never user input)
            data: Canonical image bytes

        Returns:
            Path of the stored image

        Raises:
            StorageError: on any filesystem failure
        """
        dest = self.path_for(digest)
        if self.exists(digest):
            logger.debug(f"Image already stored: {dest.name}")
            return dest

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=self.root)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, dest)
            tmp_path = None
        except OSError as e:
            logger.error(f"Failed to store image {dest.name}: {e}")
            raise StorageError() from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_path}")

        logger.debug(f"Stored {len(data)} bytes at {dest}")
        return dest

    def get(self, filename: str) -> bytes:
        """
        Read a stored image by its retrieval filename.

        Args:
            filename: Requested "<hex>.<extension>" name

        Returns:
            Stored image bytes

        Raises:
            InvalidKey: if filename is malformed (no filesystem access happens)
            NotFound: if no readable image exists under that name
        """
        digest = parse_key(filename, self.extension)
        path = self.path_for(digest)
        try:
            return path.read_bytes()
        except OSError as e:
            logger.debug(f"Image not readable: {path}: {e}")
            raise NotFound() from e

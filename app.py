"""
Content-addressed image store over HTTP.

Uploaded images are re-encoded into one canonical format, hashed with SHA256
and stored as <hash>.<ext> in a flat directory. The hash is the retrieval key.

Endpoints:
    - POST /upload - Body {"data": "<base64 image>"}, returns {"hash": "..."}
    - GET /<hash>.<ext> - Returns the stored image

Environment Variables:
    LOG_LEVEL, FLASK_HOST, FLASK_PORT, STORE_ROOT, IMAGE_FORMAT, MAX_UPLOAD_SIZE

Example:
    $ IMAGE_FORMAT=png python app.py
    $ curl -X POST localhost:3000/upload -d '{"data": "data:image/png;base64,..."}'
    $ curl -o image.png localhost:3000/<hash>.png
"""

import logging

from imagestore.config import config
from imagestore.routes import create_app

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the image store."""
    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    app = create_app(config)
    logger.info(f"Starting image store service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")
    if debug_mode:
        logger.info("Flask debug mode enabled")
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode)


if __name__ == "__main__":
    main()

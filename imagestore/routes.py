"""
Flask application and image store endpoints.

Endpoints:
    - POST /upload - Store a base64 image, respond with its content hash
    - GET /<hash>.<ext> - Serve a stored image
"""

import logging
import math

from flask import Blueprint, Flask, current_app, jsonify, make_response, request
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge

from .config import Config, config as default_config
from .errors import ImageStoreError, InvalidPayload, MissingInput, PayloadTooLarge
from .image import canonicalize, get_format
from .store import BlobStore
from .validation import compute_sha256, decode_payload, validate_size

logger = logging.getLogger(__name__)

bp = Blueprint("imagestore", __name__)

# Room for the JSON envelope and a data URI prefix around the base64 body
BODY_SLACK = 64 * 1024


def create_app(cfg: Config | None = None) -> Flask:
    """
    Build the Flask application for one image format.

    Constructs the blob store from configuration and makes sure its directory
    exists. Request handlers reach the store through app.extensions.

    Args:
        cfg: Configuration to use (defaults to the global config)

    Raises:
        ConfigurationError: if IMAGE_FORMAT names an unknown format
    """
    cfg = cfg or default_config
    image_format = get_format(cfg.IMAGE_FORMAT)

    store = BlobStore(cfg.STORE_ROOT, image_format)
    store.ensure_root()

    app = Flask(__name__)
    # Base64 inflates by 4/3, and line-wrapped base64 adds up to one JSON-escaped
    # newline ("\n", 2 bytes) per pair of characters before it stops fitting
    app.config["MAX_CONTENT_LENGTH"] = 2 * 4 * math.ceil(cfg.MAX_UPLOAD_SIZE / 3) + BODY_SLACK
    CORS(app, send_wildcard=True)
    app.extensions["imagestore"] = {
        "store": store,
        "format": image_format,
        "max_size": cfg.MAX_UPLOAD_SIZE,
    }
    app.register_blueprint(bp)

    logger.info(f"Serving {image_format.name} images from {store.root}")
    return app


def _state() -> dict:
    return current_app.extensions["imagestore"]


# -------------------------------
# Request hooks
# -------------------------------


@bp.before_app_request
def log_request():
    logger.info(f"{request.method} {request.url}")


@bp.app_errorhandler(ImageStoreError)
def handle_store_error(err: ImageStoreError):
    if err.status_code >= 500:
        logger.error(f"{request.method} {request.path} failed: {err.message}")
    else:
        logger.warning(f"{request.method} {request.path} rejected ({err.status_code}): {err.message}")
    resp = make_response(err.message, err.status_code)
    resp.mimetype = "text/plain"
    return resp


@bp.app_errorhandler(RequestEntityTooLarge)
def handle_body_too_large(err):
    return handle_store_error(PayloadTooLarge(_state()["max_size"]))


# -------------------------------
# Image Endpoints
# -------------------------------


@bp.route("/upload", methods=["POST"])
def upload():
    """
    Store an uploaded image and return its content hash.

    Request Body:
        {"data": "<base64>"} where the base64 may carry a
        "data:<mime>;base64," prefix

    Returns:
        JSON {"hash": "<64 hex chars>"}; the image is then served at
        /<hash>.<ext>

    Raises:
        400: Invalid JSON, missing data, bad base64, too large, not an image
        500: Image could not be written to the store

    Example Flow:
        1. Decode base64 and enforce the size ceiling
        2. Re-encode into the store format (canonical bytes)
        3. Hash the canonical bytes and write them under that hash
    """
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        logger.warning("Upload body is not a JSON object")
        raise InvalidPayload()

    data = body.get("data")
    if not data:
        raise MissingInput()

    state = _state()
    store = state["store"]

    raw = validate_size(decode_payload(data), state["max_size"])
    canonical = canonicalize(raw, state["format"])
    digest = compute_sha256(canonical)
    store.put(digest, canonical)

    logger.info(f"Image stored: {digest}.{store.extension}, {len(raw)} -> {len(canonical)} bytes")
    return jsonify(hash=digest)


@bp.route("/<path:filename>", methods=["GET"])
def get_image(filename):
    """
    Serve a stored image by "<hash>.<ext>" filename.

    The path converter lets slashes through so that traversal attempts are
    rejected by the key check as 400 rather than by routing.

    Response Headers:
        Content-Type: the store format's content type

    Raises:
        400: Filename is not <lowercase hex>.<ext>
        404: No image stored under that hash
    """
    store = _state()["store"]
    image_bytes = store.get(filename)

    resp = make_response(image_bytes)
    resp.headers["Content-Type"] = store.image_format.content_type
    resp.headers["Content-Length"] = len(image_bytes)
    logger.debug(f"Image sent: {filename}, {len(image_bytes)} bytes")
    return resp

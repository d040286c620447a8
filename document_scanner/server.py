"""
HTTP service for document detection and rectification
"""

import io
import json
import logging
import os
import uuid
from typing import Optional

from dotenv import load_dotenv
from flasgger import Swagger, swag_from
from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

from .config import ScannerConfig
from .detector import BoundaryDetector
from .errors import InvalidGeometry, LoadFailed, ScannerError
from .formats import STANDARD_FORMATS, PaperFormat, find_format
from .geometry import normalize_rotation, parse_corners
from .page_state import PageGeometry
from .primitives import OpenCVPrimitives
from .rectifier import RectificationPlanner

logger = logging.getLogger(__name__)

SWAGGER_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "swagger")

MEGABYTE = (2 ** 10) ** 2

swagger_config = {
    "specs_route": "/docs/",
    "specs": [
        {
            "endpoint": 'apispec_1',
            "route": '/docs-json',
            "rule_filter": lambda rule: True,  # all in
            "model_filter": lambda tag: True,  # all in
        }
    ],
}


def _read_upload(primitives: OpenCVPrimitives):
    upload = request.files.get('file')
    if upload is None:
        raise LoadFailed("No file uploaded, send the image as multipart field 'file'")
    return primitives.decode(upload.read())


def _read_rotation() -> int:
    raw = request.values.get('rotation', default='0')
    try:
        return normalize_rotation(int(raw))
    except ValueError as e:
        raise InvalidGeometry(f"Invalid rotation: {raw}") from e


def _read_format() -> Optional[PaperFormat]:
    """Output format from 'format' (a name or "none") or a numeric 'ratio'"""
    ratio = request.values.get('ratio')
    if ratio:
        try:
            value = float(ratio)
        except ValueError as e:
            raise InvalidGeometry(f"Invalid ratio: {ratio}") from e
        if value <= 0:
            raise InvalidGeometry(f"Ratio must be positive, got {ratio}")
        return PaperFormat("Custom", value)

    name = request.values.get('format')
    if not name:
        return STANDARD_FORMATS[0]
    if name.lower() == 'none':
        return None

    fmt = find_format(name)
    if fmt is None:
        raise InvalidGeometry(f"Unknown format: {name}")
    return fmt


def _read_corners():
    raw = request.values.get('corners')
    if not raw:
        return None
    try:
        return parse_corners(json.loads(raw))
    except ValueError as e:
        raise InvalidGeometry(f"Corners must be JSON: {e}") from e


def create_app(config: Optional[ScannerConfig] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Scanner configuration, read from the environment when omitted
    """
    config = config or ScannerConfig.from_env()
    primitives = OpenCVPrimitives()
    detector = BoundaryDetector(config, primitives)
    planner = RectificationPlanner(config, primitives)

    app = Flask(__name__)
    CORS(app)
    app.config['MAX_CONTENT_LENGTH'] = 50 * MEGABYTE
    app.config['SCANNER'] = config
    Swagger(app, swagger_config, merge=True)

    def new_page(image, corners=None) -> PageGeometry:
        height, width = image.shape[:2]
        return PageGeometry.create(
            uuid.uuid4().hex,
            width,
            height,
            corners=corners,
            default_inset=config.default_inset,
            reset_inset_ratio=config.reset_inset_ratio,
            medium_resolution_area=config.medium_resolution_area,
            high_resolution_area=config.high_resolution_area,
        )

    @app.errorhandler(LoadFailed)
    def handle_load_failed(e):
        return jsonify(message=str(e)), 400

    @app.errorhandler(InvalidGeometry)
    def handle_invalid_geometry(e):
        return jsonify(message=str(e)), 422

    @app.errorhandler(ScannerError)
    def handle_scanner_error(e):
        logger.error("Request failed: %s", e)
        return jsonify(message=str(e)), 500

    @app.route('/is-available', methods=['GET'])
    @swag_from(os.path.join(SWAGGER_DIR, "is-available.yml"))
    def is_available():
        return jsonify(isAvailable=True), 200

    @app.route('/formats', methods=['GET'])
    @swag_from(os.path.join(SWAGGER_DIR, "formats.yml"))
    def formats():
        return jsonify([
            {"name": fmt.name, "ratio": fmt.ratio, "dimensions": fmt.dimensions}
            for fmt in STANDARD_FORMATS
        ]), 200

    @app.route('/detect', methods=['POST'])
    @swag_from(os.path.join(SWAGGER_DIR, "detect.yml"))
    def detect():
        image = _read_upload(primitives)
        rotation = _read_rotation()

        result = detector.detect_with_details(image)
        page = new_page(image, result.corners if result else None)
        page.set_rotation(rotation)
        view_width, view_height = page.view_size

        return jsonify(
            found=result is not None,
            strategy=result.strategy if result else None,
            corners=page.corners.as_list(),
            rotation=page.rotation,
            width=view_width,
            height=view_height,
        ), 200

    @app.route('/rectify', methods=['POST'])
    @swag_from(os.path.join(SWAGGER_DIR, "rectify.yml"))
    def rectify():
        image = _read_upload(primitives)
        rotation = _read_rotation()
        corners = _read_corners()
        output_format = _read_format()

        if corners is None:
            result = detector.detect_with_details(image)
            page = new_page(image, result.corners if result else None)
            page.set_rotation(rotation)
        else:
            page = new_page(image)
            page.set_rotation(rotation)
            page.set_corners(corners)

        page.set_output_format(output_format)
        rectified = page.rectify(primitives.rotate(image, rotation), planner)
        if rectified is None:
            return jsonify(message=page.status), 422

        return send_file(
            io.BytesIO(primitives.encode(rectified.image, ".png")),
            mimetype='image/png',
            download_name='scanned.png'
        )

    return app


def main():
    # load envs
    load_dotenv()

    port = int(os.getenv("PORT", 5000))
    host = os.getenv("HOST", None)

    app = create_app()
    app.run(debug=os.getenv("FLASK_DEBUG", "false").lower() == "true", port=port, host=host)


if __name__ == '__main__':
    main()

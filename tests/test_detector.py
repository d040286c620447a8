"""
Tests for BoundaryDetector
"""

import cv2
import numpy as np
import pytest

from document_scanner.config import ScannerConfig
from document_scanner.detector import BoundaryDetector
from document_scanner.geometry import ResolutionTier
from document_scanner.primitives import OpenCVPrimitives
from document_scanner.strategies import STRATEGIES

from .conftest import draw_document


def assert_corners_near(corners, expected, tolerance):
    for (x, y), (ex, ey) in zip(corners, expected):
        assert abs(x - ex) <= tolerance and abs(y - ey) <= tolerance, (corners, expected)


class FailingPrimitives(OpenCVPrimitives):
    """Primitive port whose edge detector always errors"""

    def canny(self, image, low, high):
        raise cv2.error("edge detection failed")


class RecordingPrimitives(OpenCVPrimitives):
    """Primitive port that remembers the Canny thresholds it was asked for"""

    def __init__(self):
        super().__init__()
        self.canny_calls = []

    def canny(self, image, low, high):
        self.canny_calls.append((low, high))
        return super().canny(image, low, high)


class TestBoundaryDetector:
    """Tests for BoundaryDetector"""

    @pytest.fixture
    def detector(self):
        """Create detector instance for tests"""
        return BoundaryDetector()

    def test_detect_none_image(self, detector):
        """Test detection with None image"""
        assert detector.detect(None) is None

    def test_detect_empty_image(self, detector):
        """Test detection with empty image"""
        assert detector.detect(np.array([])) is None

    def test_blank_image_finds_nothing(self, detector, blank_image):
        """No edges, no document"""
        assert detector.detect_with_details(blank_image) is None

    def test_clean_document(self, detector, document_image):
        """A clean white page is found by the first strategy"""
        result = detector.detect_with_details(document_image)

        assert result is not None
        assert result.strategy == "Standard"
        assert result.scale == 1.0
        assert result.tier is ResolutionTier.LOW
        assert result.corners.rotation == 0
        assert_corners_near(
            result.corners.points,
            [(50, 50), (750, 50), (750, 550), (50, 550)],
            tolerance=3
        )

    def test_detect_returns_array(self, detector, document_image):
        """detect() returns a (4, 2) float32 array in canonical order"""
        corners = detector.detect(document_image)

        assert isinstance(corners, np.ndarray)
        assert corners.shape == (4, 2)
        assert corners.dtype == np.float32
        assert corners[0].sum() < corners[2].sum()

    def test_detect_quad(self, detector, document_image):
        quad = detector.detect_quad(document_image)
        assert quad is not None
        assert quad.area() > 0.9 * 700 * 500

    def test_corners_tagged_with_view_rotation(self, detector, document_image):
        rotated = np.rot90(document_image, k=-1).copy()

        quad = detector.detect_quad(rotated, rotation=90)

        assert quad.rotation == 90
        assert quad.points[0].x == pytest.approx(50, abs=3)
        assert quad.points[2].y == pytest.approx(750, abs=3)
        assert detector.detect_quad(document_image).rotation == 0

    def test_fallback_to_relaxed(self, detector, wide_document_image):
        """A 2.5:1 strip fails the standard aspect bounds and is found by the next strategy"""
        result = detector.detect_with_details(wide_document_image)

        assert result is not None
        assert result.strategy == "Relaxed"
        assert_corners_near(
            result.corners.points,
            [(150, 200), (650, 200), (650, 400), (150, 400)],
            tolerance=3
        )

    def test_custom_strategy_table(self, wide_document_image):
        """Without the relaxed strategies the strip is not found"""
        detector = BoundaryDetector(strategies=STRATEGIES[:1])
        assert detector.detect(wide_document_image) is None

    def test_grayscale_input(self, detector):
        image = draw_document(800, 600, (50, 50), (750, 550), channels=1)
        result = detector.detect_with_details(image)
        assert result is not None
        assert result.strategy == "Standard"

    def test_bgra_input(self, detector, document_image):
        image = cv2.cvtColor(document_image, cv2.COLOR_BGR2BGRA)
        assert detector.detect(image) is not None

    def test_large_image_is_downsampled(self, detector):
        """Coordinates found on the downsampled copy are mapped back to full size"""
        image = draw_document(2400, 1800, (150, 150), (2250, 1650))
        result = detector.detect_with_details(image)

        assert result is not None
        assert result.scale == pytest.approx(0.5)
        assert result.tier is ResolutionTier.MEDIUM
        assert_corners_near(
            result.corners.points,
            [(150, 150), (2250, 150), (2250, 1650), (150, 1650)],
            tolerance=6
        )
        assert all(float(v).is_integer() for p in result.corners.points for v in p)

    def test_processing_limit_from_config(self, document_image):
        detector = BoundaryDetector(ScannerConfig(processing_max_dimension=400))
        result = detector.detect_with_details(document_image)

        assert result is not None
        assert result.scale == pytest.approx(0.5)
        assert_corners_near(
            result.corners.points,
            [(50, 50), (750, 50), (750, 550), (50, 550)],
            tolerance=6
        )

    def test_medium_resolution_lowers_canny_thresholds(self):
        primitives = RecordingPrimitives()
        detector = BoundaryDetector(primitives=primitives)
        image = np.zeros((1500, 2000, 3), dtype=np.uint8)

        assert detector.detect(image) is None
        assert primitives.canny_calls[0] == (40, 135)
        assert len(primitives.canny_calls) == len(STRATEGIES)

    def test_opencv_error_returns_none(self, document_image):
        """A primitive failure aborts detection without raising"""
        detector = BoundaryDetector(primitives=FailingPrimitives())
        assert detector.detect(document_image) is None

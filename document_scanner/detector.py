"""
Document boundary detector using OpenCV
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .config import ScannerConfig
from .geometry import (
    Point,
    Quad,
    ResolutionTier,
    classify_resolution,
    round_half_up,
    sort_canonical,
)
from .primitives import OpenCVPrimitives, contour_points
from .strategies import STRATEGIES, DetectionStrategy, document_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of a successful detection."""

    corners: Quad
    # Name of the strategy that found the quad.
    strategy: str
    # Candidate score in that strategy (area or document score).
    score: float
    # Downsample factor used during processing (1.0 when none).
    scale: float
    tier: ResolutionTier


@dataclass
class _Candidate:
    polygon: np.ndarray
    score: float


class BoundaryDetector:
    """
    Finds the quadrilateral outline of a document in an image.

    Runs an ordered list of contour search strategies on a downsampled,
    blurred grayscale copy of the image and stops at the first strategy
    that yields a convex 4-sided candidate.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        primitives: Optional[OpenCVPrimitives] = None,
        strategies: Sequence[DetectionStrategy] = STRATEGIES
    ):
        """
        Initialize the detector.

        Args:
            config: Tunables (processing size, blur, CLAHE, resolution tiers)
            primitives: Image primitive port, OpenCV by default
            strategies: Ordered strategy table, most selective first
        """
        self.config = config or ScannerConfig()
        self.primitives = primitives or OpenCVPrimitives()
        self.strategies = tuple(strategies)

    def detect(self, image: np.ndarray) -> Optional[np.ndarray]:
        """
        Detect document corners in an image.

        Args:
            image: Input image (BGR, BGRA or grayscale)

        Returns:
            Array of 4 points (top-left, top-right, bottom-right, bottom-left)
            as float32 of shape (4, 2), or None if no document was found
        """
        result = self.detect_with_details(image)
        if result is None:
            return None
        return result.corners.as_array()

    def detect_quad(self, image: np.ndarray, rotation: int = 0) -> Optional[Quad]:
        """Same as detect() but returns a Quad tagged with the frame of image"""
        result = self.detect_with_details(image, rotation)
        return result.corners if result else None

    def detect_with_details(
        self,
        image: np.ndarray,
        rotation: int = 0
    ) -> Optional[DetectionResult]:
        """
        Detect document corners and report which strategy found them.

        Args:
            image: Input image (BGR, BGRA or grayscale)
            rotation: Rotation frame image is in, used to tag the corners

        Returns:
            DetectionResult, or None when the image is empty or no strategy
            found a candidate
        """
        if image is None or image.size == 0:
            return None

        try:
            return self._detect(image, rotation)
        except cv2.error as e:
            logger.warning("Detection aborted by OpenCV error: %s", e)
            return None

    def _detect(self, image: np.ndarray, rotation: int) -> Optional[DetectionResult]:
        height, width = image.shape[:2]
        tier = classify_resolution(
            width * height,
            self.config.medium_resolution_area,
            self.config.high_resolution_area
        )

        processing, scale = self._downsample(image)
        gray = self.primitives.to_grayscale(processing)
        blurred = self.primitives.gaussian_blur(gray, self.config.blur_kernel_size)
        processing_area = blurred.shape[0] * blurred.shape[1]

        logger.debug(
            "Detecting in %dx%d image (%s resolution, scale %.3f)",
            width, height, tier.value, scale
        )

        for strategy in self.strategies:
            adapted = strategy.adapted(tier)
            candidate = self._run_strategy(blurred, adapted, processing_area)
            if candidate is None:
                logger.debug("Strategy %s found nothing", adapted.name)
                continue

            points = self._rescale(contour_points(candidate.polygon), scale)
            corners = Quad(tuple(sort_canonical(points)), rotation)
            logger.info("Document found by %s strategy (score %.0f)", adapted.name, candidate.score)
            return DetectionResult(
                corners=corners,
                strategy=adapted.name,
                score=candidate.score,
                scale=scale,
                tier=tier,
            )

        logger.info("No document found, all %d strategies failed", len(self.strategies))
        return None

    def _downsample(self, image: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Shrink the image so its larger side is at most the processing cap.

        Returns:
            Tuple of (processing image, scale factor)
        """
        height, width = image.shape[:2]
        max_dim = max(width, height)
        limit = self.config.processing_max_dimension

        if max_dim <= limit:
            return image, 1.0

        factor = limit / max_dim
        new_width = round_half_up(width * factor)
        new_height = round_half_up(height * factor)
        return self.primitives.resize_area(image, new_width, new_height), factor

    @staticmethod
    def _rescale(points: List[Tuple[int, int]], scale: float) -> List[Point]:
        if scale >= 1.0:
            return [Point(x, y) for x, y in points]
        return [Point(round_half_up(x / scale), round_half_up(y / scale)) for x, y in points]

    def _run_strategy(
        self,
        blurred: np.ndarray,
        strategy: DetectionStrategy,
        processing_area: int
    ) -> Optional[_Candidate]:
        """
        Run one contour search attempt.

        All intermediate buffers are local to this call and are released
        when it returns, whether or not a candidate was found.

        Args:
            blurred: Blurred grayscale processing image
            strategy: Strategy with thresholds already adapted to the resolution
            processing_area: Pixel area of the processing image

        Returns:
            Best candidate for the strategy, or None
        """
        source = blurred
        if strategy.use_preprocessing:
            source = self.primitives.enhance_contrast(
                blurred,
                self.config.clahe_clip_limit,
                self.config.clahe_tile_size
            )

        edges = self.primitives.canny(source, strategy.canny_low, strategy.canny_high)
        contours = self.primitives.find_contours(edges)
        min_area = processing_area * strategy.area_threshold

        rejections: Dict[str, int] = {"sides": 0, "convex": 0, "small": 0, "aspect": 0}
        best: Optional[_Candidate] = None

        for contour in contours:
            perimeter = self.primitives.arc_length(contour)
            approx = self.primitives.approx_polygon(contour, strategy.approx_epsilon * perimeter)

            if len(approx) != 4:
                rejections["sides"] += 1
                continue

            is_convex = self.primitives.is_convex(approx)
            if not is_convex:
                rejections["convex"] += 1
                continue

            area = self.primitives.contour_area(approx)
            if area < min_area:
                rejections["small"] += 1
                continue

            _, _, rect_w, rect_h = self.primitives.bounding_rect(approx)
            aspect = rect_w / rect_h if rect_h > 0 else 0.0
            if aspect < strategy.min_aspect_ratio or aspect > strategy.max_aspect_ratio:
                rejections["aspect"] += 1
                continue

            if strategy.use_document_scoring:
                score = document_score(area, aspect, processing_area, is_convex, rect_w, rect_h)
            else:
                score = area

            if best is None or score > best.score:
                best = _Candidate(polygon=approx, score=score)

        logger.debug(
            "%s: %d contours, rejected %s, min area %.0f",
            strategy.name, len(contours), rejections, min_area
        )
        return best

"""
Perspective rectification of a detected document
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .config import ScannerConfig
from .formats import find_closest_standard_ratio
from .geometry import measured_size, quad_area, round_half_up
from .primitives import OpenCVPrimitives

logger = logging.getLogger(__name__)


@dataclass
class RectifiedImage:
    image: np.ndarray
    width: int
    height: int


def _as_point_list(corners) -> list:
    if hasattr(corners, "points"):
        corners = corners.points
    return [(float(p[0]), float(p[1])) for p in corners]


class RectificationPlanner:
    """
    Warps a quadrilateral region onto an axis aligned rectangle.

    The output size follows the longer of each pair of opposite edges.
    With a target ratio, the larger of those two lengths is kept and the
    other side is derived from the ratio.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        primitives: Optional[OpenCVPrimitives] = None
    ):
        self.config = config or ScannerConfig()
        self.primitives = primitives or OpenCVPrimitives()

    def plan_size(
        self,
        corners: Sequence,
        target_ratio: Optional[float] = None
    ) -> Optional[Tuple[int, int]]:
        """
        Compute the output size for a canonical corner set.

        Args:
            corners: 4 points (top-left, top-right, bottom-right, bottom-left)
            target_ratio: Desired width / height, or None to keep the measured size

        Returns:
            (width, height), or None if no positive size can be derived
        """
        points = _as_point_list(corners)
        if len(points) != 4:
            return None

        max_width, max_height = measured_size(points)

        if target_ratio is None and self.config.auto_format_adjustment:
            size = self._auto_format_size(max_width, max_height)
            if size is not None:
                return size

        if target_ratio is None:
            width, height = max_width, max_height
        elif target_ratio <= 0:
            width, height = 0, 0
        else:
            max_dim = max(max_width, max_height)
            if target_ratio < 1:
                height = max_dim
                width = round_half_up(height * target_ratio)
            else:
                width = max_dim
                height = round_half_up(width / target_ratio)

        if width <= 0 or height <= 0:
            width, height = max_width, max_height
        if width <= 0 or height <= 0:
            return None

        return width, height

    def _auto_format_size(self, max_width: int, max_height: int) -> Optional[Tuple[int, int]]:
        if max_width <= 0 or max_height <= 0:
            return None

        standard = find_closest_standard_ratio(
            max_width / max_height,
            self.config.auto_format_tolerance
        )
        if standard is None:
            return None

        # Keep the dominant detected side.
        if max_height >= max_width:
            size = round_half_up(max_height * standard.ratio), max_height
        else:
            size = max_width, round_half_up(max_width / standard.ratio)

        logger.debug("Adjusted %dx%d to %s: %dx%d", max_width, max_height, standard.name, *size)
        return size

    def rectify(
        self,
        image: np.ndarray,
        corners: Sequence,
        target_ratio: Optional[float] = None
    ) -> Optional[RectifiedImage]:
        """
        Warp the region bounded by corners to a flat rectangle.

        Args:
            image: Source image, in the same frame as corners
            corners: 4 canonical points (list of pairs, array or Quad)
            target_ratio: Desired width / height of the output

        Returns:
            RectifiedImage, or None for invalid geometry or a warp failure
        """
        if image is None or image.size == 0:
            logger.warning("Rectification skipped: empty image")
            return None

        try:
            points = _as_point_list(corners)
        except (TypeError, ValueError, IndexError) as e:
            logger.warning("Rectification skipped: invalid corners (%s)", e)
            return None

        if len(points) != 4:
            logger.warning("Rectification skipped: expected 4 corners, got %d", len(points))
            return None
        if quad_area(points) <= 0:
            logger.warning("Rectification skipped: corners enclose no area")
            return None

        size = self.plan_size(points, target_ratio)
        if size is None:
            logger.warning("Rectification failed: no valid output size for %s", points)
            return None
        width, height = size

        dst = np.array(
            [[0, 0], [width - 1, 0], [width - 1, height - 1], [0, height - 1]],
            dtype=np.float32
        )

        try:
            warped = self.primitives.warp_perspective(
                image, np.array(points, dtype=np.float32), dst, width, height
            )
        except cv2.error as e:
            logger.warning("Rectification failed: %s", e)
            return None

        return RectifiedImage(image=warped, width=width, height=height)

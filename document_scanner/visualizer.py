"""
Overlay drawing for detected document corners
"""

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .geometry import edge_lengths, quad_area

CORNER_LABELS = ("TL", "TR", "BR", "BL")


class QuadVisualizer:
    """
    Draws a corner set on top of an image for review.

    Renders a translucent fill, the quad outline, a marker on each corner
    and optional text lines (strategy name, size, ...).
    """

    def __init__(
        self,
        border_color: Tuple[int, int, int] = (255, 100, 0),  # Blue in BGR
        border_thickness: int = 3,
        overlay_color: Tuple[int, int, int] = (255, 200, 100),
        overlay_alpha: float = 0.3,
        corner_radius: int = 6
    ):
        self.border_color = border_color
        self.border_thickness = border_thickness
        self.overlay_color = overlay_color
        self.overlay_alpha = overlay_alpha
        self.corner_radius = corner_radius

    def draw(
        self,
        image: np.ndarray,
        corners: Optional[Sequence],
        label_corners: bool = True
    ) -> np.ndarray:
        """
        Draw the quad on a copy of the image.

        Args:
            image: BGR or grayscale image
            corners: 4 canonical points, or None to return an unchanged copy
            label_corners: Write TL/TR/BR/BL next to the corner markers

        Returns:
            BGR image with the overlay
        """
        result = image.copy() if image.ndim == 3 else cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        if corners is None:
            return result

        points = np.asarray(
            [(p[0], p[1]) for p in getattr(corners, "points", corners)],
            dtype=np.float64
        ).round().astype(np.int32)

        if self.overlay_alpha > 0:
            overlay = result.copy()
            cv2.fillPoly(overlay, [points], self.overlay_color)
            result = cv2.addWeighted(overlay, self.overlay_alpha, result, 1 - self.overlay_alpha, 0)

        cv2.polylines(result, [points], True, self.border_color, self.border_thickness, cv2.LINE_AA)

        for label, (x, y) in zip(CORNER_LABELS, points):
            cv2.circle(result, (int(x), int(y)), self.corner_radius, self.border_color, -1)
            if label_corners:
                self._put_text(result, label, (int(x) + 8, int(y) - 8))

        return result

    def draw_with_info(
        self,
        image: np.ndarray,
        corners: Optional[Sequence],
        strategy: Optional[str] = None
    ) -> np.ndarray:
        """Draw the quad plus its measured size, area and the strategy that found it"""
        result = self.draw(image, corners)
        if corners is None:
            return result

        points = [(p[0], p[1]) for p in getattr(corners, "points", corners)]
        top, bottom, left, right = edge_lengths(points)
        lines = [
            f"Size: {int(max(top, bottom))}x{int(max(left, right))}px",
            f"Area: {int(quad_area(points))}px2",
        ]
        if strategy:
            lines.insert(0, f"Strategy: {strategy}")

        for i, text in enumerate(lines):
            self._put_text(result, text, (10, 30 + i * 30))
        return result

    @staticmethod
    def _put_text(image: np.ndarray, text: str, origin: Tuple[int, int]) -> None:
        cv2.putText(image, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 3, cv2.LINE_AA)
        cv2.putText(image, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 0), 1, cv2.LINE_AA)

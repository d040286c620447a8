"""
Contour search strategies, ordered from most to least selective
"""

from dataclasses import dataclass, replace
from typing import List, Sequence, Tuple

from .geometry import ResolutionTier


@dataclass(frozen=True)
class DetectionStrategy:
    """One parameter set for a contour search attempt."""

    name: str
    # Canny hysteresis thresholds.
    canny_low: int
    canny_high: int
    # Minimum contour area as a fraction of the processing image area.
    area_threshold: float
    # Allowed bounding-box width / height range.
    min_aspect_ratio: float
    max_aspect_ratio: float
    # approxPolyDP tolerance as a fraction of the contour perimeter.
    approx_epsilon: float
    # Apply CLAHE before edge detection.
    use_preprocessing: bool = False
    # Rank candidates with document_score() instead of plain area.
    use_document_scoring: bool = False

    def adapted(self, tier: ResolutionTier) -> "DetectionStrategy":
        """Copy of this strategy with thresholds relaxed for the given resolution tier"""
        low, high = tier.adapt_canny(self.canny_low, self.canny_high)
        return replace(
            self,
            canny_low=low,
            canny_high=high,
            area_threshold=self.area_threshold * tier.area_multiplier,
        )


STRATEGIES: Tuple[DetectionStrategy, ...] = (
    DetectionStrategy("Standard", 50, 150, 0.05, 0.5, 2.0, 0.015),
    DetectionStrategy("Relaxed", 30, 100, 0.03, 0.3, 3.0, 0.02),
    DetectionStrategy("VeryRelaxed", 75, 200, 0.01, 0.2, 4.0, 0.025),
    DetectionStrategy("Aggressive", 20, 80, 0.005, 0.1, 5.0, 0.03),
    DetectionStrategy(
        "DocumentFocused", 40, 120, 0.15, 0.4, 2.5, 0.02,
        use_preprocessing=True, use_document_scoring=True
    ),
    DetectionStrategy(
        "Enhanced", 25, 75, 0.08, 0.3, 3.0, 0.025,
        use_preprocessing=True, use_document_scoring=True
    ),
)

# Width / height ratios of portrait A4, square and landscape A4.
IDEAL_ASPECT_RATIOS = (0.707, 1.0, 1.414)


def adapt_strategies(
    tier: ResolutionTier,
    strategies: Sequence[DetectionStrategy] = STRATEGIES
) -> List[DetectionStrategy]:
    return [strategy.adapted(tier) for strategy in strategies]


def document_score(
    area: float,
    aspect_ratio: float,
    image_area: float,
    is_convex: bool,
    rect_width: int,
    rect_height: int
) -> float:
    """
    Heuristic score for how much a candidate looks like a sheet of paper.

    Args:
        area: Contour area in processing pixels
        aspect_ratio: Bounding box width / height
        image_area: Area of the processing image
        is_convex: Whether the polygon is convex
        rect_width: Bounding box width
        rect_height: Bounding box height

    Returns:
        Score, higher is better
    """
    area_ratio = area / image_area if image_area > 0 else 0.0
    score = area_ratio * 1_000_000

    aspect_bonus = 0.0
    for ideal in IDEAL_ASPECT_RATIOS:
        diff = abs(aspect_ratio - ideal)
        if diff < 0.3:
            aspect_bonus = max(aspect_bonus, (0.3 - diff) * 100_000)
    score += aspect_bonus

    if is_convex:
        score += 50_000

    if area_ratio > 0.1:
        score += 100_000
    if area_ratio > 0.2:
        score += 200_000

    if aspect_ratio < 0.05 or aspect_ratio > 20.0:
        score -= 150_000

    min_dim = min(rect_width, rect_height)
    max_dim = max(rect_width, rect_height)
    if min_dim > 10 and max_dim > 20:
        score += 25_000
    if min_dim > 50 and max_dim > 100:
        score += 50_000
    if min_dim > 100 and max_dim > 200:
        score += 75_000

    if area > 10:
        score += 10_000

    return score

"""
Geometry helpers for document corners

All corner sets are 4 points ordered top-left, top-right, bottom-right,
bottom-left once they have passed through sort_canonical(). Rotation
transforms map between the frame of the original (0 deg) image and the
frame of the image rotated clockwise by a multiple of 90 deg.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidGeometry


SUPPORTED_ROTATIONS = (0, 90, 180, 270)

MEDIUM_RESOLUTION_AREA = 2_000_000
HIGH_RESOLUTION_AREA = 8_000_000


class Point(NamedTuple):
    x: float
    y: float


class ResolutionTier(Enum):
    """Image size class used to relax detection and validation thresholds"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def area_multiplier(self) -> float:
        """Scale applied to a strategy's minimum area fraction"""
        return {"low": 1.0, "medium": 0.5, "high": 0.1}[self.value]

    @property
    def validation_fraction(self) -> float:
        """Minimum share of the view a corner set must cover to be kept"""
        return {"low": 0.05, "medium": 0.025, "high": 0.005}[self.value]

    def adapt_canny(self, low: int, high: int) -> Tuple[int, int]:
        """Lower the edge thresholds for larger images"""
        if self is ResolutionTier.HIGH:
            return max(1, round_half_up(low * 0.6)), max(5, round_half_up(high * 0.7))
        if self is ResolutionTier.MEDIUM:
            return max(1, round_half_up(low * 0.8)), max(5, round_half_up(high * 0.9))
        return low, high


def classify_resolution(
    area: float,
    medium_area: int = MEDIUM_RESOLUTION_AREA,
    high_area: int = HIGH_RESOLUTION_AREA
) -> ResolutionTier:
    if area > high_area:
        return ResolutionTier.HIGH
    if area > medium_area:
        return ResolutionTier.MEDIUM
    return ResolutionTier.LOW


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves towards positive infinity.

    Python's round() uses banker's rounding, which would shift
    rescaled coordinates and output sizes by one pixel on exact halves.
    """
    return int(math.floor(value + 0.5))


def normalize_rotation(degrees: int) -> int:
    """
    Map any multiple of 90 into {0, 90, 180, 270}.

    Raises:
        InvalidGeometry: if the angle is not a multiple of 90
    """
    degrees = int(degrees)
    if degrees % 90 != 0:
        raise InvalidGeometry(f"Rotation must be a multiple of 90 degrees, got {degrees}")
    return degrees % 360


def _as_points(points: Iterable) -> List[Point]:
    return [Point(p[0], p[1]) for p in points]


def _require_quad(points: Iterable) -> List[Point]:
    pts = _as_points(points)
    if len(pts) != 4:
        raise InvalidGeometry(f"Expected 4 corners, got {len(pts)}")
    return pts


def sort_canonical(points: Iterable) -> List[Point]:
    """
    Order 4 points as top-left, top-right, bottom-right, bottom-left.

    Top-left has the smallest x + y, bottom-right the largest (first
    occurrence wins ties). Of the remaining two points, the one with the
    smaller y is top-right; on equal y the larger x is top-right.

    Args:
        points: 4 points in any order, as pairs or an (4, 2) array

    Returns:
        List of 4 Points in canonical order

    Raises:
        InvalidGeometry: if the input does not hold exactly 4 points
    """
    pts = _require_quad(points)
    sums = [p.x + p.y for p in pts]

    tl = sums.index(min(sums))
    br = max((i for i in range(4) if i != tl), key=lambda i: sums[i])
    first, second = [pts[i] for i in range(4) if i not in (tl, br)]

    if first.y < second.y:
        tr, bl = first, second
    elif first.y > second.y:
        tr, bl = second, first
    elif first.x > second.x:
        tr, bl = first, second
    else:
        tr, bl = second, first

    return [pts[tl], tr, pts[br], bl]


def quad_area(points: Sequence) -> float:
    """
    Shoelace area of 4 ordered points.

    Returns 0 for anything that is not exactly 4 points and for
    collinear or coincident points.
    """
    pts = _as_points(points) if points is not None else []
    if len(pts) != 4:
        return 0.0

    total = 0.0
    for i in range(4):
        j = (i + 1) % 4
        total += pts[i].x * pts[j].y - pts[j].x * pts[i].y
    return abs(total) / 2.0


def default_inset_box(width: float, height: float, inset_px: float) -> List[Point]:
    """
    Rectangle inset by inset_px from every edge of a width x height image.

    The right and bottom edges never move past the left and top ones, so a
    tiny image yields a zero-sized box instead of a negative one.
    """
    right = max(inset_px, width - inset_px)
    bottom = max(inset_px, height - inset_px)
    return [
        Point(inset_px, inset_px),
        Point(right, inset_px),
        Point(right, bottom),
        Point(inset_px, bottom),
    ]


def view_dimensions(width: int, height: int, rotation: int) -> Tuple[int, int]:
    """Width and height of a width x height image after rotating it"""
    if normalize_rotation(rotation) in (90, 270):
        return height, width
    return width, height


def rotate_corners(
    points: Iterable,
    rotation: int,
    original_width: float,
    original_height: float
) -> List[Point]:
    """
    Map points from the 0 deg frame into the frame rotated clockwise by rotation.

    Args:
        points: Points in the unrotated image
        rotation: Total rotation in degrees (any multiple of 90)
        original_width: Width of the unrotated image
        original_height: Height of the unrotated image

    Returns:
        Points expressed in the rotated image
    """
    rotation = normalize_rotation(rotation)
    pts = _as_points(points)
    w, h = original_width, original_height

    if rotation == 90:
        return [Point(h - p.y, p.x) for p in pts]
    if rotation == 180:
        return [Point(w - p.x, h - p.y) for p in pts]
    if rotation == 270:
        return [Point(p.y, w - p.x) for p in pts]
    return pts


def inverse_rotate_corners(
    points: Iterable,
    rotation: int,
    original_width: float,
    original_height: float
) -> List[Point]:
    """Exact inverse of rotate_corners(): recover 0 deg frame points"""
    rotation = normalize_rotation(rotation)
    pts = _as_points(points)
    w, h = original_width, original_height

    if rotation == 90:
        return [Point(p.y, h - p.x) for p in pts]
    if rotation == 180:
        return [Point(w - p.x, h - p.y) for p in pts]
    if rotation == 270:
        return [Point(w - p.y, p.x) for p in pts]
    return pts


def rotate_corners_by_increment(
    points: Iterable,
    increment: int,
    view_width: float,
    view_height: float
) -> List[Point]:
    """
    Rotate already-rotated points by a further increment.

    The current view is treated as the base image, so there is no need to
    go back through the 0 deg frame. Negative increments are allowed
    (-90 is a left turn).
    """
    return rotate_corners(points, increment, view_width, view_height)


def edge_lengths(points: Sequence) -> Tuple[float, float, float, float]:
    """Lengths of the top, bottom, left and right edges of a canonical quad"""
    tl, tr, br, bl = _require_quad(points)
    top = math.hypot(tr.x - tl.x, tr.y - tl.y)
    bottom = math.hypot(br.x - bl.x, br.y - bl.y)
    left = math.hypot(bl.x - tl.x, bl.y - tl.y)
    right = math.hypot(br.x - tr.x, br.y - tr.y)
    return top, bottom, left, right


def measured_size(points: Sequence) -> Tuple[int, int]:
    """Output size implied by the longer of each pair of opposite edges"""
    top, bottom, left, right = edge_lengths(points)
    return int(math.floor(max(top, bottom))), int(math.floor(max(left, right)))


def aspect_ratio(points: Sequence) -> float:
    """Width / height of a canonical quad, 1.0 when the height is zero"""
    width, height = measured_size(points)
    if height <= 0:
        return 1.0
    return width / height


@dataclass(frozen=True)
class Quad:
    """
    Four corners tagged with the rotation frame they are expressed in.

    A Quad never changes; the transform methods return new instances.
    """
    points: Tuple[Point, Point, Point, Point]
    rotation: int = 0

    def __post_init__(self):
        object.__setattr__(self, "points", tuple(_require_quad(self.points)))
        object.__setattr__(self, "rotation", normalize_rotation(self.rotation))

    @classmethod
    def from_array(cls, array, rotation: int = 0) -> "Quad":
        """Build a Quad from a (4, 2) or (4, 1, 2) array"""
        pts = np.asarray(array, dtype=np.float64).reshape(-1, 2)
        return cls(tuple(Point(float(x), float(y)) for x, y in pts), rotation)

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.float32)

    def as_list(self) -> List[List[float]]:
        return [[p.x, p.y] for p in self.points]

    def sorted(self) -> "Quad":
        return Quad(tuple(sort_canonical(self.points)), self.rotation)

    def area(self) -> float:
        return quad_area(self.points)

    def to_base(self, original_width: float, original_height: float) -> "Quad":
        """Re-express in the 0 deg frame of an original_width x original_height image"""
        base = inverse_rotate_corners(self.points, self.rotation, original_width, original_height)
        return Quad(tuple(base), 0)

    def to_rotation(
        self,
        rotation: int,
        original_width: float,
        original_height: float
    ) -> "Quad":
        """Re-express in another rotation frame, composing through 0 deg"""
        base = inverse_rotate_corners(self.points, self.rotation, original_width, original_height)
        rotation = normalize_rotation(rotation)
        return Quad(tuple(rotate_corners(base, rotation, original_width, original_height)), rotation)


def parse_corners(values: Optional[Sequence]) -> List[Point]:
    """
    Parse corners given as 8 numbers or as 4 pairs.

    Raises:
        InvalidGeometry: if the values do not describe 4 points
    """
    if values is None:
        raise InvalidGeometry("No corners given")

    values = list(values)
    if len(values) == 8 and all(isinstance(v, (int, float)) for v in values):
        values = [values[i:i + 2] for i in range(0, 8, 2)]

    try:
        return _require_quad(
            (float(p["x"]), float(p["y"])) if isinstance(p, dict) else (float(p[0]), float(p[1]))
            for p in values
        )
    except (TypeError, ValueError, IndexError, KeyError) as e:
        raise InvalidGeometry(f"Invalid corner values: {e}") from e

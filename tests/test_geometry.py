"""
Tests for corner geometry and rotation transforms
"""

import numpy as np
import pytest

from document_scanner.errors import InvalidGeometry
from document_scanner.geometry import (
    Point,
    Quad,
    ResolutionTier,
    aspect_ratio,
    classify_resolution,
    default_inset_box,
    inverse_rotate_corners,
    measured_size,
    normalize_rotation,
    parse_corners,
    quad_area,
    rotate_corners,
    rotate_corners_by_increment,
    round_half_up,
    sort_canonical,
    view_dimensions,
)

WIDTH, HEIGHT = 400, 300
CORNERS = [(10, 20), (110, 25), (100, 200), (5, 190)]


class TestRotation:
    """Tests for rotate_corners / inverse_rotate_corners"""

    @pytest.mark.parametrize("rotation", [0, 90, 180, 270])
    def test_round_trip(self, rotation):
        """Rotating and rotating back returns the exact input"""
        rotated = rotate_corners(CORNERS, rotation, WIDTH, HEIGHT)
        restored = inverse_rotate_corners(rotated, rotation, WIDTH, HEIGHT)
        assert restored == [Point(x, y) for x, y in CORNERS]

    def test_rotate_90(self):
        assert rotate_corners([(10, 20)], 90, WIDTH, HEIGHT) == [Point(280, 10)]

    def test_rotate_180(self):
        assert rotate_corners([(10, 20)], 180, WIDTH, HEIGHT) == [Point(390, 280)]

    def test_rotate_270(self):
        assert rotate_corners([(10, 20)], 270, WIDTH, HEIGHT) == [Point(20, 390)]

    def test_rotate_0_is_identity(self):
        assert rotate_corners(CORNERS, 0, WIDTH, HEIGHT) == [Point(x, y) for x, y in CORNERS]

    def test_angle_is_normalized(self):
        assert rotate_corners(CORNERS, 450, WIDTH, HEIGHT) == rotate_corners(CORNERS, 90, WIDTH, HEIGHT)
        assert rotate_corners(CORNERS, -90, WIDTH, HEIGHT) == rotate_corners(CORNERS, 270, WIDTH, HEIGHT)

    def test_rotated_points_stay_inside_view(self):
        """Image corners map onto the corners of the rotated view"""
        corners = [(0, 0), (WIDTH, 0), (WIDTH, HEIGHT), (0, HEIGHT)]
        rotated = rotate_corners(corners, 90, WIDTH, HEIGHT)
        xs = sorted({p.x for p in rotated})
        ys = sorted({p.y for p in rotated})
        assert xs == [0, HEIGHT]
        assert ys == [0, WIDTH]

    @pytest.mark.parametrize("start", [0, 90, 180, 270])
    @pytest.mark.parametrize("increment", [90, -90, 180])
    def test_increment_matches_composition_through_base(self, start, increment):
        """Rotating the current view equals rotating the base image to the new total"""
        current = rotate_corners(CORNERS, start, WIDTH, HEIGHT)
        view_w, view_h = view_dimensions(WIDTH, HEIGHT, start)

        by_increment = rotate_corners_by_increment(current, increment, view_w, view_h)
        composed = rotate_corners(CORNERS, start + increment, WIDTH, HEIGHT)

        assert by_increment == composed

    def test_invalid_angle(self):
        with pytest.raises(InvalidGeometry):
            rotate_corners(CORNERS, 45, WIDTH, HEIGHT)

    def test_normalize_rotation(self):
        assert normalize_rotation(-90) == 270
        assert normalize_rotation(360) == 0
        assert normalize_rotation(450) == 90

    def test_view_dimensions(self):
        assert view_dimensions(400, 300, 0) == (400, 300)
        assert view_dimensions(400, 300, 90) == (300, 400)
        assert view_dimensions(400, 300, 180) == (400, 300)
        assert view_dimensions(400, 300, 270) == (300, 400)


class TestSortCanonical:
    """Tests for sort_canonical"""

    def test_shuffled_input(self):
        shuffled = [(100, 200), (10, 20), (5, 190), (110, 25)]
        assert sort_canonical(shuffled) == [Point(10, 20), Point(110, 25), Point(100, 200), Point(5, 190)]

    def test_idempotent(self):
        once = sort_canonical(CORNERS)
        assert sort_canonical(once) == once

    def test_equal_y_tie_break(self):
        """With equal y the point with the larger x is top-right"""
        points = [(0, 5), (10, 10), (10, 5), (0, 0)]
        tl, tr, br, bl = sort_canonical(points)
        assert tl == Point(0, 0)
        assert br == Point(10, 10)
        assert tr == Point(10, 5)
        assert bl == Point(0, 5)

    def test_accepts_numpy_array(self):
        array = np.array(CORNERS, dtype=np.float32)
        assert sort_canonical(array)[0] == Point(10, 20)

    def test_wrong_count(self):
        with pytest.raises(InvalidGeometry):
            sort_canonical([(0, 0), (1, 1), (2, 2)])


class TestArea:
    """Tests for quad_area"""

    def test_rectangle(self):
        assert quad_area([(0, 0), (WIDTH, 0), (WIDTH, HEIGHT), (0, HEIGHT)]) == WIDTH * HEIGHT

    def test_identical_points(self):
        assert quad_area([(5, 5)] * 4) == 0

    def test_collinear_points(self):
        assert quad_area([(0, 0), (1, 1), (2, 2), (3, 3)]) == 0

    def test_wrong_count(self):
        assert quad_area([(0, 0), (10, 0), (10, 10)]) == 0
        assert quad_area(None) == 0

    def test_orientation_does_not_matter(self):
        clockwise = [(0, 0), (10, 0), (10, 10), (0, 10)]
        assert quad_area(clockwise) == quad_area(list(reversed(clockwise))) == 100


class TestDefaultInsetBox:
    """Tests for default_inset_box"""

    def test_inset(self):
        assert default_inset_box(200, 150, 20) == [
            Point(20, 20), Point(180, 20), Point(180, 130), Point(20, 130)
        ]

    def test_inset_larger_than_half_is_clamped(self):
        tl, tr, br, bl = default_inset_box(30, 30, 20)
        assert tr.x >= tl.x
        assert bl.y >= tl.y
        assert quad_area([tl, tr, br, bl]) == 0


class TestHelpers:
    """Tests for rounding, sizes and resolution tiers"""

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert round_half_up(-0.5) == 0
        assert round_half_up(2.4) == 2

    def test_measured_size(self):
        assert measured_size([(0, 0), (300, 0), (300, 200), (0, 200)]) == (300, 200)

    def test_measured_size_uses_longer_edges(self):
        trapezoid = [(50, 0), (250, 0), (300, 100), (0, 100)]
        width, height = measured_size(trapezoid)
        assert width == 300
        assert height == 111  # floor(hypot(50, 100))

    def test_aspect_ratio(self):
        assert aspect_ratio([(0, 0), (300, 0), (300, 200), (0, 200)]) == pytest.approx(1.5)
        assert aspect_ratio([(0, 0), (10, 0), (10, 0), (0, 0)]) == 1.0

    def test_classify_resolution(self):
        assert classify_resolution(800 * 600) is ResolutionTier.LOW
        assert classify_resolution(2_000_000) is ResolutionTier.LOW
        assert classify_resolution(2000 * 1500) is ResolutionTier.MEDIUM
        assert classify_resolution(4000 * 3000) is ResolutionTier.HIGH

    def test_tier_adaptation(self):
        assert ResolutionTier.LOW.adapt_canny(50, 150) == (50, 150)
        assert ResolutionTier.MEDIUM.adapt_canny(50, 150) == (40, 135)
        assert ResolutionTier.HIGH.adapt_canny(50, 150) == (30, 105)
        assert ResolutionTier.HIGH.adapt_canny(1, 5) == (1, 5)
        assert ResolutionTier.HIGH.validation_fraction == 0.005
        assert ResolutionTier.MEDIUM.area_multiplier == 0.5

    def test_parse_corners(self):
        expected = [Point(1, 2), Point(3, 4), Point(5, 6), Point(7, 8)]
        assert parse_corners([1, 2, 3, 4, 5, 6, 7, 8]) == expected
        assert parse_corners([[1, 2], [3, 4], [5, 6], [7, 8]]) == expected
        assert parse_corners([{"x": 1, "y": 2}, {"x": 3, "y": 4}, {"x": 5, "y": 6}, {"x": 7, "y": 8}]) == expected

    def test_parse_corners_invalid(self):
        with pytest.raises(InvalidGeometry):
            parse_corners([1, 2, 3])
        with pytest.raises(InvalidGeometry):
            parse_corners(["a", "b", "c", "d"])
        with pytest.raises(InvalidGeometry):
            parse_corners(None)


class TestQuad:
    """Tests for the rotation tagged Quad"""

    def test_requires_four_points(self):
        with pytest.raises(InvalidGeometry):
            Quad(((0, 0), (1, 0), (1, 1)))

    def test_rotation_is_normalized(self):
        assert Quad(tuple(CORNERS), -90).rotation == 270

    def test_to_rotation_and_back(self):
        quad = Quad(tuple(CORNERS), 0)
        rotated = quad.to_rotation(270, WIDTH, HEIGHT)
        assert rotated.rotation == 270
        assert rotated.points == tuple(rotate_corners(CORNERS, 270, WIDTH, HEIGHT))
        assert rotated.to_base(WIDTH, HEIGHT) == quad

    def test_to_rotation_between_frames(self):
        quad = Quad(tuple(rotate_corners(CORNERS, 90, WIDTH, HEIGHT)), 90)
        moved = quad.to_rotation(180, WIDTH, HEIGHT)
        assert moved.points == tuple(rotate_corners(CORNERS, 180, WIDTH, HEIGHT))

    def test_array_round_trip(self):
        quad = Quad.from_array(np.array(CORNERS).reshape(4, 1, 2))
        assert quad.as_array().shape == (4, 2)
        assert quad.points[2] == Point(100.0, 200.0)

    def test_area_and_sorted(self):
        quad = Quad(((10, 10), (0, 0), (0, 10), (10, 0)))
        assert quad.sorted().points == (Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10))
        assert quad.sorted().area() == 100

"""
Per-page geometry: rotation, corners and edit / preview mode

Corners stored on a page are always a Quad tagged with, and expressed in,
the page's current rotation. None of the operations here raise for bad
geometry; a page always ends up with a usable corner set.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Optional, Sequence

import numpy as np

from .errors import InvalidGeometry
from .formats import DEFAULT_FORMAT, PaperFormat
from .geometry import (
    Quad,
    classify_resolution,
    default_inset_box,
    normalize_rotation,
    parse_corners,
    rotate_corners,
    rotate_corners_by_increment,
    view_dimensions,
)
from .rectifier import RectificationPlanner, RectifiedImage

logger = logging.getLogger(__name__)


DEFAULT_INSET = 32
RESET_INSET_RATIO = 0.1

ROTATION_STEPS = {"left": -90, "right": 90}


class PageMode(Enum):
    EDIT = "edit"
    PREVIEW = "preview"


@dataclass(eq=False)
class PageGeometry:
    """
    Geometry state of one scanned page.

    Attributes:
        page_id: Identifier of the page
        original_width: Width of the unrotated source image
        original_height: Height of the unrotated source image
        rotation: Total clockwise rotation of the current view
        corners: Document corners in the current view, or None
        output_format: Paper format used for rectification
        mode: EDIT while corners are being adjusted, PREVIEW once rectified
        rectified: Last rectification result, cleared by any geometry change
        status: Human readable outcome of the last operation
        detected_strategy: Strategy that found the initial corners, if any
    """
    page_id: Hashable
    original_width: int
    original_height: int
    rotation: int = 0
    corners: Optional[Quad] = None
    output_format: Optional[PaperFormat] = DEFAULT_FORMAT
    mode: PageMode = PageMode.EDIT
    rectified: Optional[RectifiedImage] = None
    status: str = ""
    detected_strategy: Optional[str] = None
    name: Optional[str] = None
    default_inset: int = DEFAULT_INSET
    reset_inset_ratio: float = RESET_INSET_RATIO
    medium_resolution_area: int = 2_000_000
    high_resolution_area: int = 8_000_000
    # Bumped on every geometry change so background results can detect staleness.
    revision: int = 0

    @classmethod
    def create(
        cls,
        page_id: Hashable,
        width: int,
        height: int,
        corners: Optional[Sequence] = None,
        **kwargs
    ) -> "PageGeometry":
        """
        New page at rotation 0, validated.

        Corners, if given, are in the unrotated frame. Without corners the
        default inset box is installed.
        """
        page = cls(page_id=page_id, original_width=width, original_height=height, **kwargs)
        if corners is not None:
            page.corners = page._quad(corners)
        page.validate()
        return page

    @property
    def view_size(self):
        """(width, height) of the page as currently rotated"""
        return view_dimensions(self.original_width, self.original_height, self.rotation)

    @property
    def base_corners(self) -> Optional[Quad]:
        """Corners re-expressed in the unrotated frame"""
        if self.corners is None:
            return None
        return self.corners.to_base(self.original_width, self.original_height)

    def _quad(self, points) -> Optional[Quad]:
        try:
            if isinstance(points, Quad):
                if points.rotation == self.rotation:
                    return points
                return points.to_rotation(self.rotation, self.original_width, self.original_height)
            return Quad(tuple(parse_corners(points)), self.rotation)
        except InvalidGeometry as e:
            logger.warning("Page %s: ignoring invalid corners: %s", self.page_id, e)
            return None

    def _touch(self):
        self.rectified = None
        self.mode = PageMode.EDIT
        self.revision += 1

    def set_corners(self, points: Optional[Sequence]) -> None:
        """
        Replace the corners verbatim (user edit), then validate.

        Plain points are taken to be in the current rotation frame; a Quad
        from another frame is converted into it. Any rectified output is
        discarded.
        """
        self.corners = None if points is None else self._quad(points)
        self._touch()
        self.status = ""
        self.validate()

    def set_rotation(self, rotation: int) -> None:
        """
        Switch to a new total rotation.

        Existing corners are recovered in the unrotated frame and then
        rotated into the new one. Missing corners stay missing until
        validation installs the default box.
        """
        try:
            rotation = normalize_rotation(rotation)
        except InvalidGeometry as e:
            logger.warning("Page %s: %s", self.page_id, e)
            self.status = str(e)
            return

        if self.corners is not None:
            self.corners = self.corners.to_rotation(
                rotation, self.original_width, self.original_height
            )
        self.rotation = rotation
        self._touch()
        self.status = ""
        self.validate()

    def rotate(self, direction: str) -> None:
        """
        Turn the page a quarter left or right.

        Corners are moved with the current view as the base image, which
        lands on the same points as going through the unrotated frame.
        """
        step = ROTATION_STEPS.get(direction)
        if step is None:
            logger.warning("Page %s: unknown rotation direction %r", self.page_id, direction)
            self.status = f"Unknown rotation direction: {direction}"
            return

        new_rotation = (self.rotation + step) % 360
        if self.corners is not None:
            view_width, view_height = self.view_size
            points = rotate_corners_by_increment(self.corners.points, step, view_width, view_height)
            self.corners = Quad(tuple(points), new_rotation)

        self.rotation = new_rotation
        self._touch()
        self.status = f"Rotated {direction}"
        self.validate()

    def rotate_by(self, degrees: int) -> None:
        """Rotate by any multiple of 90 relative to the current view"""
        try:
            step = normalize_rotation(degrees)
        except InvalidGeometry as e:
            self.status = str(e)
            return
        self.set_rotation(self.rotation + step)

    def default_corners(self) -> Quad:
        """Default inset box, built at 0 deg and expressed in the current frame"""
        base = default_inset_box(self.original_width, self.original_height, self.default_inset)
        points = rotate_corners(base, self.rotation, self.original_width, self.original_height)
        return Quad(tuple(points), self.rotation)

    def minimum_area(self) -> float:
        view_width, view_height = self.view_size
        view_area = view_width * view_height
        tier = classify_resolution(view_area, self.medium_resolution_area, self.high_resolution_area)
        return view_area * tier.validation_fraction

    def validate(self) -> bool:
        """
        Make sure the page has a usable corner set.

        Only runs in EDIT mode. Missing corners, or corners covering less
        than the resolution dependent share of the view, are replaced with
        the default inset box.

        Returns:
            True if the corners were replaced
        """
        if self.mode is not PageMode.EDIT:
            return False

        if self.corners is None:
            self.corners = self.default_corners()
            return True

        area = self.corners.area()
        threshold = self.minimum_area()
        if area < threshold:
            logger.info(
                "Page %s: corner area %.0f below %.0f, using default box",
                self.page_id, area, threshold
            )
            self.corners = self.default_corners()
            return True
        return False

    def reset_corners(self) -> None:
        """Replace the corners with a box inset by a fraction of the current view"""
        view_width, view_height = self.view_size
        inset_x = view_width * self.reset_inset_ratio
        inset_y = view_height * self.reset_inset_ratio
        self.corners = Quad((
            (inset_x, inset_y),
            (view_width - inset_x, inset_y),
            (view_width - inset_x, view_height - inset_y),
            (inset_x, view_height - inset_y),
        ), self.rotation)
        self._touch()
        self.status = "Corners reset"
        self.validate()

    def set_output_format(self, output_format: Optional[PaperFormat]) -> None:
        self.output_format = output_format
        self.rectified = None
        self.mode = PageMode.EDIT
        self.revision += 1

    def rectify(
        self,
        image: np.ndarray,
        planner: RectificationPlanner,
        image_rotation: Optional[int] = None
    ) -> Optional[RectifiedImage]:
        """
        Rectify the page.

        Args:
            image: Page image in the current rotation
            planner: Planner doing the warp
            image_rotation: Rotation image was rendered at, when known. A
                mismatch with the page rotation fails the rectification.

        Returns:
            The rectified image, or None (the page stays in EDIT mode)
        """
        if self.corners is None:
            self.mode = PageMode.EDIT
            self.status = "No corners to rectify, adjust the corners and try again"
            return None

        if image_rotation is not None and image_rotation % 360 != self.rotation:
            logger.warning(
                "Page %s: image rendered at %d deg, page is at %d deg",
                self.page_id, image_rotation, self.rotation
            )
            self.mode = PageMode.EDIT
            self.status = "Page was rotated while rectifying, try again"
            return None

        # Rotated corners keep their original order, which is no longer
        # top-left first in the rotated view.
        corners = self.corners.sorted()
        ratio = self.output_format.ratio if self.output_format else None
        result = planner.rectify(image, corners.as_array(), ratio)
        if result is None:
            self.mode = PageMode.EDIT
            self.status = "Rectification failed, adjust the corners and try again"
            return None

        self.rectified = result
        self.mode = PageMode.PREVIEW
        self.status = f"Rectified to {result.width}x{result.height}"
        return result

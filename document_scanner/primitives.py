"""
Image primitives backed by OpenCV

Every raster operation the scanner needs goes through OpenCVPrimitives,
so detection and rectification never call cv2 directly.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import cv2
import numpy as np

from .errors import LoadFailed, PrimitiveUnavailable

logger = logging.getLogger(__name__)


REQUIRED_FUNCTIONS = (
    "cvtColor",
    "GaussianBlur",
    "Canny",
    "findContours",
    "arcLength",
    "approxPolyDP",
    "isContourConvex",
    "contourArea",
    "boundingRect",
    "resize",
    "getPerspectiveTransform",
    "warpPerspective",
    "rotate",
)

ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class OpenCVPrimitives:
    """
    Thin wrapper around the cv2 functions used by the scanner.

    Construction fails with PrimitiveUnavailable when the installed OpenCV
    build lacks one of the required functions. Local contrast enhancement
    (CLAHE) is optional and is only checked when used.
    """

    def __init__(self, backend=cv2):
        missing = [name for name in REQUIRED_FUNCTIONS if not hasattr(backend, name)]
        if missing:
            raise PrimitiveUnavailable(f"OpenCV is missing: {', '.join(missing)}")
        self.cv = backend

    @property
    def has_contrast_enhancement(self) -> bool:
        return hasattr(self.cv, "createCLAHE")

    def to_grayscale(self, image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        channels = image.shape[2]
        if channels == 1:
            return image[:, :, 0]
        if channels == 4:
            return self.cv.cvtColor(image, self.cv.COLOR_BGRA2GRAY)
        return self.cv.cvtColor(image, self.cv.COLOR_BGR2GRAY)

    def gaussian_blur(self, image: np.ndarray, kernel_size: int = 5) -> np.ndarray:
        return self.cv.GaussianBlur(image, (kernel_size, kernel_size), 0)

    def canny(self, image: np.ndarray, low: float, high: float) -> np.ndarray:
        return self.cv.Canny(image, low, high)

    def find_contours(self, edges: np.ndarray) -> Sequence[np.ndarray]:
        """Flat list of contours, no hierarchy"""
        contours, _ = self.cv.findContours(edges, self.cv.RETR_LIST, self.cv.CHAIN_APPROX_SIMPLE)
        return contours

    def arc_length(self, contour: np.ndarray) -> float:
        return self.cv.arcLength(contour, True)

    def approx_polygon(self, contour: np.ndarray, epsilon: float) -> np.ndarray:
        return self.cv.approxPolyDP(contour, epsilon, True)

    def is_convex(self, polygon: np.ndarray) -> bool:
        return bool(self.cv.isContourConvex(polygon))

    def contour_area(self, polygon: np.ndarray) -> float:
        return float(self.cv.contourArea(polygon))

    def bounding_rect(self, polygon: np.ndarray) -> Tuple[int, int, int, int]:
        return self.cv.boundingRect(polygon)

    def resize_area(self, image: np.ndarray, width: int, height: int) -> np.ndarray:
        """Downsample with area averaging"""
        return self.cv.resize(image, (width, height), interpolation=self.cv.INTER_AREA)

    def enhance_contrast(
        self,
        image: np.ndarray,
        clip_limit: float = 2.0,
        tile_size: int = 8
    ) -> np.ndarray:
        if not self.has_contrast_enhancement:
            raise PrimitiveUnavailable("OpenCV is missing: createCLAHE")
        clahe = self.cv.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_size, tile_size))
        return clahe.apply(image)

    def warp_perspective(
        self,
        image: np.ndarray,
        src_points: np.ndarray,
        dst_points: np.ndarray,
        width: int,
        height: int
    ) -> np.ndarray:
        """Map the 4 source points onto the 4 destination points"""
        matrix = self.cv.getPerspectiveTransform(
            np.asarray(src_points, dtype=np.float32),
            np.asarray(dst_points, dtype=np.float32)
        )
        return self.cv.warpPerspective(
            image,
            matrix,
            (width, height),
            flags=self.cv.INTER_LINEAR,
            borderMode=self.cv.BORDER_CONSTANT,
            borderValue=0
        )

    def rotate(self, image: np.ndarray, rotation: int) -> np.ndarray:
        """Rotate clockwise by a multiple of 90 degrees"""
        rotation = rotation % 360
        if rotation == 0:
            return image
        return self.cv.rotate(image, ROTATE_CODES[rotation])

    def decode(self, data: bytes) -> np.ndarray:
        """
        Decode encoded image bytes (JPEG, PNG, ...) to a BGR image.

        Raises:
            LoadFailed: if the bytes are not a decodable image
        """
        buffer = np.frombuffer(data or b"", dtype=np.uint8)
        image = self.cv.imdecode(buffer, self.cv.IMREAD_COLOR) if buffer.size else None
        if image is None:
            raise LoadFailed("Could not decode image data")
        return image

    def load(self, path: Union[str, Path]) -> np.ndarray:
        """
        Read an image file.

        Raises:
            LoadFailed: if the file is missing or not an image
        """
        image = self.cv.imread(str(path))
        if image is None:
            raise LoadFailed(f"Could not load image: {path}")
        logger.debug("Loaded %s (%dx%d)", path, image.shape[1], image.shape[0])
        return image

    def encode(self, image: np.ndarray, extension: str = ".png") -> bytes:
        ok, buffer = self.cv.imencode(extension, image)
        if not ok:
            raise LoadFailed(f"Could not encode image as {extension}")
        return buffer.tobytes()

    def save(self, image: np.ndarray, path: Union[str, Path]) -> None:
        if not self.cv.imwrite(str(path), image):
            raise LoadFailed(f"Could not write image: {path}")


def contour_points(polygon: np.ndarray) -> List[Tuple[int, int]]:
    """Vertices of an approxPolyDP result as (x, y) tuples"""
    return [(int(x), int(y)) for x, y in polygon.reshape(-1, 2)]

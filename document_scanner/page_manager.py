"""
Collection of scanned pages
"""

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import ScannerConfig
from .detector import BoundaryDetector, DetectionResult
from .errors import LoadFailed
from .formats import PaperFormat
from .page_state import PageGeometry
from .primitives import OpenCVPrimitives
from .rectifier import RectificationPlanner, RectifiedImage
from .rotation_cache import RotationCache

logger = logging.getLogger(__name__)


@dataclass
class _Page:
    geometry: PageGeometry
    image: np.ndarray


class PageManager:
    """
    Ordered set of pages with one active page.

    Owns the source images, the rotation cache and the worker pool used to
    run detection in the background.
    """

    def __init__(
        self,
        detector: Optional[BoundaryDetector] = None,
        planner: Optional[RectificationPlanner] = None,
        config: Optional[ScannerConfig] = None,
        primitives: Optional[OpenCVPrimitives] = None
    ):
        self.config = config or ScannerConfig()
        self.primitives = primitives or OpenCVPrimitives()
        self.detector = detector or BoundaryDetector(self.config, self.primitives)
        self.planner = planner or RectificationPlanner(self.config, self.primitives)
        self.rotation_cache = RotationCache()

        self._lock = threading.RLock()
        self._pages: Dict[str, _Page] = {}
        self._order: List[str] = []
        self.active_page_id: Optional[str] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    @property
    def executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="page-detect"
            )
        return self._executor

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    # Pages

    def _new_geometry(
        self,
        page_id: str,
        image: np.ndarray,
        result: Optional[DetectionResult],
        name: Optional[str]
    ) -> PageGeometry:
        height, width = image.shape[:2]
        page = PageGeometry.create(
            page_id,
            width,
            height,
            corners=result.corners if result else None,
            name=name,
            default_inset=self.config.default_inset,
            reset_inset_ratio=self.config.reset_inset_ratio,
            medium_resolution_area=self.config.medium_resolution_area,
            high_resolution_area=self.config.high_resolution_area,
        )
        if result is None:
            page.status = "No document found, using default box"
        else:
            page.detected_strategy = result.strategy
            page.status = f"Document detected ({result.strategy})"
        return page

    def _insert(self, page: PageGeometry, image: np.ndarray) -> str:
        with self._lock:
            self._pages[page.page_id] = _Page(page, image)
            self._order.append(page.page_id)
            if self.active_page_id is None:
                self.active_page_id = page.page_id
        return page.page_id

    def add_image(self, image: np.ndarray, name: Optional[str] = None) -> str:
        """
        Add a page, detecting its corners synchronously.

        Args:
            image: Decoded source image
            name: Optional label, e.g. the file name

        Returns:
            Id of the new page

        Raises:
            LoadFailed: if image is empty
        """
        if image is None or image.size == 0:
            raise LoadFailed("Cannot add an empty image")

        page_id = uuid.uuid4().hex
        result = self.detector.detect_with_details(image)
        return self._insert(self._new_geometry(page_id, image, result, name), image)

    def add_file(self, path) -> str:
        """Load an image file and add it as a page"""
        return self.add_image(self.primitives.load(path), name=str(path))

    def add_images(
        self,
        images: Sequence[np.ndarray],
        names: Optional[Sequence[Optional[str]]] = None
    ) -> List[str]:
        """
        Add several pages, running detection on the worker pool.

        Pages are added in input order once all detections have finished.
        If any detection raises, no page is added and the error propagates.
        """
        names = list(names) if names is not None else [None] * len(images)
        for image in images:
            if image is None or image.size == 0:
                raise LoadFailed("Cannot add an empty image")

        futures = [self.executor.submit(self.detector.detect_with_details, image) for image in images]

        # A failed detection aborts the whole batch before any page is added.
        results = [future.result() for future in futures]

        page_ids = []
        for image, name, result in zip(images, names, results):
            page_id = uuid.uuid4().hex
            page_ids.append(self._insert(self._new_geometry(page_id, image, result, name), image))

        logger.info("Added %d pages", len(page_ids))
        return page_ids

    def redetect_async(self, page_id: str) -> Future:
        """
        Detect corners again in the background, on the page's current view.

        The Future resolves to True when new corners were applied, and to
        False when the page was deleted or changed in the meantime.
        """
        with self._lock:
            revision = self._require(page_id).geometry.revision

        image, rotation = self._rendered(page_id)

        def apply(future: Future) -> bool:
            result = future.result()
            with self._lock:
                current = self._pages.get(page_id)
                if current is None or current.geometry.revision != revision:
                    logger.debug("Discarding stale detection for page %s", page_id)
                    return False
                if result is None:
                    current.geometry.status = "No document found"
                    return False
                current.geometry.set_corners(result.corners)
                current.geometry.detected_strategy = result.strategy
                current.geometry.status = f"Document detected ({result.strategy})"
                return True

        detection = self.executor.submit(self.detector.detect_with_details, image, rotation)
        return self.executor.submit(apply, detection)

    def _require(self, page_id: str) -> _Page:
        page = self._pages.get(page_id)
        if page is None:
            raise KeyError(f"Unknown page: {page_id}")
        return page

    def get_page(self, page_id: str) -> Optional[PageGeometry]:
        with self._lock:
            page = self._pages.get(page_id)
            return page.geometry if page else None

    def source_image(self, page_id: str) -> np.ndarray:
        with self._lock:
            return self._require(page_id).image

    @property
    def pages(self) -> List[PageGeometry]:
        with self._lock:
            return [self._pages[page_id].geometry for page_id in self._order]

    @property
    def page_ids(self) -> List[str]:
        with self._lock:
            return list(self._order)

    def __len__(self) -> int:
        return len(self._order)

    @property
    def current_page(self) -> Optional[PageGeometry]:
        if self.active_page_id is None:
            return None
        return self.get_page(self.active_page_id)

    # Selection and ordering

    def select_page(self, page_id: Optional[str]) -> None:
        """Make a page active; unknown ids fall back to the first page"""
        with self._lock:
            if page_id is None:
                self.active_page_id = None
            elif page_id in self._pages:
                self.active_page_id = page_id
            else:
                logger.warning("Selecting unknown page %s", page_id)
                self.active_page_id = self._order[0] if self._order else None

    def _active_index(self) -> int:
        if self.active_page_id in self._order:
            return self._order.index(self.active_page_id)
        return -1

    def next_page(self) -> None:
        with self._lock:
            if not self._order:
                return
            index = self._active_index()
            if index == -1:
                self.active_page_id = self._order[0]
            else:
                self.active_page_id = self._order[min(index + 1, len(self._order) - 1)]

    def previous_page(self) -> None:
        with self._lock:
            if not self._order:
                return
            index = self._active_index()
            if index == -1:
                self.active_page_id = self._order[0]
            else:
                self.active_page_id = self._order[max(index - 1, 0)]

    def page_count_display(self) -> str:
        """Position of the active page, e.g. "2/5" """
        with self._lock:
            total = len(self._order)
            index = self._active_index()
            current = index + 1 if index != -1 else (1 if total else 0)
            return f"{current}/{total}"

    def reorder_pages(self, from_index: int, to_index: int) -> bool:
        with self._lock:
            count = len(self._order)
            if not (0 <= from_index < count and 0 <= to_index < count):
                logger.warning("Invalid reorder indices: from %d to %d", from_index, to_index)
                return False
            if from_index != to_index:
                page_id = self._order.pop(from_index)
                self._order.insert(to_index, page_id)
            return True

    def delete_page(self, page_id: str) -> bool:
        """
        Remove a page, its cached rotations and its source image.

        The active page moves to the page now at the deleted position, or to
        the new last page.
        """
        with self._lock:
            if page_id not in self._pages:
                return False

            index = self._order.index(page_id)
            self._order.pop(index)
            del self._pages[page_id]
            self.rotation_cache.evict_page(page_id)

            if self.active_page_id == page_id:
                if self._order:
                    self.active_page_id = self._order[min(index, len(self._order) - 1)]
                else:
                    self.active_page_id = None
            return True

    def clear(self) -> None:
        with self._lock:
            self._pages.clear()
            self._order.clear()
            self.rotation_cache.clear()
            self.active_page_id = None

    # Geometry operations

    def _rendered(self, page_id: str) -> Tuple[np.ndarray, int]:
        with self._lock:
            page = self._require(page_id)
            rotation = page.geometry.rotation
            source = page.image

        if rotation == 0:
            return source, rotation
        image = self.rotation_cache.get_or_create(
            page_id, rotation, lambda: self.primitives.rotate(source, rotation)
        )
        return image, rotation

    def rotated_image(self, page_id: str) -> np.ndarray:
        """Source image at the page's current rotation, rendered once per rotation"""
        return self._rendered(page_id)[0]

    def rotate_page(self, page_id: str, direction: str) -> PageGeometry:
        with self._lock:
            page = self._require(page_id).geometry
            page.rotate(direction)
            return page

    def set_rotation(self, page_id: str, rotation: int) -> PageGeometry:
        with self._lock:
            page = self._require(page_id).geometry
            page.set_rotation(rotation)
            return page

    def update_corners(self, page_id: str, corners) -> PageGeometry:
        with self._lock:
            page = self._require(page_id).geometry
            page.set_corners(corners)
            return page

    def reset_corners(self, page_id: str) -> PageGeometry:
        with self._lock:
            page = self._require(page_id).geometry
            page.reset_corners()
            return page

    def set_output_format(self, page_id: str, output_format: Optional[PaperFormat]) -> PageGeometry:
        with self._lock:
            page = self._require(page_id).geometry
            page.set_output_format(output_format)
            return page

    def rectify_page(self, page_id: str) -> Optional[RectifiedImage]:
        """
        Rectify a page from its rotated image; None leaves it in edit mode.

        A rotation that lands while the image is being rendered fails the
        rectification instead of warping the old view with the new corners.
        """
        image, rotation = self._rendered(page_id)
        with self._lock:
            page = self._require(page_id).geometry
            return page.rectify(image, self.planner, image_rotation=rotation)

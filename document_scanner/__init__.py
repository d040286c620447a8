"""
Document Scanner

Finds the outline of a photographed document, keeps its corners valid
while the page is rotated or edited, and warps it to a flat page sized to
a chosen paper format.
"""

from .config import ScannerConfig
from .detector import BoundaryDetector, DetectionResult
from .errors import (
    DetectionFailed,
    InvalidGeometry,
    LoadFailed,
    PrimitiveUnavailable,
    RectificationFailed,
    ScannerError,
)
from .formats import DEFAULT_FORMAT, STANDARD_FORMATS, PaperFormat
from .geometry import Point, Quad
from .page_manager import PageManager
from .page_state import PageGeometry, PageMode
from .primitives import OpenCVPrimitives
from .rectifier import RectificationPlanner, RectifiedImage
from .rotation_cache import RotationCache
from .strategies import STRATEGIES, DetectionStrategy
from .visualizer import QuadVisualizer

__all__ = [
    'BoundaryDetector',
    'DetectionResult',
    'DetectionStrategy',
    'STRATEGIES',
    'RectificationPlanner',
    'RectifiedImage',
    'PageGeometry',
    'PageMode',
    'PageManager',
    'RotationCache',
    'OpenCVPrimitives',
    'QuadVisualizer',
    'ScannerConfig',
    'PaperFormat',
    'STANDARD_FORMATS',
    'DEFAULT_FORMAT',
    'Point',
    'Quad',
    'ScannerError',
    'PrimitiveUnavailable',
    'DetectionFailed',
    'InvalidGeometry',
    'RectificationFailed',
    'LoadFailed',
]

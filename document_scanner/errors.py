"""
Exceptions raised by the document scanner
"""


class ScannerError(Exception):
    """Base class for all scanner errors"""


class PrimitiveUnavailable(ScannerError):
    """A required image primitive is missing from the installed OpenCV build"""


class DetectionFailed(ScannerError):
    """No strategy produced a valid quadrilateral"""


class InvalidGeometry(ScannerError):
    """Corners are not exactly 4 points, or they enclose no area"""


class RectificationFailed(ScannerError):
    """Perspective warp failed or produced invalid output dimensions"""


class LoadFailed(ScannerError):
    """Source image could not be decoded"""

"""
Paper formats for rectified output
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class PaperFormat:
    name: str
    # Width / height.
    ratio: float
    dimensions: str = ""
    category: str = "standard"

    @property
    def is_portrait(self) -> bool:
        return self.ratio < 1.0


LETTER_PORTRAIT = PaperFormat("Letter Portrait", 8.5 / 11, '8.5" x 11"')
LETTER_LANDSCAPE = PaperFormat("Letter Landscape", 11 / 8.5, '11" x 8.5"')
A4_PORTRAIT = PaperFormat("A4 Portrait", 1 / math.sqrt(2), "210 x 297mm")
A4_LANDSCAPE = PaperFormat("A4 Landscape", math.sqrt(2), "297 x 210mm")
LEGAL_PORTRAIT = PaperFormat("Legal Portrait", 8.5 / 14, '8.5" x 14"')
LEGAL_LANDSCAPE = PaperFormat("Legal Landscape", 14 / 8.5, '14" x 8.5"')
SQUARE = PaperFormat("Square", 1.0, "1:1")

STANDARD_FORMATS = (
    LETTER_PORTRAIT,
    LETTER_LANDSCAPE,
    A4_PORTRAIT,
    A4_LANDSCAPE,
    LEGAL_PORTRAIT,
    LEGAL_LANDSCAPE,
    SQUARE,
)

DEFAULT_FORMAT = LETTER_PORTRAIT

# Ratios considered when matching a detected shape to a known format.
STANDARD_RATIOS = (
    A4_PORTRAIT,
    A4_LANDSCAPE,
    LETTER_PORTRAIT,
    LETTER_LANDSCAPE,
    LEGAL_PORTRAIT,
    LEGAL_LANDSCAPE,
    SQUARE,
    PaperFormat("ID Card", 85.6 / 53.98, "85.6 x 53.98mm", "card"),
    PaperFormat("Business Card (US)", 3.5 / 2, '3.5" x 2"', "card"),
    PaperFormat("Business Card (EU)", 85 / 55, "85 x 55mm", "card"),
)


def format_names() -> List[str]:
    return [fmt.name for fmt in STANDARD_FORMATS]


def find_format(name: str) -> Optional[PaperFormat]:
    """Look up a format by name, ignoring case, spaces and dashes"""
    wanted = _normalize(name)
    for fmt in STANDARD_RATIOS:
        if _normalize(fmt.name) == wanted:
            return fmt
    return None


def _normalize(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum())


def find_closest_standard_ratio(
    ratio: float,
    tolerance: float = 0.15,
    candidates: Sequence[PaperFormat] = STANDARD_RATIOS
) -> Optional[PaperFormat]:
    """
    Closest known format to a measured width / height ratio.

    Args:
        ratio: Measured width / height
        tolerance: Maximum difference relative to the measured ratio
        candidates: Formats to compare against

    Returns:
        The closest format, or None if even the closest one is outside
        the tolerance
    """
    if ratio <= 0:
        return None

    closest = min(candidates, key=lambda fmt: abs(fmt.ratio - ratio))
    if abs(closest.ratio - ratio) / ratio < tolerance:
        return closest
    return None

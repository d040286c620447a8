"""
Scanner configuration
"""

import os
from dataclasses import dataclass, fields

from dotenv import load_dotenv


ENV_PREFIX = "SCANNER_"


@dataclass
class ScannerConfig:
    """Tunables for detection, validation and rectification."""

    # Images whose larger side exceeds this are downsampled before detection.
    processing_max_dimension: int = 1200
    # Gaussian blur kernel size (odd).
    blur_kernel_size: int = 5
    # Local contrast enhancement used by strategies that request preprocessing.
    clahe_clip_limit: float = 2.0
    clahe_tile_size: int = 8
    # Resolution tiers by total pixel area.
    medium_resolution_area: int = 2_000_000
    high_resolution_area: int = 8_000_000
    # Inset (px at 0 deg) of the box installed when nothing usable was detected.
    default_inset: int = 32
    # Inset used by "reset corners", as a fraction of the view size.
    reset_inset_ratio: float = 0.1
    # Match the detected aspect ratio to a standard paper ratio when no
    # output format is requested. Off unless explicitly enabled.
    auto_format_adjustment: bool = False
    # Relative tolerance for the standard ratio match.
    auto_format_tolerance: float = 0.15
    # Worker threads used when detecting several pages at once.
    max_workers: int = 4
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, **overrides) -> "ScannerConfig":
        """
        Build a configuration from SCANNER_* environment variables.

        A .env file in the working directory is loaded first. Keyword
        arguments take precedence over the environment.

        Example:
            SCANNER_PROCESSING_MAX_DIMENSION=1600
            SCANNER_AUTO_FORMAT_ADJUSTMENT=true
        """
        load_dotenv()

        values = {}
        for field in fields(cls):
            raw = os.getenv(ENV_PREFIX + field.name.upper())
            if raw is None:
                continue
            values[field.name] = _parse_value(raw, field.type)

        values.update(overrides)
        return cls(**values)


def _parse_value(raw: str, field_type):
    type_name = field_type if isinstance(field_type, str) else field_type.__name__

    if type_name == "bool":
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if type_name == "int":
        return int(raw)
    if type_name == "float":
        return float(raw)
    return raw

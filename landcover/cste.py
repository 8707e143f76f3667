"""
Constants and default configuration for the land-cover classification pipeline.

These values are only used as default arguments: every stage receives its
configuration explicitly.
"""

from typing import Dict, List

# ============================================================================
# GENERAL CONFIGURATION
# ============================================================================
class GeneralConfig:
    """General project configuration."""
    RANDOM_SEED: int = 42


class GeneralPath:
    """General project paths."""
    LOG_PATH: str = r".logs/"


class ResultPath:
    """Result output paths."""
    REPORT_PATH: str = r"data/reports/"


# ============================================================================
# SENSOR DEFINITIONS
# ============================================================================

class LandsatConfig:
    """Landsat 9 Collection 2 Level 2 band names and scale factors."""

    OPTICAL_BANDS: List[str] = [
        "SR_B1", "SR_B2", "SR_B3", "SR_B4", "SR_B5", "SR_B6", "SR_B7",
    ]
    THERMAL_BANDS: List[str] = ["ST_B10"]

    # Surface reflectance: DN * 0.0000275 - 0.2
    OPTICAL_SCALE: float = 0.0000275
    OPTICAL_OFFSET: float = -0.2

    # Surface temperature (Kelvin): DN * 0.00341802 + 149.0
    THERMAL_SCALE: float = 0.00341802
    THERMAL_OFFSET: float = 149.0

    # Raw Level 2 fill value
    NODATA: float = 0.0

    # group name -> (bands, scale, offset)
    SCALE_FACTORS: Dict[str, tuple] = {
        "optical": (OPTICAL_BANDS, OPTICAL_SCALE, OPTICAL_OFFSET),
        "thermal": (THERMAL_BANDS, THERMAL_SCALE, THERMAL_OFFSET),
    }

    # Bands fed to the classifier (SR_B6 left out)
    CLASSIFICATION_BANDS: List[str] = [
        "SR_B1", "SR_B2", "SR_B3", "SR_B4", "SR_B5", "SR_B7",
    ]

    CLOUD_COVER_PROPERTY: str = "CLOUD_COVER"
    MAX_CLOUD_COVER: float = 10.0


# ============================================================================
# PIPELINE PARAMETERS
# ============================================================================

class SamplingConfig:
    """Default parameters for sampling training regions."""
    LABEL_FIELD: str = "Class"
    # "mean" or "median" over the pixels of a polygon
    REDUCER: str = "mean"


class SplitConfig:
    """Default parameters for the train/test partition."""
    TRAIN_FRACTION: float = 0.8
    RANDOM_COLUMN: str = "random"


class ClassifierConfig:
    """Default parameters for the ensemble classifier."""
    TREE_COUNT: int = 10
    MAX_DEPTH = None
    N_JOBS: int = 1
    # Written to pixels that cannot be classified (no-data in an input band)
    UNCLASSIFIED: int = -1
    OUTPUT_BAND: str = "classification"


# ============================================================================
# CLASS DEFINITIONS
# ============================================================================

class ClassInfo:
    """Land-cover class definitions and metadata."""

    CLASS_NAMES: Dict[int, str] = {
        1: "urban",
        2: "forest",
        3: "agriculture",
    }

# tests/conftest.py
# Ensure project root is importable as a module during pytest runs
import pathlib
import sys

import numpy as np
import pytest
from shapely.geometry import Point

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from landcover.cste import LandsatConfig
from landcover.geometry import LabeledGeometry
from landcover.raster import GridSpec, Raster

PIXEL = 30.0
SIZE = 30  # 30x30 pixels, one class per block of 10 columns

# Surface reflectance per class for SR_B1..SR_B7, temperature (K) for ST_B10
CLASS_SIGNATURES = {
    1: [0.10, 0.12, 0.15, 0.18, 0.22, 0.25, 0.24, 305.0],  # urban
    2: [0.02, 0.04, 0.03, 0.02, 0.35, 0.15, 0.07, 295.0],  # forest
    3: [0.05, 0.08, 0.10, 0.12, 0.28, 0.30, 0.20, 300.0],  # agriculture
}
BAND_NAMES = ["SR_B1", "SR_B2", "SR_B3", "SR_B4", "SR_B5", "SR_B6", "SR_B7", "ST_B10"]


def _to_dn(value, band):
    if band == "ST_B10":
        return (value - 149.0) / 0.00341802
    return (value + 0.2) / 0.0000275


@pytest.fixture
def grid():
    return GridSpec.from_origin(0.0, SIZE * PIXEL, PIXEL, SIZE, SIZE, crs="EPSG:32636")


@pytest.fixture
def make_scene(grid):
    """Factory for raw Landsat-like scenes (digital numbers, no-data = 0)."""
    def _make(seed=0, cloud_cover=5.0, noise=0.002):
        rng = np.random.default_rng(seed)
        bands = {}
        for b, name in enumerate(BAND_NAMES):
            arr = np.zeros(grid.shape)
            for block, label in enumerate(sorted(CLASS_SIGNATURES)):
                value = CLASS_SIGNATURES[label][b]
                jitter = rng.normal(0.0, noise if name != "ST_B10" else 0.5, (SIZE, 10))
                arr[:, block * 10:(block + 1) * 10] = _to_dn(value + jitter, name)
            bands[name] = np.round(arr)
        return Raster(bands, grid, nodata=LandsatConfig.NODATA, properties={"CLOUD_COVER": cloud_cover})
    return _make


@pytest.fixture
def training_points():
    """10 labeled points per class, at pixel centres inside each class block."""
    geoms = []
    for block, label in enumerate(sorted(CLASS_SIGNATURES)):
        for i in range(10):
            col = block * 10 + (i % 5) * 2
            row = 3 * i
            x = (col + 0.5) * PIXEL
            y = SIZE * PIXEL - (row + 0.5) * PIXEL
            geoms.append(LabeledGeometry(Point(x, y), {"Class": label}, len(geoms)))
    return geoms


@pytest.fixture
def small_raster():
    """4x4 two-band raster with known values (band A = 0..15, band B = 100 + A)."""
    g = GridSpec.from_origin(0.0, 4.0, 1.0, 4, 4)
    a = np.arange(16, dtype=float).reshape(4, 4)
    return Raster({"A": a, "B": a + 100.0}, g)

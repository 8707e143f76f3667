"""In-memory multi-band raster with geospatial referencing."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
from rasterio.transform import Affine, from_origin, rowcol, xy

from landcover.errors import InvalidInput


@dataclass(frozen=True)
class GridSpec:
    """
    Spatial grid shared by all bands of a raster.

    Attributes:
        width: Number of columns
        height: Number of rows
        transform: Affine geotransform (pixel -> map coordinates)
        crs: Coordinate reference string, e.g. "EPSG:32636" (optional)
    """
    width: int
    height: int
    transform: Affine
    crs: Optional[str] = None

    @classmethod
    def from_origin(
        cls,
        x_min: float,
        y_max: float,
        pixel_size: float,
        width: int,
        height: int,
        crs: Optional[str] = None,
    ) -> "GridSpec":
        """Build a north-up grid from its upper-left corner and square pixel size."""
        return cls(width, height, from_origin(x_min, y_max, pixel_size, pixel_size), crs)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def res(self) -> Tuple[float, float]:
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(left, bottom, right, top) in map coordinates."""
        x0, y0 = xy(self.transform, 0, 0, offset="ul")
        x1, y1 = xy(self.transform, self.height, self.width, offset="ul")
        return (float(min(x0, x1)), float(min(y0, y1)), float(max(x0, x1)), float(max(y0, y1)))

    def index(self, x: float, y: float) -> Tuple[int, int]:
        """Return the (row, col) of the pixel containing map coordinate (x, y)."""
        row, col = rowcol(self.transform, x, y)
        return int(row), int(col)

    def xy(self, row: int, col: int) -> Tuple[float, float]:
        """Return the map coordinates of the centre of pixel (row, col)."""
        x, y = xy(self.transform, row, col, offset="center")
        return float(x), float(y)

    def contains_pixel(self, row: int, col: int) -> bool:
        return 0 <= row < self.height and 0 <= col < self.width

    def window(self, row_off: int, col_off: int, height: int, width: int) -> "GridSpec":
        """Return the grid of a sub-window starting at (row_off, col_off)."""
        x, y = xy(self.transform, row_off, col_off, offset="ul")
        t = self.transform
        transform = Affine(t.a, t.b, x, t.d, t.e, y)
        return GridSpec(width, height, transform, self.crs)


def _frozen(arr: np.ndarray) -> np.ndarray:
    out = np.array(arr, dtype=np.float64, copy=True)
    out.flags.writeable = False
    return out


@dataclass(frozen=True, eq=False)
class Raster:
    """
    Immutable multi-band raster.

    Every band is a 2D float64 array of shape (height, width) matching `grid`.
    A pixel is no-data when it is NaN or equal to `nodata`.
    """
    bands: Mapping[str, np.ndarray]
    grid: GridSpec
    nodata: Optional[float] = None
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.bands:
            raise InvalidInput("A raster needs at least one band")

        frozen_bands = {}
        for name, arr in self.bands.items():
            arr = np.asarray(arr)
            if arr.shape != self.grid.shape:
                raise InvalidInput(
                    f"Band '{name}' has shape {arr.shape}, expected {self.grid.shape}"
                )
            frozen_bands[name] = _frozen(arr)

        #! Bypass frozen dataclass to store private read-only copies
        object.__setattr__(self, "bands", frozen_bands)
        object.__setattr__(self, "properties", dict(self.properties))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def band_names(self) -> List[str]:
        return list(self.bands.keys())

    @property
    def shape(self) -> Tuple[int, int]:
        return self.grid.shape

    def band(self, name: str) -> np.ndarray:
        """Return band `name`, raising InvalidInput if absent."""
        try:
            return self.bands[name]
        except KeyError:
            raise InvalidInput(
                f"Band '{name}' not found (available: {self.band_names})"
            ) from None

    def require_bands(self, names: Iterable[str]) -> None:
        missing = [n for n in names if n not in self.bands]
        if missing:
            raise InvalidInput(f"Missing bands {missing} (available: {self.band_names})")

    def band_nodata_mask(self, name: str) -> np.ndarray:
        """Boolean mask, True where band `name` is no-data."""
        arr = self.band(name)
        mask = np.isnan(arr)
        if self.nodata is not None and not np.isnan(self.nodata):
            mask |= arr == self.nodata
        return mask

    def valid_mask(self, names: Optional[Iterable[str]] = None) -> np.ndarray:
        """Boolean mask, True where every band in `names` holds a valid value."""
        names = self.band_names if names is None else list(names)
        self.require_bands(names)
        valid = np.ones(self.shape, dtype=bool)
        for name in names:
            valid &= ~self.band_nodata_mask(name)
        return valid

    def stack(self, names: Optional[Iterable[str]] = None) -> np.ndarray:
        """Return bands `names` as an array of shape (H, W, C)."""
        names = self.band_names if names is None else list(names)
        return np.stack([self.band(n) for n in names], axis=-1)

    # ------------------------------------------------------------------
    # Derived rasters
    # ------------------------------------------------------------------

    def select(self, names: Iterable[str]) -> "Raster":
        """Return a new raster restricted to `names`, in that order."""
        names = list(names)
        self.require_bands(names)
        return Raster({n: self.bands[n] for n in names}, self.grid, self.nodata, self.properties)

    def with_bands(
        self,
        new_bands: Mapping[str, np.ndarray],
        nodata: Optional[float] = None,
    ) -> "Raster":
        """Return a new raster where `new_bands` replace (or are appended to) existing bands."""
        bands: Dict[str, np.ndarray] = dict(self.bands)
        bands.update(new_bands)
        return Raster(
            bands,
            self.grid,
            self.nodata if nodata is None else nodata,
            self.properties,
        )

    def same_grid(self, other: "Raster") -> bool:
        return self.grid == other.grid

    def equals(self, other: "Raster") -> bool:
        """Band-wise equality (NaN == NaN), grid and band order included."""
        if self.grid != other.grid or self.band_names != other.band_names:
            return False
        return all(
            np.array_equal(self.bands[n], other.bands[n], equal_nan=True)
            for n in self.band_names
        )

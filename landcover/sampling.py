"""
Extraction of labeled training samples from a raster.

One feature row is produced per geometry:
    - Point   : values of the pixel containing the point.
    - Polygon : mean (or median) over the valid pixels whose centres fall
                inside the polygon. A polygon too small to contain any pixel
                centre falls back to every pixel it touches.

Pixels that are no-data in any requested band are ignored. Geometries that
fall outside the raster, have no valid pixel, or carry no label are rejected
and reported instead of producing a row.
"""

from dataclasses import dataclass
from typing import Hashable, List, Sequence, Tuple

import numpy as np
import pandas as pd
from rasterio.features import geometry_mask
from shapely.geometry import box
from tqdm import tqdm

from landcover.cste import SamplingConfig
from landcover.errors import InvalidInput
from landcover.geometry import LabeledGeometry
from landcover.logger import get_logger
from landcover.raster import Raster

log = get_logger("sampling")

OUTSIDE_EXTENT = "outside_extent"
NO_VALID_PIXELS = "no_valid_pixels"
MISSING_LABEL = "missing_label"

_REDUCERS = {
    "mean": np.mean,
    "median": np.median,
}


@dataclass(frozen=True)
class RejectedGeometry:
    """A geometry that produced no feature row, and why."""
    geometry_id: Hashable
    reason: str


@dataclass(frozen=True)
class SampleResult:
    """Output of `sample_regions`: the feature table and the rejected geometries."""
    table: pd.DataFrame
    rejected: Tuple[RejectedGeometry, ...]

    @property
    def rejected_ids(self) -> List[Hashable]:
        return [r.geometry_id for r in self.rejected]


def _pixel_mask(raster: Raster, geom) -> np.ndarray:
    """Boolean (H, W) mask of the pixels covered by `geom`."""
    grid = raster.grid

    if geom.geom_type == "Point":
        mask = np.zeros(grid.shape, dtype=bool)
        row, col = grid.index(geom.x, geom.y)
        if grid.contains_pixel(row, col):
            mask[row, col] = True
        return mask

    #! Pixel centres first, then every touched pixel for sub-pixel polygons
    mask = geometry_mask([geom], out_shape=grid.shape, transform=grid.transform, invert=True)
    if not mask.any():
        mask = geometry_mask(
            [geom], out_shape=grid.shape, transform=grid.transform,
            all_touched=True, invert=True,
        )
    return mask


def sample_regions(
    raster: Raster,
    bands: Sequence[str],
    geometries: Sequence[LabeledGeometry],
    label_field: str = SamplingConfig.LABEL_FIELD,
    reducer: str = SamplingConfig.REDUCER,
    strict: bool = False,
    progress: bool = False,
) -> SampleResult:
    """
    Sample raster band values for each labeled geometry.

    Args:
        raster: Corrected (composite) raster
        bands: Band names to extract, in output column order
        geometries: Labeled points / polygons in the raster's CRS
        label_field: Property holding the class label
        reducer: "mean" or "median", used to aggregate polygon pixels
        strict: If True, any rejected geometry raises InvalidInput
        progress: Show a tqdm progress bar

    Returns:
        SampleResult whose table has one row per retained geometry, indexed by
        geometry id, with columns `bands + [label_field]`

    Raises:
        InvalidInput: Missing band, unknown reducer, duplicate geometry ids,
                      or any rejection when `strict` is set
    """
    bands = list(bands)
    if not bands:
        raise InvalidInput("At least one band must be selected for sampling")
    raster.require_bands(bands)
    if reducer not in _REDUCERS:
        raise InvalidInput(f"Unknown reducer '{reducer}', expected one of {list(_REDUCERS)}")
    reduce_fn = _REDUCERS[reducer]

    ids = [g.geometry_id if g.geometry_id is not None else i for i, g in enumerate(geometries)]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Geometry ids must be unique")

    values = raster.stack(bands)             # (H, W, C)
    valid = raster.valid_mask(bands)         # (H, W)
    extent = box(*raster.grid.bounds)

    rows = []
    row_ids = []
    rejected = []

    for geom_id, item in tqdm(
        zip(ids, geometries), total=len(ids), desc="Sampling regions", disable=not progress
    ):
        label = item.label(label_field)
        if label is None:
            rejected.append(RejectedGeometry(geom_id, MISSING_LABEL))
            continue

        if item.geometry.is_empty or not item.geometry.intersects(extent):
            rejected.append(RejectedGeometry(geom_id, OUTSIDE_EXTENT))
            continue

        mask = _pixel_mask(raster, item.geometry)
        if not mask.any():
            rejected.append(RejectedGeometry(geom_id, OUTSIDE_EXTENT))
            continue

        pixels = values[mask & valid]        # (N, C)
        if len(pixels) == 0:
            rejected.append(RejectedGeometry(geom_id, NO_VALID_PIXELS))
            continue

        rows.append(list(reduce_fn(pixels, axis=0)) + [label])
        row_ids.append(geom_id)

    for r in rejected:
        log.warning(f"Geometry {r.geometry_id!r} rejected: {r.reason}")

    if strict and rejected:
        raise InvalidInput(
            f"{len(rejected)} geometries rejected: "
            + ", ".join(f"{r.geometry_id!r} ({r.reason})" for r in rejected)
        )

    table = pd.DataFrame(rows, columns=bands + [label_field], index=pd.Index(row_ids, name="geometry_id"))
    for name in bands:
        table[name] = table[name].astype(np.float64)

    log.info(f"Sampled {len(table)}/{len(geometries)} geometries ({len(rejected)} rejected)")
    return SampleResult(table=table, rejected=tuple(rejected))

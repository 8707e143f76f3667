"""
Temporal compositing of a scene collection.

Scenes are expected to be already scaled to physical units and to share the
same grid. The composite is a per-pixel median that ignores no-data.
"""

import warnings
from typing import List, Sequence, Tuple

import numpy as np

from landcover.cste import LandsatConfig
from landcover.errors import InvalidInput
from landcover.logger import get_logger
from landcover.raster import Raster

log = get_logger("composite")


def filter_scenes(
    rasters: Sequence[Raster],
    max_cloud_cover: float = LandsatConfig.MAX_CLOUD_COVER,
    cloud_cover_property: str = LandsatConfig.CLOUD_COVER_PROPERTY,
) -> List[Raster]:
    """
    Keep scenes whose cloud cover metadata is strictly below `max_cloud_cover`.

    Scenes without the property are dropped with a warning.
    """
    kept = []
    for i, raster in enumerate(rasters):
        value = raster.properties.get(cloud_cover_property)
        if value is None:
            log.warning(f"Scene {i} has no '{cloud_cover_property}' property, skipped")
            continue
        if float(value) < max_cloud_cover:
            kept.append(raster)

    log.info(f"Kept {len(kept)}/{len(rasters)} scenes with {cloud_cover_property} < {max_cloud_cover}")
    return kept


def median_composite(rasters: Sequence[Raster]) -> Raster:
    """
    Reduce a scene collection to a single raster by per-pixel median.

    Args:
        rasters: Ordered sequence of same-grid rasters with identical band names

    Returns:
        Raster with the first scene's band order, grid and properties. Pixels
        without any valid observation are NaN (the output no-data value).

    Raises:
        InvalidInput: On an empty sequence, grid mismatch or band mismatch
    """
    if len(rasters) == 0:
        raise InvalidInput("Cannot build a composite from an empty collection")

    reference = rasters[0]
    for i, raster in enumerate(rasters[1:], start=1):
        if not raster.same_grid(reference):
            raise InvalidInput(f"Scene {i} does not share the grid of scene 0")
        if set(raster.band_names) != set(reference.band_names):
            raise InvalidInput(
                f"Scene {i} bands {raster.band_names} differ from {reference.band_names}"
            )

    composite = {}
    for name in reference.band_names:
        #! (T, H, W) cube, no-data replaced by NaN so nanmedian skips it
        cube = np.stack([
            np.where(r.band_nodata_mask(name), np.nan, r.band(name)) for r in rasters
        ])
        with warnings.catch_warnings():
            # All-NaN slices are expected and stay NaN
            warnings.simplefilter("ignore", category=RuntimeWarning)
            composite[name] = np.nanmedian(cube, axis=0)

    log.info(f"Median composite of {len(rasters)} scenes, {len(composite)} bands")
    return Raster(composite, reference.grid, np.nan, reference.properties)


def clip(raster: Raster, bounds: Tuple[float, float, float, float]) -> Raster:
    """
    Crop a raster to the pixels intersecting a bounding box.

    Args:
        raster: Raster to crop
        bounds: (left, bottom, right, top) in the raster's map coordinates

    Returns:
        New raster covering the intersection of the raster and the box

    Raises:
        InvalidInput: If the box does not overlap the raster
    """
    left, bottom, right, top = bounds
    r_left, r_bottom, r_right, r_top = raster.grid.bounds
    if left >= r_right or right <= r_left or bottom >= r_top or top <= r_bottom:
        raise InvalidInput(f"Bounds {bounds} do not overlap raster extent {raster.grid.bounds}")

    res_x, res_y = raster.grid.res
    col_start = max(0, int(np.floor((max(left, r_left) - r_left) / res_x)))
    col_stop = min(raster.grid.width, int(np.ceil((min(right, r_right) - r_left) / res_x)))
    row_start = max(0, int(np.floor((r_top - min(top, r_top)) / res_y)))
    row_stop = min(raster.grid.height, int(np.ceil((r_top - max(bottom, r_bottom)) / res_y)))

    grid = raster.grid.window(row_start, col_start, row_stop - row_start, col_stop - col_start)
    bands = {
        name: raster.band(name)[row_start:row_stop, col_start:col_stop]
        for name in raster.band_names
    }
    return Raster(bands, grid, raster.nodata, raster.properties)

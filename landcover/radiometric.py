"""
Radiometric correction: raw digital numbers -> physical units.

Each band group is converted with a linear model `v * scale + offset`
(surface reflectance for optical bands, Kelvin for thermal bands).
"""

import multiprocessing as mp
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from landcover.cste import LandsatConfig
from landcover.errors import InvalidInput
from landcover.logger import get_logger
from landcover.raster import Raster

log = get_logger("radiometric")


@dataclass(frozen=True)
class BandScale:
    """Linear scale factor applied to a group of bands."""
    bands: Tuple[str, ...]
    scale: float
    offset: float

    def apply(self, values: np.ndarray) -> np.ndarray:
        return values * self.scale + self.offset


ScaleFactors = Mapping[str, Union[BandScale, tuple]]


def _as_band_scales(scale_factors: ScaleFactors) -> Dict[str, BandScale]:
    """Normalize a {group: (bands, scale, offset)} mapping into BandScale objects."""
    out = {}
    for group, spec in scale_factors.items():
        if isinstance(spec, BandScale):
            out[group] = spec
        else:
            bands, scale, offset = spec
            out[group] = BandScale(tuple(bands), float(scale), float(offset))
    return out


def apply_scale_factors(
    raster: Raster,
    scale_factors: ScaleFactors = LandsatConfig.SCALE_FACTORS,
) -> Raster:
    """
    Convert raw band values into physical units.

    Args:
        raster: Input raster holding raw digital numbers
        scale_factors: Mapping band-group -> BandScale or (bands, scale, offset)

    Returns:
        New raster with every referenced band rescaled. Bands not referenced by
        any group are carried over untouched. No-data pixels keep their value
        and the output keeps the input `nodata` marker.

    Raises:
        InvalidInput: If a referenced band is absent from the raster
    """
    groups = _as_band_scales(scale_factors)

    #! Validate before computing anything
    for group, spec in groups.items():
        missing = [b for b in spec.bands if b not in raster.bands]
        if missing:
            raise InvalidInput(f"Band group '{group}' references missing bands {missing}")

    scaled = {}
    for spec in groups.values():
        for name in spec.bands:
            source = raster.band(name)
            #! No-data pixels keep the input marker (sentinel or NaN)
            scaled[name] = np.where(raster.band_nodata_mask(name), source, spec.apply(source))

    return raster.with_bands(scaled)


def scale_collection(
    rasters: Sequence[Raster],
    scale_factors: ScaleFactors = LandsatConfig.SCALE_FACTORS,
    num_workers: int = 1,
) -> List[Raster]:
    """
    Apply `apply_scale_factors` to every scene of a collection.

    Args:
        rasters: Ordered sequence of raw scenes
        scale_factors: Band-group scale factors
        num_workers: Number of worker processes (1 = run in-process)

    Returns:
        List of corrected rasters, in input order
    """
    worker_fn = partial(apply_scale_factors, scale_factors=dict(scale_factors))

    if num_workers <= 1 or len(rasters) <= 1:
        return [worker_fn(r) for r in rasters]

    num_workers = min(num_workers, len(rasters))
    log.info(f"Scaling {len(rasters)} scenes with {num_workers} workers")

    with mp.Pool(processes=num_workers) as pool:
        results = list(
            tqdm(
                pool.imap(worker_fn, rasters),
                total=len(rasters),
                desc="Applying scale factors"
            )
        )
    return results

"""
Input/Output utilities for rasters and training geometries.
"""

import json
import os
import shutil
from typing import List, Optional, Sequence

import numpy as np
import rasterio

from landcover.geometry import LabeledGeometry, from_features
from landcover.logger import get_logger
from landcover.raster import GridSpec, Raster

log = get_logger("io_utils")


def read_raster(path: str, band_names: Optional[Sequence[str]] = None) -> Raster:
    """
    Load a multi-band GeoTIFF into a Raster.

    Args:
        path: Path to the raster file
        band_names: Names given to the bands, in file order. If None, band
                    descriptions are used, falling back to "B1", "B2", ...

    Returns:
        Raster with float64 bands, the file's grid, no-data and tags

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If `band_names` does not match the band count
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Raster not found: {path}")

    with rasterio.open(path) as src:
        data = src.read().astype(np.float64)
        if band_names is None:
            band_names = [
                desc if desc else f"B{i}" for i, desc in enumerate(src.descriptions, start=1)
            ]
        elif len(band_names) != src.count:
            raise ValueError(f"{len(band_names)} band names given for {src.count} bands in {path}")

        grid = GridSpec(
            width=src.width,
            height=src.height,
            transform=src.transform,
            crs=src.crs.to_string() if src.crs else None,
        )
        nodata = src.nodata
        properties = src.tags()

    log.info(f"Loaded {path}: {len(band_names)} bands, {grid.height}x{grid.width}")
    return Raster(dict(zip(band_names, data)), grid, nodata, properties)


def write_raster(raster: Raster, path: str, dtype: str = "float32") -> None:
    """
    Save a Raster as a GeoTIFF, band names stored as band descriptions.

    Args:
        raster: Raster to save
        path: Output file path
        dtype: Output data type
    """
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    profile = {
        "driver": "GTiff",
        "height": raster.grid.height,
        "width": raster.grid.width,
        "count": len(raster.band_names),
        "dtype": dtype,
        "crs": raster.grid.crs,
        "transform": raster.grid.transform,
        "nodata": raster.nodata,
    }

    with rasterio.open(path, "w", **profile) as dst:
        for idx, name in enumerate(raster.band_names, start=1):
            dst.write(raster.band(name).astype(dtype), idx)
            dst.set_band_description(idx, name)
        if raster.properties:
            dst.update_tags(**{str(k): str(v) for k, v in raster.properties.items()})

    log.info(f"Saved raster to {path}")


def load_geometries(path: str) -> List[LabeledGeometry]:
    """
    Load labeled training geometries from a GeoJSON FeatureCollection.

    Args:
        path: Path to the GeoJSON file

    Returns:
        One LabeledGeometry per feature, ids taken from the features or
        their position
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Geometry file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    if data.get("type") != "FeatureCollection":
        raise ValueError(f"{path} is not a GeoJSON FeatureCollection")

    geometries = from_features(data.get("features", []))
    log.info(f"Loaded {len(geometries)} geometries from {path}")
    return geometries


def clear_folder_if_exists(folder_path: str) -> None:
    """Clear all files in the specified folder if it exists."""
    if os.path.exists(folder_path) and os.path.isdir(folder_path):
        for filename in os.listdir(folder_path):
            file_path = os.path.join(folder_path, filename)
            try:
                if os.path.isfile(file_path) or os.path.islink(file_path):
                    os.unlink(file_path)
                elif os.path.isdir(file_path):
                    shutil.rmtree(file_path)
            except OSError as e:
                log.error(f"Failed to delete {file_path}. Reason: {e}")

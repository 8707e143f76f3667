# tests/test_radiometric.py
import numpy as np
import pytest

from landcover.errors import InvalidInput
from landcover.radiometric import BandScale, apply_scale_factors, scale_collection
from landcover.raster import Raster


def test_identity_scale_twice_is_noop(small_raster):
    identity = {"all": (["A", "B"], 1.0, 0.0)}
    out = apply_scale_factors(apply_scale_factors(small_raster, identity), identity)
    assert out.equals(small_raster)
    assert out.grid == small_raster.grid


def test_identity_scale_keeps_nodata_sentinel(small_raster):
    a = small_raster.band("A").copy()
    a[0, 0] = -1.0
    b = small_raster.band("B").copy()
    b[3, 3] = np.nan
    r = Raster({"A": a, "B": b}, small_raster.grid, nodata=-1.0)
    identity = {"all": (["A", "B"], 1.0, 0.0)}

    out = apply_scale_factors(apply_scale_factors(r, identity), identity)
    assert out.equals(r)
    assert out.nodata == -1.0
    assert out.band("A")[0, 0] == -1.0
    assert np.isnan(out.band("B")[3, 3])


def test_landsat_default_factors(make_scene):
    raw = make_scene()
    out = apply_scale_factors(raw)
    dn = raw.band("SR_B4")
    assert np.allclose(out.band("SR_B4"), dn * 0.0000275 - 0.2)
    assert np.allclose(out.band("ST_B10"), raw.band("ST_B10") * 0.00341802 + 149.0)
    # Forest block (cols 10-19) has red reflectance close to 0.02
    assert abs(out.band("SR_B4")[:, 10:20].mean() - 0.02) < 0.002
    assert out.band_names == raw.band_names
    assert out.properties["CLOUD_COVER"] == raw.properties["CLOUD_COVER"]


def test_nodata_pixels_stay_nodata(small_raster):
    a = small_raster.band("A").copy()
    a[2, 3] = -1.0
    r = Raster({"A": a, "B": small_raster.band("B")}, small_raster.grid, nodata=-1.0)
    out = apply_scale_factors(r, {"g": BandScale(("A",), 2.0, 1.0)})
    assert out.band("A")[2, 3] == -1.0
    assert out.nodata == -1.0
    assert out.band("A")[0, 1] == 3.0
    # untouched band kept as-is
    assert np.array_equal(out.band("B"), r.band("B"))
    assert not out.valid_mask()[2, 3]


def test_missing_band_raises(small_raster):
    with pytest.raises(InvalidInput):
        apply_scale_factors(small_raster, {"optical": (["A", "Z"], 2.0, 0.0)})


def test_scale_collection_keeps_order(small_raster):
    shifted = small_raster.with_bands({"A": small_raster.band("A") + 1.0})
    out = scale_collection([small_raster, shifted], {"g": (["A"], 1.0, 10.0)})
    assert out[0].band("A")[0, 0] == 10.0
    assert out[1].band("A")[0, 0] == 11.0

"""
Tests for finite-difference distortion, grid passes and statistics.
"""

import numpy as np
import pytest

from analysis import (
    DistortionStatistics,
    compute_distortion,
    distortion_at,
    iter_distortion_rows,
    jacobian_at,
    tissot_indicatrix,
)
from analysis.distortion import LN_10
from common.types import Pole
from geospatial import configure
from sampling import globe_uniform_grid, latlon_grid

STEP = 1e-4


class TestPointDistortion:
    """Areal and shape distortion at single points."""

    def test_equirectangular_at_sixty_degrees(self):
        areal, shape = distortion_at(configure("equirectangular"), np.pi/3, 0.5, STEP)
        assert areal == pytest.approx(np.log(2), abs=1e-6)
        assert shape == pytest.approx(np.log(2), abs=1e-6)

    def test_mercator(self):
        areal, shape = distortion_at(configure("mercator"), np.pi/4, 1.0, STEP)
        assert areal == pytest.approx(np.log(2), abs=1e-6)
        assert shape == pytest.approx(0.0, abs=1e-6)

    def test_jacobian_entries(self):
        a, b, c, d = jacobian_at(configure("equirectangular"), np.pi/3, 0.5, STEP)
        assert a == pytest.approx(2.0)
        assert d == pytest.approx(1.0)
        assert b == pytest.approx(0.0, abs=1e-9)
        assert c == pytest.approx(0.0, abs=1e-9)

    @pytest.mark.parametrize("key, lat, lon", [
        ("stereographic", 0.5, 0.3),
        ("lambert_conformal_conic", 0.7, 0.4),
        ("pierce_quincuncial", -0.6, 0.5),
        ("pierce_quincuncial", -1.1, -2.5),
    ])
    def test_conformal_families_keep_shape(self, key, lat, lon):
        _, shape = distortion_at(configure(key), lat, lon, STEP)
        assert shape == pytest.approx(0.0, abs=1e-5)

    def test_gall_is_a_compromise(self):
        areal, shape = distortion_at(configure("gall_stereographic"), 1.2, -2.0, STEP)
        assert areal > 0.01
        assert shape > 0.01

    @pytest.mark.parametrize("key", [
        "sinusoidal", "cylindrical_equal_area", "mollweide", "hammer", "azimuthal_equal_area",
    ])
    def test_equal_area_families_keep_area(self, key):
        projection = configure(key)
        for lat, lon in [(0.5, 1.0), (-0.9, -0.4), (0.1, 2.5)]:
            areal, _ = distortion_at(projection, lat, lon, STEP)
            assert areal == pytest.approx(0.0, abs=1e-5), (lat, lon)

    def test_tobler_is_equal_area(self):
        projection = configure("tobler_hyperelliptical")
        for lat in np.radians([-60.0, -30.0, 5.0, 40.0, 60.0]):
            areal, _ = distortion_at(projection, lat, 0.8, STEP)
            assert areal == pytest.approx(0.0, abs=1e-3), lat


class TestUndefinedDistortion:
    """Points where no reliable derivative exists."""

    def test_stencil_leaves_sphere(self):
        result = distortion_at(configure("equirectangular"), np.pi/2 - 1e-6, 0.0, STEP)
        assert np.all(np.isnan(result))

    def test_stencil_crosses_antimeridian(self):
        result = distortion_at(configure("equirectangular"), 0.0, np.pi - 1e-5, STEP)
        assert np.all(np.isnan(result))

    def test_undefined_neighbour(self):
        """The southern stencil point falls off the visible hemisphere."""
        projection = configure("orthographic")
        assert np.all(np.isnan(distortion_at(projection, STEP / 2, 0.0, STEP)))
        assert np.all(np.isfinite(distortion_at(projection, 3 * STEP, 0.0, STEP)))

    def test_interruption_is_detected(self):
        """A rotated seam inside the stencil shows up as a jump."""
        projection = configure("equirectangular", aspect=Pole(latitude=np.pi/2, longitude=1.0))
        seam = 1.0 - np.pi
        assert np.all(np.isnan(distortion_at(projection, 0.0, seam + 1e-5, STEP)))
        areal, shape = distortion_at(projection, 0.0, 0.5, STEP)
        assert areal == pytest.approx(0.0, abs=1e-6)
        assert shape == pytest.approx(0.0, abs=1e-6)

    def test_non_finite_point(self):
        assert jacobian_at(configure("mercator"), np.nan, 0.0, STEP) is None


class TestTissotIndicatrix:
    """Indicatrix axes and classification."""

    def test_equirectangular(self):
        tissot = tissot_indicatrix(configure("equirectangular"), np.pi/3, 0.5)
        assert tissot.semi_major == pytest.approx(2.0, abs=1e-6)
        assert tissot.semi_minor == pytest.approx(1.0, abs=1e-6)
        assert tissot.area_scale == pytest.approx(2.0, abs=1e-6)
        assert tissot.orientation_rad == pytest.approx(0.0, abs=1e-6)
        assert tissot.angular_distortion_rad == pytest.approx(2 * np.arcsin(1/3), abs=1e-6)
        assert tissot.areal_distortion == pytest.approx(np.log(2), abs=1e-6)
        assert not tissot.is_conformal
        assert not tissot.is_equal_area

    def test_mercator_is_conformal(self):
        tissot = tissot_indicatrix(configure("mercator"), np.pi/4, 0.0)
        assert tissot.is_conformal
        assert tissot.semi_major == pytest.approx(np.sqrt(2), abs=1e-6)

    def test_undefined(self):
        assert tissot_indicatrix(configure("orthographic"), -0.5, 0.0) is None


class TestGridPasses:
    """Distortion over whole grids."""

    def test_globe_uniform_vs_latlon_statistics(self):
        """The lat/lon grid over-weights the poles and inflates Mercator's mean."""
        mercator = configure("mercator")
        globe = compute_distortion(mercator, globe_uniform_grid(0.05)).statistics()
        naive = compute_distortion(mercator, latlon_grid(64)).statistics()
        assert globe.mean_areal == pytest.approx(2 * (1 - np.log(2)), abs=0.02)
        assert naive.mean_areal == pytest.approx(2 * np.log(2), abs=0.1)
        assert globe.mean_shape == pytest.approx(0.0, abs=1e-4)

    def test_equal_area_globe(self):
        stats = compute_distortion(
            configure("cylindrical_equal_area"), globe_uniform_grid(0.1)
        ).statistics()
        assert stats.mean_areal == pytest.approx(0.0, abs=1e-4)
        assert stats.std_areal == pytest.approx(0.0, abs=1e-4)
        assert stats.nan_fraction == 0.0

    def test_normalize_area(self):
        result = compute_distortion(configure("mercator"), latlon_grid(16), normalize_area=True)
        areal = result.areal[np.isfinite(result.areal)]
        assert np.mean(areal) == pytest.approx(0.0, abs=1e-12)

    def test_rows_match_full_pass(self):
        projection = configure("hammer")
        grid = latlon_grid(12)
        full = compute_distortion(projection, grid)
        for i, areal, shape in iter_distortion_rows(projection, grid):
            np.testing.assert_array_equal(areal, full.areal[i])
            np.testing.assert_array_equal(shape, full.shape[i])

    def test_rows_can_be_abandoned(self):
        rows = iter_distortion_rows(configure("mollweide"), latlon_grid(12))
        first, _, _ = next(rows)
        rows.close()
        assert first == 0

    def test_threaded_matches_serial(self):
        projection = configure("azimuthal_equidistant")
        grid = globe_uniform_grid(0.15)
        serial = compute_distortion(projection, grid)
        reports = []
        threaded = compute_distortion(
            projection, grid, workers=4, progress=lambda done, total: reports.append(done)
        )
        np.testing.assert_array_equal(serial.areal, threaded.areal)
        np.testing.assert_array_equal(serial.shape, threaded.shape)
        assert reports and reports[-1] == len(reports)

    def test_invalid_step_fraction(self):
        with pytest.raises(ValueError):
            compute_distortion(configure("mercator"), latlon_grid(8), step_fraction=0.0)

    def test_to_dataset(self):
        result = compute_distortion(configure("equirectangular", [30.0]), latlon_grid(8))
        ds = result.to_dataset()
        assert ds["areal"].dims == ("row", "col")
        assert ds["lat"].shape == (4, 8)
        assert ds.attrs["projection"] == "equirectangular"
        assert ds.attrs["grid_kind"] == "latlon"
        assert ds.attrs["parameter_standard_parallel"] == 30.0
        np.testing.assert_array_equal(ds["shape"].values, result.shape)


class TestStatistics:
    """Aggregation of per-cell values."""

    def test_all_nan(self):
        nan = np.full((2, 3), np.nan)
        stats = DistortionStatistics.from_arrays(nan, nan)
        assert np.isnan(stats.mean_areal) and np.isnan(stats.std_shape)
        assert stats.nan_fraction == 1.0
        assert stats.finite_count == 0
        assert stats.sample_count == 6

    def test_finite_samples_only(self):
        areal = np.array([[0.0, 2.0, np.nan]])
        shape = np.array([[1.0, 1.0, 5.0]])
        stats = DistortionStatistics.from_arrays(areal, shape)
        assert stats.mean_areal == pytest.approx(1.0)
        assert stats.std_areal == pytest.approx(1.0)
        assert stats.mean_shape == pytest.approx(1.0)
        assert stats.nan_fraction == pytest.approx(1/3)

    def test_decibels(self):
        stats = DistortionStatistics(
            mean_areal=0.0, std_areal=LN_10, mean_shape=LN_10 / 2, std_shape=0.0,
            nan_fraction=0.0, sample_count=1, finite_count=1,
        )
        assert stats.areal_decibels == pytest.approx(10.0)
        assert stats.shape_decibels == pytest.approx(5.0)
        assert set(stats.to_dict()) >= {"mean_areal", "areal_decibels", "shape_decibels"}

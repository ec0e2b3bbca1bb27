"""
Tests for the families with iterative, series or table-driven inverses.
"""

import numpy as np
import pytest
from scipy.special import ellipkinc

from geospatial import configure
from geospatial.elliptic import K, elliptic_f, complete_elliptic_k, quincuncial_z
from geospatial.hyperelliptical import build_table
from geospatial.pseudocylindrical import mollweide_auxiliary_angle
from sampling import regular_grid


@pytest.fixture(scope="module")
def tobler():
    """Default Tobler hyperelliptical (builds the 20000-row table once)."""
    return configure("tobler_hyperelliptical")


def assert_round_trip(projection, points, atol=1e-6):
    for lat, lon in points:
        x, y = projection.project(lat, lon)
        assert np.isfinite(x) and np.isfinite(y), (lat, lon)
        lat1, lon1 = projection.inverse(x, y)
        assert lat1 == pytest.approx(lat, abs=atol), (lat, lon)
        assert lon1 == pytest.approx(lon, abs=atol), (lat, lon)


def grid_points(lats_deg, lons_deg):
    return [(lat, lon) for lat in np.radians(lats_deg) for lon in np.radians(lons_deg)]


class TestNewtonInverted:
    """Aitoff, Winkel tripel and the magnifier."""

    def test_aitoff_round_trip(self):
        assert_round_trip(
            configure("aitoff"), grid_points([-45.0, 0.0, 30.0], [-90.0, 20.0, 100.0])
        )

    def test_aitoff_centre(self):
        x, y = configure("aitoff").project(0.0, 0.0)
        assert (x, y) == pytest.approx((0.0, 0.0))

    def test_winkel_round_trip(self):
        assert_round_trip(
            configure("winkel_tripel"), grid_points([-45.0, 0.0, 30.0], [-90.0, 20.0, 100.0])
        )

    def test_winkel_extent_follows_parameter(self):
        projection = configure("winkel_tripel", [0.0])
        assert projection.width == pytest.approx(2 * np.pi)

    def test_magnifier_round_trip(self):
        assert_round_trip(
            configure("magnifier"), grid_points([-70.0, -20.0, 30.0, 75.0], [-120.0, 0.0, 60.0])
        )

    def test_magnifier_outside_disc(self):
        assert np.all(np.isnan(configure("magnifier").inverse(3.0, 3.0)))

    def test_mollweide_auxiliary_angle(self):
        for lat in np.radians([-80.0, -30.0, 0.0, 45.0, 89.0]):
            theta = mollweide_auxiliary_angle(lat)
            assert 2 * theta + np.sin(2 * theta) == pytest.approx(np.pi * np.sin(lat), abs=1e-12)
        assert mollweide_auxiliary_angle(np.pi/2) == pytest.approx(np.pi/2)


class TestEllipticSeries:
    """The elliptic integral series behind the quincuncial family."""

    def test_complete_integral(self):
        # K(1/√2) = Γ(1/4)² / (4√π)
        assert K == pytest.approx(1.8540746773013719, abs=1e-12)
        assert complete_elliptic_k(0.0) == pytest.approx(np.pi / 2)

    def test_series_reaches_complete_integral(self):
        assert complex(elliptic_f(np.pi / 2)).real == pytest.approx(K, abs=1e-10)

    def test_series_small_amplitude(self):
        assert complex(elliptic_f(0.1)).real == pytest.approx(0.1 + 0.5 * 0.1**3 / 6, abs=1e-6)

    @pytest.mark.parametrize("phi", [0.3, 0.9, 1.4])
    def test_series_matches_scipy(self, phi):
        assert complex(elliptic_f(phi)).real == pytest.approx(ellipkinc(phi, 0.5), abs=1e-12)

    def test_clamps_to_origin(self):
        """Points the series cannot represent come back as z = 0."""
        assert quincuncial_z(np.nan, 0.0) == 0j


class TestQuincuncial:
    """Pierce quincuncial and Guyou."""

    def test_south_pole_at_centre(self):
        x, y = configure("pierce_quincuncial").project(-np.pi/2, 0.0)
        assert x == pytest.approx(0.0, abs=1e-9)
        assert y == pytest.approx(0.0, abs=1e-9)

    def test_square_extent(self):
        projection = configure("pierce_quincuncial")
        assert projection.width == pytest.approx(2 * K)
        assert projection.aspect_ratio == pytest.approx(1.0)

    def test_equator_on_diamond_edge(self):
        x, y = configure("pierce_quincuncial").project(0.0, 0.4)
        assert abs(x) + abs(y) == pytest.approx(K, abs=1e-6)

    def test_southern_round_trip(self):
        assert_round_trip(
            configure("pierce_quincuncial"),
            grid_points([-80.0, -60.0, -45.0], [-120.0, -30.0, 45.0, 150.0]),
        )

    def test_northern_hemisphere_in_corners(self):
        x, y = configure("pierce_quincuncial").project(np.radians(45.0), np.radians(30.0))
        assert abs(x) + abs(y) > K
        assert max(abs(x), abs(y)) <= K + 1e-9

    def test_outside_square(self):
        assert np.all(np.isnan(configure("pierce_quincuncial").inverse(2.0, 0.0)))

    def test_guyou_round_trip(self):
        points = grid_points([-25.0, 0.0, 25.0], [-120.0, -90.0, -60.0, 60.0, 90.0, 120.0])
        assert_round_trip(configure("guyou"), points)

    def test_guyou_hemispheres_side_by_side(self):
        projection = configure("guyou")
        west_x, _ = projection.project(0.0, -np.pi/2)
        east_x, _ = projection.project(0.0, np.pi/2)
        assert west_x < 0 < east_x
        assert projection.aspect_ratio == pytest.approx(2.0)

    def test_equator_meets_vertex(self):
        """The equator at 90°E lands on the K - iK vertex of the diamond."""
        z = quincuncial_z(0.0, np.pi/2)
        assert z.real == pytest.approx(K, abs=1e-6)
        assert z.imag == pytest.approx(-K, abs=1e-6)

    def test_equatorial_band_round_trip(self):
        points = grid_points(
            [-30.0, -15.0, -5.0, 0.0, 5.0, 15.0, 30.0],
            [-105.0, -90.0, -75.0, 75.0, 90.0, 105.0],
        )
        assert_round_trip(configure("pierce_quincuncial"), points)

    def test_guyou_equatorial_band_round_trip(self):
        points = grid_points(
            [-30.0, -15.0, 0.0, 15.0, 30.0], [-105.0, -90.0, -75.0, 75.0, 90.0, 105.0]
        )
        assert_round_trip(configure("guyou"), points)

    @pytest.mark.parametrize("key", ["pierce_quincuncial", "guyou"])
    def test_raster_is_fully_inverted(self, key):
        """Every pixel of the square (or pair of squares) is on the globe."""
        grid = regular_grid(configure(key), 40)
        assert grid.valid_fraction == pytest.approx(1.0)

    def test_seed_tables(self):
        seeds = configure("pierce_quincuncial").state.tables
        assert seeds["seed_z"].shape == seeds["seed_phi"].shape
        np.testing.assert_allclose(seeds["seed_z"], [elliptic_f(phi) for phi in seeds["seed_phi"]])


class TestTobler:
    """Table-driven hyperelliptical projection."""

    def test_table_strictly_monotone(self, tobler):
        table = tobler.state.tables["sin_latitude"]
        assert len(table) == 20001
        assert table[0] == 0.0
        assert table[-1] == pytest.approx(1.0, abs=1e-6)
        assert np.all(np.diff(table) > 0)

    def test_small_table_monotone(self):
        table, norm = build_table(0.3, 1.5, size=500)
        assert np.all(np.diff(table) > 0)
        assert 0 < norm < 1

    def test_round_trip(self, tobler):
        assert_round_trip(
            tobler, grid_points([-60.0, -25.0, 0.0, 10.0, 45.0, 60.0], [-170.0, -60.0, 0.0, 90.0])
        )

    def test_equator_and_meridian(self, tobler):
        x, y = tobler.project(0.0, 0.0)
        assert (x, y) == pytest.approx((0.0, 0.0))
        _, y_north = tobler.project(np.radians(30.0), 0.0)
        _, y_south = tobler.project(np.radians(-30.0), 0.0)
        assert y_north == pytest.approx(-y_south)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            configure("tobler_hyperelliptical", {"K": 6.0})
        with pytest.raises(ValueError):
            configure("tobler_hyperelliptical", {"alpha": -0.1})

"""
Tests for sampling grids and row-parallel evaluation.
"""

import threading

import numpy as np
import pytest

from geospatial import configure
from sampling import (
    GridKind,
    globe_uniform_grid,
    latlon_grid,
    map_rows,
    plane_grid,
    project_grid,
    regular_grid,
    sample_grid,
)


class TestMapRows:
    """Serial and threaded row evaluation."""

    @pytest.mark.parametrize("workers", [None, 1, 4])
    def test_every_row_once(self, workers):
        seen = []
        lock = threading.Lock()

        def row(i):
            with lock:
                seen.append(i)

        map_rows(row, 13, workers=workers)
        assert sorted(seen) == list(range(13))

    def test_progress_reports(self):
        reports = []
        map_rows(lambda i: None, 5, workers=3, progress=lambda done, total: reports.append((done, total)))
        assert len(reports) == 5
        assert reports[-1] == (5, 5)

    def test_errors_propagate(self):
        def row(i):
            if i == 3:
                raise RuntimeError("row failed")

        with pytest.raises(RuntimeError):
            map_rows(row, 6, workers=2)

    def test_no_rows(self):
        map_rows(lambda i: pytest.fail("called"), 0, workers=4)


class TestPlaneGrid:
    """Pixel-centre rasters."""

    def test_shape_follows_aspect_ratio(self):
        grid = plane_grid(configure("equirectangular"), 8)
        assert grid.shape == (4, 8)

    def test_pixel_centres(self):
        projection = configure("equirectangular")
        grid = plane_grid(projection, 8)
        assert grid.x[0, 0] == pytest.approx(-np.pi + np.pi / 8)
        assert grid.y[0, 0] == pytest.approx(np.pi/2 - np.pi / 8)
        assert grid.y[0, 0] > grid.y[-1, 0]

    def test_invalid_resolution(self):
        with pytest.raises(ValueError):
            plane_grid(configure("mercator"), 0)
        with pytest.raises(ValueError):
            plane_grid(configure("mercator"), 2.5)


class TestRegularGrid:
    """Inverse-projected rasters."""

    def test_equirectangular_covers_globe(self):
        grid = regular_grid(configure("equirectangular"), 8)
        assert grid.kind is GridKind.REGULAR
        assert grid.valid_fraction == 1.0
        assert grid.lat[0, 0] == pytest.approx(np.pi/2 - np.pi / 8)
        assert grid.lon[0, 0] == pytest.approx(-np.pi + np.pi / 8)
        assert grid.spacing == pytest.approx(2 * np.pi / 8)

    def test_spacing_is_a_sphere_distance(self):
        """Stereographic scale exceeds 1 off centre, so sphere steps are shorter than pixels."""
        projection = configure("stereographic")
        grid = regular_grid(projection, 40)
        pixel = projection.height / grid.shape[0]
        assert pixel / 10 < grid.spacing < pixel

    def test_spacing_without_vertical_neighbours(self):
        grid = regular_grid(configure("equirectangular"), 1)
        assert grid.shape == (1, 1)
        assert grid.spacing == pytest.approx(np.pi)

    def test_crop_antimeridian(self):
        projection = configure("sinusoidal")
        cropped = regular_grid(projection, 40, crop_antimeridian=True)
        wrapped = regular_grid(projection, 40, crop_antimeridian=False)
        assert cropped.valid_fraction == pytest.approx(2 / np.pi, abs=0.05)
        assert wrapped.valid_fraction == 1.0

    def test_outside_outline_is_nan(self):
        grid = regular_grid(configure("mollweide"), 40)
        assert grid.valid_fraction == pytest.approx(np.pi / 4, abs=0.05)
        assert np.isnan(grid.lat[0, 0])

    def test_threaded_matches_serial(self):
        projection = configure("hammer")
        serial = regular_grid(projection, 24)
        threaded = regular_grid(projection, 24, workers=4)
        np.testing.assert_array_equal(serial.lat, threaded.lat)
        np.testing.assert_array_equal(serial.lon, threaded.lon)


class TestLatLonGrids:
    """Naive and globe-uniform sampling."""

    def test_latlon_grid(self):
        grid = latlon_grid(8)
        assert grid.shape == (4, 8)
        assert grid.kind is GridKind.LATLON
        assert grid.spacing == pytest.approx(np.pi / 4)
        assert grid.lat[0, 0] > grid.lat[-1, 0]

    def test_globe_uniform_sample_count(self):
        resolution = 0.1
        grid = globe_uniform_grid(resolution)
        assert grid.shape[0] == 1
        assert grid.size == pytest.approx(4 * np.pi / resolution**2, rel=0.05)
        assert np.all(np.abs(grid.lat) < np.pi/2)
        assert np.all(np.abs(grid.lon) < np.pi)

    def test_globe_uniform_equal_solid_angle(self):
        """Sample density per band follows cos φ, unlike a lat/lon grid."""
        grid = globe_uniform_grid(0.05)
        equator = np.sum(np.abs(grid.lat) < 0.075)
        high = np.sum(np.abs(grid.lat - np.radians(60.0)) < 0.075)
        assert high / equator == pytest.approx(0.5, abs=0.1)

    def test_invalid_angular_resolution(self):
        with pytest.raises(ValueError):
            globe_uniform_grid(0.0)
        with pytest.raises(ValueError):
            globe_uniform_grid(np.nan)


class TestSampleGrid:
    """Grid facade and forward projection of grids."""

    def test_dispatch(self):
        assert sample_grid(GridKind.LATLON, 6).shape == (3, 6)
        assert sample_grid("globe_uniform", 0.2).kind is GridKind.GLOBE_UNIFORM
        regular = sample_grid(GridKind.REGULAR, 6, projection=configure("equirectangular"))
        assert regular.shape == (3, 6)

    def test_regular_needs_projection(self):
        with pytest.raises(ValueError):
            sample_grid(GridKind.REGULAR, 10)

    def test_project_grid(self):
        grid = latlon_grid(8)
        plane = project_grid(configure("equirectangular"), grid, workers=2)
        np.testing.assert_allclose(plane.x, grid.lon)
        np.testing.assert_allclose(plane.y, grid.lat)

    def test_project_grid_nan_where_undefined(self):
        plane = project_grid(configure("orthographic"), latlon_grid(8))
        assert np.all(np.isnan(plane.x[2:]))
        assert np.all(np.isfinite(plane.x[:2]))

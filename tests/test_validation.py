"""
Tests for projection consistency checks and the PROJ reference.
"""

import numpy as np
import pytest

from common.types import Pole
from geospatial import configure
from sampling import globe_uniform_grid
from validation import (
    ConsistencyError,
    ProjectionConsistencyChecker,
    proj_definition,
    reference_project,
)

PROJ_FAMILIES = [
    ("equirectangular", None),
    ("equirectangular", [40.0]),
    ("mercator", None),
    ("gall_stereographic", None),
    ("cylindrical_equal_area", [30.0]),
    ("sinusoidal", None),
    ("mollweide", None),
    ("hammer", None),
    ("aitoff", None),
    ("azimuthal_equidistant", None),
    ("stereographic", None),
    ("azimuthal_equal_area", None),
    ("orthographic", None),
    ("lambert_conformal_conic", [45.0]),
]


@pytest.fixture
def checker():
    return ProjectionConsistencyChecker(strict_mode=False, log_violations=False)


@pytest.fixture
def coarse_globe():
    return globe_uniform_grid(0.1)


class TestRoundTrip:
    """Inverse after forward."""

    def test_mercator(self, checker):
        result = checker.check_round_trip(configure("mercator"))
        assert result.passed
        assert result.details["not_inverted"] == 0
        assert result.details["points"] == 24 * 12

    def test_custom_points(self, checker):
        lats = np.radians([-40.0, 0.0, 55.0])
        lons = np.radians([10.0, -120.0, 170.0])
        result = checker.check_round_trip(configure("mollweide"), lats, lons)
        assert result.passed
        assert result.details["points"] == 3

    def test_oblique_aspect(self, checker):
        projection = configure("hammer", aspect=Pole.from_degrees(30.0, 20.0, 10.0))
        assert checker.check_round_trip(projection).passed

    @pytest.mark.parametrize("key", ["pierce_quincuncial", "guyou"])
    def test_elliptic_families(self, checker, key):
        result = checker.check_round_trip(configure(key))
        assert result.passed, result.message
        assert result.details["not_inverted"] == 0

    def test_undefined_points_are_skipped(self, checker):
        result = checker.check_round_trip(configure("orthographic"))
        assert result.passed
        assert result.details["points"] == 24 * 6


class TestMetricProperties:
    """Equal-area and conformal checks over the globe."""

    def test_sinusoidal_is_equal_area(self, checker, coarse_globe):
        result = checker.check_equal_area(configure("sinusoidal"), coarse_globe)
        assert result.passed
        assert result.details["finite_samples"] > 0

    def test_stereographic_is_conformal(self, checker, coarse_globe):
        assert checker.check_conformal(configure("stereographic"), coarse_globe).passed

    def test_equirectangular_is_not_conformal(self, checker, coarse_globe):
        result = checker.check_conformal(configure("equirectangular"), coarse_globe)
        assert not result.passed
        assert result.details["mean_abs"] > 0.1

    def test_mercator_is_not_equal_area(self, checker, coarse_globe):
        assert not checker.check_equal_area(configure("mercator"), coarse_globe).passed

    def test_strict_mode_raises(self, coarse_globe):
        strict = ProjectionConsistencyChecker(strict_mode=True, log_violations=False)
        with pytest.raises(ConsistencyError) as excinfo:
            strict.check_conformal(configure("equirectangular"), coarse_globe)
        assert excinfo.value.result.test_name == "conformal"

    def test_check_all(self, checker):
        results = checker.check_all(configure("mercator"), globe_resolution=0.1)
        assert [r.test_name for r in results] == ["round_trip", "conformal", "proj_reference"]
        assert all(r.passed for r in results)

    def test_check_all_oblique_has_no_reference(self, checker):
        projection = configure("sinusoidal", aspect=Pole.from_degrees(50.0, -20.0, 0.0))
        results = checker.check_all(projection, globe_resolution=0.2)
        assert [r.test_name for r in results] == ["round_trip", "equal_area"]
        assert results[0].passed


class TestProjReference:
    """Agreement with PROJ on the unit sphere."""

    @pytest.mark.parametrize("key, parameters", PROJ_FAMILIES)
    def test_matches_proj(self, checker, key, parameters):
        result = checker.check_reference(configure(key, parameters), tolerance=1e-5)
        assert result.passed, result.message

    def test_definition_carries_parameters(self):
        projection = configure("lambert_conformal_conic", [45.0])
        assert proj_definition(projection) == "+proj=lcc +lat_1=45.0 +lat_0=90 +R=1"

    def test_no_reference_family(self):
        with pytest.raises(ValueError):
            proj_definition(configure("magnifier"))

    def test_oblique_aspect_has_no_reference(self):
        projection = configure("mercator", aspect=Pole.from_degrees(40.0, 10.0, 0.0))
        with pytest.raises(ValueError):
            proj_definition(projection)

    def test_reference_project_values(self):
        x, y = reference_project(configure("equirectangular"), np.array([0.5]), np.array([1.0]))
        np.testing.assert_allclose(x, [1.0])
        np.testing.assert_allclose(y, [0.5])

    def test_undefined_points_are_nan(self):
        x, y = reference_project(configure("orthographic"), np.array([-0.5]), np.array([0.0]))
        assert np.isnan(x[0]) and np.isnan(y[0])

"""
Tests for oblique aspects by spherical rotation.
"""

import numpy as np
import pytest

from common.types import Pole
from geospatial import (
    ASPECT_PRESETS,
    antipode,
    aspect_preset,
    deobliquify,
    normalize_longitude,
    obliquify,
    random_pole,
)

POINTS = [
    (lat, lon)
    for lat in np.radians([-75.0, -30.0, 0.0, 20.0, 64.0])
    for lon in np.radians([-170.0, -90.0, 0.0, 45.0, 135.0])
]

POLES = [
    Pole(latitude=np.pi/2, longitude=0.4, twist=0.3),
    Pole(latitude=-np.pi/2, longitude=-1.1, twist=0.2),
    Pole(latitude=0.0, longitude=0.7, twist=-0.5),
    Pole.from_degrees(35.0, -60.0, 25.0),
]


def _assert_same_point(a, b, atol=1e-9):
    lat_a, lon_a = a
    lat_b, lon_b = b
    assert lat_a == pytest.approx(lat_b, abs=atol)
    if abs(lat_a) < np.pi/2 - 1e-6:
        assert normalize_longitude(lon_a - lon_b) == pytest.approx(0.0, abs=atol)


class TestNormalizeLongitude:
    """Floored-modulo wrap into (-π, π]."""

    def test_range(self):
        lons = np.linspace(-20, 20, 401)
        wrapped = normalize_longitude(lons)
        assert np.all(wrapped > -np.pi)
        assert np.all(wrapped <= np.pi)

    def test_boundaries(self):
        assert normalize_longitude(np.pi) == pytest.approx(np.pi)
        assert normalize_longitude(-np.pi) == pytest.approx(np.pi)
        assert normalize_longitude(3 * np.pi / 2) == pytest.approx(-np.pi/2)


class TestObliquify:
    """Rotation into and out of an oblique frame."""

    @pytest.mark.parametrize("pole", POLES)
    def test_round_trip(self, pole):
        for point in POINTS:
            _assert_same_point(deobliquify(pole, obliquify(pole, point)), point)

    @pytest.mark.parametrize("pole", POLES)
    def test_inverse_round_trip(self, pole):
        for point in POINTS:
            _assert_same_point(obliquify(pole, deobliquify(pole, point)), point)

    def test_north_pole_branch_is_a_longitude_shift(self):
        pole = Pole(latitude=np.pi/2, longitude=0.5, twist=0.25)
        lat1, lon1 = obliquify(pole, (0.3, 1.0))
        assert lat1 == 0.3
        assert lon1 == pytest.approx(1.0 - 0.5 - 0.25)

    def test_south_pole_branch_mirrors(self):
        pole = Pole(latitude=-np.pi/2, longitude=0.5, twist=0.0)
        lat1, lon1 = obliquify(pole, (0.3, 1.0))
        assert lat1 == -0.3
        assert lon1 == pytest.approx(normalize_longitude(0.5 - 1.0 + np.pi))

    def test_pole_maps_to_oblique_north_pole(self):
        pole = Pole.from_degrees(20.0, 40.0, 10.0)
        lat1, _ = obliquify(pole, (pole.latitude, pole.longitude))
        assert lat1 == pytest.approx(np.pi/2, abs=1e-7)

    def test_preserves_angular_distance(self):
        pole = Pole.from_degrees(-10.0, 65.0, -150.0)
        a, b = (0.2, 0.1), (-0.4, 1.3)

        def distance(p, q):
            return np.arccos(np.clip(
                np.sin(p[0]) * np.sin(q[0])
                + np.cos(p[0]) * np.cos(q[0]) * np.cos(p[1] - q[1]), -1, 1
            ))

        assert distance(obliquify(pole, a), obliquify(pole, b)) == pytest.approx(
            distance(a, b), abs=1e-12
        )


class TestPoles:
    """Pole values, presets and helpers."""

    def test_latitude_out_of_range(self):
        with pytest.raises(ValueError):
            Pole(latitude=2.0, longitude=0.0)

    def test_presets(self):
        assert "Jerusalem" in ASPECT_PRESETS
        lat, lon, twist = aspect_preset("Jerusalem").to_degrees()
        assert lat == pytest.approx(31.7833)
        assert lon == pytest.approx(35.216)
        assert twist == pytest.approx(-35.0)

    def test_unknown_preset(self):
        with pytest.raises(KeyError):
            aspect_preset("Atlantis")

    def test_antipode(self):
        pole = Pole.from_degrees(30.0, 100.0, 5.0)
        opposite = antipode(pole)
        assert opposite.latitude == pytest.approx(-pole.latitude)
        assert abs(normalize_longitude(opposite.longitude - pole.longitude)) == pytest.approx(np.pi)
        assert opposite.twist == pole.twist

    def test_random_pole_is_reproducible(self):
        a = random_pole(np.random.default_rng(7))
        b = random_pole(np.random.default_rng(7))
        assert a == b
        assert -np.pi/2 <= a.latitude <= np.pi/2

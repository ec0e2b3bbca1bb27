"""
Oblique Aspects by Spherical Rotation.

Every projection family is written for its standard (north-polar or
equatorial) aspect. Any other orientation is obtained by rotating the
globe first: `obliquify` expresses a point in the frame whose north pole
sits at ``pole`` and whose meridians are twisted by ``pole.twist``;
`deobliquify` undoes it.

Scientific Context
------------------
The rotation is evaluated per call from unit vectors. With P the oblique
pole and F the point, the oblique latitude is ``asin(P·F)`` and the
oblique longitude is the signed angle, about P, between the great circle
through P and the true north pole k and the great circle through P and F.
When P coincides with ±k the reference circle is undefined; those two
cases reduce to a shift of longitude and are selected by exact equality
of the pole latitude with ±π/2.

References
----------
- Snyder, J. P. (1987). Map Projections: A Working Manual, §5
  ("Transformation of map graticules").
"""

from typing import Dict, Optional

import numpy as np
from numpy.typing import NDArray

from common.types import LatLon, Pole
from common.logging_config import get_logger

logger = get_logger(__name__)

_K = np.array([0.0, 0.0, 1.0])


def normalize_longitude(lon):
    """Wrap longitude into (-π, π] using a floored modulo.

    Works on floats and arrays alike.
    """
    return np.pi - np.mod(np.pi - lon, 2 * np.pi)


def _unit_vector(lat: float, lon: float) -> NDArray[np.float64]:
    cos_lat = np.cos(lat)
    return np.array([cos_lat * np.cos(lon), cos_lat * np.sin(lon), np.sin(lat)])


def obliquify(pole: Pole, coord: LatLon) -> LatLon:
    """Rotate a standard-frame coordinate into the oblique frame.

    Parameters
    ----------
    pole : Pole
        Oblique pole and twist.
    coord : tuple of float
        ``(lat, lon)`` in radians in the standard frame.

    Returns
    -------
    tuple of float
        ``(lat, lon)`` in the oblique frame, lon in (-π, π].
    """
    lat0, lon0, twist = pole.latitude, pole.longitude, pole.twist
    lat_f, lon_f = coord

    if lat0 == np.pi/2:
        lat1 = lat_f
        lon1 = lon_f - lon0
    elif lat0 == -np.pi/2:
        lat1 = -lat_f
        lon1 = lon0 - lon_f + np.pi
    else:
        p = _unit_vector(lat0, lon0)
        r = _unit_vector(lat_f, lon_f)
        p_dot_r = float(np.clip(np.dot(p, r), -1.0, 1.0))
        lat1 = np.arcsin(p_dot_r)
        sin_part = np.dot(p, np.cross(_K, r))
        cos_part = r[2] - p[2] * p_dot_r
        lon1 = np.arctan2(sin_part, cos_part) - np.pi

    lon1 = normalize_longitude(lon1 - twist)
    return float(lat1), float(lon1)


def deobliquify(pole: Pole, coord: LatLon) -> LatLon:
    """Rotate an oblique-frame coordinate back into the standard frame.

    Inverse of `obliquify` for the same pole.

    Parameters
    ----------
    pole : Pole
        Oblique pole and twist.
    coord : tuple of float
        ``(lat, lon)`` in radians in the oblique frame.

    Returns
    -------
    tuple of float
        ``(lat, lon)`` in the standard frame, lon in (-π, π].
    """
    lat0, lon0, twist = pole.latitude, pole.longitude, pole.twist
    lat1, lon1 = coord

    if lat0 == np.pi/2:
        lat_f = lat1
        lon_f = lon1 + twist + lon0
    elif lat0 == -np.pi/2:
        lat_f = -lat1
        lon_f = lon0 + np.pi - (lon1 + twist)
    else:
        p = _unit_vector(lat0, lon0)
        # Orthonormal basis of the plane perpendicular to the pole
        u = _K - p[2] * p
        u /= np.linalg.norm(u)
        v = np.cross(p, u)
        beta = lon1 + twist + np.pi
        r = np.sin(lat1) * p + np.cos(lat1) * (np.cos(beta) * u + np.sin(beta) * v)
        lat_f = np.arcsin(np.clip(r[2], -1.0, 1.0))
        lon_f = np.arctan2(r[1], r[0])

    return float(lat_f), float(normalize_longitude(lon_f))


def antipode(pole: Pole) -> Pole:
    """Pole on the opposite side of the globe, same twist."""
    return Pole(
        latitude=-pole.latitude,
        longitude=float(normalize_longitude(pole.longitude + np.pi)),
        twist=pole.twist,
    )


def random_pole(rng: Optional[np.random.Generator] = None) -> Pole:
    """Draw a pole uniformly over the sphere with a uniform twist.

    Parameters
    ----------
    rng : numpy.random.Generator, optional
        Random generator; a fresh default generator when omitted.

    Returns
    -------
    Pole
        Random oblique aspect.
    """
    rng = rng if rng is not None else np.random.default_rng()
    latitude = float(np.arcsin(rng.uniform(-1.0, 1.0)))
    longitude = float(rng.uniform(-np.pi, np.pi))
    twist = float(rng.uniform(-np.pi, np.pi))
    return Pole(latitude=latitude, longitude=longitude, twist=twist)


# Named aspects (pole latitude, pole longitude, twist) in degrees
ASPECT_PRESETS: Dict[str, Pole] = {
    "Standard": Pole.from_degrees(90, 0, 0),
    "Transverse": Pole.from_degrees(0, 0, 0),
    "Center of Mass": Pole.from_degrees(29.9792, 31.1344, -32),
    "Jerusalem": Pole.from_degrees(31.7833, 35.216, -35),
    "Point Nemo": Pole.from_degrees(48.8767, 56.6067, -45),
    "Longest Line": Pole.from_degrees(-28.5217, 141.451, 161.5),
    "Longest Line Transverse": Pole.from_degrees(-46.4883, 16.5305, 137),
    "Cylindrical": Pole.from_degrees(-35, -13.6064, 145),
    "Conical": Pole.from_degrees(-10, 65, -150),
    "Quincuncial": Pole.from_degrees(60, -6, -10),
}


def aspect_preset(name: str) -> Pole:
    """Look up a named aspect.

    Raises
    ------
    KeyError
        If no preset has that name.
    """
    if name not in ASPECT_PRESETS:
        raise KeyError(
            f"Unknown aspect '{name}'. Available: {', '.join(ASPECT_PRESETS)}"
        )
    return ASPECT_PRESETS[name]

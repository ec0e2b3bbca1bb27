"""
Whole-World Projections with Curved Outlines.

Hammer, Aitoff and Winkel tripel are built from an azimuthal projection of
the hemisphere with halved longitudes, stretched horizontally; van der
Grinten encloses the globe in a circle. Their parallels are curves, so
they sit outside the cylindrical/pseudocylindrical groups.

Inverses
--------
Hammer and van der Grinten invert in closed form. Aitoff and Winkel
tripel have no algebraic inverse and are solved with the bounded 2-D
Newton-Raphson solver using analytic partial derivatives; points where it
does not converge are undefined.

References
----------
- Snyder, J.P. (1993). Flattening the Earth, pp. 130-134, 228-231.
- Snyder, J.P. (1987). Map Projections - A Working Manual, §29 (van der Grinten).
- Ipbüker, C. & Bildirici, I.Ö. (2002). A general algorithm for the inverse
  transformation of map projections using Jacobian matrices.
"""

from typing import Tuple

import numpy as np

from common.constants import NumericalConstants
from geospatial.projections import (
    NAN_PAIR,
    Category,
    ParameterSpec,
    ProjectionDescriptor,
    ProjectionFamily,
    ProjectionState,
    Property,
    TopologyFlag,
    fixed_extent,
    register_projection,
)
from numerical_analysis import newton_raphson_2d

INVERSE_TOLERANCE = NumericalConstants.INVERSE_TOLERANCE.value
SQRT2 = np.sqrt(2)


# =============================================================================
# Hammer
# =============================================================================

def _project_hammer(state, lat, lon):
    cos_lat = np.cos(lat)
    d = np.sqrt(1 + cos_lat * np.cos(lon/2))
    return 2 * SQRT2 * cos_lat * np.sin(lon/2) / d, SQRT2 * np.sin(lat) / d


def _inverse_hammer(state, x, y):
    if x**2 / 8 + y**2 / 2 > 1:
        return NAN_PAIR
    z = np.sqrt(1 - (x/4)**2 - (y/2)**2)
    lon = 2 * np.arctan2(z * x, 2 * (2 * z**2 - 1))
    lat = np.arcsin(np.clip(z * y, -1.0, 1.0))
    return lat, lon


HAMMER = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="hammer",
        name="Hammer",
        description="An equal-area map shaped like an ellipse, with less polar shearing than Mollweide",
        width=4 * SQRT2,
        height=2 * SQRT2,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN,
        category=Category.OTHER,
        property=Property.EQUAL_AREA,
        proj_definition="+proj=hammer +R=1",
    ),
    configure=fixed_extent(4 * SQRT2, 2 * SQRT2),
    project=_project_hammer,
    inverse=_inverse_hammer,
))


# =============================================================================
# Aitoff
# =============================================================================

def _aitoff_terms(lat: float, lon: float) -> Tuple[float, ...]:
    """Shared trigonometric terms of the Aitoff forward map and its partials.

    Returns C, S, c, s, g, h where C, S = cos, sin φ; c, s = cos, sin λ/2;
    g = α / sin α with cos α = C c; and h = g'(α) / sin α.
    """
    C, S = np.cos(lat), np.sin(lat)
    c, s = np.cos(lon/2), np.sin(lon/2)
    alpha = np.arccos(np.clip(C * c, -1.0, 1.0))
    if alpha < 1e-4:
        # Series limits at the centre of the map
        g = 1 + alpha**2 / 6
        h = 1/3
    else:
        sin_a = np.sin(alpha)
        g = alpha / sin_a
        h = (sin_a - alpha * np.cos(alpha)) / sin_a**3
    return C, S, c, s, g, h


def aitoff_xy(lat: float, lon: float) -> Tuple[float, float]:
    C, S, c, s, g, h = _aitoff_terms(lat, lon)
    return 2 * C * s * g, S * g


def aitoff_jacobian(lat: float, lon: float) -> Tuple[float, float, float, float]:
    """Partials (dx/dφ, dx/dλ, dy/dφ, dy/dλ) of the Aitoff map."""
    C, S, c, s, g, h = _aitoff_terms(lat, lon)
    dx_dlat = 2 * (-S * s * g + C * s * h * S * c)
    dx_dlon = C * c * g + C**2 * s**2 * h
    dy_dlat = C * g + S**2 * c * h
    dy_dlon = S * h * C * s / 2
    return dx_dlat, dx_dlon, dy_dlat, dy_dlon


def _newton_inverse(x, y, lat0, lon0, forward, jacobian):
    """Invert a forward map with the bounded 2-D solver."""
    result = newton_raphson_2d(
        x, y, lat0, lon0,
        lambda p, l: forward(p, l)[0],
        lambda p, l: forward(p, l)[1],
        lambda p, l: jacobian(p, l)[0],
        lambda p, l: jacobian(p, l)[1],
        lambda p, l: jacobian(p, l)[2],
        lambda p, l: jacobian(p, l)[3],
        INVERSE_TOLERANCE,
    )
    if result is None:
        return NAN_PAIR
    return result


def _project_aitoff(state, lat, lon):
    return aitoff_xy(lat, lon)


def _inverse_aitoff(state, x, y):
    if (x / np.pi)**2 + (y / (np.pi/2))**2 > 1:
        return NAN_PAIR
    # The Hammer graticule has the same elliptical outline; its closed-form
    # inverse of the rescaled point is the starting guess
    scale = 2 * SQRT2 / np.pi
    lat0, lon0 = _inverse_hammer(state, x * scale, y * scale)
    if not (np.isfinite(lat0) and np.isfinite(lon0)):
        lat0, lon0 = y, x
    return _newton_inverse(x, y, lat0, lon0, aitoff_xy, aitoff_jacobian)


AITOFF = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="aitoff",
        name="Aitoff",
        description="A compromise map shaped like an ellipse",
        width=2 * np.pi,
        height=np.pi,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN,
        category=Category.OTHER,
        property=Property.COMPROMISE,
        proj_definition="+proj=aitoff +R=1",
    ),
    configure=fixed_extent(2 * np.pi, np.pi),
    project=_project_aitoff,
    inverse=_inverse_aitoff,
))


# =============================================================================
# Winkel tripel
# =============================================================================
#
# Arithmetic mean of the Aitoff map and an equirectangular map with
# standard parallel φ₁.

WINKEL_PARALLEL = ParameterSpec(
    name="standard_parallel",
    minimum=0.0,
    maximum=89.0,
    default=float(np.degrees(np.arccos(2 / np.pi))),
    unit="degree",
    description="Standard parallel of the equirectangular component",
)


def _configure_winkel(values: Tuple[float, ...]) -> ProjectionState:
    (parallel,) = values
    cos_parallel = np.cos(parallel)
    return ProjectionState(
        width=np.pi * (1 + cos_parallel),
        height=np.pi,
        constants={"cos_parallel": cos_parallel},
    )


def _project_winkel(state, lat, lon):
    ax, ay = aitoff_xy(lat, lon)
    return (lon * state.constants["cos_parallel"] + ax) / 2, (lat + ay) / 2


def _inverse_winkel(state, x, y):
    cos_parallel = state.constants["cos_parallel"]
    if abs(y) > state.height / 2 or abs(x) > state.width / 2:
        return NAN_PAIR

    def forward(lat, lon):
        ax, ay = aitoff_xy(lat, lon)
        return (lon * cos_parallel + ax) / 2, (lat + ay) / 2

    def jacobian(lat, lon):
        a, b, c, d = aitoff_jacobian(lat, lon)
        return a / 2, (cos_parallel + b) / 2, (1 + c) / 2, d / 2

    return _newton_inverse(x, y, y, 2 * x / (1 + cos_parallel), forward, jacobian)


_WINKEL_DEFAULT = _configure_winkel((np.radians(WINKEL_PARALLEL.default),))

WINKEL_TRIPEL = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="winkel_tripel",
        name="Winkel Tripel",
        description="A compromise map averaging Aitoff and equirectangular",
        width=_WINKEL_DEFAULT.width,
        height=_WINKEL_DEFAULT.height,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN,
        category=Category.OTHER,
        property=Property.COMPROMISE,
        parameters=(WINKEL_PARALLEL,),
        proj_definition="+proj=wintri +lat_1={standard_parallel} +R=1",
    ),
    configure=_configure_winkel,
    project=_project_winkel,
    inverse=_inverse_winkel,
))


# =============================================================================
# Van der Grinten
# =============================================================================

def _project_van_der_grinten(state, lat, lon):
    if abs(lat) >= np.pi/2:
        return NAN_PAIR
    if lat == 0:
        return lon, 0.0

    theta = np.arcsin(abs(2 * lat / np.pi))
    if lon == 0:
        return 0.0, np.sign(lat) * np.pi * np.tan(theta / 2)

    A = abs(np.pi / lon - lon / np.pi) / 2
    G = np.cos(theta) / (np.sin(theta) + np.cos(theta) - 1)
    P = G * (2 / np.sin(theta) - 1)
    Q = A**2 + G
    P2A2 = P**2 + A**2
    x = np.pi * np.sign(lon) * (
        A * (G - P**2) + np.sqrt(A**2 * (G - P**2)**2 - P2A2 * (G**2 - P**2))
    ) / P2A2
    y = np.pi * np.sign(lat) * (P * Q - A * np.sqrt((A**2 + 1) * P2A2 - Q**2)) / P2A2
    return x, y


def _inverse_van_der_grinten(state, x, y):
    X = x / np.pi
    Y = y / np.pi
    r2 = X**2 + Y**2
    if r2 > 1:
        return NAN_PAIR

    if X == 0:
        lon = 0.0
    else:
        lon = np.pi * (r2 - 1 + np.sqrt(1 + 2 * (X**2 - Y**2) + r2**2)) / (2 * X)

    if Y == 0:
        return 0.0, lon

    c1 = -abs(Y) * (1 + r2)
    c2 = c1 - 2 * Y**2 + X**2
    c3 = -2 * c1 + 1 + 2 * Y**2 + r2**2
    d = Y**2 / c3 + (2 * c2**3 / c3**3 - 9 * c1 * c2 / c3**2) / 27
    a1 = (c1 - c2**2 / (3 * c3)) / c3
    m1 = 2 * np.sqrt(-a1 / 3)
    theta1 = np.arccos(np.clip(3 * d / (a1 * m1), -1.0, 1.0)) / 3
    lat = np.sign(Y) * np.pi * (-m1 * np.cos(theta1 + np.pi/3) - c2 / (3 * c3))
    return lat, lon


VAN_DER_GRINTEN = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="van_der_grinten",
        name="Van der Grinten",
        description="A compromise map enclosing the globe in a circle",
        width=2 * np.pi,
        height=2 * np.pi,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY,
        category=Category.OTHER,
        property=Property.COMPROMISE,
        proj_definition="+proj=vandg +R=1",
    ),
    configure=fixed_extent(2 * np.pi, 2 * np.pi),
    project=_project_van_der_grinten,
    inverse=_inverse_van_der_grinten,
))
